"""Storefront database management CLI.

Creates or drops the schema of every SQL provider configured for the
current PROTEAN_ENV.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import os

COMMANDS = {
    "setup-db": ("setup_db", "Create all database tables"),
    "drop-db": ("drop_db", "Drop all database tables"),
}


def run(command: str) -> None:
    from storefront.domain import storefront
    from storefront.utils import db

    action, description = COMMANDS[command]
    print(f"Initializing storefront domain ({os.environ.get('PROTEAN_ENV', 'default')})...")
    storefront.init()
    print(f"{description}...")
    getattr(db, action)(storefront)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    for name, (_, description) in COMMANDS.items():
        subparsers.add_parser(name, help=description)

    run(parser.parse_args().command)


if __name__ == "__main__":
    main()
