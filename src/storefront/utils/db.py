from protean.domain import Domain
from sqlalchemy import create_engine

SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    return [p for p in domain.providers.values() if p.conn_info["provider"] in SQL_PROVIDERS]


def setup_db(domain: Domain):
    """Create tables for the storefront's aggregates and entities on every SQL provider.

    The in-memory provider used by tests needs no schema and is skipped.
    """
    with domain.domain_context():
        records = [*domain.registry.aggregates.values(), *domain.registry.entities.values()]
        for provider in _sql_providers(domain):
            # Models register with the provider's metadata when their DAO is first built
            for record in records:
                if record.cls.meta_.provider == provider.name:
                    domain.repository_for(record.cls)._dao  # noqa: B018

            provider._metadata.create_all(create_engine(provider.conn_info["database_uri"]))


def drop_db(domain: Domain):
    with domain.domain_context():
        for provider in _sql_providers(domain):
            provider._metadata.drop_all(create_engine(provider.conn_info["database_uri"]))
