import os
from pathlib import Path

import pytest

# Test layer by directory name under tests/storefront/
_LAYER_MARKERS = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "integration": pytest.mark.integration,
    "bdd": pytest.mark.bdd,
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before the storefront domain is imported,
    so `domain.toml` is read for the right environment."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Mark every test with the layer its directory belongs to."""
    for item in items:
        layers = [part for part in Path(item.fspath).parts if part in _LAYER_MARKERS]
        if not layers:
            continue

        item.add_marker(_LAYER_MARKERS[layers[-1]])
        # API tests spin up an app per test
        if layers[-1] == "integration" and not any(m.name == "fast" for m in item.iter_markers()):
            item.add_marker(pytest.mark.slow)
