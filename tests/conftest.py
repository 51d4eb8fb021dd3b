import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before any domain is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path or "/reconciliation/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


# Domains are set up once per session and shared by every test package,
# including the cross-context reconciliation tests.
@pytest.fixture(scope="session")
def shipping_bed():
    from shipping.domain import shipping

    bed = DomainFixture(shipping)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(scope="session")
def returns_bed():
    from returns.domain import returns

    bed = DomainFixture(returns)
    bed.setup()
    yield bed
    bed.teardown()

