import pytest

from dbrecords import connection


@pytest.fixture(autouse=True)
def clear_engine_registry():
    """Clear the engine registry before and after each test to ensure test isolation."""
    connection._engine_registry.clear()
    yield
    connection._engine_registry.clear()


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
    'tests.fixtures.postgres',
]
