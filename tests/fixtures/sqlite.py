import pytest
import sqlalchemy as sa

from dbrecords import RecordStore
from tests.fixtures.records import SQLITE_SCHEMA


@pytest.fixture
async def sqlite_store(tmp_path):
    """Create a file-backed SQLite database with the test schema"""
    store = RecordStore.from_url(f"sqlite:///{tmp_path / 'records.db'}")

    async with store.begin() as conn:
        for ddl in SQLITE_SCHEMA:
            await conn.execute(sa.text(ddl))

    yield store
    await store.dispose()
