"""
Query operations returning records.

Statements use ``@Name`` placeholders bound from a parameter mapping. Rows
are mapped onto the requested dataclass by snake_case column name.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, TypeVar

import sqlalchemy as sa

from dbrecords.exceptions import ValidationError
from dbrecords.schema import record_from_row
from dbrecords.sql import bind_named_placeholders

if TYPE_CHECKING:
    from dbrecords.connection import RecordStore

__all__ = [
    'execute',
    'query_single_record',
    'query_many_records',
]

SqlParams = dict[str, Any]
T = TypeVar('T')

logger = logging.getLogger(__name__)


def _statement(sql: str) -> sa.TextClause:
    return sa.text(bind_named_placeholders(sql))


async def fetch_rows(store: 'RecordStore', sql: str,
                     params: SqlParams | None = None) -> Sequence[sa.RowMapping]:
    """Execute a query and return its rows as column-name mappings.
    """
    bound = store.registry.dump_params(params, store.dialect)
    async with store.connect() as conn:
        result = await conn.execute(_statement(sql), bound)
        rows = result.mappings().all()
    logger.debug(f'Query returned {len(rows)} rows: {sql[:60]}...')
    return rows


async def execute(store: 'RecordStore', sql: str, params: SqlParams | None = None) -> int:
    """Execute a write statement in its own transaction and return the affected row count.
    """
    bound = store.registry.dump_params(params, store.dialect)
    async with store.begin() as conn:
        result = await conn.execute(_statement(sql), bound)
        rowcount = result.rowcount
    logger.debug(f'Executed query with {len(params) if params else 0} parameters: {sql[:60]}...')
    return rowcount


async def query_single_record(store: 'RecordStore', record_type: type[T], sql: str,
                              params: SqlParams | None = None) -> T | None:
    """Execute a query and return one record, or None if no row matched.

    Raises ValidationError if the query returns more than one row.
    """
    rows = await fetch_rows(store, sql, params)
    if not rows:
        return None
    if len(rows) > 1:
        raise ValidationError(f'Expected at most one row, got {len(rows)}')
    return record_from_row(record_type, rows[0], store.registry)


async def query_many_records(store: 'RecordStore', record_type: type[T], sql: str,
                             params: SqlParams | None = None) -> list[T]:
    """Execute a query and return every row as a record.
    """
    rows = await fetch_rows(store, sql, params)
    return [record_from_row(record_type, row, store.registry) for row in rows]
