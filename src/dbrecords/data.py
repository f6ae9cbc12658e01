"""
Data operations for records (INSERT, SELECT by key, UPDATE, DELETE).

Each write runs in its own transaction and fails when the database reports
that no row was affected.
"""
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from dbrecords.exceptions import CreationError, DeletionError, UpdateError
from dbrecords.query import execute, query_single_record
from dbrecords.schema import record_params
from dbrecords.sql import delete_command, insert_command, select_command
from dbrecords.sql import update_command

if TYPE_CHECKING:
    from dbrecords.connection import RecordStore

__all__ = [
    'create_record',
    'load_record',
    'update_record',
    'delete_record',
]

T = TypeVar('T')

logger = logging.getLogger(__name__)


async def create_record(store: 'RecordStore', table: str, record: Any) -> None:
    """Insert `record` into `table`.

    Raises CreationError if no row was inserted.
    """
    sql = insert_command(type(record), table)
    params = record_params(record, store.registry, store.dialect)

    count = await execute(store, sql, params)
    if count == 0:
        raise CreationError(f'error creating record in {table}', table=table, sql=sql)
    logger.debug(f'Created {type(record).__name__} in {table}')


async def load_record(store: 'RecordStore', record_type: type[T], table: str,
                      key_field: str, key_value: Any) -> T | None:
    """Load the record of `table` whose `key_field` equals `key_value`.

    Returns None when no row matches.
    """
    sql = select_command(table, key_field)
    return await query_single_record(store, record_type, sql, {key_field: key_value})


async def update_record(store: 'RecordStore', table: str, key_field: str,
                        record: Any) -> None:
    """Update every column of the row identified by the record's `key_field`.

    Raises UpdateError if no row was updated.
    """
    sql = update_command(type(record), table, key_field)
    params = record_params(record, store.registry, store.dialect)

    count = await execute(store, sql, params)
    if count == 0:
        raise UpdateError(f'error updating record in {table}', table=table, sql=sql)
    logger.debug(f'Updated {count} row(s) in {table}')


async def delete_record(store: 'RecordStore', table: str, key_field: str,
                        key_value: Any) -> None:
    """Delete the row of `table` whose `key_field` equals `key_value`.

    Raises DeletionError if no row was deleted.
    """
    sql = delete_command(table, key_field)
    count = await execute(store, sql, {key_field: key_value})
    if count == 0:
        raise DeletionError(f'error deleting record from {table}', table=table, sql=sql)
    logger.debug(f'Deleted {count} row(s) from {table}')
