"""
CRUD data-mapper for dataclass records over PostgreSQL and SQLite.

Record fields are upper-camel-case (``UserName``) and map onto snake_case
columns (``user_name``). All operations are coroutines and can be called
either as:
- Module functions: await dbrecords.load_record(store, User, 'users', 'Id', 1)
- RecordStore methods: await store.load(User, 'users', 'Id', 1)
"""
__version__ = '0.1.0'

from dbrecords.connection import RecordStore, dispose_all_engines
from dbrecords.data import create_record, delete_record, load_record
from dbrecords.data import update_record
from dbrecords.exceptions import ConnectionFailure, CreationError, DatabaseError
from dbrecords.exceptions import DbConnectionError, DeletionError, IntegrityError
from dbrecords.exceptions import OperationalError, ProgrammingError
from dbrecords.exceptions import TypeConversionError, UniqueViolation
from dbrecords.exceptions import UpdateError, ValidationError, ZeroRowsAffected
from dbrecords.naming import to_snake_case
from dbrecords.options import DatabaseOptions
from dbrecords.query import execute, query_many_records, query_single_record
from dbrecords.schema import column_names, field_names, record_params
from dbrecords.sql import delete_command, insert_command, select_command
from dbrecords.sql import update_command
from dbrecords.types import AdapterRegistry, OptionalAdapter, TypeAdapter
from dbrecords.types import default_registry

__all__ = [
    'RecordStore',
    'DatabaseOptions',
    'dispose_all_engines',
    'execute',
    'query_single_record',
    'query_many_records',
    'create_record',
    'load_record',
    'update_record',
    'delete_record',
    'to_snake_case',
    'field_names',
    'column_names',
    'record_params',
    'insert_command',
    'select_command',
    'update_command',
    'delete_command',
    'AdapterRegistry',
    'TypeAdapter',
    'OptionalAdapter',
    'default_registry',
    'DatabaseError',
    'ConnectionFailure',
    'ValidationError',
    'TypeConversionError',
    'ZeroRowsAffected',
    'CreationError',
    'UpdateError',
    'DeletionError',
    'DbConnectionError',
    'IntegrityError',
    'ProgrammingError',
    'OperationalError',
    'UniqueViolation',
]
