"""
Database connection handling with SQLAlchemy's asyncio engine.

This module provides:
1. URL normalization from DatabaseOptions (async driver selection)
2. Engine creation and management through a thread-safe registry
3. Scoped connection acquisition for reads and transactional writes
4. The `RecordStore` class bundling an engine with an adapter registry

SQLAlchemy is used exclusively for connection management and pooling. Every
record operation acquires its own connection and releases it on exit,
whether the operation succeeds or fails.
"""
import logging
import threading
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any, Self, TypeVar

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from dbrecords import data, query
from dbrecords.exceptions import ConnectionFailure
from dbrecords.options import DatabaseOptions, settings
from dbrecords.types import AdapterRegistry, default_registry

__all__ = [
    'RecordStore',
    'create_url_from_options',
    'is_memory_sqlite',
    'get_engine_for_options',
    'dispose_engine',
    'dispose_all_engines',
    'acquire_connection',
    'transaction_context',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')

ASYNC_DRIVERS: dict[str, str] = {
    'postgres': 'postgresql+psycopg',
    'postgresql': 'postgresql+psycopg',
    'sqlite': 'sqlite+aiosqlite',
}

SUPPORTED_BACKENDS = {'postgresql', 'sqlite'}

_engine_registry: dict[str, AsyncEngine] = {}
_engine_registry_lock = threading.RLock()


def create_url_from_options(options: DatabaseOptions,
                            url_parser: Callable[[str], sa.URL] = sa.make_url) -> sa.URL:
    """Convert DatabaseOptions to a SQLAlchemy URL with an async driver.

    ``postgresql://`` and ``postgres://`` select psycopg, ``sqlite://``
    selects aiosqlite. URLs naming a driver explicitly are kept as given.
    """
    if not options.connection_string:
        raise ConnectionFailure('No connection string configured (set CONNECTION_STRING)')

    url = url_parser(options.connection_string)
    url = url.set(drivername=ASYNC_DRIVERS.get(url.drivername, url.drivername))

    if url.get_backend_name() not in SUPPORTED_BACKENDS:
        raise ValueError(f'Unsupported database type: {url.get_backend_name()}')
    return url


def is_memory_sqlite(url: sa.URL) -> bool:
    """Check for an in-memory SQLite database, which lives inside one connection.

    >>> is_memory_sqlite(sa.make_url('sqlite+aiosqlite://'))
    True
    >>> is_memory_sqlite(sa.make_url('sqlite+aiosqlite:///records.db'))
    False
    """
    if url.get_backend_name() != 'sqlite':
        return False
    database = url.database or ''
    return database in {'', ':memory:'} or url.query.get('mode') == 'memory'


def get_engine_for_options(options: DatabaseOptions,
                           engine_factory: Callable[..., AsyncEngine] = create_async_engine,
                           **kwargs: Any) -> AsyncEngine:
    """Get or create an async SQLAlchemy engine for the given options.

    Engines are cached per URL, pool settings, `echo` and extra engine
    `kwargs`. In-memory SQLite keeps the pool SQLAlchemy picks for it
    (`StaticPool`), since any other pool would open a new, empty database
    per connection.
    """
    url = create_url_from_options(options)
    key = (f'{url.render_as_string(hide_password=False)}_{options.use_pool}_'
           f'{options.pool_max_connections}_{options.pool_max_idle_time}_'
           f'{options.pool_wait_timeout}_{options.echo}_{sorted(kwargs.items())!r}')

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {url.get_backend_name()}')
            return _engine_registry[key]

        engine_kwargs: dict[str, Any] = {'echo': options.echo}

        if is_memory_sqlite(url):
            logger.debug('In-memory SQLite, keeping the dialect default pool')
        elif not options.use_pool:
            engine_kwargs['poolclass'] = NullPool
        else:
            engine_kwargs['pool_size'] = options.pool_max_connections
            engine_kwargs['pool_recycle'] = options.pool_max_idle_time
            engine_kwargs['pool_timeout'] = options.pool_wait_timeout
            engine_kwargs['max_overflow'] = 10
            engine_kwargs['pool_pre_ping'] = True

        engine_kwargs.update(kwargs)

        engine = engine_factory(url, **engine_kwargs)
        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {url.get_backend_name()}')

        return engine


async def dispose_engine(engine: AsyncEngine) -> None:
    """Dispose `engine` and drop it from the registry.
    """
    with _engine_registry_lock:
        for key in [k for k, v in _engine_registry.items() if v is engine]:
            del _engine_registry[key]
    await engine.dispose()
    logger.debug(f'Disposed engine for {engine.dialect.name}')


async def dispose_all_engines() -> None:
    """Dispose all engines in the registry.
    """
    with _engine_registry_lock:
        engines = list(_engine_registry.values())
        _engine_registry.clear()
    for engine in engines:
        await engine.dispose()
    logger.debug('All database engines disposed')


@asynccontextmanager
async def acquire_connection(engine: AsyncEngine) -> AsyncIterator[AsyncConnection]:
    """Acquire a connection for reads; it is closed on every exit path.
    """
    async with engine.connect() as conn:
        yield conn


@asynccontextmanager
async def transaction_context(engine: AsyncEngine) -> AsyncIterator[AsyncConnection]:
    """Acquire a connection inside a transaction for writes.

    The transaction commits when the block exits normally and rolls back
    when it raises; the connection is closed either way.
    """
    async with engine.begin() as conn:
        yield conn


class RecordStore:
    """CRUD access to dataclass records through one engine.

    Bundles the engine every operation draws its connections from with the
    adapter registry applied at parameter binding and row decoding. The
    store holds no connection between calls.

    Usage:
        store = RecordStore.from_url('postgresql://app@db/app')
        await store.create('users', User(Id=1, UserName='ann'))
        user = await store.load(User, 'users', 'Id', 1)
    """

    def __init__(self, engine: AsyncEngine, registry: AdapterRegistry | None = None) -> None:
        self.engine = engine
        self.registry = registry if registry is not None else default_registry()

    @classmethod
    def from_options(cls, options: DatabaseOptions | None = None,
                     registry: AdapterRegistry | None = None) -> Self:
        """Create a store from options, by default those read from the environment.
        """
        options = options if options is not None else settings
        return cls(get_engine_for_options(options), registry)

    @classmethod
    def from_url(cls, url: str, registry: AdapterRegistry | None = None,
                 **kw: Any) -> Self:
        """Create a store for a connection URL; `kw` overrides other options.
        """
        options = DatabaseOptions(connection_string=url, **kw)
        return cls.from_options(options, registry)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None,
                        exc_tb: Any | None) -> None:
        await self.dispose()

    def __repr__(self) -> str:
        return f'RecordStore({self.engine.url.render_as_string(hide_password=True)})'

    @property
    def dialect(self) -> str:
        """Return the dialect name ('postgresql' or 'sqlite')."""
        return self.engine.dialect.name

    def connect(self):
        """Acquire a read connection, see `acquire_connection`.
        """
        return acquire_connection(self.engine)

    def begin(self):
        """Acquire a write connection in a transaction, see `transaction_context`.
        """
        return transaction_context(self.engine)

    async def dispose(self) -> None:
        """Close pooled connections and drop the engine from the registry.
        """
        await dispose_engine(self.engine)

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> int:
        """Execute a write statement and return the affected row count.
        """
        return await query.execute(self, sql, params)

    async def query_single(self, record_type: type[T], sql: str,
                           params: dict[str, Any] | None = None) -> T | None:
        """Execute a query expected to return at most one row.
        """
        return await query.query_single_record(self, record_type, sql, params)

    async def query_many(self, record_type: type[T], sql: str,
                         params: dict[str, Any] | None = None) -> list[T]:
        """Execute a query and return every row as a record.
        """
        return await query.query_many_records(self, record_type, sql, params)

    async def create(self, table: str, record: Any) -> None:
        """Insert `record` into `table`.
        """
        await data.create_record(self, table, record)

    async def load(self, record_type: type[T], table: str, key_field: str,
                   key_value: Any) -> T | None:
        """Load the record whose `key_field` equals `key_value`.
        """
        return await data.load_record(self, record_type, table, key_field, key_value)

    async def update(self, table: str, key_field: str, record: Any) -> None:
        """Update the row of `table` identified by the record's `key_field`.
        """
        await data.update_record(self, table, key_field, record)

    async def delete(self, table: str, key_field: str, key_value: Any) -> None:
        """Delete the row whose `key_field` equals `key_value`.
        """
        await data.delete_record(self, table, key_field, key_value)
