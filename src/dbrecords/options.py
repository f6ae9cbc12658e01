"""
Connection options read from the process environment.

The environment is read once, when this module is imported, into the
module-level ``settings`` object. Pass an explicit ``DatabaseOptions`` to
``RecordStore.from_options`` to use other values.
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    'DatabaseOptions',
    'settings',
]


class DatabaseOptions(BaseSettings):
    """Options

    ``connection_string`` is a SQLAlchemy URL, read from ``CONNECTION_STRING``.
    Supported backends: `postgresql` (psycopg), `sqlite` (aiosqlite).

    Connection pooling options:
    - use_pool: Whether to use connection pooling (default: False)
    - pool_max_connections: Maximum connections in pool (default: 5)
    - pool_max_idle_time: Maximum seconds a connection can be idle (default: 300)
    - pool_wait_timeout: Maximum seconds to wait for a connection (default: 30)
    """
    model_config = SettingsConfigDict(
        env_prefix='DB_',
        extra='ignore',
        frozen=True,
    )

    connection_string: str | None = Field(
        default=None,
        validation_alias=AliasChoices('CONNECTION_STRING', 'connection_string'))
    echo: bool = False
    use_pool: bool = False
    pool_max_connections: int = Field(default=5, ge=1)
    pool_max_idle_time: int = Field(default=300, ge=0)
    pool_wait_timeout: int = Field(default=30, ge=0)


settings = DatabaseOptions()
