"""
Database-specific exception classes.
"""
import sqlite3

import psycopg
import sqlalchemy as sa


class DatabaseError(Exception):
    """Base class for all dbrecords errors.
    """


class ConnectionFailure(DatabaseError):
    """Error establishing a database connection or locating its target.
    """


class TypeConversionError(DatabaseError):
    """Error converting values between Python and the database.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class ZeroRowsAffected(DatabaseError):
    """A write statement completed without touching any row.
    """

    def __init__(self, message: str, table: str | None = None,
                 sql: str | None = None) -> None:
        super().__init__(message)
        self.table = table
        self.sql = sql


class CreationError(ZeroRowsAffected):
    """INSERT reported zero affected rows.
    """


class UpdateError(ZeroRowsAffected):
    """UPDATE reported zero affected rows.
    """


class DeletionError(ZeroRowsAffected):
    """DELETE reported zero affected rows.
    """


DbConnectionError = (
    sa.exc.OperationalError,
    sa.exc.InterfaceError,
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    ConnectionFailure,
    )

IntegrityError = (
    sa.exc.IntegrityError,
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    sa.exc.ProgrammingError,
    psycopg.ProgrammingError,
    sqlite3.ProgrammingError,
    )

OperationalError = (
    sa.exc.OperationalError,
    psycopg.OperationalError,
    sqlite3.OperationalError,
    )

UniqueViolation = (
    psycopg.errors.UniqueViolation,
    sqlite3.IntegrityError,
    )


def unique_violation(exc: BaseException) -> bool:
    """Check whether an error raised through SQLAlchemy is a unique violation.

    SQLAlchemy wraps driver errors; the driver error is kept on ``orig``.
    """
    orig = getattr(exc, 'orig', exc)
    if isinstance(orig, psycopg.errors.UniqueViolation):
        return True
    return isinstance(orig, sqlite3.IntegrityError) and 'UNIQUE' in str(orig)
