"""
Type adapters between record field values and the database client.

This module provides:
- TypeAdapter: base converter with a write path (dump) and a read path (load)
- OptionalAdapter: absent/present values of one underlying kind
- AdapterRegistry: adapters keyed by Python type, resolved per field annotation
- default_registry: the standard adapter set

Registries are plain objects. Build one at startup and hand it to
``RecordStore``; nothing is registered globally.

Type conversion principles:
1. Python → Database: ``dump`` runs on every bound parameter
2. Database → Python: ``load`` runs on every decoded column value
3. Values whose type has no adapter pass through untouched
"""
import datetime
import decimal
import logging
import numbers
import types
import typing
import uuid
from collections.abc import Callable
from typing import Any

import dateutil.parser
import pandas as pd

from dbrecords.exceptions import TypeConversionError

__all__ = [
    'TypeAdapter',
    'OptionalAdapter',
    'AdapterRegistry',
    'default_registry',
    'is_null',
    'strip_optional',
]

logger = logging.getLogger(__name__)

OPTIONAL_KINDS: tuple[type, ...] = (datetime.datetime, str, bytes, int, uuid.UUID)


def is_null(value: Any) -> bool:
    """Check for None or a null marker (``pd.NA``, ``pd.NaT``, NaN).

    >>> is_null(None), is_null(pd.NaT), is_null(float('nan')), is_null(0)
    (True, True, True, False)
    """
    if value is None:
        return True
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


def strip_optional(annotation: Any) -> Any:
    """Return ``X`` for ``X | None`` / ``Optional[X]``, else the annotation.

    >>> strip_optional(int | None)
    <class 'int'>
    >>> strip_optional(str)
    <class 'str'>
    """
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


class TypeAdapter:
    """Base class for type adapters.

    The base adapter is a passthrough in both directions.
    """

    python_type: type = object

    def dump(self, value: Any, dialect: str = 'postgresql') -> Any:
        """Convert a Python value into a bind parameter for `dialect`.
        """
        return value

    def load(self, value: Any) -> Any:
        """Convert a decoded column value into a Python value.
        """
        return value

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.python_type.__name__})'


# Read path coercions: backend value → kind

def _to_datetime(value: Any) -> datetime.datetime:
    if isinstance(value, bytes):
        value = value.decode()
    if isinstance(value, str):
        return dateutil.parser.isoparse(value)
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    raise TypeError(f'cannot read {type(value).__name__} as datetime')


def _to_str(value: Any) -> str:
    if isinstance(value, uuid.UUID):
        return str(value)
    raise TypeError(f'cannot read {type(value).__name__} as str')


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, memoryview | bytearray):
        return bytes(value)
    raise TypeError(f'cannot read {type(value).__name__} as bytes')


def _to_int(value: Any) -> int:
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, float | decimal.Decimal) and value == int(value):
        return int(value)
    raise TypeError(f'cannot read {type(value).__name__} {value!r} as int')


def _to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, str):
        return uuid.UUID(value)
    if isinstance(value, bytes | memoryview) and len(value) == 16:
        return uuid.UUID(bytes=bytes(value))
    raise TypeError(f'cannot read {type(value).__name__} as UUID')


_COERCIONS: dict[type, Callable[[Any], Any]] = {
    datetime.datetime: _to_datetime,
    str: _to_str,
    bytes: _to_bytes,
    int: _to_int,
    uuid.UUID: _to_uuid,
}

# SQLite has no native storage for these kinds
_SQLITE_TEXT_KINDS = (datetime.datetime, uuid.UUID)


class OptionalAdapter(TypeAdapter):
    """Absent/present values of one underlying kind.

    Writing: absent (None) → NULL, present → the underlying value.
    Reading: NULL or a null marker → None, anything else → the value as
    `python_type`, coerced from the backend's native representation when it
    differs (ISO text for datetimes on SQLite, for example).
    """

    def __init__(self, python_type: type,
                 coerce: Callable[[Any], Any] | None = None) -> None:
        self.python_type = python_type
        self.coerce = coerce or _COERCIONS.get(python_type, python_type)

    def dump(self, value: Any, dialect: str = 'postgresql') -> Any:
        if value is None:
            return None
        if dialect == 'sqlite' and isinstance(value, _SQLITE_TEXT_KINDS):
            return value.isoformat() if isinstance(value, datetime.datetime) else str(value)
        return value

    def load(self, value: Any) -> Any:
        if is_null(value):
            return None
        if isinstance(value, self.python_type) and not (
                self.python_type is int and isinstance(value, bool)):
            return value
        try:
            return self.coerce(value)
        except (TypeError, ValueError, OverflowError) as e:
            raise TypeConversionError(
                f'Cannot read {type(value).__name__} value as {self.python_type.__name__}: {e}'
            ) from e


class AdapterRegistry:
    """Registry of type adapters keyed by Python type.

    An annotation resolves to the adapter registered for it with any
    ``| None`` stripped, so ``int`` and ``int | None`` share one adapter.
    Annotations match exactly (a ``bool`` field is not an ``int`` field);
    runtime values of ad hoc parameters resolve through their MRO.
    """

    def __init__(self) -> None:
        self._adapters: dict[type, TypeAdapter] = {}

    def register(self, python_type: type, adapter: TypeAdapter) -> None:
        """Register `adapter` for `python_type`, replacing any previous one.
        """
        self._adapters[python_type] = adapter
        logger.debug(f'Registered {adapter!r} for {python_type.__name__}')

    def __contains__(self, python_type: type) -> bool:
        return python_type in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    def resolve(self, annotation: Any) -> TypeAdapter | None:
        """Find the adapter for a field annotation.
        """
        target = strip_optional(annotation)
        if not isinstance(target, type):
            return None
        return self._adapters.get(target)

    def resolve_value(self, value: Any) -> TypeAdapter | None:
        """Find the adapter for a runtime value via its type's MRO.
        """
        for base in type(value).__mro__:
            if base in self._adapters:
                return self._adapters[base]
        return None

    def dump(self, annotation: Any, value: Any, dialect: str = 'postgresql') -> Any:
        """Write path for a field value.
        """
        adapter = self.resolve(annotation)
        if adapter is None:
            return value
        return adapter.dump(value, dialect)

    def load(self, annotation: Any, value: Any) -> Any:
        """Read path for a column value.
        """
        adapter = self.resolve(annotation)
        if adapter is None:
            return value
        return adapter.load(value)

    def dump_params(self, params: dict[str, Any] | None,
                    dialect: str = 'postgresql') -> dict[str, Any]:
        """Write path for ad hoc parameters, resolved by runtime type.
        """
        if not params:
            return {}
        dumped = {}
        for name, value in params.items():
            adapter = None if value is None else self.resolve_value(value)
            dumped[name] = value if adapter is None else adapter.dump(value, dialect)
        return dumped


def default_registry() -> AdapterRegistry:
    """Build a registry with the optional adapters and the point adapter.
    """
    # Import here to avoid circular import dependencies
    from dbrecords.geometry import PointAdapter

    registry = AdapterRegistry()
    for kind in OPTIONAL_KINDS:
        registry.register(kind, OptionalAdapter(kind))
    point_adapter = PointAdapter()
    registry.register(point_adapter.python_type, point_adapter)
    return registry


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
