"""
Record type reflection.

Record types are dataclasses. Their declared fields are the field
descriptors everything else is derived from:

- field_names / column_names: sorted field and snake_case column names
- columns_by_field: (field, column) pairs used to render statements
- record_params: field name to value mapping of an instance (write path)
- record_from_row: build a record from a row keyed by column name (read path)

Reflection results are cached per type; a dataclass cannot change its
fields after class creation, so the cache never goes stale.
"""
import dataclasses
import logging
import typing
from collections.abc import Mapping
from functools import cache
from typing import TYPE_CHECKING, Any, TypeVar

from dbrecords.exceptions import ValidationError
from dbrecords.naming import to_snake_case

if TYPE_CHECKING:
    from dbrecords.types import AdapterRegistry

__all__ = [
    'field_names',
    'column_names',
    'columns_by_field',
    'field_types',
    'record_params',
    'record_from_row',
]

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _record_type(record: Any) -> type:
    record_type = record if isinstance(record, type) else type(record)
    if not dataclasses.is_dataclass(record_type):
        raise ValidationError(f'{record_type.__name__} is not a dataclass record type')
    return record_type


@cache
def _fields(record_type: type) -> tuple[dataclasses.Field, ...]:
    return dataclasses.fields(record_type)


def field_names(record_type: type) -> list[str]:
    """Declared field names of `record_type`, sorted ascending.
    """
    return sorted(f.name for f in _fields(_record_type(record_type)))


def column_names(record_type: type) -> list[str]:
    """Column names of `record_type`, sorted ascending.
    """
    return sorted(to_snake_case(name) for name in field_names(record_type))


def columns_by_field(record_type: type) -> list[tuple[str, str]]:
    """(field, column) pairs of `record_type` in sorted field order.
    """
    return [(name, to_snake_case(name)) for name in field_names(record_type)]


@cache
def field_types(record_type: type) -> dict[str, Any]:
    """Resolved annotation of every field, keyed by field name.

    String annotations (``from __future__ import annotations``) are resolved
    against the record's module.
    """
    record_type = _record_type(record_type)
    hints = typing.get_type_hints(record_type)
    return {f.name: hints.get(f.name, f.type) for f in _fields(record_type)}


def record_params(record: Any, registry: 'AdapterRegistry | None' = None,
                  dialect: str = 'postgresql') -> dict[str, Any]:
    """Map every field name of `record` to its current value.

    With a `registry`, each value is dumped through the adapter registered
    for the field's annotation.
    """
    record_type = _record_type(record)
    params = {f.name: getattr(record, f.name) for f in _fields(record_type)}
    if registry is None:
        return params

    types = field_types(record_type)
    return {name: registry.dump(types[name], value, dialect)
            for name, value in params.items()}


def record_from_row(record_type: type[T], row: Mapping[str, Any],
                    registry: 'AdapterRegistry | None' = None) -> T:
    """Build a `record_type` instance from a row keyed by column name.

    Columns match a field when they equal its snake_case column name or the
    field name itself. Unmatched columns are ignored. Fields the row does not
    cover fall back to the dataclass defaults.
    """
    record_type = _record_type(record_type)
    init_fields = [f.name for f in _fields(record_type) if f.init]

    lookup = {}
    for name in init_fields:
        lookup[to_snake_case(name)] = name
        lookup[name] = name

    types = field_types(record_type)
    values = {}
    for column, value in row.items():
        name = lookup.get(column)
        if name is None:
            continue
        if registry is not None:
            value = registry.load(types[name], value)
        values[name] = value

    return record_type(**values)
