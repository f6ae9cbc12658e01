"""
Geometry point adapter.

Points are ``geojson.Point`` objects in Python. They are written as EWKT
text (``SRID=4326;POINT(lon lat)``), which PostGIS accepts as input for both
``geometry`` and ``geography`` columns and which SQLite stores as plain text.

Reading is a checked conversion. Accepted representations:

- ``geojson.Point`` instances
- GeoJSON mappings or JSON text with ``"type": "Point"``
- WKT / EWKT text, e.g. ``POINT(1 2)``, ``SRID=4326;POINT Z (1 2 3)``
- (E)WKB bytes or hex text, the default output of PostGIS columns

Anything else raises ``TypeConversionError``.
"""
import json
import logging
import math
import re
import struct
from collections.abc import Mapping
from typing import Any

import geojson

from dbrecords.exceptions import TypeConversionError
from dbrecords.types import TypeAdapter, is_null

__all__ = ['PointAdapter', 'point_from_wkb', 'point_from_wkt']

logger = logging.getLogger(__name__)

WGS84 = 4326

_WKT_POINT = re.compile(r"""
    ^\s*(?:SRID=(?P<srid>\d+)\s*;)?
    \s*POINT\s*(?P<dims>ZM|Z|M)?\s*
    \(\s*(?P<coords>[^()]*?)\s*\)\s*$
""", re.IGNORECASE | re.VERBOSE)

_HEX = re.compile(r'^(?:[0-9A-Fa-f]{2})+$')

# EWKB type flags
_WKB_Z = 0x80000000
_WKB_M = 0x40000000
_WKB_SRID = 0x20000000
_WKB_POINT = 1


def _point(coordinates: list[float]) -> geojson.Point:
    if len(coordinates) not in {2, 3} or any(math.isnan(c) for c in coordinates):
        raise TypeConversionError(f'Invalid point coordinates: {coordinates!r}')
    return geojson.Point(tuple(coordinates))


def point_from_wkt(text: str) -> geojson.Point:
    """Decode WKT or EWKT point text.

    >>> point_from_wkt('SRID=4326;POINT(13.4 52.5)')
    {"coordinates": [13.4, 52.5], "type": "Point"}
    """
    match = _WKT_POINT.match(text)
    if match is None:
        raise TypeConversionError(f'Not a WKT point: {text[:60]!r}')
    try:
        values = [float(v) for v in match.group('coords').split()]
    except ValueError as e:
        raise TypeConversionError(f'Invalid WKT point: {text[:60]!r}') from e

    dims = (match.group('dims') or '').upper()
    if not dims and len(values) == 3:
        dims = 'Z'
    expected = 2 + len(dims)
    if len(values) != expected:
        raise TypeConversionError(f'Expected {expected} coordinates in {text[:60]!r}')
    if 'M' in dims:
        values = values[:2] if dims == 'M' else values[:3]
    return _point(values)


def point_from_wkb(data: bytes) -> geojson.Point:
    """Decode ISO WKB or PostGIS EWKB of a point.
    """
    try:
        order = {0: '>', 1: '<'}[data[0]]
        (wkb_type,) = struct.unpack_from(f'{order}I', data, 1)
    except (IndexError, KeyError, struct.error) as e:
        raise TypeConversionError('Invalid WKB header') from e

    offset = 5
    base = wkb_type & 0x0FFFFFFF
    has_z = bool(wkb_type & _WKB_Z) or base // 1000 in {1, 3}
    has_m = bool(wkb_type & _WKB_M) or base // 1000 in {2, 3}
    if base % 1000 != _WKB_POINT:
        raise TypeConversionError(f'WKB geometry type {base} is not a point')
    if wkb_type & _WKB_SRID:
        offset += 4

    count = 2 + has_z + has_m
    try:
        values = list(struct.unpack_from(f'{order}{count}d', data, offset))
    except struct.error as e:
        raise TypeConversionError('Truncated WKB point') from e
    return _point(values[:3] if has_z else values[:2])


class PointAdapter(TypeAdapter):
    """Adapter between ``geojson.Point`` and the database representation.
    """

    python_type = geojson.Point

    def __init__(self, srid: int = WGS84) -> None:
        self.srid = srid

    def dump(self, value: Any, dialect: str = 'postgresql') -> str | None:
        if value is None:
            return None
        if not isinstance(value, geojson.Point):
            raise TypeConversionError(f'Expected geojson.Point, got {type(value).__name__}')
        coords = ' '.join(repr(float(c)) for c in value['coordinates'])
        return f'SRID={self.srid};POINT({coords})'

    def load(self, value: Any) -> geojson.Point | None:
        if is_null(value):
            return None
        if isinstance(value, geojson.Point):
            return value
        if isinstance(value, memoryview | bytearray):
            value = bytes(value)
        if isinstance(value, bytes):
            return point_from_wkb(value)
        if isinstance(value, Mapping):
            return self._from_mapping(value)
        if isinstance(value, str):
            text = value.strip()
            if text.startswith('{'):
                try:
                    return self._from_mapping(json.loads(text))
                except json.JSONDecodeError as e:
                    raise TypeConversionError('Invalid GeoJSON text') from e
            if _HEX.match(text):
                return point_from_wkb(bytes.fromhex(text))
            return point_from_wkt(text)
        raise TypeConversionError(f'Cannot read {type(value).__name__} value as a point')

    @staticmethod
    def _from_mapping(value: Mapping) -> geojson.Point:
        if value.get('type') != 'Point':
            raise TypeConversionError(f"GeoJSON type {value.get('type')!r} is not a point")
        try:
            coordinates = [float(c) for c in value['coordinates']]
        except (KeyError, TypeError, ValueError) as e:
            raise TypeConversionError('Invalid GeoJSON point coordinates') from e
        return _point(coordinates)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
