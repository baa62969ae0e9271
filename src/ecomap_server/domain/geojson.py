"""
ecomap_server.domain.geojson

GeoJSON geometry types.

Responsibilities:
- Model geometries as a closed set of variants (`Point`, `LineString`).
- Convert between the variants and GeoJSON mappings.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, assert_never

from ecomap_server.domain.errors import FieldValueInvalidError

FIELD_GEOJSON = "geoJson"


@dataclass(frozen=True, slots=True)
class Point:
    longitude: float
    latitude: float

    def valid(self) -> bool:
        return -180.0 <= self.longitude <= 180.0 and -90.0 <= self.latitude <= 90.0


@dataclass(frozen=True, slots=True)
class LineString:
    coordinates: tuple[tuple[float, float], ...]


Geometry = Point | LineString


@dataclass(frozen=True, slots=True)
class Feature:
    geometry: Geometry
    properties: dict[str, Any] = field(default_factory=dict)


def geometry_to_geojson(geometry: Geometry) -> dict[str, Any]:
    match geometry:
        case Point(longitude=lon, latitude=lat):
            return {"type": "Point", "coordinates": [lon, lat]}
        case LineString(coordinates=coords):
            return {"type": "LineString", "coordinates": [list(c) for c in coords]}
        case _:
            assert_never(geometry)


def geometry_from_geojson(raw: Mapping[str, Any]) -> Geometry:
    """
    Parse a GeoJSON geometry (or a Feature wrapping one).

    Raises FieldValueInvalidError for unsupported types or malformed coordinates.
    """

    if raw.get("type") == "Feature":
        inner = raw.get("geometry")
        if not isinstance(inner, Mapping):
            raise FieldValueInvalidError(FIELD_GEOJSON)
        raw = inner

    coords = raw.get("coordinates")
    try:
        match raw.get("type"):
            case "Point":
                lon, lat = coords  # type: ignore[misc]
                return Point(longitude=float(lon), latitude=float(lat))
            case "LineString":
                return LineString(
                    coordinates=tuple((float(lon), float(lat)) for lon, lat in coords)  # type: ignore[union-attr]
                )
            case _:
                raise FieldValueInvalidError(FIELD_GEOJSON)
    except (TypeError, ValueError) as e:
        raise FieldValueInvalidError(FIELD_GEOJSON) from e


def point_from_geojson(raw: Mapping[str, Any]) -> Point:
    geometry = geometry_from_geojson(raw)
    match geometry:
        case Point():
            if not geometry.valid():
                raise FieldValueInvalidError(FIELD_GEOJSON)
            return geometry
        case LineString():
            raise FieldValueInvalidError(FIELD_GEOJSON)
        case _:
            assert_never(geometry)


# --- Module Notes -----------------------------------------------------------
# Located entities (containers, landfills, trucks, warehouses, employees) only accept `Point`;
# `LineString` is produced by road geometry reads.
