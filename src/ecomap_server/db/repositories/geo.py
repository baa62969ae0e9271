"""
ecomap_server.db.repositories.geo

Spatial lookups against the road network and municipality boundaries.

Both tables carry PostGIS geometry columns that are loaded out of band, so the lookups are
plain SQL and only run on PostgreSQL. On other backends nothing is ever found.
"""

from __future__ import annotations

import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ecomap_server.domain.errors import MunicipalityNotFoundError, RoadNotFoundError
from ecomap_server.domain.geojson import Point, geometry_to_geojson
from ecomap_server.domain.models import Municipality, Road

# Edges within this distance (in the geometry's units) of the point are candidates.
ROAD_SEARCH_TOLERANCE = 0.5
# OSM classes up to this value are motorways, trunk and primary roads; nothing is placed on them.
ROAD_MIN_CLASS = 20

ROAD_CANDIDATES = f"SELECT id, geom_way AS geom FROM road_network WHERE clazz > {ROAD_MIN_CLASS}"

_ROAD_BY_GEOMETRY = text(
    f"""
    SELECT rn.id, rn.osm_name
    FROM pgr_findCloseEdges(
        $${ROAD_CANDIDATES}$$,
        ST_GeomFromGeoJSON(:geojson),
        :tolerance
    ) AS ce
    INNER JOIN road_network AS rn ON ce.edge_id = rn.id
    ORDER BY ce.distance
    LIMIT 1
    """
)

_MUNICIPALITY_BY_GEOMETRY = text(
    """
    SELECT id, name
    FROM municipalities
    WHERE ST_Within(ST_GeomFromGeoJSON(:geojson), geom)
    LIMIT 1
    """
)


class GeoRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _spatial(self) -> bool:
        bind = self._session.bind
        return bind is not None and bind.dialect.name == "postgresql"

    async def road_by_geometry(self, point: Point) -> Road:
        if not self._spatial():
            raise RoadNotFoundError()
        result = await self._session.execute(
            _ROAD_BY_GEOMETRY,
            {"geojson": json.dumps(geometry_to_geojson(point)), "tolerance": ROAD_SEARCH_TOLERANCE},
        )
        row = result.one_or_none()
        if row is None:
            raise RoadNotFoundError()
        return Road(id=row.id, name=row.osm_name)

    async def municipality_by_geometry(self, point: Point) -> Municipality:
        if not self._spatial():
            raise MunicipalityNotFoundError()
        result = await self._session.execute(
            _MUNICIPALITY_BY_GEOMETRY, {"geojson": json.dumps(geometry_to_geojson(point))}
        )
        row = result.one_or_none()
        if row is None:
            raise MunicipalityNotFoundError()
        return Municipality(id=row.id, name=row.name)
