"""GeoJSON coordinate trees.

A geometry's ``type`` fixes how deeply its coordinate array nests, so the
raw arrays are parsed once into a small tagged tree (``Position`` leaves
under ``Nested`` branches) and every later walk dispatches on the tag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Union

from pyproj import CRS, Transformer

from assembly_map.common.errors import InputError

WGS84_EPSG = 4326

COORDINATE_DEPTH = {
    "Point": 0,
    "MultiPoint": 1,
    "LineString": 1,
    "Polygon": 2,
    "MultiLineString": 2,
    "MultiPolygon": 3,
}


@dataclass(frozen=True)
class Position:
    lon: float
    lat: float


@dataclass(frozen=True)
class Nested:
    children: tuple["GeometryNode", ...]


GeometryNode = Union[Position, Nested]


def _parse_position(raw: Any) -> Position:
    try:
        lon, lat = raw[0], raw[1]
        return Position(lon=float(lon), lat=float(lat))
    except (TypeError, ValueError, IndexError, KeyError) as exc:
        raise InputError(f"Malformed coordinate pair: {raw!r}") from exc


def _parse_coordinates(raw: Any, depth: int) -> GeometryNode:
    if depth == 0:
        return _parse_position(raw)
    if not isinstance(raw, list):
        raise InputError(f"Expected a coordinate array, got {type(raw).__name__}")
    return Nested(children=tuple(_parse_coordinates(child, depth - 1) for child in raw))


def geometry_tree(geometry: dict[str, Any] | None) -> GeometryNode | None:
    if not geometry:
        return None
    geometry_type = geometry.get("type")
    if geometry_type == "GeometryCollection":
        members = [geometry_tree(member) for member in geometry.get("geometries") or []]
        return Nested(children=tuple(member for member in members if member is not None))
    depth = COORDINATE_DEPTH.get(geometry_type)
    if depth is None:
        raise InputError(f"Unsupported geometry type: {geometry_type!r}")
    return _parse_coordinates(geometry.get("coordinates"), depth)


def iter_positions(node: GeometryNode | None) -> Iterator[Position]:
    if node is None:
        return
    stack: list[GeometryNode] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Position):
            yield current
        else:
            stack.extend(reversed(current.children))


def build_transformer(source_epsg: int | None) -> Transformer | None:
    if source_epsg is None or int(source_epsg) == WGS84_EPSG:
        return None
    try:
        return Transformer.from_crs(CRS.from_epsg(int(source_epsg)), CRS.from_epsg(WGS84_EPSG), always_xy=True)
    except Exception as exc:
        raise InputError(f"Cannot build transformer from EPSG:{source_epsg}") from exc


def _reproject_coordinates(raw: Any, depth: int, transformer: Transformer) -> list:
    if depth == 0:
        position = _parse_position(raw)
        lon, lat = transformer.transform(position.lon, position.lat)
        return [lon, lat]
    return [_reproject_coordinates(child, depth - 1, transformer) for child in raw]


def reproject_geometry(geometry: dict[str, Any] | None, transformer: Transformer | None) -> dict[str, Any] | None:
    if not geometry or transformer is None:
        return geometry
    geometry_type = geometry.get("type")
    if geometry_type == "GeometryCollection":
        return {
            **geometry,
            "geometries": [reproject_geometry(member, transformer) for member in geometry.get("geometries") or []],
        }
    depth = COORDINATE_DEPTH.get(geometry_type)
    if depth is None:
        raise InputError(f"Unsupported geometry type: {geometry_type!r}")
    return {**geometry, "coordinates": _reproject_coordinates(geometry.get("coordinates"), depth, transformer)}
