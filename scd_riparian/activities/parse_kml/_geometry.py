"""KML geometry → shapely conversion.

Handles ``Point``, ``LineString``, ``LinearRing``, ``Polygon`` (with
inner boundaries) and ``MultiGeometry``.  Homogeneous multi-geometries
collapse to ``MultiPoint`` / ``MultiLineString`` / ``MultiPolygon``;
mixed ones become a ``GeometryCollection``.  Altitude is dropped.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scd_riparian.activities.parse_kml._constants import GEOMETRY_TAGS
from scd_riparian.activities.parse_kml._validation import (
    KmlValidationError,
    validate_coordinates,
)

if TYPE_CHECKING:
    from lxml.etree import _Element
    from shapely.geometry.base import BaseGeometry

logger = logging.getLogger("scd_riparian.activities.parse_kml")


def local_name(elem: _Element) -> str:
    """Return the namespace-free tag name, or ``""`` for comments / PIs."""
    tag = elem.tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def child(elem: _Element, name: str) -> _Element | None:
    """Return the first direct child whose local name is *name*."""
    for sub in elem:
        if local_name(sub) == name:
            return sub
    return None


def children(elem: _Element, name: str) -> list[_Element]:
    """Return all direct children whose local name is *name*."""
    return [sub for sub in elem if local_name(sub) == name]


def child_text(elem: _Element, name: str) -> str:
    """Return the stripped text of the first *name* child, or ``""``."""
    sub = child(elem, name)
    if sub is None or sub.text is None:
        return ""
    return sub.text.strip()


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------


def parse_coordinates_text(text: str) -> list[tuple[float, float]]:
    """Parse KML coordinate text (``lon,lat[,alt] ...``) to ``(lon, lat)`` tuples.

    Raises:
        KmlValidationError: If a tuple has fewer than two numeric parts.
    """
    coords: list[tuple[float, float]] = []
    for token in text.split():
        parts = token.strip().split(",")
        if len(parts) < 2:
            msg = f"Malformed coordinate {token!r}: expected lon,lat[,alt]"
            raise KmlValidationError(msg)
        try:
            coords.append((float(parts[0]), float(parts[1])))
        except ValueError as exc:
            msg = f"Malformed coordinate {token!r}: cannot convert to float"
            raise KmlValidationError(msg) from exc
    return coords


def _element_coords(elem: _Element, placemark_name: str) -> list[tuple[float, float]]:
    coords = parse_coordinates_text(child_text(elem, "coordinates"))
    if not coords:
        msg = f"<{local_name(elem)}> has no coordinates in Placemark '{placemark_name}'"
        raise KmlValidationError(msg)
    validate_coordinates(coords, placemark_name)
    return coords


def _ring_coords(boundary: _Element | None, placemark_name: str) -> list[tuple[float, float]]:
    if boundary is None:
        return []
    ring = child(boundary, "LinearRing")
    if ring is None:
        return []
    return _element_coords(ring, placemark_name)


# ---------------------------------------------------------------------------
# Geometry conversion
# ---------------------------------------------------------------------------


def find_geometry_element(placemark: _Element) -> _Element | None:
    """Return the first direct geometry child of a Placemark."""
    for sub in placemark:
        if local_name(sub) in GEOMETRY_TAGS:
            return sub
    return None


def kml_to_shape(elem: _Element, placemark_name: str) -> BaseGeometry:
    """Convert a KML geometry element into a shapely geometry.

    Raises:
        KmlValidationError: If the element is unsupported, empty or degenerate.
        InvalidCoordinateError: If a coordinate is outside WGS 84 bounds.
    """
    from shapely.errors import ShapelyError
    from shapely.geometry import LinearRing, LineString, Point, Polygon

    tag = local_name(elem)
    try:
        if tag == "Point":
            return Point(_element_coords(elem, placemark_name)[0])
        if tag == "LineString":
            return LineString(_element_coords(elem, placemark_name))
        if tag == "LinearRing":
            return LinearRing(_element_coords(elem, placemark_name))
        if tag == "Polygon":
            exterior = _ring_coords(child(elem, "outerBoundaryIs"), placemark_name)
            if not exterior:
                msg = f"<Polygon> has no outer boundary in Placemark '{placemark_name}'"
                raise KmlValidationError(msg)
            holes = [
                _ring_coords(boundary, f"{placemark_name} (hole)")
                for boundary in children(elem, "innerBoundaryIs")
            ]
            return Polygon(exterior, [h for h in holes if h])
        if tag == "MultiGeometry":
            return _multi_to_shape(elem, placemark_name)
    except (ValueError, TypeError, ShapelyError) as exc:
        # shapely rejects too-short lines and rings
        msg = f"Cannot build {tag} for Placemark '{placemark_name}': {exc}"
        raise KmlValidationError(msg) from exc

    msg = f"Unsupported geometry <{tag}> in Placemark '{placemark_name}'"
    raise KmlValidationError(msg)


def _multi_to_shape(elem: _Element, placemark_name: str) -> BaseGeometry:
    from shapely.geometry import (
        GeometryCollection,
        MultiLineString,
        MultiPoint,
        MultiPolygon,
    )

    parts = [kml_to_shape(sub, placemark_name) for sub in elem if local_name(sub) in GEOMETRY_TAGS]
    if not parts:
        msg = f"<MultiGeometry> is empty in Placemark '{placemark_name}'"
        raise KmlValidationError(msg)

    kinds = {p.geom_type for p in parts}
    if kinds == {"Point"}:
        return MultiPoint(parts)
    if kinds <= {"LineString", "LinearRing"}:
        return MultiLineString([list(p.coords) for p in parts])
    if kinds == {"Polygon"}:
        return MultiPolygon(parts)
    return GeometryCollection(parts)


def placemark_wkt(placemark: _Element, placemark_name: str) -> tuple[str | None, str]:
    """Return ``(wkt, geometry_type)`` for a Placemark element.

    Placemarks without a geometry, or whose geometry cannot be converted,
    yield ``(None, "")``; the reason is logged.
    """
    geometry_elem = find_geometry_element(placemark)
    if geometry_elem is None:
        logger.warning("Placemark '%s' has no geometry", placemark_name)
        return (None, "")

    try:
        shape = kml_to_shape(geometry_elem, placemark_name)
    except KmlValidationError as exc:
        logger.warning("Skipping geometry of Placemark '%s': %s", placemark_name, exc)
        return (None, "")

    return (shape.wkt, shape.geom_type)
