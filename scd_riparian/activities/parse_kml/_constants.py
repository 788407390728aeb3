"""Shared constants for KML parsing."""

from __future__ import annotations

# KML 2.2 namespace
KML_NAMESPACE = "http://www.opengis.net/kml/2.2"

# KMZ archives are zip files whose main document is doc.kml
KMZ_MIME_TYPE = "application/vnd.google-earth.kmz"
KMZ_MAIN_DOCUMENT = "doc.kml"
ZIP_MAGIC = b"PK\x03\x04"

# WGS 84 coordinate bounds
MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

# Geometry elements understood by the placemark parser
GEOMETRY_TAGS = frozenset({"Point", "LineString", "LinearRing", "Polygon", "MultiGeometry"})
