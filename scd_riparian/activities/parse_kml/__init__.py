"""KML parsing activity.

Parses an uploaded KML (or KMZ) file into a ``SiteDocument``: the site
name taken from the KML folder and one ``Placemark`` per placemark in
that folder, each with its geometry serialised as WKT by shapely.

The parsing pipeline is split into focused stages:
- **_validation**: KMZ unwrapping, XML/KML root check, coordinate bounds
- **_geometry**: KML geometry element → shapely geometry → WKT

Supported KML structures:
- ``kml/Folder/Placemark`` and ``kml/Document/Folder/Placemark``
- Placemarks directly under ``Document`` when there is no folder
- Point, LineString, LinearRing, Polygon (with holes), MultiGeometry
- KMZ archives (``doc.kml`` or the first ``.kml`` member)

A placemark whose geometry cannot be converted is still returned, with
``wkt=None``, so that the user can fill the geometry in by hand.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scd_riparian.activities.parse_kml._constants import (
    KML_NAMESPACE,
    KMZ_MIME_TYPE,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)
from scd_riparian.activities.parse_kml._geometry import (
    child,
    child_text,
    children,
    kml_to_shape,
    local_name,
    parse_coordinates_text,
    placemark_wkt,
)
from scd_riparian.activities.parse_kml._validation import (
    InvalidCoordinateError,
    KmlParseError,
    KmlValidationError,
    NoPlacemarksError,
    is_kmz,
    parse_xml,
    read_kml_bytes,
    validate_coordinates,
    validate_xml,
)
from scd_riparian.models.placemark import Placemark, SiteDocument

if TYPE_CHECKING:
    from pathlib import Path

    from lxml.etree import _Element

logger = logging.getLogger("scd_riparian.activities.parse_kml")

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "KML_NAMESPACE",
    "KMZ_MIME_TYPE",
    "MAX_LATITUDE",
    "MAX_LONGITUDE",
    "MIN_LATITUDE",
    "MIN_LONGITUDE",
    "InvalidCoordinateError",
    "KmlParseError",
    "KmlValidationError",
    "NoPlacemarksError",
    "is_kmz",
    "kml_to_shape",
    "parse_coordinates_text",
    "parse_kml_bytes",
    "parse_kml_file",
    "parse_site_document",
    "read_kml_bytes",
    "validate_coordinates",
    "validate_xml",
]


def parse_site_document(content: bytes, *, source_filename: str = "") -> SiteDocument:
    """Parse KML document bytes into a ``SiteDocument``.

    Args:
        content: Raw KML bytes (already unwrapped from KMZ).
        source_filename: Original filename, used in logs and errors.

    Returns:
        The site name and its placemarks in document order.

    Raises:
        KmlParseError: If the content is not valid XML or not KML.
        NoPlacemarksError: If no placemarks could be found.
    """
    root = parse_xml(content)

    container = child(root, "Document")
    if container is None:
        container = root

    site_name, placemark_elems = _find_site_placemarks(container)
    if not placemark_elems:
        msg = f"No placemarks could be parsed from {source_filename or 'the uploaded file'}."
        raise NoPlacemarksError(msg)

    placemarks: list[Placemark] = []
    for index, elem in enumerate(placemark_elems):
        name = child_text(elem, "name") or f"{site_name} {index}".strip()
        wkt, geometry_type = placemark_wkt(elem, name)
        placemarks.append(
            Placemark(
                index=index,
                name=name,
                wkt=wkt,
                geometry_type=geometry_type,
                description=child_text(elem, "description"),
            )
        )

    logger.info(
        "Parsed KML site | file=%s | site=%s | placemarks=%d | without_geometry=%d",
        source_filename,
        site_name,
        len(placemarks),
        sum(1 for p in placemarks if not p.has_geometry),
    )
    return SiteDocument(site_name=site_name, placemarks=placemarks, source_file=source_filename)


def parse_kml_bytes(
    data: bytes,
    *,
    source_filename: str = "",
    content_type: str = "",
) -> SiteDocument:
    """Parse an uploaded KML or KMZ payload.

    Raises:
        KmlParseError: If the payload is empty, a corrupt KMZ, or not KML.
        NoPlacemarksError: If no placemarks could be found.
    """
    content = read_kml_bytes(data, filename=source_filename, content_type=content_type)
    return parse_site_document(content, source_filename=source_filename)


def parse_kml_file(kml_path: Path | str, *, source_filename: str = "") -> SiteDocument:
    """Parse a KML or KMZ file on disk.

    Raises:
        KmlParseError: If the file cannot be read or is not KML.
        NoPlacemarksError: If no placemarks could be found.
    """
    from pathlib import Path

    kml_path = Path(kml_path)
    if not source_filename:
        source_filename = kml_path.name

    try:
        data = kml_path.read_bytes()
    except OSError as exc:
        msg = f"Cannot read KML file: {exc}"
        raise KmlParseError(msg) from exc

    return parse_kml_bytes(data, source_filename=source_filename)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _find_site_placemarks(container: _Element) -> tuple[str, list[_Element]]:
    """Return ``(site_name, placemarks)`` for the first folder holding placemarks.

    Falls back to placemarks placed directly under *container*, named
    after the document.
    """
    for elem in container.iter():
        if local_name(elem) != "Folder":
            continue
        placemarks = children(elem, "Placemark")
        if placemarks:
            return (child_text(elem, "name"), placemarks)

    return (child_text(container, "name"), children(container, "Placemark"))
