"""Validation helpers for KML parsing.

Responsibilities:
- KMZ unwrapping (zip archive with ``doc.kml``)
- XML structure and KML root validation
- Coordinate bounds checking (WGS 84)
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import TYPE_CHECKING

from scd_riparian.activities.parse_kml._constants import (
    KMZ_MAIN_DOCUMENT,
    KMZ_MIME_TYPE,
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
    ZIP_MAGIC,
)
from scd_riparian.core.exceptions import ValidationError

if TYPE_CHECKING:
    from lxml.etree import _Element

logger = logging.getLogger("scd_riparian.activities.parse_kml")


# ---------------------------------------------------------------------------
# Exceptions (public API, re-exported from __init__)
# ---------------------------------------------------------------------------


class KmlParseError(ValidationError):
    """Raised when an uploaded file cannot be parsed as KML."""

    default_stage = "parse_kml"
    default_code = "KML_PARSE_FAILED"


class KmlValidationError(KmlParseError):
    """Raised when a file is valid KML but its content is unusable."""

    default_code = "KML_VALIDATION_FAILED"


class NoPlacemarksError(KmlValidationError):
    """Raised when no placemarks could be parsed from the uploaded file."""

    default_code = "KML_NO_PLACEMARKS"


class InvalidCoordinateError(KmlValidationError):
    """Raised when coordinates are outside valid WGS 84 bounds."""

    default_code = "KML_COORDINATE_INVALID"


# ---------------------------------------------------------------------------
# KMZ unwrapping
# ---------------------------------------------------------------------------


def is_kmz(data: bytes, *, filename: str = "", content_type: str = "") -> bool:
    """Return ``True`` if the upload looks like a KMZ archive."""
    if content_type.split(";")[0].strip().lower() == KMZ_MIME_TYPE:
        return True
    if filename.lower().endswith(".kmz"):
        return True
    return data.startswith(ZIP_MAGIC)


def read_kml_bytes(data: bytes, *, filename: str = "", content_type: str = "") -> bytes:
    """Return the KML document bytes of an upload, unwrapping KMZ archives.

    The KMZ main document is ``doc.kml``; archives written by other
    tools are accepted when they contain any ``.kml`` member.

    Raises:
        KmlParseError: If the upload is empty or a corrupt / KML-less archive.
    """
    if not data or not data.strip():
        msg = "KML file is empty"
        raise KmlParseError(msg)

    if not is_kmz(data, filename=filename, content_type=content_type):
        return data

    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = archive.namelist()
            member = KMZ_MAIN_DOCUMENT if KMZ_MAIN_DOCUMENT in names else None
            if member is None:
                member = next((n for n in names if n.lower().endswith(".kml")), None)
            if member is None:
                msg = f"KMZ archive {filename or '<upload>'} contains no .kml document"
                raise KmlParseError(msg)
            if member != KMZ_MAIN_DOCUMENT:
                logger.warning(
                    "KMZ archive has no %s, using %s | file=%s",
                    KMZ_MAIN_DOCUMENT,
                    member,
                    filename,
                )
            return archive.read(member)
    except zipfile.BadZipFile as exc:
        msg = f"Not a valid KMZ archive: {exc}"
        raise KmlParseError(msg) from exc


# ---------------------------------------------------------------------------
# XML / KML validation
# ---------------------------------------------------------------------------


def parse_xml(content: bytes) -> _Element:
    """Parse *content* as XML and check that the root is ``<kml>``.

    Raises:
        KmlParseError: If the content is not valid XML or not KML.
    """
    from lxml import etree  # type: ignore[attr-defined]

    if not content.strip():
        msg = "KML file is empty"
        raise KmlParseError(msg)

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=False)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as exc:
        msg = f"Not valid XML: {exc}"
        raise KmlParseError(msg) from exc

    if etree.QName(root).localname.lower() != "kml":
        msg = f"Not a KML file: root element is <{root.tag}>"
        raise KmlParseError(msg)

    return root


def validate_xml(content: bytes) -> None:
    """Validate that *content* is well-formed XML with a KML root."""
    parse_xml(content)


# ---------------------------------------------------------------------------
# Coordinate validation
# ---------------------------------------------------------------------------


def validate_coordinates(coords: list[tuple[float, ...]], placemark_name: str) -> None:
    """Validate that all coordinates are within WGS 84 bounds.

    Raises:
        InvalidCoordinateError: If any coordinate is out of bounds.
    """
    for coord in coords:
        lon, lat = coord[0], coord[1]
        if not (MIN_LONGITUDE <= lon <= MAX_LONGITUDE):
            msg = (
                f"Longitude {lon} out of WGS 84 range [{MIN_LONGITUDE}, {MAX_LONGITUDE}] "
                f"in Placemark '{placemark_name}'"
            )
            raise InvalidCoordinateError(msg)
        if not (MIN_LATITUDE <= lat <= MAX_LATITUDE):
            msg = (
                f"Latitude {lat} out of WGS 84 range [{MIN_LATITUDE}, {MAX_LATITUDE}] "
                f"in Placemark '{placemark_name}'"
            )
            raise InvalidCoordinateError(msg)
