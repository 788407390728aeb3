"""Deterministic blob path generation for archived KML uploads.

Uploads are archived under::

    kml/{YYYY}/{MM}/{site-name}/{filename}.{kml|kmz}

All path components are sanitised to lowercase slug form: only ``a-z``,
``0-9``, and ``-`` are allowed.  Spaces become hyphens; other characters
are stripped.  Missing names fall back to ``"unknown"``.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime

KML_PREFIX = "kml"

_ARCHIVE_EXTENSIONS = ("kml", "kmz")

# Regex for sanitising path segments (allow only lowercase alphanumeric + hyphen)
_SLUG_RE = re.compile(r"[^a-z0-9-]+")


def sanitise_slug(value: str) -> str:
    """Convert a string to a URL/path-safe slug.

    - Lowercase
    - Spaces → hyphens
    - Strips all characters except ``a-z``, ``0-9``, ``-``
    - Collapses consecutive hyphens
    - Falls back to ``"unknown"`` if the result is empty
    """
    slug = value.lower().strip().replace(" ", "-")
    slug = _SLUG_RE.sub("", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug if slug else "unknown"


def build_kml_upload_path(
    source_filename: str,
    site_name: str,
    *,
    timestamp: datetime | None = None,
) -> str:
    """Build the blob path for archiving an uploaded KML or KMZ file.

    Format: ``kml/{YYYY}/{MM}/{site-name}/{filename}.{ext}``.  The
    extension is kept when it is ``kml`` or ``kmz`` and defaults to
    ``kml`` otherwise.

    Args:
        source_filename: Uploaded filename (e.g. ``"Cedar Creek.kmz"``).
        site_name: Site name (will be sanitised).
        timestamp: Upload timestamp. Defaults to current UTC time.
    """
    ts = timestamp or datetime.now(UTC)
    stem, dot, extension = source_filename.rpartition(".")
    extension = extension.lower()
    if not dot or extension not in _ARCHIVE_EXTENSIONS:
        stem, extension = source_filename, "kml"
    site_slug = sanitise_slug(site_name)
    filename_slug = f"{sanitise_slug(stem)}.{extension}"
    return f"{KML_PREFIX}/{ts.year:04d}/{ts.month:02d}/{site_slug}/{filename_slug}"
