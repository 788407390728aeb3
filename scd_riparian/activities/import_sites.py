"""Site and segment import from KML.

Two-step flow:

1. **Preview** (``build_import_preview``): the parsed ``SiteDocument``
   becomes an editable draft: a site name plus one segment per
   placemark (name, notes, WKT geometry, ``confirm`` flag).
2. **Import** (``import_site``): after the user edits and confirms the
   draft, a parent ``land`` asset of land type ``scd_site`` is created,
   followed by one ``scd_segment`` child per confirmed segment.

The raw upload is archived to Blob Storage by ``archive_kml_upload``.
Assets are created one by one; a failure part-way leaves the assets
created so far in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scd_riparian.core.constants import (
    ASSET_TYPE_LAND,
    LAND_TYPE_SEGMENT,
    LAND_TYPE_SITE,
    PERMISSION_CREATE_LAND_ASSET,
)
from scd_riparian.core.exceptions import AccessDeniedError, TransientError, ValidationError
from scd_riparian.models.entities import Asset
from scd_riparian.utils.blob_paths import build_kml_upload_path

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from azure.storage.blob import BlobServiceClient

    from scd_riparian.models.entities import User
    from scd_riparian.models.payloads import (
        ImportPreviewOutput,
        SegmentPreview,
        SiteImportOutput,
    )
    from scd_riparian.models.placemark import SiteDocument
    from scd_riparian.models.submissions import SegmentDraft, SiteImportSubmission
    from scd_riparian.storage.base import FarmRepository

logger = logging.getLogger("scd_riparian.activities.import_sites")

ACCEPTED_UPLOAD_EXTENSIONS: tuple[str, ...] = ("kml", "kmz")

_CONTENT_TYPES = {
    "kml": "application/vnd.google-earth.kml+xml",
    "kmz": "application/vnd.google-earth.kmz",
}


class ImportValidationError(ValidationError):
    """Raised when an upload or an import draft cannot be accepted."""

    default_stage = "import_sites"
    default_code = "SITE_IMPORT_INVALID"


class KmlArchiveError(TransientError):
    """Raised when the uploaded file cannot be written to Blob Storage."""

    default_stage = "import_sites"
    default_code = "KML_ARCHIVE_FAILED"


@dataclass(frozen=True, slots=True)
class SiteImportResult:
    """Assets created by one import.

    Attributes:
        site: The parent site asset.
        segments: Segment assets in creation order.
        messages: One ``"Created ...: <name> (<url>)"`` line per asset.
    """

    site: Asset
    segments: list[Asset] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)

    def to_dict(self) -> SiteImportOutput:
        return {
            "site": self.site.to_dict(),
            "segments": [s.to_dict() for s in self.segments],
            "messages": list(self.messages),
        }


# ---------------------------------------------------------------------------
# Upload and preview
# ---------------------------------------------------------------------------


def validate_upload_filename(filename: str) -> str:
    """Return the lowercase extension of an accepted upload filename.

    Raises:
        ImportValidationError: If the extension is not ``kml`` or ``kmz``.
    """
    _, dot, extension = filename.rpartition(".")
    extension = extension.lower()
    if not dot or extension not in ACCEPTED_UPLOAD_EXTENSIONS:
        msg = (
            "Only files with the following extensions are allowed: "
            f"{' '.join(ACCEPTED_UPLOAD_EXTENSIONS)}."
        )
        raise ImportValidationError(msg, code="UNSUPPORTED_FILE_TYPE")
    return extension


def build_import_preview(document: SiteDocument) -> ImportPreviewOutput:
    """Build the editable import draft for a parsed KML site.

    Every segment starts out confirmed; its name, notes and geometry
    may be edited before ``import_site``.
    """
    segments: list[SegmentPreview] = [
        {
            "index": placemark.index,
            "title": f"Segment {placemark.index}",
            "name": placemark.name,
            "notes": "",
            "geometry": placemark.wkt,
            "geometry_type": placemark.geometry_type,
            "confirm": True,
        }
        for placemark in document.placemarks
    ]
    return {
        "site_name": document.site_name,
        "source_file": document.source_file,
        "segments": segments,
    }


def confirmed_segments(drafts: Iterable[SegmentDraft]) -> list[SegmentDraft]:
    """Return the drafts whose ``confirm`` flag is set, in order."""
    return [draft for draft in drafts if draft.confirm]


def validate_segment_selection(drafts: Iterable[SegmentDraft]) -> list[SegmentDraft]:
    """Return the confirmed drafts.

    Raises:
        ImportValidationError: If no segment is confirmed.
    """
    confirmed = confirmed_segments(drafts)
    if not confirmed:
        msg = "At least one asset must be created."
        raise ImportValidationError(msg, code="NO_SEGMENTS_CONFIRMED")
    return confirmed


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def import_site(
    submission: SiteImportSubmission,
    repository: FarmRepository,
    *,
    account: User | None = None,
) -> SiteImportResult:
    """Create the site asset and one segment asset per confirmed draft.

    Args:
        submission: The confirmed import draft.
        repository: Storage backend.
        account: When given, must hold the ``create land asset`` permission.

    Raises:
        AccessDeniedError: If *account* may not create land assets.
        ImportValidationError: If no segment is confirmed.
        RepositoryError: If an asset cannot be created.
    """
    if account is not None and not account.has_permission(PERMISSION_CREATE_LAND_ASSET):
        msg = f"User {account.name!r} may not create land assets"
        raise AccessDeniedError(msg, stage="import_sites")

    confirmed = validate_segment_selection(submission.segments)

    site = repository.create_asset(
        Asset(
            name=submission.site_name,
            asset_type=ASSET_TYPE_LAND,
            land_type=LAND_TYPE_SITE,
            is_location=True,
            is_fixed=True,
        )
    )
    messages = [f"Created site: {site.label} ({repository.asset_url(site)})"]

    segments: list[Asset] = []
    for draft in confirmed:
        segment = repository.create_asset(
            Asset(
                name=draft.name,
                asset_type=ASSET_TYPE_LAND,
                land_type=LAND_TYPE_SEGMENT,
                is_location=True,
                is_fixed=True,
                intrinsic_geometry=draft.geometry,
                notes=draft.notes or None,
                parent_id=site.id,
            )
        )
        segments.append(segment)
        messages.append(f"Created segment: {segment.label} ({repository.asset_url(segment)})")

    logger.info(
        "Site imported | site=%s | id=%s | segments=%d | skipped=%d | source=%s",
        site.name,
        site.id,
        len(segments),
        len(submission.segments) - len(confirmed),
        submission.source_file,
    )
    return SiteImportResult(site=site, segments=segments, messages=messages)


# ---------------------------------------------------------------------------
# Upload archive
# ---------------------------------------------------------------------------


def archive_kml_upload(
    data: bytes,
    filename: str,
    site_name: str,
    *,
    blob_service_client: BlobServiceClient,
    container: str,
    timestamp: datetime | None = None,
) -> str:
    """Write the raw upload to ``kml/{YYYY}/{MM}/{site}/{file}``.

    Overwrites any previous upload at the same path.

    Returns:
        The blob path written.

    Raises:
        KmlArchiveError: If the upload fails.
    """
    from azure.core.exceptions import AzureError, ResourceExistsError
    from azure.storage.blob import ContentSettings

    blob_path = build_kml_upload_path(filename, site_name, timestamp=timestamp)
    extension = blob_path.rsplit(".", 1)[-1]

    try:
        container_client = blob_service_client.get_container_client(container)
        try:
            container_client.create_container()
        except ResourceExistsError:
            pass

        blob_client = blob_service_client.get_blob_client(container=container, blob=blob_path)
        blob_client.upload_blob(
            data,
            overwrite=True,
            content_settings=ContentSettings(content_type=_CONTENT_TYPES[extension]),
        )
    except AzureError as exc:
        msg = f"Failed to archive {filename} to {container}/{blob_path}: {exc}"
        raise KmlArchiveError(msg) from exc

    logger.info(
        "KML upload archived | container=%s | path=%s | size=%d bytes",
        container,
        blob_path,
        len(data),
    )
    return blob_path
