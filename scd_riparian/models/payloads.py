"""Typed payload schemas for the HTTP routes.

Every route receives and returns a JSON object.  These ``TypedDict``
definitions make the response shapes explicit, and
``validate_payload`` rejects request bodies that lack a required
top-level key before the pydantic models look at individual fields.

Usage::

    from scd_riparian.models.payloads import SiteImportInput, validate_payload

    validate_payload(body, SiteImportInput, route="sites")
"""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict

from scd_riparian.core.exceptions import ContractError

# ---------------------------------------------------------------------------
# Quick forms
# ---------------------------------------------------------------------------


class QuickFormSummary(TypedDict):
    """One entry of the ``GET quick`` listing."""

    id: str
    label: str
    description: str
    help_text: str
    log_type: str


class QuickFormSubmissionInput(TypedDict):
    """Client → ``POST quick/{form_id}``."""

    parent: str
    asset: list[str] | dict[str, Any]
    owner: str
    schedule: NotRequired[str]
    schedule_data: NotRequired[dict[str, Any]]


class SubmissionResultOutput(TypedDict):
    """``POST quick/{form_id}`` → client."""

    form_id: str
    mode: str
    count: int
    log_ids: list[str]
    message: str


class ConfigurationOutput(TypedDict):
    """``GET/POST quick/{form_id}/configuration`` → client."""

    form_id: str
    configuration: dict[str, Any]


# ---------------------------------------------------------------------------
# Site import
# ---------------------------------------------------------------------------


class SegmentPreview(TypedDict):
    """One editable segment of an import preview."""

    index: int
    title: str
    name: str
    notes: str
    geometry: str | None
    geometry_type: str
    confirm: bool


class ImportPreviewOutput(TypedDict):
    """``POST sites/parse`` → client."""

    site_name: str
    source_file: str
    segments: list[SegmentPreview]
    archive_path: NotRequired[str]


class SiteImportInput(TypedDict):
    """Client → ``POST sites``."""

    site_name: str
    segments: list[dict[str, Any]]
    source_file: NotRequired[str]


class SiteImportOutput(TypedDict):
    """``POST sites`` → client."""

    site: dict[str, Any]
    segments: list[dict[str, Any]]
    messages: list[str]


# ---------------------------------------------------------------------------
# Required-key registrations (used by validate_payload)
# ---------------------------------------------------------------------------

_REQUIRED_KEYS: dict[type, frozenset[str]] = {
    QuickFormSubmissionInput: frozenset({"parent", "asset", "owner"}),
    SiteImportInput: frozenset({"site_name", "segments"}),
}


# ---------------------------------------------------------------------------
# Runtime validation
# ---------------------------------------------------------------------------


def validate_payload(
    raw: dict[str, Any],
    schema: type,
    *,
    route: str,
) -> None:
    """Validate that *raw* contains the required keys for *schema*.

    Raises:
        ContractError: If required keys are missing from the payload.
    """
    required = _REQUIRED_KEYS.get(schema)
    if required is None:
        return

    missing = required - raw.keys()
    if missing:
        msg = f"{route}: missing required payload key(s): {', '.join(sorted(missing))}"
        raise ContractError(msg, stage=route, code="PAYLOAD_MISSING_KEYS")
