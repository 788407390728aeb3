"""Tests for the route payload schemas.

Covers:
- validate_payload for every registered schema
- Error message and code for missing keys
- Unregistered schemas are not checked
"""

from __future__ import annotations

import pytest

from scd_riparian.core.exceptions import ContractError
from scd_riparian.models.payloads import (
    QuickFormSubmissionInput,
    SiteImportInput,
    SubmissionResultOutput,
    validate_payload,
)


class TestValidatePayload:
    def test_quick_form_submission_complete(self) -> None:
        validate_payload(
            {"parent": "1", "asset": ["3"], "owner": "3"},
            QuickFormSubmissionInput,
            route="quick",
        )

    def test_quick_form_submission_missing_keys(self) -> None:
        with pytest.raises(ContractError) as exc:
            validate_payload({"parent": "1"}, QuickFormSubmissionInput, route="quick")
        assert str(exc.value) == "quick: missing required payload key(s): asset, owner"
        assert exc.value.code == "PAYLOAD_MISSING_KEYS"
        assert exc.value.stage == "quick"

    def test_site_import_missing_segments(self) -> None:
        with pytest.raises(ContractError, match="segments"):
            validate_payload({"site_name": "Cedar Creek"}, SiteImportInput, route="sites")

    def test_optional_keys_not_required(self) -> None:
        validate_payload({"site_name": "x", "segments": []}, SiteImportInput, route="sites")

    def test_unregistered_schema_not_checked(self) -> None:
        validate_payload({}, SubmissionResultOutput, route="quick")
