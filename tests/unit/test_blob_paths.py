"""Tests for archived KML upload blob paths.

Covers:
- Slug sanitisation
- Dated path layout
- Extension handling
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from scd_riparian.utils.blob_paths import KML_PREFIX, build_kml_upload_path, sanitise_slug

TS = datetime(2025, 1, 7, 9, 30, tzinfo=UTC)


class TestSanitiseSlug:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Cedar Creek", "cedar-creek"),
            ("  Johnson  Creek (East) ", "johnson-creek-east"),
            ("--a--b--", "a-b"),
            ("Ünïcode!", "ncode"),
            ("", "unknown"),
            ("!!!", "unknown"),
        ],
    )
    def test_slug(self, value: str, expected: str) -> None:
        assert sanitise_slug(value) == expected


class TestBuildKmlUploadPath:
    def test_layout(self) -> None:
        path = build_kml_upload_path("Cedar Creek.kml", "Cedar Creek", timestamp=TS)
        assert path == f"{KML_PREFIX}/2025/01/cedar-creek/cedar-creek.kml"

    def test_kmz_extension_kept_lowercase(self) -> None:
        path = build_kml_upload_path("Survey.KMZ", "Site", timestamp=TS)
        assert path.endswith("/site/survey.kmz")

    def test_other_extension_defaults_to_kml(self) -> None:
        path = build_kml_upload_path("survey.v2.xml", "Site", timestamp=TS)
        assert path.endswith("/site/surveyv2xml.kml")

    def test_empty_site_name(self) -> None:
        path = build_kml_upload_path("a.kml", "", timestamp=TS)
        assert path == "kml/2025/01/unknown/a.kml"

    def test_defaults_to_now(self) -> None:
        path = build_kml_upload_path("a.kml", "Site")
        assert path.startswith(f"kml/{datetime.now(UTC).year:04d}/")
