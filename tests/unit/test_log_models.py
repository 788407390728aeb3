"""Tests for the log and schedule window models.

Covers:
- LogTemplate / QuantityEntry validation
- with_timestamp cloning
- from_dict error handling
- ScheduleWindow validation, step and emptiness
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from scd_riparian.activities.schedule_logs import count_occurrences
from scd_riparian.models.entities import ModelValidationError, Term
from scd_riparian.models.log import LogTemplate, QuantityEntry
from scd_riparian.models.schedule import ScheduleWindow

T0 = datetime(2025, 3, 3, 12, 0, tzinfo=UTC)


class TestQuantityEntry:
    def test_invalid_quantity_type(self) -> None:
        with pytest.raises(ModelValidationError, match="quantity_type"):
            QuantityEntry(label="x", quantity_type="price")

    def test_to_dict_with_units(self) -> None:
        mph = Term(id="u1", name="mph", vocabulary="unit")
        entry = QuantityEntry(label="Wind speed", value=4.0, units=mph, measure="speed")
        data = entry.to_dict()
        assert data["units"] == {"id": "u1", "name": "mph", "vocabulary": "unit"}
        assert data["material_type"] is None
        assert QuantityEntry.from_dict(data) == entry


class TestLogTemplate:
    def test_defaults(self) -> None:
        log = LogTemplate(log_type="activity", name="Cedar Creek mowing")
        assert log.status == "pending"
        assert log.location == ()
        assert log.quantities == ()
        assert log.timestamp is None

    def test_empty_log_type(self) -> None:
        with pytest.raises(ModelValidationError, match="log_type"):
            LogTemplate(log_type="")

    def test_invalid_status(self) -> None:
        with pytest.raises(ModelValidationError, match="status"):
            LogTemplate(log_type="activity", status="cancelled")

    def test_with_timestamp_only_changes_timestamp(self) -> None:
        log = LogTemplate(
            log_type="activity",
            name="n",
            owner="3",
            location=("3", "4"),
            revision_log_message="original",
        )
        clone = log.with_timestamp(T0)
        assert clone.timestamp == T0
        assert clone.revision_log_message == "original"
        assert clone.location == log.location
        assert log.timestamp is None

    def test_with_timestamp_revision_message(self) -> None:
        clone = LogTemplate(log_type="activity").with_timestamp(T0, revision_log_message="r")
        assert clone.revision_log_message == "r"

    def test_to_dict_from_dict(self) -> None:
        log = LogTemplate(
            log_type="input",
            name="Cedar Creek herbicide",
            status="done",
            owner="3",
            category="c1",
            location=("3",),
            notes="n",
            quantities=(QuantityEntry(label="Time taken", value=1.5),),
            timestamp=T0,
        )
        data = log.to_dict()
        assert data["timestamp"] == "2025-03-03T12:00:00+00:00"
        assert data["location"] == ["3"]
        assert LogTemplate.from_dict(data) == log

    def test_from_dict_rejects_non_list_location(self) -> None:
        with pytest.raises(TypeError, match="location"):
            LogTemplate.from_dict({"log_type": "activity", "location": "3"})

    def test_from_dict_rejects_bad_timestamp(self) -> None:
        with pytest.raises(ValueError):
            LogTemplate.from_dict({"log_type": "activity", "timestamp": "yesterday"})


class TestScheduleWindow:
    def test_step(self) -> None:
        window = ScheduleWindow(start=T0, end=T0, week_interval=3)
        assert window.step == timedelta(days=21)

    def test_default_interval(self) -> None:
        assert ScheduleWindow(start=T0, end=T0).week_interval == 2

    @pytest.mark.parametrize("interval", [0, -1])
    def test_interval_below_one_rejected(self, interval: int) -> None:
        with pytest.raises(ModelValidationError, match="week_interval"):
            ScheduleWindow(start=T0, end=T0, week_interval=interval)

    @pytest.mark.parametrize("interval", [1.5, True, "2"])
    def test_non_integer_interval_rejected(self, interval: object) -> None:
        with pytest.raises(ModelValidationError, match="must be an integer"):
            ScheduleWindow(start=T0, end=T0, week_interval=interval)  # type: ignore[arg-type]

    def test_mixed_awareness_rejected(self) -> None:
        with pytest.raises(ModelValidationError, match="timezone-aware"):
            ScheduleWindow(start=T0, end=datetime(2025, 4, 1))

    def test_is_empty(self) -> None:
        assert ScheduleWindow(start=T0 + timedelta(days=1), end=T0).is_empty
        assert not ScheduleWindow(start=T0, end=T0).is_empty

    def test_is_empty_compares_in_start_timezone(self) -> None:
        pacific = ZoneInfo("America/Los_Angeles")
        start = datetime(2025, 3, 3, 12, 0, tzinfo=pacific)
        same_instant = start.astimezone(UTC)
        window = ScheduleWindow(start=start, end=same_instant)
        assert window.aligned_end == start
        assert not window.is_empty
        assert count_occurrences(window) == 1

        earlier = ScheduleWindow(start=start, end=same_instant - timedelta(minutes=1))
        assert earlier.is_empty
        assert count_occurrences(earlier) == 0
