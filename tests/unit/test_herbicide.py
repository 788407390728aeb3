"""Tests for the herbicide quick form.

Covers:
- input log type and access
- Extra record fields in the form schema
- Record mode quantities, material and units
- Wind direction prepended to the notes
- Schedule mode carries no herbicide quantities
"""

from __future__ import annotations

import pytest

from scd_riparian.quick_forms.base import InvalidSubmissionError
from scd_riparian.quick_forms.herbicide import Herbicide
from scd_riparian.storage.memory import InMemoryFarmRepository
from tests.conftest import GLYPHOSATE, MANAGER, VIEWER, WORKER

RECORD_BODY = {
    "parent": "1",
    "asset": ["3", "4"],
    "owner": "3",
    "schedule": "record",
    "timestamp": "2025-05-01T00:00:00",
    "time_taken": 1,
    "number_of_technicians": 2,
    "percent_of_site": 75,
    "notes": "Spot spray only",
    "air_temp": 68,
    "wind_speed": 4,
    "wind_direction": "South West",
    "material": "m1",
    "total_applied": 1.5,
    "concentration": 2,
    "acres_treated": 0.75,
    "rate_per_acre": 64,
    "rate_per_acre_unit": "qts/acre",
}


@pytest.fixture()
def herbicide(repository: InMemoryFarmRepository) -> Herbicide:
    return Herbicide(repository, MANAGER)


class TestHerbicideForm:
    def test_input_logs(self, herbicide: Herbicide) -> None:
        assert herbicide.log_type == "input"
        assert herbicide.form_id == "riparian_herbicide"

    def test_access(self, repository: InMemoryFarmRepository) -> None:
        assert Herbicide(repository, WORKER).access()
        assert not Herbicide(repository, VIEWER).access()

    def test_record_fields(self, herbicide: Herbicide) -> None:
        fields = herbicide.build_form("1")["fields"]["record_data"]["fields"]

        assert len(fields["wind_direction"]["options"]) == 8
        assert fields["wind_direction"]["required_when"] == {"schedule": "record"}
        assert fields["material"]["options"] == [
            {"value": "m1", "label": "Glyphosate"},
            {"value": "m2", "label": "Triclopyr"},
        ]
        assert [o["value"] for o in fields["rate_per_acre_unit"]["options"]] == [
            "ml/acre",
            "qts/acre",
            "gal/acre",
        ]
        assert fields["rate_per_acre_unit"]["default_value"] == "ml/acre"
        assert fields["air_temp"]["min"] is None
        # base fields are still present
        assert "time_taken" in fields

    def test_schedule_labels(self, herbicide: Herbicide) -> None:
        schedule = herbicide.build_form()["fields"]["schedule"]
        assert schedule["options"][0]["label"] == "Schedule herbicide"


class TestHerbicideRecord:
    """Record mode adds weather, product and acreage quantities."""

    def test_quantities(self, herbicide: Herbicide, repository: InMemoryFarmRepository) -> None:
        result = herbicide.submit(RECORD_BODY)
        log = repository.logs[result.log_ids[0]]

        summary = [
            (q.label, q.value, q.measure, q.units.name if q.units else None, q.quantity_type)
            for q in log.quantities
        ]
        assert summary == [
            ("Time taken", 1, "time", "hours", "standard"),
            ("Number of technicians", 2, "count", None, "standard"),
            ("Percent of site", 75, "ratio", "%", "standard"),
            ("Air temperature (F)", 68, "temperature", "fahrenheit", "standard"),
            ("Wind speed", 4, "speed", "mph", "standard"),
            ("Total product applied", 1.5, "volume", "qts", "material"),
            ("Product concentration", 2, "ratio", "oz/gal", "material"),
            ("Acres treated", 0.75, "area", "acres", "material"),
            ("Rate per acre", 64, "rate", "qts/acre", "material"),
        ]

    def test_material_on_material_quantities(
        self, herbicide: Herbicide, repository: InMemoryFarmRepository
    ) -> None:
        result = herbicide.submit(RECORD_BODY)
        log = repository.logs[result.log_ids[0]]
        materials = [q.material_type for q in log.quantities if q.quantity_type == "material"]
        assert materials == [GLYPHOSATE] * 4

    def test_notes_start_with_wind_direction(
        self, herbicide: Herbicide, repository: InMemoryFarmRepository
    ) -> None:
        result = herbicide.submit(RECORD_BODY)
        log = repository.logs[result.log_ids[0]]
        assert log.notes == "Wind direction: South West\n\nSpot spray only"
        assert log.name == "Cedar Creek herbicide"
        assert log.log_type == "input"

    def test_blank_values_kept_as_none(
        self, herbicide: Herbicide, repository: InMemoryFarmRepository
    ) -> None:
        body = {
            **RECORD_BODY,
            "air_temp": None,
            "material": "",
            "total_applied": None,
        }
        result = herbicide.submit(body)
        quantities = {q.label: q for q in repository.logs[result.log_ids[0]].quantities}
        assert quantities["Air temperature (F)"].value is None
        assert quantities["Total product applied"].value is None
        assert quantities["Total product applied"].material_type is None

    def test_wind_direction_required(self, herbicide: Herbicide) -> None:
        body = {k: v for k, v in RECORD_BODY.items() if k != "wind_direction"}
        with pytest.raises(InvalidSubmissionError, match="wind_direction"):
            herbicide.submit(body)


class TestHerbicideSchedule:
    def test_no_herbicide_quantities(
        self, herbicide: Herbicide, repository: InMemoryFarmRepository
    ) -> None:
        body = {
            "parent": "1",
            "asset": ["3"],
            "owner": "3",
            "schedule_data": {
                "start_date": "2025-05-01T12:00:00",
                "end_date": "2025-05-15T12:00:00",
                "week_interval": 1,
            },
        }
        result = herbicide.submit(body)
        assert result.count == 3
        assert all(repository.logs[i].quantities == () for i in result.log_ids)
        assert all(repository.logs[i].notes == "" for i in result.log_ids)
