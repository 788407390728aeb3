"""Herbicide quick form.

Creates ``input`` logs.  Single records carry, on top of the base
quantities, the weather at application time, the product applied and
the treated acreage.  The wind direction is prepended to the notes.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Any

from scd_riparian.core.constants import (
    LOG_TYPE_INPUT,
    QUANTITY_TYPE_MATERIAL,
    VOCABULARY_MATERIAL_TYPE,
)
from scd_riparian.models.submissions import (
    RATE_UNITS,
    RECORD_MODE,
    WIND_DIRECTIONS,
    HerbicideSubmission,
)
from scd_riparian.quick_forms._quantity import build_quantity
from scd_riparian.quick_forms.base import RiparianMaintenanceForm

if TYPE_CHECKING:
    from datetime import datetime

    from scd_riparian.models.log import LogTemplate
    from scd_riparian.models.submissions import MaintenanceSubmission


def _number(title: str, *, step: float, min_value: float | None = 0) -> dict[str, Any]:
    return {"type": "number", "title": title, "min": min_value, "step": step}


class Herbicide(RiparianMaintenanceForm):
    """Record riparian herbicide activities."""

    form_id = "riparian_herbicide"
    label = "Herbicide"
    description = "Record riparian herbicide activities."
    help_text = "Use this form to record riparian herbicide activities."
    log_type = LOG_TYPE_INPUT
    maintenance_label = "herbicide"
    submission_model = HerbicideSubmission

    def build_form(self, parent: str | None = None, *, now: datetime | None = None) -> dict[str, Any]:
        form = super().build_form(parent, now=now)
        record_fields = form["fields"]["record_data"]["fields"]

        record_fields["air_temp"] = _number("Air temperature", step=1, min_value=None)
        record_fields["wind_speed"] = _number("Wind speed (mph)", step=1)
        record_fields["wind_direction"] = {
            "type": "select",
            "title": "Wind direction",
            "options": [{"value": d, "label": d} for d in WIND_DIRECTIONS],
            "required_when": {"schedule": RECORD_MODE},
        }

        record_fields["material"] = {
            "type": "select",
            "title": "Herbicide product",
            "options": [
                {"value": t.id, "label": t.name}
                for t in self.repository.load_terms(VOCABULARY_MATERIAL_TYPE)
            ],
        }
        record_fields["total_applied"] = _number("Total product applied (qts)", step=0.1)
        record_fields["concentration"] = _number("Product concentration (oz/gal)", step=0.1)

        record_fields["acres_treated"] = _number("Acres treated", step=0.1)
        record_fields["rate_per_acre"] = _number("Rate per acre", step=0.1)
        record_fields["rate_per_acre_unit"] = {
            "type": "select",
            "title": "Rate units",
            "options": [{"value": u, "label": u} for u in RATE_UNITS],
            "default_value": RATE_UNITS[0],
        }
        return form

    def prepare_log(self, submission: MaintenanceSubmission) -> LogTemplate:
        log = super().prepare_log(submission)
        if submission.is_scheduled or not isinstance(submission, HerbicideSubmission):
            return log

        repo = self.repository
        material = None
        if submission.material:
            material = repo.load_term(submission.material, VOCABULARY_MATERIAL_TYPE)

        quantities = [
            build_quantity(
                repo,
                "Air temperature (F)",
                submission.air_temp,
                measure="temperature",
                unit_name="fahrenheit",
            ),
            build_quantity(
                repo, "Wind speed", submission.wind_speed, measure="speed", unit_name="mph"
            ),
            build_quantity(
                repo,
                "Total product applied",
                submission.total_applied,
                measure="volume",
                unit_name="qts",
                quantity_type=QUANTITY_TYPE_MATERIAL,
                material_type=material,
            ),
            build_quantity(
                repo,
                "Product concentration",
                submission.concentration,
                measure="ratio",
                unit_name="oz/gal",
                quantity_type=QUANTITY_TYPE_MATERIAL,
                material_type=material,
            ),
            build_quantity(
                repo,
                "Acres treated",
                submission.acres_treated,
                measure="area",
                unit_name="acres",
                quantity_type=QUANTITY_TYPE_MATERIAL,
                material_type=material,
            ),
            build_quantity(
                repo,
                "Rate per acre",
                submission.rate_per_acre,
                measure="rate",
                unit_name=submission.rate_per_acre_unit,
                quantity_type=QUANTITY_TYPE_MATERIAL,
                material_type=material,
            ),
        ]

        return replace(
            log,
            notes=f"Wind direction: {submission.wind_direction}\n\n{log.notes}",
            quantities=log.quantities + tuple(quantities),
        )
