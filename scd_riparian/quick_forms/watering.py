"""Watering quick form."""

from __future__ import annotations

from scd_riparian.core.constants import LOG_TYPE_ACTIVITY
from scd_riparian.quick_forms.base import RiparianMaintenanceForm


class Watering(RiparianMaintenanceForm):
    """Record riparian watering activities."""

    form_id = "riparian_watering"
    label = "Watering"
    description = "Record riparian watering activities."
    help_text = "Use this form to record riparian watering activities."
    log_type = LOG_TYPE_ACTIVITY
    maintenance_label = "watering"
