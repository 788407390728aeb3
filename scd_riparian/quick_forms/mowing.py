"""Mowing quick form."""

from __future__ import annotations

from scd_riparian.core.constants import LOG_TYPE_ACTIVITY
from scd_riparian.quick_forms.base import RiparianMaintenanceForm


class Mowing(RiparianMaintenanceForm):
    """Record riparian mowing activities."""

    form_id = "riparian_mowing"
    label = "Mowing"
    description = "Record riparian mowing activities."
    help_text = "Use this form to record riparian mowing activities."
    log_type = LOG_TYPE_ACTIVITY
    maintenance_label = "mowing"
