"""Riparian maintenance quick forms.

- RiparianMaintenanceForm: Schedule or record maintenance on site segments
- Herbicide: ``input`` logs with weather, product and acreage quantities
- Mowing, Watering: ``activity`` logs

Forms are looked up by id through the factory registry.
"""

from scd_riparian.quick_forms.base import (
    InvalidSubmissionError,
    RiparianMaintenanceForm,
    SubmissionResult,
)
from scd_riparian.quick_forms.factory import (
    RIPARIAN_HERBICIDE,
    RIPARIAN_MOWING,
    RIPARIAN_WATERING,
    get_quick_form,
    get_quick_form_class,
    list_quick_forms,
    register_quick_form,
)

__all__ = [
    "RIPARIAN_HERBICIDE",
    "RIPARIAN_MOWING",
    "RIPARIAN_WATERING",
    "InvalidSubmissionError",
    "RiparianMaintenanceForm",
    "SubmissionResult",
    "get_quick_form",
    "get_quick_form_class",
    "list_quick_forms",
    "register_quick_form",
]
