"""Data models and schemas.

Defines the data structures used throughout the service:
- Term, User, Asset: Farm entities read and written by the repositories
- LogTemplate, QuantityEntry: Log field values produced by the quick forms
- ScheduleWindow: Start, end and week interval of a recurring schedule
- Placemark, SiteDocument: Parsed KML site folder
- Submissions: pydantic models validating HTTP request bodies
"""

from scd_riparian.models.entities import Asset, ModelValidationError, Term, User
from scd_riparian.models.log import LogTemplate, QuantityEntry
from scd_riparian.models.placemark import Placemark, SiteDocument
from scd_riparian.models.schedule import ScheduleWindow

__all__ = [
    "Asset",
    "LogTemplate",
    "ModelValidationError",
    "Placemark",
    "QuantityEntry",
    "ScheduleWindow",
    "SiteDocument",
    "Term",
    "User",
]
