"""Pydantic models for HTTP request bodies.

- ``MaintenanceSubmission``: a quick form submission (schedule or record)
- ``HerbicideSubmission``: adds weather, product and acreage fields
- ``ScheduleData``: start, end and week interval of a schedule
- ``SegmentDraft`` / ``SiteImportSubmission``: confirmed KML import
- ``QuickFormConfiguration``: per-form configuration

Models accept numeric ids as well as strings and ignore unknown keys,
so that form-encoded and JSON clients can post the same shapes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from scd_riparian.utils.helpers import checked_checkboxes

SCHEDULE_MODE = "schedule"
RECORD_MODE = "record"

WindDirection = Literal[
    "North",
    "South",
    "East",
    "West",
    "North East",
    "North West",
    "South East",
    "South West",
]
WIND_DIRECTIONS: tuple[str, ...] = get_args(WindDirection)

RateUnit = Literal["ml/acre", "qts/acre", "gal/acre"]
RATE_UNITS: tuple[str, ...] = get_args(RateUnit)

_MODEL_CONFIG = ConfigDict(
    extra="ignore",
    coerce_numbers_to_str=True,
    str_strip_whitespace=True,
)


def format_validation_errors(exc: Any) -> str:
    """Render a pydantic ``ValidationError`` as one readable line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Quick form submissions
# ---------------------------------------------------------------------------


class ScheduleData(BaseModel):
    """Scheduling section of a maintenance submission.

    Attributes:
        start_date: First occurrence.
        end_date: Latest allowed occurrence (inclusive).
        week_interval: Weeks between occurrences.
    """

    model_config = _MODEL_CONFIG

    start_date: datetime
    end_date: datetime
    week_interval: int = Field(default=2, ge=1)


class MaintenanceSubmission(BaseModel):
    """A riparian maintenance quick form submission.

    Attributes:
        parent: Site asset id.
        asset: Checked sub-site asset ids; a ``{id: checked}`` mapping
            is accepted as well.
        owner: Crew lead user id.
        schedule: ``"schedule"`` (recurring) or ``"record"`` (single log).
        schedule_data: Required in schedule mode.
        done: Record mode: whether the work is completed.
        timestamp: Record mode: date of the work; defaults to midnight
            today in the submitter's timezone.
        time_taken: Record mode: hours spent.
        number_of_technicians: Record mode: crew size.
        percent_of_site: Record mode: share of the site treated.
        notes: Record mode: free-text notes.
    """

    model_config = _MODEL_CONFIG

    parent: str = Field(min_length=1)
    asset: list[str] = Field(min_length=1)
    owner: str = Field(min_length=1)
    schedule: Literal["schedule", "record"] = SCHEDULE_MODE
    schedule_data: ScheduleData | None = None
    done: bool = True
    timestamp: datetime | None = None
    time_taken: float | None = Field(default=None, ge=0)
    number_of_technicians: float | None = Field(default=1, ge=0)
    percent_of_site: float | None = Field(default=100, ge=0)
    notes: str = ""

    @field_validator("asset", mode="before")
    @classmethod
    def _checked_assets(cls, value: Any) -> list[str]:
        return checked_checkboxes(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _schedule_data_required(self) -> MaintenanceSubmission:
        if self.schedule == SCHEDULE_MODE and self.schedule_data is None:
            raise PydanticCustomError(
                "schedule_data_missing",
                "schedule_data is required when schedule is 'schedule'",
            )
        return self

    @property
    def is_scheduled(self) -> bool:
        return self.schedule == SCHEDULE_MODE


class HerbicideSubmission(MaintenanceSubmission):
    """Herbicide submission: weather, product and acreage in record mode.

    Attributes:
        air_temp: Air temperature in °F.
        wind_speed: Wind speed in mph.
        wind_direction: One of ``WIND_DIRECTIONS``; required in record mode.
        material: Herbicide product (``material_type`` term id).
        total_applied: Total product applied, in quarts.
        concentration: Product concentration, in oz/gal.
        acres_treated: Area treated, in acres.
        rate_per_acre: Application rate.
        rate_per_acre_unit: Unit of ``rate_per_acre``.
    """

    air_temp: float | None = None
    wind_speed: float | None = Field(default=None, ge=0)
    wind_direction: WindDirection | None = None
    material: str | None = None
    total_applied: float | None = Field(default=None, ge=0)
    concentration: float | None = Field(default=None, ge=0)
    acres_treated: float | None = Field(default=None, ge=0)
    rate_per_acre: float | None = Field(default=None, ge=0)
    rate_per_acre_unit: RateUnit = "ml/acre"

    @field_validator("wind_direction", "material", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        return None if value == "" else value

    @model_validator(mode="after")
    def _wind_direction_required(self) -> HerbicideSubmission:
        if self.schedule == RECORD_MODE and self.wind_direction is None:
            msg = "wind_direction is required when recording a single herbicide log"
            raise ValueError(msg)
        return self


# ---------------------------------------------------------------------------
# Site import
# ---------------------------------------------------------------------------


class SegmentDraft(BaseModel):
    """One editable segment of a KML import preview.

    Attributes:
        name: Segment asset name.
        notes: Free-text notes.
        geometry: WKT geometry; blank means "no geometry".
        confirm: Whether the segment should be created.
    """

    model_config = _MODEL_CONFIG

    name: str = Field(min_length=1)
    notes: str = ""
    geometry: str | None = None
    confirm: bool = True

    @field_validator("notes", mode="before")
    @classmethod
    def _notes_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("geometry")
    @classmethod
    def _valid_wkt(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        from shapely import wkt
        from shapely.errors import ShapelyError

        try:
            wkt.loads(value)
        except (ShapelyError, ValueError) as exc:
            msg = f"geometry is not valid WKT: {exc}"
            raise ValueError(msg) from exc
        return value


class SiteImportSubmission(BaseModel):
    """Confirmed KML import: the site name and its segment drafts.

    Attributes:
        site_name: Name of the parent site asset.
        segments: One draft per parsed placemark.
        source_file: Name of the uploaded KML/KMZ file.
    """

    model_config = _MODEL_CONFIG

    site_name: str = Field(min_length=1)
    segments: list[SegmentDraft] = Field(default_factory=list)
    source_file: str = ""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class QuickFormConfiguration(BaseModel):
    """Per-form configuration.

    Attributes:
        log_category: ``log_category`` term id applied to every log.
    """

    model_config = _MODEL_CONFIG

    log_category: str | None = None

    @field_validator("log_category", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        return None if value == "" else value
