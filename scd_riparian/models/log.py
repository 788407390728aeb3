"""Data model for maintenance logs.

A ``LogTemplate`` is produced once per quick-form submission and either
cloned per scheduled occurrence or persisted as a single record.  Each
template carries an ordered tuple of ``QuantityEntry`` measurements.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

from scd_riparian.core.constants import (
    LOG_STATUS_DONE,
    LOG_STATUS_PENDING,
    QUANTITY_TYPE_MATERIAL,
    QUANTITY_TYPE_STANDARD,
)
from scd_riparian.models.entities import ModelValidationError, Term

_LOG_STATUSES = frozenset({LOG_STATUS_PENDING, LOG_STATUS_DONE})
_QUANTITY_TYPES = frozenset({QUANTITY_TYPE_STANDARD, QUANTITY_TYPE_MATERIAL})


@dataclass(frozen=True, slots=True)
class QuantityEntry:
    """A labelled numeric measurement attached to a log.

    Attributes:
        label: Display label (e.g. ``"Time taken"``).
        value: Numeric value, or ``None`` when left blank.
        units: Unit term (``unit`` vocabulary), or ``None``.
        measure: Measure kind (``"time"``, ``"count"``, ``"ratio"``, ...).
        quantity_type: ``"standard"`` or ``"material"``.
        material_type: Material term for material quantities, or ``None``.
    """

    label: str
    value: float | None = None
    units: Term | None = None
    measure: str | None = None
    quantity_type: str = QUANTITY_TYPE_STANDARD
    material_type: Term | None = None

    def __post_init__(self) -> None:
        if self.quantity_type not in _QUANTITY_TYPES:
            raise ModelValidationError(
                "QuantityEntry",
                "quantity_type",
                self.quantity_type,
                f"must be one of {', '.join(sorted(_QUANTITY_TYPES))}",
            )

    def to_dict(self) -> dict[str, object]:
        return {
            "label": self.label,
            "value": self.value,
            "units": self.units.to_dict() if self.units else None,
            "measure": self.measure,
            "quantity_type": self.quantity_type,
            "material_type": self.material_type.to_dict() if self.material_type else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> QuantityEntry:
        value = data.get("value")
        units = data.get("units")
        material = data.get("material_type")
        measure = data.get("measure")
        return cls(
            label=str(data.get("label", "")),
            value=float(value) if value is not None else None,  # type: ignore[arg-type]
            units=Term.from_dict(units) if isinstance(units, dict) else None,
            measure=str(measure) if measure is not None else None,
            quantity_type=str(data.get("quantity_type", QUANTITY_TYPE_STANDARD)),
            material_type=Term.from_dict(material) if isinstance(material, dict) else None,
        )


@dataclass(frozen=True, slots=True)
class LogTemplate:
    """Field values for one log record.

    Attributes:
        log_type: Log bundle (``"activity"``, ``"input"``).
        name: Log name (e.g. ``"Cedar Creek mowing"``).
        status: ``"pending"`` or ``"done"``.
        owner: User id of the crew lead.
        category: Log category term id, or ``None``.
        location: Ordered tuple of location asset ids.
        notes: Free-text notes.
        quantities: Ordered quantity entries.
        timestamp: When the activity happens / happened.
        revision_log_message: Revision message stored with the log.
    """

    log_type: str
    name: str = ""
    status: str = LOG_STATUS_PENDING
    owner: str | None = None
    category: str | None = None
    location: tuple[str, ...] = ()
    notes: str = ""
    quantities: tuple[QuantityEntry, ...] = field(default_factory=tuple)
    timestamp: datetime | None = None
    revision_log_message: str = ""

    def __post_init__(self) -> None:
        if not self.log_type:
            raise ModelValidationError("LogTemplate", "log_type", self.log_type, "must not be empty")
        if self.status not in _LOG_STATUSES:
            raise ModelValidationError(
                "LogTemplate",
                "status",
                self.status,
                f"must be one of {', '.join(sorted(_LOG_STATUSES))}",
            )

    def with_timestamp(self, timestamp: datetime, *, revision_log_message: str = "") -> LogTemplate:
        """Return a copy with a new timestamp (and optionally revision message)."""
        return replace(
            self,
            timestamp=timestamp,
            revision_log_message=revision_log_message or self.revision_log_message,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "log_type": self.log_type,
            "name": self.name,
            "status": self.status,
            "owner": self.owner,
            "category": self.category,
            "location": list(self.location),
            "notes": self.notes,
            "quantities": [q.to_dict() for q in self.quantities],
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "revision_log_message": self.revision_log_message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> LogTemplate:
        """Deserialise from a dict payload.

        Raises:
            TypeError: If ``location`` or ``quantities`` are not lists.
            ValueError: If ``timestamp`` is not ISO 8601.
        """
        location_raw = data.get("location", [])
        if not isinstance(location_raw, list | tuple):
            msg = f"location must be a list, got {type(location_raw).__name__}"
            raise TypeError(msg)
        quantities_raw = data.get("quantities", [])
        if not isinstance(quantities_raw, list | tuple):
            msg = f"quantities must be a list, got {type(quantities_raw).__name__}"
            raise TypeError(msg)

        timestamp_raw = data.get("timestamp")
        owner = data.get("owner")
        category = data.get("category")
        return cls(
            log_type=str(data.get("log_type", "")),
            name=str(data.get("name", "")),
            status=str(data.get("status", LOG_STATUS_PENDING)),
            owner=str(owner) if owner is not None else None,
            category=str(category) if category is not None else None,
            location=tuple(str(a) for a in location_raw),
            notes=str(data.get("notes", "") or ""),
            quantities=tuple(QuantityEntry.from_dict(q) for q in quantities_raw),
            timestamp=datetime.fromisoformat(str(timestamp_raw)) if timestamp_raw else None,
            revision_log_message=str(data.get("revision_log_message", "")),
        )
