"""Quantity field schema and quantity entry helpers shared by the quick forms."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from scd_riparian.core.constants import QUANTITY_TYPE_STANDARD, VOCABULARY_UNIT
from scd_riparian.models.log import QuantityEntry

if TYPE_CHECKING:
    from scd_riparian.models.entities import Term
    from scd_riparian.storage.base import FarmRepository


def quantity_field(
    title: str,
    *,
    measure: str | None,
    units: str | None,
    step: float,
    default_value: float | None = None,
    min_value: float | None = 0,
) -> dict[str, Any]:
    """Return the schema of a numeric quantity field with fixed measure/units."""
    return {
        "type": "quantity",
        "title": title,
        "measure": measure,
        "units": units,
        "min": min_value,
        "step": step,
        "default_value": default_value,
    }


def build_quantity(
    repository: FarmRepository,
    label: str,
    value: float | None,
    *,
    measure: str | None = None,
    unit_name: str | None = None,
    quantity_type: str = QUANTITY_TYPE_STANDARD,
    material_type: Term | None = None,
) -> QuantityEntry:
    """Build a ``QuantityEntry``, creating the unit term on first use."""
    units = repository.create_or_load_term(unit_name, VOCABULARY_UNIT) if unit_name else None
    return QuantityEntry(
        label=label,
        value=value,
        units=units,
        measure=measure,
        quantity_type=quantity_type,
        material_type=material_type,
    )
