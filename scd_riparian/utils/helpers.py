"""Shared helper functions used by the quick forms and the importer."""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

_DIGITS_RE = re.compile(r"(\d+)")


def checked_checkboxes(value: Any) -> list[str]:
    """Return the selected keys of a checkbox-group value.

    Accepts either a list of selected keys or a mapping of
    ``key -> selected`` where a falsy value (``False``, ``0``, ``""``,
    ``None``) means "not selected".  Keys keep their input order.
    """
    if value is None:
        return []
    if isinstance(value, dict):
        return [str(k) for k, selected in value.items() if selected]
    if isinstance(value, str | int):
        return [str(value)]
    return [str(v) for v in value if v not in (None, "", False)]


def natural_sort_key(value: str) -> list[int | str]:
    """Key for "natural" ordering: ``"crew 2"`` sorts before ``"crew 10"``."""
    return [int(part) if part.isdigit() else part.lower() for part in _DIGITS_RE.split(value)]


def localize(value: datetime, zone: ZoneInfo) -> datetime:
    """Attach *zone* to a naive datetime; aware datetimes are returned as-is."""
    if value.tzinfo is not None:
        return value
    return value.replace(tzinfo=zone)
