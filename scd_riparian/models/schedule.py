"""Schedule window for recurring maintenance logs.

Constructed from user input at submission time, consumed immediately,
never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from scd_riparian.models.entities import ModelValidationError

DAYS_PER_WEEK = 7


@dataclass(frozen=True, slots=True)
class ScheduleWindow:
    """A start/end pair and the number of weeks between occurrences.

    ``start <= end`` is the caller's contract; a window with
    ``start > end`` is still representable and simply has no
    occurrences.

    Attributes:
        start: First occurrence.
        end: Latest allowed occurrence (inclusive).
        week_interval: Weeks between occurrences (>= 1).
    """

    start: datetime
    end: datetime
    week_interval: int = 2

    def __post_init__(self) -> None:
        if isinstance(self.week_interval, bool) or not isinstance(self.week_interval, int):
            raise ModelValidationError(
                "ScheduleWindow", "week_interval", self.week_interval, "must be an integer"
            )
        if self.week_interval < 1:
            raise ModelValidationError(
                "ScheduleWindow", "week_interval", self.week_interval, "must be >= 1 (weeks)"
            )
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise ModelValidationError(
                "ScheduleWindow",
                "end",
                self.end,
                "start and end must both be timezone-aware or both naive",
            )

    @property
    def step(self) -> timedelta:
        """Time between occurrences.

        Raises:
            OverflowError: If the interval exceeds what ``timedelta`` can hold.
        """
        return timedelta(days=DAYS_PER_WEEK * self.week_interval)

    @property
    def aligned_end(self) -> datetime:
        """The end expressed in the start's timezone."""
        if self.start.tzinfo is None or self.end.tzinfo is self.start.tzinfo:
            return self.end
        return self.end.astimezone(self.start.tzinfo)

    @property
    def is_empty(self) -> bool:
        """Whether the window produces no occurrences (``start > end``)."""
        return self.start > self.aligned_end
