"""Recurring log scheduler.

Expands one ``LogTemplate`` into one log per occurrence of a
``ScheduleWindow``: occurrence *i* is stamped ``start + i * interval``
weeks, for every occurrence that is not later than ``end``.

Generation is pure.  Persistence is delegated to an injected
``create_log`` callable and happens sequentially; when a call fails the
error propagates and earlier occurrences stay committed (there is no
rollback across the batch).

Week arithmetic happens in the start timestamp's own timezone, so a
12:00 start stays at 12:00 local time across daylight-saving changes.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from datetime import datetime

    from scd_riparian.models.log import LogTemplate
    from scd_riparian.models.schedule import ScheduleWindow

logger = logging.getLogger("scd_riparian.activities.schedule_logs")

T = TypeVar("T")

_ONE_WEEK = timedelta(weeks=1)


def count_occurrences(window: ScheduleWindow) -> int:
    """Return ``floor((end - start) / step) + 1``, or 0 when ``start > end``.

    Counted in whole weeks, so an interval longer than any representable
    ``timedelta`` still yields the single start occurrence.
    """
    if window.is_empty:
        return 0
    weeks = (window.aligned_end - window.start) // _ONE_WEEK
    return weeks // window.week_interval + 1


def iter_occurrence_times(window: ScheduleWindow) -> Iterator[datetime]:
    """Yield each occurrence timestamp in ascending order."""
    for index in range(count_occurrences(window)):
        yield window.start + timedelta(weeks=index * window.week_interval)


def schedule_occurrences(
    template: LogTemplate,
    window: ScheduleWindow,
    *,
    revision_log_message: str = "",
) -> list[LogTemplate]:
    """Clone *template* once per occurrence of *window*.

    Every clone is identical to *template* except for its timestamp
    (and, when given, its revision log message).

    Returns:
        Ordered list of templates; empty when ``window.start > window.end``.
    """
    return [
        template.with_timestamp(ts, revision_log_message=revision_log_message)
        for ts in iter_occurrence_times(window)
    ]


def create_scheduled_logs(
    template: LogTemplate,
    window: ScheduleWindow,
    *,
    create_log: Callable[[LogTemplate], T],
    revision_log_message: str = "",
) -> list[T]:
    """Generate the occurrences of *window* and persist each one in order.

    Args:
        template: Field values shared by every occurrence.
        window: Start, end and week interval.
        create_log: Persists one log and returns its result (e.g. an id).
        revision_log_message: Message recorded on every created log.

    Returns:
        The ``create_log`` results, one per occurrence.

    Raises:
        Exception: Whatever ``create_log`` raises; logs created before
            the failure are not rolled back.
    """
    occurrences = schedule_occurrences(
        template, window, revision_log_message=revision_log_message
    )

    if not occurrences:
        logger.warning(
            "Schedule window produced no occurrences | log=%s | start=%s | end=%s",
            template.name,
            window.start.isoformat(),
            window.end.isoformat(),
        )
        return []

    results: list[T] = []
    for index, occurrence in enumerate(occurrences):
        results.append(create_log(occurrence))
        logger.debug(
            "Scheduled log created | log=%s | occurrence=%d/%d | timestamp=%s",
            occurrence.name,
            index + 1,
            len(occurrences),
            occurrence.timestamp.isoformat() if occurrence.timestamp else "",
        )

    logger.info(
        "Scheduled logs created | log=%s | count=%d | interval_weeks=%d",
        template.name,
        len(results),
        window.week_interval,
    )
    return results
