"""Recurrence expansion for the month calendar view.

Turns stored event series into the concrete per-day instances that fall in a
requested month. Expansion is pure: the input records are never mutated and
expanding the same records twice yields identical results.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, rrule, rruleset

from ..core.date_utils import at_noon, month_bounds, month_prefix
from ..models import (
    CalendarEvent,
    EventInstance,
    OccurrenceRef,
    RecurrenceType,
    RecurringSchedule,
    SingleSchedule,
)

logger = logging.getLogger(__name__)

_FREQUENCIES = {
    RecurrenceType.DAILY: DAILY,
    RecurrenceType.WEEKLY: WEEKLY,
    RecurrenceType.MONTHLY: MONTHLY,
}


def build_ruleset(schedule: RecurringSchedule) -> rruleset:
    """Build the dateutil ruleset for a recurring schedule.

    Every datetime is pinned to noon of its date. Weekly rules repeat on the
    anchor's weekday and monthly rules on the anchor's day of month; a month
    without that day (e.g. the 31st in February) produces no occurrence, there
    is no clamping to the last day of the month.
    """
    rules = rruleset()
    until = at_noon(schedule.ends_on) if schedule.ends_on is not None else None
    rules.rrule(
        rrule(_FREQUENCIES[schedule.pattern], dtstart=at_noon(schedule.anchor_date), until=until)
    )
    for exception in schedule.exceptions:
        rules.exdate(at_noon(exception))
    return rules


def _materialize(series: CalendarEvent, occurrence: datetime.date) -> EventInstance:
    ref = OccurrenceRef(series_id=series.id, occurrence_date=occurrence)
    copy = series.model_copy(update={"id": ref.instance_id, "date": occurrence}, deep=True)
    return EventInstance(ref=ref, event=copy)


def expand_series(series: CalendarEvent, year: int, month: int) -> list[EventInstance]:
    """Expand one series into its instances within ``(year, month)``."""
    first, last = month_bounds(year, month)
    schedule = series.schedule

    if isinstance(schedule, SingleSchedule):
        if series.date_iso.startswith(month_prefix(year, month)):
            return [_materialize(series, schedule.date)]
        return []

    if schedule.anchor_date > last:
        return []

    if schedule.ends_on is not None and schedule.ends_on < schedule.anchor_date:
        logger.debug(
            "Series %s ends (%s) before its anchor (%s); no occurrences",
            series.id,
            schedule.ends_on,
            schedule.anchor_date,
        )
        return []

    window_start = at_noon(max(first, schedule.anchor_date))
    window_end = at_noon(last)
    occurrences = build_ruleset(schedule).between(window_start, window_end, inc=True)
    return [_materialize(series, occ.date()) for occ in occurrences]


def expand(events: Iterable[CalendarEvent], year: int, month: int) -> list[EventInstance]:
    """Materialize every series into its instances for one calendar month.

    Args:
        events: Stored event series
        year: Target year
        month: Target month (1..12)

    Returns:
        Instances in input-series order, each series' instances by date

    Raises:
        ValueError: If ``month`` is outside 1..12
    """
    month_bounds(year, month)
    instances: list[EventInstance] = []
    series_count = 0
    for series in events:
        series_count += 1
        instances.extend(expand_series(series, year, month))

    logger.debug(
        "Expanded %d series into %d instances for %s",
        series_count,
        len(instances),
        month_prefix(year, month),
    )
    return instances


def instances_by_day(instances: Iterable[EventInstance]) -> dict[datetime.date, list[EventInstance]]:
    """Group instances into calendar cells, each cell ordered by start time."""
    cells: dict[datetime.date, list[EventInstance]] = {}
    for instance in instances:
        cells.setdefault(instance.date, []).append(instance)
    for cell in cells.values():
        cell.sort(key=lambda inst: inst.event.start_time)
    return cells
