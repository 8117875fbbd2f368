"""Export stored event series as an iCalendar document.

One VEVENT per series. Times are written as floating local times (no
TZID), matching the naive dates the calendar stores. Recurring series carry
an RRULE with the series' frequency and, when bounded, an UNTIL date;
exception dates become EXDATE entries.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from typing import Optional

from icalendar import Calendar, Event as ICalEvent

from .domain.visibility_filter import visible_series
from .models import CalendarEvent, User

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "TeamSync"
ICS_CONTENT_TYPE = "text/calendar"
EXPORT_FILENAME = "teamsync-calendar.ics"


def _at(day: datetime.date, hhmm: str) -> datetime.datetime:
    hours, minutes = hhmm.split(":")
    return datetime.datetime.combine(day, datetime.time(int(hours), int(minutes)))


def _to_vevent(event: CalendarEvent, stamp: datetime.datetime) -> ICalEvent:
    vevent = ICalEvent()
    vevent.add("uid", event.id)
    vevent.add("dtstamp", stamp)
    start = _at(event.date, event.start_time)
    vevent.add("dtstart", start)
    vevent.add("dtend", _at(event.date, event.end_time))
    vevent.add("summary", event.title)
    vevent.add("description", event.description or "")

    if event.is_recurring:
        rule: dict = {"freq": event.recurrence.value.upper()}
        if event.recurrence_ends_on is not None:
            # Inclusive last day; end-of-day so the final occurrence is kept
            rule["until"] = _at(event.recurrence_ends_on, "23:59")
        vevent.add("rrule", rule)
        for exception in sorted(event.exception_dates):
            vevent.add("exdate", _at(exception, event.start_time))

    if event.tags:
        vevent.add("categories", list(event.tags))
    return vevent


def generate_ics(
    events: Iterable[CalendarEvent],
    app_name: str = DEFAULT_APP_NAME,
    now: Optional[datetime.datetime] = None,
) -> str:
    """Serialize series to an ICS document.

    Args:
        events: Stored series (not expanded instances)
        app_name: Used in PRODID ``-//{app_name}//Calendar//EN``
        now: DTSTAMP value, defaults to the current UTC time

    Returns:
        The document text with CRLF line endings
    """
    stamp = now or datetime.datetime.now(datetime.timezone.utc)
    cal = Calendar()
    cal.add("prodid", f"-//{app_name}//Calendar//EN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")

    count = 0
    for event in events:
        cal.add_component(_to_vevent(event, stamp))
        count += 1

    logger.debug("Generated ICS with %d events", count)
    return cal.to_ical().decode("utf-8")


def export_for_user(
    events: Iterable[CalendarEvent],
    user: User,
    app_name: str = DEFAULT_APP_NAME,
    now: Optional[datetime.datetime] = None,
) -> str:
    """ICS of the series ``user`` may see: everything for admins, tagged series otherwise."""
    return generate_ics(visible_series(events, user), app_name=app_name, now=now)
