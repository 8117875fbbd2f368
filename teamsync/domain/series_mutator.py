"""Edit and delete actions on a clicked occurrence of an event series.

Every action is computed as a ``WriteSet`` first (pure) and applied to the
event store afterwards with ``apply_writes``. For recurring series the caller
must choose a scope:

- ``this-only``: the clicked date becomes an exception of the series; an edit
  additionally creates an independent single event carrying the new fields.
- ``this-and-future``: the series is bounded to end the day before the
  clicked date and, for edits, a new series starts at the clicked date. The
  new series keeps the later exception dates when its pattern is unchanged.
  When the clicked date is the anchor the series is changed or deleted in
  place.

Series without recurrence skip the scope choice and are changed directly.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Callable, Optional, Union

from ..core.date_utils import previous_day
from ..exceptions import ScopeRequiredError, SeriesNotFoundError, StoreWriteError
from ..models import (
    CalendarEvent,
    EditScope,
    EventDraft,
    EventInstance,
    OccurrenceRef,
    RecurrenceType,
    StoreWrite,
    WriteOp,
    WriteSet,
    new_event_id,
)
from ..stores.base import BatchEventStore, EventStore

logger = logging.getLogger(__name__)

SeriesLookup = Union[Mapping[str, CalendarEvent], Callable[[str], Optional[CalendarEvent]]]
Clicked = Union[EventInstance, OccurrenceRef]


def series_index(events: list[CalendarEvent]) -> dict[str, CalendarEvent]:
    """Index stored series by id for use as a ``SeriesLookup``."""
    return {event.id: event for event in events}


def _resolve(lookup: SeriesLookup, clicked: Clicked) -> tuple[CalendarEvent, OccurrenceRef]:
    ref = clicked.ref if isinstance(clicked, EventInstance) else clicked
    if isinstance(lookup, Mapping):
        series = lookup.get(ref.series_id)
    else:
        series = lookup(ref.series_id)
    if series is None:
        raise SeriesNotFoundError(ref.series_id)
    return series, ref


def _require_scope(series: CalendarEvent, scope: Optional[EditScope]) -> EditScope:
    if scope is None:
        raise ScopeRequiredError(
            f"Series {series.id!r} repeats {series.recurrence.value}; "
            "choose 'this-only' or 'this-and-future'"
        )
    return EditScope(scope)


def _with_exception(series: CalendarEvent, ref: OccurrenceRef) -> CalendarEvent:
    exceptions = list(series.exception_dates)
    if ref.occurrence_date not in exceptions:
        exceptions.append(ref.occurrence_date)
    return series.model_copy(update={"exception_dates": exceptions}, deep=True)


def _bounded(series: CalendarEvent, ref: OccurrenceRef) -> CalendarEvent:
    ends_on = previous_day(ref.occurrence_date)
    return series.model_copy(update={"recurrence_ends_on": ends_on}, deep=True)


def _updated_in_place(series: CalendarEvent, edited: EventDraft) -> CalendarEvent:
    """Apply the form to an existing record, keeping its identity."""
    rebuilt = edited.build_event(
        event_id=series.id,
        created_by=series.created_by,
        fallback_date=series.date,
    )
    if rebuilt.is_recurring:
        rebuilt.exception_dates = list(series.exception_dates)
    return rebuilt


def apply_delete(
    series_lookup: SeriesLookup,
    clicked: Clicked,
    scope: Optional[EditScope] = None,
) -> WriteSet:
    """Compute the writes for deleting a clicked occurrence.

    Args:
        series_lookup: Mapping or callable resolving a series id to its record
        clicked: The clicked instance (or its occurrence ref)
        scope: Required for recurring series, ignored otherwise

    Raises:
        SeriesNotFoundError: If the series does not exist
        ScopeRequiredError: If the series repeats and no scope was given
    """
    series, ref = _resolve(series_lookup, clicked)

    if not series.is_recurring:
        logger.info("Deleting single event %s", series.id)
        return WriteSet((StoreWrite.delete(series.id),))

    chosen = _require_scope(series, scope)
    if chosen == EditScope.THIS_ONLY:
        logger.info("Excluding %s from series %s", ref.occurrence_date, series.id)
        return WriteSet((StoreWrite.put(_with_exception(series, ref)),))

    if ref.occurrence_date == series.date:
        logger.info("Deleting series %s from its anchor date", series.id)
        return WriteSet((StoreWrite.delete(series.id),))

    bounded = _bounded(series, ref)
    logger.info("Ending series %s on %s", series.id, bounded.recurrence_ends_on)
    return WriteSet((StoreWrite.put(bounded),))


def apply_edit(
    series_lookup: SeriesLookup,
    clicked: Clicked,
    edited: EventDraft,
    scope: Optional[EditScope] = None,
    id_factory: Callable[[], str] = new_event_id,
) -> WriteSet:
    """Compute the writes for editing a clicked occurrence.

    Args:
        series_lookup: Mapping or callable resolving a series id to its record
        clicked: The clicked instance (or its occurrence ref)
        edited: Validated form fields; an empty ``date`` means the clicked date
        scope: Required for recurring series, ignored otherwise
        id_factory: Source of fresh series ids for forked records

    Raises:
        SeriesNotFoundError: If the series does not exist
        ScopeRequiredError: If the series repeats and no scope was given
        EventValidationError: If the edited fields cannot form an event
    """
    series, ref = _resolve(series_lookup, clicked)

    if not series.is_recurring:
        logger.info("Updating single event %s", series.id)
        return WriteSet((StoreWrite.put(_updated_in_place(series, edited)),))

    chosen = _require_scope(series, scope)
    if chosen == EditScope.THIS_ONLY:
        detached = edited.build_event(
            event_id=id_factory(),
            created_by=series.created_by,
            fallback_date=ref.occurrence_date,
            recurrence=RecurrenceType.NONE,
        )
        logger.info(
            "Detaching %s from series %s as event %s", ref.occurrence_date, series.id, detached.id
        )
        return WriteSet(
            (StoreWrite.put(_with_exception(series, ref)), StoreWrite.put(detached))
        )

    if ref.occurrence_date == series.date:
        logger.info("Updating series %s in place from its anchor date", series.id)
        return WriteSet((StoreWrite.put(_updated_in_place(series, edited)),))

    bounded = _bounded(series, ref)
    successor = edited.build_event(
        event_id=id_factory(),
        created_by=series.created_by,
        fallback_date=ref.occurrence_date,
    )
    if successor.recurrence == series.recurrence:
        # Occurrences already removed from the tail stay removed
        successor.exception_dates = [d for d in series.exception_dates if d >= successor.date]
    logger.info(
        "Splitting series %s at %s; continuing as %s", series.id, ref.occurrence_date, successor.id
    )
    return WriteSet((StoreWrite.put(bounded), StoreWrite.put(successor)))


async def apply_writes(store: EventStore, write_set: WriteSet) -> int:
    """Apply a write set to the event store.

    Stores implementing ``apply_batch`` apply the set atomically. Otherwise
    writes are applied in order with no rollback: if a later write fails the
    store keeps the earlier ones.

    Returns:
        Number of writes applied

    Raises:
        StoreWriteError: On the first failing write, with ``applied`` set to
            the number of writes that completed before it
    """
    if isinstance(store, BatchEventStore):
        await store.apply_batch(write_set)
        return len(write_set)

    applied = 0
    for write in write_set.writes:
        try:
            if write.op == WriteOp.PUT and write.event is not None:
                await store.put_event(write.event)
            else:
                await store.delete_event(write.event_id)
        except StoreWriteError as exc:
            exc.applied = applied
            if applied:
                logger.error(
                    "Write %d/%d (%s %s) failed; store left partially updated",
                    applied + 1,
                    len(write_set),
                    write.op.value,
                    write.event_id,
                )
            raise
        applied += 1
    return applied
