"""Data models for TeamSync events, users and expanded calendar instances.

Persisted records keep the camelCase field names of the stored JSON
(``startTime``, ``taggedUserIds``, ``exceptionDates`` ...); the models expose
snake_case attributes and accept either spelling on input.
"""

import datetime
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .core.date_utils import format_iso_date, is_valid_time, parse_iso_date
from .exceptions import EventValidationError


class RecurrenceType(str, Enum):
    """Repeat cadence of an event series."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EventColor(str, Enum):
    """Fixed display palette."""

    INDIGO = "indigo"
    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    AMBER = "amber"
    PURPLE = "purple"
    PINK = "pink"
    SLATE = "slate"


DEFAULT_COLOR = EventColor.INDIGO


class UserRole(str, Enum):
    """Team member role."""

    ADMIN = "ADMIN"
    USER = "USER"


class EditScope(str, Enum):
    """How far an edit or delete on a recurring series propagates."""

    THIS_ONLY = "this-only"
    THIS_AND_FUTURE = "this-and-future"


def new_event_id() -> str:
    """Return a fresh series identifier (never contains an underscore)."""
    return str(uuid.uuid4())


def resolve_color(
    color: Optional[str],
    admin_color: Optional[str] = None,
    user_color: Optional[str] = None,
) -> EventColor:
    """Resolve the effective display color of an event.

    The unified ``color`` wins, then the legacy ``adminColor`` and
    ``userColor`` fields; values outside the palette are ignored and the
    baseline color is used when nothing usable is present.
    """
    for candidate in (color, admin_color, user_color):
        if not candidate:
            continue
        try:
            return EventColor(candidate)
        except ValueError:
            continue
    return DEFAULT_COLOR


def _strict_date(value: Any) -> Any:
    if isinstance(value, str):
        return parse_iso_date(value)
    return value


def _strict_time(value: Any) -> Any:
    if not is_valid_time(value):
        raise ValueError(f"Invalid time {value!r}; expected HH:mm")
    return value


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


class _RecordModel(BaseModel):
    """Base for models persisted as camelCase JSON records."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SingleSchedule(BaseModel):
    """Schedule of a non-repeating event."""

    kind: Literal["single"] = "single"
    date: datetime.date


class RecurringSchedule(BaseModel):
    """Schedule of a repeating series."""

    kind: Literal["recurring"] = "recurring"
    anchor_date: datetime.date
    pattern: RecurrenceType
    ends_on: Optional[datetime.date] = None
    exceptions: frozenset[datetime.date] = frozenset()


Schedule = Annotated[Union[SingleSchedule, RecurringSchedule], Field(discriminator="kind")]


class CalendarEvent(_RecordModel):
    """A stored event series.

    ``date`` is the anchor (first occurrence). ``recurrence_ends_on`` and
    ``exception_dates`` only matter when ``recurrence`` is not ``none``.
    """

    id: str = Field(default_factory=new_event_id, description="Series ID")
    title: str = Field(..., min_length=1, description="Event title")
    description: str = Field(default="", description="Free-text description")
    date: datetime.date = Field(..., description="Anchor date")
    start_time: str = Field(default="09:00", description="Start time HH:mm")
    end_time: str = Field(default="10:00", description="End time HH:mm")
    tagged_user_ids: list[str] = Field(default_factory=list)
    created_by: str = Field(default="", description="Creator user ID")

    color: Optional[EventColor] = Field(default=None, description="Effective display color")
    # Legacy per-role colors, kept so older records round-trip unchanged
    admin_color: Optional[str] = None
    user_color: Optional[str] = None

    recurrence: RecurrenceType = RecurrenceType.NONE
    recurrence_ends_on: Optional[datetime.date] = None
    exception_dates: list[datetime.date] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    type: Literal["event"] = "event"

    @field_validator("date", "recurrence_ends_on", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Any:
        return _strict_date(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _check_times(cls, value: Any) -> Any:
        return _strict_time(value)

    @field_validator("exception_dates", mode="before")
    @classmethod
    def _parse_exception_dates(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"Invalid exception dates {value!r}; expected a list")
        return [_strict_date(v) for v in value]

    @field_validator("tagged_user_ids", "tags", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("description", mode="before")
    @classmethod
    def _none_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("recurrence", mode="before")
    @classmethod
    def _missing_recurrence(cls, value: Any) -> Any:
        return RecurrenceType.NONE if not value else value

    @field_validator("color", mode="before")
    @classmethod
    def _unknown_color(cls, value: Any) -> Any:
        if isinstance(value, EventColor):
            return value
        if isinstance(value, str) and value in {c.value for c in EventColor}:
            return value
        return None

    @model_validator(mode="after")
    def _resolve_color(self) -> "CalendarEvent":
        if self.color is None:
            self.color = resolve_color(None, self.admin_color, self.user_color)
        return self

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "CalendarEvent":
        """Validate a stored or submitted record.

        Raises:
            EventValidationError: If any field is missing or malformed.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise EventValidationError(_validation_message(exc)) from exc

    @property
    def is_recurring(self) -> bool:
        return self.recurrence != RecurrenceType.NONE

    @property
    def date_iso(self) -> str:
        return format_iso_date(self.date)

    @property
    def schedule(self) -> Union[SingleSchedule, RecurringSchedule]:
        """Tagged-union view of the series' schedule."""
        if not self.is_recurring:
            return SingleSchedule(date=self.date)
        return RecurringSchedule(
            anchor_date=self.date,
            pattern=self.recurrence,
            ends_on=self.recurrence_ends_on,
            exceptions=frozenset(self.exception_dates),
        )

    def visible_to(self, user: "User") -> bool:
        """Admins see every event; users only those they are tagged on."""
        return user.is_admin or user.id in self.tagged_user_ids


class OccurrenceRef(BaseModel):
    """Structured identity of one materialized occurrence."""

    model_config = ConfigDict(frozen=True)

    series_id: str
    occurrence_date: datetime.date

    @property
    def instance_id(self) -> str:
        """Synthetic display id ``{seriesId}_{date}``."""
        return f"{self.series_id}_{format_iso_date(self.occurrence_date)}"

    @classmethod
    def parse(cls, instance_id: str) -> "OccurrenceRef":
        """Recover the pair from a synthetic id.

        Splits on the last underscore, so a series id that itself contains
        underscores is still recovered intact.

        Raises:
            ValueError: If ``instance_id`` has no ``_YYYY-MM-DD`` suffix.
        """
        series_id, sep, date_part = instance_id.rpartition("_")
        if not sep or not series_id:
            raise ValueError(f"Not an occurrence id: {instance_id!r}")
        return cls(series_id=series_id, occurrence_date=parse_iso_date(date_part))


class EventInstance(BaseModel):
    """A series materialized on one concrete date.

    ``event`` is a copy of the series with ``date`` set to the occurrence
    date and ``id`` set to the synthetic instance id.
    """

    ref: OccurrenceRef
    event: CalendarEvent

    @property
    def id(self) -> str:
        return self.ref.instance_id

    @property
    def series_id(self) -> str:
        return self.ref.series_id

    @property
    def date(self) -> datetime.date:
        return self.ref.occurrence_date

    def to_dict(self) -> dict[str, Any]:
        """API representation: the event record plus the structured ref."""
        data = self.event.to_record()
        data["seriesId"] = self.ref.series_id
        data["occurrenceDate"] = format_iso_date(self.ref.occurrence_date)
        return data


class User(_RecordModel):
    """Team member."""

    id: str
    username: str
    name: str
    role: UserRole = UserRole.USER
    password: Optional[str] = Field(default=None, description="Plaintext credential")
    avatar_url: Optional[str] = None
    created_at: Optional[str] = None
    type: Literal["user"] = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize without the credential."""
        data = self.to_record()
        data.pop("password", None)
        return data


class EventDraft(_RecordModel):
    """Fields of the event form, used for creation and edits.

    ``date`` may be left empty on edits; the clicked occurrence date is
    used then.
    """

    title: str = Field(..., min_length=1)
    description: str = ""
    date: Optional[datetime.date] = None
    start_time: str = "09:00"
    end_time: str = "10:00"
    tagged_user_ids: list[str] = Field(default_factory=list)
    color: EventColor = DEFAULT_COLOR
    recurrence: RecurrenceType = RecurrenceType.NONE
    recurrence_ends_on: Optional[datetime.date] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("date", "recurrence_ends_on", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Any:
        return _strict_date(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _check_times(cls, value: Any) -> Any:
        return _strict_time(value)

    @field_validator("tags", mode="after")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in value:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "EventDraft":
        """Validate submitted form data.

        Raises:
            EventValidationError: If any field is missing or malformed.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise EventValidationError(_validation_message(exc)) from exc

    def build_event(
        self,
        *,
        event_id: str,
        created_by: str,
        fallback_date: Optional[datetime.date] = None,
        recurrence: Optional[RecurrenceType] = None,
    ) -> CalendarEvent:
        """Create a new series from the form.

        Args:
            event_id: Series ID for the new record
            created_by: Creator user ID
            fallback_date: Date used when the form leaves ``date`` empty
            recurrence: Override of the form's recurrence (e.g. ``none`` for
                a single-occurrence fork)

        Raises:
            EventValidationError: If neither the form nor ``fallback_date``
                provides a date.
        """
        event_date = self.date or fallback_date
        if event_date is None:
            raise EventValidationError("date: Field required")
        pattern = self.recurrence if recurrence is None else recurrence
        return CalendarEvent(
            id=event_id,
            title=self.title,
            description=self.description,
            date=event_date,
            start_time=self.start_time,
            end_time=self.end_time,
            tagged_user_ids=list(self.tagged_user_ids),
            created_by=created_by,
            color=self.color,
            recurrence=pattern,
            recurrence_ends_on=(
                self.recurrence_ends_on if pattern != RecurrenceType.NONE else None
            ),
            tags=list(self.tags),
        )


class AIEventParseResult(_RecordModel):
    """Fields extracted from a natural-language prompt; all optional."""

    title: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    description: Optional[str] = None
    tagged_user_ids: Optional[list[str]] = None
    recurrence: Optional[RecurrenceType] = None
    tags: Optional[list[str]] = None


class WriteOp(str, Enum):
    """Kind of store write."""

    PUT = "put"
    DELETE = "delete"


@dataclass(frozen=True)
class StoreWrite:
    """A single upsert or delete against the event store."""

    op: WriteOp
    event_id: str
    event: Optional[CalendarEvent] = None

    @classmethod
    def put(cls, event: CalendarEvent) -> "StoreWrite":
        return cls(op=WriteOp.PUT, event_id=event.id, event=event)

    @classmethod
    def delete(cls, event_id: str) -> "StoreWrite":
        return cls(op=WriteOp.DELETE, event_id=event_id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"op": self.op.value, "id": self.event_id}
        if self.event is not None:
            data["event"] = self.event.to_record()
        return data


@dataclass(frozen=True)
class WriteSet:
    """Ordered writes produced by one edit or delete action."""

    writes: tuple[StoreWrite, ...] = field(default_factory=tuple)

    @property
    def puts(self) -> list[CalendarEvent]:
        return [w.event for w in self.writes if w.op == WriteOp.PUT and w.event is not None]

    @property
    def deletes(self) -> list[str]:
        return [w.event_id for w in self.writes if w.op == WriteOp.DELETE]

    def __len__(self) -> int:
        return len(self.writes)

    def to_dict(self) -> dict[str, Any]:
        return {"writes": [w.to_dict() for w in self.writes]}
