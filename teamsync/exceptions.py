"""Exception hierarchy for TeamSync.

Every error raised by the calendar core derives from ``TeamSyncError`` so the
HTTP layer and the CLI can handle failures in one place and map them to
status codes.
"""

from __future__ import annotations


class TeamSyncError(Exception):
    """Base exception for all TeamSync errors."""


class EventValidationError(TeamSyncError):
    """An event or edited form failed validation.

    Raised when:
    - ``date``, ``recurrenceEndsOn`` or an exception date is not ``YYYY-MM-DD``
    - ``startTime``/``endTime`` is not ``HH:mm``
    - a required field (title, date, times) is missing

    Raised before any store write is produced. Should result in HTTP 400.
    """


class SeriesNotFoundError(TeamSyncError):
    """The series referenced by a clicked occurrence does not exist.

    Should result in HTTP 404.
    """

    def __init__(self, series_id: str):
        super().__init__(f"Event series {series_id!r} not found")
        self.series_id = series_id


class ScopeRequiredError(TeamSyncError):
    """An edit or delete on a recurring series was requested without a scope.

    Recurring series must never be mutated without an explicit
    ``this-only``/``this-and-future`` choice. Should result in HTTP 409.
    """


class AuthenticationError(TeamSyncError):
    """Credentials did not match any user. Should result in HTTP 401."""


class PermissionDeniedError(TeamSyncError):
    """The current user's role does not allow the action.

    Raised when a non-admin tries to create, edit or delete events or manage
    team members. Should result in HTTP 403.
    """


class StoreError(TeamSyncError):
    """Base class for event store and user directory failures.

    No retry happens at this layer; callers decide what to do.
    Should result in HTTP 502.
    """


class StoreReadError(StoreError):
    """Listing events or users from the store failed."""


class StoreWriteError(StoreError):
    """A put or delete against the store failed.

    ``applied`` counts the writes of the failing write set that completed
    before the failure. Multi-write operations have no rollback, so a
    non-zero value means the store is partially updated.
    """

    def __init__(self, message: str, applied: int = 0):
        super().__init__(message)
        self.applied = applied


class EventParseError(TeamSyncError):
    """The natural-language event parser could not produce a result."""


class UserValidationError(TeamSyncError):
    """A new team member is incomplete or reuses an existing username.

    Should result in HTTP 400.
    """
