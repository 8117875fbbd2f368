"""Event store and user directory implementations."""

from .base import BatchEventStore, EventStore, UserDirectory
from .local_store import LocalJsonStore, default_team
from .remote_store import RemoteStore

__all__ = [
    "BatchEventStore",
    "EventStore",
    "LocalJsonStore",
    "RemoteStore",
    "UserDirectory",
    "default_team",
]
