"""Role-based visibility and tag/user filtering of expanded instances."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from ..models import CalendarEvent, EventInstance, User

logger = logging.getLogger(__name__)


def is_visible(
    instance: EventInstance,
    current_user: User,
    tag_filter: Collection[str] = (),
    user_filter: Collection[str] = (),
) -> bool:
    """Check one instance against role visibility and the active filters.

    Args:
        instance: Expanded instance
        current_user: Viewing user; admins see every instance
        tag_filter: If non-empty, the instance needs at least one of these tags
        user_filter: If non-empty, the instance needs at least one of these
            users tagged

    Returns:
        True if the instance should be shown
    """
    event = instance.event
    if not event.visible_to(current_user):
        return False
    if tag_filter and not set(event.tags).intersection(tag_filter):
        return False
    if user_filter and not set(event.tagged_user_ids).intersection(user_filter):
        return False
    return True


def filter_instances(
    instances: Iterable[EventInstance],
    current_user: User,
    tag_filter: Collection[str] = (),
    user_filter: Collection[str] = (),
) -> list[EventInstance]:
    """Return the subset of ``instances`` visible to ``current_user``.

    The role check and both filters are independent AND conditions; empty
    filter sets impose no restriction.
    """
    tags = frozenset(tag_filter)
    users = frozenset(user_filter)
    visible = [i for i in instances if is_visible(i, current_user, tags, users)]
    logger.debug(
        "Visibility filter for %s (%s): %d visible, tags=%s users=%s",
        current_user.id,
        current_user.role.value,
        len(visible),
        sorted(tags),
        sorted(users),
    )
    return visible


def visible_series(events: Iterable[CalendarEvent], current_user: User) -> list[CalendarEvent]:
    """Stored series the user may see (used for ICS export)."""
    return [e for e in events if e.visible_to(current_user)]


def available_tags(events: Iterable[CalendarEvent]) -> list[str]:
    """Sorted set of every tag used by any series, for the filter menu."""
    tags: set[str] = set()
    for event in events:
        tags.update(event.tags)
    return sorted(tags)
