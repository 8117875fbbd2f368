"""Calendar domain logic: recurrence expansion, series mutation, visibility."""

from .recurrence_expander import expand, expand_series, instances_by_day
from .series_mutator import apply_delete, apply_edit, apply_writes, series_index
from .visibility_filter import available_tags, filter_instances, is_visible, visible_series

__all__ = [
    "apply_delete",
    "apply_edit",
    "apply_writes",
    "available_tags",
    "expand",
    "expand_series",
    "filter_instances",
    "instances_by_day",
    "is_visible",
    "series_index",
    "visible_series",
]
