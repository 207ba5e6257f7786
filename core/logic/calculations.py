"""
Layer Status Calculations.

Pure functions over layer statuses used by the lifecycle and the layer
manager. No side effects, no event emission.

Exports:
    all_status_at_least: Every status at or after a lifecycle point
    all_in_error: Every status is ERROR
    count_error_status: Number of ERROR statuses
    aggregate_parent_status: Parent status derived from its children
"""

from typing import Iterable, Optional

from ..models.enums import LayerStatus
from .transitions import is_layer_settled, is_status_at_least


def all_status_at_least(statuses: Iterable[LayerStatus], reference: LayerStatus) -> bool:
    """
    Check that every status is at or after a reference status.

    Args:
        statuses: Statuses to check
        reference: Lifecycle point to compare against

    Returns:
        True if all statuses reached the reference (True for none)
    """
    return all(is_status_at_least(status, reference) for status in statuses)


def all_in_error(statuses: Iterable[LayerStatus]) -> bool:
    """
    Check that every status is ERROR.

    Args:
        statuses: Statuses to check

    Returns:
        True if at least one status was given and all are ERROR
    """
    statuses = list(statuses)
    return bool(statuses) and all(status == LayerStatus.ERROR for status in statuses)


def count_error_status(statuses: Iterable[LayerStatus]) -> int:
    """Count ERROR statuses."""
    return sum(1 for status in statuses if status == LayerStatus.ERROR)


def aggregate_parent_status(child_statuses: Iterable[LayerStatus]) -> Optional[LayerStatus]:
    """
    Derive a group status from the status of its reachable children.

    Args:
        child_statuses: Status of every reachable child

    Returns:
        None while a child is still loading,
        ERROR when every child failed (or there are no children),
        LOADED otherwise
    """
    child_statuses = list(child_statuses)
    if not child_statuses:
        return LayerStatus.ERROR
    if not all(is_layer_settled(status) for status in child_statuses):
        return None
    if all_in_error(child_statuses):
        return LayerStatus.ERROR
    return LayerStatus.LOADED
