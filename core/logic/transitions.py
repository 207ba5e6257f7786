"""
State Transition Logic for Layer Paths.

Contains business rules for valid layer status transitions.
Separated from data models for clean architecture.

Exports:
    can_layer_transition: Check if a layer status transition is valid
    get_layer_terminal_states: Get terminal states for layers
    get_layer_settled_states: Get states that end a loading attempt
    get_layer_active_states: Get states still moving through the lifecycle
    is_layer_terminal: Check if a layer is in a terminal state
    is_layer_settled: Check if a layer finished loading (loaded or error)
    is_status_at_least: Compare two statuses on the lifecycle order

Dependencies:
    core.models.enums: LayerStatus
"""

from typing import Dict, List

from ..models.enums import LayerStatus


# Lifecycle order; ERROR sits after LOADED so that nothing follows it
_STATUS_WEIGHT: Dict[LayerStatus, int] = {
    LayerStatus.NEW_INSTANCE: 10,
    LayerStatus.LOADING: 20,
    LayerStatus.PROCESSED: 30,
    LayerStatus.LOADED: 40,
    LayerStatus.ERROR: 50,
}


def can_layer_transition(current: LayerStatus, target: LayerStatus) -> bool:
    """
    Check if a layer path can move from current to target status.

    Args:
        current: Current layer status
        target: Target layer status

    Returns:
        True if transition is valid, False otherwise
    """
    # Same status is always allowed (no-op)
    if current == target:
        return True

    # Define valid transitions
    transitions = {
        LayerStatus.NEW_INSTANCE: [LayerStatus.LOADING, LayerStatus.ERROR],
        LayerStatus.LOADING: [LayerStatus.PROCESSED, LayerStatus.ERROR],
        LayerStatus.PROCESSED: [LayerStatus.LOADED, LayerStatus.ERROR],
        LayerStatus.LOADED: [LayerStatus.ERROR],  # Render / query failure after load
        LayerStatus.ERROR: []  # Terminal state
    }

    return target in transitions.get(current, [])


def get_layer_terminal_states() -> List[LayerStatus]:
    """
    Get list of terminal states for layers.

    Returns:
        List of terminal layer statuses
    """
    return [LayerStatus.ERROR]


def get_layer_settled_states() -> List[LayerStatus]:
    """
    Get list of states that end a loading attempt.

    A parent entry waits for every reachable child to be in one of these.

    Returns:
        List of settled layer statuses
    """
    return [LayerStatus.LOADED, LayerStatus.ERROR]


def get_layer_active_states() -> List[LayerStatus]:
    """
    Get list of active (still loading) states for layers.

    Returns:
        List of active layer statuses
    """
    return [
        LayerStatus.NEW_INSTANCE,
        LayerStatus.LOADING,
        LayerStatus.PROCESSED
    ]


def is_layer_terminal(status: LayerStatus) -> bool:
    """
    Check if a layer status is terminal.

    Args:
        status: Layer status to check

    Returns:
        True if status is terminal, False otherwise
    """
    return status in get_layer_terminal_states()


def is_layer_settled(status: LayerStatus) -> bool:
    """
    Check if a layer status ends the loading attempt.

    Args:
        status: Layer status to check

    Returns:
        True for LOADED or ERROR
    """
    return status in get_layer_settled_states()


def is_status_at_least(status: LayerStatus, reference: LayerStatus) -> bool:
    """
    Check if a status is at or after a reference point of the lifecycle.

    Args:
        status: Status to compare
        reference: Reference status

    Returns:
        True if status comes at or after reference
    """
    return _STATUS_WEIGHT[LayerStatus(status)] >= _STATUS_WEIGHT[LayerStatus(reference)]
