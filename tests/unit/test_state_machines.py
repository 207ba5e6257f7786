"""
Exhaustive layer status transition tests.

Anti-overfitting: Every (current, target) enum pair is tested.
No cherry-picked transitions — all combinations covered.
"""

import pytest

from core.models.enums import LayerStatus
from core.logic.transitions import (
    can_layer_transition,
    get_layer_terminal_states,
    get_layer_active_states,
    is_layer_terminal,
    is_layer_settled,
    is_status_at_least,
)
from core.errors import ErrorClassification, ErrorCode, create_error_response, is_retryable
from core.logic.calculations import aggregate_parent_status, all_in_error, all_status_at_least, count_error_status


# ============================================================================
# DATA: Expected transition map (source of truth for tests)
# ============================================================================

_LAYER_TRANSITIONS = {
    LayerStatus.NEW_INSTANCE: {LayerStatus.LOADING, LayerStatus.ERROR},
    LayerStatus.LOADING: {LayerStatus.PROCESSED, LayerStatus.ERROR},
    LayerStatus.PROCESSED: {LayerStatus.LOADED, LayerStatus.ERROR},
    LayerStatus.LOADED: {LayerStatus.ERROR},
    LayerStatus.ERROR: set(),
}

ALL_LAYER_STATUSES = list(LayerStatus)

_LAYER_PAIRS = [
    (current, target) for current in ALL_LAYER_STATUSES for target in ALL_LAYER_STATUSES
]


def _expected_layer_transition(current: LayerStatus, target: LayerStatus) -> bool:
    """Compute expected result for a layer transition."""
    if current == target:
        return True
    return target in _LAYER_TRANSITIONS.get(current, set())


# ============================================================================
# TRANSITIONS
# ============================================================================

class TestLayerTransitions:

    @pytest.mark.parametrize("current,target", _LAYER_PAIRS,
                             ids=[f"{c.value}->{t.value}" for c, t in _LAYER_PAIRS])
    def test_transition(self, current, target):
        assert can_layer_transition(current, target) == _expected_layer_transition(current, target)

    def test_wire_values(self):
        assert [s.value for s in LayerStatus] == ["newInstance", "loading", "processed", "loaded", "error"]

    def test_error_is_only_terminal_state(self):
        assert get_layer_terminal_states() == [LayerStatus.ERROR]
        assert is_layer_terminal(LayerStatus.ERROR)
        assert not is_layer_terminal(LayerStatus.LOADED)

    def test_active_and_terminal_partition_except_loaded(self):
        active = set(get_layer_active_states())
        terminal = set(get_layer_terminal_states())
        assert active.isdisjoint(terminal)
        assert active | terminal | {LayerStatus.LOADED} == set(LayerStatus)

    @pytest.mark.parametrize("status", ALL_LAYER_STATUSES)
    def test_settled(self, status):
        assert is_layer_settled(status) == (status in (LayerStatus.LOADED, LayerStatus.ERROR))

    def test_status_order(self):
        assert is_status_at_least(LayerStatus.LOADED, LayerStatus.PROCESSED)
        assert not is_status_at_least(LayerStatus.LOADING, LayerStatus.PROCESSED)


# ============================================================================
# PARENT AGGREGATION
# ============================================================================

class TestParentAggregation:

    def test_waits_while_a_child_is_unsettled(self):
        assert aggregate_parent_status([LayerStatus.LOADED, LayerStatus.PROCESSED]) is None

    def test_loaded_when_one_child_loaded(self):
        assert aggregate_parent_status([LayerStatus.ERROR, LayerStatus.LOADED]) == LayerStatus.LOADED

    def test_error_when_every_child_failed(self):
        assert aggregate_parent_status([LayerStatus.ERROR, LayerStatus.ERROR]) == LayerStatus.ERROR

    def test_error_without_children(self):
        assert aggregate_parent_status([]) == LayerStatus.ERROR

    def test_error_helpers(self):
        statuses = [LayerStatus.ERROR, LayerStatus.LOADED, LayerStatus.ERROR]
        assert count_error_status(statuses) == 2
        assert not all_in_error(statuses)
        assert all_in_error([LayerStatus.ERROR])

    def test_all_status_at_least(self):
        assert all_status_at_least([LayerStatus.PROCESSED, LayerStatus.LOADED], LayerStatus.PROCESSED)
        assert not all_status_at_least([LayerStatus.LOADING, LayerStatus.LOADED], LayerStatus.PROCESSED)


class TestErrorClassification:

    @pytest.mark.parametrize("error_code", list(ErrorCode))
    def test_every_code_is_classified(self, error_code):
        response = create_error_response(error_code, "boom")
        assert response["error_category"] in {c.value for c in ErrorClassification}

    def test_retryable_codes(self):
        assert is_retryable(ErrorCode.METADATA_TIMEOUT)
        assert not is_retryable(ErrorCode.INVALID_LAYER_ENTRY)
        assert not is_retryable(ErrorCode.CANCELLED)

    def test_error_response_carries_context(self):
        response = create_error_response(ErrorCode.QUERY_FAILED, "query failed", layer_path="esri/0")
        assert response == {
            "success": False,
            "error_code": "QUERY_FAILED",
            "error_category": "TRANSIENT",
            "retryable": True,
            "message": "query failed",
            "layer_path": "esri/0",
        }
