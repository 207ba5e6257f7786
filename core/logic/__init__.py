"""
Core Business Logic Package.

Contains business logic that operates on pure data models.
Separated from models to maintain clean architecture.

Exports:
    State transitions: can_layer_transition, is_layer_terminal, is_layer_settled, is_status_at_least
    Calculations: all_status_at_least, all_in_error, count_error_status, aggregate_parent_status
    Layer tree: build_layer_path, iter_entries, iter_leaf_entries, find_entry, child_paths
"""

# State transitions
from .transitions import (
    can_layer_transition,
    get_layer_terminal_states,
    get_layer_settled_states,
    get_layer_active_states,
    is_layer_terminal,
    is_layer_settled,
    is_status_at_least
)

# Calculations
from .calculations import (
    all_status_at_least,
    all_in_error,
    count_error_status,
    aggregate_parent_status
)

# Layer tree navigation
from .layer_tree import (
    build_layer_path,
    iter_entries,
    iter_leaf_entries,
    find_entry,
    child_paths,
    collect_layer_paths,
    index_entries
)

__all__ = [
    # State transitions
    'can_layer_transition',
    'get_layer_terminal_states',
    'get_layer_settled_states',
    'get_layer_active_states',
    'is_layer_terminal',
    'is_layer_settled',
    'is_status_at_least',

    # Calculations
    'all_status_at_least',
    'all_in_error',
    'count_error_status',
    'aggregate_parent_status',

    # Layer tree
    'build_layer_path',
    'iter_entries',
    'iter_leaf_entries',
    'find_entry',
    'child_paths',
    'collect_layer_paths',
    'index_entries'
]
