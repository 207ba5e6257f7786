"""
Core Map Components.

Contains the building blocks shared by readers, validation, layers and
layer sets.

Structure:
    models/: Pure data structures (no business logic)
    logic/: Business logic separated from models
    events.py: Per-map event bus with structural scopes
    errors.py: Error codes and classification

Exports:
    EventBus: Synchronous publish/subscribe bus
    EventScope: Structural event namespace
"""

# Make subpackages available first (no circular dependencies)
from . import models
from . import logic

from .events import EventBus, EventScope

__all__ = [
    'EventBus',
    'EventScope',
    'models',
    'logic'
]
