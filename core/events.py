# ============================================================================
# EVENT BUS
# ============================================================================
# STATUS: Core - Per-map publish/subscribe
# PURPOSE: Decouple validation, lifecycle, layer sets and consumer store
# CREATED: 12 OCT 2026
# ============================================================================
"""
Event Bus.

Synchronous publish/subscribe service. One bus is created per map context
and passed by reference to the components that need it.

Dispatch rules:
    - emit() runs every matching handler to completion before returning
    - handlers of one event run in registration order
    - a handler bound to a scope receives events emitted in that scope or
      in any descendant scope
    - an unscoped handler receives unscoped events only
    - handlers added or removed during a dispatch do not change that dispatch,
      except that a removed handler is not called

Scopes are structural objects, not string prefixes:

    map_scope = EventScope("mapOne")
    legends_scope = map_scope.child("legends")
    bus.off_all(map_scope)   # removes handlers of mapOne and legends

Usage:
    from core.events import EventBus, EventScope
    from core.models.enums import EventType

    bus = EventBus()
    scope = EventScope("mapOne")
    bus.on(EventType.LAYER_STATUS_CHANGED, handle_status, scope=scope)
    bus.emit(EventType.LAYER_STATUS_CHANGED, payload, scope=scope)

Exports:
    EventScope: Structural event namespace
    Subscription: Handle returned by on() / once()
    EventBus: The bus
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Union

from util_logger import LoggerFactory, ComponentType
from core.models.enums import EventType

EventHandler = Callable[[Any], None]
EventKey = Union[EventType, str]


class EventScope:
    """
    Node of a scope tree (map instance, then optional sub-scopes).

    Scopes compare by identity: two maps with the same id string still get
    distinct scopes.
    """

    def __init__(self, name: str, parent: Optional['EventScope'] = None):
        self.name = name
        self.parent = parent

    def child(self, name: str) -> 'EventScope':
        """Create a sub-scope."""
        return EventScope(name, parent=self)

    def contains(self, other: Optional['EventScope']) -> bool:
        """True if other is this scope or one of its descendants."""
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    @property
    def path(self) -> str:
        if self.parent is None:
            return self.name
        return f"{self.parent.path}/{self.name}"

    def __repr__(self) -> str:
        return f"EventScope({self.path!r})"


@dataclass(eq=False)
class Subscription:
    """One registered handler."""

    event_type: str
    handler: EventHandler
    scope: Optional[EventScope] = None
    once: bool = False
    handler_name: Optional[str] = None
    active: bool = True

    def matches(self, event_type: str, scope: Optional[EventScope]) -> bool:
        if not self.active or self.event_type != event_type:
            return False
        if self.scope is None:
            return scope is None
        return self.scope.contains(scope)


def _key(event_type: EventKey) -> str:
    return event_type.value if isinstance(event_type, EventType) else str(event_type)


class EventBus:
    """
    Synchronous, scoped publish/subscribe bus.

    Not thread-safe: all calls come from the event loop thread.
    """

    def __init__(self, name: str = "default"):
        self.name = name
        self._subscriptions: List[Subscription] = []
        self.logger = LoggerFactory.create_logger(ComponentType.EVENT_BUS, f"EventBus.{name}")

    # ========================================================================
    # SUBSCRIBE / UNSUBSCRIBE
    # ========================================================================

    def on(
        self,
        event_type: EventKey,
        handler: EventHandler,
        scope: Optional[EventScope] = None,
        handler_name: Optional[str] = None
    ) -> Subscription:
        """
        Register a handler.

        Args:
            event_type: Event identifier
            handler: Callable receiving the payload
            scope: Optional scope; None for unscoped events
            handler_name: Optional label used in logs

        Returns:
            Subscription handle (pass to off_subscription)
        """
        subscription = Subscription(
            event_type=_key(event_type),
            handler=handler,
            scope=scope,
            handler_name=handler_name or getattr(handler, '__qualname__', repr(handler)),
        )
        self._subscriptions.append(subscription)
        return subscription

    def once(
        self,
        event_type: EventKey,
        handler: EventHandler,
        scope: Optional[EventScope] = None,
        handler_name: Optional[str] = None
    ) -> Subscription:
        """Register a handler removed after its first call."""
        subscription = self.on(event_type, handler, scope=scope, handler_name=handler_name)
        subscription.once = True
        return subscription

    def off(
        self,
        event_type: EventKey,
        handler: Optional[EventHandler] = None,
        scope: Optional[EventScope] = None
    ) -> int:
        """
        Remove handlers of one event type.

        Args:
            event_type: Event identifier
            handler: Only this handler (all handlers when None)
            scope: Only handlers bound to exactly this scope

        Returns:
            Number of handlers removed
        """
        key = _key(event_type)
        removed = [
            s for s in self._subscriptions
            if s.event_type == key
            and (handler is None or s.handler == handler)
            and s.scope is scope
        ]
        self._remove(removed)
        return len(removed)

    def off_subscription(self, subscription: Subscription) -> None:
        """Remove one subscription."""
        self._remove([subscription])

    def off_all(self, scope: EventScope) -> int:
        """
        Remove every handler bound to a scope or any of its descendants.

        Args:
            scope: Scope to clear (typically a map scope on teardown)

        Returns:
            Number of handlers removed
        """
        removed = [s for s in self._subscriptions if s.scope is not None and scope.contains(s.scope)]
        self._remove(removed)
        if removed:
            self.logger.debug(f"Removed {len(removed)} handler(s) under scope {scope.path}")
        return len(removed)

    def _remove(self, subscriptions: List[Subscription]) -> None:
        for subscription in subscriptions:
            subscription.active = False
        self._subscriptions = [s for s in self._subscriptions if s.active]

    # ========================================================================
    # EMIT
    # ========================================================================

    def emit(
        self,
        event_type: EventKey,
        payload: Any = None,
        scope: Optional[EventScope] = None
    ) -> int:
        """
        Dispatch a payload to every matching handler, in registration order.

        A failing handler is logged and does not stop the dispatch.

        Args:
            event_type: Event identifier
            payload: Object handed to each handler
            scope: Scope the event belongs to

        Returns:
            Number of handlers called
        """
        key = _key(event_type)
        targets = [s for s in self._subscriptions if s.matches(key, scope)]
        called = 0
        for subscription in targets:
            # Removed by an earlier handler of this dispatch
            if not subscription.active:
                continue
            if subscription.once:
                self._remove([subscription])
            try:
                subscription.handler(payload)
            except Exception as e:
                self.logger.error(
                    f"Handler {subscription.handler_name} failed on {key}: {e}",
                    exc_info=True
                )
            called += 1
        return called

    def handler_count(self, event_type: Optional[EventKey] = None, scope: Optional[EventScope] = None) -> int:
        """Number of active handlers, optionally filtered by type and scope subtree."""
        subscriptions = self._subscriptions
        if event_type is not None:
            key = _key(event_type)
            subscriptions = [s for s in subscriptions if s.event_type == key]
        if scope is not None:
            subscriptions = [s for s in subscriptions if s.scope is not None and scope.contains(s.scope)]
        return len(subscriptions)
