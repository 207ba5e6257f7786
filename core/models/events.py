"""
Event Payload Models.

Frozen payloads carried on the event bus. One payload class per
EventType; the bus itself is payload-agnostic.

Exports:
    LayerStatusChangedEvent, LayerNameChangedEvent, LayerErrorEvent,
    LayerAddedEvent, LayerRemovedEvent, LayerSetUpdatedEvent,
    QueryEndedEvent, StoreUpdateEvent, MapConfigLoadedEvent
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.errors import ErrorCode
from .enums import LayerStatus
from .results import ResultSetEntry


@dataclass(frozen=True)
class LayerStatusChangedEvent:
    """A layer path moved to a new status."""

    layer_path: str
    layer_status: LayerStatus


@dataclass(frozen=True)
class LayerNameChangedEvent:
    """A layer path got a new display name (from metadata or the consumer)."""

    layer_path: str
    layer_name: Optional[str]


@dataclass(frozen=True)
class LayerErrorEvent:
    """Notification-channel payload for a failed layer path."""

    layer_path: str
    error_code: ErrorCode
    message: str
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LayerAddedEvent:
    """A GeoView layer finished its lifecycle (loaded or not)."""

    geoview_layer_id: str
    layer_status: LayerStatus


@dataclass(frozen=True)
class LayerRemovedEvent:
    """A layer path (and its subtree) was removed from the map."""

    layer_path: str


@dataclass(frozen=True)
class LayerSetUpdatedEvent:
    """A layer set gained or lost a layer path."""

    layer_set: str
    layer_path: str
    action: str  # 'added' | 'removed'


@dataclass(frozen=True)
class QueryEndedEvent:
    """
    Every participating path of a query round has settled.

    Emitted at most once per round; result_set holds entry snapshots.
    """

    layer_set: str
    round_id: int
    result_set: Dict[str, ResultSetEntry]


@dataclass(frozen=True)
class StoreUpdateEvent:
    """
    Propagation of one result-set entry to the consumer store.

    entry is None when the store must drop the layer path.
    """

    layer_set: str
    layer_path: str
    kind: str
    entry: Optional[ResultSetEntry]


@dataclass(frozen=True)
class MapConfigLoadedEvent:
    """A map features configuration was validated and applied."""

    map_id: str
    repaired: bool
    layer_count: int
