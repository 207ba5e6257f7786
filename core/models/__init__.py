"""
Core Data Models Package.

Contains pure data structures without business logic.
All business logic is in the core.logic package.

Exports:
    LayerStatus, QueryStatus, GeoviewLayerType, LayerEntryType, QueryType, EventType: Enums
    GeoviewLayerConfig, ConfigNode and entry node types: Layer config tree
    MapFeaturesConfig, ViewSettings, BasemapOptions, Diagnostic, ValidationResult: Map config
    ResultSetEntry, PENDING: Layer-set results
    *Event: Event bus payloads
"""

# Enums
from .enums import (
    LayerStatus,
    QueryStatus,
    GeoviewLayerType,
    LayerEntryType,
    QueryType,
    EventType,
    DisplayLanguage
)

# Layer config tree
from .layer_config import (
    LocalizedString,
    FeatureInfoConfig,
    SourceConfig,
    LayerControls,
    LayerStates,
    InitialSettings,
    GroupLayerEntryConfig,
    VectorLayerEntryConfig,
    VectorTileLayerEntryConfig,
    RasterLayerEntryConfig,
    ServiceResolvedEntryConfig,
    ConfigNode,
    LeafEntryConfig,
    GeoviewLayerConfig,
    create_localized_string
)

# Map features config
from .map_config import (
    BasemapOptions,
    ViewSettings,
    MapConfig,
    MapFeaturesConfig,
    Diagnostic,
    ValidationResult
)

# Layer-set results
from .results import PENDING, ResultSetEntry, FeatureInfoEntry, LegendResult

# Event payloads
from .events import (
    LayerStatusChangedEvent,
    LayerNameChangedEvent,
    LayerErrorEvent,
    LayerAddedEvent,
    LayerRemovedEvent,
    LayerSetUpdatedEvent,
    QueryEndedEvent,
    StoreUpdateEvent,
    MapConfigLoadedEvent
)

__all__ = [
    # Enums
    'LayerStatus',
    'QueryStatus',
    'GeoviewLayerType',
    'LayerEntryType',
    'QueryType',
    'EventType',
    'DisplayLanguage',

    # Layer config tree
    'LocalizedString',
    'FeatureInfoConfig',
    'SourceConfig',
    'LayerControls',
    'LayerStates',
    'InitialSettings',
    'GroupLayerEntryConfig',
    'VectorLayerEntryConfig',
    'VectorTileLayerEntryConfig',
    'RasterLayerEntryConfig',
    'ServiceResolvedEntryConfig',
    'ConfigNode',
    'LeafEntryConfig',
    'GeoviewLayerConfig',
    'create_localized_string',

    # Map config
    'BasemapOptions',
    'ViewSettings',
    'MapConfig',
    'MapFeaturesConfig',
    'Diagnostic',
    'ValidationResult',

    # Results
    'PENDING',
    'ResultSetEntry',
    'FeatureInfoEntry',
    'LegendResult',

    # Events
    'LayerStatusChangedEvent',
    'LayerNameChangedEvent',
    'LayerErrorEvent',
    'LayerAddedEvent',
    'LayerRemovedEvent',
    'LayerSetUpdatedEvent',
    'QueryEndedEvent',
    'StoreUpdateEvent',
    'MapConfigLoadedEvent',
]
