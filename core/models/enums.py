"""
Pure Enumeration Types for the Map Core.

Defines layer statuses, layer types, entry types and the other closed
vocabularies exposed to consumers. No business logic - pure type
definitions only.

Exports:
    LayerStatus: Layer lifecycle status (the only status wire values)
    QueryStatus: Per-path feature query status
    GeoviewLayerType: Layer type discriminator (geoviewLayerType / schemaTag)
    LayerEntryType: Entry kind discriminator (entryType)
    QueryType: Feature query kinds
    EventType: Event bus event identifiers
    DisplayLanguage: Supported languages
"""

from enum import Enum


class LayerStatus(str, Enum):
    """
    Valid status values for a layer path.

    State transitions:
    - NEW_INSTANCE -> LOADING -> PROCESSED -> LOADED (normal flow)
    - any state -> ERROR (metadata failure, invalid entry, cancellation)
    """

    NEW_INSTANCE = "newInstance"
    LOADING = "loading"
    PROCESSED = "processed"
    LOADED = "loaded"
    ERROR = "error"


class QueryStatus(str, Enum):
    """Status of the last feature query sent for one layer path."""

    PROCESSING = "processing"
    PROCESSED = "processed"
    ERROR = "error"


class GeoviewLayerType(str, Enum):
    """
    Layer type discriminator.

    Carried as geoviewLayerType on a root config and stamped as schemaTag
    on every entry below it.
    """

    CSV = "CSV"
    ESRI_DYNAMIC = "esriDynamic"
    ESRI_FEATURE = "esriFeature"
    ESRI_IMAGE = "esriImage"
    IMAGE_STATIC = "imageStatic"
    GEOJSON = "GeoJSON"
    GEOPACKAGE = "GeoPackage"
    XYZ_TILES = "xyzTiles"
    VECTOR_TILES = "vectorTiles"
    OGC_FEATURE = "ogcFeature"
    WFS = "ogcWfs"
    WMS = "ogcWms"
    GEOCORE = "geoCore"


class LayerEntryType(str, Enum):
    """Entry kind discriminator (entryType)."""

    VECTOR = "vector"
    VECTOR_TILE = "vector-tile"
    RASTER_TILE = "raster-tile"
    RASTER_IMAGE = "raster-image"
    GROUP = "group"
    GEOCORE = "geoCore"


class QueryType(str, Enum):
    """Kinds of feature query a layer can answer."""

    AT_PIXEL = "at_pixel"
    AT_LONG_LAT = "at_long_lat"
    ALL = "all"


class EventType(str, Enum):
    """Event identifiers used on the event bus."""

    LAYER_STATUS_CHANGED = "layer/status-changed"
    LAYER_NAME_CHANGED = "layer/name-changed"
    LAYER_ERROR = "layer/error"
    LAYER_ADDED = "layer/added"
    LAYER_REMOVED = "layer/removed"
    LAYER_SET_UPDATED = "layer-set/updated"
    LAYER_SET_QUERY_ENDED = "layer-set/query-ended"
    STORE_UPDATE = "store/update"
    MAP_CONFIG_LOADED = "map/config-loaded"


class DisplayLanguage(str, Enum):
    """Supported display languages."""

    EN = "en"
    FR = "fr"
