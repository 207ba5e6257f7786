"""
Configuration Defaults - Single source of truth for all default values.

Every repair the config validator performs substitutes a value from this
module. Per-projection tables are keyed by EPSG code.

Organization:
    - ProjectionDefaults: supported projections and their envelopes
    - ViewDefaults: zoom ranges, default zoom / center per projection
    - BasemapDefaults: basemap ids and flags valid per projection
    - MapDefaults: the full default map features document
    - LayerDefaults: layer types, entry types, initial settings
    - ServiceDefaults: external service URLs and HTTP timeouts
    - QueryDefaults: feature query tuning
    - AppDefaults: application-level settings

Usage:
    from config.defaults import ProjectionDefaults, MapDefaults

    if projection not in ProjectionDefaults.VALID_PROJECTION_CODES:
        projection = ProjectionDefaults.DEFAULT_PROJECTION

    document = MapDefaults.default_document()
"""

import copy
from typing import Any, Dict


# =============================================================================
# PROJECTION DEFAULTS
# =============================================================================

class ProjectionDefaults:
    """
    Supported map projections.

    3978 is the Canada Atlas Lambert (LCC) projection, 3857 is Web Mercator.
    Envelopes are (min, max) in longitude / latitude degrees and are
    exclusive bounds for a map center.
    """

    LCC = 3978
    WEB_MERCATOR = 3857

    VALID_PROJECTION_CODES = [3978, 3857]
    DEFAULT_PROJECTION = 3978

    VALID_MAP_CENTER = {
        3857: {"long": (-180.0, 180.0), "lat": (-90.0, 90.0)},
        3978: {"long": (-140.0, -60.0), "lat": (40.0, 90.0)},
    }

    # [minX, minY, maxX, maxY]
    MAP_EXTENTS = {
        3857: [-180.0, 0.0, 80.0, 84.0],
        3978: [-150.0, -10.0, -30.0, 90.0],
    }


# =============================================================================
# VIEW DEFAULTS
# =============================================================================

class ViewDefaults:
    """Zoom ranges and initial view per projection."""

    # Initial zoom range (inclusive)
    ZOOM_RANGE = (0, 28)

    # minZoom / maxZoom range (inclusive)
    MIN_MAX_ZOOM_RANGE = (0, 50)
    MIN_ZOOM = 0
    MAX_ZOOM = 50

    MAP_ZOOM_LEVEL = {
        3857: 3.5,
        3978: 4.5,
    }

    # [long, lat]
    MAP_CENTER = {
        3857: [-90.0, 65.0],
        3978: [-90.0, 60.0],
    }

    ENABLE_ROTATION = True
    ROTATION = 0


# =============================================================================
# BASEMAP DEFAULTS
# =============================================================================

class BasemapDefaults:
    """Basemap choices valid for each projection."""

    VALID_BASEMAP_ID = ["transport", "osm", "simple", "nogeom", "shaded", "imagery", "labeled"]

    BASEMAP_ID = {
        3857: VALID_BASEMAP_ID,
        3978: VALID_BASEMAP_ID,
    }
    BASEMAP_SHADED = {
        3857: [True, False],
        3978: [True, False],
    }
    BASEMAP_LABELED = {
        3857: [True, False],
        3978: [True, False],
    }

    DEFAULT_BASEMAP_ID = "transport"
    DEFAULT_SHADED = True
    DEFAULT_LABELED = True


# =============================================================================
# SERVICE DEFAULTS
# =============================================================================

class ServiceDefaults:
    """External services used by readers and layers."""

    GEOCORE_URL = "https://geocore.api.geo.ca"
    GEOLOCATOR_URL = "https://geolocator.api.geo.ca?keys=geonames,nominatim,locate"
    PROXY_URL = "https://maps.canada.ca/wmsproxy/ws/wmsproxy/executeFromProxy"

    METADATA_TIMEOUT_SECONDS = 30.0
    QUERY_TIMEOUT_SECONDS = 30.0


# =============================================================================
# QUERY DEFAULTS
# =============================================================================

class QueryDefaults:
    """Feature query tuning."""

    # Tolerance (degrees) used for point queries on in-memory vector layers
    POINT_TOLERANCE_DEGREES = 0.01

    HOVER_DEBOUNCE_MS = 200
    MAX_FEATURE_COUNT = 1000


# =============================================================================
# LAYER DEFAULTS
# =============================================================================

class LayerDefaults:
    """Default initial settings for layer entries."""

    CONTROLS = {
        "highlight": True,
        "hover": True,
        "opacity": True,
        "query": True,
        "remove": True,
        "table": True,
        "visibility": True,
        "zoom": True,
    }

    STATES = {
        "visible": True,
        "opacity": 1.0,
        "hoverable": True,
        "queryable": True,
    }

    GEOCORE_ID_SUFFIX_LENGTH = 8


# =============================================================================
# SCHEMA DEFAULTS
# =============================================================================

class SchemaDefaults:
    """Versioned map configuration schema."""

    ACCEPTED_SCHEMA_VERSIONS = ["1.0"]
    SCHEMA_VERSION = "1.0"
    SCHEMA_PATH = "schemas/map-config-1.0.json"

    VALID_LANGUAGES = ["en", "fr"]
    DEFAULT_LANGUAGE = "en"
    VALID_THEMES = ["dark", "light", "geo.ca"]
    VALID_INTERACTIONS = ["static", "dynamic"]


# =============================================================================
# MAP DEFAULTS
# =============================================================================

class MapDefaults:
    """
    The default map features document.

    Recipient values win over these only where the raw configuration
    explicitly carries the key.
    """

    HIGHLIGHT_COLOR = "black"

    DOCUMENT: Dict[str, Any] = {
        "map": {
            "basemapOptions": {
                "basemapId": BasemapDefaults.DEFAULT_BASEMAP_ID,
                "shaded": BasemapDefaults.DEFAULT_SHADED,
                "labeled": BasemapDefaults.DEFAULT_LABELED,
            },
            "interaction": "dynamic",
            "listOfGeoviewLayerConfig": [],
            "highlightColor": HIGHLIGHT_COLOR,
            "viewSettings": {
                "zoom": ViewDefaults.MAP_ZOOM_LEVEL[ProjectionDefaults.DEFAULT_PROJECTION],
                "center": ViewDefaults.MAP_CENTER[ProjectionDefaults.DEFAULT_PROJECTION],
                "enableRotation": ViewDefaults.ENABLE_ROTATION,
                "rotation": ViewDefaults.ROTATION,
                "minZoom": ViewDefaults.MIN_ZOOM,
                "maxZoom": ViewDefaults.MAX_ZOOM,
                "maxExtent": ProjectionDefaults.MAP_EXTENTS[ProjectionDefaults.DEFAULT_PROJECTION],
                "projection": ProjectionDefaults.DEFAULT_PROJECTION,
            },
            "extraOptions": {},
        },
        "theme": "geo.ca",
        "displayLanguage": SchemaDefaults.DEFAULT_LANGUAGE,
        "navBar": ["zoom", "fullscreen", "home", "basemap-select"],
        "footerBar": {
            "tabs": {
                "core": ["legend", "layers", "details", "data-table"],
                "custom": [],
            },
            "collapsed": True,
        },
        "components": ["north-arrow", "overview-map"],
        "appBar": {"tabs": {"core": ["geolocator"]}},
        "overviewMap": {"hideOnZoom": 0},
        "corePackages": [],
        "externalPackages": [],
        "serviceUrls": {
            "geocoreUrl": ServiceDefaults.GEOCORE_URL,
            "geolocatorUrl": ServiceDefaults.GEOLOCATOR_URL,
            "proxyUrl": ServiceDefaults.PROXY_URL,
        },
        "globalSettings": {
            "canRemoveSublayers": True,
            "disabledLayerTypes": [],
        },
        "suportedLanguages": ["en", "fr"],
        "schemaVersionUsed": SchemaDefaults.SCHEMA_VERSION,
    }

    @classmethod
    def default_document(cls) -> Dict[str, Any]:
        """Return a deep copy of the default document (safe to mutate)."""
        return copy.deepcopy(cls.DOCUMENT)


# =============================================================================
# APP DEFAULTS
# =============================================================================

class AppDefaults:
    """Application-level settings."""

    DEBUG_MODE = False
    LOG_LEVEL = "INFO"
    ENVIRONMENT = "dev"
