# ============================================================================
# LAYER CONFIG TREE MODELS
# ============================================================================
# STATUS: Core - Tagged union of layer config nodes
# PURPOSE: Immutable config nodes with derived layer paths
# CREATED: 12 OCT 2026
# ============================================================================
"""
Layer Config Tree Models.

A GeoView layer config (one service, one file, one tile set) owns an ordered
tuple of entry nodes. Entries form a tree: group entries own children, leaf
entries describe one renderable sublayer. Nodes are discriminated by
``entryType`` and are immutable once built; lifecycle steps that enrich an
entry produce a copy.

Every node carries its layer path (``geoviewLayerId/entry/.../leaf``) and the
path of its parent as a plain string index, never a live reference.

Node kinds:
    GroupLayerEntryConfig: ordered children, no source
    VectorLayerEntryConfig: vector features (esriFeature, GeoJSON, WFS, ...)
    VectorTileLayerEntryConfig: vector tiles
    RasterLayerEntryConfig: raster tile / image (esriDynamic, WMS, xyzTiles, ...)
    ServiceResolvedEntryConfig: geoCore UUID resolved by a remote service

Usage:
    from core.models.layer_config import GeoviewLayerConfig, ConfigNode

    root = GeoviewLayerConfig.model_validate(raw_after_factory)
    for entry in root.list_of_layer_entry_config:
        print(entry.layer_path, entry.entry_type)

Exports:
    LocalizedString, FeatureInfoConfig, SourceConfig, LayerControls,
    LayerStates, InitialSettings, GroupLayerEntryConfig,
    VectorLayerEntryConfig, VectorTileLayerEntryConfig,
    RasterLayerEntryConfig, ServiceResolvedEntryConfig, ConfigNode,
    GeoviewLayerConfig, create_localized_string
"""

from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.defaults import LayerDefaults
from .enums import GeoviewLayerType, LayerEntryType


class _FrozenModel(BaseModel):
    """Immutable model accepting both camelCase aliases and field names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='ignore')


# ============================================================================
# LEAF VALUE TYPES
# ============================================================================

class LocalizedString(_FrozenModel):
    """Bilingual display string."""

    en: Optional[str] = None
    fr: Optional[str] = None

    def get(self, language: str) -> Optional[str]:
        """Value for a language, falling back to the other one."""
        value = getattr(self, language, None)
        return value if value is not None else (self.en or self.fr)


def create_localized_string(value: Any) -> Optional[LocalizedString]:
    """
    Build a LocalizedString from a raw value.

    A plain string is used for both languages; a dict keeps its en/fr keys.
    """
    if value is None:
        return None
    if isinstance(value, LocalizedString):
        return value
    if isinstance(value, str):
        return LocalizedString(en=value, fr=value)
    if isinstance(value, dict):
        return LocalizedString(en=value.get('en'), fr=value.get('fr'))
    raise ValueError(f"Cannot build a localized string from {type(value).__name__}")


class FeatureInfoConfig(_FrozenModel):
    """Query settings of a leaf entry (source.featureInfo)."""

    queryable: Optional[bool] = None
    name_field: Optional[str] = Field(default=None, alias='nameField')
    out_fields: Optional[Tuple[str, ...]] = Field(default=None, alias='outfields')
    aliases: Optional[Dict[str, str]] = None

    @field_validator('out_fields', mode='before')
    @classmethod
    def _field_names(cls, v):
        # Accepts "a,b", ["a", "b"] or [{"name": "a", "alias": ...}, ...]
        if isinstance(v, str):
            return tuple(name.strip() for name in v.split(',') if name.strip())
        if isinstance(v, (list, tuple)):
            return tuple(item.get('name') if isinstance(item, dict) else item for item in v)
        return v

    @field_validator('aliases', mode='before')
    @classmethod
    def _alias_map(cls, v):
        if isinstance(v, str):
            return None
        return v


class SourceConfig(_FrozenModel):
    """Where and how a leaf entry reads its data."""

    data_access_path: Optional[LocalizedString] = Field(default=None, alias='dataAccessPath')
    format: Optional[str] = None
    feature_info: Optional[FeatureInfoConfig] = Field(default=None, alias='featureInfo')
    projection: Optional[int] = Field(default=None, alias='dataProjection')
    server_type: Optional[str] = Field(default=None, alias='serverType')
    strategy: Optional[str] = None

    @field_validator('data_access_path', mode='before')
    @classmethod
    def _localize(cls, v):
        return create_localized_string(v)

    @property
    def is_queryable(self) -> bool:
        """False only when featureInfo.queryable is explicitly False."""
        return not (self.feature_info is not None and self.feature_info.queryable is False)


class LayerControls(_FrozenModel):
    """Which consumer controls are enabled for an entry."""

    highlight: bool = LayerDefaults.CONTROLS['highlight']
    hover: bool = LayerDefaults.CONTROLS['hover']
    opacity: bool = LayerDefaults.CONTROLS['opacity']
    query: bool = LayerDefaults.CONTROLS['query']
    remove: bool = LayerDefaults.CONTROLS['remove']
    table: bool = LayerDefaults.CONTROLS['table']
    visibility: bool = LayerDefaults.CONTROLS['visibility']
    zoom: bool = LayerDefaults.CONTROLS['zoom']


class LayerStates(_FrozenModel):
    """Initial visual state of an entry."""

    visible: bool = LayerDefaults.STATES['visible']
    opacity: float = Field(default=LayerDefaults.STATES['opacity'], ge=0.0, le=1.0)
    hoverable: bool = LayerDefaults.STATES['hoverable']
    queryable: bool = LayerDefaults.STATES['queryable']


class InitialSettings(_FrozenModel):
    """Initial visual settings (controls, states, zoom bounds, extent)."""

    controls: LayerControls = Field(default_factory=LayerControls)
    states: LayerStates = Field(default_factory=LayerStates)
    min_zoom: Optional[float] = Field(default=None, alias='minZoom')
    max_zoom: Optional[float] = Field(default=None, alias='maxZoom')
    extent: Optional[Tuple[float, float, float, float]] = None
    bounds: Optional[Tuple[float, float, float, float]] = None


# ============================================================================
# ENTRY NODES
# ============================================================================

class _BaseEntryConfig(_FrozenModel):
    """Fields shared by every entry node."""

    layer_id: str = Field(alias='layerId')
    layer_id_extension: Optional[str] = Field(default=None, alias='layerIdExtension')
    layer_name: Optional[LocalizedString] = Field(default=None, alias='layerName')
    schema_tag: GeoviewLayerType = Field(alias='schemaTag')
    layer_path: str = Field(alias='layerPath')
    parent_layer_path: Optional[str] = Field(default=None, alias='parentLayerPath')
    initial_settings: InitialSettings = Field(default_factory=InitialSettings, alias='initialSettings')
    is_metadata_layer_group: bool = Field(default=False, alias='isMetadataLayerGroup')

    @field_validator('layer_name', mode='before')
    @classmethod
    def _localize(cls, v):
        return create_localized_string(v)

    @property
    def is_group(self) -> bool:
        return False

    @property
    def geoview_layer_id(self) -> str:
        """First segment of the layer path."""
        return self.layer_path.split('/', 1)[0]


class GroupLayerEntryConfig(_BaseEntryConfig):
    """Group entry; children are built before the group itself."""

    entry_type: Literal[LayerEntryType.GROUP] = Field(default=LayerEntryType.GROUP, alias='entryType')
    list_of_layer_entry_config: Tuple['ConfigNode', ...] = Field(default=(), alias='listOfLayerEntryConfig')

    @property
    def is_group(self) -> bool:
        return True


class _LeafEntryConfig(_BaseEntryConfig):
    """Fields shared by renderable (leaf) entries."""

    source: SourceConfig = Field(default_factory=SourceConfig)
    style: Optional[Dict[str, Any]] = None


class VectorLayerEntryConfig(_LeafEntryConfig):
    """Vector features entry."""

    entry_type: Literal[LayerEntryType.VECTOR] = Field(default=LayerEntryType.VECTOR, alias='entryType')


class VectorTileLayerEntryConfig(_LeafEntryConfig):
    """Vector tile entry."""

    entry_type: Literal[LayerEntryType.VECTOR_TILE] = Field(
        default=LayerEntryType.VECTOR_TILE, alias='entryType'
    )


class RasterLayerEntryConfig(_LeafEntryConfig):
    """Raster entry; the service format is the schema tag."""

    entry_type: Literal[LayerEntryType.RASTER_TILE, LayerEntryType.RASTER_IMAGE] = Field(alias='entryType')


class ServiceResolvedEntryConfig(_BaseEntryConfig):
    """Entry standing for a geoCore UUID until the service resolves it."""

    entry_type: Literal[LayerEntryType.GEOCORE] = Field(default=LayerEntryType.GEOCORE, alias='entryType')

    @property
    def uuid(self) -> str:
        return self.layer_id


ConfigNode = Annotated[
    Union[
        GroupLayerEntryConfig,
        VectorLayerEntryConfig,
        VectorTileLayerEntryConfig,
        RasterLayerEntryConfig,
        ServiceResolvedEntryConfig,
    ],
    Field(discriminator='entry_type'),
]

GroupLayerEntryConfig.model_rebuild()

LeafEntryConfig = Union[VectorLayerEntryConfig, VectorTileLayerEntryConfig, RasterLayerEntryConfig]


# ============================================================================
# GEOVIEW LAYER (ROOT) CONFIG
# ============================================================================

class GeoviewLayerConfig(_FrozenModel):
    """
    Root of one layer tree.

    The root's layer path is its geoviewLayerId; every entry below it
    prefixes its own path with that id.
    """

    geoview_layer_id: str = Field(alias='geoviewLayerId')
    geoview_layer_name: Optional[LocalizedString] = Field(default=None, alias='geoviewLayerName')
    geoview_layer_type: GeoviewLayerType = Field(alias='geoviewLayerType')
    metadata_access_path: Optional[LocalizedString] = Field(default=None, alias='metadataAccessPath')
    is_geocore: bool = Field(default=False, alias='isGeocore')
    is_time_aware: Optional[bool] = Field(default=None, alias='isTimeAware')
    initial_settings: Optional[InitialSettings] = Field(default=None, alias='initialSettings')
    list_of_layer_entry_config: Tuple[ConfigNode, ...] = Field(default=(), alias='listOfLayerEntryConfig')

    @field_validator('geoview_layer_name', 'metadata_access_path', mode='before')
    @classmethod
    def _localize(cls, v):
        return create_localized_string(v)

    @property
    def layer_path(self) -> str:
        return self.geoview_layer_id

    def metadata_url(self, language: str = 'en') -> Optional[str]:
        """Metadata access path in the requested language."""
        if self.metadata_access_path is None:
            return None
        return self.metadata_access_path.get(language)

    def to_raw(self) -> Dict[str, Any]:
        """Dump back to the camelCase raw shape."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)

