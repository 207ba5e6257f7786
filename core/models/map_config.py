"""
Map Features Configuration Models.

Immutable result of configuration validation: view settings, basemap
options, consumer surfaces and the ordered tuple of GeoView layer configs.
A map instance builds one of these at startup; a reload replaces it as a
whole.

Exports:
    BasemapOptions: Basemap choice
    ViewSettings: Projection, zoom, center, zoom bounds, max extent
    MapConfig: The ``map`` section
    MapFeaturesConfig: Root aggregate
    Diagnostic: One repair / removal performed by validation
    ValidationResult: Validated config plus repair report
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .layer_config import GeoviewLayerConfig


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='ignore')


class BasemapOptions(_FrozenModel):
    """Basemap id and its shaded / labeled flags."""

    basemap_id: str = Field(alias='basemapId')
    shaded: bool
    labeled: bool


class ViewSettings(_FrozenModel):
    """
    Validated view settings.

    Invariants after validation:
        0 <= zoom <= 28
        0 <= min_zoom <= max_zoom <= 50
        max_extent[0] < center[0] < max_extent[2]
        max_extent[1] < center[1] < max_extent[3]
    """

    projection: int
    zoom: float
    center: Tuple[float, float]
    min_zoom: float = Field(alias='minZoom')
    max_zoom: float = Field(alias='maxZoom')
    max_extent: Tuple[float, float, float, float] = Field(alias='maxExtent')
    enable_rotation: bool = Field(default=True, alias='enableRotation')
    rotation: float = 0


class MapConfig(_FrozenModel):
    """The ``map`` section of the map features configuration."""

    basemap_options: BasemapOptions = Field(alias='basemapOptions')
    view_settings: ViewSettings = Field(alias='viewSettings')
    interaction: str = 'dynamic'
    list_of_geoview_layer_config: Tuple[GeoviewLayerConfig, ...] = Field(
        default=(), alias='listOfGeoviewLayerConfig'
    )
    highlight_color: Optional[str] = Field(default=None, alias='highlightColor')
    extra_options: Dict[str, Any] = Field(default_factory=dict, alias='extraOptions')


class MapFeaturesConfig(_FrozenModel):
    """
    Root aggregate of one map instance.

    The ``map`` key of the raw document is held as ``gv_map``.
    """

    map_id: str = Field(alias='mapId')
    display_language: str = Field(default='en', alias='displayLanguage')
    gv_map: MapConfig = Field(alias='map')
    theme: str = 'geo.ca'
    nav_bar: List[str] = Field(default_factory=list, alias='navBar')
    footer_bar: Dict[str, Any] = Field(default_factory=dict, alias='footerBar')
    components: List[str] = Field(default_factory=list)
    app_bar: Dict[str, Any] = Field(default_factory=dict, alias='appBar')
    overview_map: Dict[str, Any] = Field(default_factory=dict, alias='overviewMap')
    core_packages: List[Any] = Field(default_factory=list, alias='corePackages')
    external_packages: List[Any] = Field(default_factory=list, alias='externalPackages')
    service_urls: Dict[str, Any] = Field(default_factory=dict, alias='serviceUrls')
    global_settings: Dict[str, Any] = Field(default_factory=dict, alias='globalSettings')
    suported_languages: List[str] = Field(default_factory=list, alias='suportedLanguages')
    schema_version_used: str = Field(default='1.0', alias='schemaVersionUsed')

    @property
    def view_settings(self) -> ViewSettings:
        return self.gv_map.view_settings

    @property
    def geoview_layer_configs(self) -> Tuple[GeoviewLayerConfig, ...]:
        return self.gv_map.list_of_geoview_layer_config

    def get_geoview_layer_config(self, geoview_layer_id: str) -> Optional[GeoviewLayerConfig]:
        """Top-level layer config by id, or None."""
        for layer_config in self.geoview_layer_configs:
            if layer_config.geoview_layer_id == geoview_layer_id:
                return layer_config
        return None

    def to_raw(self) -> Dict[str, Any]:
        """Dump back to the camelCase raw document."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)


class Diagnostic(_FrozenModel):
    """
    One repair or removal performed during validation.

    field_path uses dots and indices, e.g. ``map.viewSettings.center[1]``.
    """

    field_path: str
    original: Any = None
    replacement: Any = None
    message: str


class ValidationResult(_FrozenModel):
    """Validated configuration plus what had to be repaired."""

    config: MapFeaturesConfig
    repaired: bool
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def is_valid(self) -> bool:
        """True when the input needed no repair."""
        return not self.repaired
