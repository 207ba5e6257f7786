# ============================================================================
# MAP VIEWER
# ============================================================================
# STATUS: Entry point - One map instance
# PURPOSE: Validate a configuration, load its layers, wire the layer sets
# CREATED: 16 OCT 2026
# ============================================================================
"""
Map Viewer.

One map instance: an event scope on the (injected or owned) event bus, the
validated configuration, a LayerManager and the four layer sets.

Usage:
    viewer = MapViewer("map1")
    result = await viewer.load(raw_config)
    await viewer.legends.query_legends()
    await viewer.feature_info.query_layers((-75.7, 45.4))
    await viewer.teardown()

Configuration replacement is wholesale: reload() tears the map down and
loads the new configuration from scratch.
"""

from typing import Any, Optional

from config import get_config
from core.events import EventBus, EventScope
from core.models.enums import EventType
from core.models.events import MapConfigLoadedEvent
from core.models.map_config import MapFeaturesConfig, ValidationResult
from exceptions import ContractViolationError
from geoview_layers import LayerManager
from infrastructure.geocore_client import GeoCoreClient
from infrastructure.metadata_client import MetadataClient
from services.config_validator import validate
from services.layer_sets import (
    AllFeatureInfoLayerSet,
    FeatureInfoLayerSet,
    HoverFeatureInfoLayerSet,
    LegendsLayerSet,
)
from util_logger import LoggerFactory, ComponentType


class MapViewer:
    """
    One map instance.

    Attributes:
        map_id: Map instance id
        bus: Event bus (one per map context)
        scope: Structural scope of every event of this map
        config: Validated configuration (None before load)
    """

    def __init__(
        self,
        map_id: str,
        bus: Optional[EventBus] = None,
        metadata_client: Optional[MetadataClient] = None,
        geocore_client: Optional[GeoCoreClient] = None
    ):
        self.map_id = map_id
        self.bus = bus or EventBus(name=map_id)
        self.scope = EventScope(map_id)
        self._owns_metadata_client = metadata_client is None
        self._owns_geocore_client = geocore_client is None
        self.metadata_client = metadata_client
        self.geocore_client = geocore_client

        self.config: Optional[MapFeaturesConfig] = None
        self.layer_manager: Optional[LayerManager] = None
        self.legends: Optional[LegendsLayerSet] = None
        self.feature_info: Optional[FeatureInfoLayerSet] = None
        self.all_feature_info: Optional[AllFeatureInfoLayerSet] = None
        self.hover_feature_info: Optional[HoverFeatureInfoLayerSet] = None

        self.logger = LoggerFactory.create_with_context(ComponentType.VIEWER, "MapViewer", map_id=map_id)

    @property
    def layer_sets(self) -> list:
        return [s for s in (self.legends, self.feature_info, self.all_feature_info, self.hover_feature_info)
                if s is not None]

    def _build_components(self, config: MapFeaturesConfig) -> None:
        if self.metadata_client is None:
            self.metadata_client = MetadataClient()
        if self.geocore_client is None:
            geocore_url = config.service_urls.get('geocoreUrl') or get_config().geocore_url
            self.geocore_client = GeoCoreClient(base_url=geocore_url)

        self.legends = LegendsLayerSet(self.bus, self.scope, map_id=self.map_id)
        self.feature_info = FeatureInfoLayerSet(self.bus, self.scope, map_id=self.map_id)
        self.all_feature_info = AllFeatureInfoLayerSet(self.bus, self.scope, map_id=self.map_id)
        self.hover_feature_info = HoverFeatureInfoLayerSet(self.bus, self.scope, map_id=self.map_id)

        self.layer_manager = LayerManager(
            bus=self.bus,
            scope=self.scope,
            metadata_client=self.metadata_client,
            geocore_client=self.geocore_client,
            layer_sets=self.layer_sets,
            map_id=self.map_id,
            language=config.display_language,
        )

    async def load(self, raw: Any) -> ValidationResult:
        """
        Validate a raw configuration and load its layers.

        Layer failures are reported on the bus; load() itself only raises
        on misuse.

        Raises:
            ContractViolationError: A configuration is already loaded
        """
        if self.config is not None:
            raise ContractViolationError(f"Map {self.map_id} already loaded; use reload()")

        result = validate(raw, map_id=self.map_id)
        self.config = result.config
        self._build_components(result.config)

        self.bus.emit(
            EventType.MAP_CONFIG_LOADED,
            MapConfigLoadedEvent(
                map_id=self.map_id,
                repaired=result.repaired,
                layer_count=len(result.config.geoview_layer_configs),
            ),
            scope=self.scope
        )
        self.logger.info(
            f"Loading {len(result.config.geoview_layer_configs)} layer(s) "
            f"({len(result.diagnostics)} configuration repair(s))"
        )
        await self.layer_manager.add_layers(result.config.geoview_layer_configs)
        return result

    async def reload(self, raw: Any) -> ValidationResult:
        """Replace the whole configuration."""
        await self.teardown(close_clients=False)
        return await self.load(raw)

    async def teardown(self, close_clients: bool = True) -> None:
        """Cancel layers, drop every handler of this map, release clients."""
        if self.layer_manager is not None:
            self.layer_manager.cancel_all()
            self.layer_manager.remove_all()
        for layer_set in (self.legends, self.feature_info, self.all_feature_info, self.hover_feature_info):
            if layer_set is not None:
                layer_set.detach()
        removed = self.bus.off_all(self.scope)
        self.logger.info(f"Map {self.map_id} torn down ({removed} handler(s) removed)")

        self.config = None
        self.layer_manager = None
        self.legends = self.feature_info = self.all_feature_info = self.hover_feature_info = None

        if not close_clients:
            return
        if self._owns_metadata_client and self.metadata_client is not None:
            await self.metadata_client.aclose()
            self.metadata_client = None
        if self._owns_geocore_client and self.geocore_client is not None:
            await self.geocore_client.aclose()
            self.geocore_client = None
