# ============================================================================
# LAYER MANAGER
# ============================================================================
# STATUS: Core - GeoView layers of one map
# PURPOSE: Instantiate, register, load and remove GeoView layers
# CREATED: 15 OCT 2026
# ============================================================================
"""
Layer Manager.

Owns the GeoView layers of one map. Adding a layer config:

    1. geoCore placeholders are resolved through the UUID reader and rebuilt
       by the node factory (one placeholder may yield several layers)
    2. the layer class is looked up by geoviewLayerType
    3. every entry registers into every layer set (before any status event)
    4. the six-step lifecycle runs
    5. loaded leaves register their live layer into the layer sets

Failures are reported as layer-error events; they never propagate out of
add_geoview_layer.

Exports:
    LayerManager
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence

from core.errors import ErrorCode, create_error_response
from core.events import EventBus, EventScope
from core.logic.layer_tree import collect_layer_paths, iter_entries
from core.models.enums import EventType, GeoviewLayerType
from core.models.events import LayerErrorEvent, LayerRemovedEvent
from core.models.layer_config import GeoviewLayerConfig
from exceptions import GeoCoreResolutionError, InvalidGeoviewLayerTypeError
from infrastructure.metadata_client import MetadataClient
from services.config_readers.uuid_reader import apply_geocore_overrides, read_uuid_configs
from services.node_factory import FactoryContext, node_factory
from util_logger import LoggerFactory, ComponentType

from .abstract_layer import AbstractGeoViewLayer
from .registry import get_layer_class


class LayerManager:
    """
    GeoView layers of one map.

    Attributes:
        geoview_layers: geoviewLayerId -> AbstractGeoViewLayer
    """

    def __init__(
        self,
        bus: EventBus,
        scope: EventScope,
        metadata_client: MetadataClient,
        geocore_client=None,
        layer_sets: Sequence = (),
        map_id: str = "unknown",
        language: str = "en"
    ):
        self.bus = bus
        self.scope = scope
        self.metadata_client = metadata_client
        self.geocore_client = geocore_client
        self.layer_sets = list(layer_sets)
        self.map_id = map_id
        self.language = language
        self.geoview_layers: Dict[str, AbstractGeoViewLayer] = {}
        self.logger = LoggerFactory.create_with_context(ComponentType.LAYER, "LayerManager", map_id=map_id)

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def registered_layer_paths(self) -> List[str]:
        paths = []
        for layer in self.geoview_layers.values():
            paths.append(layer.geoview_layer_id)
            paths.extend(layer.layer_paths())
        return paths

    def get_geoview_layer(self, layer_path: str) -> Optional[AbstractGeoViewLayer]:
        """GeoView layer owning a layer path."""
        return self.geoview_layers.get(layer_path.split('/', 1)[0])

    def _emit_error(self, layer_path: str, error_code: ErrorCode, message: str) -> None:
        self.logger.error(f"{message} (layer: {layer_path})")
        self.bus.emit(
            EventType.LAYER_ERROR,
            LayerErrorEvent(
                layer_path=layer_path,
                error_code=error_code,
                message=message,
                details=create_error_response(error_code, message, layer_path=layer_path, map_id=self.map_id),
            ),
            scope=self.scope
        )

    # ========================================================================
    # ADD
    # ========================================================================

    async def add_geoview_layer(self, layer_config: GeoviewLayerConfig) -> List[AbstractGeoViewLayer]:
        """
        Add and load one GeoView layer config.

        Returns:
            GeoView layers created (several for a geoCore placeholder, none
            when the config was rejected)
        """
        if layer_config.geoview_layer_type == GeoviewLayerType.GEOCORE:
            configs = await self.resolve_geocore(layer_config)
        else:
            configs = [layer_config]

        layers = []
        for config in configs:
            layer = await self._add_resolved(config)
            if layer is not None:
                layers.append(layer)
        return layers

    async def add_layers(self, layer_configs: Iterable[GeoviewLayerConfig]) -> List[AbstractGeoViewLayer]:
        """Add several layer configs concurrently."""
        results = await asyncio.gather(*(self.add_geoview_layer(config) for config in layer_configs))
        return [layer for layers in results for layer in layers]

    async def resolve_geocore(self, layer_config: GeoviewLayerConfig) -> List[GeoviewLayerConfig]:
        """
        Swap a geoCore placeholder for the configs the UUID service returns.

        Returns:
            Resolved configs (empty on failure; an error event is emitted)
        """
        placeholder_id = layer_config.geoview_layer_id
        entries = layer_config.list_of_layer_entry_config
        uuid_value = entries[0].layer_id if entries else placeholder_id.split(':')[0]

        if self.geocore_client is None:
            self._emit_error(placeholder_id, ErrorCode.GEOCORE_UNAVAILABLE, "No GeoCore client configured")
            return []

        try:
            raw_configs = await read_uuid_configs(self.geocore_client, self.language, [uuid_value])
        except GeoCoreResolutionError as e:
            self._emit_error(placeholder_id, e.error_code, e.message)
            return []

        placeholder = layer_config.to_raw()
        context = FactoryContext(
            map_id=self.map_id,
            geoview_layer_ids=set(self.geoview_layers),
            layer_paths=set(self.registered_layer_paths()),
        )
        resolved = []
        for index, raw_config in enumerate(raw_configs):
            merged = apply_geocore_overrides(raw_config, placeholder)
            config = node_factory(merged, context, field_path=f"geoCore[{uuid_value}][{index}]")
            if config is None:
                self._emit_error(placeholder_id, ErrorCode.INVALID_LAYER_ENTRY,
                                 f"GeoCore record {index} of {uuid_value} could not be built")
                continue
            resolved.append(config)

        self.logger.info(f"GeoCore {uuid_value} resolved to {len(resolved)} layer config(s)")
        return resolved

    async def _add_resolved(self, layer_config: GeoviewLayerConfig) -> Optional[AbstractGeoViewLayer]:
        geoview_layer_id = layer_config.geoview_layer_id
        registered = set(self.registered_layer_paths())
        duplicates = [path for path in [geoview_layer_id] + collect_layer_paths(layer_config.list_of_layer_entry_config)
                      if path in registered]
        if duplicates:
            self._emit_error(duplicates[0], ErrorCode.DUPLICATE_LAYER_PATH,
                             f"Layer path {duplicates[0]} is already registered; layer not added")
            return None

        try:
            layer_class = get_layer_class(layer_config.geoview_layer_type)
        except InvalidGeoviewLayerTypeError as e:
            self._emit_error(geoview_layer_id, e.error_code, e.message)
            return None

        layer = layer_class(
            layer_config,
            bus=self.bus,
            scope=self.scope.child(geoview_layer_id),
            client=self.metadata_client,
            map_id=self.map_id,
            language=self.language,
        )
        self.geoview_layers[geoview_layer_id] = layer

        for entry in iter_entries(layer_config.list_of_layer_entry_config):
            for layer_set in self.layer_sets:
                layer_set.register_config(layer, entry)

        await layer.load()

        if self.geoview_layers.get(geoview_layer_id) is layer:
            for gv_layer in layer.gv_layers.values():
                for layer_set in self.layer_sets:
                    layer_set.register_layer(gv_layer)
        return layer

    # ========================================================================
    # REMOVE
    # ========================================================================

    def remove_layer(self, layer_path: str) -> bool:
        """
        Remove a GeoView layer (root id) or one subtree (entry path).

        Removing a root cancels its in-flight metadata fetch.

        Returns:
            True if something was removed
        """
        layer = self.get_geoview_layer(layer_path)
        if layer is None:
            self.logger.warning(f"Cannot remove unknown layer path {layer_path}")
            return False

        is_root = layer_path == layer.geoview_layer_id
        removed_paths = [path for path in layer.layer_paths()
                         if is_root or path == layer_path or path.startswith(f"{layer_path}/")]
        if not is_root and not removed_paths:
            self.logger.warning(f"Cannot remove unknown layer path {layer_path}")
            return False

        for layer_set in self.layer_sets:
            layer_set.unregister_all(removed_paths)

        if is_root:
            layer.cancel()
            del self.geoview_layers[layer.geoview_layer_id]
            self.bus.off_all(layer.scope)
        else:
            layer.remove_layer_paths(removed_paths)

        self.logger.info(f"Removed {layer_path} ({len(removed_paths)} layer path(s))")
        self.bus.emit(EventType.LAYER_REMOVED, LayerRemovedEvent(layer_path=layer_path), scope=self.scope)
        return True

    def remove_all(self) -> None:
        for geoview_layer_id in list(self.geoview_layers):
            self.remove_layer(geoview_layer_id)

    def cancel_all(self) -> None:
        """Cancel every in-flight metadata fetch."""
        for layer in self.geoview_layers.values():
            layer.cancel()
