"""
Hover Feature Info Layer Set.

Feature query under the pointer. WMS layers and entries that are not
hoverable never register. Queries wait for the pointer to rest for the
configured debounce delay; a newer position supersedes a pending one.

Exports:
    HoverFeatureInfoLayerSet
"""

import asyncio
from typing import Dict, Optional, Tuple

from config import get_config
from core.models.enums import GeoviewLayerType, QueryType
from core.models.results import ResultSetEntry

from .feature_info import FeatureInfoLayerSet


class HoverFeatureInfoLayerSet(FeatureInfoLayerSet):
    """Pointer feature query per layer path."""

    layer_set_name = "hoverFeatureInfo"
    query_type = QueryType.AT_PIXEL

    def __init__(self, *args, debounce_ms: Optional[int] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.debounce_ms = get_config().hover_debounce_ms if debounce_ms is None else debounce_ms
        self._pointer_moves = 0

    def should_register_config(self, geoview_layer, entry) -> bool:
        if not super().should_register_config(geoview_layer, entry):
            return False
        if entry.schema_tag == GeoviewLayerType.WMS or not geoview_layer.supports_hover:
            return False
        return entry.initial_settings.states.hoverable

    async def query_at_pixel(self, lonlat: Tuple[float, float]) -> Optional[Dict[str, ResultSetEntry]]:
        """
        Query hoverable layers at the map coordinate under the pointer.

        Returns:
            Result set, or None when a newer pointer position arrived
            during the debounce delay
        """
        self._pointer_moves += 1
        move = self._pointer_moves
        if self.debounce_ms:
            await asyncio.sleep(self.debounce_ms / 1000)
        if move != self._pointer_moves:
            self.logger.debug(f"Hover at {lonlat} superseded by a newer pointer position")
            return None
        return await self.query_layers(lonlat)
