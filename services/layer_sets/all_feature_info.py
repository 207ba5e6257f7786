"""
All Feature Info Layer Set.

Feeds the data table: every feature of one layer at a time. Queries for different
layers run side by side; querying a layer again takes it over from the
query in flight. Entries can be disabled
(the table hides them and they are never queried).

Exports:
    AllFeatureInfoLayerSet
"""

from typing import Any, Optional

from core.models.enums import QueryType
from core.models.results import PENDING, ResultSetEntry

from .feature_info import FeatureInfoLayerSet


class AllFeatureInfoLayerSet(FeatureInfoLayerSet):
    """All features per layer path."""

    layer_set_name = "allFeatureInfo"
    query_type = QueryType.ALL

    async def _query_single(self, layer_path: str, gv_layer, **kwargs) -> Any:
        return await gv_layer.query_features(self.query_type)

    async def query_layer(self, layer_path: str) -> Optional[ResultSetEntry]:
        """
        Query every feature of one layer path.

        Returns:
            The entry once settled, None when the path is not registered
        """
        if layer_path not in self.result_set:
            self.logger.warning(f"Layer path {layer_path} is not registered")
            return None
        results = await self._run_round([layer_path])
        return results.get(layer_path)

    def set_disabled(self, layer_path: str, disabled: bool) -> None:
        entry = self.result_set.get(layer_path)
        if entry is None or entry.is_disabled == disabled:
            return
        entry.is_disabled = disabled
        self.propagate_to_store(entry, 'disabled')

    def clear_layer_features(self, layer_path: str) -> None:
        """Forget the features of one path (back to not queried)."""
        entry = self.result_set.get(layer_path)
        if entry is None:
            return
        self.supersede_paths([layer_path])
        entry.data = PENDING
        entry.query_status = None
        self.propagate_to_store(entry, 'clear')
