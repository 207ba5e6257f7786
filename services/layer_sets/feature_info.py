"""
Feature Info Layer Set.

Answers "what is at this point" across every queryable layer. Each entry
carries a query status (processing / processed / error) alongside its
tri-state data.

Exports:
    FeatureInfoLayerSet
"""

from typing import Any, Dict, Optional, Tuple

from core.models.enums import QueryStatus, QueryType
from core.models.results import ResultSetEntry

from .abstract_layer_set import AbstractLayerSet


class FeatureInfoLayerSet(AbstractLayerSet):
    """Point feature query per layer path."""

    layer_set_name = "featureInfo"
    query_type = QueryType.AT_LONG_LAT

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._last_location: Optional[Tuple[float, float]] = None

    def should_register_config(self, geoview_layer, entry) -> bool:
        if entry.is_group or not geoview_layer.supports_feature_query:
            return False
        return entry.source.is_queryable

    def is_query_eligible(self, layer_path: str) -> bool:
        if not super().is_query_eligible(layer_path):
            return False
        gv_layer = self._layers[layer_path]
        return gv_layer.geoview_layer.is_queryable(layer_path)

    def on_query_started(self, entry: ResultSetEntry) -> None:
        entry.query_status = QueryStatus.PROCESSING

    def on_query_settled(self, entry: ResultSetEntry, succeeded: bool) -> None:
        entry.query_status = QueryStatus.PROCESSED if succeeded else QueryStatus.ERROR

    async def _query_single(self, layer_path: str, gv_layer, location=None, **kwargs) -> Any:
        return await gv_layer.query_features(self.query_type, location)

    async def query_layers(self, lonlat: Tuple[float, float]) -> Dict[str, ResultSetEntry]:
        """
        Query every registered layer at a lon/lat point.

        Args:
            lonlat: (longitude, latitude)

        Returns:
            Snapshot of the result set once the round is over
        """
        self._last_location = tuple(lonlat)
        self.logger.debug(f"Feature info query at {self._last_location}")
        return await self._run_round(location=self._last_location)

    async def repeat_last_query(self) -> Optional[Dict[str, ResultSetEntry]]:
        """Re-run the last point query (None if there was none)."""
        if self._last_location is None:
            return None
        return await self.query_layers(self._last_location)

    def clear_results(self) -> None:
        """Empty every entry's features and drop the rounds in flight."""
        self.supersede_paths()
        for entry in self.result_set.values():
            entry.data = []
            entry.query_status = None
            self.propagate_to_store(entry, 'clear')
