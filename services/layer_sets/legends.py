"""
Legends Layer Set.

One legend per registered leaf path. Every leaf registers (legends do not
depend on feature queries); a legend is fetched for paths whose layer is
processed or loaded when the round starts.

A legend is also fetched on its own when a path with a live layer becomes
processed or loaded, or when the live layer of such a path is attached.

Exports:
    LegendsLayerSet
"""

import asyncio
from typing import Dict, Optional

from core.events import EventBus, EventScope
from core.models.enums import LayerStatus
from core.models.results import LegendResult, ResultSetEntry

from .abstract_layer_set import AbstractLayerSet

_LEGEND_READY = (LayerStatus.PROCESSED, LayerStatus.LOADED)


class LegendsLayerSet(AbstractLayerSet):
    """Legend per layer path."""

    layer_set_name = "legends"

    def __init__(self, bus: EventBus, scope: EventScope, map_id: str = "unknown", auto_fetch: bool = True):
        super().__init__(bus, scope, map_id=map_id)
        self.auto_fetch = auto_fetch
        self._auto_fetches: Dict[str, asyncio.Task] = {}

    def is_query_eligible(self, layer_path: str) -> bool:
        entry = self.result_set.get(layer_path)
        return (
            entry is not None
            and entry.layer_status in _LEGEND_READY
            and layer_path in self._layers
        )

    def on_status_changed(self, entry: ResultSetEntry, status: LayerStatus) -> None:
        if status in _LEGEND_READY:
            self._schedule_fetch(entry.layer_path)

    def on_register_layer(self, entry: ResultSetEntry, gv_layer) -> None:
        if entry.layer_status in _LEGEND_READY:
            self._schedule_fetch(entry.layer_path)

    def _schedule_fetch(self, layer_path: str) -> None:
        if not self.auto_fetch or layer_path not in self._layers:
            return
        pending = self._auto_fetches.get(layer_path)
        if pending is not None and not pending.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.debug(f"No running loop, legend of {layer_path} waits for a round")
            return
        task = loop.create_task(self._fetch_legend(layer_path))
        self._auto_fetches[layer_path] = task
        task.add_done_callback(lambda done, path=layer_path: self._forget_fetch(path, done))

    def _forget_fetch(self, layer_path: str, task: asyncio.Task) -> None:
        if self._auto_fetches.get(layer_path) is task:
            del self._auto_fetches[layer_path]

    async def _fetch_legend(self, layer_path: str) -> None:
        if self._path_rounds.get(layer_path) in self._rounds:
            self.logger.debug(f"Legend of {layer_path} already in a round")
            return
        if layer_path not in self.result_set:
            return
        await self._run_round([layer_path])

    async def _query_single(self, layer_path: str, gv_layer, **kwargs) -> LegendResult:
        return await gv_layer.query_legend()

    async def query_legends(self) -> Dict[str, ResultSetEntry]:
        """Query the legend of every registered path."""
        return await self._run_round()

    async def query_legend(self, layer_path: str) -> Optional[ResultSetEntry]:
        """Query the legend of one path (takes it over from a round in flight)."""
        if layer_path not in self.result_set:
            return None
        results = await self._run_round([layer_path])
        return results.get(layer_path)

    def detach(self) -> None:
        """Stop listening and cancel pending legend fetches."""
        super().detach()
        for task in list(self._auto_fetches.values()):
            task.cancel()
        self._auto_fetches.clear()
