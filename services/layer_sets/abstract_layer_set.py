# ============================================================================
# ABSTRACT LAYER SET
# ============================================================================
# STATUS: Service - Layer-set synchronization core
# PURPOSE: Track one concern across layer paths; barrier-synchronized rounds
# CREATED: 15 OCT 2026
# ============================================================================
"""
Abstract Layer Set.

A layer set observes the layers of one map for one concern (legends,
feature info, data table, hover) and keeps a result set keyed by layer
path. Each entry's ``data`` is tri-state: PENDING, None (failed) or a value.

Registration:
    register_config  - before the layer lifecycle starts; creates a
                       {newInstance, PENDING} entry
    register_layer   - after lifecycle step 6; attaches the live layer
    unregister       - removes the key and tells the store to drop it

Query rounds:
    A round resets every participating entry to PENDING and issues one
    concurrent query per eligible path. Each settle writes success -> value
    or failure -> None, then re-checks the barrier. The query-ended event
    fires at most once per round, on the write that first leaves no
    participant pending. Every path belongs to at most one round: a new
    round takes over only the paths it queries again, and late results
    written under a path's old round are discarded. Rounds over disjoint
    paths run side by side and each fires its own event.

Eligibility:
    Statically ineligible paths (should_register_config False) are never
    registered. A registered path that is not ready when the round starts
    settles to None for that round. A path that errors or is unregistered
    mid-round stops blocking the barrier.

Subclass hooks:
    should_register_config, should_register_layer, on_register_config,
    on_register_layer, on_status_changed, on_query_started,
    on_query_settled, propagate_to_store, _query_single
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Set

from core.events import EventBus, EventScope
from core.models.enums import EventType, LayerStatus
from core.models.events import LayerSetUpdatedEvent, QueryEndedEvent, StoreUpdateEvent
from core.models.results import PENDING, ResultSetEntry
from exceptions import LayerError
from util_logger import LoggerFactory, ComponentType


@dataclass
class _QueryRound:
    round_id: int
    participants: Set[str] = field(default_factory=set)
    completed: bool = False


class AbstractLayerSet(ABC):
    """
    Base class of the layer sets.

    Attributes:
        result_set: Layer path -> ResultSetEntry (owned by this set)
    """

    layer_set_name: ClassVar[str] = "abstract"

    def __init__(self, bus: EventBus, scope: EventScope, map_id: str = "unknown"):
        self.bus = bus
        self.scope = scope
        self.map_id = map_id
        self.result_set: Dict[str, ResultSetEntry] = {}
        self._layers: Dict[str, Any] = {}
        self._geoview_layers: Dict[str, Any] = {}

        self._last_round_id = 0
        self._rounds: Dict[int, _QueryRound] = {}
        self._path_rounds: Dict[str, int] = {}

        self.logger = LoggerFactory.create_with_context(
            ComponentType.LAYER_SET,
            type(self).__name__,
            map_id=map_id,
            layer_set=self.layer_set_name
        )

        self._subscriptions = [
            bus.on(EventType.LAYER_STATUS_CHANGED, self._handle_status_changed, scope=scope,
                   handler_name=f"{self.layer_set_name}.status"),
            bus.on(EventType.LAYER_NAME_CHANGED, self._handle_name_changed, scope=scope,
                   handler_name=f"{self.layer_set_name}.name"),
        ]

    # ========================================================================
    # HOOKS
    # ========================================================================

    def should_register_config(self, geoview_layer, entry) -> bool:
        """Static eligibility of an entry; groups never register."""
        return not entry.is_group

    def should_register_layer(self, gv_layer) -> bool:
        """Attach a live layer only to a path registered from its config."""
        return gv_layer.layer_path in self.result_set

    def on_register_config(self, entry: ResultSetEntry) -> None:
        pass

    def on_register_layer(self, entry: ResultSetEntry, gv_layer) -> None:
        pass

    def on_status_changed(self, entry: ResultSetEntry, status: LayerStatus) -> None:
        pass

    def on_query_started(self, entry: ResultSetEntry) -> None:
        pass

    def on_query_settled(self, entry: ResultSetEntry, succeeded: bool) -> None:
        pass

    def propagate_to_store(self, entry: Optional[ResultSetEntry], kind: str, layer_path: Optional[str] = None) -> None:
        """
        Push one entry to the consumer store.

        A None entry tells the store to drop layer_path.
        """
        path = entry.layer_path if entry is not None else layer_path
        self.bus.emit(
            EventType.STORE_UPDATE,
            StoreUpdateEvent(
                layer_set=self.layer_set_name,
                layer_path=path,
                kind=kind,
                entry=entry.snapshot() if entry is not None else None,
            ),
            scope=self.scope
        )

    def is_query_eligible(self, layer_path: str) -> bool:
        """Runtime eligibility when a round starts."""
        entry = self.result_set.get(layer_path)
        return (
            entry is not None
            and not entry.is_disabled
            and entry.layer_status == LayerStatus.LOADED
            and layer_path in self._layers
        )

    @abstractmethod
    async def _query_single(self, layer_path: str, gv_layer, **kwargs) -> Any:
        """Query one path; raise LayerError on failure."""

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    def register_config(self, geoview_layer, entry) -> bool:
        """
        Register an entry before its layer loads.

        Returns:
            True if the entry was registered
        """
        if not self.should_register_config(geoview_layer, entry):
            return False
        layer_path = entry.layer_path
        if layer_path in self.result_set:
            self.logger.debug(f"Layer path {layer_path} already registered")
            return False

        result_entry = ResultSetEntry(
            layer_path=layer_path,
            layer_name=entry.layer_name.get(geoview_layer.language) if entry.layer_name else None,
            layer_status=geoview_layer.get_layer_status(layer_path) or LayerStatus.NEW_INSTANCE,
        )
        self.result_set[layer_path] = result_entry
        self._geoview_layers[layer_path] = geoview_layer
        self.on_register_config(result_entry)
        self._announce(layer_path, 'added')
        self.propagate_to_store(result_entry, 'registered')
        return True

    def register_layer(self, gv_layer) -> bool:
        """
        Attach the live layer of a registered path (after step 6).

        Returns:
            True if the layer was attached
        """
        if not self.should_register_layer(gv_layer):
            return False
        layer_path = gv_layer.layer_path
        self._layers[layer_path] = gv_layer
        result_entry = self.result_set[layer_path]
        result_entry.layer_status = gv_layer.geoview_layer.get_layer_status(layer_path) or result_entry.layer_status
        self.on_register_layer(result_entry, gv_layer)
        self.propagate_to_store(result_entry, 'layer')
        return True

    def unregister(self, layer_path: str) -> bool:
        """Remove a path; an in-flight round stops waiting for it."""
        if layer_path not in self.result_set:
            return False
        del self.result_set[layer_path]
        self._layers.pop(layer_path, None)
        self._geoview_layers.pop(layer_path, None)
        self._announce(layer_path, 'removed')
        self.propagate_to_store(None, 'removed', layer_path=layer_path)

        self._release_paths([layer_path], superseded=False)
        return True

    def unregister_all(self, layer_paths: Iterable[str]) -> int:
        return sum(1 for layer_path in list(layer_paths) if self.unregister(layer_path))

    def _announce(self, layer_path: str, action: str) -> None:
        self.bus.emit(
            EventType.LAYER_SET_UPDATED,
            LayerSetUpdatedEvent(layer_set=self.layer_set_name, layer_path=layer_path, action=action),
            scope=self.scope
        )

    # ========================================================================
    # BUS HANDLERS
    # ========================================================================

    def _handle_status_changed(self, event) -> None:
        entry = self.result_set.get(event.layer_path)
        if entry is None:
            return
        entry.layer_status = event.layer_status
        self.on_status_changed(entry, event.layer_status)
        self.propagate_to_store(entry, 'status')

        if event.layer_status == LayerStatus.ERROR:
            self._settle(self._path_rounds.get(event.layer_path), event.layer_path, None)

    def _handle_name_changed(self, event) -> None:
        entry = self.result_set.get(event.layer_path)
        if entry is None:
            return
        entry.layer_name = event.layer_name
        self.propagate_to_store(entry, 'name')

    # ========================================================================
    # QUERY ROUNDS
    # ========================================================================

    async def _run_round(self, layer_paths: Optional[Iterable[str]] = None, **kwargs) -> Dict[str, ResultSetEntry]:
        """
        Query every participating path concurrently.

        Args:
            layer_paths: Participants (default: every registered path)
            **kwargs: Forwarded to _query_single

        Returns:
            Snapshot of the participants' entries once this round is over
            (paths taken over by a newer round return whatever was written)
        """
        self._last_round_id += 1
        round_id = self._last_round_id
        targets = [p for p in (layer_paths if layer_paths is not None else list(self.result_set))
                   if p in self.result_set]
        self._release_paths(targets)

        query_round = _QueryRound(round_id=round_id, participants=set(targets))
        self._rounds[round_id] = query_round
        for layer_path in targets:
            self._path_rounds[layer_path] = round_id
        self.logger.debug(f"Round {round_id} started with {len(targets)} participant(s)")

        for layer_path in targets:
            entry = self.result_set[layer_path]
            entry.data = PENDING
            self.on_query_started(entry)

        eligible = []
        for layer_path in targets:
            if self.is_query_eligible(layer_path):
                eligible.append(layer_path)
            else:
                self._settle(round_id, layer_path, None)

        self._check_barrier(query_round)
        if eligible:
            await asyncio.gather(*(self._query_path(round_id, layer_path, **kwargs) for layer_path in eligible))

        return {path: self.result_set[path].snapshot() for path in targets if path in self.result_set}

    async def _query_path(self, round_id: int, layer_path: str, **kwargs) -> None:
        gv_layer = self._layers[layer_path]
        try:
            value = await self._query_single(layer_path, gv_layer, **kwargs)
        except asyncio.CancelledError:
            self._settle(round_id, layer_path, None)
            raise
        except LayerError as e:
            self.logger.warning(f"Query of {layer_path} failed: {e}")
            self._settle(round_id, layer_path, None)
        except Exception as e:
            self.logger.error(f"Query of {layer_path} raised: {e}", exc_info=True)
            self._settle(round_id, layer_path, None)
        else:
            self._settle(round_id, layer_path, value)

    def _settle(self, round_id: Optional[int], layer_path: str, value: Any) -> bool:
        """
        Write one result of a round; first settle wins.

        Returns:
            True if the value was written
        """
        if round_id is None or self._path_rounds.get(layer_path) != round_id:
            self.logger.debug(f"Discarded result of round {round_id} for {layer_path}")
            return False
        query_round = self._rounds.get(round_id)
        entry = self.result_set.get(layer_path)
        if query_round is None or entry is None or layer_path not in query_round.participants or not entry.is_pending:
            return False

        entry.data = value
        self.on_query_settled(entry, value is not None)
        self.propagate_to_store(entry, 'query')
        self._check_barrier(query_round)
        return True

    def _check_barrier(self, query_round: _QueryRound) -> None:
        if query_round.completed:
            return
        if any(self.result_set[path].is_pending for path in query_round.participants if path in self.result_set):
            return

        query_round.completed = True
        self._rounds.pop(query_round.round_id, None)
        result_set = {path: self.result_set[path].snapshot()
                      for path in query_round.participants if path in self.result_set}
        self.logger.info(f"Round {query_round.round_id} ended with {len(result_set)} layer path(s)")
        self.bus.emit(
            EventType.LAYER_SET_QUERY_ENDED,
            QueryEndedEvent(layer_set=self.layer_set_name, round_id=query_round.round_id, result_set=result_set),
            scope=self.scope
        )

    def _release_paths(self, layer_paths: Iterable[str], superseded: bool = True) -> None:
        """
        Take paths out of the rounds that own them.

        A superseded round left without participants is dropped without an
        event; any other round re-checks its barrier.
        """
        touched: Dict[int, _QueryRound] = {}
        for layer_path in layer_paths:
            round_id = self._path_rounds.pop(layer_path, None)
            query_round = self._rounds.get(round_id) if round_id is not None else None
            if query_round is None:
                continue
            query_round.participants.discard(layer_path)
            touched[round_id] = query_round

        for round_id, query_round in touched.items():
            if superseded and not query_round.participants:
                self._rounds.pop(round_id, None)
                self.logger.debug(f"Round {round_id} superseded")
            else:
                self._check_barrier(query_round)

    def supersede_paths(self, layer_paths: Optional[Iterable[str]] = None) -> None:
        """Drop paths (default: all) from their rounds; their late results are discarded."""
        self._release_paths(list(layer_paths) if layer_paths is not None else list(self._path_rounds))

    def active_round_ids(self) -> List[int]:
        return sorted(self._rounds)

    # ========================================================================
    # TEARDOWN
    # ========================================================================

    def detach(self) -> None:
        """Stop listening to layer events."""
        for subscription in self._subscriptions:
            self.bus.off_subscription(subscription)
        self._subscriptions = []

    def get_registered_layer_paths(self) -> List[str]:
        return list(self.result_set)
