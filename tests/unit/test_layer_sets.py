"""
Layer set tests — registration, barrier-synchronized query rounds.

Fake GeoView layers hold each query on an asyncio.Event so every test
controls the order in which results settle.
"""

import asyncio
import itertools

import pytest

from core.logic.layer_tree import iter_leaf_entries
from core.models.enums import EventType, LayerStatus, QueryStatus
from core.models.events import LayerStatusChangedEvent
from core.models.results import PENDING
from exceptions import LayerQueryError
from geoview_layers.renderable import GVLayer, RenderableLayer
from services.layer_sets import (
    AllFeatureInfoLayerSet,
    FeatureInfoLayerSet,
    HoverFeatureInfoLayerSet,
    LegendsLayerSet,
)
from tests.factories.model_factories import make_raw_entry, make_raw_layer


class FakeGeoViewLayer:
    """Stands in for a loaded GeoView layer; queries wait on per-path gates."""

    supports_feature_query = True
    supports_hover = True
    language = "en"

    def __init__(self, layer_config, status=LayerStatus.LOADED):
        self.layer_config = layer_config
        self.geoview_layer_id = layer_config.geoview_layer_id
        self.entries = list(iter_leaf_entries(layer_config.list_of_layer_entry_config))
        self.statuses = {entry.layer_path: status for entry in self.entries}
        self.gates = {}
        self.failures = set()
        self.errors = {}
        self.calls = []

    def gate(self, layer_path):
        self.gates[layer_path] = asyncio.Event()
        return self.gates[layer_path]

    def get_layer_status(self, layer_path):
        return self.statuses.get(layer_path)

    def is_queryable(self, layer_path):
        return self.statuses.get(layer_path) == LayerStatus.LOADED

    async def _answer(self, layer_path, value):
        self.calls.append(layer_path)
        if layer_path in self.gates:
            await self.gates[layer_path].wait()
        if layer_path in self.failures:
            raise LayerQueryError("query failed", layer_path=layer_path)
        if layer_path in self.errors:
            raise self.errors[layer_path]
        return value

    async def query_legend(self, layer_path):
        return await self._answer(layer_path, f"legend:{layer_path}")

    async def query_features(self, layer_path, query_type, location=None):
        return await self._answer(layer_path, [{"layerPath": layer_path, "queryType": query_type.value}])

    def gv_layers(self):
        return [
            GVLayer(layer_path=entry.layer_path,
                    renderable=RenderableLayer(layer_path=entry.layer_path, source_type="fake"),
                    geoview_layer=self)
            for entry in self.entries
        ]


def _attach(layer_set, fake):
    for entry in fake.entries:
        layer_set.register_config(fake, entry)
    for gv_layer in fake.gv_layers():
        layer_set.register_layer(gv_layer)


async def _settle_tasks():
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def make_fake(build_layer_config):
    def _make(geoview_layer_id, layer_ids, layer_type="esriDynamic", **entry_overrides):
        raw = make_raw_layer(
            geoview_layer_id,
            layer_type=layer_type,
            entries=[make_raw_entry(layer_id, **entry_overrides) for layer_id in layer_ids],
        )
        return FakeGeoViewLayer(build_layer_config(raw))
    return _make


@pytest.fixture
def query_ended(bus, map_scope):
    events = []
    bus.on(EventType.LAYER_SET_QUERY_ENDED, events.append, scope=map_scope)
    return events


class TestRegistration:

    def test_config_registers_pending_entry(self, bus, map_scope, make_fake):
        legends = LegendsLayerSet(bus, map_scope, map_id="mapOne")
        fake = make_fake("A", ["1", "2"])
        for entry in fake.entries:
            legends.register_config(fake, entry)

        assert legends.get_registered_layer_paths() == ["A/1", "A/2"]
        assert all(entry.data is PENDING for entry in legends.result_set.values())

    def test_layer_without_config_is_not_attached(self, bus, map_scope, make_fake):
        legends = LegendsLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        assert not legends.register_layer(fake.gv_layers()[0])

    def test_status_events_update_entries(self, bus, map_scope, make_fake):
        legends = LegendsLayerSet(bus, map_scope)
        _attach(legends, make_fake("A", ["1"]))
        bus.emit(
            EventType.LAYER_STATUS_CHANGED,
            LayerStatusChangedEvent(layer_path="A/1", layer_status=LayerStatus.ERROR),
            scope=map_scope.child("A"),
        )
        assert legends.result_set["A/1"].layer_status == LayerStatus.ERROR

    def test_unregister_announces_removal(self, bus, map_scope, make_fake):
        legends = LegendsLayerSet(bus, map_scope)
        _attach(legends, make_fake("A", ["1"]))
        updates = []
        bus.on(EventType.LAYER_SET_UPDATED, updates.append, scope=map_scope)

        assert legends.unregister("A/1")
        assert not legends.unregister("A/1")
        assert [(u.layer_path, u.action) for u in updates] == [("A/1", "removed")]

    def test_non_queryable_entries_skip_feature_info(self, bus, map_scope, make_fake):
        feature_info = FeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"], source={"featureInfo": {"queryable": False}})
        _attach(feature_info, fake)
        assert feature_info.result_set == {}

    def test_hover_excludes_wms(self, bus, map_scope, make_fake):
        hover = HoverFeatureInfoLayerSet(bus, map_scope)
        feature_info = FeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("W", ["roads"], layer_type="ogcWms")
        _attach(hover, fake)
        _attach(feature_info, fake)

        assert hover.result_set == {}
        assert list(feature_info.result_set) == ["W/roads"]

    def test_detach_stops_listening(self, bus, map_scope):
        legends = LegendsLayerSet(bus, map_scope)
        before = bus.handler_count(scope=map_scope)
        legends.detach()
        assert bus.handler_count(scope=map_scope) == before - 2


class TestQueryRounds:

    @pytest.mark.anyio
    async def test_barrier_fires_once_after_last_settle(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        layer_a = make_fake("A", ["1", "2"])
        layer_b = make_fake("B", ["1"])
        layer_a.statuses["A/1"] = LayerStatus.LOADING
        _attach(legends, layer_a)
        _attach(legends, layer_b)
        gate_a2 = layer_a.gate("A/2")
        gate_b1 = layer_b.gate("B/1")

        task = asyncio.create_task(legends.query_legends())
        await _settle_tasks()
        assert legends.result_set["A/1"].data is None
        assert query_ended == []

        gate_a2.set()
        await _settle_tasks()
        assert query_ended == []

        gate_b1.set()
        results = await task

        assert len(query_ended) == 1
        assert query_ended[0].result_set["A/1"].data is None
        assert results["A/2"].data == "legend:A/2"
        assert results["B/1"].data == "legend:B/1"
        assert "A/1" not in layer_a.calls

    @pytest.mark.anyio
    async def test_failed_query_settles_to_none(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        fake = make_fake("A", ["1", "2"])
        fake.failures.add("A/1")
        _attach(legends, fake)

        results = await legends.query_legends()

        assert results["A/1"].data is None
        assert results["A/2"].data == "legend:A/2"
        assert len(query_ended) == 1

    @pytest.mark.anyio
    async def test_empty_round_ends_immediately(self, bus, map_scope, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        assert await legends.query_legends() == {}
        assert len(query_ended) == 1
        assert query_ended[0].result_set == {}

    @pytest.mark.anyio
    async def test_unregister_mid_round_unblocks_barrier(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        fake = make_fake("A", ["1", "2"])
        _attach(legends, fake)
        gate_1 = fake.gate("A/1")
        fake.gate("A/2").set()

        task = asyncio.create_task(legends.query_legends())
        await _settle_tasks()
        assert query_ended == []

        legends.unregister("A/1")
        assert len(query_ended) == 1
        assert list(query_ended[0].result_set) == ["A/2"]

        gate_1.set()
        await task
        assert len(query_ended) == 1

    @pytest.mark.anyio
    async def test_unregister_last_participant_ends_round(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        fake = make_fake("A", ["1"])
        _attach(legends, fake)
        gate = fake.gate("A/1")

        task = asyncio.create_task(legends.query_legends())
        await _settle_tasks()
        legends.unregister("A/1")

        assert len(query_ended) == 1
        assert query_ended[0].result_set == {}
        gate.set()
        assert await task == {}
        assert legends.active_round_ids() == []

    @pytest.mark.anyio
    async def test_error_status_mid_round_unblocks_barrier(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        fake = make_fake("A", ["1"])
        _attach(legends, fake)
        gate = fake.gate("A/1")

        task = asyncio.create_task(legends.query_legends())
        await _settle_tasks()
        bus.emit(
            EventType.LAYER_STATUS_CHANGED,
            LayerStatusChangedEvent(layer_path="A/1", layer_status=LayerStatus.ERROR),
            scope=map_scope.child("A"),
        )
        assert len(query_ended) == 1
        assert query_ended[0].result_set["A/1"].data is None

        gate.set()
        results = await task
        assert results["A/1"].data is None
        assert len(query_ended) == 1

    @pytest.mark.anyio
    async def test_superseded_round_results_are_discarded(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        fake = make_fake("A", ["1"])
        _attach(legends, fake)
        slow_gate = fake.gate("A/1")

        first = asyncio.create_task(legends.query_legends())
        await _settle_tasks()

        del fake.gates["A/1"]
        second = await legends.query_legends()
        assert second["A/1"].data == "legend:A/1"
        assert [event.round_id for event in query_ended] == [2]

        fake.failures.add("A/1")
        slow_gate.set()
        await first

        assert legends.result_set["A/1"].data == "legend:A/1"
        assert len(query_ended) == 1

    @pytest.mark.anyio
    @pytest.mark.parametrize("order", list(itertools.permutations(["B/1", "A/1", "A/2"])))
    async def test_barrier_waits_for_last_settle_in_any_order(self, bus, map_scope, make_fake, query_ended, order):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        layer_a = make_fake("A", ["1", "2"])
        layer_b = make_fake("B", ["1"])
        layer_a.failures.add("A/1")
        _attach(legends, layer_a)
        _attach(legends, layer_b)
        gates = {"A/1": layer_a.gate("A/1"), "A/2": layer_a.gate("A/2"), "B/1": layer_b.gate("B/1")}

        task = asyncio.create_task(legends.query_legends())
        await _settle_tasks()
        for layer_path in order:
            assert query_ended == []
            gates[layer_path].set()
            await _settle_tasks()
        await task

        assert len(query_ended) == 1
        result_set = query_ended[0].result_set
        assert result_set["A/1"].data is None
        assert result_set["A/2"].data == "legend:A/2"
        assert result_set["B/1"].data == "legend:B/1"

    @pytest.mark.anyio
    async def test_unexpected_exception_settles_to_none(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        fake = make_fake("A", ["1", "2"])
        fake.errors["A/1"] = TypeError("list indices must be integers or slices, not str")
        _attach(legends, fake)

        results = await legends.query_legends()

        assert results["A/1"].data is None
        assert results["A/2"].data == "legend:A/2"
        assert len(query_ended) == 1
        assert legends.active_round_ids() == []

    @pytest.mark.anyio
    async def test_single_path_query_during_full_round(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope, auto_fetch=False)
        fake = make_fake("A", ["1", "2"])
        _attach(legends, fake)
        gate = fake.gate("A/1")

        full = asyncio.create_task(legends.query_legends())
        await _settle_tasks()
        single = await legends.query_legend("A/2")
        assert single.data == "legend:A/2"
        assert [sorted(event.result_set) for event in query_ended] == [["A/2"]]

        gate.set()
        results = await full

        assert results["A/1"].data == "legend:A/1"
        assert {event.round_id: sorted(event.result_set) for event in query_ended} == {1: ["A/1"], 2: ["A/2"]}
        assert legends.active_round_ids() == []


class TestLegendAutoFetch:

    @pytest.mark.anyio
    async def test_attached_loaded_layer_fetches_legend(self, bus, map_scope, make_fake):
        legends = LegendsLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        _attach(legends, fake)
        await _settle_tasks()

        assert legends.result_set["A/1"].data == "legend:A/1"
        assert fake.calls == ["A/1"]

    @pytest.mark.anyio
    async def test_status_change_to_processed_fetches_legend(self, bus, map_scope, make_fake):
        legends = LegendsLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        fake.statuses["A/1"] = LayerStatus.LOADING
        _attach(legends, fake)
        await _settle_tasks()
        assert fake.calls == []

        updates = []
        bus.on(EventType.STORE_UPDATE, updates.append, scope=map_scope)
        bus.emit(
            EventType.LAYER_STATUS_CHANGED,
            LayerStatusChangedEvent(layer_path="A/1", layer_status=LayerStatus.PROCESSED),
            scope=map_scope.child("A"),
        )
        await _settle_tasks()

        assert legends.result_set["A/1"].data == "legend:A/1"
        assert any(update.kind == "query" and update.entry.data == "legend:A/1" for update in updates)

    @pytest.mark.anyio
    async def test_repeated_status_changes_fetch_once(self, bus, map_scope, make_fake, query_ended):
        legends = LegendsLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        gate = fake.gate("A/1")
        _attach(legends, fake)
        await _settle_tasks()

        for status in (LayerStatus.PROCESSED, LayerStatus.LOADED):
            bus.emit(
                EventType.LAYER_STATUS_CHANGED,
                LayerStatusChangedEvent(layer_path="A/1", layer_status=status),
                scope=map_scope.child("A"),
            )
        await _settle_tasks()
        gate.set()
        await _settle_tasks()

        assert fake.calls == ["A/1"]
        assert len(query_ended) == 1

    @pytest.mark.anyio
    async def test_detach_cancels_pending_fetch(self, bus, map_scope, make_fake):
        legends = LegendsLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        fake.gate("A/1")
        _attach(legends, fake)
        await _settle_tasks()

        legends.detach()
        await _settle_tasks()

        assert legends.result_set["A/1"].data is None

    def test_no_fetch_without_running_loop(self, bus, map_scope, make_fake):
        legends = LegendsLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        _attach(legends, fake)
        assert legends.result_set["A/1"].data is PENDING


class TestFeatureInfo:

    @pytest.mark.anyio
    async def test_query_status_follows_round(self, bus, map_scope, make_fake):
        feature_info = FeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("A", ["1", "2"])
        fake.failures.add("A/2")
        _attach(feature_info, fake)
        gate = fake.gate("A/1")

        task = asyncio.create_task(feature_info.query_layers((-75.7, 45.4)))
        await _settle_tasks()
        assert feature_info.result_set["A/1"].query_status == QueryStatus.PROCESSING

        gate.set()
        results = await task

        assert results["A/1"].query_status == QueryStatus.PROCESSED
        assert results["A/1"].data[0]["layerPath"] == "A/1"
        assert results["A/2"].query_status == QueryStatus.ERROR
        assert results["A/2"].data is None

    @pytest.mark.anyio
    async def test_hover_queries_at_pixel(self, bus, map_scope, make_fake):
        hover = HoverFeatureInfoLayerSet(bus, map_scope, debounce_ms=0)
        fake = make_fake("A", ["1"])
        _attach(hover, fake)

        results = await hover.query_at_pixel((-75.7, 45.4))
        assert results["A/1"].data == [{"layerPath": "A/1", "queryType": "at_pixel"}]

    @pytest.mark.anyio
    async def test_hover_newer_position_supersedes_pending(self, bus, map_scope, make_fake):
        hover = HoverFeatureInfoLayerSet(bus, map_scope, debounce_ms=20)
        fake = make_fake("A", ["1"])
        _attach(hover, fake)

        first, second = await asyncio.gather(
            hover.query_at_pixel((-75.0, 45.0)),
            hover.query_at_pixel((-75.7, 45.4)),
        )

        assert first is None
        assert second["A/1"].query_status == QueryStatus.PROCESSED
        assert fake.calls == ["A/1"]

    @pytest.mark.anyio
    async def test_layer_not_loaded_is_not_queried(self, bus, map_scope, make_fake):
        feature_info = FeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        fake.statuses["A/1"] = LayerStatus.PROCESSED
        _attach(feature_info, fake)

        results = await feature_info.query_layers((0, 0))
        assert results["A/1"].data is None
        assert fake.calls == []

    @pytest.mark.anyio
    async def test_repeat_last_query(self, bus, map_scope, make_fake):
        feature_info = FeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        _attach(feature_info, fake)

        assert await feature_info.repeat_last_query() is None
        await feature_info.query_layers((-75.7, 45.4))
        await feature_info.repeat_last_query()
        assert fake.calls == ["A/1", "A/1"]

    @pytest.mark.anyio
    async def test_clear_results(self, bus, map_scope, make_fake, query_ended):
        feature_info = FeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        _attach(feature_info, fake)
        gate = fake.gate("A/1")

        task = asyncio.create_task(feature_info.query_layers((1, 2)))
        await _settle_tasks()
        feature_info.clear_results()
        gate.set()
        await task

        assert feature_info.result_set["A/1"].data == []
        assert query_ended == []


class TestAllFeatureInfo:

    @pytest.mark.anyio
    async def test_query_of_another_layer_leaves_first_in_flight(self, bus, map_scope, make_fake, query_ended):
        all_features = AllFeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("A", ["1", "2"])
        _attach(all_features, fake)
        gate = fake.gate("A/1")

        first = asyncio.create_task(all_features.query_layer("A/1"))
        await _settle_tasks()
        entry = await all_features.query_layer("A/2")
        assert entry.data[0]["queryType"] == "all"
        assert all_features.result_set["A/1"].data is PENDING

        gate.set()
        first_entry = await first

        assert first_entry.data[0]["layerPath"] == "A/1"
        assert all_features.result_set["A/1"].query_status == QueryStatus.PROCESSED
        assert [list(event.result_set) for event in query_ended] == [["A/2"], ["A/1"]]

    @pytest.mark.anyio
    async def test_clear_layer_features_discards_result_in_flight(self, bus, map_scope, make_fake, query_ended):
        all_features = AllFeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        _attach(all_features, fake)
        gate = fake.gate("A/1")

        task = asyncio.create_task(all_features.query_layer("A/1"))
        await _settle_tasks()
        all_features.clear_layer_features("A/1")
        gate.set()
        await task

        assert all_features.result_set["A/1"].data is PENDING
        assert query_ended == []

    @pytest.mark.anyio
    async def test_disabled_entry_is_not_queried(self, bus, map_scope, make_fake):
        all_features = AllFeatureInfoLayerSet(bus, map_scope)
        fake = make_fake("A", ["1"])
        _attach(all_features, fake)
        all_features.set_disabled("A/1", True)

        entry = await all_features.query_layer("A/1")
        assert entry.data is None
        assert fake.calls == []

    @pytest.mark.anyio
    async def test_clear_layer_features(self, bus, map_scope, make_fake):
        all_features = AllFeatureInfoLayerSet(bus, map_scope)
        _attach(all_features, make_fake("A", ["1"]))
        await all_features.query_layer("A/1")

        all_features.clear_layer_features("A/1")
        assert all_features.result_set["A/1"].data is PENDING
        assert all_features.result_set["A/1"].query_status is None

    @pytest.mark.anyio
    async def test_unknown_path(self, bus, map_scope):
        assert await AllFeatureInfoLayerSet(bus, map_scope).query_layer("nope/1") is None
