"""
Layer lifecycle tests — six-step load against mocked services.

Services are served by httpx.MockTransport; each test declares the routes
it needs as {url path: response}.
"""

import asyncio
import json
import xml.etree.ElementTree as ET

import httpx
import pytest

from core.errors import ErrorCode
from core.events import EventScope
from core.models.enums import EventType, GeoviewLayerType, LayerStatus, QueryType
from exceptions import ContractViolationError, InvalidGeoviewLayerTypeError, LayerCancelledError, LayerQueryError
from geoview_layers import get_layer_class
from geoview_layers.ogc_layers import WMSLayer
from geoview_layers.renderable import RenderableGroup
from infrastructure.metadata_client import MetadataClient
from tests.factories.model_factories import make_raw_group, make_raw_layer
from tests.factories.service_responses import (
    ESRI_PATH,
    ESRI_URL,
    WMS_CAPABILITIES,
    esri_routes,
    mock_async_client,
)


@pytest.fixture
def requests_seen():
    return []


@pytest.fixture
def make_client(requests_seen):
    """Factory fixture: routes -> MetadataClient on a mocked transport."""
    def _make(routes):
        return MetadataClient(client=mock_async_client(routes, requests_seen))
    return _make


@pytest.fixture
def make_layer(bus, map_scope, build_layer_config):
    def _make(raw, client):
        layer_config = build_layer_config(raw)
        layer_class = get_layer_class(layer_config.geoview_layer_type)
        return layer_class(
            layer_config,
            bus=bus,
            scope=map_scope.child(layer_config.geoview_layer_id),
            client=client,
            map_id="mapOne",
        )
    return _make


@pytest.fixture
def status_events(bus, map_scope):
    events = []
    bus.on(EventType.LAYER_STATUS_CHANGED,
           lambda e: events.append((e.layer_path, e.layer_status)), scope=map_scope)
    return events


def _esri_layer(entries, layer_id="esri"):
    return make_raw_layer(layer_id, entries=entries, metadataAccessPath={"en": ESRI_URL, "fr": ESRI_URL})


class TestEsriLifecycle:

    @pytest.mark.anyio
    async def test_successful_load(self, make_client, make_layer, status_events, bus, map_scope):
        added = []
        bus.on(EventType.LAYER_ADDED, added.append, scope=map_scope)
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(esri_routes()))

        assert await layer.load() == LayerStatus.LOADED

        assert [status for path, status in status_events if path == "esri/0"] == [
            LayerStatus.LOADING, LayerStatus.PROCESSED, LayerStatus.LOADED,
        ]
        assert [a.geoview_layer_id for a in added] == ["esri"]
        assert list(layer.gv_layers) == ["esri/0"]
        assert layer.renderables["esri/0"].source_url == ESRI_URL
        assert layer.all_layer_status_are_greater_than_or_equal_to(LayerStatus.PROCESSED)
        assert layer.count_error_status() == 0

    @pytest.mark.anyio
    async def test_server_metadata_is_merged(self, make_client, make_layer, bus, map_scope):
        names = []
        bus.on(EventType.LAYER_NAME_CHANGED, names.append, scope=map_scope)
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(esri_routes()))
        await layer.load()

        entry = layer.get_entry("esri/0")
        feature_info = entry.source.feature_info
        assert layer.get_layer_name("esri/0") == "Roads"
        assert [n.layer_name for n in names] == ["Roads"]
        assert feature_info.queryable is True
        assert feature_info.name_field == "NAME"
        assert feature_info.aliases == {"NAME": "Road name", "LANES": "Lanes"}
        assert entry.initial_settings.extent == (-80.0, 43.0, -74.0, 47.0)
        assert entry.style["renderer"]["type"] == "uniqueValue"

    @pytest.mark.anyio
    async def test_user_settings_win(self, make_client, make_layer):
        raw_entry = {
            "layerId": "0",
            "layerName": {"en": "Mine"},
            "source": {"featureInfo": {"queryable": False, "nameField": "LANES"}},
        }
        layer = make_layer(_esri_layer([raw_entry]), make_client(esri_routes()))
        await layer.load()

        entry = layer.get_entry("esri/0")
        assert layer.get_layer_name("esri/0") == "Mine"
        assert entry.source.feature_info.queryable is False
        assert entry.source.feature_info.name_field == "LANES"
        assert not layer.is_queryable("esri/0")

    @pytest.mark.anyio
    async def test_metadata_failure_fails_every_path(self, make_client, make_layer, bus, map_scope):
        errors = []
        bus.on(EventType.LAYER_ERROR, errors.append, scope=map_scope)
        client = make_client({ESRI_PATH: httpx.Response(500)})
        layer = make_layer(_esri_layer([{"layerId": "0"}, {"layerId": "1"}]), client)

        assert await layer.load() == LayerStatus.ERROR
        assert layer.get_layer_status("esri/0") == LayerStatus.ERROR
        assert layer.get_layer_status("esri/1") == LayerStatus.ERROR
        assert [(e.layer_path, e.error_code) for e in errors] == [("esri", ErrorCode.METADATA_UNAVAILABLE)]
        assert errors[0].details["retryable"] is True
        assert errors[0].details["error_category"] == "TRANSIENT"

    @pytest.mark.anyio
    async def test_service_error_object_is_a_failure(self, make_client, make_layer):
        client = make_client({ESRI_PATH: {"error": {"code": 499, "message": "Token Required"}}})
        layer = make_layer(_esri_layer([{"layerId": "0"}]), client)

        assert await layer.load() == LayerStatus.ERROR
        assert "Token Required" in layer.errors[0].message

    @pytest.mark.anyio
    async def test_entry_missing_from_metadata(self, make_client, make_layer, bus, map_scope):
        errors = []
        bus.on(EventType.LAYER_ERROR, errors.append, scope=map_scope)
        layer = make_layer(_esri_layer([{"layerId": "0"}, {"layerId": "7"}]), make_client(esri_routes()))

        assert await layer.load() == LayerStatus.LOADED
        assert layer.get_layer_status("esri/7") == LayerStatus.ERROR
        assert layer.get_layer_status("esri/0") == LayerStatus.LOADED
        assert [(e.layer_path, e.error_code) for e in errors] == [("esri/7", ErrorCode.ENTRY_NOT_IN_METADATA)]
        assert "esri/7" not in layer.gv_layers

    @pytest.mark.anyio
    async def test_group_status_follows_children(self, make_client, make_layer, status_events):
        group = make_raw_group("g", children=[{"layerId": "0"}, {"layerId": "7"}])
        layer = make_layer(_esri_layer([group]), make_client(esri_routes()))
        await layer.load()

        assert [status for path, status in status_events if path == "esri/g"] == [
            LayerStatus.LOADING, LayerStatus.PROCESSED, LayerStatus.LOADED,
        ]
        renderable = layer.renderables["esri/g"]
        assert isinstance(renderable, RenderableGroup)
        assert [child.layer_path for child in renderable.children] == ["esri/g/0"]

    @pytest.mark.anyio
    async def test_group_with_every_child_failing(self, make_client, make_layer):
        routes = esri_routes(**{f"{ESRI_PATH}/0": httpx.Response(404), f"{ESRI_PATH}/1": httpx.Response(404)})
        group = make_raw_group("g", children=[{"layerId": "0"}, {"layerId": "1"}])
        layer = make_layer(_esri_layer([group]), make_client(routes))

        assert await layer.load() == LayerStatus.ERROR
        assert layer.get_layer_status("esri/g") == LayerStatus.ERROR
        assert layer.all_layer_entries_in_error()

    @pytest.mark.anyio
    async def test_load_runs_once(self, make_client, make_layer):
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(esri_routes()))
        await layer.load()
        with pytest.raises(ContractViolationError):
            await layer.load()

    @pytest.mark.anyio
    async def test_cancel_during_metadata_fetch(self, make_client, make_layer):
        started = asyncio.Event()
        never = asyncio.Event()

        async def hang(request):
            started.set()
            await never.wait()
            return {}

        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client({ESRI_PATH: hang}))
        task = asyncio.create_task(layer.load())
        await started.wait()
        layer.cancel()

        assert await task == LayerStatus.ERROR
        assert isinstance(layer.errors[-1], LayerCancelledError)
        assert layer.errors[-1].error_code == ErrorCode.CANCELLED
        assert layer.get_layer_status("esri/0") == LayerStatus.ERROR


class TestEsriQueries:

    @pytest.mark.anyio
    async def test_point_query(self, make_client, make_layer, requests_seen):
        features = {"features": [
            {"attributes": {"NAME": "401", "LANES": 6, "OBJECTID": 3}, "geometry": {"x": -75.7, "y": 45.4}},
        ]}
        routes = esri_routes(**{f"{ESRI_PATH}/0/query": features})
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(routes))
        await layer.load()

        result = await layer.query_features("esri/0", QueryType.AT_LONG_LAT, (-75.7, 45.4))

        assert len(result) == 1
        assert result[0].field_info == {"NAME": "401", "LANES": 6}
        assert result[0].name_field == "NAME"
        params = requests_seen[-1].url.params
        assert params["geometry"] == "-75.7,45.4"
        assert params["geometryType"] == "esriGeometryPoint"
        assert params["outFields"] == "NAME,LANES"

    @pytest.mark.anyio
    async def test_all_features_query(self, make_client, make_layer, requests_seen):
        routes = esri_routes(**{f"{ESRI_PATH}/0/query": {"features": []}})
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(routes))
        await layer.load()

        assert await layer.query_features("esri/0", QueryType.ALL) == []
        assert requests_seen[-1].url.params["where"] == "1=1"

    @pytest.mark.anyio
    async def test_query_failure_is_a_query_error(self, make_client, make_layer):
        routes = esri_routes(**{f"{ESRI_PATH}/0/query": httpx.Response(500)})
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(routes))
        await layer.load()

        with pytest.raises(LayerQueryError):
            await layer.query_features("esri/0", QueryType.ALL)

    @pytest.mark.anyio
    async def test_legend_from_renderer(self, make_client, make_layer):
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(esri_routes()))
        await layer.load()

        legend = await layer.query_legend("esri/0")
        assert [item["label"] for item in legend.items] == ["Highway"]

    @pytest.mark.anyio
    async def test_query_answering_a_list_is_a_query_error(self, make_client, make_layer):
        routes = esri_routes(**{f"{ESRI_PATH}/0/query": [1]})
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(routes))
        await layer.load()

        with pytest.raises(LayerQueryError):
            await layer.query_features("esri/0", QueryType.ALL)

    @pytest.mark.anyio
    async def test_legend_service_answering_a_list_is_a_query_error(self, make_client, make_layer):
        routes = esri_routes(**{
            f"{ESRI_PATH}/0": {"id": 0, "name": "Roads", "type": "Feature Layer", "drawingInfo": {}},
            f"{ESRI_PATH}/legend": [1],
        })
        layer = make_layer(_esri_layer([{"layerId": "0"}]), make_client(routes))
        await layer.load()

        with pytest.raises(LayerQueryError):
            await layer.query_legend("esri/0")


class TestFileLayers:

    @pytest.mark.anyio
    async def test_geojson_point_and_all_queries(self, make_client, make_layer):
        collection = {"type": "FeatureCollection", "features": [
            {"type": "Feature", "properties": {"name": "Ottawa"},
             "geometry": {"type": "Point", "coordinates": [-75.7, 45.4]}},
            {"type": "Feature", "properties": {"name": "St. Lawrence"},
             "geometry": {"type": "LineString", "coordinates": [[-74, 45], [-70, 47]]}},
        ]}
        url = "https://files.test/data/places.geojson"
        raw = make_raw_layer("geo", layer_type="GeoJSON", entries=[{"layerId": "places"}],
                             metadataAccessPath={"en": url, "fr": url})
        layer = make_layer(raw, make_client({"/data/places.geojson": collection}))

        assert await layer.load() == LayerStatus.LOADED
        assert layer.get_entry("geo/places").initial_settings.extent == (-75.7, 45.0, -70.0, 47.0)

        hits = await layer.query_features("geo/places", QueryType.AT_LONG_LAT, (-75.705, 45.4))
        assert [f.field_info["name"] for f in hits] == ["Ottawa"]
        every = await layer.query_features("geo/places", QueryType.ALL)
        assert len(every) == 2

    @pytest.mark.anyio
    async def test_geojson_wrong_document(self, make_client, make_layer):
        url = "https://files.test/data/bad.geojson"
        raw = make_raw_layer("geo", layer_type="GeoJSON", entries=[{"layerId": "bad"}],
                             metadataAccessPath={"en": url, "fr": url})
        layer = make_layer(raw, make_client({"/data/bad.geojson": {"type": "Feature"}}))

        assert await layer.load() == LayerStatus.ERROR
        assert layer.get_layer_status("geo/bad") == LayerStatus.ERROR

    @pytest.mark.anyio
    async def test_csv_layer(self, make_client, make_layer):
        text = "Station,Latitude,Longitude\nA,45.4,-75.7\nB,49.3,-123.1\nC,,\n"
        url = "https://files.test/data/stations.csv"
        raw = make_raw_layer("csv", layer_type="CSV", entries=[{"layerId": "stations"}],
                             metadataAccessPath={"en": url, "fr": url})
        layer = make_layer(raw, make_client({"/data/stations.csv": text}))
        await layer.load()

        every = await layer.query_features("csv/stations", QueryType.ALL)
        assert [f.field_info for f in every] == [{"Station": "A"}, {"Station": "B"}]
        hits = await layer.query_features("csv/stations", QueryType.AT_LONG_LAT, (-123.1, 49.3))
        assert [f.field_info["Station"] for f in hits] == ["B"]

    @pytest.mark.anyio
    async def test_csv_without_coordinates(self, make_client, make_layer):
        url = "https://files.test/data/table.csv"
        raw = make_raw_layer("csv", layer_type="CSV", entries=[{"layerId": "table"}],
                             metadataAccessPath={"en": url, "fr": url})
        layer = make_layer(raw, make_client({"/data/table.csv": "a,b\n1,2\n"}))

        assert await layer.load() == LayerStatus.ERROR

    @pytest.mark.anyio
    async def test_geopackage_is_not_queryable(self, make_client, make_layer):
        url = "https://files.test/data/lakes.gpkg"
        raw = make_raw_layer("gpkg", layer_type="GeoPackage", entries=[{"layerId": "lakes"}],
                             metadataAccessPath={"en": url, "fr": url})
        layer = make_layer(raw, make_client({}))

        assert await layer.load() == LayerStatus.LOADED
        assert not layer.is_queryable("gpkg/lakes")
        with pytest.raises(LayerQueryError):
            await layer.query_features("gpkg/lakes", QueryType.ALL)


class TestWMS:

    def test_parse_capabilities(self):
        layers = WMSLayer.parse_capabilities(ET.fromstring(WMS_CAPABILITIES))

        assert set(layers) == {"roads", "hillshade"}
        assert layers["roads"]["queryable"] is True
        assert layers["roads"]["extent"] == (-141.0, 41.0, -52.0, 83.0)
        assert layers["roads"]["legend_url"] == "https://wms.test/legend/roads.png"
        assert layers["hillshade"]["queryable"] is False
        assert layers["hillshade"]["legend_url"] is None

    @pytest.mark.anyio
    async def test_wms_load_query_and_legend(self, make_client, make_layer, requests_seen):
        url = "https://wms.test/ows"
        feature_info = {"type": "FeatureCollection", "features": [
            {"type": "Feature", "properties": {"name": "Hwy 17"}, "geometry": None},
        ]}

        async def ows(request):
            if request.url.params.get("request") == "GetFeatureInfo":
                return httpx.Response(200, content=json.dumps(feature_info))
            return WMS_CAPABILITIES

        raw = make_raw_layer("wms", layer_type="ogcWms",
                             entries=[{"layerId": "roads"}, {"layerId": "hillshade"}, {"layerId": "missing"}],
                             metadataAccessPath={"en": url, "fr": url})
        layer = make_layer(raw, make_client({"/ows": ows}))

        assert await layer.load() == LayerStatus.LOADED
        assert layer.get_layer_status("wms/missing") == LayerStatus.ERROR
        assert layer.get_layer_name("wms/roads") is not None
        assert layer.is_queryable("wms/roads")
        assert not layer.is_queryable("wms/hillshade")

        hits = await layer.query_features("wms/roads", QueryType.AT_LONG_LAT, (-75.7, 45.4))
        assert [f.field_info["name"] for f in hits] == ["Hwy 17"]
        params = requests_seen[-1].url.params
        assert params["crs"] == "CRS:84"
        assert (params["width"], params["i"]) == ("101", "50")

        roads_legend = await layer.query_legend("wms/roads")
        assert roads_legend.url == "https://wms.test/legend/roads.png"
        hillshade_legend = await layer.query_legend("wms/hillshade")
        assert "request=GetLegendGraphic" in hillshade_legend.url
        assert "layer=hillshade" in hillshade_legend.url


def test_layer_scope_is_child_of_map(map_scope):
    scope = map_scope.child("esri")
    assert map_scope.contains(scope)
    assert not scope.contains(EventScope("mapOne"))


def test_geocore_placeholder_has_no_layer_class():
    with pytest.raises(InvalidGeoviewLayerTypeError) as exc_info:
        get_layer_class(GeoviewLayerType.GEOCORE)
    assert exc_info.value.error_code == ErrorCode.INVALID_LAYER_TYPE
