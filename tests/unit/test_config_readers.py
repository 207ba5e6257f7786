"""
Config reader tests — inline strings, URL parameters, GeoCore responses.
"""

import pytest

from core.errors import ErrorCode
from exceptions import GeoCoreResolutionError
from services.config_readers import (
    apply_geocore_overrides,
    get_map_props_from_url_params,
    layer_configs_from_response,
    normalize_quotes,
    parse_config_string,
    parse_object_from_url,
    read_json_document,
    read_url_config,
    remove_comments_from_json,
)
from services.config_validator import validate
from tests.factories.model_factories import make_geocore_response


class TestInlineReader:

    def test_block_and_line_comments_are_removed(self):
        text = '{"a": 1, /* block\n comment */ "b": 2} // trailing'
        assert parse_config_string(text) == {"a": 1, "b": 2}

    def test_urls_keep_their_double_slash(self):
        text = '{"url": "https://example.test/path"}'
        assert remove_comments_from_json(text) == text

    def test_single_quotes_become_double_quotes(self):
        assert normalize_quotes("{'a': 'it\\'s'}") == '{"a": "it\'s"}'

    @pytest.mark.parametrize("text", ["", "   ", "{broken", "[1, 2]"])
    def test_unusable_text_returns_none(self, text):
        assert parse_config_string(text) is None

    def test_local_document(self, tmp_path):
        document = tmp_path / "map.json"
        document.write_text('{"map": {"interaction": "static"}} // local copy', encoding="utf-8")
        assert read_json_document(document) == {"map": {"interaction": "static"}}

    def test_missing_local_document(self, tmp_path):
        assert read_json_document(tmp_path / "missing.json") is None


class TestURLReader:

    def test_map_props(self):
        props = get_map_props_from_url_params("https://viewer.test/?p=3857&z=4&l=fr")
        assert props == {"p": "3857", "z": "4", "l": "fr"}

    def test_object_literal(self):
        assert parse_object_from_url("{basemapId:transport,shaded:true,labeled:false}") == {
            "basemapId": "transport", "shaded": True, "labeled": False,
        }

    def test_full_url_configuration(self):
        raw = read_url_config(
            "https://viewer.test/?p=3857&z=6&c=-100,55&l=fr&b={basemapId:simple,shaded:false,labeled:true}"
            "&keys=uuid-one,uuid-two&cc=north-arrow",
            map_id="mapOne",
        )

        assert raw["mapId"] == "mapOne"
        assert raw["map"]["viewSettings"] == {"projection": 3857, "zoom": 6, "center": [-100, 55]}
        assert raw["map"]["basemapOptions"] == {"basemapId": "simple", "shaded": False, "labeled": True}
        assert raw["displayLanguage"] == "fr"
        assert raw["components"] == ["north-arrow"]
        assert [layer["geoviewLayerId"] for layer in raw["map"]["listOfGeoviewLayerConfig"]] == \
            ["uuid-one", "uuid-two"]
        assert {layer["geoviewLayerType"] for layer in raw["map"]["listOfGeoviewLayerConfig"]} == {"geoCore"}

    @pytest.mark.parametrize("url", ["https://viewer.test/", "https://viewer.test/?geoms=abc&z=4"])
    def test_no_configuration(self, url):
        assert read_url_config(url) is None

    def test_url_then_validator_round_trip(self):
        raw = read_url_config("?p=3857&z=40&c=-100,55")
        result = validate(raw, map_id="mapOne")

        assert result.config.view_settings.projection == 3857
        assert list(result.config.view_settings.center) == [-100, 55]
        assert [d.field_path for d in result.diagnostics] == ["map.viewSettings.zoom"]


class TestGeoCoreReader:

    def test_feature_server_url_becomes_esri_feature(self):
        payload = make_geocore_response([{
            "id": "uuid-one",
            "name": "Rivers",
            "layerType": "esriDynamic",
            "url": "https://maps.test/arcgis/rest/services/Hydro/FeatureServer/3",
        }])
        configs = layer_configs_from_response(payload, "en")

        assert len(configs) == 1
        config = configs[0]
        assert config["geoviewLayerType"] == "esriFeature"
        assert config["metadataAccessPath"]["en"] == "https://maps.test/arcgis/rest/services/Hydro/FeatureServer"
        assert config["listOfLayerEntryConfig"] == [{"layerId": "3"}]

    def test_dynamic_layer_entries_by_index(self):
        payload = make_geocore_response([{
            "id": "uuid-two",
            "layerType": "esriDynamic",
            "url": "https://maps.test/arcgis/rest/services/Base/MapServer",
            "layerEntries": [{"index": 0}, {"index": 4}],
        }])
        config = layer_configs_from_response(payload, "en")[0]
        assert [e["layerId"] for e in config["listOfLayerEntryConfig"]] == ["0", "4"]

    def test_unsupported_layer_type_is_skipped(self):
        payload = make_geocore_response([{"id": "x", "layerType": "KML", "url": "https://x.test"}])
        assert layer_configs_from_response(payload, "en") == []

    def test_malformed_response(self):
        with pytest.raises(GeoCoreResolutionError) as exc_info:
            layer_configs_from_response({"errorMessage": "bad id"}, "en")
        assert exc_info.value.error_code == ErrorCode.GEOCORE_UNAVAILABLE

    def test_empty_response(self):
        with pytest.raises(GeoCoreResolutionError) as exc_info:
            layer_configs_from_response(make_geocore_response([]), "en")
        assert exc_info.value.error_code == ErrorCode.GEOCORE_EMPTY

    @pytest.mark.parametrize("payload", [
        {"reponse": {"rcs": {"en": {"layers": []}}}},
        {"reponse": {"rcs": {"en": "uuid-one"}}},
        {"reponse": {"rcs": {"en": [{"layers": {"id": "uuid-one"}}]}}},
        {"reponse": {"rcs": {"en": [{"layers": ["uuid-one"]}]}}},
        {"reponse": {"rcs": {"en": [["uuid-one"]]}}},
        {"reponse": ["uuid-one"]},
    ])
    def test_wrongly_typed_response(self, payload):
        with pytest.raises(GeoCoreResolutionError) as exc_info:
            layer_configs_from_response(payload, "en")
        assert exc_info.value.error_code == ErrorCode.GEOCORE_UNAVAILABLE

    def test_placeholder_overrides(self):
        resolved = {
            "geoviewLayerId": "uuid-one",
            "geoviewLayerType": "esriDynamic",
            "listOfLayerEntryConfig": [{"layerId": "0"}],
        }
        placeholder = {
            "geoviewLayerId": "uuid-one:abcd1234",
            "geoviewLayerType": "geoCore",
            "geoviewLayerName": {"en": "Mine"},
            "listOfLayerEntryConfig": [{"layerId": "uuid-one", "entryType": "geoCore"}],
        }
        merged = apply_geocore_overrides(resolved, placeholder)

        assert merged["geoviewLayerId"] == "uuid-one:abcd1234"
        assert merged["geoviewLayerName"] == {"en": "Mine"}
        assert merged["listOfLayerEntryConfig"] == [{"layerId": "0", "layerName": {"en": "Mine"}}]
        assert resolved["geoviewLayerId"] == "uuid-one"
