"""
Enum count and property assertions.

Anti-overfitting: Count assertions catch silent additions/removals.
"""

import pytest

from core.models.enums import (
    DisplayLanguage,
    EventType,
    GeoviewLayerType,
    LayerEntryType,
    LayerStatus,
    QueryStatus,
    QueryType,
)


class TestLayerStatusEnum:
    def test_has_exactly_5_values(self):
        assert len(LayerStatus) == 5

    def test_expected_values(self):
        assert {s.value for s in LayerStatus} == {"newInstance", "loading", "processed", "loaded", "error"}

    def test_string_comparison(self):
        assert LayerStatus.LOADED == "loaded"


class TestQueryStatusEnum:
    def test_has_exactly_3_values(self):
        assert len(QueryStatus) == 3

    def test_all_values_are_lowercase(self):
        for status in QueryStatus:
            assert status.value == status.value.lower()


class TestGeoviewLayerTypeEnum:
    def test_has_exactly_13_values(self):
        assert len(GeoviewLayerType) == 13

    @pytest.mark.parametrize("value", ["CSV", "GeoJSON", "GeoPackage", "ogcWms", "ogcWfs", "geoCore"])
    def test_wire_values_keep_their_case(self, value):
        assert GeoviewLayerType(value).value == value


class TestLayerEntryTypeEnum:
    def test_has_exactly_6_values(self):
        assert len(LayerEntryType) == 6

    def test_expected_members(self):
        names = {t.name for t in LayerEntryType}
        assert names == {"VECTOR", "VECTOR_TILE", "RASTER_TILE", "RASTER_IMAGE", "GROUP", "GEOCORE"}


class TestQueryTypeEnum:
    def test_has_exactly_3_values(self):
        assert len(QueryType) == 3

    def test_expected_values(self):
        assert {q.value for q in QueryType} == {"at_pixel", "at_long_lat", "all"}


class TestEventTypeEnum:
    def test_has_exactly_9_values(self):
        assert len(EventType) == 9

    def test_values_are_namespaced(self):
        for event_type in EventType:
            assert "/" in event_type.value


class TestDisplayLanguageEnum:
    def test_languages(self):
        assert [lang.value for lang in DisplayLanguage] == ["en", "fr"]
