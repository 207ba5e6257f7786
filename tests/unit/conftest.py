"""
Unit test fixtures — event bus, scopes and built layer configs.
"""

import pytest

from core.events import EventBus, EventScope
from services.node_factory import FactoryContext, node_factory


@pytest.fixture
def bus():
    return EventBus(name="test")


@pytest.fixture
def map_scope():
    return EventScope("mapOne")


@pytest.fixture
def factory_context():
    return FactoryContext(map_id="mapOne")


@pytest.fixture
def build_layer_config(factory_context):
    """Factory fixture: raw GeoView layer config -> GeoviewLayerConfig."""
    def _build(raw):
        layer_config = node_factory(raw, factory_context)
        assert layer_config is not None, factory_context.diagnostics
        return layer_config
    return _build
