"""
GeoView Layer Class Registry.

Maps ``geoviewLayerType`` values to the GeoView layer class that runs the
lifecycle for them.

Usage:
    from geoview_layers.registry import register_layer_class, get_layer_class

    @register_layer_class(GeoviewLayerType.WMS)
    class WMSLayer(AbstractGeoViewLayer):
        ...

    layer_class = get_layer_class(GeoviewLayerType.WMS)
"""

import logging
from typing import Dict, List, Type

from core.models.enums import GeoviewLayerType
from exceptions import InvalidGeoviewLayerTypeError

logger = logging.getLogger(__name__)

_REGISTRY: Dict[GeoviewLayerType, Type] = {}


def register_layer_class(*layer_types: GeoviewLayerType):
    """Decorator to register a GeoView layer class for layer types."""
    def decorator(cls: Type) -> Type:
        for layer_type in layer_types:
            if layer_type in _REGISTRY:
                logger.warning(f"Layer class '{layer_type.value}' already registered, overwriting")
            _REGISTRY[layer_type] = cls
        cls.layer_types = tuple(layer_types)
        return cls
    return decorator


def get_layer_class(layer_type: GeoviewLayerType) -> Type:
    """
    Look up the layer class of a layer type.

    Raises:
        InvalidGeoviewLayerTypeError if no class is registered
    """
    if layer_type not in _REGISTRY:
        available = [t.value for t in _REGISTRY]
        raise InvalidGeoviewLayerTypeError(f"Unknown layer class: '{layer_type}'. Available layer classes: {available}")
    return _REGISTRY[layer_type]


def has_layer_class(layer_type: GeoviewLayerType) -> bool:
    """Check if a layer class is registered."""
    return layer_type in _REGISTRY


def list_layer_classes() -> List[str]:
    """List all registered layer types."""
    return [t.value for t in _REGISTRY]
