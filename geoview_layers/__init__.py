"""
GeoView Layers.

Importing this package registers every layer family with the layer class
registry.

Exports:
    AbstractGeoViewLayer, LayerManager, GVLayer, RenderableLayer,
    RenderableGroup, register_layer_class, get_layer_class,
    has_layer_class, list_layer_classes
"""

from .abstract_layer import AbstractGeoViewLayer
from .registry import register_layer_class, get_layer_class, has_layer_class, list_layer_classes
from .renderable import GVLayer, RenderableGroup, RenderableLayer

# Layer families (registration side effect)
from . import esri_layers, file_layers, ogc_layers, tile_layers  # noqa: F401

from .layer_manager import LayerManager

__all__ = [
    'AbstractGeoViewLayer',
    'LayerManager',
    'GVLayer',
    'RenderableLayer',
    'RenderableGroup',
    'register_layer_class',
    'get_layer_class',
    'has_layer_class',
    'list_layer_classes',
]
