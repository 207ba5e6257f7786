"""
Map Core Services.

Config readers, validation, the layer config node factory and the layer
sets.

Exports:
    ConfigValidator, validate: Map features configuration validation
    node_factory, build_layer_tree, FactoryContext: Layer config tree
    register_node_type, get_node_builder, has_node_builder, list_node_types
"""

from .config_validator import ConfigValidator, validate
from .node_factory import (
    FactoryContext,
    node_factory,
    build_layer_tree,
    register_node_type,
    get_node_builder,
    has_node_builder,
    list_node_types
)

__all__ = [
    'ConfigValidator',
    'validate',
    'FactoryContext',
    'node_factory',
    'build_layer_tree',
    'register_node_type',
    'get_node_builder',
    'has_node_builder',
    'list_node_types',
]
