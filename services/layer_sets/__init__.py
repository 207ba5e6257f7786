"""
Layer Sets.

Observer registries tracking one concern across the layer paths of a map.

Exports:
    AbstractLayerSet, LegendsLayerSet, FeatureInfoLayerSet,
    AllFeatureInfoLayerSet, HoverFeatureInfoLayerSet
"""

from .abstract_layer_set import AbstractLayerSet
from .all_feature_info import AllFeatureInfoLayerSet
from .feature_info import FeatureInfoLayerSet
from .hover import HoverFeatureInfoLayerSet
from .legends import LegendsLayerSet

__all__ = [
    'AbstractLayerSet',
    'LegendsLayerSet',
    'FeatureInfoLayerSet',
    'AllFeatureInfoLayerSet',
    'HoverFeatureInfoLayerSet',
]
