"""
Renderable Layer Objects.

What lifecycle step 5 produces (the description handed to the rendering
engine) and what step 6 wraps it into (a GVLayer with query behavior).

Exports:
    RenderableLayer: One leaf entry ready to draw
    RenderableGroup: Container of renderables for a group entry
    GVLayer: Renderable plus query dispatch
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from core.models.enums import QueryType

if TYPE_CHECKING:
    from .abstract_layer import AbstractGeoViewLayer


@dataclass
class RenderableLayer:
    """Leaf description for the rendering engine."""

    layer_path: str
    source_type: str
    source_url: Optional[str] = None
    visible: bool = True
    opacity: float = 1.0
    min_zoom: Optional[float] = None
    max_zoom: Optional[float] = None
    extent: Optional[Tuple[float, float, float, float]] = None
    style: Optional[Dict[str, Any]] = None
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RenderableGroup:
    """Group description; children keep the configured order."""

    layer_path: str
    children: List[Union[RenderableLayer, 'RenderableGroup']] = field(default_factory=list)
    visible: bool = True
    opacity: float = 1.0


@dataclass
class GVLayer:
    """
    Live leaf layer.

    Holds the renderable and delegates queries to the GeoView layer that
    created it.
    """

    layer_path: str
    renderable: RenderableLayer
    geoview_layer: 'AbstractGeoViewLayer'

    async def query_features(self, query_type: QueryType, location: Any = None) -> List[Any]:
        return await self.geoview_layer.query_features(self.layer_path, query_type, location)

    async def query_legend(self) -> Any:
        return await self.geoview_layer.query_legend(self.layer_path)
