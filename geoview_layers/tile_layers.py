# ============================================================================
# TILE AND IMAGE LAYERS
# ============================================================================
# STATUS: Layer family - XYZ tiles, vector tiles, static images
# PURPOSE: Metadata-less layers handed straight to the rendering engine
# CREATED: 15 OCT 2026
# ============================================================================
"""
Tile and Image Layers.

No service metadata, no feature queries. Legends are empty except for
static images, whose legend is the image itself.

Exports:
    XYZTilesLayer, VectorTilesLayer, ImageStaticLayer
"""

from core.models.enums import GeoviewLayerType
from core.models.results import LegendResult
from exceptions import LayerQueryError

from .abstract_layer import AbstractGeoViewLayer
from .registry import register_layer_class


class _TileLayer(AbstractGeoViewLayer):

    supports_feature_query = False
    supports_hover = False

    async def process_layer_metadata(self, entry):
        return self.merge_layer_metadata(entry, queryable=False)


@register_layer_class(GeoviewLayerType.XYZ_TILES)
class XYZTilesLayer(_TileLayer):
    """Raster XYZ tile template URL."""


@register_layer_class(GeoviewLayerType.VECTOR_TILES)
class VectorTilesLayer(_TileLayer):
    """Vector tile service; style (if any) stays in the entry."""


@register_layer_class(GeoviewLayerType.IMAGE_STATIC)
class ImageStaticLayer(_TileLayer):
    """Georeferenced static image."""

    async def query_legend(self, layer_path: str) -> LegendResult:
        entry = self.get_entry(layer_path)
        if entry is None:
            raise LayerQueryError("Unknown layer path", layer_path=layer_path)
        return LegendResult(layer_path=layer_path, legend_type=entry.schema_tag.value, url=self.source_url(entry))
