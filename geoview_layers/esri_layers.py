# ============================================================================
# ESRI REST LAYERS
# ============================================================================
# STATUS: Layer family - ArcGIS REST (MapServer, FeatureServer, ImageServer)
# PURPOSE: Metadata, entry checks, point / all-feature queries and legends
# CREATED: 14 OCT 2026
# ============================================================================
"""
ESRI REST Layers.

    esriDynamic - MapServer sublayers drawn server-side
    esriFeature - FeatureServer / MapServer layers drawn client-side
    esriImage   - ImageServer (no feature query)

Service metadata is ``{metadataAccessPath}?f=json``. Entry ids are checked
against its ``layers`` list; per-layer metadata comes from
``{metadataAccessPath}/{layerId}?f=json``.

Exports:
    EsriDynamicLayer, EsriFeatureLayer, EsriImageLayer
"""

from typing import Any, Dict, List, Optional, Tuple

from core.models.enums import GeoviewLayerType
from core.models.results import FeatureInfoEntry, LegendResult
from exceptions import LayerQueryError, MetadataUnavailableError

from .abstract_layer import AbstractGeoViewLayer
from .registry import register_layer_class


def _json_object(payload: Any, what: str, layer_path: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise LayerQueryError(f"{what.capitalize()} returned {type(payload).__name__}, expected an object",
                              layer_path=layer_path)
    return payload


def esri_extent_to_lonlat(extent: Optional[Dict[str, Any]]) -> Optional[Tuple[float, float, float, float]]:
    """
    ESRI extent dict as (minX, minY, maxX, maxY) lon/lat.

    Only geographic extents (wkid 4326 / 4269) are kept; projected extents
    are left for the rendering engine.
    """
    if not extent:
        return None
    spatial_reference = extent.get('spatialReference') or {}
    if spatial_reference.get('wkid') not in (4326, 4269):
        return None
    try:
        return (float(extent['xmin']), float(extent['ymin']), float(extent['xmax']), float(extent['ymax']))
    except (KeyError, TypeError, ValueError):
        return None


def renderer_legend_items(renderer: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], ...]:
    """Legend items derived from an ESRI drawingInfo renderer."""
    if not renderer:
        return ()
    renderer_type = renderer.get('type')
    if renderer_type == 'uniqueValue':
        infos = renderer.get('uniqueValueInfos') or []
    elif renderer_type == 'classBreaks':
        infos = renderer.get('classBreakInfos') or []
    else:
        infos = [{'label': renderer.get('label') or '', 'symbol': renderer.get('symbol')}]
    return tuple({'label': info.get('label') or str(info.get('value', '')), 'symbol': info.get('symbol')}
                 for info in infos)


class _EsriLayer(AbstractGeoViewLayer):
    """Shared ESRI REST behavior."""

    async def fetch_service_metadata(self) -> Dict[str, Any]:
        url = self.metadata_access_path
        if not url:
            raise MetadataUnavailableError("Missing metadataAccessPath", layer_path=self.geoview_layer_id)
        return await self.client.fetch_json(url, params={'f': 'json'}, layer_path=self.geoview_layer_id)

    def entry_in_metadata(self, entry) -> bool:
        layers = self.metadata.get('layers') if isinstance(self.metadata, dict) else None
        if not layers:
            return True
        return any(str(layer.get('id')) == str(entry.layer_id) for layer in layers)

    def layer_url(self, entry) -> str:
        return f"{self.metadata_access_path}/{entry.layer_id}"

    async def process_layer_metadata(self, entry):
        layer_metadata = await self.client.fetch_json(
            self.layer_url(entry), params={'f': 'json'}, layer_path=entry.layer_path
        )
        self.layer_metadata[entry.layer_path] = layer_metadata

        capabilities = layer_metadata.get('capabilities')
        queryable = None if capabilities is None else 'query' in capabilities.lower()
        drawing_info = layer_metadata.get('drawingInfo') or {}
        fields = [(field['name'], field.get('alias')) for field in layer_metadata.get('fields') or []
                  if field.get('name')]

        return self.merge_layer_metadata(
            entry,
            name=layer_metadata.get('name'),
            fields=fields,
            name_field=layer_metadata.get('displayField'),
            queryable=queryable,
            extent=esri_extent_to_lonlat(layer_metadata.get('extent')),
            style={'renderer': drawing_info['renderer']} if drawing_info.get('renderer') else None,
        )

    async def _run_query(self, entry, params: Dict[str, Any]) -> List[FeatureInfoEntry]:
        feature_info = entry.source.feature_info
        out_fields = ','.join(feature_info.out_fields) if feature_info and feature_info.out_fields else '*'
        payload = await self.client.fetch_json(
            f"{self.layer_url(entry)}/query",
            params={'outFields': out_fields, 'returnGeometry': 'true', 'f': 'json', **params},
            layer_path=entry.layer_path,
            error_class=LayerQueryError,
            allow_empty=True,
        )
        features = _json_object(payload, "feature query", entry.layer_path).get('features') or []
        if not isinstance(features, list):
            raise LayerQueryError("Feature query returned malformed features", layer_path=entry.layer_path)
        return self.features_from_records(entry, features)

    async def get_feature_info_at_long_lat(self, entry, lonlat) -> List[FeatureInfoEntry]:
        lon, lat = lonlat
        return await self._run_query(entry, {
            'geometry': f"{lon},{lat}",
            'geometryType': 'esriGeometryPoint',
            'inSR': 4326,
            'outSR': 4326,
            'spatialRel': 'esriSpatialRelIntersects',
        })

    async def get_all_feature_info(self, entry) -> List[FeatureInfoEntry]:
        return await self._run_query(entry, {'where': '1=1', 'outSR': 4326})

    async def query_legend(self, layer_path: str) -> LegendResult:
        entry = self.get_entry(layer_path)
        if entry is None:
            raise LayerQueryError("Unknown layer path", layer_path=layer_path)

        renderer = (entry.style or {}).get('renderer')
        if renderer:
            return LegendResult(layer_path=layer_path, legend_type=entry.schema_tag.value,
                                items=renderer_legend_items(renderer))

        payload = await self.client.fetch_json(
            f"{self.metadata_access_path}/legend", params={'f': 'json'},
            layer_path=layer_path, error_class=LayerQueryError, allow_empty=True
        )
        layers = _json_object(payload, "legend", layer_path).get('layers') or []
        if not isinstance(layers, list):
            raise LayerQueryError("Legend returned malformed layers", layer_path=layer_path)
        for layer in layers:
            if not isinstance(layer, dict):
                continue
            if str(layer.get('layerId')) == str(entry.layer_id):
                items = tuple(
                    {'label': item.get('label') or '', 'image': item.get('imageData'),
                     'content_type': item.get('contentType')}
                    for item in layer.get('legend') or []
                )
                return LegendResult(layer_path=layer_path, legend_type=entry.schema_tag.value, items=items)
        return LegendResult(layer_path=layer_path, legend_type=entry.schema_tag.value)


@register_layer_class(GeoviewLayerType.ESRI_DYNAMIC)
class EsriDynamicLayer(_EsriLayer):
    """MapServer sublayers rendered by the server."""


@register_layer_class(GeoviewLayerType.ESRI_FEATURE)
class EsriFeatureLayer(_EsriLayer):
    """Feature layers read as vector features."""


@register_layer_class(GeoviewLayerType.ESRI_IMAGE)
class EsriImageLayer(_EsriLayer):
    """ImageServer; one raster, nothing to query."""

    supports_feature_query = False
    supports_hover = False

    def entry_in_metadata(self, entry) -> bool:
        return True

    async def process_layer_metadata(self, entry):
        # ImageServer describes itself at the service level
        metadata = self.metadata if isinstance(self.metadata, dict) else {}
        return self.merge_layer_metadata(
            entry,
            name=metadata.get('name'),
            queryable=False,
            extent=esri_extent_to_lonlat(metadata.get('extent')),
        )

    async def query_legend(self, layer_path: str) -> LegendResult:
        entry = self.get_entry(layer_path)
        if entry is None:
            raise LayerQueryError("Unknown layer path", layer_path=layer_path)
        return LegendResult(
            layer_path=layer_path,
            legend_type=entry.schema_tag.value,
            url=f"{self.metadata_access_path}/legend?f=json",
        )
