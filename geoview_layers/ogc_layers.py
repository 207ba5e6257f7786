# ============================================================================
# OGC LAYERS
# ============================================================================
# STATUS: Layer family - OGC WMS, WFS and OGC API Features
# PURPOSE: Capabilities parsing, entry checks, feature queries and legends
# CREATED: 15 OCT 2026
# ============================================================================
"""
OGC Layers.

    ogcWms      - GetCapabilities (XML), GetFeatureInfo, GetLegendGraphic
    ogcWfs      - GetCapabilities (XML), GetFeature as GeoJSON
    ogcFeature  - OGC API Features: /collections and /items as GeoJSON

Capabilities are parsed with ElementTree, ignoring namespaces so that
WMS 1.1.1 / 1.3.0 and WFS 1.1 / 2.0 documents read the same way.

Exports:
    WMSLayer, WFSLayer, OgcFeatureLayer, geojson_records, point_bbox
"""

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode
import xml.etree.ElementTree as ET

from config.defaults import QueryDefaults
from core.models.enums import GeoviewLayerType
from core.models.results import FeatureInfoEntry, LegendResult
from exceptions import LayerQueryError, MetadataUnavailableError

from .abstract_layer import AbstractGeoViewLayer
from .registry import register_layer_class

CRS84 = "urn:ogc:def:crs:OGC:1.3:CRS84"


# ============================================================================
# HELPERS
# ============================================================================

def _local(tag: str) -> str:
    """Tag name without its namespace."""
    return tag.rsplit('}', 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    child = _child(element, name)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _iter_named(root: ET.Element, name: str):
    for element in root.iter():
        if _local(element.tag) == name:
            yield element


def point_bbox(lonlat: Tuple[float, float], tolerance: float = QueryDefaults.POINT_TOLERANCE_DEGREES) -> Tuple[float, float, float, float]:
    """Small lon/lat box centered on a point."""
    lon, lat = lonlat
    return (lon - tolerance, lat - tolerance, lon + tolerance, lat + tolerance)


def geojson_records(payload: Any) -> List[Dict[str, Any]]:
    """(attributes, geometry) records of a GeoJSON FeatureCollection."""
    if not isinstance(payload, dict):
        return []
    return [
        {'attributes': feature.get('properties') or {}, 'geometry': feature.get('geometry')}
        for feature in payload.get('features') or []
    ]


# ============================================================================
# WMS
# ============================================================================

@register_layer_class(GeoviewLayerType.WMS)
class WMSLayer(AbstractGeoViewLayer):
    """
    OGC Web Map Service.

    Entry ids are layer names from the capabilities. Point queries use
    GetFeatureInfo with a JSON info format; WMS layers do not answer hover
    queries.
    """

    supports_hover = False

    WMS_VERSION = "1.3.0"

    async def fetch_service_metadata(self) -> Dict[str, Any]:
        url = self.metadata_access_path
        if not url:
            raise MetadataUnavailableError("Missing metadataAccessPath", layer_path=self.geoview_layer_id)
        root = await self.client.fetch_xml(
            url,
            params={'service': 'WMS', 'version': self.WMS_VERSION, 'request': 'GetCapabilities'},
            layer_path=self.geoview_layer_id
        )
        layers = self.parse_capabilities(root)
        if not layers:
            raise MetadataUnavailableError("Capabilities list no layer", layer_path=self.geoview_layer_id)
        return {'layers': layers}

    @staticmethod
    def parse_capabilities(root: ET.Element) -> Dict[str, Dict[str, Any]]:
        """Named layers of a capabilities document keyed by name."""
        layers = {}
        for layer in _iter_named(root, 'Layer'):
            name = _child_text(layer, 'Name')
            if not name:
                continue
            info: Dict[str, Any] = {
                'title': _child_text(layer, 'Title'),
                'queryable': layer.get('queryable') == '1',
                'extent': None,
                'legend_url': None,
            }
            bbox = _child(layer, 'EX_GeographicBoundingBox')
            if bbox is not None:
                try:
                    info['extent'] = (
                        float(_child_text(bbox, 'westBoundLongitude')),
                        float(_child_text(bbox, 'southBoundLatitude')),
                        float(_child_text(bbox, 'eastBoundLongitude')),
                        float(_child_text(bbox, 'northBoundLatitude')),
                    )
                except (TypeError, ValueError):
                    pass
            for style in (child for child in layer if _local(child.tag) == 'Style'):
                legend = _child(style, 'LegendURL')
                resource = _child(legend, 'OnlineResource') if legend is not None else None
                if resource is not None and info['legend_url'] is None:
                    info['legend_url'] = next(
                        (value for key, value in resource.attrib.items() if _local(key) == 'href'), None
                    )
            layers[name] = info
        return layers

    def entry_in_metadata(self, entry) -> bool:
        return entry.layer_id in self.metadata['layers']

    async def process_layer_metadata(self, entry):
        info = self.metadata['layers'].get(entry.layer_id, {})
        self.layer_metadata[entry.layer_path] = info
        return self.merge_layer_metadata(
            entry,
            name=info.get('title'),
            queryable=info.get('queryable'),
            extent=info.get('extent'),
        )

    async def get_feature_info_at_long_lat(self, entry, lonlat) -> List[FeatureInfoEntry]:
        # CRS:84 keeps lon/lat axis order in WMS 1.3.0
        bbox = point_bbox(lonlat)
        payload = await self.client.fetch_json(
            self.source_url(entry),
            params={
                'service': 'WMS',
                'version': self.WMS_VERSION,
                'request': 'GetFeatureInfo',
                'layers': entry.layer_id,
                'query_layers': entry.layer_id,
                'crs': 'CRS:84',
                'bbox': ','.join(str(value) for value in bbox),
                'width': 101,
                'height': 101,
                'i': 50,
                'j': 50,
                'info_format': 'application/json',
                'feature_count': QueryDefaults.MAX_FEATURE_COUNT,
            },
            layer_path=entry.layer_path,
            error_class=LayerQueryError,
            allow_empty=True,
        )
        return self.features_from_records(entry, geojson_records(payload))

    async def query_legend(self, layer_path: str) -> LegendResult:
        entry = self.get_entry(layer_path)
        if entry is None:
            raise LayerQueryError("Unknown layer path", layer_path=layer_path)
        legend_url = self.layer_metadata.get(layer_path, {}).get('legend_url')
        if legend_url is None:
            params = {
                'service': 'WMS',
                'version': self.WMS_VERSION,
                'request': 'GetLegendGraphic',
                'layer': entry.layer_id,
                'format': 'image/png',
            }
            legend_url = f"{self.source_url(entry)}?{urlencode(params)}"
        return LegendResult(layer_path=layer_path, legend_type=entry.schema_tag.value, url=legend_url)


# ============================================================================
# WFS
# ============================================================================

@register_layer_class(GeoviewLayerType.WFS)
class WFSLayer(AbstractGeoViewLayer):
    """OGC Web Feature Service read as GeoJSON."""

    WFS_VERSION = "2.0.0"

    async def fetch_service_metadata(self) -> Dict[str, Any]:
        url = self.metadata_access_path
        if not url:
            raise MetadataUnavailableError("Missing metadataAccessPath", layer_path=self.geoview_layer_id)
        root = await self.client.fetch_xml(
            url,
            params={'service': 'WFS', 'version': self.WFS_VERSION, 'request': 'GetCapabilities'},
            layer_path=self.geoview_layer_id
        )
        feature_types = self.parse_capabilities(root)
        if not feature_types:
            raise MetadataUnavailableError("Capabilities list no feature type", layer_path=self.geoview_layer_id)
        return {'feature_types': feature_types}

    @staticmethod
    def parse_capabilities(root: ET.Element) -> Dict[str, Dict[str, Any]]:
        """Feature types keyed by name."""
        feature_types = {}
        for feature_type in _iter_named(root, 'FeatureType'):
            name = _child_text(feature_type, 'Name')
            if not name:
                continue
            info: Dict[str, Any] = {'title': _child_text(feature_type, 'Title'), 'extent': None}
            bbox = _child(feature_type, 'WGS84BoundingBox')
            if bbox is not None:
                try:
                    lower = [float(v) for v in _child_text(bbox, 'LowerCorner').split()]
                    upper = [float(v) for v in _child_text(bbox, 'UpperCorner').split()]
                    info['extent'] = (lower[0], lower[1], upper[0], upper[1])
                except (AttributeError, IndexError, ValueError):
                    pass
            feature_types[name] = info
        return feature_types

    def _type_name(self, entry) -> Optional[str]:
        """Capabilities name of an entry (with or without namespace prefix)."""
        feature_types = self.metadata['feature_types']
        if entry.layer_id in feature_types:
            return entry.layer_id
        for name in feature_types:
            if name.split(':', 1)[-1] == entry.layer_id:
                return name
        return None

    def entry_in_metadata(self, entry) -> bool:
        return self._type_name(entry) is not None

    async def process_layer_metadata(self, entry):
        info = self.metadata['feature_types'].get(self._type_name(entry), {})
        self.layer_metadata[entry.layer_path] = info
        return self.merge_layer_metadata(entry, name=info.get('title'), extent=info.get('extent'))

    async def _get_feature(self, entry, extra: Dict[str, Any]) -> List[FeatureInfoEntry]:
        payload = await self.client.fetch_json(
            self.source_url(entry),
            params={
                'service': 'WFS',
                'version': self.WFS_VERSION,
                'request': 'GetFeature',
                'typeNames': self._type_name(entry) or entry.layer_id,
                'outputFormat': 'application/json',
                'srsName': CRS84,
                'count': QueryDefaults.MAX_FEATURE_COUNT,
                **extra,
            },
            layer_path=entry.layer_path,
            error_class=LayerQueryError,
            allow_empty=True,
        )
        return self.features_from_records(entry, geojson_records(payload))

    async def get_feature_info_at_long_lat(self, entry, lonlat) -> List[FeatureInfoEntry]:
        bbox = point_bbox(lonlat)
        return await self._get_feature(entry, {'bbox': ','.join(str(v) for v in bbox) + f",{CRS84}"})

    async def get_all_feature_info(self, entry) -> List[FeatureInfoEntry]:
        return await self._get_feature(entry, {})


# ============================================================================
# OGC API FEATURES
# ============================================================================

@register_layer_class(GeoviewLayerType.OGC_FEATURE)
class OgcFeatureLayer(AbstractGeoViewLayer):
    """OGC API Features; entry ids are collection ids."""

    async def fetch_service_metadata(self) -> Dict[str, Any]:
        url = self.metadata_access_path
        if not url:
            raise MetadataUnavailableError("Missing metadataAccessPath", layer_path=self.geoview_layer_id)
        payload = await self.client.fetch_json(
            f"{url}/collections", params={'f': 'json'}, layer_path=self.geoview_layer_id
        )
        collections = {c['id']: c for c in payload.get('collections') or [] if c.get('id')}
        if not collections:
            raise MetadataUnavailableError("Service lists no collection", layer_path=self.geoview_layer_id)
        return {'collections': collections}

    def entry_in_metadata(self, entry) -> bool:
        return entry.layer_id in self.metadata['collections']

    async def process_layer_metadata(self, entry):
        collection = self.metadata['collections'][entry.layer_id]
        self.layer_metadata[entry.layer_path] = collection
        extent = None
        bboxes = ((collection.get('extent') or {}).get('spatial') or {}).get('bbox') or []
        if bboxes and len(bboxes[0]) == 4:
            extent = tuple(float(v) for v in bboxes[0])
        return self.merge_layer_metadata(entry, name=collection.get('title'), extent=extent)

    async def _items(self, entry, extra: Dict[str, Any]) -> List[FeatureInfoEntry]:
        payload = await self.client.fetch_json(
            f"{self.metadata_access_path}/collections/{entry.layer_id}/items",
            params={'f': 'json', 'limit': QueryDefaults.MAX_FEATURE_COUNT, **extra},
            layer_path=entry.layer_path,
            error_class=LayerQueryError,
            allow_empty=True,
        )
        return self.features_from_records(entry, geojson_records(payload))

    async def get_feature_info_at_long_lat(self, entry, lonlat) -> List[FeatureInfoEntry]:
        return await self._items(entry, {'bbox': ','.join(str(v) for v in point_bbox(lonlat))})

    async def get_all_feature_info(self, entry) -> List[FeatureInfoEntry]:
        return await self._items(entry, {})
