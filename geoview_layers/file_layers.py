# ============================================================================
# FILE LAYERS
# ============================================================================
# STATUS: Layer family - GeoJSON, CSV and GeoPackage files
# PURPOSE: Read feature files once, answer queries from memory
# CREATED: 15 OCT 2026
# ============================================================================
"""
File Layers.

File layers have no service metadata. Step 4 reads the data file of each
entry (GeoJSON document or CSV table) and keeps its features in memory;
point queries are a bounding-box hit test with a small tolerance.

GeoPackage files are binary and only handed to the rendering engine; they
are never feature-queried.

Exports:
    GeoJSONLayer, CSVLayer, GeoPackageLayer, geometry_bbox
"""

import csv
import io
from typing import Any, Dict, Iterator, List, Optional, Tuple

from config.defaults import QueryDefaults
from core.models.enums import GeoviewLayerType
from core.models.results import FeatureInfoEntry
from exceptions import LayerEntryConfigError, MetadataUnavailableError

from .abstract_layer import AbstractGeoViewLayer
from .ogc_layers import geojson_records
from .registry import register_layer_class

LATITUDE_COLUMNS = ('latitude', 'lat', 'y')
LONGITUDE_COLUMNS = ('longitude', 'lon', 'long', 'lng', 'x')


def _iter_positions(coordinates: Any) -> Iterator[Tuple[float, float]]:
    if isinstance(coordinates, (list, tuple)) and coordinates and isinstance(coordinates[0], (int, float)):
        yield float(coordinates[0]), float(coordinates[1])
        return
    for part in coordinates or []:
        yield from _iter_positions(part)


def geometry_bbox(geometry: Optional[Dict[str, Any]]) -> Optional[Tuple[float, float, float, float]]:
    """Bounding box of a GeoJSON geometry (None for empty geometries)."""
    if not geometry:
        return None
    if geometry.get('type') == 'GeometryCollection':
        boxes = [geometry_bbox(g) for g in geometry.get('geometries') or []]
        boxes = [b for b in boxes if b is not None]
        if not boxes:
            return None
        return (min(b[0] for b in boxes), min(b[1] for b in boxes),
                max(b[2] for b in boxes), max(b[3] for b in boxes))
    positions = list(_iter_positions(geometry.get('coordinates')))
    if not positions:
        return None
    xs = [p[0] for p in positions]
    ys = [p[1] for p in positions]
    return (min(xs), min(ys), max(xs), max(ys))


def _union(boxes: List[Tuple[float, float, float, float]]) -> Optional[Tuple[float, float, float, float]]:
    if not boxes:
        return None
    return (min(b[0] for b in boxes), min(b[1] for b in boxes),
            max(b[2] for b in boxes), max(b[3] for b in boxes))


class _InMemoryFeatureLayer(AbstractGeoViewLayer):
    """Feature files queried from memory once read."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._records: Dict[str, List[Dict[str, Any]]] = {}

    def source_url(self, entry) -> Optional[str]:
        if entry.source.data_access_path is not None:
            url = entry.source.data_access_path.get(self.language)
            if url:
                return url
        base = self.metadata_access_path
        if base is None:
            return None
        if base.lower().endswith(('.json', '.geojson', '.csv', '.gpkg')):
            return base
        return f"{base}/{entry.layer_id}"

    async def read_records(self, entry, url: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def process_layer_metadata(self, entry):
        url = self.source_url(entry)
        if not url:
            raise LayerEntryConfigError("No data access path", layer_path=entry.layer_path)
        records = await self.read_records(entry, url)
        self._records[entry.layer_path] = records

        fields = [(name, None) for name in records[0]['attributes']] if records else []
        boxes = [b for b in (geometry_bbox(r.get('geometry')) for r in records) if b is not None]
        return self.merge_layer_metadata(entry, fields=fields, extent=_union(boxes))

    async def get_feature_info_at_long_lat(self, entry, lonlat) -> List[FeatureInfoEntry]:
        lon, lat = lonlat
        tolerance = QueryDefaults.POINT_TOLERANCE_DEGREES
        hits = []
        for record in self._records.get(entry.layer_path, []):
            box = geometry_bbox(record.get('geometry'))
            if box is None:
                continue
            if box[0] - tolerance <= lon <= box[2] + tolerance and box[1] - tolerance <= lat <= box[3] + tolerance:
                hits.append(record)
        return self.features_from_records(entry, hits)

    async def get_all_feature_info(self, entry) -> List[FeatureInfoEntry]:
        return self.features_from_records(entry, self._records.get(entry.layer_path, []))


@register_layer_class(GeoviewLayerType.GEOJSON)
class GeoJSONLayer(_InMemoryFeatureLayer):
    """GeoJSON FeatureCollection file."""

    async def read_records(self, entry, url: str) -> List[Dict[str, Any]]:
        payload = await self.client.fetch_json(url, layer_path=entry.layer_path, allow_empty=True)
        if not isinstance(payload, dict) or payload.get('type') != 'FeatureCollection':
            raise MetadataUnavailableError("Not a GeoJSON FeatureCollection", layer_path=entry.layer_path)
        return geojson_records(payload)


@register_layer_class(GeoviewLayerType.CSV)
class CSVLayer(_InMemoryFeatureLayer):
    """CSV table with latitude / longitude columns."""

    @staticmethod
    def find_column(names: List[str], candidates: Tuple[str, ...]) -> Optional[str]:
        lowered = {name.lower().strip(): name for name in names}
        for candidate in candidates:
            if candidate in lowered:
                return lowered[candidate]
        return None

    async def read_records(self, entry, url: str) -> List[Dict[str, Any]]:
        text = await self.client.fetch_text(url, layer_path=entry.layer_path)
        reader = csv.DictReader(io.StringIO(text))
        names = reader.fieldnames or []
        lat_column = self.find_column(names, LATITUDE_COLUMNS)
        lon_column = self.find_column(names, LONGITUDE_COLUMNS)
        if lat_column is None or lon_column is None:
            raise LayerEntryConfigError(
                f"CSV has no latitude / longitude columns (columns: {names})",
                layer_path=entry.layer_path
            )

        records = []
        for row in reader:
            try:
                point = [float(row[lon_column]), float(row[lat_column])]
            except (TypeError, ValueError):
                self.logger.debug(f"Skipped CSV row without coordinates in {entry.layer_path}")
                continue
            attributes = {key: value for key, value in row.items() if key not in (lat_column, lon_column)}
            records.append({'attributes': attributes, 'geometry': {'type': 'Point', 'coordinates': point}})
        return records


@register_layer_class(GeoviewLayerType.GEOPACKAGE)
class GeoPackageLayer(AbstractGeoViewLayer):
    """GeoPackage file drawn by the rendering engine; not queryable."""

    supports_feature_query = False
    supports_hover = False

    async def process_layer_metadata(self, entry):
        return self.merge_layer_metadata(entry, queryable=False)
