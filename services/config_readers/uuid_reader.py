"""
UUID Config Reader.

Translates a GeoCore ``vcs`` response into raw GeoView layer configs. The
response nests one record per UUID under ``reponse.rcs[lang]``; only the
first entry of each record's ``layers`` is used.

An ESRI layer whose URL contains ``FeatureServer`` is always read as an
esriFeature layer: the service URL is the URL minus its last segment and
the single entry id is that last segment.

Exports:
    layer_configs_from_response: GeoCore payload -> raw layer configs
    apply_geocore_overrides: Merge a geoCore placeholder onto a resolved config
    read_uuid_configs: Fetch and translate a list of UUIDs
"""

import copy
from typing import Any, Callable, Dict, List, Optional

from core.models.enums import GeoviewLayerType
from exceptions import GeoCoreResolutionError
from core.errors import ErrorCode
from util_logger import LoggerFactory, ComponentType, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.READER, "UUIDConfigReader")


def _localized(value: Any) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if isinstance(value, dict):
        return {'en': value.get('en'), 'fr': value.get('fr')}
    return {'en': value, 'fr': value}


def _entries_by_index(layer: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [{'layerId': str(item.get('index'))} for item in layer.get('layerEntries') or []]


def _entries_with_source(source: Optional[Dict[str, Any]] = None) -> Callable[[Dict[str, Any]], List[Dict[str, Any]]]:
    def build(layer: Dict[str, Any]) -> List[Dict[str, Any]]:
        entries = []
        for item in layer.get('layerEntries') or []:
            entry: Dict[str, Any] = {'layerId': str(item.get('id'))}
            if source:
                entry['source'] = dict(source)
            entries.append(entry)
        return entries
    return build


def _wms_entries(layer: Dict[str, Any]) -> List[Dict[str, Any]]:
    server_type = layer.get('serverType') or 'mapserver'
    return [
        {'layerId': str(item.get('id')), 'source': {'serverType': server_type}}
        for item in layer.get('layerEntries') or []
    ]


def _vector_tile_entries(layer: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {'layerId': str(item.get('id')), 'source': {'dataAccessPath': _localized(layer.get('url'))}}
        for item in layer.get('layerEntries') or []
    ]


def _esri_image_entries(layer: Dict[str, Any]) -> List[Dict[str, Any]]:
    # The service name (second to last URL segment) stands in as entry id
    segments = str(layer.get('url', '')).rstrip('/').split('/')
    return [{'layerId': segments[-2] if len(segments) > 1 else segments[-1]}]


# Layer type -> entry builder
_ENTRY_BUILDERS: Dict[GeoviewLayerType, Callable[[Dict[str, Any]], List[Dict[str, Any]]]] = {
    GeoviewLayerType.ESRI_DYNAMIC: _entries_by_index,
    GeoviewLayerType.ESRI_FEATURE: _entries_by_index,
    GeoviewLayerType.ESRI_IMAGE: _esri_image_entries,
    GeoviewLayerType.WMS: _wms_entries,
    GeoviewLayerType.WFS: _entries_with_source({'format': 'WFS', 'strategy': 'all'}),
    GeoviewLayerType.OGC_FEATURE: _entries_with_source({'format': 'featureAPI'}),
    GeoviewLayerType.GEOJSON: _entries_with_source({'format': 'GeoJSON'}),
    GeoviewLayerType.GEOPACKAGE: _entries_with_source({'format': 'GeoPackage'}),
    GeoviewLayerType.XYZ_TILES: _entries_with_source(),
    GeoviewLayerType.IMAGE_STATIC: _entries_with_source(),
    GeoviewLayerType.VECTOR_TILES: _vector_tile_entries,
}


def _layer_config_from_record(layer: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    layer_type = layer.get('layerType')
    url = str(layer.get('url') or '')
    is_feature = 'FeatureServer' in url

    base = {
        'geoviewLayerId': str(layer.get('id')),
        'geoviewLayerName': _localized(layer.get('name')),
        'isGeocore': True,
    }
    if layer.get('isTimeAware') is not None:
        base['isTimeAware'] = layer.get('isTimeAware')

    if is_feature and layer_type in (GeoviewLayerType.ESRI_DYNAMIC.value, GeoviewLayerType.ESRI_FEATURE.value, None):
        service_url, _, layer_id = url.rstrip('/').rpartition('/')
        return {
            **base,
            'metadataAccessPath': _localized(service_url),
            'geoviewLayerType': GeoviewLayerType.ESRI_FEATURE.value,
            'listOfLayerEntryConfig': [{'layerId': layer_id}],
        }

    try:
        geoview_layer_type = GeoviewLayerType(layer_type)
    except ValueError:
        geoview_layer_type = None
    builder = _ENTRY_BUILDERS.get(geoview_layer_type) if geoview_layer_type else None
    if builder is None:
        logger.warning(f"Layer type {layer_type} not supported")
        return None

    return {
        **base,
        'metadataAccessPath': _localized(url),
        'geoviewLayerType': geoview_layer_type.value,
        'listOfLayerEntryConfig': builder(layer),
    }


def layer_configs_from_response(payload: Any, language: str) -> List[Dict[str, Any]]:
    """
    Translate a GeoCore ``vcs`` response into raw GeoView layer configs.

    Args:
        payload: Decoded JSON response
        language: Response language key (``en`` / ``fr``)

    Returns:
        Raw GeoView layer configs (unsupported layer types are skipped)

    Raises:
        GeoCoreResolutionError: Response is malformed or holds no layers
    """
    records = None
    if isinstance(payload, dict):
        response = payload.get('reponse')
        rcs = response.get('rcs') if isinstance(response, dict) else None
        records = rcs.get(language) if isinstance(rcs, dict) else None
    if records is None:
        error_message = payload.get('errorMessage', '') if isinstance(payload, dict) else ''
        raise GeoCoreResolutionError(
            f"Invalid response from GeoCore service {error_message}".strip(),
            error_code=ErrorCode.GEOCORE_UNAVAILABLE
        )
    if not isinstance(records, list):
        raise GeoCoreResolutionError(
            f"Invalid response from GeoCore service: rcs.{language} is {type(records).__name__}, expected a list",
            error_code=ErrorCode.GEOCORE_UNAVAILABLE
        )
    if len(records) == 0:
        raise GeoCoreResolutionError("No layers returned by GeoCore service", error_code=ErrorCode.GEOCORE_EMPTY)

    configs = []
    for record in records:
        if not record:
            continue
        layers = record.get('layers', []) if isinstance(record, dict) else None
        if not isinstance(layers, list) or (layers and not isinstance(layers[0], dict)):
            raise GeoCoreResolutionError(
                f"Invalid response from GeoCore service: malformed layer record in rcs.{language}",
                error_code=ErrorCode.GEOCORE_UNAVAILABLE
            )
        if not layers or not layers[0]:
            continue
        config = _layer_config_from_record(layers[0])
        if config is not None:
            configs.append(config)
    return configs


def apply_geocore_overrides(resolved: Dict[str, Any], geocore_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge the user's geoCore placeholder onto a resolved layer config.

    - a suffixed duplicate id (``uuid:abcd1234``) replaces the resolved id
    - user entries / initial settings replace the resolved ones
    - a user name replaces the resolved name (and the single entry's name)

    Args:
        resolved: Raw config produced from the GeoCore response
        geocore_config: Raw geoCore placeholder from the map configuration

    Returns:
        New raw layer config
    """
    merged = copy.deepcopy(resolved)
    placeholder_id = str(geocore_config.get('geoviewLayerId', ''))
    if placeholder_id.split(':')[0] == merged.get('geoviewLayerId'):
        merged['geoviewLayerId'] = placeholder_id

    user_entries = [
        entry for entry in geocore_config.get('listOfLayerEntryConfig') or []
        if isinstance(entry, dict) and entry.get('entryType') != GeoviewLayerType.GEOCORE.value
    ]
    if user_entries:
        merged['listOfLayerEntryConfig'] = copy.deepcopy(user_entries)
    if geocore_config.get('initialSettings'):
        merged['initialSettings'] = copy.deepcopy(geocore_config['initialSettings'])

    user_name = geocore_config.get('geoviewLayerName')
    if user_name:
        merged['geoviewLayerName'] = copy.deepcopy(user_name)
        entries = merged.get('listOfLayerEntryConfig') or []
        if len(entries) == 1 and not entries[0].get('layerName'):
            entries[0]['layerName'] = copy.deepcopy(user_name)
    return merged


@log_exceptions(logger=logger)
async def read_uuid_configs(client, language: str, uuids: List[str]) -> List[Dict[str, Any]]:
    """
    Fetch UUIDs from GeoCore and translate the response.

    Args:
        client: GeoCoreClient (or any object with ``fetch_vcs``)
        language: Response language
        uuids: UUIDs to resolve (suffixes after ``:`` are ignored)

    Returns:
        Raw GeoView layer configs
    """
    payload = await client.fetch_vcs([uuid.split(':')[0] for uuid in uuids], language)
    return layer_configs_from_response(payload, language)
