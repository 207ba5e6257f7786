"""
URL Config Reader.

Builds a raw configuration from URL query parameters:

    ?p=3857&z=4&c=-100,40&l=en&t=dark
    &b={basemapId:transport,shaded:false,labeled:true}
    &i=dynamic&cp=details-panel&cc=overview-map
    &keys=12acd145-626a-49eb-b850-0a59c9bc7506,ccc75c12-5acc-4a6a-959f-ef6f621147b9
    &v=1.0

Values that do not parse as numbers are passed through unchanged so the
validator reports and repairs them. UUIDs in ``keys`` become geoCore layer
configs, resolved later by the layer manager.

Exports:
    get_map_props_from_url_params: Query string -> flat dict
    parse_object_from_url: ``{k:v,k:v}`` -> dict
    read_url_config: Query string -> raw configuration (or None)
"""

from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlsplit

from core.models.enums import GeoviewLayerType
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.READER, "URLConfigReader")


def get_map_props_from_url_params(url: str) -> Dict[str, str]:
    """
    Extract the query parameters of a URL (or of a bare ``?a=b`` string).

    Args:
        url: Full URL, ``?query`` or bare query string

    Returns:
        Parameter name -> value
    """
    if '://' in url:
        query = urlsplit(url).query
    elif '?' in url:
        query = url.split('?', 1)[1]
    else:
        query = url
    return dict(parse_qsl(query, keep_blank_values=True))


def parse_object_from_url(value: Optional[str]) -> Dict[str, Any]:
    """
    Parse ``{key:value,key:value}``; ``true`` / ``false`` become booleans.

    Args:
        value: Object literal from the URL

    Returns:
        Parsed dict (empty when value is empty)
    """
    result: Dict[str, Any] = {}
    if not value:
        return result

    for prop in value.strip().strip('{}').split(','):
        if ':' not in prop:
            continue
        key, raw = prop.split(':', 1)
        key = key.strip()
        raw = raw.strip()
        if raw == 'true':
            result[key] = True
        elif raw == 'false':
            result[key] = False
        else:
            result[key] = raw
    return result


def _to_number(value: str) -> Any:
    try:
        return int(value)
    except ValueError:
        try:
            return float(value)
        except ValueError:
            return value


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def read_url_config(url: str, map_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Translate URL parameters into a raw map configuration.

    Args:
        url: URL or query string
        map_id: Map instance id stored in the result

    Returns:
        Raw configuration dict, or None when the URL carries no map
        parameters (or carries ``geoms``)
    """
    params = get_map_props_from_url_params(url)
    if not params or 'geoms' in params:
        return None

    view_settings: Dict[str, Any] = {}
    if 'p' in params:
        view_settings['projection'] = _to_number(params['p'])
    if 'z' in params:
        view_settings['zoom'] = _to_number(params['z'])
    if 'c' in params:
        view_settings['center'] = [_to_number(axis) for axis in params['c'].split(',')]

    gv_map: Dict[str, Any] = {'viewSettings': view_settings}
    if 'b' in params:
        gv_map['basemapOptions'] = parse_object_from_url(params['b'])
    if 'i' in params:
        gv_map['interaction'] = params['i']
    if 'keys' in params:
        gv_map['listOfGeoviewLayerConfig'] = [
            {'geoviewLayerId': uuid, 'geoviewLayerType': GeoviewLayerType.GEOCORE.value}
            for uuid in _split_list(params['keys'])
        ]

    raw: Dict[str, Any] = {'map': gv_map}
    if map_id:
        raw['mapId'] = map_id
    if 'l' in params:
        raw['displayLanguage'] = params['l']
    if 't' in params:
        raw['theme'] = params['t']
    if 'cc' in params:
        raw['components'] = _split_list(params['cc'])
    if 'cp' in params:
        raw['corePackages'] = _split_list(params['cp'])
    if 'v' in params:
        raw['schemaVersionUsed'] = params['v']

    logger.debug(f"URL configuration read with parameters {sorted(params)}")
    return raw
