"""
Config Readers.

Pure translation of external sources into raw configuration trees.

Exports:
    parse_config_string, read_json_document: Inline / file sources
    read_url_config: URL query parameters
    layer_configs_from_response, apply_geocore_overrides, read_uuid_configs: GeoCore UUIDs
"""

from .inline_reader import (
    remove_comments_from_json,
    normalize_quotes,
    parse_config_string,
    read_json_document
)
from .url_reader import (
    get_map_props_from_url_params,
    parse_object_from_url,
    read_url_config
)
from .uuid_reader import (
    layer_configs_from_response,
    apply_geocore_overrides,
    read_uuid_configs
)

__all__ = [
    'remove_comments_from_json',
    'normalize_quotes',
    'parse_config_string',
    'read_json_document',
    'get_map_props_from_url_params',
    'parse_object_from_url',
    'read_url_config',
    'layer_configs_from_response',
    'apply_geocore_overrides',
    'read_uuid_configs',
]
