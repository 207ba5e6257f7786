# ============================================================================
# MAP CONFIG VALIDATOR
# ============================================================================
# STATUS: Service - Validation and repair of map features configurations
# PURPOSE: Raw configuration -> immutable MapFeaturesConfig + diagnostics
# CREATED: 13 OCT 2026
# ============================================================================
"""
Map Config Validator.

Pure function from a raw configuration (dict or inline string) to a
ValidationResult. Malformed input never raises: each invalid value is
replaced by its documented default and a Diagnostic is recorded.

Pipeline:
    1. Parse strings; absent / unparseable input -> default document
    2. Drop unknown top-level keys, deep merge over the default document
    3. JSON Schema check (map-config-1.0.json); failing sections outside
       viewSettings / basemapOptions / listOfGeoviewLayerConfig are reset
    4. Field repairs, in order: projection, center, zoom, basemap,
       schema version, min/max zoom, max extent, rotation, display language
    5. GeoView layer configs built through the node factory

Usage:
    from services.config_validator import validate

    result = validate(raw, map_id="mapOne")
    config = result.config
    if result.repaired:
        for diagnostic in result.diagnostics:
            print(diagnostic.field_path, diagnostic.original, diagnostic.replacement)

Exports:
    ConfigValidator: Validator bound to one map id and schema
    validate: Convenience wrapper
    load_schema: Cached schema loader
"""

import copy
import json
import uuid
from functools import lru_cache
from typing import Any, Dict, List, Optional, Set

from jsonschema import Draft7Validator
from pydantic import ValidationError

from config import get_config
from config.defaults import (
    BasemapDefaults,
    MapDefaults,
    ProjectionDefaults,
    SchemaDefaults,
    ViewDefaults,
)
from core.models.map_config import Diagnostic, MapFeaturesConfig, ValidationResult
from exceptions import ConfigurationError
from services.config_readers.inline_reader import parse_config_string
from services.node_factory import FactoryContext, build_layer_tree
from util_logger import LoggerFactory, ComponentType

# Sections whose schema failures are left to the field repairs / node factory
_FIELD_REPAIRED_SECTIONS = ('viewSettings', 'basemapOptions', 'listOfGeoviewLayerConfig')

_ALLOWED_TOP_LEVEL_KEYS = set(MapDefaults.DOCUMENT) | {'mapId'}


@lru_cache(maxsize=4)
def load_schema(schema_path: str) -> Dict[str, Any]:
    """Load and cache a JSON Schema file."""
    try:
        with open(schema_path, encoding='utf-8') as schema_file:
            return json.load(schema_file)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot load map configuration schema {schema_path}: {e}") from e


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _deep_merge(defaults: Any, recipient: Any) -> Any:
    """Recipient values win wherever the recipient carries the key."""
    if isinstance(defaults, dict) and isinstance(recipient, dict):
        merged = copy.deepcopy(defaults)
        for key, value in recipient.items():
            merged[key] = _deep_merge(defaults.get(key), value) if key in defaults else copy.deepcopy(value)
        return merged
    return copy.deepcopy(recipient)


class ConfigValidator:
    """
    Validates and repairs one map features configuration.

    A validator holds no state between validate() calls other than its map
    id and schema.
    """

    def __init__(self, map_id: Optional[str] = None, schema_path: Optional[str] = None):
        self.map_id = map_id
        self.schema_path = schema_path or get_config().schema_path
        self.logger = LoggerFactory.create_logger(ComponentType.VALIDATOR, "ConfigValidator")
        self._diagnostics: List[Diagnostic] = []
        self._current_map_id = map_id or 'unknown'
        self._explicit_view_keys: Set[str] = set()

    # ========================================================================
    # PUBLIC
    # ========================================================================

    def validate(self, raw: Any) -> ValidationResult:
        """
        Validate a raw configuration.

        Args:
            raw: Configuration dict, inline string, or None

        Returns:
            ValidationResult (never raises on malformed input)
        """
        self._diagnostics = []

        document = self._parse(raw)
        self._current_map_id = self._resolve_map_id(document)

        document = self._merge(document)
        self._check_schema(document)
        self._repair_fields(document)

        context = FactoryContext(
            map_id=self._current_map_id,
            disabled_layer_types=set(
                (document.get('globalSettings') or {}).get('disabledLayerTypes') or []
            ),
        )
        layer_configs = build_layer_tree(document['map'].get('listOfGeoviewLayerConfig', []), context)
        self._diagnostics.extend(context.diagnostics)

        config = self._build_config(document, layer_configs)
        diagnostics = tuple(self._diagnostics)
        result = ValidationResult(config=config, repaired=bool(diagnostics), diagnostics=diagnostics)

        self.logger.info(
            f"Map {self._current_map_id} configuration validated: "
            f"{len(layer_configs)} layer(s), {len(diagnostics)} repair(s)"
        )
        return result

    # ========================================================================
    # STEP 1-2: PARSE / MERGE
    # ========================================================================

    def _parse(self, raw: Any) -> Dict[str, Any]:
        if isinstance(raw, str):
            parsed = parse_config_string(raw)
            if parsed is None:
                self._report('', raw, None, "Unparseable configuration replaced by the default configuration")
                return {}
            return parsed
        if raw is None:
            self._report('', None, None, "Missing configuration replaced by the default configuration")
            return {}
        if not isinstance(raw, dict):
            self._report('', raw, None, "Invalid configuration replaced by the default configuration")
            return {}
        return copy.deepcopy(raw)

    def _resolve_map_id(self, document: Dict[str, Any]) -> str:
        if self.map_id:
            return self.map_id
        map_id = document.get('mapId')
        if isinstance(map_id, str) and map_id:
            return map_id
        return f"map-{uuid.uuid4().hex[:8]}"

    def _merge(self, document: Dict[str, Any]) -> Dict[str, Any]:
        if 'gvMap' in document:
            gv_map = document.pop('gvMap')
            document.setdefault('map', gv_map)

        for key in [k for k in document if k not in _ALLOWED_TOP_LEVEL_KEYS]:
            self._report(key, document[key], None, f"Unknown configuration key {key} removed")
            del document[key]
        document.pop('mapId', None)

        # Keys the user set explicitly keep their value through the
        # projection-dependent defaults below
        gv_map = document.get('map')
        view_settings = gv_map.get('viewSettings') if isinstance(gv_map, dict) else None
        self._explicit_view_keys = set(view_settings) if isinstance(view_settings, dict) else set()

        return _deep_merge(MapDefaults.default_document(), document)

    # ========================================================================
    # STEP 3: SCHEMA
    # ========================================================================

    def _check_schema(self, document: Dict[str, Any]) -> None:
        validator = Draft7Validator(load_schema(self.schema_path))
        defaults = MapDefaults.default_document()
        reset: Set[tuple] = set()

        for error in sorted(validator.iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path]):
            path = list(error.absolute_path)
            location = '.'.join(str(p) for p in path) or '<root>'

            if len(path) >= 2 and path[0] == 'map' and path[1] in _FIELD_REPAIRED_SECTIONS:
                self.logger.debug(f"- map: {self._current_map_id} - Schema error at {location}: {error.message} -")
                continue

            if not path:
                self.logger.debug(f"- map: {self._current_map_id} - Schema error at root: {error.message} -")
                continue

            key = tuple(path[:2]) if path[0] == 'map' and len(path) >= 2 else (path[0],)
            if key in reset:
                continue
            reset.add(key)

            if len(key) == 2:
                original = document['map'].get(key[1])
                replacement = copy.deepcopy(defaults['map'].get(key[1]))
                if replacement is None:
                    document['map'].pop(key[1], None)
                else:
                    document['map'][key[1]] = replacement
                field_path = f"map.{key[1]}"
            else:
                original = document.get(key[0])
                replacement = copy.deepcopy(defaults.get(key[0]))
                document[key[0]] = replacement
                field_path = key[0]

            self._report(field_path, original, replacement, f"Invalid {field_path} {original} replaced by {replacement}")

    # ========================================================================
    # STEP 4: FIELD REPAIRS
    # ========================================================================

    def _repair_fields(self, document: Dict[str, Any]) -> None:
        gv_map = document['map']
        for section in ('viewSettings', 'basemapOptions'):
            if not isinstance(gv_map.get(section), dict):
                replacement = copy.deepcopy(MapDefaults.DOCUMENT['map'][section])
                self._report(f"map.{section}", gv_map.get(section), replacement,
                             f"Invalid map.{section} replaced by the default")
                gv_map[section] = replacement
                if section == 'viewSettings':
                    self._explicit_view_keys = set()

        view_settings = gv_map['viewSettings']
        projection = self._repair_projection(view_settings)
        self._apply_projection_defaults(view_settings, projection)
        self._repair_center(view_settings, projection)
        self._repair_zoom(view_settings, projection)
        self._repair_basemap(gv_map['basemapOptions'], projection)
        self._repair_schema_version(document)
        self._repair_min_max_zoom(view_settings)
        self._repair_extent(view_settings, projection)
        self._repair_rotation(view_settings)
        self._repair_display_language(document)

    def _repair_projection(self, view_settings: Dict[str, Any]) -> int:
        projection = view_settings.get('projection')
        if _is_number(projection) and int(projection) == projection \
                and int(projection) in ProjectionDefaults.VALID_PROJECTION_CODES:
            view_settings['projection'] = int(projection)
            return int(projection)

        replacement = ProjectionDefaults.DEFAULT_PROJECTION
        self._report('map.viewSettings.projection', projection, replacement,
                     f"Invalid projection code {projection} replaced by {replacement}")
        view_settings['projection'] = replacement
        return replacement

    def _apply_projection_defaults(self, view_settings: Dict[str, Any], projection: int) -> None:
        """Keys the user did not set take the chosen projection's defaults."""
        if 'zoom' not in self._explicit_view_keys:
            view_settings['zoom'] = ViewDefaults.MAP_ZOOM_LEVEL[projection]
        if 'center' not in self._explicit_view_keys:
            view_settings['center'] = list(ViewDefaults.MAP_CENTER[projection])
        if 'maxExtent' not in self._explicit_view_keys:
            view_settings['maxExtent'] = list(ProjectionDefaults.MAP_EXTENTS[projection])

    def _repair_center(self, view_settings: Dict[str, Any], projection: int) -> None:
        center = view_settings.get('center')
        axes = list(center) if isinstance(center, (list, tuple)) and len(center) == 2 else [None, None]
        if axes == [None, None] and center is not None:
            self.logger.debug(f"- map: {self._current_map_id} - Center {center} is not a coordinate pair -")

        envelope = ProjectionDefaults.VALID_MAP_CENTER[projection]
        for index, axis_name in enumerate(('long', 'lat')):
            low, high = envelope[axis_name]
            value = axes[index]
            if _is_number(value) and low < value < high:
                continue
            replacement = ViewDefaults.MAP_CENTER[projection][index]
            self._report(f"map.viewSettings.center[{index}]", value, replacement,
                         f"Invalid center {axis_name} {value} replaced by {replacement}")
            axes[index] = replacement
        view_settings['center'] = axes

    def _repair_zoom(self, view_settings: Dict[str, Any], projection: int) -> None:
        zoom = view_settings.get('zoom')
        low, high = ViewDefaults.ZOOM_RANGE
        if _is_number(zoom) and low <= zoom <= high:
            return
        replacement = ViewDefaults.MAP_ZOOM_LEVEL[projection]
        self._report('map.viewSettings.zoom', zoom, replacement,
                     f"Invalid zoom level {zoom} replaced by {replacement}")
        view_settings['zoom'] = replacement

    def _repair_basemap(self, basemap_options: Dict[str, Any], projection: int) -> None:
        basemap_id = basemap_options.get('basemapId')
        if basemap_id not in BasemapDefaults.BASEMAP_ID[projection]:
            replacement = BasemapDefaults.BASEMAP_ID[projection][0]
            self._report('map.basemapOptions.basemapId', basemap_id, replacement,
                         f"Invalid basemap id {basemap_id} replaced by {replacement}")
            basemap_options['basemapId'] = replacement

        for flag, valid, default in (
            ('shaded', BasemapDefaults.BASEMAP_SHADED[projection], BasemapDefaults.DEFAULT_SHADED),
            ('labeled', BasemapDefaults.BASEMAP_LABELED[projection], BasemapDefaults.DEFAULT_LABELED),
        ):
            value = basemap_options.get(flag)
            if isinstance(value, bool) and value in valid:
                continue
            replacement = default if default in valid else valid[0]
            self._report(f"map.basemapOptions.{flag}", value, replacement,
                         f"Invalid {flag} basemap option {value} replaced by {replacement}")
            basemap_options[flag] = replacement

    def _repair_schema_version(self, document: Dict[str, Any]) -> None:
        version = document.get('schemaVersionUsed')
        if version in SchemaDefaults.ACCEPTED_SCHEMA_VERSIONS:
            return
        replacement = SchemaDefaults.SCHEMA_VERSION
        self._report('schemaVersionUsed', version, replacement,
                     f"Invalid schema version {version} replaced by {replacement}")
        document['schemaVersionUsed'] = replacement

    def _repair_min_max_zoom(self, view_settings: Dict[str, Any]) -> None:
        low, high = ViewDefaults.MIN_MAX_ZOOM_RANGE
        for key, default in (('minZoom', ViewDefaults.MIN_ZOOM), ('maxZoom', ViewDefaults.MAX_ZOOM)):
            value = view_settings.get(key)
            if _is_number(value) and low <= value <= high:
                continue
            self._report(f"map.viewSettings.{key}", value, default,
                         f"Invalid {key} {value} replaced by {default}")
            view_settings[key] = default

        if view_settings['minZoom'] > view_settings['maxZoom']:
            for key, default in (('minZoom', ViewDefaults.MIN_ZOOM), ('maxZoom', ViewDefaults.MAX_ZOOM)):
                self._report(f"map.viewSettings.{key}", view_settings[key], default,
                             f"Crossed minZoom / maxZoom: {key} {view_settings[key]} replaced by {default}")
                view_settings[key] = default

    def _repair_extent(self, view_settings: Dict[str, Any], projection: int) -> None:
        extent = view_settings.get('maxExtent')
        edges = list(extent) if isinstance(extent, (list, tuple)) and len(extent) == 4 else [None] * 4
        center = view_settings['center']
        default_extent = ProjectionDefaults.MAP_EXTENTS[projection]
        envelope = ProjectionDefaults.VALID_MAP_CENTER[projection]
        envelope_edges = [envelope['long'][0], envelope['lat'][0], envelope['long'][1], envelope['lat'][1]]

        def consistent(index: int, value: Any) -> bool:
            if not _is_number(value):
                return False
            axis_center = center[index % 2]
            return value < axis_center if index < 2 else value > axis_center

        for index, edge_name in enumerate(('minX', 'minY', 'maxX', 'maxY')):
            value = edges[index]
            if consistent(index, value):
                continue
            replacement = default_extent[index]
            if not consistent(index, replacement):
                replacement = envelope_edges[index]
            self._report(f"map.viewSettings.maxExtent[{index}]", value, replacement,
                         f"Invalid extent {edge_name} {value} replaced by {replacement}")
            edges[index] = replacement
        view_settings['maxExtent'] = edges

    def _repair_rotation(self, view_settings: Dict[str, Any]) -> None:
        enable_rotation = view_settings.get('enableRotation')
        if not isinstance(enable_rotation, bool):
            self._report('map.viewSettings.enableRotation', enable_rotation, ViewDefaults.ENABLE_ROTATION,
                         f"Invalid enableRotation {enable_rotation} replaced by {ViewDefaults.ENABLE_ROTATION}")
            view_settings['enableRotation'] = ViewDefaults.ENABLE_ROTATION

        rotation = view_settings.get('rotation')
        if not (_is_number(rotation) and 0 <= rotation <= 360):
            self._report('map.viewSettings.rotation', rotation, ViewDefaults.ROTATION,
                         f"Invalid rotation {rotation} replaced by {ViewDefaults.ROTATION}")
            view_settings['rotation'] = ViewDefaults.ROTATION

    def _repair_display_language(self, document: Dict[str, Any]) -> None:
        language = document.get('displayLanguage')
        if language in SchemaDefaults.VALID_LANGUAGES:
            return
        replacement = SchemaDefaults.DEFAULT_LANGUAGE
        self._report('displayLanguage', language, replacement,
                     f"Invalid display language {language} replaced by {replacement}")
        document['displayLanguage'] = replacement

    # ========================================================================
    # STEP 5: BUILD
    # ========================================================================

    def _build_config(self, document: Dict[str, Any], layer_configs) -> MapFeaturesConfig:
        data = dict(document)
        data['mapId'] = self._current_map_id
        data['map'] = {**document['map'], 'listOfGeoviewLayerConfig': layer_configs}
        try:
            return MapFeaturesConfig.model_validate(data)
        except ValidationError as e:
            # Only reachable with a schema file looser than the models
            self.logger.error(
                f"- map: {self._current_map_id} - Repaired configuration still invalid: {e.errors()} -"
            )
            fallback = MapDefaults.default_document()
            self._report('', None, None, "Configuration replaced by the default configuration")
            fallback['mapId'] = self._current_map_id
            fallback['map']['listOfGeoviewLayerConfig'] = layer_configs
            return MapFeaturesConfig.model_validate(fallback)

    # ========================================================================
    # DIAGNOSTICS
    # ========================================================================

    def _report(self, field_path: str, original: Any, replacement: Any, message: str) -> None:
        self._diagnostics.append(Diagnostic(
            field_path=field_path,
            original=original,
            replacement=replacement,
            message=message,
        ))
        self.logger.warning(f"- map: {self._current_map_id} - {message} -")


def validate(raw: Any, map_id: Optional[str] = None, schema_path: Optional[str] = None) -> ValidationResult:
    """
    Validate a raw map features configuration.

    Args:
        raw: Configuration dict, inline string, or None
        map_id: Map instance id (defaults to the configuration's mapId)
        schema_path: JSON Schema file (defaults to the configured schema)

    Returns:
        ValidationResult with the repaired MapFeaturesConfig
    """
    return ConfigValidator(map_id=map_id, schema_path=schema_path).validate(raw)
