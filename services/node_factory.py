# ============================================================================
# LAYER CONFIG NODE FACTORY
# ============================================================================
# STATUS: Service - Type-keyed construction of layer config trees
# PURPOSE: Raw GeoView layer configs -> immutable ConfigNode trees
# CREATED: 13 OCT 2026
# ============================================================================
"""
Layer Config Node Factory.

Maps ``geoviewLayerType`` discriminators to builder functions. A builder
turns one raw GeoView layer config into a GeoviewLayerConfig whose entries
are built bottom-up, each one stamped with its positional layer path, the
parent path, the inherited ``schemaTag`` and an ``entryType``.

Construction is lossy: an invalid entry or layer config is dropped with a
diagnostic and its siblings carry on.

Usage:
    from services.node_factory import FactoryContext, node_factory, build_layer_tree

    context = FactoryContext(map_id="mapOne")
    layer_configs = build_layer_tree(raw_list, context)
    for diagnostic in context.diagnostics:
        ...

    # Register a builder for a new layer type
    @register_node_type(GeoviewLayerType.GEOJSON)
    def build_geojson(raw, context, field_path):
        ...

Exports:
    FactoryContext: Per-map build state (diagnostics, ids and paths seen)
    register_node_type: Builder registration decorator
    get_node_builder: Builder lookup (KeyError when unknown)
    node_factory: One raw config -> GeoviewLayerConfig or None
    build_layer_tree: Raw list -> tuple of GeoviewLayerConfig
    ENTRY_TYPES_BY_LAYER_TYPE: Entry types allowed per layer type
"""

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Type

from pydantic import ValidationError

from config.defaults import LayerDefaults
from core.logic.layer_tree import build_layer_path
from core.models.enums import GeoviewLayerType, LayerEntryType
from core.models.layer_config import (
    GeoviewLayerConfig,
    GroupLayerEntryConfig,
    RasterLayerEntryConfig,
    ServiceResolvedEntryConfig,
    VectorLayerEntryConfig,
    VectorTileLayerEntryConfig,
)
from core.models.map_config import Diagnostic
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.FACTORY, "NodeFactory")

# Builder signature: (raw layer config, context, field path) -> config or None
NodeBuilder = Callable[[Dict[str, Any], 'FactoryContext', str], Optional[GeoviewLayerConfig]]

_REGISTRY: Dict[GeoviewLayerType, NodeBuilder] = {}


# First entry type is the default when the raw entry has none
ENTRY_TYPES_BY_LAYER_TYPE: Dict[GeoviewLayerType, Tuple[LayerEntryType, ...]] = {
    GeoviewLayerType.CSV: (LayerEntryType.VECTOR,),
    GeoviewLayerType.GEOJSON: (LayerEntryType.VECTOR,),
    GeoviewLayerType.GEOPACKAGE: (LayerEntryType.VECTOR,),
    GeoviewLayerType.OGC_FEATURE: (LayerEntryType.VECTOR,),
    GeoviewLayerType.WFS: (LayerEntryType.VECTOR,),
    GeoviewLayerType.ESRI_FEATURE: (LayerEntryType.VECTOR,),
    GeoviewLayerType.IMAGE_STATIC: (LayerEntryType.RASTER_IMAGE,),
    GeoviewLayerType.ESRI_DYNAMIC: (LayerEntryType.RASTER_IMAGE,),
    GeoviewLayerType.ESRI_IMAGE: (LayerEntryType.RASTER_IMAGE,),
    GeoviewLayerType.WMS: (LayerEntryType.RASTER_IMAGE,),
    GeoviewLayerType.XYZ_TILES: (LayerEntryType.RASTER_TILE,),
    GeoviewLayerType.VECTOR_TILES: (LayerEntryType.VECTOR_TILE, LayerEntryType.RASTER_TILE),
    GeoviewLayerType.GEOCORE: (LayerEntryType.GEOCORE,),
}

_ENTRY_CLASSES: Dict[LayerEntryType, Type] = {
    LayerEntryType.VECTOR: VectorLayerEntryConfig,
    LayerEntryType.VECTOR_TILE: VectorTileLayerEntryConfig,
    LayerEntryType.RASTER_TILE: RasterLayerEntryConfig,
    LayerEntryType.RASTER_IMAGE: RasterLayerEntryConfig,
    LayerEntryType.GEOCORE: ServiceResolvedEntryConfig,
}


@dataclass
class FactoryContext:
    """
    Build state shared by every node of one map.

    Attributes:
        map_id: Map instance id (used in diagnostics)
        diagnostics: Diagnostics of every dropped or renamed node
        geoview_layer_ids: Root ids already built
        layer_paths: Layer paths already built
        disabled_layer_types: Layer types refused by globalSettings
    """

    map_id: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    geoview_layer_ids: Set[str] = field(default_factory=set)
    layer_paths: Set[str] = field(default_factory=set)
    disabled_layer_types: Set[str] = field(default_factory=set)

    def report(self, field_path: str, original: Any, message: str, replacement: Any = None) -> None:
        """Record and log one diagnostic."""
        self.diagnostics.append(Diagnostic(
            field_path=field_path,
            original=original,
            replacement=replacement,
            message=message,
        ))
        logger.warning(f"- map: {self.map_id} - {message} -")


# ============================================================================
# REGISTRY
# ============================================================================

def register_node_type(*layer_types: GeoviewLayerType):
    """
    Decorator to register a builder for one or more layer types.

    Args:
        layer_types: Discriminator values handled by the builder

    Usage:
        @register_node_type(GeoviewLayerType.WMS)
        def build_wms(raw, context, field_path):
            ...
    """
    def decorator(func: NodeBuilder) -> NodeBuilder:
        for layer_type in layer_types:
            if layer_type in _REGISTRY:
                logger.warning(f"Node builder '{layer_type.value}' already registered, overwriting")
            _REGISTRY[layer_type] = func
        return func
    return decorator


def get_node_builder(layer_type: GeoviewLayerType) -> NodeBuilder:
    """
    Look up the builder of a layer type.

    Raises:
        KeyError if no builder is registered
    """
    if layer_type not in _REGISTRY:
        available = [t.value for t in _REGISTRY]
        raise KeyError(f"Unknown layer type: '{layer_type}'. Available layer types: {available}")
    return _REGISTRY[layer_type]


def has_node_builder(layer_type: GeoviewLayerType) -> bool:
    """Check if a builder is registered."""
    return layer_type in _REGISTRY


def list_node_types() -> List[str]:
    """List all registered layer types."""
    return [t.value for t in _REGISTRY]


# ============================================================================
# ENTRY CONSTRUCTION
# ============================================================================

def _entry_id(raw: Dict[str, Any]) -> Optional[str]:
    layer_id = raw.get('layerId')
    if isinstance(layer_id, bool) or layer_id is None:
        return None
    if isinstance(layer_id, (int, float)):
        return str(int(layer_id)) if float(layer_id).is_integer() else str(layer_id)
    if isinstance(layer_id, str) and layer_id.strip():
        return layer_id.strip()
    return None


def _is_group(raw: Dict[str, Any]) -> bool:
    entry_type = raw.get('entryType')
    if entry_type is not None:
        return entry_type == LayerEntryType.GROUP.value
    return isinstance(raw.get('listOfLayerEntryConfig'), list)


def _build_entry(
    raw: Any,
    parent_path: str,
    layer_type: GeoviewLayerType,
    context: FactoryContext,
    field_path: str
):
    """One raw entry -> ConfigNode, or None (diagnostic recorded)."""
    if not isinstance(raw, dict):
        context.report(field_path, raw, f"Layer entry at {field_path} is not an object and was removed")
        return None

    layer_id = _entry_id(raw)
    if layer_id is None:
        context.report(field_path, raw.get('layerId'), f"Layer entry at {field_path} has no layerId and was removed")
        return None

    schema_tag = raw.get('schemaTag')
    if schema_tag is not None and schema_tag != layer_type.value:
        context.report(
            f"{field_path}.schemaTag", schema_tag,
            f"Layer entry schemaTag {schema_tag} does not match layer type {layer_type.value}; entry removed"
        )
        return None

    extension = raw.get('layerIdExtension')
    layer_path = build_layer_path(parent_path, layer_id, str(extension) if extension else None)
    if layer_path in context.layer_paths:
        context.report(field_path, layer_path, f"Duplicate layer path {layer_path}; entry removed")
        return None

    data = {key: value for key, value in raw.items() if key != 'listOfLayerEntryConfig'}
    data.update({
        'layerId': layer_id,
        'schemaTag': layer_type,
        'layerPath': layer_path,
        'parentLayerPath': parent_path,
    })

    if _is_group(raw):
        children = _build_entries(raw.get('listOfLayerEntryConfig') or [], layer_path, layer_type, context, field_path)
        if not children:
            context.report(field_path, layer_path, f"Group {layer_path} has no valid children and was removed")
            return None
        data['entryType'] = LayerEntryType.GROUP
        data['listOfLayerEntryConfig'] = children
        entry_class: Type = GroupLayerEntryConfig
    else:
        allowed = ENTRY_TYPES_BY_LAYER_TYPE[layer_type]
        entry_type = raw.get('entryType', allowed[0].value)
        if entry_type not in [t.value for t in allowed]:
            context.report(
                f"{field_path}.entryType", entry_type,
                f"Entry type {entry_type} is not valid for layer type {layer_type.value}; entry {layer_path} removed"
            )
            return None
        data['entryType'] = LayerEntryType(entry_type)
        entry_class = _ENTRY_CLASSES[data['entryType']]

    try:
        entry = entry_class.model_validate(data)
    except ValidationError as e:
        context.report(
            field_path, layer_path,
            f"Layer entry {layer_path} is invalid ({e.error_count()} error(s)) and was removed"
        )
        logger.debug(f"Entry {layer_path} validation errors: {e.errors()}")
        return None

    context.layer_paths.add(layer_path)
    return entry


def _build_entries(
    raw_entries: Any,
    parent_path: str,
    layer_type: GeoviewLayerType,
    context: FactoryContext,
    field_path: str
) -> Tuple:
    """Build a fresh tuple of children, skipping the ones that fail."""
    if not isinstance(raw_entries, list):
        context.report(
            f"{field_path}.listOfLayerEntryConfig", raw_entries,
            f"listOfLayerEntryConfig of {parent_path} is not a list"
        )
        return ()
    entries = []
    for index, raw_entry in enumerate(raw_entries):
        entry = _build_entry(
            raw_entry, parent_path, layer_type, context,
            f"{field_path}.listOfLayerEntryConfig[{index}]"
        )
        if entry is not None:
            entries.append(entry)
    return tuple(entries)


# ============================================================================
# ROOT CONSTRUCTION
# ============================================================================

def _claim_geoview_layer_id(raw: Dict[str, Any], context: FactoryContext, field_path: str,
                            allow_suffix: bool) -> Optional[str]:
    """Reserve a unique root id; geoCore duplicates get a random suffix."""
    geoview_layer_id = raw.get('geoviewLayerId')
    if geoview_layer_id is None or (isinstance(geoview_layer_id, str) and not geoview_layer_id.strip()):
        geoview_layer_id = uuid.uuid4().hex[:18]
        context.report(
            f"{field_path}.geoviewLayerId", None,
            f"Missing geoviewLayerId replaced by {geoview_layer_id}",
            replacement=geoview_layer_id
        )
    geoview_layer_id = str(geoview_layer_id)

    if geoview_layer_id in context.geoview_layer_ids:
        if not allow_suffix:
            context.report(
                f"{field_path}.geoviewLayerId", geoview_layer_id,
                f"Duplicate geoviewLayerId {geoview_layer_id}; layer removed"
            )
            return None
        suffixed = f"{geoview_layer_id.split(':')[0]}:{uuid.uuid4().hex[:LayerDefaults.GEOCORE_ID_SUFFIX_LENGTH]}"
        context.report(
            f"{field_path}.geoviewLayerId", geoview_layer_id,
            f"Duplicate geoCore id {geoview_layer_id} replaced by {suffixed}",
            replacement=suffixed
        )
        geoview_layer_id = suffixed

    context.geoview_layer_ids.add(geoview_layer_id)
    return geoview_layer_id


def _build_root(
    raw: Dict[str, Any],
    context: FactoryContext,
    field_path: str,
    layer_type: GeoviewLayerType,
    entries_builder: Callable[[str], Tuple]
) -> Optional[GeoviewLayerConfig]:
    geoview_layer_id = _claim_geoview_layer_id(
        raw, context, field_path, allow_suffix=layer_type == GeoviewLayerType.GEOCORE
    )
    if geoview_layer_id is None:
        return None

    entries = entries_builder(geoview_layer_id)
    if not entries:
        context.report(
            f"{field_path}.listOfLayerEntryConfig", raw.get('listOfLayerEntryConfig'),
            f"GeoView layer {geoview_layer_id} has no valid layer entries and was removed"
        )
        context.geoview_layer_ids.discard(geoview_layer_id)
        return None

    data = {key: value for key, value in raw.items() if key != 'listOfLayerEntryConfig'}
    data.update({
        'geoviewLayerId': geoview_layer_id,
        'geoviewLayerType': layer_type,
        'listOfLayerEntryConfig': entries,
    })
    if layer_type == GeoviewLayerType.GEOCORE:
        data['isGeocore'] = True

    try:
        return GeoviewLayerConfig.model_validate(data)
    except ValidationError as e:
        context.report(
            field_path, geoview_layer_id,
            f"GeoView layer {geoview_layer_id} is invalid ({e.error_count()} error(s)) and was removed"
        )
        logger.debug(f"Layer {geoview_layer_id} validation errors: {e.errors()}")
        context.geoview_layer_ids.discard(geoview_layer_id)
        return None


@register_node_type(
    GeoviewLayerType.CSV,
    GeoviewLayerType.GEOJSON,
    GeoviewLayerType.GEOPACKAGE,
    GeoviewLayerType.OGC_FEATURE,
    GeoviewLayerType.WFS,
    GeoviewLayerType.ESRI_FEATURE,
    GeoviewLayerType.IMAGE_STATIC,
    GeoviewLayerType.ESRI_DYNAMIC,
    GeoviewLayerType.ESRI_IMAGE,
    GeoviewLayerType.WMS,
    GeoviewLayerType.XYZ_TILES,
    GeoviewLayerType.VECTOR_TILES,
)
def build_service_layer(raw: Dict[str, Any], context: FactoryContext, field_path: str) -> Optional[GeoviewLayerConfig]:
    """Builder for every layer type with its own list of entries."""
    layer_type = GeoviewLayerType(raw['geoviewLayerType'])
    return _build_root(
        raw, context, field_path, layer_type,
        lambda root_id: _build_entries(
            raw.get('listOfLayerEntryConfig', []), root_id, layer_type, context, field_path
        )
    )


@register_node_type(GeoviewLayerType.GEOCORE)
def build_geocore_layer(raw: Dict[str, Any], context: FactoryContext, field_path: str) -> Optional[GeoviewLayerConfig]:
    """
    Builder for a geoCore placeholder.

    The placeholder owns a single service-resolved entry holding the UUID;
    the layer manager swaps the whole config for the resolved one.
    """
    def entries_builder(root_id: str) -> Tuple:
        existing = [
            entry for entry in raw.get('listOfLayerEntryConfig') or []
            if isinstance(entry, dict) and entry.get('entryType') == LayerEntryType.GEOCORE.value
        ]
        uuid_value = _entry_id(existing[0]) if existing else root_id.split(':')[0]
        layer_path = build_layer_path(root_id, uuid_value)
        if layer_path in context.layer_paths:
            return ()
        entry = ServiceResolvedEntryConfig(
            layer_id=uuid_value,
            schema_tag=GeoviewLayerType.GEOCORE,
            layer_path=layer_path,
            parent_layer_path=root_id,
        )
        context.layer_paths.add(layer_path)
        return (entry,)

    return _build_root(raw, context, field_path, GeoviewLayerType.GEOCORE, entries_builder)


# ============================================================================
# PUBLIC ENTRY POINTS
# ============================================================================

def node_factory(raw_node: Any, context: FactoryContext, field_path: str = "layer") -> Optional[GeoviewLayerConfig]:
    """
    Build one GeoView layer config.

    Args:
        raw_node: Raw GeoView layer config
        context: Per-map build state
        field_path: Location used in diagnostics

    Returns:
        GeoviewLayerConfig, or None when the discriminator is unknown or the
        node cannot be built (a diagnostic is recorded)
    """
    if not isinstance(raw_node, dict):
        context.report(field_path, raw_node, f"GeoView layer config at {field_path} is not an object and was removed")
        return None

    raw_type = raw_node.get('geoviewLayerType')
    try:
        layer_type = GeoviewLayerType(raw_type)
        builder = get_node_builder(layer_type)
    except (ValueError, KeyError):
        context.report(
            f"{field_path}.geoviewLayerType", raw_type,
            f"Invalid geoviewLayerType {raw_type}; layer removed"
        )
        return None

    if layer_type.value in context.disabled_layer_types:
        context.report(
            f"{field_path}.geoviewLayerType", raw_type,
            f"Layer type {raw_type} is disabled by globalSettings; layer removed"
        )
        return None

    return builder(copy.deepcopy(raw_node), context, field_path)


def build_layer_tree(raw_list: Any, context: FactoryContext,
                     field_path: str = "map.listOfGeoviewLayerConfig") -> Tuple[GeoviewLayerConfig, ...]:
    """
    Build every GeoView layer config of a map, dropping the ones that fail.

    Args:
        raw_list: Raw listOfGeoviewLayerConfig
        context: Per-map build state
        field_path: Location used in diagnostics

    Returns:
        Tuple of GeoviewLayerConfig in input order
    """
    if not isinstance(raw_list, list):
        context.report(field_path, raw_list, "listOfGeoviewLayerConfig is not a list and was replaced by []",
                       replacement=[])
        return ()

    layer_configs = []
    for index, raw_node in enumerate(raw_list):
        layer_config = node_factory(raw_node, context, f"{field_path}[{index}]")
        if layer_config is not None:
            layer_configs.append(layer_config)
    return tuple(layer_configs)
