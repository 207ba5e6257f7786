# ============================================================================
# ABSTRACT GEOVIEW LAYER
# ============================================================================
# STATUS: Core - Layer lifecycle state machine
# PURPOSE: Drive one GeoView layer config through the six-step protocol
# CREATED: 14 OCT 2026
# ============================================================================
"""
Abstract GeoView Layer.

One instance per GeoView layer config (one service / file / tile set).
``load()`` runs the six steps in a fixed order:

    1. fetch_service_metadata            (network, cancellable)
    2. validate_list_of_layer_entry_config (drop entries missing from metadata)
    3. validate_layer_entry_config       (per-entry structural check)
    4. process_layer_metadata            (merge server attributes; user wins)
    5. process_one_layer_entry           (renderable per leaf / group)
    6. create_gv_layer                   (query behavior, status loaded)

Families override the steps they need. Status is tracked per layer path and
announced on the event bus; a parent path settles once every reachable
child is loaded or in error.

Entries are immutable: enriched entries are copies held in this layer's
working index, the MapFeaturesConfig tree is never modified.

Status flow per layer path:
    newInstance -> loading -> processed -> loaded
    any non-terminal status -> error
"""

import asyncio
from abc import ABC
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Tuple

from config.defaults import QueryDefaults
from core.errors import ErrorCode, create_error_response
from core.events import EventBus, EventScope
from core.logic.calculations import aggregate_parent_status, all_in_error, all_status_at_least, count_error_status
from core.logic.layer_tree import index_entries, iter_entries
from core.logic.transitions import can_layer_transition
from core.models.enums import EventType, GeoviewLayerType, LayerStatus, QueryType
from core.models.events import (
    LayerAddedEvent,
    LayerErrorEvent,
    LayerNameChangedEvent,
    LayerStatusChangedEvent,
)
from core.models.layer_config import (
    FeatureInfoConfig,
    GeoviewLayerConfig,
    LocalizedString,
    SourceConfig,
    create_localized_string,
)
from core.models.results import FeatureInfoEntry, LegendResult
from exceptions import (
    ContractViolationError,
    LayerCancelledError,
    LayerEntryConfigError,
    LayerError,
    LayerQueryError,
)
from infrastructure.metadata_client import MetadataClient
from util_logger import LoggerFactory, ComponentType

from .renderable import GVLayer, RenderableGroup, RenderableLayer


class AbstractGeoViewLayer(ABC):
    """
    Base class of every GeoView layer family.

    Class attributes:
        layer_types: Layer types handled (set by register_layer_class)
        supports_feature_query: Family answers feature queries
        supports_hover: Family answers hover queries
    """

    layer_types: ClassVar[Tuple[GeoviewLayerType, ...]] = ()
    supports_feature_query: ClassVar[bool] = True
    supports_hover: ClassVar[bool] = True

    def __init__(
        self,
        layer_config: GeoviewLayerConfig,
        bus: EventBus,
        scope: EventScope,
        client: MetadataClient,
        map_id: str = "unknown",
        language: str = "en"
    ):
        self.layer_config = layer_config
        self.geoview_layer_id = layer_config.geoview_layer_id
        self.bus = bus
        self.scope = scope
        self.client = client
        self.map_id = map_id
        self.language = language

        self.status = LayerStatus.NEW_INSTANCE
        self.list_of_layer_entry_config = layer_config.list_of_layer_entry_config
        self._entries = index_entries(self.list_of_layer_entry_config)
        self._layer_status: Dict[str, LayerStatus] = {path: LayerStatus.NEW_INSTANCE for path in self._entries}

        self.metadata: Any = None
        self.layer_metadata: Dict[str, Any] = {}
        self.renderables: Dict[str, Any] = {}
        self.gv_layers: Dict[str, GVLayer] = {}
        self.errors: List[LayerError] = []

        self._started = False
        self._cancel_requested = False
        self._fetch_task: Optional[asyncio.Task] = None

        self.logger = LoggerFactory.create_with_context(
            ComponentType.LAYER,
            type(self).__name__,
            map_id=map_id,
            geoview_layer_id=self.geoview_layer_id
        )

    # ========================================================================
    # ACCESSORS
    # ========================================================================

    @property
    def metadata_access_path(self) -> Optional[str]:
        url = self.layer_config.metadata_url(self.language)
        return url.rstrip('/') if url else url

    def get_entry(self, layer_path: str):
        """Working copy of an entry (None when unknown or removed)."""
        return self._entries.get(layer_path)

    def get_layer_status(self, layer_path: str) -> Optional[LayerStatus]:
        return self._layer_status.get(layer_path)

    def layer_paths(self) -> List[str]:
        """Every layer path this layer knows, parents first."""
        return list(self._layer_status)

    def leaf_paths(self) -> List[str]:
        return [path for path, entry in self._entries.items() if not entry.is_group]

    def get_layer_name(self, layer_path: str) -> Optional[str]:
        entry = self._entries.get(layer_path)
        if entry is None or entry.layer_name is None:
            return None
        return entry.layer_name.get(self.language)

    def all_layer_status_are_greater_than_or_equal_to(self, status: LayerStatus) -> bool:
        """Every known layer path reached at least the given status."""
        return all_status_at_least(self._layer_status.values(), status)

    def all_layer_entries_in_error(self) -> bool:
        return all_in_error(self._layer_status.values())

    def count_error_status(self) -> int:
        return count_error_status(self._layer_status.values())

    def is_queryable(self, layer_path: str) -> bool:
        """Family supports queries, entry is queryable and loaded."""
        entry = self._entries.get(layer_path)
        if entry is None or entry.is_group or not self.supports_feature_query:
            return False
        if not entry.source.is_queryable or not entry.initial_settings.states.queryable:
            return False
        return self._layer_status.get(layer_path) == LayerStatus.LOADED

    # ========================================================================
    # STATUS
    # ========================================================================

    def set_layer_status(self, layer_path: str, status: LayerStatus) -> bool:
        """
        Move one layer path to a new status and announce it.

        Invalid transitions (anything out of error, going backwards) are
        ignored.

        Returns:
            True if the status changed
        """
        current = self._layer_status.get(layer_path)
        if current is None or current == status:
            return False
        if not can_layer_transition(current, status):
            self.logger.debug(f"Ignored status change {current.value} -> {status.value} for {layer_path}")
            return False

        self._layer_status[layer_path] = status
        self.logger.debug(f"Layer {layer_path} status {current.value} -> {status.value}")
        self.bus.emit(
            EventType.LAYER_STATUS_CHANGED,
            LayerStatusChangedEvent(layer_path=layer_path, layer_status=status),
            scope=self.scope
        )
        self._update_parent_status(layer_path)
        return True

    def _update_parent_status(self, layer_path: str) -> None:
        entry = self._entries.get(layer_path)
        parent_path = entry.parent_layer_path if entry is not None else None
        if parent_path:
            self._refresh_group_status(parent_path)

    def _refresh_group_status(self, parent_path: str) -> None:
        parent = self._entries.get(parent_path)
        if parent is None or not parent.is_group:
            return

        child_statuses = [
            self._layer_status[child.layer_path]
            for child in parent.list_of_layer_entry_config
            if child.layer_path in self._layer_status
        ]
        aggregated = aggregate_parent_status(child_statuses)
        if aggregated is not None:
            self.set_layer_status(parent_path, aggregated)

    def _set_error(self, layer_path: str, error: LayerError) -> None:
        """Record an error against a path and move the path to error."""
        if error.layer_path is None:
            error.layer_path = layer_path
        self.errors.append(error)
        self.logger.error(f"Layer {layer_path} failed: {error}")
        self.bus.emit(
            EventType.LAYER_ERROR,
            LayerErrorEvent(
                layer_path=layer_path,
                error_code=error.error_code,
                message=error.message,
                details=create_error_response(error.error_code, error.message,
                                              layer_path=layer_path, map_id=self.map_id),
            ),
            scope=self.scope
        )
        self.set_layer_status(layer_path, LayerStatus.ERROR)

    def set_layer_name(self, layer_path: str, name: Any) -> None:
        """Rename an entry (working copy) and announce it."""
        entry = self._entries.get(layer_path)
        if entry is None:
            return
        layer_name = create_localized_string(name)
        if layer_name == entry.layer_name:
            return
        self._entries[layer_path] = entry.model_copy(update={'layer_name': layer_name})
        self.bus.emit(
            EventType.LAYER_NAME_CHANGED,
            LayerNameChangedEvent(layer_path=layer_path, layer_name=self.get_layer_name(layer_path)),
            scope=self.scope
        )

    def _replace_entry(self, entry) -> None:
        self._entries[entry.layer_path] = entry

    def remove_layer_paths(self, layer_paths: Iterable[str]) -> None:
        """Forget a subtree taken off the map; its parent group is re-aggregated."""
        removed = set(layer_paths)
        parents = {self._entries[path].parent_layer_path for path in removed if path in self._entries}
        for layer_path in removed:
            self._entries.pop(layer_path, None)
            self._layer_status.pop(layer_path, None)
            self.layer_metadata.pop(layer_path, None)
            self.renderables.pop(layer_path, None)
            self.gv_layers.pop(layer_path, None)

        self.list_of_layer_entry_config = tuple(
            entry for entry in self.list_of_layer_entry_config if entry.layer_path not in removed
        )
        for parent_path in parents - removed - {None}:
            parent = self._entries.get(parent_path)
            if parent is None:
                continue
            self._replace_entry(parent.model_copy(update={'list_of_layer_entry_config': tuple(
                child for child in parent.list_of_layer_entry_config if child.layer_path not in removed
            )}))
            self._refresh_group_status(parent_path)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def cancel(self) -> None:
        """Abort the in-flight metadata fetch; the layer ends in error."""
        self._cancel_requested = True
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()

    def _check_cancelled(self) -> None:
        if self._cancel_requested:
            raise LayerCancelledError("Layer loading cancelled", layer_path=self.geoview_layer_id)

    async def _run_fetch(self) -> Any:
        self._fetch_task = asyncio.ensure_future(self.fetch_service_metadata())
        try:
            return await self._fetch_task
        except asyncio.CancelledError:
            if self._cancel_requested:
                raise LayerCancelledError(
                    "Metadata fetch cancelled", layer_path=self.geoview_layer_id
                ) from None
            raise
        finally:
            self._fetch_task = None

    async def load(self) -> LayerStatus:
        """
        Run the six-step protocol once.

        Returns:
            Final status of the GeoView layer (loaded when at least one
            leaf loaded, error otherwise)

        Raises:
            ContractViolationError: load() already ran on this instance
        """
        if self._started:
            raise ContractViolationError(f"Layer {self.geoview_layer_id} lifecycle already started")
        self._started = True

        self.status = LayerStatus.LOADING
        for layer_path in list(self._layer_status):
            self.set_layer_status(layer_path, LayerStatus.LOADING)

        try:
            self._check_cancelled()
            self.metadata = await self._run_fetch()
            self._check_cancelled()

            self.list_of_layer_entry_config = self.validate_list_of_layer_entry_config(
                self.list_of_layer_entry_config
            )
            if not self.list_of_layer_entry_config:
                raise LayerEntryConfigError(
                    "No layer entry left after validation against the service metadata",
                    layer_path=self.geoview_layer_id
                )

            await self._process_entries()
            self._check_cancelled()
            self._create_gv_layers()
        except LayerError as e:
            self._fail_layer(e)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Unexpected failure loading {self.geoview_layer_id}: {e}", exc_info=True)
            self._fail_layer(LayerError(str(e), layer_path=self.geoview_layer_id,
                                        error_code=ErrorCode.UNEXPECTED_ERROR))

        leaf_statuses = [self._layer_status[path] for path in self.leaf_paths() if path in self._layer_status]
        self.status = LayerStatus.LOADED if LayerStatus.LOADED in leaf_statuses else LayerStatus.ERROR
        self.logger.info(
            f"Layer {self.geoview_layer_id} {self.status.value}: "
            f"{len(self.gv_layers)} loaded, {self.count_error_status()} in error"
        )
        self.bus.emit(
            EventType.LAYER_ADDED,
            LayerAddedEvent(geoview_layer_id=self.geoview_layer_id, layer_status=self.status),
            scope=self.scope
        )
        return self.status

    def _fail_layer(self, error: LayerError) -> None:
        """Layer-wide failure: every unsettled path goes to error."""
        self.errors.append(error)
        self.logger.error(f"Layer {self.geoview_layer_id} failed: {error}")
        self.bus.emit(
            EventType.LAYER_ERROR,
            LayerErrorEvent(
                layer_path=self.geoview_layer_id,
                error_code=error.error_code,
                message=error.message,
                details=create_error_response(error.error_code, error.message,
                                              layer_path=self.geoview_layer_id, map_id=self.map_id),
            ),
            scope=self.scope
        )
        # Leaves first so that parents settle from their children
        for layer_path in reversed(list(self._layer_status)):
            if self._layer_status[layer_path] not in (LayerStatus.LOADED, LayerStatus.ERROR):
                self.set_layer_status(layer_path, LayerStatus.ERROR)

    async def _process_entries(self) -> None:
        """Steps 3-5 for every remaining entry."""
        leaves = [entry for entry in iter_entries(self.list_of_layer_entry_config) if not entry.is_group]
        await asyncio.gather(*(self._process_leaf(entry.layer_path) for entry in leaves))

        groups = [entry for entry in iter_entries(self.list_of_layer_entry_config) if entry.is_group]
        for group in reversed(groups):
            if self._layer_status.get(group.layer_path) != LayerStatus.LOADING:
                continue
            children = [
                self.renderables[child.layer_path]
                for child in group.list_of_layer_entry_config
                if child.layer_path in self.renderables
            ]
            if children:
                self.renderables[group.layer_path] = RenderableGroup(
                    layer_path=group.layer_path,
                    children=children,
                    visible=group.initial_settings.states.visible,
                    opacity=group.initial_settings.states.opacity,
                )
                self.set_layer_status(group.layer_path, LayerStatus.PROCESSED)

    async def _process_leaf(self, layer_path: str) -> None:
        try:
            self.validate_layer_entry_config(self._entries[layer_path])
            entry = await self.process_layer_metadata(self._entries[layer_path])
            self._replace_entry(entry)
            self.renderables[layer_path] = await self.process_one_layer_entry(entry)
            self.set_layer_status(layer_path, LayerStatus.PROCESSED)
        except LayerError as e:
            self._set_error(layer_path, e)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Processing of {layer_path} raised: {e}", exc_info=True)
            self._set_error(layer_path, LayerError(str(e), layer_path=layer_path,
                                                   error_code=ErrorCode.PROCESSING_FAILED))

    def _create_gv_layers(self) -> None:
        """Step 6 for every processed leaf."""
        for layer_path in self.leaf_paths():
            if self._layer_status.get(layer_path) != LayerStatus.PROCESSED:
                continue
            try:
                self.gv_layers[layer_path] = self.create_gv_layer(self._entries[layer_path], self.renderables[layer_path])
                self.set_layer_status(layer_path, LayerStatus.LOADED)
            except LayerError as e:
                self._set_error(layer_path, e)

    # ========================================================================
    # STEP 1: SERVICE METADATA
    # ========================================================================

    async def fetch_service_metadata(self) -> Any:
        """
        Fetch the service metadata.

        Metadata-less families return an empty dict.

        Raises:
            MetadataUnavailableError: fetch failed or document is empty
        """
        return {}

    # ========================================================================
    # STEP 2: ENTRY LIST VALIDATION
    # ========================================================================

    def entry_in_metadata(self, entry) -> bool:
        """True when the service metadata lists a leaf entry."""
        return True

    def validate_list_of_layer_entry_config(self, entries: Tuple) -> Tuple:
        """
        Drop entries the service metadata does not know.

        Builds filtered copies; groups left empty are dropped too. Every
        dropped path goes to error.

        Args:
            entries: Entries to check

        Returns:
            Filtered tuple
        """
        kept = []
        for entry in entries:
            if entry.is_group:
                children = self.validate_list_of_layer_entry_config(entry.list_of_layer_entry_config)
                if not children:
                    self._set_error(entry.layer_path, LayerEntryConfigError(
                        "Group has no valid children", layer_path=entry.layer_path
                    ))
                    continue
                if len(children) != len(entry.list_of_layer_entry_config):
                    entry = entry.model_copy(update={'list_of_layer_entry_config': children})
                    self._replace_entry(entry)
                kept.append(entry)
            elif self.entry_in_metadata(entry):
                kept.append(entry)
            else:
                self._set_error(entry.layer_path, LayerEntryConfigError(
                    f"Layer {entry.layer_id} not found in the service metadata",
                    layer_path=entry.layer_path,
                    error_code=ErrorCode.ENTRY_NOT_IN_METADATA
                ))
        return tuple(kept)

    # ========================================================================
    # STEP 3: ENTRY VALIDATION
    # ========================================================================

    def validate_layer_entry_config(self, entry) -> None:
        """
        Structural check of one leaf entry.

        Raises:
            LayerEntryConfigError: entry cannot be used
        """
        settings = entry.initial_settings
        if settings.min_zoom is not None and settings.max_zoom is not None \
                and settings.min_zoom > settings.max_zoom:
            raise LayerEntryConfigError(
                f"minZoom {settings.min_zoom} greater than maxZoom {settings.max_zoom}",
                layer_path=entry.layer_path
            )
        extent = settings.extent
        if extent is not None and (extent[0] >= extent[2] or extent[1] >= extent[3]):
            raise LayerEntryConfigError(f"Invalid extent {list(extent)}", layer_path=entry.layer_path)

    # ========================================================================
    # STEP 4: LAYER METADATA
    # ========================================================================

    async def process_layer_metadata(self, entry):
        """
        Merge server-described attributes into the entry.

        The default only makes featureInfo.queryable explicit.
        """
        return self.merge_layer_metadata(entry)

    def merge_layer_metadata(
        self,
        entry,
        name: Optional[str] = None,
        fields: Optional[List[Tuple[str, Optional[str]]]] = None,
        name_field: Optional[str] = None,
        queryable: Optional[bool] = None,
        extent: Optional[Tuple[float, float, float, float]] = None,
        style: Optional[Dict[str, Any]] = None
    ):
        """
        Copy of an entry with server attributes filled where the user left
        them unset.

        Args:
            entry: Working entry
            name: Server layer name
            fields: (field name, alias) pairs
            name_field: Server display field
            queryable: Server query capability
            extent: Server extent (lon/lat)
            style: Server default renderer

        Returns:
            New entry
        """
        feature_info = entry.source.feature_info or FeatureInfoConfig()
        feature_updates: Dict[str, Any] = {}
        if feature_info.queryable is None:
            feature_updates['queryable'] = True if queryable is None else queryable
        if feature_info.name_field is None and name_field:
            feature_updates['name_field'] = name_field
        if feature_info.out_fields is None and fields:
            feature_updates['out_fields'] = tuple(field_name for field_name, _ in fields)
        if feature_info.aliases is None and fields:
            feature_updates['aliases'] = {field_name: alias or field_name for field_name, alias in fields}

        source: SourceConfig = entry.source.model_copy(
            update={'feature_info': feature_info.model_copy(update=feature_updates)}
        )
        updates: Dict[str, Any] = {'source': source}
        if entry.style is None and style:
            updates['style'] = style
        if entry.initial_settings.extent is None and extent:
            updates['initial_settings'] = entry.initial_settings.model_copy(update={'extent': tuple(extent)})

        merged = entry.model_copy(update=updates)
        self._replace_entry(merged)
        if merged.layer_name is None and name:
            self.set_layer_name(merged.layer_path, name)
            merged = self._entries[merged.layer_path]
        return merged

    # ========================================================================
    # STEP 5: RENDERABLE
    # ========================================================================

    def source_url(self, entry) -> Optional[str]:
        """Data URL of a leaf: its dataAccessPath, else the metadata path."""
        if entry.source.data_access_path is not None:
            url = entry.source.data_access_path.get(self.language)
            if url:
                return url
        return self.metadata_access_path

    async def process_one_layer_entry(self, entry) -> RenderableLayer:
        """Build the renderable of one leaf entry."""
        states = entry.initial_settings.states
        return RenderableLayer(
            layer_path=entry.layer_path,
            source_type=entry.schema_tag.value,
            source_url=self.source_url(entry),
            visible=states.visible,
            opacity=states.opacity,
            min_zoom=entry.initial_settings.min_zoom,
            max_zoom=entry.initial_settings.max_zoom,
            extent=entry.initial_settings.extent,
            style=entry.style,
        )

    # ========================================================================
    # STEP 6: GV LAYER
    # ========================================================================

    def create_gv_layer(self, entry, renderable: RenderableLayer) -> GVLayer:
        """Wrap a renderable with query behavior."""
        return GVLayer(layer_path=entry.layer_path, renderable=renderable, geoview_layer=self)

    # ========================================================================
    # QUERIES
    # ========================================================================

    async def query_features(self, layer_path: str, query_type: QueryType, location: Any = None) -> List[FeatureInfoEntry]:
        """
        Query the features of one loaded leaf.

        Raises:
            LayerQueryError: path not queryable or query failed
        """
        if not self.is_queryable(layer_path):
            raise LayerQueryError("Layer is not queryable", layer_path=layer_path)
        entry = self._entries[layer_path]
        if query_type == QueryType.ALL:
            return await self.get_all_feature_info(entry)
        if query_type in (QueryType.AT_LONG_LAT, QueryType.AT_PIXEL):
            return await self.get_feature_info_at_long_lat(entry, location)
        raise LayerQueryError(f"Query type {query_type} not supported", layer_path=layer_path)

    async def get_feature_info_at_long_lat(self, entry, lonlat: Tuple[float, float]) -> List[FeatureInfoEntry]:
        raise LayerQueryError("Point queries are not supported by this layer type", layer_path=entry.layer_path)

    async def get_all_feature_info(self, entry) -> List[FeatureInfoEntry]:
        raise LayerQueryError("Feature listing is not supported by this layer type", layer_path=entry.layer_path)

    async def query_legend(self, layer_path: str) -> LegendResult:
        """Legend of one leaf (an empty legend by default)."""
        entry = self._entries.get(layer_path)
        if entry is None:
            raise LayerQueryError("Unknown layer path", layer_path=layer_path)
        return LegendResult(layer_path=layer_path, legend_type=entry.schema_tag.value)

    def features_from_records(self, entry, records: List[Dict[str, Any]]) -> List[FeatureInfoEntry]:
        """Wrap (attributes, geometry) records as FeatureInfoEntry objects."""
        feature_info = entry.source.feature_info
        name_field = feature_info.name_field if feature_info else None
        out_fields = feature_info.out_fields if feature_info else None
        features = []
        for index, record in enumerate(records[:QueryDefaults.MAX_FEATURE_COUNT]):
            attributes = record.get('attributes') or {}
            if out_fields:
                attributes = {key: value for key, value in attributes.items() if key in out_fields}
            features.append(FeatureInfoEntry(
                feature_key=index,
                layer_path=entry.layer_path,
                field_info=attributes,
                name_field=name_field,
                geometry=record.get('geometry'),
            ))
        return features

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.geoview_layer_id!r}, status={self.status.value})"
