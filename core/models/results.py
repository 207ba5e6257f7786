"""
Layer-Set Result Models.

A result set maps each layer path to a ResultSetEntry whose ``data`` is
tri-state:

    PENDING  - not yet queried (or a query is in flight)
    None     - queried, failed
    value    - queried, succeeded

A result set is complete only when no participating entry is PENDING.

Exports:
    PENDING: Sentinel for "not yet queried"
    ResultSetEntry: One layer path in a result set
    FeatureInfoEntry: One feature of a feature query
    LegendResult: Legend of one layer path
"""

import copy
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .enums import LayerStatus, QueryStatus


class _Pending:
    """Sentinel type for data that has not been queried yet."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'PENDING'

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


PENDING = _Pending()


@dataclass
class ResultSetEntry:
    """
    One layer path in a layer-set result set.

    Mutated only by the owning layer set.
    """

    layer_path: str
    layer_name: Optional[str] = None
    layer_status: LayerStatus = LayerStatus.NEW_INSTANCE
    data: Any = PENDING
    query_status: Optional[QueryStatus] = None
    is_disabled: bool = False

    @property
    def is_pending(self) -> bool:
        return self.data is PENDING

    def snapshot(self) -> 'ResultSetEntry':
        """Copy handed to consumers so they never hold the live entry."""
        return copy.deepcopy(self)


@dataclass(frozen=True)
class FeatureInfoEntry:
    """One feature returned by a feature query."""

    feature_key: int
    layer_path: str
    field_info: Dict[str, Any]
    name_field: Optional[str] = None
    geometry: Optional[Dict[str, Any]] = None

    @property
    def name(self) -> Optional[str]:
        """Value of the name field, if any."""
        if self.name_field is None:
            return None
        value = self.field_info.get(self.name_field)
        return None if value is None else str(value)


@dataclass(frozen=True)
class LegendResult:
    """
    Legend of one layer path.

    items hold ``{'label': ..., 'image': ...}`` dicts; url is set for
    services that serve a legend image (WMS GetLegendGraphic, static image).
    """

    layer_path: str
    legend_type: str
    items: Tuple[Dict[str, Any], ...] = ()
    url: Optional[str] = None
