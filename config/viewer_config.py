"""
Viewer Configuration.

Runtime settings of the map core (service URLs, HTTP timeouts, hover
debounce, debug switches) loaded from the environment. This is distinct from
the map features configuration, which is user content validated per map.

Exports:
    ViewerConfig: Pydantic runtime settings model
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field, ConfigDict, field_validator

from .defaults import AppDefaults, QueryDefaults, SchemaDefaults, ServiceDefaults


class ViewerConfig(BaseModel):
    """
    Runtime settings for the map core.

    Every field has a safe default; nothing here is required to run.
    """

    model_config = ConfigDict(extra='ignore', frozen=True)

    # ========================================================================
    # Core Application Settings
    # ========================================================================

    debug_mode: bool = Field(
        default=AppDefaults.DEBUG_MODE,
        description="Enable debug mode (full payload dumps in diagnostics). "
                    "Set DEBUG_MODE=true in environment to enable."
    )

    environment: str = Field(
        default=AppDefaults.ENVIRONMENT,
        description="Environment name (dev, qa, prod)"
    )

    log_level: str = Field(
        default=AppDefaults.LOG_LEVEL,
        description="Root log level"
    )

    # ========================================================================
    # External Services
    # ========================================================================

    geocore_url: str = Field(
        default=ServiceDefaults.GEOCORE_URL,
        description="Base URL of the GeoCore UUID resolution service"
    )

    metadata_timeout_seconds: float = Field(
        default=ServiceDefaults.METADATA_TIMEOUT_SECONDS,
        gt=0,
        le=300,
        description="Timeout for service metadata / capabilities requests"
    )

    query_timeout_seconds: float = Field(
        default=ServiceDefaults.QUERY_TIMEOUT_SECONDS,
        gt=0,
        le=300,
        description="Timeout for feature and legend queries"
    )

    # ========================================================================
    # Queries
    # ========================================================================

    hover_debounce_ms: int = Field(
        default=QueryDefaults.HOVER_DEBOUNCE_MS,
        ge=0,
        le=5000,
        description="Delay before a hover query is sent"
    )

    schema_path: str = Field(
        default=str(Path(__file__).parent / SchemaDefaults.SCHEMA_PATH),
        description="Path of the versioned map configuration JSON Schema"
    )

    @field_validator('geocore_url')
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip('/')

    @field_validator('log_level')
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    def debug_dict(self) -> dict:
        """Configuration as a plain dict for diagnostics."""
        return self.model_dump()

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def from_environment(cls):
        """Load settings from environment."""
        return cls(
            debug_mode=os.environ.get("DEBUG_MODE", str(AppDefaults.DEBUG_MODE).lower()).lower() == "true",
            environment=os.environ.get("ENVIRONMENT", AppDefaults.ENVIRONMENT),
            log_level=os.environ.get("LOG_LEVEL", AppDefaults.LOG_LEVEL),
            geocore_url=os.environ.get("GEOCORE_URL", ServiceDefaults.GEOCORE_URL),
            metadata_timeout_seconds=float(os.environ.get(
                "METADATA_TIMEOUT_SECONDS", str(ServiceDefaults.METADATA_TIMEOUT_SECONDS))),
            query_timeout_seconds=float(os.environ.get(
                "QUERY_TIMEOUT_SECONDS", str(ServiceDefaults.QUERY_TIMEOUT_SECONDS))),
            hover_debounce_ms=int(os.environ.get(
                "HOVER_DEBOUNCE_MS", str(QueryDefaults.HOVER_DEBOUNCE_MS))),
        )
