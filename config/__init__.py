"""
Configuration Package - Defaults and Runtime Settings

Structure:
    config/
    ├── __init__.py              # This file - exports and singleton
    ├── defaults.py              # Default map document and per-projection tables
    ├── viewer_config.py         # Runtime settings from environment
    └── schemas/
        └── map-config-1.0.json  # Versioned map configuration schema

Usage:
    # Singleton pattern (preferred)
    from config import get_config
    config = get_config()
    timeout = config.metadata_timeout_seconds

    # Defaults
    from config import ProjectionDefaults
    ProjectionDefaults.VALID_PROJECTION_CODES

    # Debug output
    from config import debug_config
    info = debug_config()
"""

from typing import Optional

from .defaults import (
    ProjectionDefaults,
    ViewDefaults,
    BasemapDefaults,
    ServiceDefaults,
    QueryDefaults,
    LayerDefaults,
    SchemaDefaults,
    MapDefaults,
    AppDefaults,
)
from .viewer_config import ViewerConfig


# ============================================================================
# SINGLETON PATTERN
# ============================================================================

_config_instance: Optional[ViewerConfig] = None


def get_config() -> ViewerConfig:
    """
    Get global configuration singleton.

    Returns:
        ViewerConfig instance loaded from environment
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = ViewerConfig.from_environment()
    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton (tests change the environment)."""
    global _config_instance
    _config_instance = None


def debug_config() -> dict:
    """
    Get configuration for debugging.

    Returns:
        Dictionary with configuration values
    """
    return get_config().debug_dict()


__all__ = [
    'ProjectionDefaults',
    'ViewDefaults',
    'BasemapDefaults',
    'ServiceDefaults',
    'QueryDefaults',
    'LayerDefaults',
    'SchemaDefaults',
    'MapDefaults',
    'AppDefaults',
    'ViewerConfig',
    'get_config',
    'reset_config',
    'debug_config',
]
