"""
Unified Logger System.

JSON structured logging for the map core. Every component gets a named
logger whose records carry the component type plus the map / layer context
as custom dimensions.

Design Principles:
    - Strong typing with dataclasses (stdlib only)
    - Enum safety for categories
    - Component-specific loggers
    - Clean factory pattern

Exports:
    ComponentType: Enum for component types
    LogLevel: Enum for log levels
    LogContext: Logging context dataclass
    ComponentConfig: Per-component logger settings
    ContextLoggerAdapter: Per-instance context on a shared logger
    JSONFormatter: JSON record formatter
    LoggerFactory: Factory for creating loggers
    log_exceptions: Exception logging decorator

Dependencies:
    Standard library only (logging, enum, dataclasses, json)
"""

from enum import Enum
from typing import Optional, Dict, Any, Union
from datetime import datetime, timezone
from dataclasses import dataclass
import logging
import sys
import os
import json
import traceback
import inspect
from functools import wraps


# ============================================================================
# COMPONENT TYPES - Aligned with the map core layers
# ============================================================================

class ComponentType(Enum):
    """
    Component types of the map core.

    Each component has specific logging needs and levels.
    """
    READER = "reader"          # Config sources (inline, url, uuid)
    VALIDATOR = "validator"    # Config validation / repair
    FACTORY = "factory"        # Layer config node factory
    LAYER = "layer"            # GeoView layer lifecycle
    LAYER_SET = "layer_set"    # Layer-set synchronization
    EVENT_BUS = "event_bus"    # Event dispatch
    ADAPTER = "adapter"        # External HTTP services
    VIEWER = "viewer"          # Map viewer facade


# ============================================================================
# LOG LEVELS - Standard Python levels with enum safety
# ============================================================================

class LogLevel(Enum):
    """
    Standard Python log levels as enum for type safety.
    """
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)

    @classmethod
    def from_string(cls, level: str) -> 'LogLevel':
        """Create from string, case-insensitive."""
        return cls[level.upper()]


# ============================================================================
# LOG CONTEXT - Correlation and tracking
# ============================================================================

@dataclass
class LogContext:
    """
    Context for log correlation across one map instance.

    A layer path already contains the GeoView layer id as its first
    segment, but both are kept so logs can be filtered on either.
    """
    map_id: Optional[str] = None  # Map instance id
    geoview_layer_id: Optional[str] = None  # Root layer id
    layer_path: Optional[str] = None  # Full layer path
    layer_set: Optional[str] = None  # Layer-set name

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'map_id': self.map_id,
                'geoview_layer_id': self.geoview_layer_id,
                'layer_path': self.layer_path,
                'layer_set': self.layer_set,
            }.items() if v is not None
        }


# ============================================================================
# COMPONENT CONFIGURATION - Per-component settings
# ============================================================================

@dataclass
class ComponentConfig:
    """
    Configuration for component-specific logging.

    Each component type can have different settings.
    """
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO
    enable_debug_context: bool = False
    max_message_length: int = 1000


# ============================================================================
# JSON FORMATTER - Structured logging
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs one JSON object per record.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Python LogRecord to format

        Returns:
            JSON string with structured log data
        """
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info) if record.exc_info else None
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# CONTEXT ADAPTER - Per-instance correlation
# ============================================================================

class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Adds one instance's LogContext to every record of a shared logger.

    Loggers are cached by name, so two layers of the same family on one
    map share a logger; each keeps its own adapter.
    """

    def process(self, msg, kwargs):
        extra = kwargs.get('extra') or {}
        custom_dims = dict(self.extra)
        custom_dims.update(extra.get('custom_dimensions') or {})
        kwargs['extra'] = {**extra, 'custom_dimensions': custom_dims}
        return msg, kwargs


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(
            ComponentType.VALIDATOR,
            "ConfigValidator"
        )
        logger.warning("- map: mapOne - Invalid zoom level 40 replaced by 4.5 -")
    """

    # DEBUG_LOGGING=true lowers every component to DEBUG
    _default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    DEFAULT_CONFIGS = {
        ComponentType.READER: ComponentConfig(
            component_type=ComponentType.READER,
            log_level=_default_level
        ),
        ComponentType.VALIDATOR: ComponentConfig(
            component_type=ComponentType.VALIDATOR,
            log_level=_default_level
        ),
        ComponentType.FACTORY: ComponentConfig(
            component_type=ComponentType.FACTORY,
            log_level=_default_level
        ),
        ComponentType.LAYER: ComponentConfig(
            component_type=ComponentType.LAYER,
            log_level=_default_level,
            enable_debug_context=True if _default_level == LogLevel.DEBUG else False
        ),
        ComponentType.LAYER_SET: ComponentConfig(
            component_type=ComponentType.LAYER_SET,
            log_level=_default_level
        ),
        ComponentType.EVENT_BUS: ComponentConfig(
            component_type=ComponentType.EVENT_BUS,
            log_level=_default_level
        ),
        ComponentType.ADAPTER: ComponentConfig(
            component_type=ComponentType.ADAPTER,
            log_level=_default_level
        ),
        ComponentType.VIEWER: ComponentConfig(
            component_type=ComponentType.VIEWER,
            log_level=_default_level
        ),
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        config: Optional[ComponentConfig] = None
    ) -> Union[logging.Logger, ContextLoggerAdapter]:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "LegendsLayerSet")
            context: Optional log context for correlation
            config: Optional custom configuration

        Returns:
            Configured Python logger, wrapped in a ContextLoggerAdapter
            when a context is given
        """
        if config is None:
            config = cls.DEFAULT_CONFIGS.get(
                component_type,
                ComponentConfig(component_type=component_type)
            )

        # Hierarchical logger name; the map id keeps two maps apart
        logger_name = f"{component_type.value}.{name}"
        if context and context.map_id:
            logger_name = f"{logger_name}.{context.map_id}"
        logger = logging.getLogger(logger_name)

        if isinstance(config.log_level, str):
            log_level = LogLevel.from_string(config.log_level).to_python_level()
        else:
            log_level = config.log_level.to_python_level()
        logger.setLevel(log_level)

        # Only one JSON handler per logger name
        has_json_handler = any(
            isinstance(h.formatter, JSONFormatter) for h in logger.handlers
        )
        if not has_json_handler:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(log_level)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        logger.propagate = True

        # Wrap _log once to inject the component as custom dimensions
        if not hasattr(logger, '_context_wrapped'):
            original_log = logger._log

            def log_with_component(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
                """Wrapper to inject the component as custom dimensions."""
                if extra is None:
                    extra = {}

                custom_dims = {
                    'component_type': component_type.value,
                    'component_name': name
                }
                if 'custom_dimensions' in extra:
                    custom_dims.update(extra['custom_dimensions'])

                extra['custom_dimensions'] = custom_dims

                # +1 to account for this wrapper function
                original_log(level, msg, args, exc_info=exc_info, extra=extra,
                             stack_info=stack_info, stacklevel=stacklevel + 1)

            logger._log = log_with_component
            logger._context_wrapped = True

        if context:
            return ContextLoggerAdapter(logger, context.to_dict())
        return logger

    @classmethod
    def create_with_context(
        cls,
        component_type: ComponentType,
        name: str,
        map_id: Optional[str] = None,
        geoview_layer_id: Optional[str] = None,
        layer_path: Optional[str] = None,
        layer_set: Optional[str] = None
    ) -> Union[logging.Logger, ContextLoggerAdapter]:
        """
        Create logger with map / layer context.

        Args:
            component_type: Type of component
            name: Component name
            map_id: Optional map instance id
            geoview_layer_id: Optional root layer id
            layer_path: Optional full layer path
            layer_set: Optional layer-set name

        Returns:
            Configured Python logger with context
        """
        context = LogContext(
            map_id=map_id,
            geoview_layer_id=geoview_layer_id,
            layer_path=layer_path,
            layer_set=layer_set
        ) if any([map_id, geoview_layer_id, layer_path, layer_set]) else None

        return cls.create_logger(
            component_type=component_type,
            name=name,
            context=context
        )


# ============================================================================
# EXCEPTION DECORATOR - Automatic exception logging with context
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Decorator to log exceptions with full context, then re-raise them.

    Works on plain functions and on coroutine functions.

    Args:
        component_type: Optional component type for creating logger
        component_name: Optional component name for creating logger
        logger: Optional existing logger to use

    Returns:
        Decorator function that wraps the target function

    Example:
        @log_exceptions(ComponentType.READER, "UUIDConfigReader")
        async def read(uuids):
            ...
    """
    def _resolve_logger(func) -> logging.Logger:
        if logger:
            return logger
        if component_type and component_name:
            return LoggerFactory.create_logger(component_type, component_name)
        return LoggerFactory.create_logger(ComponentType.VIEWER, func.__module__ or "unknown")

    def _log_failure(log: logging.Logger, func, e: Exception, args, kwargs) -> None:
        log.error(
            f"Exception in {func.__name__}",
            exc_info=True,
            extra={
                'custom_dimensions': {
                    'function_name': func.__name__,
                    'function_module': func.__module__,
                    'exception_type': type(e).__name__,
                    'exception_message': str(e),
                    'function_args': str(args)[:500],
                    'function_kwargs': str(kwargs)[:500],
                    'traceback': traceback.format_exc()
                }
            }
        )

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(_resolve_logger(func), func, e, args, kwargs)
                    raise
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_failure(_resolve_logger(func), func, e, args, kwargs)
                raise
        return wrapper
    return decorator
