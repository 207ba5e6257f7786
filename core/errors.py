"""
Error Code Definitions and Classification.

Centralized error code management for layer loading, layer queries and
configuration handling. Every LayerError carries one of these codes so the
notification channel and the logs classify failures the same way.

Key Features:
    - Explicit error codes for all layer failure modes
    - Classification (PERMANENT, TRANSIENT, CANCELLED)
    - Helper function to determine if a failed fetch is worth repeating

Exports:
    ErrorCode: Standardized error codes enum
    ErrorClassification: Error category enum
    is_retryable: Helper to check if error should be retried
    get_error_classification: Lookup for an error code classification
    create_error_response: Build a notification payload dict
"""

from enum import Enum
from typing import Dict, Any


class ErrorCode(str, Enum):
    """
    Standardized error codes for all map core errors.

    These codes travel inside layer errors and notification payloads to give
    consumers an explicit classification for logging and user messages.
    """

    # ========================================================================
    # CONFIGURATION ERRORS - NOT RETRYABLE
    # ========================================================================

    CONFIG_ERROR = "CONFIG_ERROR"  # Configuration error
    CONFIG_UNPARSEABLE = "CONFIG_UNPARSEABLE"  # String config could not be parsed
    INVALID_LAYER_TYPE = "INVALID_LAYER_TYPE"  # Unknown geoviewLayerType / schemaTag
    INVALID_LAYER_ENTRY = "INVALID_LAYER_ENTRY"  # Entry failed structural validation
    DUPLICATE_LAYER_PATH = "DUPLICATE_LAYER_PATH"  # Layer path already registered
    ENTRY_NOT_IN_METADATA = "ENTRY_NOT_IN_METADATA"  # Entry id missing from capabilities

    # ========================================================================
    # SERVICE ERRORS - RETRYABLE
    # ========================================================================

    METADATA_UNAVAILABLE = "METADATA_UNAVAILABLE"  # Fetch failed or capabilities empty
    METADATA_TIMEOUT = "METADATA_TIMEOUT"  # Service did not answer in time
    GEOCORE_UNAVAILABLE = "GEOCORE_UNAVAILABLE"  # UUID service failed
    GEOCORE_EMPTY = "GEOCORE_EMPTY"  # UUID service returned no layers
    QUERY_FAILED = "QUERY_FAILED"  # Feature / legend query failed
    PROCESSING_FAILED = "PROCESSING_FAILED"  # Entry processing raised

    # ========================================================================
    # CANCELLATION
    # ========================================================================

    CANCELLED = "CANCELLED"  # Aborted through cancel()

    # ========================================================================
    # GENERIC ERRORS
    # ========================================================================

    UNKNOWN_ERROR = "UNKNOWN_ERROR"  # Unclassified error
    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"  # Unexpected exception


class ErrorClassification(str, Enum):
    """
    Error classification for retry logic.

    Determines whether a failed layer may be reloaded or should stay failed.
    """

    PERMANENT = "PERMANENT"  # Never retry (bad configuration, won't fix itself)
    TRANSIENT = "TRANSIENT"  # Service issue, reload may succeed
    CANCELLED = "CANCELLED"  # Caller aborted, not a failure of the service


# Error code to classification mapping
_ERROR_CLASSIFICATION: Dict[ErrorCode, ErrorClassification] = {
    # PERMANENT - configuration must be fixed
    ErrorCode.CONFIG_ERROR: ErrorClassification.PERMANENT,
    ErrorCode.CONFIG_UNPARSEABLE: ErrorClassification.PERMANENT,
    ErrorCode.INVALID_LAYER_TYPE: ErrorClassification.PERMANENT,
    ErrorCode.INVALID_LAYER_ENTRY: ErrorClassification.PERMANENT,
    ErrorCode.DUPLICATE_LAYER_PATH: ErrorClassification.PERMANENT,
    ErrorCode.ENTRY_NOT_IN_METADATA: ErrorClassification.PERMANENT,
    ErrorCode.GEOCORE_EMPTY: ErrorClassification.PERMANENT,

    # TRANSIENT - service side
    ErrorCode.METADATA_UNAVAILABLE: ErrorClassification.TRANSIENT,
    ErrorCode.METADATA_TIMEOUT: ErrorClassification.TRANSIENT,
    ErrorCode.GEOCORE_UNAVAILABLE: ErrorClassification.TRANSIENT,
    ErrorCode.QUERY_FAILED: ErrorClassification.TRANSIENT,
    ErrorCode.PROCESSING_FAILED: ErrorClassification.TRANSIENT,

    ErrorCode.CANCELLED: ErrorClassification.CANCELLED,

    # UNKNOWN - Default to transient
    ErrorCode.UNKNOWN_ERROR: ErrorClassification.TRANSIENT,
    ErrorCode.UNEXPECTED_ERROR: ErrorClassification.TRANSIENT,
}


def get_error_classification(error_code: ErrorCode) -> ErrorClassification:
    """
    Get the classification for an error code.

    Args:
        error_code: ErrorCode enum value

    Returns:
        ErrorClassification enum value

    Example:
        >>> get_error_classification(ErrorCode.INVALID_LAYER_TYPE)
        ErrorClassification.PERMANENT
    """
    return _ERROR_CLASSIFICATION.get(error_code, ErrorClassification.TRANSIENT)


def is_retryable(error_code: ErrorCode) -> bool:
    """
    Determine if a layer failing with this code may succeed on reload.

    Args:
        error_code: ErrorCode enum value

    Returns:
        True only for TRANSIENT codes

    Example:
        >>> is_retryable(ErrorCode.METADATA_TIMEOUT)
        True
        >>> is_retryable(ErrorCode.CANCELLED)
        False
    """
    return get_error_classification(error_code) == ErrorClassification.TRANSIENT


def create_error_response(
    error_code: ErrorCode,
    message: str,
    **kwargs: Any
) -> Dict[str, Any]:
    """
    Create a standardized error payload for the notification channel.

    Args:
        error_code: ErrorCode enum value
        message: Developer-facing error message
        **kwargs: Additional fields to include (layer_path, map_id, ...)

    Returns:
        Dict with standardized error structure

    Example:
        >>> create_error_response(
        ...     ErrorCode.METADATA_UNAVAILABLE,
        ...     "Unable to read metadata",
        ...     layer_path="esriLayer/0",
        ... )
    """
    response = {
        "success": False,
        "error_code": error_code.value,
        "error_category": get_error_classification(error_code).value,
        "retryable": is_retryable(error_code),
        "message": message,
    }
    response.update(kwargs)
    return response
