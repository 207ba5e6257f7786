"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues such as an unreachable
   map service or a malformed layer entry)

Configuration repairs never raise: they are resolved to defaults plus a
diagnostic. The exceptions below cover the layer side, where a failure must be
attached to one layer (or one entry) without stopping the rest of the map.
"""

from typing import Optional

from core.errors import ErrorCode


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These indicate:
    - Wrong types passed to functions
    - Calling a lifecycle step twice
    - Registering a node that has no layer path

    These should NEVER be caught and handled - they indicate bugs
    that need to be fixed in the code.
    """
    pass


class BusinessLogicError(Exception):
    """
    Base class for expected runtime failures.

    These are normal failures that occur during map operation
    and should be handled gracefully without crashing the map.
    """
    pass


class ConfigurationError(BusinessLogicError):
    """
    Viewer configuration error.

    Examples:
        - Schema file missing or not valid JSON
        - Environment variable with an unusable value
    """
    pass


class LayerError(BusinessLogicError):
    """
    Failure attached to one GeoView layer or one of its entries.

    Attributes:
        layer_path: Path of the affected node (root id for layer-wide errors)
        error_code: ErrorCode classifying the failure
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        layer_path: Optional[str] = None,
        error_code: Optional[ErrorCode] = None
    ):
        super().__init__(message)
        self.message = message
        self.layer_path = layer_path
        if error_code is not None:
            self.error_code = error_code

    def __str__(self) -> str:
        if self.layer_path:
            return f"{self.message} (layer: {self.layer_path})"
        return self.message


class MetadataUnavailableError(LayerError):
    """
    Service metadata could not be read.

    Examples:
        - Network failure or HTTP error status
        - Empty capabilities document ('{}')
        - Service answered with an error object
    """

    error_code = ErrorCode.METADATA_UNAVAILABLE


class LayerCancelledError(LayerError):
    """Metadata fetch or query aborted through cancel()."""

    error_code = ErrorCode.CANCELLED


class LayerEntryConfigError(LayerError):
    """
    Layer entry cannot be used.

    Examples:
        - Entry id not listed in the service capabilities
        - Group entry with no children left
        - entryType incompatible with the layer type
    """

    error_code = ErrorCode.INVALID_LAYER_ENTRY


class InvalidGeoviewLayerTypeError(LayerError):
    """Unknown geoviewLayerType / schemaTag discriminator."""

    error_code = ErrorCode.INVALID_LAYER_TYPE


class LayerQueryError(LayerError):
    """Feature or legend query failed for one layer path."""

    error_code = ErrorCode.QUERY_FAILED


class GeoCoreResolutionError(LayerError):
    """
    UUID resolution service failure.

    Examples:
        - Response without reponse.rcs[lang]
        - No layers returned for the requested ids
    """

    error_code = ErrorCode.GEOCORE_UNAVAILABLE
