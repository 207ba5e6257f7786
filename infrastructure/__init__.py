"""
Infrastructure Package - Lazy Loading.

HTTP adapters of the map core. Imports are deferred until a class is first
accessed so that importing the package does not build configuration or
loggers.

Exports:
    MetadataClient: Service metadata / query fetches (JSON, XML, text)
    GeoCoreClient: UUID resolution service
"""

from typing import TYPE_CHECKING

# For type checking only - doesn't actually import at runtime
if TYPE_CHECKING:
    from .metadata_client import MetadataClient as _MetadataClient
    from .geocore_client import GeoCoreClient as _GeoCoreClient


def __getattr__(name: str):
    """
    Lazy import mechanism - only imports when actually accessed.
    """
    if name == "MetadataClient":
        from .metadata_client import MetadataClient
        return MetadataClient
    elif name == "GeoCoreClient":
        from .geocore_client import GeoCoreClient
        return GeoCoreClient

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "MetadataClient",
    "GeoCoreClient",
]
