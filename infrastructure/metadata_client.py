# ============================================================================
# SERVICE METADATA CLIENT
# ============================================================================
# STATUS: Infrastructure - HTTP access to map services
# PURPOSE: Fetch service metadata, capabilities and query responses
# CREATED: 13 OCT 2026
# EXPORTS: MetadataClient
# DEPENDENCIES: httpx, config
# ============================================================================
"""
Service Metadata Client.

Async HTTP access to ESRI REST, OGC and file-based map services. Every
failure (transport, timeout, HTTP status, undecodable or empty body, ESRI
error object) becomes a typed LayerError; callers never see an empty
result standing in for a failure.

Usage:
    from infrastructure.metadata_client import MetadataClient

    async with MetadataClient() as client:
        metadata = await client.fetch_json(f"{url}?f=json", layer_path="esriLayer")
        capabilities = await client.fetch_xml(url, params={'service': 'WMS', 'request': 'GetCapabilities'})

Tests pass an ``httpx.AsyncClient`` built on ``httpx.MockTransport``.
"""

import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, Optional, Type

import httpx

from config import get_config
from core.errors import ErrorCode
from exceptions import LayerError, LayerQueryError, MetadataUnavailableError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "MetadataClient")


class MetadataClient:
    """
    Thin wrapper over ``httpx.AsyncClient``.

    The client owns the underlying AsyncClient only when it created it.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        query_timeout: Optional[float] = None
    ):
        self.timeout = timeout or get_config().metadata_timeout_seconds
        self.query_timeout = query_timeout or get_config().query_timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)

    async def __aenter__(self) -> 'MetadataClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    # ========================================================================
    # REQUESTS
    # ========================================================================

    async def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]],
        layer_path: Optional[str],
        error_class: Type[LayerError]
    ) -> httpx.Response:
        timeout = self.query_timeout if issubclass(error_class, LayerQueryError) else self.timeout
        logger.debug(f"GET {url} params={params} timeout={timeout}")
        try:
            response = await self._client.get(url, params=params, timeout=timeout)
            response.raise_for_status()
            return response
        except httpx.TimeoutException as e:
            raise error_class(
                f"Request timeout for {url}", layer_path=layer_path,
                error_code=ErrorCode.METADATA_TIMEOUT if error_class is MetadataUnavailableError else None
            ) from e
        except httpx.HTTPStatusError as e:
            raise error_class(f"HTTP {e.response.status_code} from {url}", layer_path=layer_path) from e
        except httpx.RequestError as e:
            raise error_class(f"Request error for {url}: {e}", layer_path=layer_path) from e

    async def fetch_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        layer_path: Optional[str] = None,
        error_class: Type[LayerError] = MetadataUnavailableError,
        allow_empty: bool = False
    ) -> Any:
        """
        GET a JSON document.

        Args:
            url: Request URL
            params: Query parameters
            layer_path: Layer the request is made for (error context)
            error_class: LayerError subclass raised on failure
            allow_empty: Accept ``{}`` / ``[]`` as a valid answer

        Returns:
            Decoded JSON

        Raises:
            error_class: Transport, status, decoding, empty or ESRI error
        """
        response = await self._get(url, params, layer_path, error_class)
        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise error_class(f"Invalid JSON response from {url}", layer_path=layer_path) from e

        if isinstance(data, dict) and 'error' in data and isinstance(data['error'], dict):
            message = data['error'].get('message', 'service error')
            raise error_class(f"Service error from {url}: {message}", layer_path=layer_path)
        if not allow_empty and not data:
            raise error_class(f"Empty response from {url}", layer_path=layer_path)
        return data

    async def fetch_xml(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        layer_path: Optional[str] = None,
        error_class: Type[LayerError] = MetadataUnavailableError
    ) -> ET.Element:
        """
        GET an XML document (capabilities).

        Returns:
            Root element

        Raises:
            error_class: Transport, status or parse failure
        """
        response = await self._get(url, params, layer_path, error_class)
        try:
            return ET.fromstring(response.text)
        except ET.ParseError as e:
            raise error_class(f"Invalid XML response from {url}", layer_path=layer_path) from e

    async def fetch_text(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        layer_path: Optional[str] = None,
        error_class: Type[LayerError] = MetadataUnavailableError
    ) -> str:
        """GET a text document (CSV)."""
        response = await self._get(url, params, layer_path, error_class)
        return response.text
