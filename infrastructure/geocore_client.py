# ============================================================================
# GEOCORE CLIENT
# ============================================================================
# STATUS: Infrastructure - UUID resolution service
# PURPOSE: Fetch GeoView layer records for catalogue UUIDs
# CREATED: 13 OCT 2026
# EXPORTS: GeoCoreClient
# DEPENDENCIES: httpx, config
# ============================================================================
"""
GeoCore Client.

Calls ``{geocoreUrl}/vcs?lang={lang}&id={uuid,uuid}`` and returns the
decoded JSON. Translation of the response lives in
services.config_readers.uuid_reader.

Usage:
    from infrastructure.geocore_client import GeoCoreClient

    async with GeoCoreClient() as client:
        payload = await client.fetch_vcs(["12acd145-..."], "en")
"""

import json
from typing import Any, List, Optional

import httpx

from config import get_config
from core.errors import ErrorCode
from exceptions import GeoCoreResolutionError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "GeoCoreClient")


class GeoCoreClient:
    """Async client of the GeoCore ``vcs`` endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None
    ):
        config = get_config()
        self.base_url = (base_url or config.geocore_url).rstrip('/')
        self.timeout = timeout or config.metadata_timeout_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)

    async def __aenter__(self) -> 'GeoCoreClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_vcs(self, uuids: List[str], language: str) -> Any:
        """
        Fetch the layer records of one or more UUIDs.

        Args:
            uuids: Catalogue UUIDs
            language: Response language

        Returns:
            Decoded JSON response

        Raises:
            GeoCoreResolutionError: Transport, status or decoding failure
        """
        url = f"{self.base_url}/vcs"
        params = {'lang': language, 'id': ','.join(uuids)}
        logger.info(f"Resolving {len(uuids)} UUID(s) through {url}")

        try:
            response = await self._client.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise GeoCoreResolutionError(
                f"HTTP {e.response.status_code} from GeoCore", layer_path=','.join(uuids),
                error_code=ErrorCode.GEOCORE_UNAVAILABLE
            ) from e
        except httpx.RequestError as e:
            raise GeoCoreResolutionError(
                f"GeoCore request failed: {e}", layer_path=','.join(uuids)
            ) from e
        except json.JSONDecodeError as e:
            raise GeoCoreResolutionError(
                "Invalid JSON response from GeoCore", layer_path=','.join(uuids)
            ) from e
