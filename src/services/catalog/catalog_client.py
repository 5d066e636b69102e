from typing import Any, Dict

import httpx
from pydantic import ValidationError

from src.core.config import Settings, settings as default_settings
from src.flow.exceptions import CollaboratorError
from src.models.schemas.catalog import (
    CatalogFileResponse,
    CatalogListResponse,
    FlowFile,
)
from src.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogClient:
    """HTTP client for the remote catalog and flow persistence service.

    List and read failures come back as ``status=False`` responses; a failed
    persist raises CollaboratorError. Nothing is retried.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or default_settings
        self._client = httpx.AsyncClient(
            base_url=self.settings.CATALOG_API_URL,
            headers=self._headers(),
            timeout=self.settings.CATALOG_REQUEST_TIMEOUT,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "X-API-KEY": self.settings.CATALOG_API_KEY or "",
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        response = await self._client.request(method, url, **kwargs)
        if response.status_code != 200:
            logger.error(f"Catalog request {method} {url} failed: {response.status_code} {response.text}")
            return {"status": False, "message": f"HTTP {response.status_code}"}
        try:
            return response.json()
        except ValueError:
            logger.error(f"Catalog request {method} {url} returned a non-JSON body")
            return {"status": False, "message": "invalid JSON response"}

    async def list_catalog_files(self) -> CatalogListResponse:
        try:
            payload = await self._request("GET", "/list-targets")
            return CatalogListResponse.model_validate(payload)
        except httpx.HTTPError as e:
            logger.error(f"Listing catalog files failed: {e}")
            return CatalogListResponse(status=False, message=str(e))
        except ValidationError as e:
            logger.error(f"Catalog listing has an unexpected shape: {e}")
            return CatalogListResponse(status=False, message=f"unexpected response: {e}")

    async def read_catalog_file(self, path: str) -> CatalogFileResponse:
        try:
            payload = await self._request("POST", "/get-file-content", json={"filePath": path})
            return CatalogFileResponse.model_validate(payload)
        except httpx.HTTPError as e:
            logger.error(f"Reading catalog file {path} failed: {e}")
            return CatalogFileResponse(status=False, message=str(e))
        except ValidationError as e:
            logger.error(f"Catalog file {path} response has an unexpected shape: {e}")
            return CatalogFileResponse(status=False, message=f"unexpected response: {e}")

    async def persist(self, file: FlowFile) -> bool:
        try:
            payload = await self._request("POST", "/upload-flow", json=file.model_dump())
        except httpx.HTTPError as e:
            raise CollaboratorError("persist", f"could not upload {file.name}", e) from e
        if not isinstance(payload, dict):
            raise CollaboratorError("persist", f"unexpected response uploading {file.name}")
        return bool(payload.get("status", payload.get("success", False)))
