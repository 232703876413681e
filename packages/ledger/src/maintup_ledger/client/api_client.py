"""Async client for the ledger REST API with optional bearer authentication."""

import asyncio
from typing import Any, cast

import httpx
import structlog

from maintup_ledger.config import get_settings
from maintup_ledger.models import COLLECTIONS

logger = structlog.get_logger(__name__)


class LedgerAPIError(Exception):
    """Base exception for ledger API errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class ConnectionFailedError(LedgerAPIError):
    """The API could not be reached (offline, DNS, refused, timeout)."""

    pass


class AuthenticationError(LedgerAPIError):
    """The bearer token was rejected."""

    pass


class NotFoundError(LedgerAPIError):
    """The entity does not exist on the server."""

    pass


class LedgerAPIClient:
    """Async client for the ledger API.

    One method per REST route; no retries here, callers decide how to
    recover from :class:`LedgerAPIError`.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip("/")
        self._token = token if token is not None else settings.token_value()
        self._timeout = timeout or settings.api_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "LedgerAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        """Get request headers with the bearer token when one is configured."""
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    # === Generic Request Methods ===

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
    ) -> Any:
        """Make a request and decode the JSON body (None when empty)."""
        client = await self._get_client()

        try:
            response = await client.request(
                method=method,
                url=path,
                json=json,
                headers=self._get_headers(),
            )
        except httpx.RequestError as e:
            raise ConnectionFailedError(f"Request failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationError("Invalid API token", status_code=401)

        if response.status_code == 404:
            raise NotFoundError(f"Not found: {path}", status_code=404)

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {
                    "raw": response.text[:500] if response.text else "empty response"
                }
            raise LedgerAPIError(
                f"API error: {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        return response.json() if response.content else None

    # === Collection Endpoints ===

    async def list_collection(self, collection: str) -> list[dict[str, Any]]:
        """GET /<collection>."""
        result = await self._request("GET", f"/{collection}")
        if not isinstance(result, list):
            raise LedgerAPIError(f"Invalid {collection} response format", details=result)
        return cast(list[dict[str, Any]], result)

    async def fetch_all(self) -> dict[str, list[dict[str, Any]]]:
        """Fetch the four collections concurrently."""
        results = await asyncio.gather(
            *(self.list_collection(collection) for collection in COLLECTIONS)
        )
        return dict(zip(COLLECTIONS, results, strict=True))

    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        """POST /<collection>; returns the stored entity."""
        result = await self._request("POST", f"/{collection}", json=data)
        if not isinstance(result, dict):
            raise LedgerAPIError(f"Invalid create response for {collection}", details=result)
        logger.debug("entity_created", collection=collection, id=result.get("id"))
        return cast(dict[str, Any], result)

    async def update(
        self, collection: str, entity_id: str, changes: dict[str, Any]
    ) -> dict[str, Any]:
        """PUT /<collection>/<id>; returns the merged entity."""
        result = await self._request("PUT", f"/{collection}/{entity_id}", json=changes)
        if not isinstance(result, dict):
            raise LedgerAPIError(f"Invalid update response for {collection}", details=result)
        return cast(dict[str, Any], result)

    async def delete(self, collection: str, entity_id: str) -> None:
        """DELETE /<collection>/<id>."""
        await self._request("DELETE", f"/{collection}/{entity_id}")

    async def sync(self, document: dict[str, Any]) -> None:
        """POST /sync, replacing the whole server document."""
        await self._request("POST", "/sync", json=document)
        logger.info(
            "document_synced",
            **{c: len(document.get(c) or []) for c in COLLECTIONS},
        )

    async def health(self) -> bool:
        """Probe the API; False when it cannot be reached."""
        try:
            await self._request("GET", "/health")
        except LedgerAPIError:
            return False
        return True

    # === Entity Conveniences ===

    async def list_clients(self) -> list[dict[str, Any]]:
        return await self.list_collection("clients")

    async def list_invoices(self) -> list[dict[str, Any]]:
        return await self.list_collection("invoices")

    async def list_costs(self) -> list[dict[str, Any]]:
        return await self.list_collection("costs")

    async def list_cost_grids(self) -> list[dict[str, Any]]:
        return await self.list_collection("costGrids")

    async def create_client(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.create("clients", data)

    async def create_invoice(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.create("invoices", data)

    async def create_cost(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.create("costs", data)

    async def create_cost_grid(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self.create("costGrids", data)
