"""Bearer-token REST client for price lookup and thesis persistence."""

from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from ..config.defaults import ApiParams
from ..errors import ApiError
from ..status.models import ItemId

logger = structlog.get_logger(__name__)


class ThesisApiClient:
    """
    REST client for the dashboard backend.

    Implements both the PriceLookupService and ThesisStore interfaces.
    Every failure (non-2xx, transport error, timeout, bad JSON) surfaces
    as ApiError so callers handle them uniformly.
    """

    def __init__(
        self,
        params: Optional[ApiParams] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.params = params or ApiParams()
        self.logger = logger
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.params.base_url,
            timeout=httpx.Timeout(self.params.timeout_seconds),
            headers={"User-Agent": self.params.user_agent},
            transport=transport,
        )

    async def __aenter__(self) -> "ThesisApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        auth_token: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None
    ) -> Any:
        """Send one JSON request and decode the JSON response."""
        headers = {"Content-Type": "application/json"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"

        try:
            response = await self._client.request(method, endpoint, headers=headers, json=payload)

        except httpx.TimeoutException as e:
            self.logger.warning(
                "API request timed out",
                method=method,
                endpoint=endpoint,
                timeout_seconds=self.params.timeout_seconds
            )
            raise ApiError(
                f"Request timed out: {method} {endpoint}",
                context={"endpoint": endpoint}
            ) from e

        except httpx.HTTPError as e:
            self.logger.warning(
                "API network error",
                method=method,
                endpoint=endpoint,
                error=str(e)
            )
            raise ApiError(
                f"Network error: {e}",
                context={"endpoint": endpoint}
            ) from e

        if not response.is_success:
            try:
                details = response.json()
            except ValueError:
                details = {}
            if not isinstance(details, dict):
                details = {}

            message = (
                str(details.get("error") or "")
                or str(details.get("message") or "")
                or f"API Error: {response.status_code}"
            )
            self.logger.warning(
                "API request failed",
                method=method,
                endpoint=endpoint,
                status=response.status_code,
                message=message
            )
            raise ApiError(message, status=response.status_code, details=details)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"Invalid JSON response from {endpoint}",
                status=response.status_code
            ) from e

    async def fetch_last_price(self, symbol: str, auth_token: Optional[str] = None) -> dict[str, Any]:
        """GET /api/stock/price/{symbol}."""
        return await self._request("GET", f"/api/stock/price/{quote(symbol, safe='')}", auth_token)

    async def create(self, auth_token: str, data: dict[str, Any]) -> dict[str, Any]:
        """POST /api/theses."""
        return await self._request("POST", "/api/theses", auth_token, data)

    async def update(self, auth_token: str, item_id: ItemId, data: dict[str, Any]) -> dict[str, Any]:
        """PUT /api/theses/{id}."""
        return await self._request("PUT", f"/api/theses/{item_id}", auth_token, data)

    async def delete(self, auth_token: str, item_id: ItemId) -> dict[str, Any]:
        """DELETE /api/theses/{id}."""
        return await self._request("DELETE", f"/api/theses/{item_id}", auth_token)

    # Defined last: the method name shadows the builtin inside this class body
    async def list(self, auth_token: str) -> list[dict[str, Any]]:
        """GET /api/theses."""
        return await self._request("GET", "/api/theses", auth_token)
