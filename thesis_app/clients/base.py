"""Collaborator interfaces consumed by the engine."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Protocol

from ..status.models import ItemId


@dataclass(frozen=True)
class Quote:
    """Latest live quote for one symbol."""
    price: Any                                       # Validated by the consumer
    as_of: Optional[datetime] = None


class QuoteFeed(Protocol):
    """Live quote source. The engine only consumes the latest snapshot."""

    async def subscribe(self, symbols: set[str]) -> dict[str, Quote]:
        """Return the latest quote per symbol; missing symbols have no live quote."""
        ...


class PriceLookupService(Protocol):
    """On-demand last-known price lookup."""

    async def fetch_last_price(self, symbol: str, auth_token: Optional[str] = None) -> dict[str, Any]:
        """Return a payload with a numeric "price" or raise."""
        ...


class ThesisStore(Protocol):
    """Remote thesis persistence."""

    async def list(self, auth_token: str) -> list[dict[str, Any]]:
        ...

    async def update(self, auth_token: str, item_id: ItemId, data: dict[str, Any]) -> dict[str, Any]:
        ...

    async def create(self, auth_token: str, data: dict[str, Any]) -> dict[str, Any]:
        ...

    async def delete(self, auth_token: str, item_id: ItemId) -> dict[str, Any]:
        ...
