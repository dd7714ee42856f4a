"""Live quote feed that polls the price lookup endpoint."""

import asyncio
import math
import time
from collections.abc import Callable
from typing import Optional

import structlog

from ..config.defaults import QuoteParams
from ..utils.time import utc_now
from .base import PriceLookupService, Quote

logger = structlog.get_logger(__name__)


class PollingQuoteFeed:
    """
    QuoteFeed backed by per-symbol price lookups.

    A snapshot is reused while the requested symbol set is unchanged and
    younger than cache_ttl_seconds. Symbols whose lookup fails are left
    out of the snapshot, so the coordinator falls back for them.
    """

    def __init__(
        self,
        lookup: PriceLookupService,
        params: Optional[QuoteParams] = None,
        auth_token: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.lookup = lookup
        self.params = params or QuoteParams()
        self.auth_token = auth_token
        self.logger = logger
        self._clock = clock
        self._snapshot: dict[str, Quote] = {}
        self._snapshot_key: Optional[str] = None
        self._snapshot_ts = 0.0

    async def subscribe(self, symbols: set[str]) -> dict[str, Quote]:
        """Return the latest quote per symbol, refreshing when stale."""
        symbols_key = ",".join(sorted(symbols))
        if not symbols:
            return {}

        now = self._clock()
        if (self._snapshot_key == symbols_key and
            now - self._snapshot_ts < self.params.cache_ttl_seconds):
            return dict(self._snapshot)

        ordered = sorted(symbols)
        results = await asyncio.gather(*(self._fetch_quote(s) for s in ordered))

        snapshot = {
            symbol: result
            for symbol, result in zip(ordered, results)
            if result is not None
        }
        self._snapshot = snapshot
        self._snapshot_key = symbols_key
        self._snapshot_ts = self._clock()

        self.logger.debug(
            "Refreshed quote snapshot",
            requested=len(ordered),
            received=len(snapshot)
        )
        return dict(snapshot)

    def invalidate(self) -> None:
        """Force the next subscribe to refetch."""
        self._snapshot_key = None

    async def _fetch_quote(self, symbol: str) -> Optional[Quote]:
        try:
            payload = await self.lookup.fetch_last_price(symbol, self.auth_token)
        except Exception as e:
            self.logger.debug("Live quote unavailable", symbol=symbol, error=str(e))
            return None

        price = payload.get("price") if isinstance(payload, dict) else None
        if isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price):
            return None

        return Quote(price=float(price), as_of=utc_now())
