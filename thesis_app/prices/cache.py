"""
Process-wide fallback price cache.

Holds last-known prices for symbols that have no live quote and makes sure
at most one lookup per symbol is in flight. The pending check and the
pending mark happen in the same synchronous step before any await, so no
lock is needed on the single-threaded event loop.
"""

import asyncio
import math
from collections.abc import Callable
from typing import Any, Optional

import structlog

from ..clients.base import PriceLookupService
from ..errors import PriceLookupError

logger = structlog.get_logger(__name__)

PriceListener = Callable[[str, Optional[float]], None]


def symbol_key(symbol: str) -> str:
    """Cache key for a ticker."""
    return str(symbol).strip().upper()


class PriceCache:
    """
    Memoized fallback price lookups with single-flight fetches.

    A failed or non-numeric lookup is cached as None and is terminal for
    the session; only clear() re-enables a retry.
    """

    def __init__(self, lookup: Optional[PriceLookupService] = None):
        self.lookup = lookup
        self.logger = logger
        self.fetch_count = 0                             # Network calls issued
        self._prices: dict[str, Optional[float]] = {}
        self._pending: dict[str, "asyncio.Task[Optional[float]]"] = {}
        self._listeners: list[PriceListener] = []
        self._generation = 0

    async def get_fallback_price(self, symbol: str, auth_token: Optional[str] = None) -> Optional[float]:
        """
        Resolve the fallback price for a symbol.

        Concurrent callers for the same symbol join the in-flight lookup.
        A cancelled caller never cancels the shared lookup.

        Returns:
            The price, or None if the lookup failed this session
        """
        key = symbol_key(symbol)
        if key in self._prices:
            return self._prices[key]

        task = self.request(key, auth_token)
        if task is None:
            return self._prices.get(key)
        return await asyncio.shield(task)

    def request(self, symbol: str, auth_token: Optional[str] = None) -> Optional["asyncio.Task[Optional[float]]"]:
        """
        Start a lookup without awaiting it.

        Returns:
            The in-flight task (new or joined), or None if the symbol is
            already cached
        """
        key = symbol_key(symbol)
        if key in self._prices:
            return None

        task = self._pending.get(key)
        if task is not None:
            return task

        if self.lookup is None:
            raise RuntimeError("PriceCache has no lookup service configured")

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._fetch(key, auth_token, self._generation))
        self._pending[key] = task
        self.fetch_count += 1

        self.logger.debug("Fallback price lookup started", symbol=key)
        return task

    def peek(self, symbol: str) -> tuple[bool, Optional[float]]:
        """Return (cached, price) without triggering a lookup."""
        key = symbol_key(symbol)
        if key in self._prices:
            return True, self._prices[key]
        return False, None

    def is_pending(self, symbol: str) -> bool:
        return symbol_key(symbol) in self._pending

    def add_listener(self, listener: PriceListener) -> None:
        """Register a callback invoked with (symbol, price) after each resolution."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: PriceListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self) -> None:
        """
        Session reset: forget cached prices and failures.

        Lookups still in flight keep running for their joiners, but their
        results are not stored.
        """
        self._generation += 1
        self._prices.clear()
        self._pending.clear()
        self.fetch_count = 0
        self.logger.info("Fallback price cache cleared")

    async def _fetch(self, symbol: str, auth_token: Optional[str], generation: int) -> Optional[float]:
        price: Optional[float] = None
        try:
            try:
                payload = await self.lookup.fetch_last_price(symbol, auth_token)  # type: ignore[union-attr]
                price = self._extract_price(symbol, payload)
            except PriceLookupError as e:
                self.logger.warning(
                    "Fallback price unavailable",
                    symbol=symbol,
                    error=str(e),
                    fallback_strategy=e.fallback_strategy
                )
            except Exception as e:
                self.logger.warning(
                    "Fallback price lookup failed",
                    symbol=symbol,
                    error=str(e),
                    error_type=type(e).__name__
                )

            if generation != self._generation:
                self.logger.debug("Discarding lookup from previous session", symbol=symbol)
                return price

            self._prices[symbol] = price
        finally:
            if self._pending.get(symbol) is asyncio.current_task():
                del self._pending[symbol]

        self._notify(symbol, price)
        return price

    def _extract_price(self, symbol: str, payload: Any) -> float:
        price = payload.get("price") if isinstance(payload, dict) else None
        if isinstance(price, bool) or not isinstance(price, (int, float)) or not math.isfinite(price):
            raise PriceLookupError(f"Non-numeric price for {symbol}: {price!r}", symbol=symbol)
        return float(price)

    def _notify(self, symbol: str, price: Optional[float]) -> None:
        for listener in list(self._listeners):
            try:
                listener(symbol, price)
            except Exception as e:
                self.logger.error(
                    "Price listener failed",
                    symbol=symbol,
                    error=str(e),
                    error_type=type(e).__name__
                )


# Module-level instance for process-wide sharing across coordinators
default_price_cache = PriceCache()
