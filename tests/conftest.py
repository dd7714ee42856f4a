"""Pytest configuration and shared fixtures."""

import asyncio
import copy
from typing import Any, Callable, Dict, List, Optional

import pytest

from thesis_app.clients.base import Quote
from thesis_app.errors import ApiError
from thesis_app.prices.cache import PriceCache
from thesis_app.reconcile.reconciler import UpdateState
from thesis_app.status.models import TrackedItem


class FakeLookup:
    """Price lookup returning canned prices; unknown symbols fail."""

    def __init__(self, prices: Optional[Dict[str, Any]] = None):
        self.prices = dict(prices or {})
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None

    async def fetch_last_price(self, symbol: str, auth_token: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append(symbol)
        if self.gate is not None:
            await self.gate.wait()
        if symbol not in self.prices:
            raise ApiError("Stock not found", status=404, details={"error": "Stock not found"})
        return {"symbol": symbol, "price": self.prices[symbol]}


class FakeStore:
    """In-memory thesis store recording every call."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None, persist: bool = True):
        self.records = [dict(r) for r in (records or [])]
        self.persist = persist
        self.fail_ids: set = set()
        self.fail_list = False
        self.gate: Optional[asyncio.Event] = None
        self.id_gates: Dict[Any, asyncio.Event] = {}
        self.update_calls: List[tuple] = []
        self.list_calls = 0

    async def list(self, auth_token: str) -> List[Dict[str, Any]]:
        self.list_calls += 1
        if self.fail_list:
            raise ApiError("API Error: 500", status=500)
        return copy.deepcopy(self.records)

    async def update(self, auth_token: str, item_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        self.update_calls.append((item_id, data))
        if self.gate is not None:
            await self.gate.wait()
        if item_id in self.id_gates:
            await self.id_gates[item_id].wait()
        if item_id in self.fail_ids:
            raise ApiError("Thesis update failed", status=500)
        for record in self.records:
            if record["id"] == item_id:
                if self.persist:
                    record.update(data)
                return dict(record)
        raise ApiError("Thesis not found", status=404)

    async def create(self, auth_token: str, data: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(data, id=len(self.records) + 1)
        self.records.append(record)
        return dict(record)

    async def delete(self, auth_token: str, item_id: Any) -> Dict[str, Any]:
        self.records = [r for r in self.records if r["id"] != item_id]
        return {"message": "Thesis deleted"}


class FakeQuoteFeed:
    """Quote feed serving a fixed snapshot."""

    def __init__(self, quotes: Optional[Dict[str, Quote]] = None,
                 on_subscribe: Optional[Callable[[], None]] = None):
        self.quotes = dict(quotes or {})
        self.on_subscribe = on_subscribe
        self.subscriptions: List[set] = []

    async def subscribe(self, symbols: set) -> Dict[str, Quote]:
        self.subscriptions.append(set(symbols))
        if self.on_subscribe is not None:
            self.on_subscribe()
        return {s: q for s, q in self.quotes.items() if s in symbols}


@pytest.fixture
def fake_lookup() -> FakeLookup:
    """Lookup with a few known symbols."""
    return FakeLookup({"AAPL": 160.0, "MSFT": 95.0, "TSLA": 200.0})


@pytest.fixture
def fake_store() -> FakeStore:
    """Store holding two persisted theses."""
    return FakeStore([
        {"id": 1, "symbol": "AAPL", "name": "Apple", "entry": 100, "target": 150,
         "stop": 90, "status": "on-track", "tags": '["tech"]'},
        {"id": 2, "symbol": "MSFT", "name": "Microsoft", "entry": 100, "target": 150,
         "stop": 90, "status": "on-track", "tags": []},
    ])


@pytest.fixture
def price_cache(fake_lookup: FakeLookup) -> PriceCache:
    """Isolated fallback price cache."""
    return PriceCache(fake_lookup)


@pytest.fixture
def update_state() -> UpdateState:
    """Isolated in-flight registry."""
    return UpdateState()


@pytest.fixture
def sample_item() -> TrackedItem:
    """Long thesis: entry 100, target 150, stop 90."""
    return TrackedItem(symbol="AAPL", id=1, entry=100.0, target=150.0, stop=90.0)


@pytest.fixture
def fake_store_factory() -> Callable[..., FakeStore]:
    return FakeStore


@pytest.fixture
def fake_lookup_factory() -> Callable[..., FakeLookup]:
    return FakeLookup


@pytest.fixture
def fake_feed_factory() -> Callable[..., FakeQuoteFeed]:
    return FakeQuoteFeed
