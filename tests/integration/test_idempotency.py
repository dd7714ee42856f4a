"""Integration tests for idempotent price lookups and status writes across the full pipeline."""

import asyncio
import json
from collections import Counter

import httpx

from thesis_app.clients.http_client import ThesisApiClient
from thesis_app.clients.quote_feed import PollingQuoteFeed
from thesis_app.config.defaults import ApiParams, QuoteParams
from thesis_app.engine import ThesisStatusCoordinator
from thesis_app.prices.cache import PriceCache
from thesis_app.reconcile.reconciler import UpdateState
from thesis_app.status.models import PriceSource, ThesisStatus


class FakeBackend:
    """In-memory dashboard backend behind an httpx mock transport."""

    def __init__(self, records, prices):
        self.records = {r["id"]: dict(r) for r in records}
        self.prices = dict(prices)
        self.requests = Counter()
        self.put_gate = None
        self.in_flight_puts = Counter()
        self.max_in_flight_puts = 0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests[(request.method, path)] += 1

        if request.headers.get("Authorization") != "Bearer tok":
            return httpx.Response(401, json={"error": "Access token required"})

        if path.startswith("/api/stock/price/"):
            symbol = path.rsplit("/", 1)[-1]
            if symbol not in self.prices:
                return httpx.Response(404, json={"error": "Stock not found"})
            return httpx.Response(200, json={"symbol": symbol, "price": self.prices[symbol]})

        if path == "/api/theses" and request.method == "GET":
            return httpx.Response(200, json=list(self.records.values()))

        if path.startswith("/api/theses/") and request.method == "PUT":
            item_id = int(path.rsplit("/", 1)[-1])
            self.in_flight_puts[item_id] += 1
            self.max_in_flight_puts = max(self.max_in_flight_puts, self.in_flight_puts[item_id])
            try:
                if self.put_gate is not None:
                    await self.put_gate.wait()
                self.records[item_id].update(json.loads(request.content))
            finally:
                self.in_flight_puts[item_id] -= 1
            return httpx.Response(200, json=self.records[item_id])

        return httpx.Response(404, json={"error": "Not found"})

    def puts(self, item_id):
        return self.requests[("PUT", f"/api/theses/{item_id}")]


RECORDS = [
    {"id": 1, "symbol": "AAPL", "entry": 100, "target": 150, "stop": 90, "status": "on-track"},
    {"id": 2, "symbol": "MSFT", "entry": 100, "target": 150, "stop": 90, "status": "on-track"},
    {"id": 3, "symbol": "GONE", "entry": 100, "target": 150, "stop": 90, "status": "needs-review"},
]


async def settle(*coordinators):
    for _ in range(50):
        await asyncio.sleep(0)
        for coordinator in coordinators:
            task = coordinator._reconcile_task
            if task is not None and not task.done():
                await task


class TestFullPipelineIdempotency:
    """Test idempotency across the full evaluation pipeline."""

    def setup_method(self):
        """Set up a backend, shared caches and a client."""
        self.backend = FakeBackend(RECORDS, {"AAPL": 160.0, "MSFT": 95.0})
        self.price_cache = PriceCache()
        self.update_state = UpdateState()

    def make_client(self) -> ThesisApiClient:
        return ThesisApiClient(
            ApiParams(base_url="http://api.test"),
            transport=httpx.MockTransport(self.backend.handler)
        )

    def make_coordinator(self, client, feed=None) -> ThesisStatusCoordinator:
        return ThesisStatusCoordinator(
            lookup=client,
            store=client,
            quote_feed=feed,
            auth_token="tok",
            price_cache=self.price_cache,
            update_state=self.update_state
        )

    def test_repeated_passes_write_once(self):
        """Test that many passes produce one lookup per symbol and one write per change."""
        async def scenario():
            async with self.make_client() as client:
                coordinator = self.make_coordinator(client)
                await coordinator.load_remote()
                await settle(coordinator)

                for _ in range(5):
                    coordinator.evaluate_all()
                    coordinator.schedule_reconcile()
                    await settle(coordinator)

                await coordinator.aclose()
                return coordinator

        coordinator = asyncio.run(scenario())

        assert self.backend.requests[("GET", "/api/stock/price/AAPL")] == 1
        assert self.backend.requests[("GET", "/api/stock/price/MSFT")] == 1
        assert self.backend.requests[("GET", "/api/stock/price/GONE")] == 1
        assert self.backend.puts(1) == 1
        assert self.backend.puts(2) == 1
        assert self.backend.puts(3) == 0

        assert self.backend.records[1]["status"] == "achieved"
        assert self.backend.records[2]["status"] == "needs-review"
        by_symbol = {e.symbol: e for e in coordinator.evaluated}
        assert by_symbol["AAPL"].observation.source == PriceSource.FALLBACK
        assert by_symbol["GONE"].price_unavailable is True
        assert by_symbol["GONE"].status == ThesisStatus.NEEDS_REVIEW

    def test_two_coordinators_share_lookups_and_never_overlap_writes(self):
        """Test two views over one account."""
        async def scenario():
            self.backend.put_gate = asyncio.Event()
            async with self.make_client() as client:
                first = self.make_coordinator(client)
                second = self.make_coordinator(client)

                await first.load_remote()
                await second.load_remote()
                for _ in range(10):
                    await asyncio.sleep(0)

                self.backend.put_gate.set()
                await settle(first, second)

                await first.aclose()
                await second.aclose()

        asyncio.run(scenario())

        assert self.backend.requests[("GET", "/api/stock/price/AAPL")] == 1
        assert self.backend.max_in_flight_puts == 1
        assert self.backend.records[1]["status"] == "achieved"
        assert len(self.update_state) == 0

    def test_live_quotes_skip_fallback(self):
        """Test that symbols with live quotes never hit the fallback cache."""
        async def scenario():
            async with self.make_client() as client:
                feed = PollingQuoteFeed(client, QuoteParams(cache_ttl_seconds=60), auth_token="tok")
                coordinator = self.make_coordinator(client, feed)
                coordinator.update_quotes(await feed.subscribe({"AAPL", "MSFT"}))
                await coordinator.load_remote()
                await settle(coordinator)
                await coordinator.aclose()
                return coordinator

        coordinator = asyncio.run(scenario())

        by_symbol = {e.symbol: e for e in coordinator.evaluated}
        assert by_symbol["AAPL"].observation.source == PriceSource.LIVE
        assert self.price_cache.peek("AAPL") == (False, None)
        assert self.backend.requests[("GET", "/api/stock/price/AAPL")] == 1
        assert self.backend.puts(1) == 1
