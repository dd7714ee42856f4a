"""
Main thesis status coordinator.

Orchestrates the status pipeline: tracked theses and live quotes feed the
status evaluator, symbols without a live quote are resolved through the
fallback price cache, and derived statuses are reconciled with the remote
thesis store.
"""

import asyncio
import dataclasses
import math
from collections.abc import Iterable, Mapping
from typing import Any, Optional

import structlog

from .clients.base import PriceLookupService, Quote, QuoteFeed, ThesisStore
from .config.defaults import DefaultConfig, get_default_config
from .data.normalizer import ThesisNormalizer
from .logging.config import get_status_logger, log_status_change
from .prices.cache import PriceCache, default_price_cache, symbol_key
from .reconcile.reconciler import (
    Reconciler,
    ReconcileResult,
    RemoteSnapshot,
    UpdateState,
    default_update_state,
)
from .status.evaluator import evaluate
from .status.models import (
    EvaluatedThesis,
    Evaluation,
    PriceObservation,
    PriceSource,
    ThesisStatus,
    TrackedItem,
)
from .status.summary import ThesisSummary, summarize
from .utils.time import get_observation_time, utc_now

logger = structlog.get_logger(__name__)
status_logger = get_status_logger(__name__)


def _is_numeric_price(value: Any) -> bool:
    return (isinstance(value, (int, float)) and not isinstance(value, bool)
            and math.isfinite(value))


class ThesisStatusCoordinator:
    """
    Level-triggered coordinator for thesis status.

    Any change to the tracked set, the live quotes or the fallback cache
    re-evaluates every tracked thesis, then schedules one background
    reconciliation. Must be driven from inside a running event loop.
    """

    def __init__(
        self,
        lookup: Optional[PriceLookupService] = None,
        store: Optional[ThesisStore] = None,
        quote_feed: Optional[QuoteFeed] = None,
        auth_token: Optional[str] = None,
        price_cache: Optional[PriceCache] = None,
        update_state: Optional[UpdateState] = None,
        config: Optional[DefaultConfig] = None
    ) -> None:
        """
        Initialize the coordinator and attach to the shared price cache.

        The cache keeps the first lookup service it is given. With the
        process-wide cache that is the first coordinator's lookup; later
        ones are ignored and logged at debug.
        Without any lookup, symbols lacking a live quote are reported as
        price unavailable.
        """
        self.logger = logger
        self.config = config or get_default_config()

        self.price_cache = price_cache if price_cache is not None else default_price_cache
        if lookup is not None:
            if self.price_cache.lookup is None:
                self.price_cache.lookup = lookup
            elif self.price_cache.lookup is not lookup:
                self.logger.debug(
                    "Price cache already has a lookup service, ignoring the given one",
                    lookup_type=type(lookup).__name__
                )
        self.update_state = update_state if update_state is not None else default_update_state

        self.store = store
        self.quote_feed = quote_feed
        self.auth_token = auth_token
        self.normalizer = ThesisNormalizer(self.config.symbols)
        self.reconciler = Reconciler(store, self.update_state, self.normalizer) if store is not None else None

        # Inputs
        self.items: list[TrackedItem] = []
        self.quotes: dict[str, Quote] = {}
        self.snapshot = RemoteSnapshot()

        # Outputs
        self.evaluated: list[EvaluatedThesis] = []
        self.pass_count = 0
        self.last_reconcile: Optional[ReconcileResult] = None

        self.active = True
        self._tracks_remote = False
        self._reconcile_task: Optional["asyncio.Task[None]"] = None
        self._reconcile_requested = False

        self.price_cache.add_listener(self._on_fallback_resolved)

    # Inputs

    def set_items(self, items: Iterable[TrackedItem]) -> list[EvaluatedThesis]:
        """Replace the tracked working set."""
        self.items = list(items)
        return self._on_input_changed("items")

    def update_quotes(self, quotes: Mapping[str, Quote]) -> list[EvaluatedThesis]:
        """Install the latest live quote snapshot."""
        self.quotes = {symbol_key(symbol): quote for symbol, quote in quotes.items()}
        return self._on_input_changed("quotes")

    async def load_remote(self) -> list[TrackedItem]:
        """Load theses from the store as both the working set and the remote snapshot."""
        if self.store is None or not self.auth_token:
            self.logger.debug("No store or token, skipping remote load")
            return self.items

        try:
            records = await self.store.list(self.auth_token)
        except Exception as e:
            self.logger.error(
                "Failed to load theses",
                error=str(e),
                error_type=type(e).__name__
            )
            return self.items

        if not self.active:
            return self.items

        self.snapshot.replace(self.normalizer.normalize_records(records))
        self._tracks_remote = True
        self.set_items(self._working_copies(self.snapshot.items))

        self.logger.info("Loaded theses from store", count=len(self.items))
        return self.items

    async def poll_quotes(self) -> list[EvaluatedThesis]:
        """Pull one live quote snapshot for the tracked symbols."""
        if self.quote_feed is None:
            return self.evaluated

        try:
            quotes = await self.quote_feed.subscribe(self.tracked_symbols())
        except Exception as e:
            self.logger.warning(
                "Live quote refresh failed",
                error=str(e),
                error_type=type(e).__name__
            )
            return self.evaluated

        if not self.active:
            return self.evaluated
        return self.update_quotes(quotes)

    async def run(self, stop_event: asyncio.Event, interval: Optional[float] = None) -> None:
        """Load remote theses, then poll live quotes until stop_event is set."""
        if interval is None:
            interval = self.config.quotes.poll_interval_seconds

        if self.store is not None and not self.snapshot.loaded:
            await self.load_remote()

        while self.active and not stop_event.is_set():
            await self.poll_quotes()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    # Evaluation

    def tracked_symbols(self) -> set[str]:
        return {symbol_key(item.symbol) for item in self.items}

    def resolve_price(self, item: TrackedItem) -> tuple[Optional[PriceObservation], bool, bool]:
        """
        Pick the current price for an item.

        Returns:
            Tuple of (observation, fetching, price_unavailable)
        """
        key = symbol_key(item.symbol)

        quote = self.quotes.get(key)
        if quote is not None and _is_numeric_price(quote.price):
            return PriceObservation(
                symbol=key,
                price=float(quote.price),
                source=PriceSource.LIVE,
                as_of=get_observation_time(quote.as_of)
            ), False, False

        cached, price = self.price_cache.peek(key)
        if cached:
            if price is None:
                return None, False, True
            return PriceObservation(
                symbol=key,
                price=price,
                source=PriceSource.FALLBACK,
                as_of=utc_now()
            ), False, False

        if self.price_cache.lookup is None:
            return None, False, True

        # Resolves in the background; the cache listener triggers the next pass
        self.price_cache.request(key, self.auth_token)
        return None, True, False

    def evaluate_all(self, trigger: str = "manual") -> list[EvaluatedThesis]:
        """Run a full evaluation pass over every tracked item."""
        if not self.active:
            return self.evaluated

        results = [self._evaluate_item(item) for item in self.items]

        self.evaluated = results
        self.pass_count += 1

        self.logger.debug(
            "Evaluation pass complete",
            trigger=trigger,
            items=len(results),
            fetching=sum(1 for r in results if r.fetching),
            pass_count=self.pass_count
        )
        return results

    def _evaluate_item(self, item: TrackedItem) -> EvaluatedThesis:
        observation = None
        fetching = False
        unavailable = False

        try:
            observation, fetching, unavailable = self.resolve_price(item)
            evaluation = evaluate(
                item,
                observation.price if observation else None,
                self.config.review
            )
        except Exception as e:
            self.logger.error(
                "Evaluation failed for thesis",
                symbol=item.symbol,
                item_id=item.id,
                error=str(e),
                error_type=type(e).__name__
            )
            evaluation = Evaluation(status=ThesisStatus.ON_TRACK, degraded=True)

        # Degraded results never replace the last successful status
        if not evaluation.degraded and evaluation.status != item.status:
            log_status_change(
                status_logger,
                symbol=item.symbol,
                item_id=item.id,
                from_status=item.status.value if item.status else None,
                to_status=evaluation.status.value,
                rule=evaluation.rule,
                context={
                    "current_price": observation.price if observation else None,
                    "price_source": observation.source.value if observation else None,
                    "progress_pct": evaluation.progress_pct
                }
            )
            item.status = evaluation.status

        return EvaluatedThesis(
            item=item,
            evaluation=evaluation,
            observation=observation,
            fetching=fetching,
            price_unavailable=unavailable
        )

    def summary(self) -> ThesisSummary:
        """Health summary over the latest pass."""
        return summarize(self.evaluated)

    # Reconciliation

    def schedule_reconcile(self) -> Optional["asyncio.Task[None]"]:
        """
        Start a background reconciliation of the latest pass.

        A running reconciliation is never stacked; a single follow-up pass
        runs after it when inputs changed in the meantime.
        """
        if (not self.active or self.reconciler is None or
                not self.auth_token or not self.snapshot.loaded):
            return None

        if self._reconcile_task is not None and not self._reconcile_task.done():
            self._reconcile_requested = True
            return self._reconcile_task

        self._reconcile_task = asyncio.get_running_loop().create_task(self._run_reconcile())
        return self._reconcile_task

    async def _run_reconcile(self) -> None:
        if self.reconciler is None or not self.auth_token:
            return

        while True:
            self._reconcile_requested = False

            result = await self.reconciler.reconcile(
                self.evaluated,
                self.snapshot,
                self.auth_token,
                is_active=self.is_active
            )
            self.last_reconcile = result

            if not self.active:
                return

            if result.refreshed and self._tracks_remote:
                # Pick up records added or removed remotely; no reconcile from here
                self.items = self._working_copies(self.snapshot.items)
                self.evaluate_all("remote_refresh")

            if not self._reconcile_requested:
                return

    def _working_copies(self, records: Iterable[TrackedItem]) -> list[TrackedItem]:
        """Working-set items are separate objects from the snapshot records."""
        return [dataclasses.replace(record, tags=list(record.tags)) for record in records]

    def _on_input_changed(self, trigger: str) -> list[EvaluatedThesis]:
        evaluated = self.evaluate_all(trigger)
        self.schedule_reconcile()
        return evaluated

    def _on_fallback_resolved(self, symbol: str, price: Optional[float]) -> None:
        if not self.active or symbol not in self.tracked_symbols():
            return
        self._on_input_changed("fallback_price")

    # Lifecycle

    def is_active(self) -> bool:
        return self.active

    def close(self) -> None:
        """Tear down: results resolving after this point are discarded."""
        if not self.active:
            return
        self.active = False
        self.price_cache.remove_listener(self._on_fallback_resolved)
        self.logger.debug("Coordinator closed", items=len(self.items))

    async def aclose(self) -> None:
        """Close and wait for this coordinator's background reconciliation."""
        self.close()
        if self._reconcile_task is not None and not self._reconcile_task.done():
            await self._reconcile_task


def reset_session() -> None:
    """Explicit session reset of the process-wide caches."""
    default_price_cache.clear()
    default_update_state.clear()
    logger.info("Session state reset")
