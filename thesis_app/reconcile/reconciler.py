"""
Reconciliation of locally derived thesis status with the remote store.

This module diffs evaluated theses against the last fetched remote
snapshot and writes back only genuine changes, never more than one write
in flight per record.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

import structlog

from ..clients.base import ThesisStore
from ..data.normalizer import ThesisNormalizer
from ..errors import PersistenceError
from ..logging.config import get_reconcile_logger, log_reconcile_write
from ..status.models import EvaluatedThesis, ItemId, ThesisStatus, TrackedItem
from ..utils.time import utc_now

logger = structlog.get_logger(__name__)
reconcile_logger = get_reconcile_logger(__name__)


class UpdateState:
    """Process-wide set of item ids with a remote update in flight."""

    def __init__(self):
        self._in_flight: set[ItemId] = set()

    def is_in_flight(self, item_id: ItemId) -> bool:
        return item_id in self._in_flight

    def try_acquire(self, item_id: ItemId) -> bool:
        """Mark item_id in flight; False if it already was."""
        if item_id in self._in_flight:
            return False
        self._in_flight.add(item_id)
        return True

    def release(self, item_id: ItemId) -> None:
        self._in_flight.discard(item_id)

    def clear(self) -> None:
        self._in_flight.clear()

    def __len__(self) -> int:
        return len(self._in_flight)


class RemoteSnapshot:
    """Last fetched view of the remote thesis store."""

    def __init__(self, items: Optional[list[TrackedItem]] = None):
        self.items: list[TrackedItem] = list(items or [])
        self.loaded_at: Optional[datetime] = utc_now() if items is not None else None
        self.version = 0

    @property
    def loaded(self) -> bool:
        return self.loaded_at is not None

    def replace(self, items: Iterable[TrackedItem]) -> None:
        self.items = list(items)
        self.loaded_at = utc_now()
        self.version += 1

    def find(self, item: TrackedItem) -> Optional[TrackedItem]:
        """Match by id first, then by symbol."""
        if item.id is not None:
            for record in self.items:
                if record.id == item.id:
                    return record
        for record in self.items:
            if record.symbol == item.symbol:
                return record
        return None

    def mark_status(self, item_id: ItemId, status: ThesisStatus) -> None:
        """Record a confirmed write ahead of the next refresh."""
        for record in self.items:
            if record.id == item_id:
                record.status = status
                record.last_known_remote_status = status


@dataclass(frozen=True)
class PendingUpdate:
    """One planned status write."""
    item_id: ItemId
    symbol: str
    from_status: Optional[ThesisStatus]
    to_status: ThesisStatus
    item: TrackedItem = field(compare=False, repr=False)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""
    written: list[ItemId] = field(default_factory=list)
    skipped_in_flight: list[ItemId] = field(default_factory=list)
    skipped_in_sync: list[ItemId] = field(default_factory=list)
    failed: list[ItemId] = field(default_factory=list)
    errors: dict[ItemId, PersistenceError] = field(default_factory=dict)
    refreshed: bool = False

    @property
    def attempted(self) -> int:
        return len(self.written) + len(self.failed)


class Reconciler:
    """Drives idempotent, non-overlapping status writes to the thesis store."""

    def __init__(
        self,
        store: ThesisStore,
        update_state: Optional[UpdateState] = None,
        normalizer: Optional[ThesisNormalizer] = None
    ):
        self.store = store
        self.update_state = update_state if update_state is not None else default_update_state
        self.normalizer = normalizer or ThesisNormalizer()
        self.logger = logger
        self.reconcile_logger = reconcile_logger

    def plan_updates(
        self,
        evaluated: Iterable[Union[EvaluatedThesis, TrackedItem]],
        snapshot: RemoteSnapshot
    ) -> list[PendingUpdate]:
        """
        Diff evaluated status against the snapshot.

        Items without a persisted remote counterpart are ignored, as are
        degraded evaluations. At most one update is planned per remote id.
        """
        updates = []
        planned: set[ItemId] = set()

        for entry in evaluated:
            if isinstance(entry, EvaluatedThesis):
                if entry.evaluation.degraded:
                    continue
                item, status = entry.item, entry.status
            else:
                item, status = entry, entry.status

            if status is None:
                continue

            remote = snapshot.find(item)
            if remote is None or not remote.is_persisted:
                continue
            if remote.id in planned or remote.status == status:
                continue

            planned.add(remote.id)
            updates.append(PendingUpdate(
                item_id=remote.id,
                symbol=item.symbol,
                from_status=remote.status,
                to_status=status,
                item=item
            ))

        return updates

    async def reconcile(
        self,
        evaluated: Iterable[Union[EvaluatedThesis, TrackedItem]],
        snapshot: RemoteSnapshot,
        auth_token: str,
        is_active: Optional[Callable[[], bool]] = None
    ) -> ReconcileResult:
        """
        Write every planned status change once, then refresh the snapshot once.

        Args:
            evaluated: Output of the latest evaluation pass
            snapshot: Remote snapshot; patched on success and refreshed after the batch
            auth_token: Bearer token for the store
            is_active: Liveness check of the owning context; when it turns
                false no further writes or snapshot updates happen

        Returns:
            ReconcileResult describing written, skipped and failed ids
        """
        alive = is_active or (lambda: True)
        result = ReconcileResult()

        for update in self.plan_updates(evaluated, snapshot):
            if not alive():
                self.logger.debug("Owner closed, stopping reconciliation", remaining_id=update.item_id)
                break

            # Another pass may have written this id since the plan was made
            remote = snapshot.find(update.item)
            if remote is not None and remote.status == update.to_status:
                result.skipped_in_sync.append(update.item_id)
                self._log_write(update, "skipped_in_sync")
                continue

            if not self.update_state.try_acquire(update.item_id):
                result.skipped_in_flight.append(update.item_id)
                self._log_write(update, "skipped_in_flight")
                continue

            try:
                await self.store.update(auth_token, update.item_id, {"status": update.to_status.value})

            except Exception as e:
                error = PersistenceError(
                    f"Failed to persist thesis status: {e}",
                    operation="update",
                    target=str(update.item_id),
                    context={"error_type": type(e).__name__}
                )
                result.failed.append(update.item_id)
                result.errors[update.item_id] = error
                self._log_write(update, "failed", {"error": str(e), "error_type": type(e).__name__})

            else:
                result.written.append(update.item_id)
                if alive():
                    snapshot.mark_status(update.item_id, update.to_status)
                    update.item.last_known_remote_status = update.to_status
                self._log_write(update, "written")

            finally:
                self.update_state.release(update.item_id)

        if result.attempted and alive():
            await self._refresh(snapshot, auth_token, result, alive)

        return result

    async def _refresh(
        self,
        snapshot: RemoteSnapshot,
        auth_token: str,
        result: ReconcileResult,
        alive: Callable[[], bool]
    ) -> None:
        """Reload the snapshot once after a batch of writes."""
        try:
            records = await self.store.list(auth_token)
        except Exception as e:
            self.logger.warning(
                "Snapshot refresh after reconciliation failed",
                error=str(e),
                error_type=type(e).__name__
            )
            return

        if not alive():
            return

        snapshot.replace(self.normalizer.normalize_records(records))
        result.refreshed = True

    def _log_write(self, update: PendingUpdate, outcome: str, context: Optional[dict] = None) -> None:
        log_reconcile_write(
            self.reconcile_logger,
            item_id=update.item_id,
            symbol=update.symbol,
            from_status=update.from_status.value if update.from_status else None,
            to_status=update.to_status.value,
            outcome=outcome,
            context=context
        )


# Module-level instance for process-wide sharing across coordinators
default_update_state = UpdateState()
