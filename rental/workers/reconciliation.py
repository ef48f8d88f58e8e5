"""
Background Reconciliation Worker
================================

Runs every ``RECONCILIATION_INTERVAL_SECONDS`` (default once per day).

Passes per run (strictly in this order)
---------------------------------------
1. **Ageing** -- every ONGOING contract whose ``end_date`` is before now
   becomes OVERDUE.
2. **Blocking** -- every OVERDUE contract that ends after a PENDING
   contract on the same vehicle starts is CANCELLED.  The overdue contract
   is the one cancelled, never the pending one: the newer commitment wins
   over the stale one.

Step 2 reads the effects of step 1, so a contract aged in this run can be
cancelled in the same run.

Concurrency safety
------------------
* Single-flight: an in-process lock, plus the Redis distributed lock when
  ``reconciliation_lock_backend == "redis"``.  A run that cannot take the
  lock is skipped, not queued.
* Every mutation goes through ``ContractService.change_status`` and
  therefore through the state machine and the per-contract row lock.

Failure semantics
-----------------
Best effort per contract: an error is logged and the pass moves on.  The
next run re-evaluates anything left behind.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rental.domain.clock import SystemClock
from rental.domain.events import ContractCancelled, ContractOverdue
from rental.domain.exceptions import RentalError
from rental.infrastructure.events import EventPublisher, LoggingEventPublisher
from rental.infrastructure.locks import DistributedLock, LocalLock
from rental.infrastructure.repositories import ContractRepository
from rental.services.contracts import ContractService

logger = logging.getLogger(__name__)

LOCK_NAME = "contract_reconciliation"


@dataclass
class ReconciliationReport:
    overdue_ids: list[int] = field(default_factory=list)
    cancelled_ids: list[int] = field(default_factory=list)
    failed_ids: list[int] = field(default_factory=list)
    skipped: bool = False


class ReconciliationScheduler:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        contracts: ContractService,
        clock=None,
        publisher: Optional[EventPublisher] = None,
        redis: Optional[aioredis.Redis] = None,
        interval_seconds: int = 86400,
        lock_ttl_seconds: int = 300,
    ):
        self.session_factory = session_factory
        self.contracts = contracts
        self.clock = clock or SystemClock()
        self.publisher = publisher or LoggingEventPublisher()
        self.redis = redis
        self.interval_seconds = interval_seconds
        self.lock_ttl_seconds = lock_ttl_seconds

        self._local_lock = LocalLock()
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    # ── Loop control ──────────────────────────────────────────────────

    async def start(self) -> None:
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Reconciliation worker started (interval=%ds)", self.interval_seconds
        )

    async def stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Reconciliation worker stopped")

    async def _loop(self) -> None:
        """Periodic loop: run a reconciliation then sleep."""
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Unhandled error in reconciliation run")
            # Wait for the interval or until stop is signalled
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.interval_seconds
                )
                break
            except asyncio.TimeoutError:
                pass  # next run

    # ── One run ───────────────────────────────────────────────────────

    async def run_once(self) -> ReconciliationReport:
        """Execute both passes once, unless another run holds the lock."""
        if not await self._local_lock.acquire():
            logger.debug("Reconciliation already running in this process - skipping")
            return ReconciliationReport(skipped=True)

        try:
            distributed = (
                DistributedLock(self.redis, LOCK_NAME, ttl_seconds=self.lock_ttl_seconds)
                if self.redis is not None
                else None
            )
            if distributed is not None and not await distributed.acquire():
                logger.debug("Lock held by another worker - skipping run")
                return ReconciliationReport(skipped=True)
            try:
                return await self._run_passes()
            finally:
                if distributed is not None:
                    await distributed.release()
        finally:
            await self._local_lock.release()

    async def _run_passes(self) -> ReconciliationReport:
        logger.info("Reconciliation run started")
        report = ReconciliationReport()
        await self.age_overdue_contracts(report)
        await self.cancel_blocking_contracts(report)
        logger.info(
            "Reconciliation run finished: %d overdue, %d cancelled, %d failed",
            len(report.overdue_ids),
            len(report.cancelled_ids),
            len(report.failed_ids),
        )
        return report

    # ── Pass 1: ageing ────────────────────────────────────────────────

    async def age_overdue_contracts(
        self, report: Optional[ReconciliationReport] = None
    ) -> list[int]:
        """ONGOING contracts whose end date has passed become OVERDUE."""
        report = report if report is not None else ReconciliationReport()
        now = self.clock.now()
        async with self.session_factory() as session:
            rows = await ContractRepository(session).get_ongoing_ended_before(now)
            candidates = [row.to_entity() for row in rows]

        if not candidates:
            logger.debug("No overdue contract detected")
            return []

        logger.warning("Processing %d overdue contract(s)", len(candidates))
        aged: list[int] = []
        for contract in candidates:
            changed = await self._apply(
                self.contracts.mark_overdue, contract.id, report
            )
            if changed is None:
                continue
            aged.append(contract.id)
            report.overdue_ids.append(contract.id)
            await self.publisher.publish(
                ContractOverdue(
                    contract_id=changed.id,
                    vehicle_id=changed.vehicle_id,
                    client_id=changed.client_id,
                    end_date=changed.end_date,
                    occurred_at=now,
                )
            )
        return aged

    # ── Pass 2: blocking conflicts ────────────────────────────────────

    async def cancel_blocking_contracts(
        self, report: Optional[ReconciliationReport] = None
    ) -> list[int]:
        """Cancel OVERDUE contracts that overlap a PENDING one on their vehicle."""
        report = report if report is not None else ReconciliationReport()
        async with self.session_factory() as session:
            pairs = await ContractRepository(session).get_overdue_blocking_pending()
            # First blocked pending contract per overdue contract
            blockers: dict[int, tuple[int, int]] = {}
            for overdue, pending in pairs:
                blockers.setdefault(overdue.id, (overdue.vehicle_id, pending.id))

        if not blockers:
            logger.debug("No overdue contract blocking a pending one")
            return []

        logger.warning(
            "Processing %d overdue contract(s) blocking pending contracts",
            len(blockers),
        )
        cancelled: list[int] = []
        for overdue_id, (vehicle_id, pending_id) in blockers.items():
            logger.warning(
                "Cancelling overdue contract %d: it prevents pending contract %d "
                "from starting on vehicle %d",
                overdue_id, pending_id, vehicle_id,
            )
            changed = await self._apply(self.contracts.cancel, overdue_id, report)
            if changed is None:
                continue
            cancelled.append(overdue_id)
            report.cancelled_ids.append(overdue_id)
            await self.publisher.publish(
                ContractCancelled(
                    contract_id=overdue_id,
                    vehicle_id=vehicle_id,
                    reason="overdue contract blocking a pending contract",
                    occurred_at=self.clock.now(),
                    blocked_contract_id=pending_id,
                )
            )
        return cancelled

    # ── Internals ─────────────────────────────────────────────────────

    async def _apply(
        self,
        operation: Callable[[int], Awaitable],
        contract_id: int,
        report: ReconciliationReport,
    ):
        """Run one per-contract mutation; log and record failures."""
        try:
            return await operation(contract_id)
        except RentalError as exc:
            logger.warning(
                "Reconciliation skipped contract %d: %s", contract_id, exc.message
            )
        except Exception:
            logger.exception("Error reconciling contract %d", contract_id)
        report.failed_ids.append(contract_id)
        return None
