"""Durable bridge work queue.

Settlement hands a ``BridgeJob`` to the queue and returns; a single worker
task drives each job through ``BridgeCoordinator.bridge`` with exponential
backoff, parking it in ``dead_letter`` once retries are exhausted.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from .coordinator import BridgeCoordinator
from .errors import BridgeError
from .store import BridgeJobStore, InMemoryBridgeJobStore
from .types import BridgeJob, BridgeResult, BridgeStatus, RetryPolicy, utcnow

logger = logging.getLogger(__name__)


class BridgeQueue:
    """Runs bridge jobs outside the request that created them.

    Args:
        coordinator: Executes the bridge steps.
        store: Job persistence (default: in-memory).
        retry_policy: Backoff and attempt bound.
        poll_interval: Seconds the idle worker waits before looking for due jobs.
        batch_size: Jobs claimed per pass.
    """

    def __init__(
        self,
        coordinator: BridgeCoordinator,
        store: BridgeJobStore | None = None,
        retry_policy: RetryPolicy | None = None,
        poll_interval: float = 1.0,
        batch_size: int = 10,
    ) -> None:
        self._coordinator = coordinator
        self._store = store or InMemoryBridgeJobStore()
        self._retry_policy = retry_policy or RetryPolicy()
        self._poll_interval = poll_interval
        self._batch_size = batch_size
        self._wake = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._stopping = False

    @property
    def store(self) -> BridgeJobStore:
        return self._store

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def enqueue(self, job: BridgeJob) -> BridgeJob:
        """Persist ``job`` and wake the worker.

        Enqueueing the same source settlement twice keeps the first job.
        """
        added = await self._store.add(job)
        if added:
            logger.info(
                "Queued bridge %s -> %s for %s (%s)",
                job.source_chain,
                job.dest_chain,
                job.recipient,
                job.id,
            )
        else:
            logger.info("Bridge job %s already queued", job.id)
        self._wake.set()
        stored = await self._store.get(job.id)
        return stored or job

    async def start(self) -> None:
        """Prepare the store, recover interrupted jobs and start the worker."""
        if self.running:
            return
        await self._store.initialize()
        recovered = await self._store.reset_in_progress()
        if recovered:
            logger.warning("Recovered %d interrupted bridge job(s)", recovered)
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name="bridge-queue-worker")

    async def stop(self) -> None:
        """Stop the worker. Jobs mid-flight are resumed on the next start."""
        self._stopping = True
        self._wake.set()
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self._store.close()

    async def run_once(self) -> int:
        """Claim and process every job currently due. Returns the count."""
        jobs = await self._store.claim_due(utcnow(), self._batch_size)
        for job in jobs:
            await self._process(job)
        return len(jobs)

    async def _run(self) -> None:
        while not self._stopping:
            try:
                processed = await self.run_once()
            except Exception:
                logger.exception("Bridge worker pass failed")
                processed = 0

            if processed:
                continue
            self._wake.clear()
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._wake.wait(), timeout=self._poll_interval)

    async def _process(self, job: BridgeJob) -> None:
        job.attempts += 1

        async def record_initiated(bridge_tx: str) -> None:
            job.bridge_tx = bridge_tx
            job.updated_at = utcnow()
            await self._store.save(job)

        try:
            result = await self._coordinator.bridge(
                job.source_chain,
                job.source_tx,
                job.dest_chain,
                job.asset,
                job.amount,
                job.recipient,
                bridge_tx=job.bridge_tx,
                on_initiated=record_initiated,
            )
        except BridgeError as e:
            await self._handle_failure(job, str(e))
            return
        except Exception as e:
            logger.exception("Unexpected error bridging %s", job.id)
            await self._handle_failure(job, f"{type(e).__name__}: {e}")
            return

        await self._complete(job, result)

    async def _complete(self, job: BridgeJob, result: BridgeResult) -> None:
        job.mark_completed(result)
        await self._store.save(job)
        logger.info(
            "Bridge %s completed: bridge_tx=%s destination_tx=%s",
            job.id,
            result.bridge_tx,
            result.destination_tx,
        )

    async def _handle_failure(self, job: BridgeJob, error: str) -> None:
        if self._retry_policy.exhausted(job.attempts):
            job.mark_dead_letter(error)
            await self._store.save(job)
            logger.error(
                "Bridge %s moved to dead letter after %d attempts: %s",
                job.id,
                job.attempts,
                error,
            )
            return

        delay = self._retry_policy.delay_for(job.attempts)
        job.schedule_retry(error, delay)
        await self._store.save(job)
        logger.warning(
            "Bridge %s attempt %d/%d failed: %s; retrying in %.1fs",
            job.id,
            job.attempts,
            self._retry_policy.max_attempts,
            error,
            delay,
        )

    async def dead_letters(self) -> list[BridgeJob]:
        return await self._store.list_by_status(BridgeStatus.DEAD_LETTER)
