"""Tests for the durable bridge queue."""

import asyncio

import pytest

from railbridge.bridge import (
    BridgeConfig,
    BridgeCoordinator,
    BridgeError,
    BridgeJob,
    BridgeQueue,
    BridgeStatus,
    InMemoryBridgeJobStore,
    LiquidityPoolBridgeProvider,
    RetryPolicy,
)
from railbridge.mechanisms.evm import TransactionReceipt, TransactionSubmitter
from railbridge.mechanisms.evm.errors import ChainError

from ...mocks import FakeBridgeProvider, FakeEvmSigner

SOURCE = "eip155:84532"
DEST = "eip155:11155111"
DEST_USDC = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
MERCHANT = "0x209693Bc6afc0C5328bA36FaF03C514EF312287C"

FAST = BridgeConfig(
    source_confirmation_attempts=2,
    source_confirmation_interval=0,
    completion_attempts=3,
    completion_interval=0,
)


def make_job(source_tx="0xsource") -> BridgeJob:
    return BridgeJob(
        source_chain=SOURCE,
        source_tx=source_tx,
        dest_chain=DEST,
        asset=DEST_USDC,
        amount="10000",
        recipient=MERCHANT,
    )


def make_queue(provider, retry_policy=None, store=None) -> BridgeQueue:
    coordinator = BridgeCoordinator(provider, {SOURCE: FakeEvmSigner()}, FAST)
    return BridgeQueue(
        coordinator,
        store=store or InMemoryBridgeJobStore(),
        retry_policy=retry_policy or RetryPolicy(max_attempts=3, base_delay=0, max_delay=0),
        poll_interval=0.01,
    )


class TestRetryPolicy:
    def test_exponential_backoff_capped(self):
        policy = RetryPolicy(max_attempts=5, base_delay=2.0, max_delay=10.0)
        assert [policy.delay_for(n) for n in range(1, 5)] == [2.0, 4.0, 8.0, 10.0]

    def test_exhausted(self):
        policy = RetryPolicy(max_attempts=2)
        assert policy.exhausted(1) is False
        assert policy.exhausted(2) is True


class TestBridgeQueue:
    @pytest.mark.asyncio
    async def test_processes_job_to_completion(self):
        provider = FakeBridgeProvider()
        queue = make_queue(provider)

        job = await queue.enqueue(make_job())
        processed = await queue.run_once()

        stored = await queue.store.get(job.id)
        assert processed == 1
        assert stored.status == BridgeStatus.COMPLETED
        assert stored.bridge_tx == "bridge-1"
        assert stored.dest_tx == "dest-bridge-1"
        assert stored.attempts == 1
        assert provider.initiated[0]["amount"] == 10000
        assert provider.initiated[0]["recipient"] == MERCHANT

    @pytest.mark.asyncio
    async def test_enqueue_is_idempotent_per_source_settlement(self):
        queue = make_queue(FakeBridgeProvider())

        first = await queue.enqueue(make_job())
        second = await queue.enqueue(make_job())

        assert first.id == second.id == f"{SOURCE}:0xsource"
        assert await queue.run_once() == 1
        assert await queue.run_once() == 0

    @pytest.mark.asyncio
    async def test_failed_attempt_is_retried(self):
        provider = FakeBridgeProvider(initiate_errors=[BridgeError("bridge busy")])
        queue = make_queue(provider)
        job = await queue.enqueue(make_job())

        await queue.run_once()
        after_failure = await queue.store.get(job.id)
        assert after_failure.status == BridgeStatus.PENDING
        assert after_failure.attempts == 1
        assert after_failure.last_error == "bridge busy"

        await queue.run_once()
        completed = await queue.store.get(job.id)
        assert completed.status == BridgeStatus.COMPLETED
        assert completed.attempts == 2
        assert completed.last_error is None

    @pytest.mark.asyncio
    async def test_backoff_delays_next_attempt(self):
        provider = FakeBridgeProvider(initiate_errors=[BridgeError("bridge busy")])
        queue = make_queue(provider, RetryPolicy(max_attempts=3, base_delay=60, max_delay=60))
        await queue.enqueue(make_job())

        assert await queue.run_once() == 1
        assert await queue.run_once() == 0

    @pytest.mark.asyncio
    async def test_dead_letter_after_bound(self):
        provider = FakeBridgeProvider(initiate_errors=[BridgeError("no route")] * 3)
        queue = make_queue(provider)
        job = await queue.enqueue(make_job())

        for _ in range(3):
            await queue.run_once()

        dead = await queue.dead_letters()
        assert [d.id for d in dead] == [job.id]
        assert dead[0].status == BridgeStatus.DEAD_LETTER
        assert dead[0].attempts == 3
        assert dead[0].last_error == "no route"
        assert await queue.run_once() == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_counts_as_failed_attempt(self):
        provider = FakeBridgeProvider(initiate_errors=[RuntimeError("boom")])
        queue = make_queue(provider)
        job = await queue.enqueue(make_job())

        await queue.run_once()

        stored = await queue.store.get(job.id)
        assert stored.status == BridgeStatus.PENDING
        assert stored.last_error == "RuntimeError: boom"

    @pytest.mark.asyncio
    async def test_retry_resumes_without_second_initiation(self):
        """A transfer already initiated is polled again, never re-sent."""
        provider = FakeBridgeProvider(pending_polls=3)
        queue = make_queue(provider)
        job = await queue.enqueue(make_job())

        await queue.run_once()
        timed_out = await queue.store.get(job.id)
        assert timed_out.status == BridgeStatus.PENDING
        assert timed_out.bridge_tx == "bridge-1"

        await queue.run_once()
        completed = await queue.store.get(job.id)
        assert completed.status == BridgeStatus.COMPLETED
        assert completed.dest_tx == "dest-bridge-1"
        assert len(provider.initiated) == 1

    @pytest.mark.asyncio
    async def test_worker_runs_jobs_in_background(self):
        queue = make_queue(FakeBridgeProvider())
        await queue.start()
        try:
            assert queue.running is True
            job = await queue.enqueue(make_job())
            for _ in range(200):
                stored = await queue.store.get(job.id)
                if stored.status == BridgeStatus.COMPLETED:
                    break
                await asyncio.sleep(0.01)
            assert stored.status == BridgeStatus.COMPLETED
        finally:
            await queue.stop()
        assert queue.running is False

    @pytest.mark.asyncio
    async def test_start_recovers_interrupted_jobs(self):
        store = InMemoryBridgeJobStore()
        job = make_job()
        job.status = BridgeStatus.IN_PROGRESS
        await store.add(job)

        queue = make_queue(FakeBridgeProvider(), store=store)
        await queue.start()
        try:
            for _ in range(200):
                stored = await store.get(job.id)
                if stored.status == BridgeStatus.COMPLETED:
                    break
                await asyncio.sleep(0.01)
            assert stored.status == BridgeStatus.COMPLETED
        finally:
            await queue.stop()


class TestPoolReleaseIsNeverResent:
    def setup_method(self):
        self.dest = FakeEvmSigner(read_result=10**12)
        self.provider = LiquidityPoolBridgeProvider({DEST: TransactionSubmitter(self.dest)})
        coordinator = BridgeCoordinator(self.provider, {SOURCE: FakeEvmSigner()}, FAST)
        self.queue = BridgeQueue(
            coordinator,
            retry_policy=RetryPolicy(max_attempts=3, base_delay=0, max_delay=0),
        )

    @pytest.mark.asyncio
    async def test_receipt_failure_after_broadcast_resumes_polling(self):
        self.dest.get_transaction_receipt.side_effect = [
            ChainError("receipt timeout"),
            TransactionReceipt(status=1, block_number=101, tx_hash=f"0x{1:064x}"),
        ]
        job = await self.queue.enqueue(make_job())

        await self.queue.run_once()
        failed = await self.queue.store.get(job.id)
        assert failed.status == BridgeStatus.PENDING
        assert failed.bridge_tx == f"0x{1:064x}"

        await self.queue.run_once()
        completed = await self.queue.store.get(job.id)
        assert completed.status == BridgeStatus.COMPLETED
        assert completed.dest_tx == f"0x{1:064x}"
        assert len(self.dest.sent) == 1
        self.dest.wait_for_transaction_receipt.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reverted_release_is_dead_lettered_not_resent(self):
        self.dest.get_transaction_receipt.side_effect = None
        self.dest.get_transaction_receipt.return_value = TransactionReceipt(
            status=0, block_number=101, tx_hash=f"0x{1:064x}"
        )
        job = await self.queue.enqueue(make_job())

        for _ in range(3):
            await self.queue.run_once()

        dead = await self.queue.store.get(job.id)
        assert dead.status == BridgeStatus.DEAD_LETTER
        assert "reverted" in dead.last_error
        assert len(self.dest.sent) == 1
