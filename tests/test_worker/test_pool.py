"""Tests for CheckWorker — bounded concurrency, failure reporting, graceful stop."""

from __future__ import annotations

import asyncio

import pytest

from pulsewatch.core.exceptions import StoreError
from pulsewatch.worker.pool import CheckWorker
from pulsewatch.worker.queue import CheckJob, InMemoryJobQueue

# ── Helpers ─────────────────────────────────────────────────────


class FakeConsumer:
    """Stands in for CheckConsumer; tracks how many jobs run at once."""

    def __init__(self, delay: float = 0.0, fail_for: set[str] | None = None) -> None:
        self.delay = delay
        self.fail_for = fail_for or set()
        self.active = 0
        self.max_active = 0
        self.done: list[str] = []

    async def process(self, job: CheckJob) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if job.monitor_id in self.fail_for:
                raise StoreError("db down")
            self.done.append(job.monitor_id)
        finally:
            self.active -= 1


async def _run_all(
    consumer: FakeConsumer,
    monitor_ids: list[str],
    concurrency: int = 10,
    queue: InMemoryJobQueue | None = None,
) -> tuple[CheckWorker, InMemoryJobQueue]:
    queue = queue or InMemoryJobQueue()
    for mid in monitor_ids:
        await queue.enqueue(mid)
    queue.close()
    worker = CheckWorker(queue, consumer, concurrency=concurrency)  # type: ignore[arg-type]
    await worker.start()
    await asyncio.wait_for(worker.wait_closed(), timeout=5)
    return worker, queue


# ── Processing ──────────────────────────────────────────────────


class TestProcessing:
    async def test_processes_every_job(self) -> None:
        consumer = FakeConsumer()
        worker, queue = await _run_all(consumer, ["a", "b", "c"])
        assert sorted(consumer.done) == ["a", "b", "c"]
        assert worker.processed == 3
        assert worker.failed == 0
        assert [j.monitor_id for j in queue.completed] == consumer.done

    async def test_concurrency_is_bounded(self) -> None:
        consumer = FakeConsumer(delay=0.02)
        await _run_all(consumer, [f"m{i}" for i in range(12)], concurrency=3)
        assert consumer.max_active == 3
        assert len(consumer.done) == 12

    async def test_jobs_run_in_parallel(self) -> None:
        consumer = FakeConsumer(delay=0.05)
        await _run_all(consumer, [f"m{i}" for i in range(10)], concurrency=10)
        assert consumer.max_active == 10

    async def test_failure_reported_and_pool_continues(self) -> None:
        consumer = FakeConsumer(fail_for={"bad"})
        worker, queue = await _run_all(consumer, ["ok1", "bad", "ok2"])
        assert sorted(consumer.done) == ["ok1", "ok2"]
        assert worker.processed == 2
        assert worker.failed == 1
        assert [(j.monitor_id, err) for j, err in queue.failed] == [("bad", "db down")]

    async def test_failed_job_retried_by_queue(self) -> None:
        consumer = FakeConsumer(fail_for={"bad"})
        queue = InMemoryJobQueue(max_attempts=3)
        await queue.enqueue("bad")
        worker = CheckWorker(queue, consumer)  # type: ignore[arg-type]
        async with worker:
            for _ in range(100):
                if queue.failed:
                    break
                await asyncio.sleep(0.01)
        assert worker.failed == 3
        job, _ = queue.failed[0]
        assert job.attempt == 3


# ── Lifecycle ───────────────────────────────────────────────────


class TestLifecycle:
    async def test_start_is_idempotent(self) -> None:
        worker = CheckWorker(InMemoryJobQueue(), FakeConsumer())  # type: ignore[arg-type]
        await worker.start()
        first = worker._task
        await worker.start()
        assert worker._task is first
        await worker.stop()

    async def test_stop_waits_for_inflight(self) -> None:
        consumer = FakeConsumer(delay=0.1)
        queue = InMemoryJobQueue()
        await queue.enqueue("slow")
        worker = CheckWorker(queue, consumer)  # type: ignore[arg-type]
        await worker.start()
        await asyncio.sleep(0.02)
        assert worker.in_flight == 1

        await worker.stop()
        assert consumer.done == ["slow"]
        assert worker.in_flight == 0
        assert not worker.running

    async def test_stop_stops_pulling(self) -> None:
        consumer = FakeConsumer()
        queue = InMemoryJobQueue()
        worker = CheckWorker(queue, consumer)  # type: ignore[arg-type]
        await worker.start()
        await worker.stop()
        await queue.enqueue("late")
        await asyncio.sleep(0.02)
        assert consumer.done == []
        assert queue.pending == 1

    async def test_context_manager(self) -> None:
        worker = CheckWorker(InMemoryJobQueue(), FakeConsumer())  # type: ignore[arg-type]
        async with worker:
            assert worker.running
        assert not worker.running

    def test_invalid_concurrency(self) -> None:
        with pytest.raises(ValueError):
            CheckWorker(InMemoryJobQueue(), FakeConsumer(), concurrency=0)  # type: ignore[arg-type]
