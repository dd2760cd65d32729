"""Bounded worker pool — pulls check jobs and runs up to N at once."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from types import TracebackType

import structlog

from pulsewatch.core.exceptions import WorkerStoppedError
from pulsewatch.worker.consumer import CheckConsumer
from pulsewatch.worker.queue import CheckJob, JobQueue

logger = structlog.get_logger(__name__)


class CheckWorker:
    """Pulls jobs from a JobQueue and processes them with bounded concurrency.

    Usage::

        worker = CheckWorker(queue, consumer, concurrency=10)
        async with worker:
            ...
        # leaving the block stops pulling and waits for in-flight jobs
    """

    def __init__(
        self,
        queue: JobQueue,
        consumer: CheckConsumer,
        concurrency: int = 10,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._queue = queue
        self._consumer = consumer
        self._concurrency = concurrency
        self._slots = asyncio.Semaphore(concurrency)
        self._inflight: set[asyncio.Task[None]] = set()
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._processed = 0
        self._failed = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    @property
    def processed(self) -> int:
        return self._processed

    @property
    def failed(self) -> int:
        return self._failed

    async def start(self) -> None:
        """Start pulling jobs in the background."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._pull_loop())
        logger.info("worker_started", concurrency=self._concurrency)

    async def stop(self) -> None:
        """Stop pulling new jobs and wait for in-flight jobs to finish."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self._drain_inflight()
        logger.info("worker_stopped", processed=self._processed, failed=self._failed)

    async def wait_closed(self) -> None:
        """Wait until the queue is closed and every pulled job has finished."""
        if self._task is not None:
            await self._task
            self._task = None
        await self._drain_inflight()
        self._running = False

    async def _drain_inflight(self) -> None:
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def _pull_loop(self) -> None:
        while self._running:
            await self._slots.acquire()
            try:
                job = await self._queue.get()
            except WorkerStoppedError:
                self._slots.release()
                logger.info("job_queue_closed")
                break
            except BaseException:
                self._slots.release()
                raise
            task = asyncio.create_task(self._run(job))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _run(self, job: CheckJob) -> None:
        try:
            with structlog.contextvars.bound_contextvars(
                job_id=job.job_id, monitor_id=job.monitor_id
            ):
                try:
                    await self._consumer.process(job)
                except Exception as exc:
                    self._failed += 1
                    logger.exception("job_failed", attempt=job.attempt)
                    await self._report(self._queue.fail(job, exc))
                else:
                    self._processed += 1
                    logger.debug("job_completed")
                    await self._report(self._queue.complete(job))
        finally:
            self._slots.release()

    @staticmethod
    async def _report(ack: Awaitable[None]) -> None:
        try:
            await ack
        except Exception:
            logger.exception("job_ack_error")

    async def __aenter__(self) -> CheckWorker:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
