"""Check-job payload and the queue contract the worker pool consumes."""

from __future__ import annotations

import abc
import asyncio
import uuid

import structlog
from pydantic import BaseModel, Field

from pulsewatch.core.exceptions import WorkerStoppedError

logger = structlog.get_logger(__name__)


class CheckJob(BaseModel):
    """A request to check one monitor now."""

    monitor_id: str
    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    attempt: int = 1


class JobQueue(abc.ABC):
    """Source of check jobs.

    Retries, backoff and stall detection belong to the implementation; the
    worker only reports each job as completed or failed.
    """

    @abc.abstractmethod
    async def get(self) -> CheckJob:
        """Wait for the next job.

        Raises:
            WorkerStoppedError: The queue is closed.
        """

    @abc.abstractmethod
    async def complete(self, job: CheckJob) -> None:
        """Acknowledge a successfully processed job."""

    @abc.abstractmethod
    async def fail(self, job: CheckJob, exc: BaseException) -> None:
        """Record a job whose processing raised *exc*."""


class InMemoryJobQueue(JobQueue):
    """asyncio-backed queue for embedding and tests.

    Failed jobs are re-enqueued until ``max_attempts`` is reached, then kept
    in ``failed``. Completed jobs are kept in ``completed`` (last ``keep`` only).
    """

    def __init__(self, max_attempts: int = 1, keep: int = 100) -> None:
        self._queue: asyncio.Queue[CheckJob | None] = asyncio.Queue()
        self._max_attempts = max_attempts
        self._keep = keep
        self._closed = False
        self.completed: list[CheckJob] = []
        self.failed: list[tuple[CheckJob, str]] = []

    @property
    def pending(self) -> int:
        # The close sentinel stays queued once added.
        return max(self._queue.qsize() - int(self._closed), 0)

    async def enqueue(self, job: CheckJob | str) -> CheckJob:
        if self._closed:
            raise WorkerStoppedError("queue is closed")
        if isinstance(job, str):
            job = CheckJob(monitor_id=job)
        await self._queue.put(job)
        return job

    async def get(self) -> CheckJob:
        if self._closed and self._queue.empty():
            raise WorkerStoppedError("queue is closed")
        job = await self._queue.get()
        if job is None:
            # Sentinel: keep it in place for any other waiter.
            self._queue.put_nowait(None)
            raise WorkerStoppedError("queue is closed")
        return job

    async def complete(self, job: CheckJob) -> None:
        self.completed.append(job)
        del self.completed[:-self._keep]

    async def fail(self, job: CheckJob, exc: BaseException) -> None:
        if job.attempt < self._max_attempts and not self._closed:
            retry = job.model_copy(update={"attempt": job.attempt + 1})
            logger.info("job_retry_scheduled", job_id=job.job_id, attempt=retry.attempt)
            await self._queue.put(retry)
            return
        self.failed.append((job, str(exc) or type(exc).__name__))
        del self.failed[:-self._keep]

    def close(self) -> None:
        """Stop handing out jobs once the backlog is drained."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)
