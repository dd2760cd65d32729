"""Wire a ready-to-start check worker from settings."""

from __future__ import annotations

import structlog

from pulsewatch.core.config import Settings, get_settings
from pulsewatch.notify.factory import create_dispatcher
from pulsewatch.probe.prober import HealthProber
from pulsewatch.store.base import Store
from pulsewatch.worker.consumer import CheckConsumer
from pulsewatch.worker.pool import CheckWorker
from pulsewatch.worker.queue import JobQueue

logger = structlog.get_logger(__name__)


class WorkerStack:
    """The long-lived service objects behind one worker process.

    ``close()`` stops the pool (waiting for in-flight jobs) and then releases
    the prober's and senders' HTTP sessions.
    """

    def __init__(self, worker: CheckWorker, prober: HealthProber, consumer: CheckConsumer) -> None:
        self.worker = worker
        self.prober = prober
        self.consumer = consumer

    async def start(self) -> None:
        await self.worker.start()

    async def close(self) -> None:
        await self.worker.stop()
        await self.prober.close()
        await self.consumer.dispatcher.close()


def create_worker(
    store: Store,
    queue: JobQueue,
    settings: Settings | None = None,
) -> WorkerStack:
    """Build prober, dispatcher, consumer and pool for *store* and *queue*."""
    settings = settings or get_settings()
    prober = HealthProber(settings.probe)
    dispatcher = create_dispatcher(settings.notifications, channels=store)
    consumer = CheckConsumer(store=store, prober=prober, dispatcher=dispatcher)
    worker = CheckWorker(queue, consumer, concurrency=settings.worker.concurrency)
    logger.info(
        "worker_configured",
        queue=settings.worker.queue_name,
        concurrency=settings.worker.concurrency,
        smtp=settings.notifications.smtp.configured,
    )
    return WorkerStack(worker=worker, prober=prober, consumer=consumer)
