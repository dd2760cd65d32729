"""Check worker — job queue contract, consumer and bounded pool."""

from pulsewatch.worker.consumer import CheckConsumer, CheckOutcome
from pulsewatch.worker.factory import WorkerStack, create_worker
from pulsewatch.worker.locks import KeyedLock
from pulsewatch.worker.pool import CheckWorker
from pulsewatch.worker.queue import CheckJob, InMemoryJobQueue, JobQueue

__all__ = [
    "CheckConsumer",
    "CheckJob",
    "CheckOutcome",
    "CheckWorker",
    "InMemoryJobQueue",
    "JobQueue",
    "KeyedLock",
    "WorkerStack",
    "create_worker",
]
