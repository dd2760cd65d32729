"""Check consumer — runs one check job end to end."""

from __future__ import annotations

import datetime
import time
from collections.abc import Callable

import structlog
from pydantic import BaseModel, Field

from pulsewatch.core.types import (
    AlertKind,
    DeliveryResult,
    Incident,
    MonitorStatus,
    utcnow,
)
from pulsewatch.incidents.state_machine import step
from pulsewatch.notify.dispatcher import NotificationDispatcher
from pulsewatch.notify.formatters import IncidentAlert
from pulsewatch.probe.prober import (
    HealthProber,
    ProbeResult,
    ProbeTarget,
    classify_exception,
)
from pulsewatch.store.base import Store
from pulsewatch.worker.locks import KeyedLock
from pulsewatch.worker.queue import CheckJob

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime.datetime]


class CheckOutcome(BaseModel):
    """What one check job did."""

    monitor_id: str
    result: ProbeResult
    incident: Incident | None = None
    event: AlertKind | None = None
    deliveries: list[DeliveryResult] = Field(default_factory=list)


class CheckConsumer:
    """Probe → persist → incident step → notify, for a single monitor.

    Persistence errors propagate so the queue marks the job failed. Probe and
    notification errors are absorbed and never fail the job.

    The open-incident lookup and the create/update that follows run under a
    per-monitor lock, so overlapping jobs for one monitor handled by this
    consumer cannot open two incidents.
    """

    def __init__(
        self,
        store: Store,
        prober: HealthProber,
        dispatcher: NotificationDispatcher,
        clock: Clock = utcnow,
        locks: KeyedLock | None = None,
    ) -> None:
        self._store = store
        self._prober = prober
        self._dispatcher = dispatcher
        self._clock = clock
        self._locks = locks or KeyedLock()

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    async def process(self, job: CheckJob) -> CheckOutcome | None:
        """Run the check for ``job.monitor_id``. Returns None if the monitor is gone."""
        monitor_id = job.monitor_id
        monitor = await self._store.get_monitor(monitor_id)
        if monitor is None:
            logger.warning("monitor_not_found", monitor_id=monitor_id)
            return None

        target = ProbeTarget.from_monitor(monitor)
        start = time.monotonic()
        try:
            result = await self._prober.probe(target)
        except Exception as exc:
            logger.exception("probe_error", monitor_id=monitor_id)
            result = classify_exception(exc, int((time.monotonic() - start) * 1000))

        status = MonitorStatus.UP if result.is_up else MonitorStatus.DOWN
        await self._store.set_monitor_status(monitor_id, status)
        await self._store.append_check_result(monitor_id, result.status, result.response_ms)

        async with self._locks.hold(monitor_id):
            open_incident = await self._store.find_open_incident(monitor_id)
            now = self._clock()
            transition = step(
                open_incident,
                result,
                monitor_id=monitor_id,
                user_id=monitor.user_id,
                now=now,
            )

            incident = open_incident
            if transition.create is not None:
                incident = await self._store.create_incident(transition.create)
                logger.info(
                    "incident_opened",
                    monitor_id=monitor_id,
                    incident_id=incident.id,
                    error=incident.error_message,
                )
            elif transition.update is not None and transition.incident_id is not None:
                incident = await self._store.update_incident(
                    transition.incident_id, transition.update
                )
                if transition.event is AlertKind.RESOLVED:
                    logger.info(
                        "incident_resolved",
                        monitor_id=monitor_id,
                        incident_id=incident.id,
                        duration_ms=incident.duration_ms,
                    )
                else:
                    logger.info(
                        "incident_updated",
                        monitor_id=monitor_id,
                        incident_id=incident.id,
                        duration_ms=incident.duration_ms,
                    )

        outcome = CheckOutcome(
            monitor_id=monitor_id,
            result=result,
            incident=incident,
            event=transition.event,
        )

        if transition.event is not None and incident is not None:
            alert = IncidentAlert(
                kind=transition.event,
                monitor=monitor,
                result=result,
                incident_id=incident.id,
                downtime_ms=(
                    incident.duration_ms if transition.event is AlertKind.RESOLVED else None
                ),
                occurred_at=now,
            )
            try:
                outcome.deliveries = await self._dispatcher.dispatch(alert)
            except Exception:
                logger.exception(
                    "notification_failed",
                    monitor_id=monitor_id,
                    incident_id=incident.id,
                    alert_kind=transition.event.value,
                )

        logger.info(
            "check_completed",
            monitor_id=monitor_id,
            url=monitor.url,
            status=result.status.value,
            response_ms=result.response_ms,
        )
        return outcome
