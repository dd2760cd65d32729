"""Tests for InMemoryStore — gateway semantics and the open-incident constraint."""

from __future__ import annotations

import datetime

import pytest

from pulsewatch.core.exceptions import IncidentConflictError, StoreError
from pulsewatch.core.types import (
    ChannelType,
    CheckStatus,
    IncidentStatus,
    Monitor,
    MonitorStatus,
    NotificationChannel,
)
from pulsewatch.incidents.state_machine import IncidentCreate, IncidentUpdate
from pulsewatch.store.memory import InMemoryStore

T0 = datetime.datetime(2026, 1, 1, tzinfo=datetime.UTC)


def _store() -> InMemoryStore:
    return InMemoryStore(monitors=[Monitor(id="m1", user_id="u1", url="https://a.test")])


def _create(monitor_id: str = "m1") -> IncidentCreate:
    return IncidentCreate(
        monitor_id=monitor_id, user_id="u1", start_at=T0, error_message="down"
    )


class TestMonitors:
    async def test_get_missing_returns_none(self) -> None:
        assert await _store().get_monitor("nope") is None

    async def test_status_overwritten(self) -> None:
        store = _store()
        await store.set_monitor_status("m1", MonitorStatus.DOWN)
        await store.set_monitor_status("m1", MonitorStatus.UP)
        monitor = await store.get_monitor("m1")
        assert monitor is not None
        assert monitor.status is MonitorStatus.UP

    async def test_status_of_missing_monitor_raises(self) -> None:
        with pytest.raises(StoreError):
            await _store().set_monitor_status("nope", MonitorStatus.UP)


class TestCheckResults:
    async def test_append_only(self) -> None:
        store = _store()
        first = await store.append_check_result("m1", CheckStatus.UP, 50)
        second = await store.append_check_result("m1", CheckStatus.DOWN, 10000)
        assert store.results_for("m1") == [first, second]
        assert first.id != second.id
        assert first.response_ms == 50


class TestIncidents:
    async def test_create_and_find_open(self) -> None:
        store = _store()
        created = await store.create_incident(_create())
        assert created.status is IncidentStatus.OPEN
        assert created.end_at is None
        assert await store.find_open_incident("m1") == created

    async def test_second_open_incident_rejected(self) -> None:
        store = _store()
        await store.create_incident(_create())
        with pytest.raises(IncidentConflictError):
            await store.create_incident(_create())

    async def test_update_resolves(self) -> None:
        store = _store()
        created = await store.create_incident(_create())
        end = T0 + datetime.timedelta(seconds=30)
        updated = await store.update_incident(created.id, IncidentUpdate(
            duration_ms=30_000, end_at=end, status=IncidentStatus.RESOLVED,
        ))
        assert updated.end_at == end
        assert updated.duration_ms == 30_000
        assert updated.error_message == "down"
        assert await store.find_open_incident("m1") is None

    async def test_new_incident_after_resolution(self) -> None:
        store = _store()
        first = await store.create_incident(_create())
        await store.update_incident(first.id, IncidentUpdate(
            duration_ms=1, end_at=T0, status=IncidentStatus.RESOLVED,
        ))
        second = await store.create_incident(_create())
        assert second.id != first.id
        assert len(store.incidents_for("m1")) == 2

    async def test_update_missing_raises(self) -> None:
        with pytest.raises(StoreError):
            await _store().update_incident("nope", IncidentUpdate(duration_ms=0))


class TestChannels:
    async def test_list_by_user(self) -> None:
        store = _store()
        store.add_channel(NotificationChannel(user_id="u1", type=ChannelType.EMAIL, value="a@b"))
        store.add_channel(NotificationChannel(user_id="u2", type=ChannelType.SLACK, value="x"))
        channels = await store.list_channels("u1")
        assert [c.type for c in channels] == [ChannelType.EMAIL]
        assert await store.list_channels("u3") == []
