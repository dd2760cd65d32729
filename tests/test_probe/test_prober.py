"""Tests for HealthProber — classification rules, timing, headers, lifecycle."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from pulsewatch.core.config import ProbeConfig
from pulsewatch.core.types import CheckStatus, ErrorType, Monitor
from pulsewatch.probe.prober import (
    HealthProber,
    ProbeResult,
    ProbeTarget,
    classify_exception,
    classify_response,
)

# ── Helpers ─────────────────────────────────────────────────────


def _target(**kw: object) -> ProbeTarget:
    defaults: dict[str, object] = {
        "url": "https://service.test/health",
        "method": "GET",
        "expected_status": 200,
    }
    defaults.update(kw)
    return ProbeTarget(**defaults)  # type: ignore[arg-type]


def _prober(handler: object, **cfg: object) -> HealthProber:
    transport = httpx.MockTransport(handler)  # type: ignore[arg-type]
    client = httpx.AsyncClient(transport=transport, follow_redirects=True)
    return HealthProber(ProbeConfig(**cfg), client=client)  # type: ignore[arg-type]


# ── Pure classification ─────────────────────────────────────────


class TestClassifyResponse:
    def test_matching_status_is_up(self) -> None:
        result = classify_response(200, 200, 50)
        assert result.is_up
        assert result.status is CheckStatus.UP
        assert result.status_code == 200
        assert result.error_type is None
        assert result.error_message is None

    def test_non_200_expected_status(self) -> None:
        assert classify_response(204, 204, 5).is_up
        assert classify_response(301, 301, 5).is_up

    def test_mismatch_is_status_error(self) -> None:
        result = classify_response(200, 503, 80)
        assert not result.is_up
        assert result.status is CheckStatus.DOWN
        assert result.error_type is ErrorType.STATUS
        assert result.error_message == "Expected 200, got 503"
        assert result.status_code == 503
        assert result.response_ms == 80


class TestClassifyException:
    def test_httpx_timeout(self) -> None:
        result = classify_exception(httpx.ReadTimeout("slow"), 10000)
        assert result.error_type is ErrorType.TIMEOUT
        assert result.error_message == "Request timeout after 10000ms"
        assert not result.is_up

    def test_asyncio_timeout(self) -> None:
        result = classify_exception(TimeoutError(), 10001)
        assert result.error_type is ErrorType.TIMEOUT

    def test_connect_error_is_network(self) -> None:
        result = classify_exception(httpx.ConnectError("Connection refused"), 3)
        assert result.error_type is ErrorType.NETWORK
        assert result.error_message == "Network error: Connection refused"

    def test_other_error_is_unknown(self) -> None:
        result = classify_exception(httpx.TooManyRedirects("Exceeded maximum allowed redirects."), 9)
        assert result.error_type is ErrorType.UNKNOWN
        assert result.error_message == "Exceeded maximum allowed redirects."

    def test_unknown_without_text_uses_class_name(self) -> None:
        result = classify_exception(RuntimeError(), 1)
        assert result.error_message == "RuntimeError"


# ── Probing over a mock transport ───────────────────────────────


class TestProbe:
    async def test_up_when_status_matches(self) -> None:
        prober = _prober(lambda request: httpx.Response(200))
        result = await prober.probe(_target())
        assert result.is_up
        assert result.status_code == 200
        assert result.response_ms >= 0
        await prober.close()

    async def test_down_on_status_mismatch(self) -> None:
        prober = _prober(lambda request: httpx.Response(500))
        result = await prober.probe(_target())
        assert not result.is_up
        assert result.error_type is ErrorType.STATUS
        assert result.error_message == "Expected 200, got 500"
        await prober.close()

    async def test_connection_refused_is_network(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

        prober = _prober(handler)
        result = await prober.probe(_target())
        assert not result.is_up
        assert result.error_type is ErrorType.NETWORK
        assert result.status_code is None
        await prober.close()

    async def test_dns_failure_is_network(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("[Errno -2] Name or service not known", request=request)

        prober = _prober(handler)
        result = await prober.probe(_target(url="https://nope.invalid"))
        assert result.error_type is ErrorType.NETWORK
        await prober.close()

    async def test_transport_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        prober = _prober(handler)
        result = await prober.probe(_target())
        assert result.error_type is ErrorType.TIMEOUT
        assert not result.is_up
        await prober.close()

    async def test_wall_clock_deadline(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200)

        prober = _prober(handler, timeout_secs=0.05)
        result = await prober.probe(_target())
        assert not result.is_up
        assert result.error_type is ErrorType.TIMEOUT
        assert 40 <= result.response_ms < 5000
        await prober.close()

    async def test_unexpected_exception_is_unknown(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise ValueError("boom")

        prober = _prober(handler)
        result = await prober.probe(_target())
        assert result.error_type is ErrorType.UNKNOWN
        assert result.error_message == "boom"
        await prober.close()

    async def test_method_and_headers_sent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201)

        prober = _prober(handler)
        target = _target(
            method="post",
            expected_status=201,
            headers={"Authorization": "Bearer t"},
        )
        result = await prober.probe(target)
        assert result.is_up
        request = seen[0]
        assert request.method == "POST"
        assert request.headers["authorization"] == "Bearer t"
        assert request.headers["user-agent"] == "Monitor-Service/1.0"
        await prober.close()

    async def test_monitor_headers_override_user_agent(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        prober = _prober(handler)
        await prober.probe(_target(headers={"User-Agent": "custom/2"}))
        assert seen[0].headers["user-agent"] == "custom/2"
        await prober.close()

    async def test_redirect_followed(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://service.test/new"})
            return httpx.Response(200)

        prober = _prober(handler)
        result = await prober.probe(_target(url="https://service.test/old"))
        assert result.is_up
        assert result.status_code == 200
        await prober.close()


class TestProbeTarget:
    def test_from_monitor(self) -> None:
        monitor = Monitor(
            id="m1",
            user_id="u1",
            url="https://a.test",
            name="API",
            method="HEAD",
            expected_status=204,
            headers={"X-Key": "1"},
        )
        target = ProbeTarget.from_monitor(monitor)
        assert target.url == "https://a.test"
        assert target.method == "HEAD"
        assert target.expected_status == 204
        assert target.headers == {"X-Key": "1"}
        assert target.display_name == "API"

    def test_display_name_falls_back_to_url(self) -> None:
        assert _target().display_name == "https://service.test/health"


class TestLifecycle:
    async def test_lazy_client_creation(self) -> None:
        prober = HealthProber(ProbeConfig())
        assert prober._http is None
        client = prober._get_client()
        assert client is not None
        assert not client.is_closed
        await prober.close()
        assert prober._http is None

    async def test_close_when_no_client(self) -> None:
        prober = HealthProber(ProbeConfig())
        await prober.close()  # should not raise

    async def test_context_manager_closes(self) -> None:
        async with HealthProber(ProbeConfig()) as prober:
            client = prober._get_client()
        assert client.is_closed

    def test_timeout_from_config(self) -> None:
        assert HealthProber(ProbeConfig(timeout_secs=3)).timeout_secs == 3.0


def test_probe_result_status_property() -> None:
    assert ProbeResult(is_up=True, response_ms=1).status is CheckStatus.UP
    assert ProbeResult(is_up=False, response_ms=1).status is CheckStatus.DOWN


@pytest.mark.parametrize("status", [200, 404, 500])
async def test_response_ms_recorded_for_any_status(status: int) -> None:
    prober = _prober(lambda request: httpx.Response(status))
    result = await prober.probe(_target())
    assert isinstance(result.response_ms, int)
    assert result.response_ms >= 0
    await prober.close()
