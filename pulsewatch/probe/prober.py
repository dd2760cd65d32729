"""HTTP health prober — one request, one classified result, no side effects."""

from __future__ import annotations

import asyncio
import time
from types import TracebackType

import httpx
import structlog
from pydantic import BaseModel, Field

from pulsewatch.core.config import ProbeConfig, get_settings
from pulsewatch.core.types import CheckStatus, ErrorType, Monitor

logger = structlog.get_logger(__name__)


class ProbeTarget(BaseModel):
    """What to request and what counts as healthy."""

    url: str
    method: str = "GET"
    expected_status: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    name: str = ""

    @classmethod
    def from_monitor(cls, monitor: Monitor) -> ProbeTarget:
        return cls(
            url=monitor.url,
            method=monitor.method,
            expected_status=monitor.expected_status,
            headers=dict(monitor.headers),
            name=monitor.name,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.url


class ProbeResult(BaseModel):
    """Classified probe outcome. ``error_type`` is None when the target is up."""

    is_up: bool
    response_ms: int
    status_code: int | None = None
    error_type: ErrorType | None = None
    error_message: str | None = None

    @property
    def status(self) -> CheckStatus:
        return CheckStatus.UP if self.is_up else CheckStatus.DOWN


def classify_response(expected_status: int, status_code: int, response_ms: int) -> ProbeResult:
    """Rules 1 and 2: a response arrived, compare its status."""
    if status_code == expected_status:
        return ProbeResult(is_up=True, response_ms=response_ms, status_code=status_code)
    return ProbeResult(
        is_up=False,
        response_ms=response_ms,
        status_code=status_code,
        error_type=ErrorType.STATUS,
        error_message=f"Expected {expected_status}, got {status_code}",
    )


def classify_exception(exc: Exception, response_ms: int) -> ProbeResult:
    """Rules 3-5: no response, classify the failure."""
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return ProbeResult(
            is_up=False,
            response_ms=response_ms,
            error_type=ErrorType.TIMEOUT,
            error_message=f"Request timeout after {response_ms}ms",
        )
    if isinstance(exc, httpx.ConnectError):
        return ProbeResult(
            is_up=False,
            response_ms=response_ms,
            error_type=ErrorType.NETWORK,
            error_message=f"Network error: {str(exc) or type(exc).__name__}",
        )
    return ProbeResult(
        is_up=False,
        response_ms=response_ms,
        error_type=ErrorType.UNKNOWN,
        error_message=str(exc) or type(exc).__name__,
    )


class HealthProber:
    """Executes HTTP probes against monitor targets.

    Never raises for network failures, timeouts or unexpected status codes;
    those come back as a ``ProbeResult`` with ``is_up=False``.

    Usage::

        async with HealthProber() as prober:
            result = await prober.probe(ProbeTarget(url="https://example.com"))
    """

    def __init__(
        self,
        config: ProbeConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or get_settings().probe
        self._http = client

    @property
    def timeout_secs(self) -> float:
        return self._config.timeout_secs

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_secs),
                follow_redirects=True,
                max_redirects=self._config.max_redirects,
            )
        return self._http

    async def probe(self, target: ProbeTarget) -> ProbeResult:
        """Request *target* once and classify the outcome."""
        headers = {"User-Agent": self._config.user_agent, **target.headers}
        start = time.monotonic()
        try:
            async with asyncio.timeout(self._config.timeout_secs):
                response = await self._get_client().request(
                    target.method.upper(),
                    target.url,
                    headers=headers,
                )
        except Exception as exc:
            result = classify_exception(exc, _elapsed_ms(start))
            logger.warning(
                "probe_failed",
                target=target.display_name,
                error_type=result.error_type,
                error=result.error_message,
                response_ms=result.response_ms,
            )
            return result

        result = classify_response(
            target.expected_status, response.status_code, _elapsed_ms(start)
        )
        logger.debug(
            "probe_completed",
            target=target.display_name,
            method=target.method,
            status_code=result.status_code,
            is_up=result.is_up,
            response_ms=result.response_ms,
        )
        return result

    async def close(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
        self._http = None

    async def __aenter__(self) -> HealthProber:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
