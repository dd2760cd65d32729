"""Health prober — HTTP checks classified into up/down results."""

from pulsewatch.probe.prober import (
    HealthProber,
    ProbeResult,
    ProbeTarget,
    classify_exception,
    classify_response,
)

__all__ = [
    "HealthProber",
    "ProbeResult",
    "ProbeTarget",
    "classify_exception",
    "classify_response",
]
