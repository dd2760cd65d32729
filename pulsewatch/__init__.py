"""pulsewatch — HTTP uptime checks, incident tracking and alert fan-out."""

__version__ = "0.1.0"
