"""
Configuration module for loading environment variables.
Regions, instance types and polling settings are read from the environment.
"""
import os
import re
from typing import List, Mapping, Optional, Tuple


DEFAULT_POLL_INTERVAL = "1h"
DEFAULT_METRICS_HOST = "0.0.0.0"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str) -> float:
    """
    Parse a duration string into seconds.

    Accepts plain seconds ("3600", "0.5") or unit-suffixed parts
    ("90s", "15m", "1h", "1h30m").

    Raises:
        ValueError: If the string is not a valid duration.
    """
    text = value.strip().lower()
    if not text:
        raise ValueError("empty duration")

    try:
        return float(text)
    except ValueError:
        pass

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def parse_listen_address(value: str) -> Tuple[str, int]:
    """
    Split a "host:port" listen address; an empty host (":9090") binds all interfaces.

    Raises:
        ValueError: If the port is missing or not a number.
    """
    host, separator, port = value.strip().rpartition(":")
    if not separator or not port.isdigit():
        raise ValueError(f"invalid listen address: {value!r}")
    return host.strip("[]") or DEFAULT_METRICS_HOST, int(port)


def _split_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated env value, dropping blanks."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        env = os.environ if environ is None else environ

        # Monitored targets
        self.AWS_REGIONS: List[str] = _split_list(env.get("AWS_REGIONS"))
        self.AWS_INSTANCE_TYPES: List[str] = _split_list(env.get("AWS_INSTANCE_TYPES"))
        self.GCP_REGIONS: List[str] = _split_list(env.get("GCP_REGIONS"))
        self.GCP_INSTANCE_TYPES: List[str] = _split_list(env.get("GCP_INSTANCE_TYPES"))

        # Polling
        self.POLL_INTERVAL_SECONDS: float = parse_duration(
            env.get("POLL_INTERVAL", DEFAULT_POLL_INTERVAL)
        )
        timeout = env.get("FETCH_TIMEOUT_SECONDS", "").strip()
        self.FETCH_TIMEOUT_SECONDS: Optional[float] = parse_duration(timeout) if timeout else None
        self.FETCH_TIMEOUT_FRACTION: float = float(env.get("FETCH_TIMEOUT_FRACTION", "0.5"))

        # AWS Price List API is only served from a couple of regions
        self.AWS_PRICING_REGION: str = env.get("AWS_PRICING_REGION", "us-east-1")

        # GCP Cloud Billing Catalog API
        self.GCP_BILLING_API_BASE_URL: str = env.get(
            "GCP_BILLING_API_BASE_URL",
            "https://cloudbilling.googleapis.com"
        ).rstrip("/")
        self.GCP_API_KEY: str = env.get("GCP_API_KEY", "")
        self.GCP_ACCESS_TOKEN: str = env.get("GCP_ACCESS_TOKEN", "")
        self.GCP_HTTP_TIMEOUT_SECONDS: float = float(env.get("GCP_HTTP_TIMEOUT_SECONDS", "30"))

        # Metrics endpoint
        self.METRICS_HOST: str = env.get("METRICS_HOST", DEFAULT_METRICS_HOST)
        self.METRICS_PORT: int = int(env.get("METRICS_PORT", "9090"))
        # METRICS_ADDR (host:port) takes precedence over the split settings
        if env.get("METRICS_ADDR"):
            self.METRICS_HOST, self.METRICS_PORT = parse_listen_address(env["METRICS_ADDR"])

        # Logging
        self.DEBUG: bool = _parse_bool(env.get("DEBUG"))
        self.LOG_LEVEL: str = env.get("LOG_LEVEL", "INFO").upper()

    @property
    def fetch_timeout(self) -> float:
        """Deadline applied to each individual target fetch, in seconds."""
        if self.FETCH_TIMEOUT_SECONDS is not None:
            return self.FETCH_TIMEOUT_SECONDS
        return self.POLL_INTERVAL_SECONDS * self.FETCH_TIMEOUT_FRACTION

    def validate(self) -> None:
        """
        Validates that the monitoring configuration is usable.

        Raises:
            ValueError: If any required configuration is missing or invalid.
        """
        if not self.AWS_REGIONS and not self.GCP_REGIONS:
            raise ValueError("must specify at least one AWS or GCP region")

        if self.AWS_REGIONS and not self.AWS_INSTANCE_TYPES:
            raise ValueError("AWS_REGIONS specified but no AWS_INSTANCE_TYPES provided")
        if self.AWS_INSTANCE_TYPES and not self.AWS_REGIONS:
            raise ValueError("AWS_INSTANCE_TYPES specified but no AWS_REGIONS provided")

        if self.GCP_REGIONS and not self.GCP_INSTANCE_TYPES:
            raise ValueError("GCP_REGIONS specified but no GCP_INSTANCE_TYPES provided")
        if self.GCP_INSTANCE_TYPES and not self.GCP_REGIONS:
            raise ValueError("GCP_INSTANCE_TYPES specified but no GCP_REGIONS provided")

        if self.POLL_INTERVAL_SECONDS <= 0:
            raise ValueError("POLL_INTERVAL must be positive")
        if not 0 < self.FETCH_TIMEOUT_FRACTION <= 1:
            raise ValueError(
                f"FETCH_TIMEOUT_FRACTION must be in (0, 1] (got: {self.FETCH_TIMEOUT_FRACTION})"
            )
        if self.FETCH_TIMEOUT_SECONDS is not None and self.FETCH_TIMEOUT_SECONDS <= 0:
            raise ValueError("FETCH_TIMEOUT_SECONDS must be positive")
