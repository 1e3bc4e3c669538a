"""
Metric sink for normalized pricing.
Publishes PricePoints and fetch outcomes as Prometheus gauges and counters.
"""
from typing import Optional, Protocol, Tuple

from prometheus_client import CollectorRegistry, Counter, Gauge, disable_created_metrics
from prometheus_client.exposition import CONTENT_TYPE_LATEST, generate_latest

from pricing_monitor.domain.pricing_models import PricePoint, Provider


PRICE_LABELS = ("provider", "region", "instance_type")
TARGET_LABELS = ("provider", "region")


class MetricSink(Protocol):
    """Write-only recorder for pricing outcomes; safe to call concurrently."""

    def record_price(self, point: PricePoint) -> None:
        ...

    def record_failure(self, provider: Provider, region: str) -> None:
        ...

    def record_last_success_timestamp(self, provider: Provider, region: str, timestamp: float) -> None:
        ...


class PrometheusMetricSink:
    """MetricSink backed by a prometheus_client registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics on the given registry.

        Args:
            registry: Registry to register on (creates a private one if None,
                      so several sinks can coexist in one process)
        """
        # counters carry no _created series, matching the exported metric set
        disable_created_metrics()
        self.registry = registry if registry is not None else CollectorRegistry()

        self.total_cost_per_hour = Gauge(
            "cloud_vm_total_cost_per_hour",
            "Total cost per hour for the instance type in USD",
            PRICE_LABELS,
            registry=self.registry,
        )
        self.cost_per_gb_hour = Gauge(
            "cloud_vm_cost_per_gb_hour",
            "Cost per GB of RAM per hour in USD",
            PRICE_LABELS,
            registry=self.registry,
        )
        self.cost_per_vcpu_hour = Gauge(
            "cloud_vm_cost_per_vcpu_hour",
            "Cost per vCPU per hour in USD",
            PRICE_LABELS,
            registry=self.registry,
        )
        # exposed as cloud_vm_pricing_errors_total
        self.pricing_errors = Counter(
            "cloud_vm_pricing_errors",
            "Total number of errors encountered while fetching pricing",
            TARGET_LABELS,
            registry=self.registry,
        )
        self.last_update_time = Gauge(
            "cloud_vm_pricing_last_update_timestamp_seconds",
            "Unix timestamp of the last successful pricing update",
            TARGET_LABELS,
            registry=self.registry,
        )

    def record_price(self, point: PricePoint) -> None:
        labels = (Provider(point.provider).value, point.region, point.instance_type)

        self.total_cost_per_hour.labels(*labels).set(point.total_hourly_cost)

        per_gb = point.cost_per_gb_hour()
        if per_gb is not None:
            self.cost_per_gb_hour.labels(*labels).set(per_gb)

        per_vcpu = point.cost_per_vcpu_hour()
        if per_vcpu is not None:
            self.cost_per_vcpu_hour.labels(*labels).set(per_vcpu)

    def record_failure(self, provider: Provider, region: str) -> None:
        self.pricing_errors.labels(Provider(provider).value, region).inc()

    def record_last_success_timestamp(self, provider: Provider, region: str, timestamp: float) -> None:
        self.last_update_time.labels(Provider(provider).value, region).set(timestamp)

    def render(self) -> Tuple[bytes, str]:
        """Text exposition of the registry and its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
