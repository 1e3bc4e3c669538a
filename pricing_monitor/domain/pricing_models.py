"""
Domain models for normalized VM pricing.
Defines the canonical price record and the scheduling units that produce it.
"""
from typing import List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum


class Provider(str, Enum):
    """Cloud providers whose pricing is monitored."""
    AWS = "aws"
    GCP = "gcp"


class PriceDimension(str, Enum):
    """Independently priced resource dimensions in the GCP billing model."""
    CORE = "core"
    MEMORY = "memory"


@dataclass(frozen=True)
class PricePoint:
    """Canonical hourly cost record for one (provider, region, instance type)."""
    provider: Provider
    region: str
    instance_type: str
    total_hourly_cost: float  # USD per hour
    memory_gb: float
    vcpus: int

    def __post_init__(self):
        if self.total_hourly_cost < 0:
            raise ValueError(f"total_hourly_cost must be >= 0 (got: {self.total_hourly_cost})")
        if self.memory_gb < 0:
            raise ValueError(f"memory_gb must be >= 0 (got: {self.memory_gb})")
        if self.vcpus < 0:
            raise ValueError(f"vcpus must be >= 0 (got: {self.vcpus})")

    def cost_per_gb_hour(self) -> Optional[float]:
        """Hourly cost per GB of memory, or None if memory is unknown."""
        if self.memory_gb > 0:
            return self.total_hourly_cost / self.memory_gb
        return None

    def cost_per_vcpu_hour(self) -> Optional[float]:
        """Hourly cost per vCPU, or None if the core count is unknown."""
        if self.vcpus > 0:
            return self.total_hourly_cost / self.vcpus
        return None


@dataclass(frozen=True)
class FetchTarget:
    """One (provider, region, instance type) tuple scheduled for refresh."""
    provider: Provider
    region: str
    instance_type: str


def build_targets(
    provider: Provider,
    regions: List[str],
    instance_types: List[str]
) -> List[FetchTarget]:
    """
    Build the cross product of regions and instance types for a provider.

    Returns:
        List of FetchTarget, regions in the outer loop
    """
    return [
        FetchTarget(provider=provider, region=region, instance_type=instance_type)
        for region in regions
        for instance_type in instance_types
    ]


@dataclass(frozen=True)
class MachineShape:
    """Resolved compute shape of a machine type identifier."""
    family: str
    vcpus: int
    memory_gb: float


@dataclass(frozen=True)
class UnitPrice:
    """Fixed-point price: whole units plus nanos (10^-9 units)."""
    units: int = 0
    nanos: int = 0

    @property
    def amount(self) -> float:
        return self.units + self.nanos / 1e9


@dataclass(frozen=True)
class Sku:
    """A billable catalog line item from the GCP Cloud Billing Catalog."""
    sku_id: str
    description: str
    service_regions: Tuple[str, ...] = ()
    pricing_tiers: Tuple[UnitPrice, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: dict) -> "Sku":
        """
        Decode a SKU from the Cloud Billing Catalog JSON representation.

        Only the first pricingInfo entry is considered; its tiered rates
        become the pricing tiers in catalog order.
        """
        tiers: List[UnitPrice] = []
        pricing_info = data.get("pricingInfo") or []
        if pricing_info:
            expression = pricing_info[0].get("pricingExpression") or {}
            for rate in expression.get("tieredRates") or []:
                unit_price = rate.get("unitPrice") or {}
                tiers.append(UnitPrice(
                    # int64 fields are serialized as JSON strings
                    units=int(unit_price.get("units") or 0),
                    nanos=int(unit_price.get("nanos") or 0),
                ))

        return cls(
            sku_id=data.get("skuId", ""),
            description=data.get("description", ""),
            service_regions=tuple(data.get("serviceRegions") or ()),
            pricing_tiers=tuple(tiers),
        )
