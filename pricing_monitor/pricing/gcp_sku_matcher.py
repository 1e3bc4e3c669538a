"""
GCP billing catalog SKU matching.
Selects the per-core and per-GB-memory SKUs for a region and machine family
from the Cloud Billing Catalog, which lists one line item per priced dimension.
"""
from typing import AsyncIterable, Dict, Iterable, List, Optional, Tuple

from pricing_monitor.domain.pricing_models import PriceDimension, Sku


# Description keywords identifying the priced dimension
DIMENSION_KEYWORDS: Dict[PriceDimension, Tuple[str, ...]] = {
    PriceDimension.CORE: ("core", "vcpu"),
    PriceDimension.MEMORY: ("ram", "memory"),
}

# Description phrases identifying a machine family; unlisted families
# match on the bare family name
FAMILY_PHRASES: Dict[str, Tuple[str, ...]] = {
    "e2": ("e2 instance",),
    "n1": ("n1 predefined", "n1 instance"),
    "n2": ("n2 instance", "n2d instance"),
    "n2d": ("n2 instance", "n2d instance"),
    "n4": ("n4 instance", "n4d instance"),
    "n4d": ("n4 instance", "n4d instance"),
    "c2": ("c2 instance",),
    "c2d": ("c2d instance",),
    "c3": ("c3 instance",),
}


class SkuNotFoundError(LookupError):
    """Raised when the catalog has no SKU for a region/family/dimension."""

    def __init__(self, dimension: PriceDimension, region: str, family: str):
        self.dimension = dimension
        self.region = region
        self.family = family
        super().__init__(
            f"no {dimension.value} pricing found for region {region} and family {family}"
        )


def family_phrases(family: str) -> Tuple[str, ...]:
    """Description phrases that identify SKUs of a machine family."""
    return FAMILY_PHRASES.get(family, (family,))


def sku_matches(sku: Sku, region: str, family: str, dimension: PriceDimension) -> bool:
    """Check whether a SKU prices `dimension` for `family` in `region`."""
    description = sku.description.lower()

    if not any(keyword in description for keyword in DIMENSION_KEYWORDS[dimension]):
        return False

    if not any(phrase in description for phrase in family_phrases(family)):
        return False

    return region in sku.service_regions


def match_sku(
    skus: Iterable[Sku],
    region: str,
    family: str,
    dimension: PriceDimension
) -> Optional[Sku]:
    """
    Return the first SKU in catalog order that matches and carries a price tier.

    The catalog lists at most one simple-tier SKU per (region, family,
    dimension), so the first match is taken without ranking.
    """
    for sku in skus:
        if sku.pricing_tiers and sku_matches(sku, region, family, dimension):
            return sku
    return None


async def find_unit_price(
    pages: AsyncIterable[List[Sku]],
    region: str,
    family: str,
    dimension: PriceDimension
) -> float:
    """
    Scan catalog pages in order and return the first matching SKU's unit price.

    Consumption stops at the first match; the remaining pages are not fetched.

    Args:
        pages: Forward-only async iterable of SKU pages
        region: GCP region (e.g., 'us-central1')
        family: Machine family (e.g., 'n2')
        dimension: CORE or MEMORY

    Returns:
        USD price per unit (per core-hour or per GB-hour)

    Raises:
        SkuNotFoundError: If no page yields a matching SKU with a positive price
    """
    try:
        async for page in pages:
            sku = match_sku(page, region, family, dimension)
            if sku is not None:
                price = sku.pricing_tiers[0].amount
                if price <= 0:
                    break
                return price
    finally:
        aclose = getattr(pages, "aclose", None)
        if aclose is not None:
            await aclose()

    raise SkuNotFoundError(dimension, region, family)
