"""
AWS Pricing API client.
Uses boto3 to query the official AWS Price List API and normalizes
on-demand EC2 product documents into PricePoints.
"""
from typing import Any, Dict, List, Optional, Union
import asyncio
import logging
import math

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from pricing_monitor.domain.aws_documents import AWSPriceListDocument
from pricing_monitor.domain.pricing_models import PricePoint, Provider


logger = logging.getLogger(__name__)


# Binary-prefixed units converted to decimal GB
MEMORY_UNIT_TO_GB: Dict[str, float] = {
    "GIB": 1.073741824,
    "MIB": 1.048576 / 1000,
    "TIB": 1099.511627776,
    "MB": 1 / 1000,
    "TB": 1000.0,
}


class AWSPricingError(Exception):
    """Raised when AWS pricing lookup fails."""
    pass


class AWSPricingStructureError(AWSPricingError):
    """Raised when a Price List document does not have the expected shape."""
    pass


class AWSPricingNotFoundError(AWSPricingError):
    """Raised when no usable on-demand price exists for a target."""
    pass


def parse_memory(memory: str) -> float:
    """
    Convert an AWS memory string like "8 GiB" to decimal GB.

    Args:
        memory: Quantity followed by a unit token

    Returns:
        Memory in GB; units other than the binary/decimal prefixes
        in MEMORY_UNIT_TO_GB are taken as GB already

    Raises:
        ValueError: If the string is not "<number> <unit>"
    """
    parts = memory.strip().split()
    if len(parts) != 2:
        raise ValueError(f"invalid memory format: {memory!r}")

    value = float(parts[0].replace(",", ""))
    if not math.isfinite(value):
        raise ValueError(f"invalid memory quantity: {memory!r}")
    return value * MEMORY_UNIT_TO_GB.get(parts[1].upper(), 1.0)


def _decode_document(raw: Union[str, bytes, Dict[str, Any]]) -> AWSPriceListDocument:
    try:
        if isinstance(raw, (str, bytes)):
            return AWSPriceListDocument.model_validate_json(raw)
        return AWSPriceListDocument.model_validate(raw)
    except ValidationError as error:
        raise AWSPricingStructureError(f"invalid pricing document: {error}") from error


def _first_positive_usd_price(document: AWSPriceListDocument) -> Optional[float]:
    """First finite pricePerUnit.USD > 0 in document order across all on-demand terms."""
    for term in document.terms.on_demand.values():
        for dimension in term.price_dimensions.values():
            usd = dimension.price_per_unit.get("USD")
            if usd is None:
                continue
            try:
                price = float(usd)
            except ValueError:
                continue
            if math.isfinite(price) and price > 0:
                return price
    return None


def normalize_aws_price_document(
    raw: Union[str, bytes, Dict[str, Any]],
    region: str,
    instance_type: str
) -> PricePoint:
    """
    Translate one Price List product document into a PricePoint.

    Memory and vCPU parse failures degrade to zero with a warning;
    the total cost is still usable without them.

    Raises:
        AWSPricingStructureError: If product/attributes/terms/OnDemand are missing
        AWSPricingNotFoundError: If no dimension carries a positive USD price
    """
    document = _decode_document(raw)

    if document.product is None:
        raise AWSPricingStructureError("invalid product data structure")
    if document.product.attributes is None:
        raise AWSPricingStructureError("invalid attributes data structure")
    if document.terms is None:
        raise AWSPricingStructureError("invalid terms data structure")
    if document.terms.on_demand is None:
        raise AWSPricingStructureError("no OnDemand pricing found")

    attributes = document.product.attributes

    memory_gb = 0.0
    try:
        memory_gb = parse_memory(attributes.memory or "")
    except ValueError as error:
        logger.warning(f"failed to parse memory {attributes.memory!r} for {instance_type}: {error}")

    vcpus = 0
    try:
        vcpus = int(attributes.vcpu or "")
    except ValueError as error:
        logger.warning(f"failed to parse vcpu {attributes.vcpu!r} for {instance_type}: {error}")

    hourly_price = _first_positive_usd_price(document)
    if hourly_price is None:
        raise AWSPricingNotFoundError(
            f"no valid pricing found for instance type {instance_type} in region {region}"
        )

    return PricePoint(
        provider=Provider.AWS,
        region=region,
        instance_type=instance_type,
        total_hourly_cost=hourly_price,
        memory_gb=max(memory_gb, 0.0),
        vcpus=max(vcpus, 0),
    )


def build_product_filters(region: str, instance_type: str) -> List[Dict[str, str]]:
    """TERM_MATCH filters selecting shared-tenancy on-demand Linux capacity."""
    terms = {
        "ServiceCode": "AmazonEC2",
        "instanceType": instance_type,
        "regionCode": region,
        "operatingSystem": "Linux",
        "tenancy": "Shared",
        "capacitystatus": "Used",
        "preInstalledSw": "NA",
    }
    return [
        {"Type": "TERM_MATCH", "Field": field, "Value": value}
        for field, value in terms.items()
    ]


class AWSPricingClient:
    """Client for querying AWS on-demand EC2 pricing using boto3."""

    MAX_RESULTS = 10

    def __init__(self, pricing_region: str = "us-east-1", pricing_client: Any = None):
        """
        Initialize AWS pricing client.

        Args:
            pricing_region: Region hosting the Price List API endpoint
                            (only us-east-1 and ap-south-1 serve it)
            pricing_client: Pre-built boto3 'pricing' client (creates new if None)

        Raises:
            AWSPricingError: If the boto3 client cannot be created
        """
        if pricing_client is not None:
            self.pricing_client = pricing_client
            return

        boto_config = Config(
            connect_timeout=10,
            read_timeout=30,
            retries={'max_attempts': 0}  # failures wait for the next poll
        )
        try:
            self.pricing_client = boto3.client(
                'pricing',
                region_name=pricing_region,
                config=boto_config
            )
        except (BotoCoreError, ClientError) as error:
            raise AWSPricingError(f"failed to load AWS config: {error}") from error

    async def fetch_pricing(self, region: str, instance_type: str) -> PricePoint:
        """
        Get the normalized on-demand price for an EC2 instance type.

        Args:
            region: AWS region code (e.g., 'us-east-1')
            instance_type: EC2 instance type (e.g., 't3.micro')

        Returns:
            PricePoint for the instance type

        Raises:
            AWSPricingError: If the API call fails or returns no usable price
        """
        logger.debug(f"fetching AWS pricing region={region} instance_type={instance_type}")

        try:
            # boto3 is blocking; keep sibling fetches concurrent
            response = await asyncio.to_thread(
                self.pricing_client.get_products,
                ServiceCode='AmazonEC2',
                Filters=build_product_filters(region, instance_type),
                MaxResults=self.MAX_RESULTS,
            )
        except (ClientError, BotoCoreError) as error:
            raise AWSPricingError(f"failed to get AWS pricing: {error}") from error

        price_list = response.get('PriceList') or []
        if not price_list:
            raise AWSPricingNotFoundError(
                f"no pricing data found for instance type {instance_type} in region {region}"
            )

        pricing = normalize_aws_price_document(price_list[0], region, instance_type)

        logger.debug(
            f"fetched AWS pricing region={region} instance_type={instance_type} "
            f"hourly_price={pricing.total_hourly_cost} memory_gb={pricing.memory_gb} "
            f"vcpus={pricing.vcpus}"
        )
        return pricing
