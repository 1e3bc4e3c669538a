"""
GCP Cloud Billing Catalog API client.
Streams Compute Engine SKUs over REST and composes machine type prices
from independently priced cores and memory.
"""
from typing import AsyncIterator, Dict, List, Optional
import logging

import httpx

from pricing_monitor.domain.pricing_models import PriceDimension, PricePoint, Provider, Sku
from pricing_monitor.pricing.gcp_machine_types import MachineTypeError, resolve_machine_type
from pricing_monitor.pricing.gcp_sku_matcher import SkuNotFoundError, find_unit_price


logger = logging.getLogger(__name__)


class GCPPricingError(Exception):
    """Raised when GCP pricing lookup fails."""
    pass


class GCPPricingClient:
    """Client for querying GCP Cloud Billing Catalog API."""

    COMPUTE_ENGINE_SERVICE_ID = "services/6F81-5844-456A"
    PAGE_SIZE = 5000

    def __init__(
        self,
        base_url: str = "https://cloudbilling.googleapis.com",
        api_key: str = "",
        access_token: str = "",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize GCP pricing client.

        Args:
            base_url: Cloud Billing API root
            api_key: API key sent as the `key` query parameter
            access_token: OAuth bearer token, used when no API key is set
            timeout: Per-request timeout in seconds
            http_client: Pre-built httpx client (creates new if None)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        headers: Dict[str, str] = {"Accept": "application/json"}
        if access_token and not api_key:
            headers["Authorization"] = f"Bearer {access_token}"
        self.http_client = http_client or httpx.AsyncClient(headers=headers, timeout=timeout)

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def list_skus(self) -> AsyncIterator[List[Sku]]:
        """
        Stream Compute Engine SKUs one catalog page at a time.

        Yields:
            List of Sku per page, in catalog order

        Raises:
            GCPPricingError: If a page request fails or is not valid JSON
        """
        url = f"{self.base_url}/v1/{self.COMPUTE_ENGINE_SERVICE_ID}/skus"
        page_token = ""

        while True:
            params = {"currencyCode": "USD", "pageSize": str(self.PAGE_SIZE)}
            if self.api_key:
                params["key"] = self.api_key
            if page_token:
                params["pageToken"] = page_token

            try:
                response = await self.http_client.get(url, params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as error:
                raise GCPPricingError(
                    f"Failed to query GCP pricing: {error.response.status_code}"
                ) from error
            except httpx.RequestError as error:
                raise GCPPricingError(f"Failed to connect to GCP pricing API: {error}") from error
            except ValueError as error:
                raise GCPPricingError(f"Failed to parse GCP pricing response: {error}") from error

            yield [Sku.from_api(item) for item in data.get("skus") or []]

            page_token = data.get("nextPageToken") or ""
            if not page_token:
                return

    async def _unit_price(self, region: str, family: str, dimension: PriceDimension) -> float:
        try:
            return await find_unit_price(self.list_skus(), region, family, dimension)
        except SkuNotFoundError as error:
            raise GCPPricingError(str(error)) from error

    async def fetch_pricing(self, region: str, machine_type: str) -> PricePoint:
        """
        Get the hourly price for a Compute Engine machine type.

        Core and memory prices are looked up in separate catalog scans;
        if either is missing no price is produced.

        Args:
            region: GCP region (e.g., 'us-central1')
            machine_type: GCE machine type (e.g., 'n2-standard-2')

        Returns:
            PricePoint for the machine type

        Raises:
            GCPPricingError: If the machine type cannot be resolved or pricing is not found
        """
        logger.debug(f"fetching GCP pricing region={region} machine_type={machine_type}")

        try:
            shape = resolve_machine_type(machine_type)
        except MachineTypeError as error:
            raise GCPPricingError(f"failed to parse machine type: {error}") from error

        vcpu_price = await self._unit_price(region, shape.family, PriceDimension.CORE)
        memory_price = await self._unit_price(region, shape.family, PriceDimension.MEMORY)

        total_cost = vcpu_price * shape.vcpus + memory_price * shape.memory_gb
        if total_cost <= 0:
            raise GCPPricingError(
                f"no valid pricing found for machine type {machine_type} in region {region}"
            )

        logger.debug(
            f"fetched GCP pricing region={region} machine_type={machine_type} "
            f"vcpu_price={vcpu_price} memory_price={memory_price} total_cost={total_cost} "
            f"vcpus={shape.vcpus} memory_gb={shape.memory_gb}"
        )

        return PricePoint(
            provider=Provider.GCP,
            region=region,
            instance_type=machine_type,
            total_hourly_cost=total_cost,
            memory_gb=shape.memory_gb,
            vcpus=shape.vcpus,
        )
