"""
Pricing fetch scheduler.
Refreshes every configured (provider, region, instance type) target once at
startup and then once per poll interval, isolating each target's failure.
"""
from typing import Any, Callable, Dict, List, Optional, Protocol
from dataclasses import dataclass
import asyncio
import logging
import time

from pricing_monitor.core.config import Config
from pricing_monitor.domain.pricing_models import FetchTarget, PricePoint, Provider, build_targets
from pricing_monitor.pricing.aws_pricing_client import AWSPricingClient
from pricing_monitor.pricing.gcp_pricing_client import GCPPricingClient
from pricing_monitor.services.metric_sink import MetricSink


logger = logging.getLogger(__name__)


class PricingFetcher(Protocol):
    async def fetch_pricing(self, region: str, instance_type: str) -> PricePoint:
        ...


FetcherFactory = Callable[[Config], PricingFetcher]


def default_aws_fetcher(config: Config) -> PricingFetcher:
    return AWSPricingClient(pricing_region=config.AWS_PRICING_REGION)


def default_gcp_fetcher(config: Config) -> PricingFetcher:
    return GCPPricingClient(
        base_url=config.GCP_BILLING_API_BASE_URL,
        api_key=config.GCP_API_KEY,
        access_token=config.GCP_ACCESS_TOKEN,
        timeout=config.GCP_HTTP_TIMEOUT_SECONDS,
    )


class SchedulerStartupError(Exception):
    """Raised when a configured provider's fetcher cannot be initialized."""
    pass


@dataclass
class PassResult:
    """Outcome counts of one fetch pass."""
    succeeded: int = 0
    failed: int = 0
    started_at: float = 0.0
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "started_at": self.started_at,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class FetchScheduler:
    """
    Periodic fan-out of pricing fetches.

    Lifecycle:
    - start(): build fetchers for providers with at least one region
    - run(): initial pass, then one pass per interval until stop()
    - close(): release fetcher resources

    Passes never overlap: the next wait only begins once every fetch of the
    current pass has resolved or hit its deadline.
    """

    def __init__(
        self,
        config: Config,
        sink: MetricSink,
        aws_fetcher_factory: FetcherFactory = default_aws_fetcher,
        gcp_fetcher_factory: FetcherFactory = default_gcp_fetcher,
        clock: Callable[[], float] = time.time
    ):
        self.config = config
        self.sink = sink
        self.interval = config.POLL_INTERVAL_SECONDS
        self.fetch_timeout = config.fetch_timeout
        self.clock = clock

        self._factories: Dict[Provider, FetcherFactory] = {
            Provider.AWS: aws_fetcher_factory,
            Provider.GCP: gcp_fetcher_factory,
        }
        self.fetchers: Dict[Provider, PricingFetcher] = {}
        self.targets: List[FetchTarget] = []
        self.last_pass: Optional[PassResult] = None
        self._started = False
        self._stop_event = asyncio.Event()

    def _provider_settings(self) -> Dict[Provider, tuple]:
        return {
            Provider.AWS: (self.config.AWS_REGIONS, self.config.AWS_INSTANCE_TYPES),
            Provider.GCP: (self.config.GCP_REGIONS, self.config.GCP_INSTANCE_TYPES),
        }

    def start(self) -> None:
        """
        Initialize fetchers and targets.

        Providers without regions are skipped entirely so their credentials
        are never required.

        Raises:
            SchedulerStartupError: If a configured provider's fetcher fails to initialize
        """
        if self._started:
            return

        fetchers: Dict[Provider, PricingFetcher] = {}
        targets: List[FetchTarget] = []
        for provider, (regions, instance_types) in self._provider_settings().items():
            if not regions:
                continue
            try:
                fetchers[provider] = self._factories[provider](self.config)
            except Exception as error:
                raise SchedulerStartupError(
                    f"failed to initialize {provider.value} pricing fetcher: {error}"
                ) from error
            targets.extend(build_targets(provider, regions, instance_types))

        # nothing is kept from a partially failed start
        self.fetchers = fetchers
        self.targets = targets
        self._started = True
        logger.info(
            f"pricing scheduler initialized: providers={[p.value for p in self.fetchers]} "
            f"targets={len(self.targets)} interval={self.interval}s "
            f"fetch_timeout={self.fetch_timeout}s"
        )

    async def _fetch_target(self, target: FetchTarget) -> bool:
        """Fetch one target and record exactly one outcome; never raises."""
        fetcher = self.fetchers[target.provider]
        try:
            pricing = await asyncio.wait_for(
                fetcher.fetch_pricing(target.region, target.instance_type),
                timeout=self.fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"timed out fetching {target.provider.value} pricing "
                f"region={target.region} instance_type={target.instance_type} "
                f"after {self.fetch_timeout}s"
            )
            self.sink.record_failure(target.provider, target.region)
            return False
        except Exception as error:
            logger.error(
                f"failed to fetch {target.provider.value} pricing "
                f"region={target.region} instance_type={target.instance_type}: {error}"
            )
            self.sink.record_failure(target.provider, target.region)
            return False

        self.sink.record_price(pricing)
        self.sink.record_last_success_timestamp(target.provider, target.region, self.clock())
        logger.info(
            f"updated {target.provider.value} pricing region={target.region} "
            f"instance_type={target.instance_type} cost_per_hour={pricing.total_hourly_cost}"
        )
        return True

    async def run_pass(self) -> PassResult:
        """
        Fetch every target concurrently and wait for all of them.

        Returns:
            PassResult with success/failure counts
        """
        if not self._started:
            self.start()

        logger.info(f"fetching pricing data for {len(self.targets)} targets")
        started = time.monotonic()
        result = PassResult(started_at=self.clock())

        outcomes = await asyncio.gather(
            *(self._fetch_target(target) for target in self.targets)
        )
        result.succeeded = sum(1 for ok in outcomes if ok)
        result.failed = len(outcomes) - result.succeeded
        result.duration_seconds = time.monotonic() - started

        self.last_pass = result
        logger.info(
            f"pricing data fetch complete: succeeded={result.succeeded} failed={result.failed}"
        )
        return result

    async def _wait_for_next_tick(self, pass_started: float) -> bool:
        """Sleep until the next tick; returns False if stop() was called."""
        if self._stop_event.is_set():
            return False
        remaining = max(0.0, self.interval - (time.monotonic() - pass_started))
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=remaining)
        except asyncio.TimeoutError:
            return True
        return False

    async def run(self) -> None:
        """
        Run the initial pass and then the steady-state polling loop.

        Returns once stop() has been called and the in-flight pass has
        finished. Cancelling the task running this coroutine cancels any
        in-flight fetches.
        """
        self.start()

        pass_started = time.monotonic()
        try:
            await self.run_pass()
        except Exception as error:
            logger.error(f"initial pricing fetch failed: {error}")

        while await self._wait_for_next_tick(pass_started):
            pass_started = time.monotonic()
            try:
                await self.run_pass()
            except Exception as error:
                logger.error(f"pricing fetch failed: {error}")

        logger.info("stopping pricing monitor")

    def stop(self) -> None:
        """Request the polling loop to exit after the current pass."""
        self._stop_event.set()

    async def close(self) -> None:
        """Close fetchers that hold network resources."""
        for provider, fetcher in self.fetchers.items():
            aclose = getattr(fetcher, "aclose", None)
            if aclose is None:
                continue
            try:
                await aclose()
            except Exception as error:
                logger.warning(f"error closing {provider.value} pricing fetcher: {error}")
