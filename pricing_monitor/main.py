"""
Main FastAPI application bootstrap.
Wires the pricing scheduler into the application lifespan and exposes metrics.
"""
from contextlib import asynccontextmanager
from typing import Callable, Optional
import asyncio
import logging

from fastapi import FastAPI

from pricing_monitor.api.metrics import router as metrics_router
from pricing_monitor.core.config import Config
from pricing_monitor.services.fetch_scheduler import FetchScheduler
from pricing_monitor.services.metric_sink import PrometheusMetricSink


logger = logging.getLogger(__name__)


SchedulerFactory = Callable[[Config, PrometheusMetricSink], FetchScheduler]


def create_app(
    config: Config,
    scheduler_factory: Optional[SchedulerFactory] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Validated configuration
        scheduler_factory: Builds the scheduler from config and sink
                           (uses FetchScheduler with default fetchers if None)

    Returns:
        FastAPI app whose lifespan runs the polling loop
    """
    sink = PrometheusMetricSink()
    build_scheduler = scheduler_factory or (lambda cfg, metric_sink: FetchScheduler(cfg, metric_sink))
    scheduler = build_scheduler(config, sink)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup failures (e.g. provider client init) abort application startup
        scheduler.start()
        task = asyncio.create_task(scheduler.run(), name="pricing-scheduler")
        try:
            yield
        finally:
            logger.info("shutting down...")
            scheduler.stop()
            # in-flight vendor calls are cancelled; threads already inside boto3 finish on their own
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("pricing scheduler cancelled")
            except Exception as error:
                logger.error(f"pricing scheduler exited with error: {error}")
            await scheduler.close()

    app = FastAPI(
        title="Cloud Pricing Monitor",
        description="Exports cloud VM pricing as Prometheus metrics",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.sink = sink
    app.state.scheduler = scheduler

    app.include_router(metrics_router)

    return app
