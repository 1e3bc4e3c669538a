"""
Metrics and health API routes.
Serves the Prometheus scrape endpoint and a liveness summary.
"""
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import Response


router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    """
    Prometheus scrape endpoint.

    Returns:
        Text exposition of all pricing metrics
    """
    payload, content_type = request.app.state.sink.render()
    return Response(content=payload, media_type=content_type)


@router.get("/healthz")
async def healthz(request: Request) -> Dict[str, Any]:
    """Liveness probe with the outcome of the most recent pass."""
    scheduler = request.app.state.scheduler
    last_pass = scheduler.last_pass
    return {
        "status": "ok",
        "targets": len(scheduler.targets),
        "last_pass": last_pass.to_dict() if last_pass is not None else None,
    }
