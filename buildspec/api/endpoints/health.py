from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from buildspec import __version__
from buildspec.core.observability.metrics import inc_named, snapshot_named

router = APIRouter()


@router.get("/health")
def health_check():
    inc_named("health")
    return {"status": "healthy", "version": __version__}


@router.get("/api/v2/metrics/snapshot")
def metrics_snapshot():
    return {"named": snapshot_named()}


@router.get("/metrics", include_in_schema=False)
def prometheus_metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
