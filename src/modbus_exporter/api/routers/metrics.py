"""Exporter self-instrumentation endpoint."""

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
def metrics(request: Request):
    """Process-wide exporter metrics."""
    registry = request.app.state.instrumentation.registry
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
