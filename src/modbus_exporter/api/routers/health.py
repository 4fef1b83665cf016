"""Health check endpoints."""

from fastapi import APIRouter, Request

from modbus_exporter.schemas.api_models import HealthResponse

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Health check endpoint that verifies the API is running.
    
    Lists the configured modules without performing Modbus operations.
    """
    config = request.app.state.exporter.config
    return HealthResponse(
        ok=True,
        modules=[module.name for module in config.modules],
        detail="API is healthy"
    )
