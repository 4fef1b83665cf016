"""API request/response models."""

from modbus_exporter.schemas.api_models.models import HealthResponse

__all__ = ["HealthResponse"]
