"""Schema module - organized by domain."""

# Convenience imports for common schemas
from modbus_exporter.schemas.api_models import HealthResponse
from modbus_exporter.schemas.modbus_models import (
    DecodedMetric,
    ExporterConfig,
    MetricDef,
    ModuleConfig,
)

__all__ = [
    # API models
    "HealthResponse",
    # Modbus models
    "DecodedMetric",
    "ExporterConfig",
    "MetricDef",
    "ModuleConfig",
]
