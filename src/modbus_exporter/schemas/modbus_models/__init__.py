"""Modbus module and metric models."""

from modbus_exporter.schemas.modbus_models.models import (
    DataType,
    DecodedMetric,
    Endianness,
    ExporterConfig,
    MetricDef,
    MetricType,
    ModuleConfig,
    Protocol,
    RegisterClass,
    WorkaroundConfig,
)

__all__ = [
    "DataType",
    "DecodedMetric",
    "Endianness",
    "ExporterConfig",
    "MetricDef",
    "MetricType",
    "ModuleConfig",
    "Protocol",
    "RegisterClass",
    "WorkaroundConfig",
]
