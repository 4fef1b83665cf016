"""Prometheus metric helpers."""

from modbus_exporter.metrics.instrumentation import Instrumentation
from modbus_exporter.metrics.registration import register_metrics

__all__ = ["Instrumentation", "register_metrics"]
