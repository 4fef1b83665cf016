"""Modbus to Prometheus exporter service."""

__version__ = "1.0.0"
