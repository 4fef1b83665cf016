"""
Process-wide self-instrumentation.

Counters and gauges describing the exporter's own scrape activity, kept on a
dedicated registry served at ``/metrics``.
"""

from prometheus_client import (
    PLATFORM_COLLECTOR,
    PROCESS_COLLECTOR,
    CollectorRegistry,
    Counter,
    Gauge,
    disable_created_metrics,
)

from modbus_exporter.errors import RequestStatus

TARGET_LABELS = ["target", "modbus_target"]

# Scrape registries are rebuilt per request, creation timestamps are noise
disable_created_metrics()


class Instrumentation:
    """Exporter telemetry metrics bound to one registry."""

    def __init__(self, registry: CollectorRegistry = None):
        if registry is None:
            registry = CollectorRegistry()
            registry.register(PROCESS_COLLECTOR)
            registry.register(PLATFORM_COLLECTOR)
        self.registry = registry

        self.request_duration = Counter(
            "modbus_request_duration_seconds_total",
            "Total duration of modbus successful requests by target in seconds",
            TARGET_LABELS,
            registry=registry,
        )
        self.serial_mutex_duration = Counter(
            "modbus_request_serial_mutex_duration_seconds_total",
            "Total duration of waiting for mutex lock for serial bus by serial bus and modbus_target in seconds",
            TARGET_LABELS,
            registry=registry,
        )
        self.serial_mutex_waiters = Gauge(
            "modbus_request_serial_mutex_waiters",
            "Total number of threads currently waiting for mutex lock by serial bus and modbus_target",
            TARGET_LABELS,
            registry=registry,
        )
        self.serial_retries = Counter(
            "modbus_request_serial_retries_total",
            "Total number of serial retries following errors by serial bus and modbus_target",
            TARGET_LABELS,
            registry=registry,
        )
        self.requests = Counter(
            "modbus_requests_total",
            "Number of modbus request by status and target",
            TARGET_LABELS + ["status"],
            registry=registry,
        )

    def record_request(self, target: str, sub_target: int, request_status: RequestStatus) -> None:
        """Count one finished scrape request."""
        self.requests.labels(target, str(sub_target), request_status.value).inc()
