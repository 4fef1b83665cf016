"""
Scrape request handling.

Validates the query parameters, serialises access to serial buses, retries
failed serial scrapes and turns the outcome into a response and telemetry.
"""

import time
from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import status
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from modbus_exporter.bus.locks import BusLockRegistry
from modbus_exporter.errors import ExporterError, InvalidRequestError, RequestStatus, classify_error
from modbus_exporter.logging import get_logger
from modbus_exporter.metrics.instrumentation import Instrumentation
from modbus_exporter.modbus.client import parse_tcp_target
from modbus_exporter.modbus.exporter import Exporter
from modbus_exporter.schemas.modbus_models import ModuleConfig, Protocol

logger = get_logger(__name__)

# Additional attempts after a failed serial scrape
SERIAL_RETRIES = 2

MAX_SUB_TARGET = 255


@dataclass(frozen=True)
class ScrapeResult:
    """HTTP outcome of one scrape request."""
    status_code: int
    body: bytes
    content_type: str = "text/plain; charset=utf-8"


class ScrapeHandler:
    """Coordinates one ``/modbus`` request from validation to response body."""

    def __init__(self, exporter: Exporter, bus_locks: BusLockRegistry, instrumentation: Instrumentation):
        self.exporter = exporter
        self.bus_locks = bus_locks
        self.instrumentation = instrumentation

    def validate(
        self,
        module_name: Optional[str],
        target: Optional[str],
        sub_target: Optional[str],
    ) -> Tuple[ModuleConfig, int]:
        """
        Check the request parameters.
        
        Returns:
            The resolved module and the parsed sub_target
            
        Raises:
            InvalidRequestError: On missing, malformed or unknown parameters
        """
        if not module_name:
            raise InvalidRequestError("'module' parameter must be specified")
        if not target:
            raise InvalidRequestError("'target' parameter must be specified")
        if not sub_target:
            raise InvalidRequestError("'sub_target' parameter must be specified")

        if not (sub_target.isascii() and sub_target.isdigit()):
            raise InvalidRequestError(
                f"'sub_target' parameter must be a valid integer: {sub_target!r}"
            )
        sub_target_id = int(sub_target)
        if sub_target_id > MAX_SUB_TARGET:
            raise InvalidRequestError(
                f"'sub_target' parameter must be from 0 to {MAX_SUB_TARGET}. Invalid value: {sub_target_id}"
            )

        module = self.exporter.get_module(module_name)
        if module is None:
            raise InvalidRequestError(f"module '{module_name}' not defined in configuration file")

        if module.protocol == Protocol.TCP:
            try:
                parse_tcp_target(target)
            except ValueError:
                raise InvalidRequestError(f"'target' parameter must be host[:port], got '{target}'")

        return module, sub_target_id

    def _scrape_serial(self, target: str, sub_target: int, module_name: str) -> CollectorRegistry:
        # the bus stays locked across retries
        with self.bus_locks.hold(target, sub_target):
            for attempt in range(SERIAL_RETRIES + 1):
                try:
                    return self.exporter.scrape(target, sub_target, module_name)
                except Exception as e:
                    if attempt == SERIAL_RETRIES:
                        raise
                    self.instrumentation.serial_retries.labels(target, str(sub_target)).inc()
                    logger.warning(
                        f"Serial scrape of {target} sub_target {sub_target} failed "
                        f"(attempt {attempt + 1}), retrying: {e}"
                    )

    def handle(
        self,
        module_name: Optional[str],
        target: Optional[str],
        sub_target: Optional[str],
    ) -> ScrapeResult:
        """
        Run one scrape request.
        
        Args:
            module_name: Value of the ``module`` query parameter
            target: Value of the ``target`` query parameter
            sub_target: Value of the ``sub_target`` query parameter
            
        Returns:
            Exposition body on success, plain text error otherwise
        """
        try:
            module, sub_target_id = self.validate(module_name, target, sub_target)
        except InvalidRequestError as e:
            return ScrapeResult(status_code=e.http_status_code, body=e.message.encode())

        logger.info(f"Got scrape request module={module_name} target={target} sub_target={sub_target_id}")

        start = time.monotonic()
        try:
            if module.protocol == Protocol.SERIAL:
                registry = self._scrape_serial(target, sub_target_id, module_name)
            else:
                registry = self.exporter.scrape(target, sub_target_id, module_name)
        except Exception as e:
            http_status, request_status = classify_error(e)
            if isinstance(e, ExporterError):
                logger.error(f"Failed to scrape target={target} module={module_name}: {e}")
            else:
                logger.error(f"Unexpected error scraping target={target} module={module_name}: {e}", exc_info=True)
            self.instrumentation.record_request(target, sub_target_id, request_status)
            message = (
                f"failed to scrape target '{target}' sub_target '{sub_target_id}' "
                f"with module '{module_name}': {e}"
            )
            return ScrapeResult(status_code=http_status, body=message.encode())

        duration = time.monotonic() - start
        self.instrumentation.request_duration.labels(target, str(sub_target_id)).inc(duration)
        self.instrumentation.record_request(target, sub_target_id, RequestStatus.OK)

        return ScrapeResult(
            status_code=status.HTTP_200_OK,
            body=generate_latest(registry),
            content_type=CONTENT_TYPE_LATEST,
        )
