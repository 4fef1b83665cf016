"""
Exporter exceptions.

Every failure that can end a scrape is raised as an ``ExporterError`` subclass
carrying an ``ErrorKind``. The scrape handler maps the kind to an HTTP status
and a request status label, so no error text is ever inspected.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    INVALID_REQUEST = "invalid_request"
    CONNECTION = "connection"
    TIMEOUT = "timeout"
    PARSING = "parsing"


class RequestStatus(str, Enum):
    """Status label of the ``modbus_requests_total`` counter."""

    OK = "OK"
    ERROR_SOCKET = "ERROR_SOCKET"
    ERROR_TIMEOUT = "ERROR_TIMEOUT"
    ERROR_PARSING_VALUE = "ERROR_PARSING_VALUE"


class ExporterError(Exception):
    """Base class for all exporter errors."""
    http_status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = ErrorKind.PARSING

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload


class InvalidRequestError(ExporterError):
    """Raised when scrape parameters are missing, malformed or name an unknown module."""
    http_status_code = status.HTTP_400_BAD_REQUEST
    kind = ErrorKind.INVALID_REQUEST


class ConfigError(ExporterError):
    """Raised when the module configuration file cannot be loaded or is invalid."""


class TransportError(ExporterError):
    """Base class for failures reported by the Modbus transport."""


class TransportConnectionError(TransportError):
    """Raised when the connection to the target could not be established."""
    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    kind = ErrorKind.CONNECTION


class TransportTimeoutError(TransportError):
    """Raised when the target did not answer in time."""
    http_status_code = status.HTTP_504_GATEWAY_TIMEOUT
    kind = ErrorKind.TIMEOUT


class DeviceExceptionError(TransportError):
    """Raised when the device answered with a Modbus exception response."""

    def __init__(self, message: str, exception_code: Optional[int] = None):
        super().__init__(message, payload={"exception_code": exception_code})
        self.exception_code = exception_code


class ValueDecodeError(ExporterError):
    """Raised when raw register bytes cannot be turned into a value."""


class InsufficientRegistersError(ValueDecodeError):
    """Raised when fewer bytes were read than the data type needs."""

    def __init__(self, data_type: str, required: int, available: int):
        super().__init__(
            f"insufficient registers for {data_type}: need {required} bytes, got {available}",
            payload={"required": required, "available": available},
        )
        self.data_type = data_type
        self.required = required
        self.available = available


class LabelSchemaMismatchError(ExporterError):
    """Raised when one metric name is used with different label keys, type or help."""


_STATUS_BY_KIND = {
    ErrorKind.CONNECTION: RequestStatus.ERROR_SOCKET,
    ErrorKind.TIMEOUT: RequestStatus.ERROR_TIMEOUT,
    ErrorKind.PARSING: RequestStatus.ERROR_PARSING_VALUE,
}


def classify_error(error: Exception) -> tuple[int, RequestStatus]:
    """
    Map a scrape failure to its HTTP status code and request status label.

    Anything that is not an ``ExporterError`` counts as a value parsing failure.
    """
    if isinstance(error, ExporterError) and error.kind in _STATUS_BY_KIND:
        return error.http_status_code, _STATUS_BY_KIND[error.kind]
    return status.HTTP_500_INTERNAL_SERVER_ERROR, RequestStatus.ERROR_PARSING_VALUE
