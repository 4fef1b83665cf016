"""
Modbus Client Module

Handles Modbus TCP and RTU communication through pymodbus, connection
management and error translation. Every pymodbus failure leaves this module
as a ``TransportError`` subclass.
"""

import struct
import time
from contextlib import contextmanager
from typing import Iterator, Tuple, Union

from pymodbus import FramerType
from pymodbus.client import ModbusSerialClient, ModbusTcpClient
from pymodbus.exceptions import ConnectionException, ModbusException, ModbusIOException

from modbus_exporter.errors import (
    DeviceExceptionError,
    TransportConnectionError,
    TransportError,
    TransportTimeoutError,
)
from modbus_exporter.logging import get_logger
from modbus_exporter.schemas.modbus_models import ModuleConfig, Protocol, RegisterClass

logger = get_logger(__name__)

DEFAULT_TCP_PORT = 502

__all__ = ["ModbusTransport", "modbus_transport", "parse_tcp_target", "translate_modbus_error"]

_EXCEPTION_MESSAGES = {
    1: "Illegal function - The function code received is not supported",
    2: "Illegal data address - The data address received is not valid",
    3: "Illegal data value - The value in the request is not valid",
    4: "Server device failure - The server encountered an error processing the request",
}


def parse_tcp_target(target: str) -> Tuple[str, int]:
    """
    Split a ``host[:port]`` target.
    
    Raises:
        ValueError: If the port is not a valid integer
    """
    host, sep, port = target.rpartition(":")
    if not sep:
        return target, DEFAULT_TCP_PORT
    return host, int(port)


def translate_modbus_error(error: Exception, target: str) -> TransportError:
    """
    Translate pymodbus and socket exceptions into transport errors.
    
    Args:
        error: The exception raised during the Modbus operation
        target: Target address (for error messages)
        
    Returns:
        The matching ``TransportError``
    """
    if isinstance(error, TransportError):
        return error
    if isinstance(error, ConnectionException):
        return TransportConnectionError(f"unable to connect with target {target}: {error}")
    if isinstance(error, ModbusIOException):
        return TransportTimeoutError(f"no response from target {target}: {error}")
    if isinstance(error, TimeoutError):
        return TransportTimeoutError(f"request to target {target} timed out")
    if isinstance(error, OSError):
        return TransportConnectionError(f"unable to connect with target {target}: {error}")
    if isinstance(error, ModbusException):
        return DeviceExceptionError(f"Modbus error from target {target}: {error}")
    return TransportError(f"unexpected transport error for target {target}: {error}")


def _create_client(module: ModuleConfig, target: str) -> Union[ModbusTcpClient, ModbusSerialClient]:
    timeout_s = module.timeout / 1000
    if module.protocol == Protocol.SERIAL:
        return ModbusSerialClient(
            port=target,
            framer=FramerType.RTU,
            baudrate=module.baudrate,
            bytesize=module.databits,
            parity=module.parity,
            stopbits=module.stopbits,
            timeout=timeout_s,
            retries=0,
        )
    try:
        host, port = parse_tcp_target(target)
    except ValueError as e:
        raise TransportConnectionError(f"invalid tcp target '{target}': {e}")
    return ModbusTcpClient(host=host, port=port, timeout=timeout_s, retries=0)


class ModbusTransport:
    """Reads raw register bytes from one connected target and unit."""

    def __init__(self, client: Union[ModbusTcpClient, ModbusSerialClient], target: str, sub_target: int):
        self.client = client
        self.target = target
        self.sub_target = sub_target

    def read(self, register_class: RegisterClass, address: int, quantity: int) -> bytes:
        """
        Read ``quantity`` registers (or bits) starting at ``address``.
        
        Args:
            register_class: Data table to read from
            address: 1-based register number, sent as ``address - 1`` on the wire
            quantity: Number of registers/bits to read
            
        Returns:
            Two big-endian bytes per register; coils and discrete inputs yield
            one word valued 0 or 1 per bit
            
        Raises:
            TransportError: On connection, timeout or device exception failures
        """
        wire_address = address - 1
        try:
            if register_class == RegisterClass.HOLDING_REGISTER:
                result = self.client.read_holding_registers(
                    wire_address, count=quantity, device_id=self.sub_target
                )
            elif register_class == RegisterClass.INPUT_REGISTER:
                result = self.client.read_input_registers(
                    wire_address, count=quantity, device_id=self.sub_target
                )
            elif register_class == RegisterClass.COIL:
                result = self.client.read_coils(
                    wire_address, count=quantity, device_id=self.sub_target
                )
            elif register_class == RegisterClass.DISCRETE_INPUT:
                result = self.client.read_discrete_inputs(
                    wire_address, count=quantity, device_id=self.sub_target
                )
            else:
                raise ValueError(f"Invalid register class: {register_class}")
        except (ModbusException, OSError) as e:
            raise translate_modbus_error(e, self.target) from e

        if result.isError():
            code = getattr(result, "exception_code", None)
            message = _EXCEPTION_MESSAGES.get(code, f"Modbus error code: {code}")
            raise DeviceExceptionError(
                f"target {self.target} sub_target {self.sub_target} rejected read of "
                f"{quantity} {register_class.value} at {address}: {message}",
                exception_code=code,
            )

        if register_class in (RegisterClass.COIL, RegisterClass.DISCRETE_INPUT):
            values = [int(bool(bit)) for bit in result.bits[:quantity]]
        else:
            values = list(result.registers)
        return struct.pack(f">{len(values)}H", *values)


@contextmanager
def modbus_transport(module: ModuleConfig, target: str, sub_target: int) -> Iterator[ModbusTransport]:
    """
    Context manager opening a connection to ``target`` for the duration of one scrape.
    Ensures proper cleanup of sockets and serial ports after use.
    
    Args:
        module: Module whose protocol and line settings are used
        target: ``host[:port]`` for tcp, serial device path for serial
        sub_target: Modbus unit/slave ID
        
    Yields:
        ModbusTransport bound to the connected client
        
    Raises:
        TransportConnectionError: If the connection cannot be established
    """
    client = _create_client(module, target)
    try:
        logger.debug(f"Connecting to {module.protocol.value} target {target}")
        try:
            connected = client.connect()
        except (ModbusException, OSError) as e:
            raise translate_modbus_error(e, target) from e
        if not connected:
            raise TransportConnectionError(f"unable to connect with target {target}")
        if module.workarounds.sleep_after_connect:
            time.sleep(module.workarounds.sleep_after_connect / 1000)
        yield ModbusTransport(client, target, sub_target)
    finally:
        client.close()
