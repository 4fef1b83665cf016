"""
Unit tests for the pymodbus transport adapter (mocked clients).

Run with: pytest tests/unit/test_client.py -v
"""

from unittest.mock import MagicMock, patch

import pytest
from pymodbus.exceptions import ConnectionException, ModbusIOException

from modbus_exporter.errors import (
    DeviceExceptionError,
    TransportConnectionError,
    TransportTimeoutError,
)
from modbus_exporter.modbus.client import (
    ModbusTransport,
    modbus_transport,
    parse_tcp_target,
    translate_modbus_error,
)
from modbus_exporter.schemas.modbus_models import ModuleConfig, RegisterClass


@pytest.fixture
def mock_modbus_client() -> MagicMock:
    client = MagicMock()
    client.connect.return_value = True
    client.read_coils.return_value = MagicMock(isError=lambda: False, bits=[True, False, True, False, False, False, False, False])
    client.read_discrete_inputs.return_value = MagicMock(isError=lambda: False, bits=[False, True] + [False] * 6)
    client.read_input_registers.return_value = MagicMock(isError=lambda: False, registers=[100])
    client.read_holding_registers.return_value = MagicMock(isError=lambda: False, registers=[0x0102, 0xFFFF])
    return client


def test_parse_tcp_target():
    assert parse_tcp_target("10.0.0.1") == ("10.0.0.1", 502)
    assert parse_tcp_target("10.0.0.1:1502") == ("10.0.0.1", 1502)
    with pytest.raises(ValueError):
        parse_tcp_target("10.0.0.1:abc")


def test_holding_registers_use_zero_based_address(mock_modbus_client):
    transport = ModbusTransport(mock_modbus_client, "10.0.0.1", 17)
    data = transport.read(RegisterClass.HOLDING_REGISTER, 1, 2)

    assert data == bytes([0x01, 0x02, 0xFF, 0xFF])
    mock_modbus_client.read_holding_registers.assert_called_once_with(0, count=2, device_id=17)


def test_input_registers(mock_modbus_client):
    transport = ModbusTransport(mock_modbus_client, "10.0.0.1", 1)
    assert transport.read(RegisterClass.INPUT_REGISTER, 300, 1) == bytes([0x00, 0x64])
    mock_modbus_client.read_input_registers.assert_called_once_with(299, count=1, device_id=1)


def test_coils_expand_to_one_word_per_bit(mock_modbus_client):
    transport = ModbusTransport(mock_modbus_client, "10.0.0.1", 1)
    data = transport.read(RegisterClass.COIL, 1, 3)
    assert data == bytes([0, 1, 0, 0, 0, 1])


def test_discrete_inputs(mock_modbus_client):
    transport = ModbusTransport(mock_modbus_client, "10.0.0.1", 1)
    assert transport.read(RegisterClass.DISCRETE_INPUT, 10, 2) == bytes([0, 0, 0, 1])
    mock_modbus_client.read_discrete_inputs.assert_called_once_with(9, count=2, device_id=1)


def test_exception_response(mock_modbus_client):
    mock_modbus_client.read_holding_registers.return_value = MagicMock(isError=lambda: True, exception_code=2)
    transport = ModbusTransport(mock_modbus_client, "10.0.0.1", 1)
    with pytest.raises(DeviceExceptionError) as exc_info:
        transport.read(RegisterClass.HOLDING_REGISTER, 1, 1)
    assert exc_info.value.exception_code == 2


def test_no_response_is_timeout(mock_modbus_client):
    mock_modbus_client.read_holding_registers.side_effect = ModbusIOException("No response received")
    transport = ModbusTransport(mock_modbus_client, "10.0.0.1", 1)
    with pytest.raises(TransportTimeoutError):
        transport.read(RegisterClass.HOLDING_REGISTER, 1, 1)


def test_lost_connection_is_connection_error(mock_modbus_client):
    mock_modbus_client.read_input_registers.side_effect = ConnectionException("reset")
    transport = ModbusTransport(mock_modbus_client, "10.0.0.1", 1)
    with pytest.raises(TransportConnectionError):
        transport.read(RegisterClass.INPUT_REGISTER, 1, 1)


@pytest.mark.parametrize(
    "error, expected",
    [
        (ConnectionException("refused"), TransportConnectionError),
        (ModbusIOException("no response"), TransportTimeoutError),
        (TimeoutError(), TransportTimeoutError),
        (ConnectionRefusedError(), TransportConnectionError),
    ],
)
def test_translate_modbus_error(error, expected):
    assert isinstance(translate_modbus_error(error, "10.0.0.1"), expected)


def test_tcp_transport_connects_and_closes(mock_modbus_client):
    module = ModuleConfig(name="m", protocol="tcp", timeout=2000)
    with patch("modbus_exporter.modbus.client.ModbusTcpClient", return_value=mock_modbus_client) as tcp_client:
        with modbus_transport(module, "10.0.0.1:1502", 5) as transport:
            assert transport.sub_target == 5
    tcp_client.assert_called_once_with(host="10.0.0.1", port=1502, timeout=2.0, retries=0)
    mock_modbus_client.close.assert_called_once()


def test_serial_transport_uses_line_settings(mock_modbus_client):
    module = ModuleConfig(name="m", protocol="serial", baudrate=9600, parity="E", stopbits=2)
    with patch("modbus_exporter.modbus.client.ModbusSerialClient", return_value=mock_modbus_client) as serial_client:
        with modbus_transport(module, "/dev/ttyUSB0", 1):
            pass
    kwargs = serial_client.call_args.kwargs
    assert kwargs["port"] == "/dev/ttyUSB0"
    assert kwargs["baudrate"] == 9600
    assert kwargs["parity"] == "E"
    assert kwargs["stopbits"] == 2


def test_failed_connect_raises_and_closes(mock_modbus_client):
    mock_modbus_client.connect.return_value = False
    module = ModuleConfig(name="m", protocol="tcp")
    with patch("modbus_exporter.modbus.client.ModbusTcpClient", return_value=mock_modbus_client):
        with pytest.raises(TransportConnectionError):
            with modbus_transport(module, "10.0.0.1", 1):
                pass
    mock_modbus_client.close.assert_called_once()


def test_sleep_after_connect(mock_modbus_client):
    module = ModuleConfig(name="m", protocol="tcp", workarounds={"sleep_after_connect": 250})
    with patch("modbus_exporter.modbus.client.ModbusTcpClient", return_value=mock_modbus_client), \
            patch("modbus_exporter.modbus.client.time.sleep") as sleep:
        with modbus_transport(module, "10.0.0.1", 1):
            pass
    sleep.assert_called_once_with(0.25)
