"""Shared fixtures: in-memory Modbus devices and a fake transport factory."""

import struct
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

import pytest

from modbus_exporter.metrics.instrumentation import Instrumentation
from modbus_exporter.schemas.modbus_models import RegisterClass
from modbus_exporter.utils.config_loader import parse_config


class MemoryDevice:
    """Register space of one device; each register is two big-endian bytes."""

    def __init__(self, registers: int = 1000):
        self.data: Dict[RegisterClass, bytearray] = {
            register_class: bytearray(registers * 2) for register_class in RegisterClass
        }

    def set_bytes(self, register_class: RegisterClass, register: int, raw: bytes) -> None:
        # register numbers are 1-based
        offset = (register - 1) * 2
        self.data[register_class][offset:offset + len(raw)] = raw

    def set_uint16(self, register_class: RegisterClass, register: int, value: int) -> None:
        self.set_bytes(register_class, register, struct.pack(">H", value))

    def read(self, register_class: RegisterClass, address: int, quantity: int) -> bytes:
        offset = (address - 1) * 2
        return bytes(self.data[register_class][offset:offset + quantity * 2])


class FakeTransport:
    """Stands in for ModbusTransport; reads go to a MemoryDevice."""

    def __init__(self, factory: "FakeTransportFactory", target: str, sub_target: int):
        self.factory = factory
        self.target = target
        self.sub_target = sub_target

    def read(self, register_class: RegisterClass, address: int, quantity: int) -> bytes:
        with self.factory.lock:
            self.factory.reads.append((self.target, self.sub_target, register_class, address, quantity))
        return self.factory.device.read(register_class, address, quantity)


class FakeTransportFactory:
    """
    Callable with the signature of ``modbus_transport``.
    
    ``failures`` holds exceptions raised by the next connection attempts, in order.
    """

    def __init__(self, device: MemoryDevice):
        self.device = device
        self.failures: List[Exception] = []
        self.attempts = 0
        self.reads: List[tuple] = []
        self.lock = threading.Lock()

    @contextmanager
    def __call__(self, module, target: str, sub_target: int):
        with self.lock:
            self.attempts += 1
            failure: Optional[Exception] = self.failures.pop(0) if self.failures else None
        if failure is not None:
            raise failure
        yield FakeTransport(self, target, sub_target)


CONFIG = {
    "modules": [
        {
            "name": "tcp_module",
            "protocol": "tcp",
            "metrics": [
                {
                    "name": "temperature",
                    "help": "Temperature in degrees",
                    "labels": {"sensor": "a"},
                    "register_class": "input_register",
                    "address": 22,
                    "data_type": "uint16",
                    "metric_type": "gauge",
                },
                {
                    "name": "temperature",
                    "help": "Temperature in degrees",
                    "labels": {"sensor": "b"},
                    "register_class": "input_register",
                    "address": 23,
                    "data_type": "int16",
                    "metric_type": "gauge",
                },
                {
                    "name": "pump_running",
                    "help": "Pump state",
                    "register_class": "coil",
                    "address": 5,
                    "data_type": "bool",
                    "metric_type": "gauge",
                },
            ],
        },
        {
            "name": "serial_module",
            "protocol": "serial",
            "metrics": [
                {
                    "name": "energy_total",
                    "help": "Energy counter",
                    "register_class": "holding_register",
                    "address": 1,
                    "data_type": "uint32",
                    "metric_type": "counter",
                },
            ],
        },
    ]
}


@pytest.fixture
def device() -> MemoryDevice:
    device = MemoryDevice()
    device.set_uint16(RegisterClass.INPUT_REGISTER, 22, 240)
    device.set_bytes(RegisterClass.INPUT_REGISTER, 23, struct.pack(">h", -5))
    device.set_uint16(RegisterClass.COIL, 5, 1)
    device.set_bytes(RegisterClass.HOLDING_REGISTER, 1, struct.pack(">I", 70000))
    return device


@pytest.fixture
def transport_factory(device: MemoryDevice) -> FakeTransportFactory:
    return FakeTransportFactory(device)


@pytest.fixture
def exporter_config():
    return parse_config(CONFIG)


@pytest.fixture
def instrumentation() -> Instrumentation:
    return Instrumentation()
