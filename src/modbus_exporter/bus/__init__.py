"""Serial bus mutual exclusion."""

from modbus_exporter.bus.locks import BusLockRegistry

__all__ = ["BusLockRegistry"]
