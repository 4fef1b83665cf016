"""
Register value decoding.

Turns the raw bytes of a register window into a float according to the
metric's data type. Modbus registers are 16-bit big-endian words; wider
values occupy consecutive registers.
"""

import struct
from typing import Optional

from modbus_exporter.errors import InsufficientRegistersError
from modbus_exporter.schemas.modbus_models import DataType, Endianness

REGISTER_SIZE_BYTES = 2

# Number of registers a value of each data type spans
REGISTER_WIDTH = {
    DataType.BOOL: 1,
    DataType.INT16: 1,
    DataType.UINT16: 1,
    DataType.FLOAT16: 1,
    DataType.INT32: 2,
    DataType.UINT32: 2,
    DataType.FLOAT32: 2,
    DataType.INT64: 4,
    DataType.UINT64: 4,
    DataType.FLOAT64: 4,
}

_STRUCT_FORMAT = {
    DataType.INT16: ">h",
    DataType.UINT16: ">H",
    DataType.FLOAT16: ">e",
    DataType.INT32: ">i",
    DataType.UINT32: ">I",
    DataType.FLOAT32: ">f",
    DataType.INT64: ">q",
    DataType.UINT64: ">Q",
    DataType.FLOAT64: ">d",
}


def register_width(data_type: DataType) -> int:
    """Number of registers occupied by a value of ``data_type``."""
    return REGISTER_WIDTH[data_type]


def byte_width(data_type: DataType) -> int:
    """Number of bytes occupied by a value of ``data_type``."""
    return REGISTER_WIDTH[data_type] * REGISTER_SIZE_BYTES


def _to_big_endian(data: bytes, endianness: Endianness) -> bytes:
    """Reorder a value window so it can be parsed as big-endian (ABCD)."""
    if endianness == Endianness.BIG:
        return data
    if endianness == Endianness.LITTLE:
        return data[::-1]
    if endianness == Endianness.MIXED:
        # swap 16-bit words, keep bytes inside each word
        words = [data[i:i + REGISTER_SIZE_BYTES] for i in range(0, len(data), REGISTER_SIZE_BYTES)]
        return b"".join(reversed(words))
    # yolo: swap bytes inside each word, keep word order
    return b"".join(
        data[i:i + REGISTER_SIZE_BYTES][::-1] for i in range(0, len(data), REGISTER_SIZE_BYTES)
    )


def decode(
    data_type: DataType,
    data: bytes,
    bit_offset: Optional[int] = None,
    endianness: Endianness = Endianness.BIG,
) -> float:
    """
    Decode the value at the start of ``data``.
    
    Only the first ``byte_width(data_type)`` bytes are looked at; any trailing
    bytes are ignored.
    
    Args:
        data_type: Interpretation of the register window
        data: Raw register bytes, big-endian per register
        bit_offset: Bit of the low-order byte to extract (bool only, defaults to 0)
        endianness: Byte order of the value window
        
    Returns:
        The decoded value as float
        
    Raises:
        InsufficientRegistersError: If ``data`` is shorter than the data type requires
    """
    required = byte_width(data_type)
    if len(data) < required:
        raise InsufficientRegistersError(data_type.value, required, len(data))

    window = _to_big_endian(bytes(data[:required]), endianness)

    if data_type == DataType.BOOL:
        low_byte = window[1]
        return float((low_byte >> (bit_offset or 0)) & 1)

    return float(struct.unpack(_STRUCT_FORMAT[data_type], window)[0])
