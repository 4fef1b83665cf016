"""
Read span planning.

Groups metric definitions into the fewest contiguous register reads that stay
within the Modbus limit of 125 registers per response.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from modbus_exporter.modbus.decoder import REGISTER_SIZE_BYTES, register_width
from modbus_exporter.schemas.modbus_models import MetricDef

# Largest register count one read response may carry
MAX_REGISTERS_PER_READ = 125


@dataclass(frozen=True)
class SpanSlot:
    """Position of one metric definition inside a span's read result."""
    index: int  # position in the caller's definition list
    definition: MetricDef
    byte_offset: int


@dataclass
class ReadSpan:
    """A contiguous range of registers fetched with one read call."""
    start_address: int
    register_count: int
    slots: List[SpanSlot] = field(default_factory=list)

    @property
    def end_address(self) -> int:
        """Last register covered by the span."""
        return self.start_address + self.register_count - 1


def plan_read_spans(definitions: Sequence[MetricDef]) -> List[ReadSpan]:
    """
    Compute the read spans covering every definition.
    
    Definitions are visited in address order; the current span grows while the
    highest register needed stays within ``MAX_REGISTERS_PER_READ`` of its
    start, otherwise a new span is opened at the definition's address.
    
    Args:
        definitions: Metric definitions of a single register class, any order
        
    Returns:
        Spans sorted by start address. Each slot keeps the definition's index
        in ``definitions`` and its byte offset inside the span.
    """
    order = sorted(range(len(definitions)), key=lambda i: definitions[i].address)

    spans: List[ReadSpan] = []
    current = None
    for index in order:
        definition = definitions[index]
        end = definition.address + register_width(definition.data_type)

        if current is None or end - current.start_address > MAX_REGISTERS_PER_READ:
            current = ReadSpan(start_address=definition.address, register_count=0)
            spans.append(current)

        current.register_count = max(current.register_count, end - current.start_address)
        current.slots.append(SpanSlot(
            index=index,
            definition=definition,
            byte_offset=(definition.address - current.start_address) * REGISTER_SIZE_BYTES,
        ))

    return spans
