"""
Scrape orchestration for one register class.

Plans the read spans, fetches each one through the supplied read function and
decodes every metric out of its span. A scrape is all-or-nothing: the first
transport or decode failure is raised and no partial result is returned.
"""

from typing import Callable, List, Optional, Sequence

from modbus_exporter.logging import get_logger
from modbus_exporter.modbus.batcher import plan_read_spans
from modbus_exporter.modbus.decoder import byte_width, decode
from modbus_exporter.schemas.modbus_models import DecodedMetric, MetricDef, RegisterClass

logger = get_logger(__name__)

# read_fn(address, quantity) -> raw bytes, address is the 1-based register number
ReadFn = Callable[[int, int], bytes]


def scrape_module(
    definitions: Sequence[MetricDef],
    read_fn: ReadFn,
    register_class: RegisterClass,
) -> List[DecodedMetric]:
    """
    Read and decode all metric definitions of one register class.
    
    Args:
        definitions: Metric definitions, all of ``register_class``
        read_fn: Transport capability reading ``quantity`` registers from ``address``
        register_class: Register class the definitions belong to
        
    Returns:
        Decoded metrics in the same order as ``definitions``
        
    Raises:
        TransportError: If any span read fails
        ValueDecodeError: If any value cannot be decoded
    """
    spans = plan_read_spans(definitions)
    logger.debug(
        f"Reading {len(definitions)} {register_class.value} metric(s) in {len(spans)} span(s)"
    )

    decoded: List[Optional[DecodedMetric]] = [None] * len(definitions)
    for span in spans:
        data = read_fn(span.start_address, span.register_count)
        for slot in span.slots:
            definition = slot.definition
            window = data[slot.byte_offset:slot.byte_offset + byte_width(definition.data_type)]
            value = decode(
                definition.data_type,
                window,
                bit_offset=definition.bit_offset,
                endianness=definition.endianness,
            )
            if definition.factor is not None:
                value *= definition.factor
            decoded[slot.index] = DecodedMetric(
                name=definition.name,
                help=definition.help,
                labels=dict(definition.labels),
                value=value,
                metric_type=definition.metric_type,
            )

    return decoded
