"""
Unit tests for read span planning.

Run with: pytest tests/unit/test_batcher.py -v
"""

from modbus_exporter.modbus.batcher import MAX_REGISTERS_PER_READ, plan_read_spans
from modbus_exporter.schemas.modbus_models import MetricDef


def make_def(address: int, data_type: str = "uint16", name: str = "m") -> MetricDef:
    return MetricDef(
        name=name,
        register_class="holding_register",
        address=address,
        data_type=data_type,
        metric_type="gauge",
    )


def test_empty():
    assert plan_read_spans([]) == []


def test_single_definition():
    spans = plan_read_spans([make_def(22)])
    assert len(spans) == 1
    assert spans[0].start_address == 22
    assert spans[0].register_count == 1
    assert spans[0].slots[0].byte_offset == 0


def test_addresses_far_apart_use_separate_spans():
    spans = plan_read_spans([make_def(2), make_def(299)])
    assert [(s.start_address, s.register_count) for s in spans] == [(2, 1), (299, 1)]


def test_span_may_reach_exactly_the_limit():
    spans = plan_read_spans([make_def(1), make_def(125)])
    assert len(spans) == 1
    assert spans[0].register_count == MAX_REGISTERS_PER_READ
    assert spans[0].slots[1].byte_offset == 124 * 2


def test_span_split_when_limit_exceeded():
    spans = plan_read_spans([make_def(1), make_def(126)])
    assert [(s.start_address, s.register_count) for s in spans] == [(1, 1), (126, 1)]


def test_wide_value_counts_towards_limit():
    """A float32 at 125 needs register 126, one past the limit from register 1."""
    assert len(plan_read_spans([make_def(1), make_def(124, "float32")])) == 1
    assert len(plan_read_spans([make_def(1), make_def(125, "float32")])) == 2


def test_span_covers_widest_value():
    spans = plan_read_spans([make_def(10, "uint64"), make_def(11)])
    assert len(spans) == 1
    assert spans[0].register_count == 4


def test_unsorted_input_keeps_original_indices():
    definitions = [make_def(50, name="c"), make_def(10, name="a"), make_def(30, "float32", name="b")]
    spans = plan_read_spans(definitions)

    assert len(spans) == 1
    span = spans[0]
    assert span.start_address == 10
    assert span.register_count == 41
    assert [(slot.index, slot.byte_offset) for slot in span.slots] == [(1, 0), (2, 40), (0, 80)]


def test_spans_never_exceed_limit():
    definitions = [make_def(address, "float32") for address in range(1, 1000, 7)]
    spans = plan_read_spans(definitions)

    assert all(span.register_count <= MAX_REGISTERS_PER_READ for span in spans)
    assert sum(len(span.slots) for span in spans) == len(definitions)
