"""
Scrape-scoped metric registration.

Several decoded metrics may share one name and differ only by label values;
they become series of a single labelled Counter or Gauge. A Prometheus
registry refuses a second collector with the same name, so collectors are
created once per name and reused for the rest of the call.
"""

from typing import Dict, Sequence, Tuple, Union

from prometheus_client import CollectorRegistry, Counter, Gauge

from modbus_exporter.errors import LabelSchemaMismatchError, ValueDecodeError
from modbus_exporter.logging import get_logger
from modbus_exporter.schemas.modbus_models import DecodedMetric, MetricType

logger = get_logger(__name__)

Collector = Union[Counter, Gauge]


def _create_collector(registry: CollectorRegistry, metric: DecodedMetric, label_names: Tuple[str, ...]) -> Collector:
    metric_class = Counter if metric.metric_type == MetricType.COUNTER else Gauge
    return metric_class(metric.name, metric.help, labelnames=label_names, registry=registry)


def register_metrics(registry: CollectorRegistry, module_name: str, metrics: Sequence[DecodedMetric]) -> None:
    """
    Expose decoded metrics on ``registry``.
    
    Args:
        registry: Registry to populate, usually fresh for every scrape
        module_name: Module the metrics were scraped with (for error messages)
        metrics: Decoded metrics, in exposition order
        
    Raises:
        LabelSchemaMismatchError: If a name is reused with different label keys,
            metric type or help text
        ValueDecodeError: If a counter would be given a negative value
    """
    # name -> (collector, metric that created it); local to this call
    collectors: Dict[str, Tuple[Collector, DecodedMetric]] = {}

    for metric in metrics:
        label_names = tuple(sorted(metric.labels))
        entry = collectors.get(metric.name)
        if entry is None:
            try:
                collector = _create_collector(registry, metric, label_names)
            except ValueError as e:
                raise LabelSchemaMismatchError(
                    f"module '{module_name}': cannot register metric '{metric.name}': {e}"
                ) from e
            collectors[metric.name] = (collector, metric)
        else:
            collector, first = entry
            if tuple(sorted(first.labels)) != label_names:
                raise LabelSchemaMismatchError(
                    f"module '{module_name}': metric '{metric.name}' has label keys "
                    f"{list(label_names)}, expected {sorted(first.labels)}"
                )
            if first.metric_type != metric.metric_type:
                raise LabelSchemaMismatchError(
                    f"module '{module_name}': metric '{metric.name}' is a {metric.metric_type.value}, "
                    f"already registered as {first.metric_type.value}"
                )
            if first.help != metric.help:
                raise LabelSchemaMismatchError(
                    f"module '{module_name}': metric '{metric.name}' has help text "
                    f"'{metric.help}', expected '{first.help}'"
                )

        child = collector.labels(**metric.labels) if label_names else collector
        if metric.metric_type == MetricType.COUNTER:
            try:
                child.inc(metric.value)
            except ValueError as e:
                raise ValueDecodeError(
                    f"module '{module_name}': counter '{metric.name}' got negative value {metric.value}"
                ) from e
        else:
            child.set(metric.value)

    logger.debug(f"Registered {len(metrics)} metric(s) under {len(collectors)} name(s) for module '{module_name}'")
