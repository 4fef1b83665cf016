"""
Exporter: one scrape of one target with one module.
"""

from typing import Callable, ContextManager, List, Optional

from prometheus_client import CollectorRegistry

from modbus_exporter.errors import InvalidRequestError
from modbus_exporter.logging import get_logger
from modbus_exporter.metrics.registration import register_metrics
from modbus_exporter.modbus.client import ModbusTransport, modbus_transport
from modbus_exporter.modbus.scraper import scrape_module
from modbus_exporter.schemas.modbus_models import DecodedMetric, ExporterConfig, ModuleConfig, RegisterClass

logger = get_logger(__name__)

# Order in which register classes are read and exposed
SCRAPE_ORDER = (
    RegisterClass.COIL,
    RegisterClass.DISCRETE_INPUT,
    RegisterClass.INPUT_REGISTER,
    RegisterClass.HOLDING_REGISTER,
)

TransportFactory = Callable[[ModuleConfig, str, int], ContextManager[ModbusTransport]]


class Exporter:
    """Scrapes targets according to the configured modules."""

    def __init__(self, config: ExporterConfig, transport_factory: TransportFactory = modbus_transport):
        self.config = config
        self.transport_factory = transport_factory

    def get_module(self, name: str) -> Optional[ModuleConfig]:
        """Look up a module, ``None`` when it is not configured."""
        return self.config.get_module(name)

    def scrape(self, target: str, sub_target: int, module_name: str) -> CollectorRegistry:
        """
        Read all metrics of ``module_name`` from ``target``/``sub_target``.
        
        Args:
            target: ``host[:port]`` or serial device path
            sub_target: Modbus unit/slave ID (0-255)
            module_name: Configured module to scrape with
            
        Returns:
            A fresh registry holding the decoded metrics
            
        Raises:
            InvalidRequestError: If the module is not configured
            TransportError: If any read fails
            ValueDecodeError: If any value cannot be decoded
            LabelSchemaMismatchError: If the metrics cannot be registered
        """
        module = self.get_module(module_name)
        if module is None:
            raise InvalidRequestError(f"module '{module_name}' not defined in configuration file")

        metrics: List[DecodedMetric] = []
        with self.transport_factory(module, target, sub_target) as transport:
            for register_class in SCRAPE_ORDER:
                definitions = module.get_metrics_by_register_class(register_class)
                if not definitions:
                    continue
                metrics.extend(scrape_module(
                    definitions,
                    lambda address, quantity, rc=register_class: transport.read(rc, address, quantity),
                    register_class,
                ))

        logger.debug(f"Scraped {len(metrics)} metric(s) from {target} sub_target {sub_target} with module '{module_name}'")

        registry = CollectorRegistry()
        register_metrics(registry, module_name, metrics)
        return registry
