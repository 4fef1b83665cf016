"""
FastAPI application factory.

Creates and configures the FastAPI app instance with routers and the
process-wide exporter state.
"""

from typing import Optional

import anyio.to_thread
from fastapi import FastAPI

from modbus_exporter import __version__
from modbus_exporter.bus.locks import BusLockRegistry
from modbus_exporter.config import settings
from modbus_exporter.logging import setup_logging, get_logger
from modbus_exporter.metrics.instrumentation import Instrumentation
from modbus_exporter.modbus.exporter import Exporter, TransportFactory
from modbus_exporter.modbus.client import modbus_transport
from modbus_exporter.schemas.modbus_models import ExporterConfig
from modbus_exporter.scrape import ScrapeHandler
from modbus_exporter.utils.config_loader import load_config

# Router imports
from modbus_exporter.api.routers import health, metrics, modbus

# Setup logging
setup_logging(log_level=settings.log_level)
logger = get_logger(__name__)


def create_app(
    config: Optional[ExporterConfig] = None,
    transport_factory: TransportFactory = modbus_transport,
    instrumentation: Optional[Instrumentation] = None,
    worker_threads: Optional[int] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.
    
    Args:
        config: Module configuration (loaded from settings.config_file if not given)
        transport_factory: Opens the per-scrape Modbus transport
        instrumentation: Self-instrumentation metrics (a fresh set if not given)
        worker_threads: Size of the thread pool running /modbus (settings.worker_threads if not given)
    
    Returns:
        Configured FastAPI app instance
        
    Raises:
        ConfigError: If the configuration file cannot be loaded
    """
    if config is None:
        config = load_config(settings.config_file)
    if instrumentation is None:
        instrumentation = Instrumentation()
    if worker_threads is None:
        worker_threads = settings.worker_threads

    app = FastAPI(
        title="Modbus Exporter",
        description="Prometheus exporter reading Modbus TCP and RTU devices on demand",
        version=__version__
    )

    exporter = Exporter(config, transport_factory)
    app.state.exporter = exporter
    app.state.instrumentation = instrumentation
    app.state.scrape_handler = ScrapeHandler(exporter, BusLockRegistry(instrumentation), instrumentation)

    @app.on_event("startup")
    async def startup_event():
        """Size the thread pool so requests queued on a serial bus do not starve tcp scrapes."""
        anyio.to_thread.current_default_thread_limiter().total_tokens = worker_threads
        logger.info(f"Thread pool limited to {worker_threads} threads")

    # Mount routers
    app.include_router(modbus.router, tags=["modbus"])
    app.include_router(metrics.router, tags=["metrics"])
    app.include_router(health.router, tags=["health"])

    logger.info("FastAPI application created")
    return app
