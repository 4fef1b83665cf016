"""Modbus reading and decoding."""

from modbus_exporter.modbus.exporter import Exporter
from modbus_exporter.modbus.scraper import scrape_module

__all__ = ["Exporter", "scrape_module"]
