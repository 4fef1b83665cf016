"""
Module configuration loader.

Reads the YAML module file and validates it into an ``ExporterConfig``.
"""

from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError

from modbus_exporter.errors import ConfigError
from modbus_exporter.logging import get_logger
from modbus_exporter.modbus.decoder import register_width
from modbus_exporter.schemas.modbus_models import ExporterConfig

logger = get_logger(__name__)

MAX_REGISTER_NUMBER = 65536


def parse_config(raw: Dict[str, Any], source: str = "<memory>") -> ExporterConfig:
    """
    Validate an already parsed configuration document.
    
    Args:
        raw: Mapping with a top-level ``modules`` list
        source: Where the document came from (for error messages)
        
    Returns:
        The validated configuration
        
    Raises:
        ConfigError: If the document does not describe a valid configuration
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"{source}: expected a mapping with a 'modules' key")
    try:
        config = ExporterConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"{source}: invalid configuration: {e}") from e

    for module in config.modules:
        for definition in module.metrics:
            last_register = definition.address + register_width(definition.data_type) - 1
            if last_register > MAX_REGISTER_NUMBER:
                raise ConfigError(
                    f"{source}: module '{module.name}': metric '{definition.name}' at address "
                    f"{definition.address} ({definition.data_type.value}) extends past register "
                    f"{MAX_REGISTER_NUMBER}"
                )
    return config


def load_config(path: Union[str, Path]) -> ExporterConfig:
    """
    Load and validate the module configuration file.
    
    Args:
        path: Path to the YAML file
        
    Returns:
        The validated configuration
        
    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    path = Path(path)
    logger.info(f"Loading configuration file {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse configuration file {path}: {e}") from e

    config = parse_config(raw, source=str(path))
    logger.info(f"Loaded {len(config.modules)} module(s) from {path}")
    return config
