"""
JSON configuration for the cavity extraction pipeline.

Sections:
- RAYCAST: ray-parity classification tuning (see RayCastSettings)
- OUTPUT: file names written by the ``run`` command
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .constants import (
    DEFAULT_EVEN_HITS_FILE,
    DEFAULT_FLUID_FILE,
    DEFAULT_RAY_ORIGIN_OFFSET,
    DEFAULT_RAY_T_EPS,
    DEFAULT_RAY_T_MIN,
    DEFAULT_SOLID_FILE,
)
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "description": "STL cavity extraction configuration",
    "RAYCAST": {
        "origin_offset": DEFAULT_RAY_ORIGIN_OFFSET,
        "t_min": DEFAULT_RAY_T_MIN,
        "t_eps": DEFAULT_RAY_T_EPS,
    },
    "OUTPUT": {
        "solid_file": DEFAULT_SOLID_FILE,
        "fluid_file": DEFAULT_FLUID_FILE,
        "write_even_hits": False,
        "even_hits_file": DEFAULT_EVEN_HITS_FILE,
    },
}


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load a configuration file over the built-in defaults.

    Args:
        config_path: JSON file; None returns a copy of the defaults

    Returns:
        Configuration dict with every section present

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if config_path is None:
        return config

    try:
        with open(config_path, 'r') as f:
            user_config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to load configuration: {e}", config_file=str(config_path)) from e

    if not isinstance(user_config, dict):
        raise ConfigurationError("Configuration root must be a JSON object", config_file=str(config_path))

    for section, defaults in DEFAULT_CONFIG.items():
        if not isinstance(defaults, dict):
            config[section] = user_config.get(section, defaults)
            continue
        if section not in user_config:
            logger.warning(f"Missing config section: {section}")
            continue
        if not isinstance(user_config[section], dict):
            raise ConfigurationError(f"Config section {section} must be an object",
                                     config_file=str(config_path), invalid_parameters=[section])
        config[section].update(user_config[section])

    logger.info(f"Configuration loaded: {config_path}")
    return config


def _config_bool(value: Any, default: bool) -> bool:
    """Accept JSON booleans as well as "yes"/"on"/"true"/"1" strings."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def output_options(config: Dict[str, Any]) -> Dict[str, Any]:
    """OUTPUT section with defaults applied and types coerced."""
    section = config.get("OUTPUT", {})
    defaults = DEFAULT_CONFIG["OUTPUT"]
    return {
        "solid_file": str(section.get("solid_file", defaults["solid_file"])),
        "fluid_file": str(section.get("fluid_file", defaults["fluid_file"])),
        "write_even_hits": _config_bool(section.get("write_even_hits"), defaults["write_even_hits"]),
        "even_hits_file": str(section.get("even_hits_file", defaults["even_hits_file"])),
    }


def create_config_template(output_path: Union[str, Path]) -> None:
    """Write the default configuration as an editable template."""
    with open(output_path, 'w') as f:
        json.dump(DEFAULT_CONFIG, f, indent=2)

    logger.info(f"Created config template: {output_path}")
