"""
Layered YAML configuration.

The bundled configs/default.yaml is always loaded first; a user file only
needs the keys it changes. Nested sections are merged key by key, so
overriding window.minimum_size keeps the default prepend/append sizes.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / 'configs' / 'default.yaml'


def read_yaml_mapping(path: Path) -> Dict[str, Any]:
    """
    Read one YAML file whose top level is a mapping (an empty file is {}).

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the top level is not a mapping
        yaml.YAMLError: If the file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r') as f:
        content = yaml.safe_load(f)

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValidationError(
            f"Config file {path} must contain a mapping, got {type(content).__name__}",
            details={'path': str(path)}
        )
    return content


def merge_config(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``override`` onto a copy of ``base``."""
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load the bundled defaults, overlaid with ``config_path`` when given.

    Example:
        # custom.yaml contains only "window: {minimum_size: 30}"
        config = load_config('custom.yaml')
        config['window']  # {'prepend_size': 5, 'append_size': 5, 'minimum_size': 30}

    Raises:
        FileNotFoundError: If a config file doesn't exist
        ValidationError: If a config file's top level is not a mapping
    """
    config = read_yaml_mapping(DEFAULT_CONFIG_PATH)

    if config_path is not None:
        path = Path(config_path)
        logger.info(f"Loading configuration overrides from {path}")
        config = merge_config(config, read_yaml_mapping(path))

    logger.debug(f"Configuration sections: {sorted(config)}")

    return config


def get_nested_config(config: Mapping[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Look up a dot-separated path, e.g. 'replay.step_seconds'.

    Returns ``default`` as soon as a segment is missing or the value at that
    point is not a mapping.
    """
    value: Any = config
    for key in key_path.split('.'):
        if not isinstance(value, Mapping) or key not in value:
            return default
        value = value[key]
    return value
