"""YAML config loading and validation."""

import yaml
from pathlib import Path
from typing import Any, Union

from ..core.errors import ConfigLoadError
from .schema import GateConfig


def _build_config(data: Any, source: str) -> GateConfig:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{source} must contain a YAML mapping, got {type(data)}")

    try:
        config = GateConfig.model_validate(data)
    except Exception as e:
        raise ConfigLoadError(f"Config validation failed: {e}")

    issues = config.validate_config()
    if issues:
        raise ConfigLoadError(f"Config validation issues: {'; '.join(issues)}")

    return config


def load_config(path: Union[str, Path]) -> GateConfig:
    """
    Load and validate a PromptGate config from YAML file.

    Args:
        path: Path to YAML config file

    Returns:
        GateConfig: Validated config object

    Raises:
        ConfigLoadError: If file cannot be read or config is invalid
    """
    path = Path(path)

    if not path.exists():
        raise ConfigLoadError(f"Config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML in {path}: {e}")
    except OSError as e:
        raise ConfigLoadError(f"Cannot read config file {path}: {e}")

    return _build_config(data, f"Config file {path}")


def load_config_from_string(yaml_content: str) -> GateConfig:
    """
    Load and validate a PromptGate config from YAML string.

    An empty document yields the all-defaults config.

    Raises:
        ConfigLoadError: If YAML is invalid or config validation fails
    """
    try:
        data = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML content: {e}")

    return _build_config(data, "Config content")
