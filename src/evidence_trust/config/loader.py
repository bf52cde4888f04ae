"""Configuration loader for the evidence trust engine.

Tunable numeric defaults live in ``engine_defaults.yaml`` next to this
module. Each component builds its pydantic config from its section and then
layers caller overrides on top with ``merge_config``.
"""
from __future__ import annotations

import yaml
from pathlib import Path
from typing import Any, Optional, TypeVar
import structlog
from pydantic import BaseModel, ValidationError

from evidence_trust.utils.errors import ConfigurationError

logger = structlog.get_logger(__name__)

CONFIG_FILE = Path(__file__).parent / "engine_defaults.yaml"

M = TypeVar("M", bound=BaseModel)


class ConfigLoader:
    """Loads and provides access to engine defaults."""

    _instance: Optional[ConfigLoader] = None
    _config: Optional[dict[str, Any]] = None

    def __new__(cls) -> ConfigLoader:
        """Singleton pattern - ensure only one config instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if CONFIG_FILE.exists():
            with open(CONFIG_FILE) as f:
                self._config = yaml.safe_load(f) or {}
            logger.debug("config_loaded", path=str(CONFIG_FILE))
        else:
            logger.warning("config_file_not_found", path=str(CONFIG_FILE))
            self._config = {}

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key.

        Examples:
            config.get("confidence_scorer.weights.source_agreement")
            config.get("quality_engine.performance_mode")
            config.get("nonexistent.key", default=100)
        """
        if not self._config:
            return default

        value: Any = self._config
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def get_section(self, section: str) -> dict[str, Any]:
        """Get an entire configuration section."""
        return self.get(section, default={})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._config = None
        self._load_config()


_config = ConfigLoader()


def get_config() -> ConfigLoader:
    """Get the global config instance."""
    return _config


def component_defaults(model_cls: type[M], section: str) -> M:
    """Build a component config from model defaults plus its YAML section."""
    try:
        return model_cls.model_validate(_config.get_section(section))
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid defaults in section '{section}'",
            details=str(exc),
        ) from exc
