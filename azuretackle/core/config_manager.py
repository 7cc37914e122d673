"""
Configuration management for AzureTackle.

Handles loading, validation, and access to connection and session settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .logging_config import redact

logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 1500


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Stage(str, Enum):
    """Deployment stage selecting which configured table writes target."""
    DEV = "dev"
    PROD = "prod"


class QueryConfig(BaseModel):
    """Query configuration."""
    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        ge=1,
        le=1000000,
        description="Page-size hint forwarded to the query endpoint"
    )


class ProvisioningConfig(BaseModel):
    """
    Table provisioning configuration.

    Azure locks a table name for a while after the table is deleted, so
    create-if-missing is retried on a fixed delay until the name is free.
    """
    retry_delay: float = Field(
        default=5.0,
        ge=0.0,
        description="Seconds to wait between create-table attempts"
    )
    max_attempts: int = Field(
        default=120,
        ge=1,
        description="Create-table attempts before giving up"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "json"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'azuretackle.table': 'DEBUG'}"
    )


class TackleConfig(BaseModel):
    """Main AzureTackle configuration schema."""

    prod_connection_string: Optional[str] = Field(
        default=None,
        description="Connection string of the production storage account"
    )

    dev_connection_string: Optional[str] = Field(
        default=None,
        description="Connection string of the development storage account"
    )

    stage: Optional[Stage] = None

    query: QueryConfig = Field(default_factory=QueryConfig)

    provisioning: ProvisioningConfig = Field(default_factory=ProvisioningConfig)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def validate_stages(self) -> "TackleConfig":
        """A stage only makes sense with a dev account alongside prod."""
        if self.stage is not None and not self.dev_connection_string:
            raise ValueError("stage requires dev_connection_string")
        if self.dev_connection_string and self.stage is None:
            raise ValueError("dev_connection_string requires a stage")
        return self

    @property
    def is_staged(self) -> bool:
        """Check if both prod and dev accounts are configured."""
        return self.stage is not None


class ConfigManager:
    """
    Manages AzureTackle configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. Explicit overrides
    2. Environment variables (AZURETACKLE_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[TackleConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None
    ) -> TackleConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            overrides: Dictionary of explicit overrides

        Returns:
            Validated TackleConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        logger.info("Loading AzureTackle configuration")

        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.info(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.info(f"Applied {len(env_config)} environment variable overrides")

        if overrides:
            config_dict = self._merge_configs(config_dict, overrides)
            logger.info(f"Applied {len(overrides)} explicit overrides")

        try:
            self._config = TackleConfig(**config_dict)
            logger.info("Configuration validated successfully")
            self._log_configuration()
            return self._config
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {redact(str(e))}")
            raise

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        if prod := os.getenv("AZURETACKLE_PROD_CONNECTION_STRING"):
            config["prod_connection_string"] = prod
        if dev := os.getenv("AZURETACKLE_DEV_CONNECTION_STRING"):
            config["dev_connection_string"] = dev
        if stage := os.getenv("AZURETACKLE_STAGE"):
            config["stage"] = stage.lower()

        if page_size := os.getenv("AZURETACKLE_PAGE_SIZE"):
            config.setdefault("query", {})["page_size"] = int(page_size)

        if log_level := os.getenv("AZURETACKLE_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_format := os.getenv("AZURETACKLE_LOG_FORMAT"):
            config.setdefault("logging", {})["format"] = log_format.lower()

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _log_configuration(self) -> None:
        """Log the loaded configuration (with account secrets redacted)."""
        if not self._config:
            return

        config_dict = self._config.model_dump(mode="json")

        for key in ("prod_connection_string", "dev_connection_string"):
            if config_dict.get(key):
                config_dict[key] = redact(config_dict[key])

        logger.info(f"Active configuration: {json.dumps(config_dict, indent=2)}")

    def get_config(self) -> TackleConfig:
        """
        Get the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> TackleConfig:
        """Reload configuration from the same sources."""
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
