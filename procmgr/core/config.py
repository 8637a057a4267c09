"""
Configuration management for procmgr.

This module provides configuration loading, validation, and management
for the process manager and its host surfaces.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from procmgr.core.exceptions import ConfigError


class ExecConfig(BaseModel):
    """Child process execution settings."""

    default_timeout: float = Field(
        60.0, description="Timeout in seconds used when a run does not specify one"
    )
    encoding: str = Field("utf-8", description="Encoding used to decode captured output")

    @field_validator("default_timeout")
    @classmethod
    def validate_default_timeout(cls, v: float) -> float:
        """Validate default timeout."""
        if v < 0:
            raise ValueError(f"Invalid default timeout: {v}. Must be >= 0")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    level: str = Field("INFO", description="Logging level")
    format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    file: Optional[str] = Field(None, description="JSON log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(
                f"Invalid logging level: {v}. Must be one of {valid_levels}"
            )
        return v.upper()


class Config(BaseModel):
    """Main configuration class for procmgr."""

    exec: ExecConfig = Field(default_factory=ExecConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics_enabled: bool = Field(True, description="Collect Prometheus metrics")

    @classmethod
    def load_from_file(cls, config_path: Union[str, Path]) -> "Config":
        """
        Load configuration from a YAML or JSON file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config instance

        Raises:
            ConfigError: If configuration file cannot be loaded or parsed
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        suffix = config_path.suffix.lower()
        if suffix not in [".yaml", ".yml", ".json"]:
            raise ConfigError(f"Unsupported configuration file format: {suffix}")

        try:
            with open(config_path, "r") as f:
                if suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
            return cls(**(data or {}))

        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration: {e}") from e
        except Exception as e:
            raise ConfigError(f"Failed to load configuration: {e}") from e

    @classmethod
    def load_from_env(cls) -> "Config":
        """
        Load configuration from environment variables.

        Returns:
            Config instance with values from environment variables
        """
        config_data: dict = {}

        exec_config = {}
        if os.getenv("PROCMGR_DEFAULT_TIMEOUT"):
            try:
                exec_config["default_timeout"] = float(os.getenv("PROCMGR_DEFAULT_TIMEOUT"))
            except ValueError as e:
                raise ConfigError(f"Invalid PROCMGR_DEFAULT_TIMEOUT: {e}") from e
        if os.getenv("PROCMGR_ENCODING"):
            exec_config["encoding"] = os.getenv("PROCMGR_ENCODING")
        if exec_config:
            config_data["exec"] = exec_config

        logging_config = {}
        if os.getenv("LOG_LEVEL"):
            logging_config["level"] = os.getenv("LOG_LEVEL")
        if os.getenv("LOG_FILE"):
            logging_config["file"] = os.getenv("LOG_FILE")
        if logging_config:
            config_data["logging"] = logging_config

        if os.getenv("PROCMGR_METRICS"):
            config_data["metrics_enabled"] = os.getenv("PROCMGR_METRICS").lower() == "true"

        return cls(**config_data)

    def save_to_file(self, config_path: Union[str, Path]) -> None:
        """
        Save configuration to a YAML file.

        Raises:
            ConfigError: If configuration cannot be saved
        """
        config_path = Path(config_path)

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(config_path, "w") as f:
                yaml.dump(self.model_dump(), f, default_flow_style=False, indent=2)

        except Exception as e:
            raise ConfigError(f"Failed to save configuration: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by key.

        Args:
            key: Configuration key (supports dot notation, e.g., 'exec.default_timeout')
            default: Default value if key is not found
        """
        value: Any = self.model_dump()

        try:
            for k in key.split("."):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default
