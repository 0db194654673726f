"""Core configuration management module."""
from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class SystemConfig(BaseModel):
    """System-level configuration."""

    model_config = ConfigDict(use_enum_values=True)

    name: str = "backtestlab"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_dir: str | None = None


class DataConfig(BaseModel):
    """Price series provider selection."""

    model_config = ConfigDict(use_enum_values=True)

    provider: Literal["synthetic", "csv"] = "synthetic"
    csv_dir: str = "data/prices"
    synthetic_seed: int = 42
    synthetic_start_price: float = 100.0

    @field_validator("synthetic_start_price")
    @classmethod
    def validate_start_price(cls, v: float) -> float:
        """Validate that the synthetic start price is positive."""
        if v <= 0:
            raise ValueError("synthetic_start_price must be positive")
        return v


class OptimizerConfig(BaseModel):
    """Grid search limits.

    ``warn_combinations`` is advisory and only logged; ``max_combinations`` is
    the hard ceiling above which an optimization request is rejected.
    """

    model_config = ConfigDict(use_enum_values=True)

    max_combinations: int = 10_000
    warn_combinations: int = 1_000
    max_workers: int | None = None
    timeout_seconds: float | None = None

    @field_validator("max_combinations", "warn_combinations")
    @classmethod
    def validate_limits(cls, v: int) -> int:
        """Validate that combination limits are positive."""
        if v <= 0:
            raise ValueError("combination limits must be positive")
        return v

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("max_workers must be positive")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v

    @model_validator(mode="after")
    def validate_ordering(self) -> OptimizerConfig:
        if self.warn_combinations > self.max_combinations:
            raise ValueError("warn_combinations must not exceed max_combinations")
        return self


class ApiConfig(BaseModel):
    """HTTP surface configuration."""

    model_config = ConfigDict(use_enum_values=True)

    title: str = "Backtest API"
    version: str = "1.0.0"
    cors_allow_origins: list[str] = ["*"]
    history_size: int = 20

    @field_validator("history_size")
    @classmethod
    def validate_history_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("history_size must be positive")
        return v


class Settings(BaseModel):
    """Root settings configuration."""

    model_config = ConfigDict(use_enum_values=True)

    system: SystemConfig = SystemConfig()
    data: DataConfig = DataConfig()
    optimizer: OptimizerConfig = OptimizerConfig()
    api: ApiConfig = ApiConfig()


def load_settings(path: Path | str) -> Settings:
    """Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings instance with loaded configuration.

    Raises:
        FileNotFoundError: If configuration file does not exist.
        yaml.YAMLError: If YAML is invalid.
        ValueError: If configuration is invalid.
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    return Settings.model_validate(raw_config)
