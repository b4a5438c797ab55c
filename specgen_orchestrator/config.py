"""
Configuration for the SpecGen job orchestrator

Settings are pydantic models. They are loaded from an optional YAML file and
then overridden by ``SPECGEN_*`` environment variables, with ``__`` between a
section and its key (``SPECGEN_WORKFLOW__MAX_ATTEMPTS=5``). ``USE_MOCK_SERVICES``
forces the fake generation engine.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError
from typing_extensions import Literal

from .core.exceptions import ConfigurationError

class GenerationConfig(BaseModel):
    """Text-generation service settings."""

    provider: Literal["fake", "http"] = "fake"
    endpoint: Optional[str] = None
    model_id: str = "amazon.nova-pro-v1:0"
    api_key: Optional[str] = None
    timeout_seconds: float = Field(default=120.0, gt=0)
    max_tokens: int = Field(default=8192, gt=0)
    temperature: float = Field(default=0.7, ge=0, le=1)
    top_p: float = Field(default=0.9, ge=0, le=1)


class StorageConfig(BaseModel):
    """Status store and blob store settings."""

    status_store: Literal["memory", "postgres"] = "memory"
    database_url: Optional[str] = None
    blob_store: Literal["memory", "local"] = "memory"
    blob_root: str = "./artifacts"


class WorkflowConfig(BaseModel):
    """Retry, timeout and fan-out behaviour of the local workflow runner."""

    max_attempts: int = Field(default=3, ge=1)
    initial_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=60.0, ge=0)
    exponential_base: float = Field(default=2.0, ge=1)
    jitter: bool = True
    step_timeout_seconds: float = Field(default=300.0, gt=0)
    cancel_siblings_on_failure: bool = False


class NotificationConfig(BaseModel):
    enabled: bool = True
    webhook_url: Optional[str] = None


class LoggingConfig(BaseModel):
    level: str = "INFO"
    structured: bool = True
    log_file: Optional[str] = None

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value}")
        return value


class OrchestratorConfig(BaseSettings):
    """Top-level configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SPECGEN_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore"
    )

    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    max_input_chars: int = Field(default=20000, gt=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings
    ):
        # Environment beats the YAML file, which arrives as init values
        return env_settings, init_settings


def use_mock_services() -> bool:
    return os.environ.get("USE_MOCK_SERVICES", "").lower() == "true"


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(str(config_path), "configuration file not found")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(str(config_path), f"invalid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(config_path), "top level must be a mapping")
    return data


def load_config(
    path: Optional[Union[str, Path]] = None
) -> OrchestratorConfig:
    """
    Load configuration from an optional YAML file and the environment.

    Args:
        path: YAML file path; defaults apply when omitted

    Returns:
        Validated OrchestratorConfig

    Raises:
        ConfigurationError: If the file is unreadable or a value is invalid
    """
    data = _read_yaml(path) if path else {}

    try:
        config = OrchestratorConfig(**data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first.get("loc", ())) or "config"
        raise ConfigurationError(key, first.get("msg", str(e))) from e
    except SettingsError as e:
        raise ConfigurationError("environment", str(e)) from e

    if use_mock_services():
        config.generation.provider = "fake"

    if config.generation.provider == "http" and not config.generation.endpoint:
        raise ConfigurationError("generation.endpoint", "required when provider is 'http'")
    if config.storage.status_store == "postgres" and not config.storage.database_url:
        raise ConfigurationError("storage.database_url", "required when status_store is 'postgres'")

    return config
