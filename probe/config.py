from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

ENV_PREFIX = "PROBE_"
FIELD_DELIMITER = "|"


class ConfigError(Exception):
    """Raised when probe settings are invalid."""

    pass


class ProbeConfig(BaseModel):
    """Where to connect and which request frame to send."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="127.0.0.1", min_length=1)
    port: int = Field(default=2000, ge=1, le=65535)
    tls: bool = False
    insecure: bool = False
    ca_file: Optional[Path] = None
    fields: Tuple[str, ...] = ("00", "00", "B0000")
    timeout: float = Field(default=10.0, gt=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("fields", mode="before")
    @classmethod
    def _split_fields(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(value.split(FIELD_DELIMITER))
        return value

    @field_validator("ca_file", mode="before")
    @classmethod
    def _blank_ca_file(cls, value: Any) -> Any:
        return value or None

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


def _read_env() -> Dict[str, str]:
    values: Dict[str, str] = {}
    for name in ProbeConfig.model_fields:
        value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if value is not None:
            values[name] = value
    return values


def load_config(env_path: str = ".env") -> ProbeConfig:
    """Build probe settings from ``PROBE_*`` variables (and an optional .env file)."""
    if Path(env_path).exists():
        load_dotenv(env_path)
    try:
        return ProbeConfig.model_validate(_read_env())
    except ValidationError as exc:
        raise ConfigError(f"Invalid probe configuration: {exc}") from exc


__all__ = ["ConfigError", "ProbeConfig", "load_config"]
