from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

import jsonschema
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from shared.protocol.constants import DEFAULT_RESPONSE_DELAY
from shared.protocol.decoder import DEFAULT_RULES, OpcodeRule

DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_PORT = 2000
SCHEMA_PATH = Path(__file__).parent / "schemas" / "config.schema.json"


class ConfigError(Exception):
    """Raised when configuration values are missing or invalid."""

    pass


class TLSConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: Optional[Path] = None
    cert: Optional[Path] = None
    version: Literal["TLSv1.2", "TLSv1.3"] = "TLSv1.2"


class OpcodeRuleConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    field_index: int = Field(alias="fieldIndex", ge=0)
    expected_value: str = Field(alias="expectedValue")
    opcode: str = Field(min_length=1)

    def to_rule(self) -> OpcodeRule:
        return OpcodeRule(field_index=self.field_index, expected_value=self.expected_value, opcode=self.opcode)


def _default_rules() -> Tuple[OpcodeRuleConfig, ...]:
    return tuple(
        OpcodeRuleConfig(field_index=rule.field_index, expected_value=rule.expected_value, opcode=rule.opcode)
        for rule in DEFAULT_RULES
    )


class SimulatorConfig(BaseModel):
    """Immutable simulator settings, loaded once at startup."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    enable_tls: bool = Field(default=False, alias="enableTLS")
    tls: TLSConfig = Field(default_factory=TLSConfig)
    message_mapping: Dict[str, str] = Field(default_factory=dict, alias="messageMapping")
    response_delay_ms: int = Field(default=int(DEFAULT_RESPONSE_DELAY * 1000), ge=0, alias="responseDelayMs")
    decoder: Literal["fields", "prefix"] = "fields"
    opcode_rules: Tuple[OpcodeRuleConfig, ...] = Field(default_factory=_default_rules, alias="opcodeRules")
    max_connections: Optional[int] = Field(default=None, ge=1, alias="maxConnections")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO", alias="logLevel")

    @model_validator(mode="after")
    def _check_tls(self) -> "SimulatorConfig":
        if self.enable_tls and (not self.tls.key or not self.tls.cert):
            raise ValueError("TLS enabled but tls.key / tls.cert are not configured")
        return self

    @property
    def response_delay(self) -> float:
        """Delay before each response is written, in seconds."""
        return self.response_delay_ms / 1000

    @property
    def rules(self) -> Tuple[OpcodeRule, ...]:
        return tuple(rule.to_rule() for rule in self.opcode_rules)


@lru_cache(maxsize=1)
def load_schema() -> dict:
    with SCHEMA_PATH.open("r", encoding="utf-8") as fp:
        return json.load(fp)


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file {path} not found") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Configuration file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a JSON object")
    return data


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    port = os.getenv("SIM_PORT")
    if port:
        try:
            data["port"] = int(port)
        except ValueError as exc:
            raise ConfigError(f"SIM_PORT must be an integer, got {port!r}") from exc
    log_level = os.getenv("SIM_LOG_LEVEL")
    if log_level:
        data["logLevel"] = log_level.upper()
    return data


def parse_config(data: Dict[str, Any]) -> SimulatorConfig:
    """Validate a raw configuration mapping (json-schema, then model rules)."""
    try:
        jsonschema.validate(instance=data, schema=load_schema())
    except jsonschema.ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise ConfigError(f"Invalid configuration at {location}: {exc.message}") from exc
    try:
        return SimulatorConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(path: Optional[str] = None, env_path: str = ".env") -> SimulatorConfig:
    """Load simulator configuration from a JSON file plus environment overrides."""
    if Path(env_path).exists():
        load_dotenv(env_path)
    config_path = Path(path or os.getenv("SIM_CONFIG_PATH", DEFAULT_CONFIG_PATH))
    data = _apply_env_overrides(_read_config_file(config_path))
    return parse_config(data)


__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "OpcodeRuleConfig",
    "SimulatorConfig",
    "TLSConfig",
    "load_config",
    "parse_config",
]
