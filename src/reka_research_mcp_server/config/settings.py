"""
Configuration management for Reka Research MCP Server.

Handles loading, validation, and management of server configuration
from files and environment variables.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_API_URL = "https://api.reka.ai"
DEFAULT_MODEL = "reka-flash-research"


def _expand_env_reference(v: Optional[str], default_env: str) -> Optional[str]:
    """Resolve a value from the environment when unset or written as ``${VAR}``."""
    if v is None:
        return os.getenv(default_env)
    if isinstance(v, str) and v.startswith("${") and v.endswith("}"):
        env_var = v[2:-1]
        return os.getenv(env_var)
    return v


class RekaConfig(BaseModel):
    """Configuration for the Reka chat completions API."""

    api_url: str = Field(default=DEFAULT_API_URL, description="Reka API base URL")
    api_key: Optional[str] = Field(
        default=None, validate_default=True, description="Default API key for upstream calls"
    )
    model: str = Field(default=DEFAULT_MODEL, description="Model used for every completion")

    @field_validator("api_key", mode="before")
    @classmethod
    def resolve_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Resolve API key from environment variable if needed."""
        return _expand_env_reference(v, "REKA_API_KEY")

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ServerConfig(BaseModel):
    """Configuration for MCP server behavior."""

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log renderer: console or json")
    host: str = Field(default="127.0.0.1", description="HTTP transport bind address")
    port: int = Field(default=3000, description="HTTP transport port")
    max_duration_seconds: float = Field(
        default=180.0, description="Maximum duration of a single tool invocation"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in ("console", "json"):
            raise ValueError(f"Invalid log format: {v}. Must be 'console' or 'json'")
        return v_lower

    @field_validator("max_duration_seconds")
    @classmethod
    def validate_max_duration(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_duration_seconds must be positive")
        return v


class ToolConfig(BaseModel):
    """Configuration for individual tools."""

    enabled: bool = Field(default=True, description="Whether tool is enabled")


class ToolsConfig(BaseModel):
    """Configuration for all available tools."""

    verify_claim: ToolConfig = Field(default_factory=ToolConfig)
    find_similar: ToolConfig = Field(default_factory=ToolConfig)


class Config(BaseModel):
    """Main configuration object."""

    version: str = Field(default="0.1.0", description="Configuration version")
    reka: RekaConfig = Field(default_factory=RekaConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    model_config = ConfigDict(extra="forbid")


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment variables.

    Args:
        config_path: Path to configuration file. If None, looks for
                    REKA_MCP_CONFIG_PATH environment variable.

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file specified but not found
        ValueError: If configuration is invalid
    """
    if config_path is None:
        env_path = os.getenv("REKA_MCP_CONFIG_PATH")
        if env_path:
            config_path = Path(env_path)

    config_data: Dict[str, Any] = {}
    if config_path and config_path.exists():
        with open(config_path, "r") as f:
            config_data = json.load(f)
    elif config_path:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    # Environment variables take precedence over the file
    env_overrides: Dict[str, Any] = {}
    server_overrides = {
        "log_level": os.getenv("REKA_MCP_LOG_LEVEL"),
        "host": os.getenv("REKA_MCP_HOST"),
        "port": os.getenv("REKA_MCP_PORT"),
        "max_duration_seconds": os.getenv("REKA_MCP_MAX_DURATION"),
    }
    for key, value in server_overrides.items():
        if value:
            env_overrides.setdefault("server", {})[key] = value

    if env_overrides:
        config_data = _deep_merge(config_data, env_overrides)

    return Config(**config_data)


def create_default_config(config_path: Path) -> None:
    """
    Create a default configuration file.

    Args:
        config_path: Path where to create the configuration file
    """
    default_config = {
        "version": "0.1.0",
        "reka": {
            "api_url": DEFAULT_API_URL,
            "api_key": "${REKA_API_KEY}",
            "model": DEFAULT_MODEL,
        },
        "server": {
            "log_level": "INFO",
            "log_format": "console",
            "host": "127.0.0.1",
            "port": 3000,
            "max_duration_seconds": 180,
        },
        "tools": {
            "verify_claim": {"enabled": True},
            "find_similar": {"enabled": True},
        },
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(default_config, f, indent=2)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result
