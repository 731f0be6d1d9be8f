"""
Configuration management for CORA.

Loads configuration from multiple sources in order of priority:
1. Environment variables (CORA_*)
2. User config (~/.config/cora/config.toml)
3. System config (/etc/cora/config.toml)
"""

import os
import sys
from pathlib import Path
from typing import Any, Literal, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pydantic import BaseModel, Field

from .errors import ConfigurationError
from .shell.profiles import default_process_name


DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-5-20250929",
    "openai": "gpt-4o",
}


class APIConfig(BaseModel):
    """Language model configuration."""
    provider: Literal["anthropic", "openai"] = Field(default="anthropic", description="Model provider")
    api_key: Optional[str] = Field(default=None, description="Provider API key")
    model: Optional[str] = Field(default=None, description="Model to use (provider default when unset)")
    max_tokens: int = Field(default=2048, description="Max tokens per response")
    base_url: Optional[str] = Field(default=None, description="Custom endpoint for OpenAI-compatible servers")
    azure_endpoint: Optional[str] = Field(default=None, description="Azure OpenAI resource endpoint")
    azure_api_version: str = Field(default="2024-06-01", description="Azure OpenAI API version")
    history_size: int = Field(default=10, description="Conversation messages sent as context")

    def resolved_model(self) -> str:
        """Get the configured model or the provider's default."""
        return self.model or DEFAULT_MODELS[self.provider]


class ShellConfig(BaseModel):
    """Persistent shell configuration."""
    process_name: str = Field(default_factory=default_process_name, description="Shell executable")
    dialect: Optional[str] = Field(
        default=None,
        description="bash, cmd or powershell (inferred from process_name when unset)"
    )
    stderr_idle_timeout: float = Field(
        default=0.5,
        description="Seconds of stderr silence that end a command's error output"
    )
    command_timeout: Optional[float] = Field(
        default=None,
        description="Seconds to wait for a command to finish (None waits forever)"
    )


class UIConfig(BaseModel):
    """UI configuration."""
    debug: bool = Field(default=False, description="Show debug output")
    use_colors: bool = Field(default=True, description="Use colors in output")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    enabled: bool = Field(default=True, description="Enable audit logging")
    path: str = Field(default="~/.config/cora/logs/audit.log", description="Log file path")
    level: str = Field(default="info", description="Log level")


class CoraConfig(BaseModel):
    """Main CORA configuration."""
    api: APIConfig = Field(default_factory=APIConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the per-user configuration directory."""
    return Path.home() / ".config" / "cora"


def get_config_paths() -> list[Path]:
    """Get configuration file paths in order of priority."""
    return [
        get_config_dir() / "config.toml",
        Path("/etc/cora/config.toml"),
    ]


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    if path.exists():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


def merge_configs(base: dict, override: dict) -> dict:
    """Deep merge two configuration dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def load_env_overrides() -> dict[str, Any]:
    """Load configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    provider = os.environ.get("CORA_PROVIDER")
    if provider:
        overrides.setdefault("api", {})["provider"] = provider.lower()

    # Provider-specific keys only apply to their provider
    effective_provider = provider.lower() if provider else None
    api_key = os.environ.get("CORA_API_KEY")
    if not api_key and effective_provider in (None, "anthropic"):
        api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key and effective_provider in (None, "openai"):
        api_key = os.environ.get("OPENAI_API_KEY")
    if api_key:
        overrides.setdefault("api", {})["api_key"] = api_key

    model = os.environ.get("CORA_MODEL")
    if model:
        overrides.setdefault("api", {})["model"] = model

    shell = os.environ.get("CORA_SHELL")
    if shell:
        overrides.setdefault("shell", {})["process_name"] = shell

    if os.environ.get("CORA_DEBUG"):
        overrides.setdefault("ui", {})["debug"] = True
        overrides.setdefault("logging", {})["level"] = "debug"

    return overrides


def load_config() -> CoraConfig:
    """Load configuration from all sources."""
    config_data: dict[str, Any] = {}

    # Lowest priority first
    for path in reversed(get_config_paths()):
        config_data = merge_configs(config_data, load_toml_config(path))

    config_data = merge_configs(config_data, load_env_overrides())

    return CoraConfig(**config_data)


def validate_config(config: CoraConfig) -> None:
    """
    Check settings that are required before a session can start.

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    if not config.api.api_key:
        raise ConfigurationError(
            "No API key configured",
            user_message=(
                "No API key found. Set CORA_API_KEY (or ANTHROPIC_API_KEY / OPENAI_API_KEY), "
                "or add api_key to ~/.config/cora/config.toml."
            )
        )

    if config.api.history_size < 0:
        raise ConfigurationError("history_size must be greater than or equal to 0")

    if config.shell.stderr_idle_timeout <= 0:
        raise ConfigurationError("stderr_idle_timeout must be positive")

    if not config.shell.process_name.strip():
        raise ConfigurationError("shell.process_name must not be empty")


def ensure_config_dirs() -> None:
    """Ensure configuration directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)


# Global config instance
_config: Optional[CoraConfig] = None


def get_config() -> CoraConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
