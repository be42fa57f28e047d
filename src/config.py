"""Configuration loader for the ledger behaviour suite

Tunable values come from config/config.yaml. Secrets (operator account id
and private key) come from the environment, usually via a .env file; the
config only names the variables that hold them.

Configuration is validated at load time using Pydantic.
Typos and invalid values fail fast with clear error messages.

Usage:
    from src.config import load_config, get, get_validated_config

    # Load and validate (call once at startup)
    load_config("config/config.yaml")

    # Get values by dot-path
    timeout = get("subscription.timeout_seconds")

    # Or use the typed config object (preferred)
    config = get_validated_config()
    timeout = config.subscription.timeout_seconds
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .config_schema import AppConfig, load_validated_config, validate_config_dict
from .ledger.errors import ConfigurationError


@dataclass(frozen=True)
class OperatorCredentials:
    """Operator account id and private key as read from the environment."""

    account_id: str
    private_key: str
    key_type: str


# Global config instances
_config: dict[str, Any] | None = None
_validated_config: AppConfig | None = None

# Default config path
DEFAULT_CONFIG_PATH: Path = Path(__file__).parent.parent / "config" / "config.yaml"


def load_config(config_path: str | Path | None = None) -> dict[str, Any]:
    """Load and validate configuration from YAML file.

    Validates the config against the Pydantic schema. Invalid configs
    raise a ValidationError with details about what's wrong.

    Args:
        config_path: Path to config file. Defaults to config/config.yaml.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        pydantic.ValidationError: If config is invalid.
    """
    global _config, _validated_config

    path: Path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    _validated_config = load_validated_config(path)

    with open(path) as f:
        loaded: Any = yaml.safe_load(f)
        if not isinstance(loaded, dict):
            loaded = {}
        _config = loaded

    return _config


def get_config() -> dict[str, Any]:
    """Get the loaded configuration dict. Loads default if not already loaded.

    For typed access, use get_validated_config() instead.
    """
    global _config
    if _config is None:
        load_config()
    if _config is None:
        raise RuntimeError("Config failed to load. Call load_config() first.")
    return _config


def get_validated_config() -> AppConfig:
    """Get the validated configuration object.

    Returns a typed AppConfig instance with IDE autocompletion support.
    Loads default config if not already loaded.
    """
    global _validated_config
    if _validated_config is None:
        load_config()
    if _validated_config is None:
        raise RuntimeError("Validated config failed to load. Call load_config() first.")
    return _validated_config


def get(key: str, default: Any = None) -> Any:
    """Get a config value by dot-separated key path.

    Examples:
        get("network.name")
        get("subscription.timeout_seconds")
        get("accounts.max_token_associations")
    """
    config: dict[str, Any] = get_config()
    keys: list[str] = key.split(".")

    value: Any = config
    for k in keys:
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default

    return value


def set_config_value(key: str, value: Any) -> None:
    """Set a config value by dot-separated key path.

    Used for runtime overrides (e.g., CLI args). The whole config is
    re-validated, so an invalid override raises immediately.

    Args:
        key: Dot-separated key path (e.g., "network.name")
        value: Value to set
    """
    global _config, _validated_config

    if _config is None:
        load_config()

    if _config is None:
        raise RuntimeError("Config failed to load. Call load_config() first.")

    keys = key.split(".")
    target = _config

    # Navigate to parent
    for k in keys[:-1]:
        if not isinstance(target.get(k), dict):
            target[k] = {}
        target = target[k]

    target[keys[-1]] = value

    _validated_config = validate_config_dict(_config)


def get_operator_credentials(config: AppConfig | None = None) -> OperatorCredentials:
    """Read the operator credentials named by the config from the environment.

    A .env file in the working directory is loaded first; variables already
    set in the environment win.

    Raises:
        ConfigurationError: If either variable is unset or empty.
    """
    config = config or get_validated_config()
    load_dotenv()

    names = (config.operator.account_id_env, config.operator.private_key_env)
    missing = [name for name in names if not os.environ.get(name)]
    if missing:
        raise ConfigurationError(
            f"Operator credentials missing from environment: {', '.join(missing)}",
            missing=missing,
        )

    return OperatorCredentials(
        account_id=os.environ[config.operator.account_id_env],
        private_key=os.environ[config.operator.private_key_env],
        key_type=config.operator.key_type,
    )
