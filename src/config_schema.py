"""Pydantic schema for configuration validation.

All config values are validated at startup. Typos and invalid values
fail fast with clear error messages.

Usage:
    from src.config_schema import load_validated_config, AppConfig
    config = load_validated_config("config/config.yaml")
    # config is now a validated AppConfig instance
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# BASE MODEL WITH STRICT VALIDATION
# =============================================================================

class StrictModel(BaseModel):
    """Base model that rejects unknown fields (catches typos)."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# NETWORK MODELS
# =============================================================================

class NetworkConfig(StrictModel):
    """Which ledger network the suite talks to."""

    name: Literal["testnet", "previewnet", "mainnet", "solo"] = Field(
        default="testnet",
        description="Named network passed to the SDK"
    )


class OperatorConfig(StrictModel):
    """Where the operator (fee-paying, treasury) credentials come from.

    Only environment variable NAMES live in config. The values are read
    from the environment (usually a .env file) so secrets never land in
    the repository.
    """

    account_id_env: str = Field(
        default="OPERATOR_ID",
        min_length=1,
        description="Env var holding the operator account id (e.g. 0.0.1234)"
    )
    private_key_env: str = Field(
        default="OPERATOR_KEY",
        min_length=1,
        description="Env var holding the operator private key"
    )
    key_type: Literal["ed25519", "ecdsa"] = Field(
        default="ed25519",
        description="Algorithm of the operator private key"
    )


# =============================================================================
# SCENARIO MODELS
# =============================================================================

class AccountsConfig(StrictModel):
    """Defaults for accounts created during scenarios."""

    max_token_associations: int = Field(
        default=10,
        ge=0,
        description="Automatic token associations granted to new accounts"
    )
    funding_hbar: int = Field(
        default=10,
        ge=0,
        description="Extra hbar added on top of a scenario's requested minimum"
    )


class SubscriptionConfig(StrictModel):
    """Topic subscription waiter settings."""

    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Single window for the whole wait, not per message"
    )


# =============================================================================
# LOGGING MODEL
# =============================================================================

class LoggingConfig(StrictModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level for the suite"
    )
    format: str = Field(
        default="[%(asctime)s] %(message)s",
        description="Console log format"
    )
    output_file: str | None = Field(
        default=None,
        description="Optional JSON-lines file recording structured events"
    )

    @field_validator("output_file")
    @classmethod
    def empty_means_disabled(cls, v: str | None) -> str | None:
        """Treat an empty string like a missing file."""
        if v is not None and not v.strip():
            return None
        return v


# =============================================================================
# ROOT CONFIG MODEL
# =============================================================================

class AppConfig(StrictModel):
    """Root configuration model.

    All sections have defaults, so an empty config file is valid.
    """

    network: NetworkConfig = Field(default_factory=NetworkConfig)
    operator: OperatorConfig = Field(default_factory=OperatorConfig)
    accounts: AccountsConfig = Field(default_factory=AccountsConfig)
    subscription: SubscriptionConfig = Field(default_factory=SubscriptionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================

def validate_config_dict(config_dict: dict[str, Any]) -> AppConfig:
    """Validate a config dictionary.

    Args:
        config_dict: Raw config dictionary

    Returns:
        Validated AppConfig instance

    Raises:
        pydantic.ValidationError: If config is invalid
    """
    return AppConfig.model_validate(config_dict)


def load_validated_config(config_path: str | Path) -> AppConfig:
    """Load and validate config from YAML file.

    Args:
        config_path: Path to YAML config file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    return validate_config_dict(raw_config)


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    # Root config
    "AppConfig",
    # Sub-configs
    "NetworkConfig",
    "OperatorConfig",
    "AccountsConfig",
    "SubscriptionConfig",
    "LoggingConfig",
    # Functions
    "load_validated_config",
    "validate_config_dict",
]
