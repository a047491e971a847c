"""Configuration utilities for lifiswap."""

from .loader import (
    ApiUrlsConfig,
    ConfigError,
    DefaultsConfig,
    LogsConfig,
    ScenarioConfig,
    Secrets,
    SwapConfig,
    SwapDefaultsConfig,
    is_solana_chain,
    load_config,
    load_keypair,
    load_secrets,
)

__all__ = [
    "ApiUrlsConfig",
    "ConfigError",
    "DefaultsConfig",
    "LogsConfig",
    "ScenarioConfig",
    "Secrets",
    "SwapConfig",
    "SwapDefaultsConfig",
    "is_solana_chain",
    "load_config",
    "load_keypair",
    "load_secrets",
]
