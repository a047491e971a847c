"""Config loader for the lifiswap project."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional

import base58
from solders.keypair import Keypair

SOLANA_CHAIN_KEYS = ("sol", "solana", "1151111081099710")


class ConfigError(ValueError):
    """Raised when configuration data is invalid or missing."""


def _require_keys(data: Mapping[str, Any], keys: Iterable[str], context: str) -> None:
    missing = [key for key in keys if key not in data]
    if missing:
        raise ConfigError(f"{context} missing required keys: {', '.join(missing)}")


def is_solana_chain(chain: Any) -> bool:
    """Return True for the chain keys/ids LI.FI uses for Solana."""
    return str(chain).strip().lower() in SOLANA_CHAIN_KEYS


@dataclass(frozen=True)
class ApiUrlsConfig:
    """External endpoints used by the pipeline."""

    lifi_base: str
    shyft_base: str
    solana_rpc: str


@dataclass(frozen=True)
class DefaultsConfig:
    """Default operational parameters."""

    api_timeout: int
    commitment: str
    expiry_margin: int
    retry_attempts: int
    retry_delay: float
    bridge_poll_interval: float
    bridge_max_polls: int
    scenario_delay: float
    explorer_network: str


@dataclass(frozen=True)
class SwapDefaultsConfig:
    """Values offered when the operator leaves a prompt empty."""

    from_chain: str
    from_token: str
    to_token: str
    amount: str
    to_chain: str
    evm_to_address: str
    sol_to_address: str

    def default_to_address(self, to_chain: str) -> str:
        return self.sol_to_address if is_solana_chain(to_chain) else self.evm_to_address


@dataclass(frozen=True)
class LogsConfig:
    """Audit log location, one file per run category."""

    directory: Path
    files: Mapping[str, str]

    def path_for(self, category: str) -> Path:
        try:
            return self.directory / self.files[category]
        except KeyError as exc:
            raise ConfigError(f"No log file configured for category '{category}'") from exc


@dataclass(frozen=True)
class ScenarioConfig:
    """A named quote request used by the ``scenarios`` command."""

    name: str
    from_chain: str
    to_chain: str
    from_token: str
    to_token: str
    amount: str
    to_address: Optional[str] = None


@dataclass(frozen=True)
class SwapConfig:
    """Typed wrapper around the lifiswap configuration."""

    api_urls: ApiUrlsConfig
    defaults: DefaultsConfig
    swap_defaults: SwapDefaultsConfig
    logs: LogsConfig
    scenarios: List[ScenarioConfig]
    raw: Mapping[str, Any] = field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Return the original configuration mapping."""
        return dict(self.raw)


@dataclass(frozen=True)
class Secrets:
    """Credentials read from the environment; never written to logs."""

    keypair: Keypair = field(repr=False)
    lifi_api_key: str = field(repr=False)
    shyft_api_key: Optional[str] = field(default=None, repr=False)
    rpc_url: Optional[str] = None


def _load_json(path: Path) -> MutableMapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file contains invalid JSON: {path}") from exc


def _parse_scenarios(items: Any) -> List[ScenarioConfig]:
    if not isinstance(items, list):
        raise ConfigError("scenarios must be a list")
    result: List[ScenarioConfig] = []
    for index, item in enumerate(items, start=1):
        _require_keys(item, ["name", "from_token", "to_token", "amount"], f"scenario #{index}")
        result.append(
            ScenarioConfig(
                name=str(item["name"]),
                from_chain=str(item.get("from_chain", "sol")),
                to_chain=str(item.get("to_chain", "sol")),
                from_token=str(item["from_token"]),
                to_token=str(item["to_token"]),
                amount=str(item["amount"]),
                to_address=item.get("to_address"),
            )
        )
    return result


def load_config(config_path: Optional[Path] = None) -> SwapConfig:
    """Load and validate lifiswap configuration data."""
    config_path = config_path or Path(os.getenv("LIFISWAP_CONFIG", "config.json"))
    data = _load_json(config_path)

    _require_keys(data, ["api_urls", "defaults", "swap_defaults", "logs"], "config")

    api_urls = data["api_urls"]
    _require_keys(api_urls, ["lifi_base", "shyft_base", "solana_rpc"], "api_urls")
    api_config = ApiUrlsConfig(
        lifi_base=str(api_urls["lifi_base"]).rstrip("/"),
        shyft_base=str(api_urls["shyft_base"]).rstrip("/"),
        solana_rpc=str(api_urls["solana_rpc"]),
    )

    defaults = data["defaults"]
    _require_keys(
        defaults,
        ["api_timeout", "commitment", "expiry_margin", "retry_attempts", "retry_delay"],
        "defaults",
    )
    defaults_config = DefaultsConfig(
        api_timeout=int(defaults["api_timeout"]),
        commitment=str(defaults["commitment"]),
        expiry_margin=int(defaults["expiry_margin"]),
        retry_attempts=int(defaults["retry_attempts"]),
        retry_delay=float(defaults["retry_delay"]),
        bridge_poll_interval=float(defaults.get("bridge_poll_interval", 10)),
        bridge_max_polls=int(defaults.get("bridge_max_polls", 120)),
        scenario_delay=float(defaults.get("scenario_delay", 2)),
        explorer_network=str(defaults.get("explorer_network", "mainnet-beta")),
    )
    if defaults_config.api_timeout <= 0:
        raise ConfigError("defaults.api_timeout must be positive")
    if defaults_config.commitment not in ("processed", "confirmed", "finalized"):
        raise ConfigError("defaults.commitment must be processed, confirmed or finalized")
    if defaults_config.expiry_margin <= 0:
        raise ConfigError("defaults.expiry_margin must be positive")
    if defaults_config.retry_attempts < 1:
        raise ConfigError("defaults.retry_attempts must be at least 1")
    if defaults_config.retry_delay < 0:
        raise ConfigError("defaults.retry_delay must not be negative")
    if defaults_config.bridge_max_polls < 1:
        raise ConfigError("defaults.bridge_max_polls must be at least 1")

    swap_defaults = data["swap_defaults"]
    _require_keys(
        swap_defaults,
        ["from_token", "to_token", "amount", "to_chain", "evm_to_address", "sol_to_address"],
        "swap_defaults",
    )
    swap_config = SwapDefaultsConfig(
        from_chain=str(swap_defaults.get("from_chain", "sol")),
        from_token=str(swap_defaults["from_token"]),
        to_token=str(swap_defaults["to_token"]),
        amount=str(swap_defaults["amount"]),
        to_chain=str(swap_defaults["to_chain"]),
        evm_to_address=str(swap_defaults["evm_to_address"]),
        sol_to_address=str(swap_defaults["sol_to_address"]),
    )

    logs = data["logs"]
    _require_keys(logs, ["directory", "files"], "logs")
    logs_config = LogsConfig(directory=Path(logs["directory"]), files=dict(logs["files"]))

    return SwapConfig(
        api_urls=api_config,
        defaults=defaults_config,
        swap_defaults=swap_config,
        logs=logs_config,
        scenarios=_parse_scenarios(data.get("scenarios", [])),
        raw=data,
    )


def load_keypair(secret: str) -> Keypair:
    """Decode a base58 64-byte secret key into a signing keypair."""
    try:
        raw = base58.b58decode(secret.strip())
    except ValueError as exc:
        raise ConfigError("SOL_SECRET is not valid base58") from exc
    if len(raw) != 64:
        raise ConfigError(f"SOL_SECRET must decode to 64 bytes, got {len(raw)}")
    try:
        return Keypair.from_bytes(raw)
    except ValueError as exc:
        raise ConfigError(f"SOL_SECRET is not a valid ed25519 keypair: {exc}") from exc


def load_secrets(environ: Optional[Mapping[str, str]] = None, *, require_shyft: bool = False) -> Secrets:
    """Read credentials from the environment; missing values are fatal."""
    env = os.environ if environ is None else environ

    secret = (env.get("SOL_SECRET") or "").strip()
    if not secret:
        raise ConfigError("SOL_SECRET is not set in .env file")
    api_key = (env.get("LI_FI_API") or "").strip()
    if not api_key:
        raise ConfigError("LI_FI_API is not set in .env file")
    shyft_key = (env.get("SHYFT_API_KEY") or "").strip() or None
    if require_shyft and not shyft_key:
        raise ConfigError("SHYFT_API_KEY is not set in .env file")

    return Secrets(
        keypair=load_keypair(secret),
        lifi_api_key=api_key,
        shyft_api_key=shyft_key,
        rpc_url=(env.get("SOLANA_RPC_URL") or "").strip() or None,
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
