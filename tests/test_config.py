"""Config file and environment loading."""

import json

import base58
import pytest
from solders.keypair import Keypair

from lifiswap.config import ConfigError, is_solana_chain, load_config, load_keypair, load_secrets


def _write(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_config_parses_sections(config):
    assert config.api_urls.lifi_base == "https://li.quest/v1"
    assert config.defaults.retry_attempts == 3
    assert config.defaults.bridge_max_polls == 5
    assert config.defaults.scenario_delay == 2
    assert config.swap_defaults.default_to_address("eth").startswith("0x")
    assert config.swap_defaults.default_to_address("sol") == "CBKvo4csvk8k2VpwVi13d6xQFEhgMEmJXVFhJeU9GEXj"
    assert config.logs.path_for("swap").name == "swap.log"
    assert config.scenarios == []


def test_missing_section_is_reported(tmp_path, config_data):
    del config_data["defaults"]
    with pytest.raises(ConfigError, match="defaults"):
        load_config(_write(tmp_path, config_data))


def test_invalid_commitment_rejected(tmp_path, config_data):
    config_data["defaults"]["commitment"] = "eventually"
    with pytest.raises(ConfigError, match="commitment"):
        load_config(_write(tmp_path, config_data))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.json")


def test_unknown_log_category(config):
    with pytest.raises(ConfigError):
        config.logs.path_for("nope")


def test_scenarios_parsed(tmp_path, config_data):
    config_data["scenarios"] = [{"name": "a", "from_token": "x", "to_token": "y", "amount": "1"}]
    config = load_config(_write(tmp_path, config_data))
    assert config.scenarios[0].from_chain == "sol"
    assert config.scenarios[0].to_address is None


def test_load_secrets_requires_signing_key_and_api_key():
    with pytest.raises(ConfigError, match="SOL_SECRET"):
        load_secrets({"LI_FI_API": "k"})
    secret = base58.b58encode(bytes(Keypair())).decode()
    with pytest.raises(ConfigError, match="LI_FI_API"):
        load_secrets({"SOL_SECRET": secret})


def test_load_secrets_decodes_keypair():
    keypair = Keypair()
    secrets = load_secrets({"SOL_SECRET": base58.b58encode(bytes(keypair)).decode(), "LI_FI_API": "key"})
    assert secrets.keypair.pubkey() == keypair.pubkey()
    assert secrets.shyft_api_key is None
    assert "key" not in repr(secrets)


def test_load_secrets_can_require_shyft():
    secret = base58.b58encode(bytes(Keypair())).decode()
    with pytest.raises(ConfigError, match="SHYFT_API_KEY"):
        load_secrets({"SOL_SECRET": secret, "LI_FI_API": "k"}, require_shyft=True)


@pytest.mark.parametrize("secret", ["not-base58-0OIl", base58.b58encode(b"short").decode()])
def test_bad_secret(secret):
    with pytest.raises(ConfigError):
        load_keypair(secret)


@pytest.mark.parametrize("chain,expected", [("sol", True), ("SOL", True), (1151111081099710, True), ("eth", False)])
def test_is_solana_chain(chain, expected):
    assert is_solana_chain(chain) is expected
