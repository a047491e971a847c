"""
lifiswap Test Configuration
===========================
Shared fixtures: a real signable payload, typed config, and an RPC double.
"""

import json
import os
import sys
from unittest.mock import MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

# Add project root and this directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from lifiswap.config import load_config  # noqa: E402
from helpers import EVM_ADDRESS, SOL_MINT, USDT_MINT, build_payload  # noqa: E402


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def payload(keypair) -> str:
    return build_payload(keypair)


@pytest.fixture
def config_data(tmp_path) -> dict:
    return {
        "api_urls": {
            "lifi_base": "https://li.quest/v1/",
            "shyft_base": "https://api.shyft.to/sol/v1",
            "solana_rpc": "https://api.mainnet-beta.solana.com",
        },
        "defaults": {
            "api_timeout": 30,
            "commitment": "confirmed",
            "expiry_margin": 150,
            "retry_attempts": 3,
            "retry_delay": 1.0,
            "bridge_poll_interval": 10,
            "bridge_max_polls": 5,
        },
        "swap_defaults": {
            "from_token": SOL_MINT,
            "to_token": USDT_MINT,
            "amount": "10000000",
            "to_chain": "sol",
            "evm_to_address": EVM_ADDRESS,
            "sol_to_address": "CBKvo4csvk8k2VpwVi13d6xQFEhgMEmJXVFhJeU9GEXj",
        },
        "logs": {"directory": str(tmp_path / "logs"), "files": {"swap": "swap.log", "analysis": "analysis.log"}},
    }


@pytest.fixture
def config(tmp_path, config_data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_data), encoding="utf-8")
    return load_config(path)


@pytest.fixture
def rpc():
    """A Solana RPC client double that accepts and confirms everything."""
    client = MagicMock()
    client.get_latest_blockhash.return_value = MagicMock(value=MagicMock(blockhash=Hash.default()))
    client.get_block_height.return_value = MagicMock(value=1_000)
    client.get_balance.return_value = MagicMock(value=10**10)
    client.send_raw_transaction.side_effect = (
        lambda raw, opts=None: MagicMock(value=VersionedTransaction.from_bytes(raw).signatures[0])
    )
    client.confirm_transaction.return_value = MagicMock(value=[MagicMock(err=None)])
    return client
