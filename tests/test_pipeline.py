"""End-to-end pipeline runs against stubbed services."""

import base64
import logging
from unittest.mock import MagicMock

import pytest

from lifiswap.core.errors import ConfirmationFailedError, InvalidAddressError, MalformedTransactionError
from lifiswap.core.lifi import LiFiClient
from lifiswap.core.models import BridgeStatus, ReconciliationStatus, SwapRoute
from lifiswap.core.pipeline import PipelineStatus, SwapOptions, SwapPipeline, describe_quote
from lifiswap.core.utils import open_audit_log

from helpers import EVM_ADDRESS, SOL_MINT, USDT_MINT, FakeResponse, FakeSession, connections_body, quote_body

ROUTE = SwapRoute("sol", "sol", SOL_MINT, USDT_MINT)


def _pipeline(config, rpc, keypair, *responses, reconciler=None):
    session = FakeSession(*responses)
    lifi = LiFiClient(base_url=config.api_urls.lifi_base, api_key="k", timeout=5, session=session)
    pipeline = SwapPipeline(
        config=config, lifi=lifi, rpc=rpc, keypair=keypair, reconciler=reconciler, sleep=MagicMock()
    )
    return pipeline, session


def test_no_connection_halts_before_quoting(config, rpc, keypair, caplog):
    pipeline, session = _pipeline(config, rpc, keypair, FakeResponse(200, {"connections": []}))

    with caplog.at_level(logging.INFO):
        result = pipeline.run(SwapOptions(route=ROUTE, amount=10_000_000))

    assert result.status is PipelineStatus.HALTED
    assert result.quote is None
    assert session.paths() == ["connections"]
    rpc.send_raw_transaction.assert_not_called()
    assert "No connection found between tokens" in caplog.text


def test_full_swap_completes(config, rpc, keypair, payload, caplog):
    reconciler = MagicMock()
    reconciler.reconcile.return_value = MagicMock(status=ReconciliationStatus.COMPLETE)
    pipeline, session = _pipeline(
        config, rpc, keypair,
        FakeResponse(200, connections_body()),
        FakeResponse(200, quote_body(payload)),
        reconciler=reconciler,
    )
    confirm = MagicMock(return_value=True)

    with caplog.at_level(logging.INFO):
        result = pipeline.run(SwapOptions(route=ROUTE, amount=10_000_000, confirm=confirm))

    assert result.status is PipelineStatus.COMPLETED
    assert result.outcome.confirmed
    assert result.bridge_status is None
    confirm.assert_called_once_with(result.quote)
    reconciler.reconcile.assert_called_once_with(result.attempt.signature, result.quote)
    assert pipeline.submitter.in_flight is None
    assert "SWAP COMPLETED" in caplog.text
    assert f"https://solscan.io/tx/{result.attempt.signature}" in caplog.text


def test_declined_confirmation_cancels(config, rpc, keypair, payload):
    pipeline, _ = _pipeline(
        config, rpc, keypair, FakeResponse(200, connections_body()), FakeResponse(200, quote_body(payload))
    )

    result = pipeline.run(SwapOptions(route=ROUTE, amount=10_000_000, confirm=lambda quote: False))

    assert result.status is PipelineStatus.CANCELLED
    rpc.send_raw_transaction.assert_not_called()


def test_on_chain_failure_aborts_with_banner(config, rpc, keypair, payload, caplog):
    rpc.confirm_transaction.return_value = MagicMock(value=[MagicMock(err={"InstructionError": [0, "Custom"]})])
    reconciler = MagicMock()
    pipeline, _ = _pipeline(
        config, rpc, keypair,
        FakeResponse(200, connections_body()),
        FakeResponse(200, quote_body(payload)),
        reconciler=reconciler,
    )

    with caplog.at_level(logging.INFO), pytest.raises(ConfirmationFailedError):
        pipeline.run(SwapOptions(route=ROUTE, amount=10_000_000))

    assert "SWAP FAILED" in caplog.text
    reconciler.reconcile.assert_not_called()
    assert pipeline.submitter.in_flight is None


def test_cross_chain_waits_for_bridge(config, rpc, keypair, payload):
    route = SwapRoute("sol", "eth", SOL_MINT, "0xdac17f958d2ee523a2206206994597c13d831ec7")
    pipeline, session = _pipeline(
        config, rpc, keypair,
        FakeResponse(200, connections_body()),
        FakeResponse(200, quote_body(payload)),
        FakeResponse(200, {"status": "PENDING"}),
        FakeResponse(200, {"status": "DONE", "receiving": {"txHash": "0xabc"}}),
    )

    result = pipeline.run(SwapOptions(route=route, amount=10_000_000, to_address=EVM_ADDRESS, reconcile=False))

    assert result.bridge_status == BridgeStatus("DONE", None, "0xabc")
    assert session.paths() == ["connections", "quote", "status", "status"]
    assert session.calls[2]["params"]["txHash"] == result.attempt.signature


def test_invalid_destination_aborts_before_any_request(config, rpc, keypair):
    pipeline, session = _pipeline(config, rpc, keypair)
    route = SwapRoute("sol", "eth", SOL_MINT, USDT_MINT)

    with pytest.raises(InvalidAddressError):
        pipeline.run(SwapOptions(route=route, amount=10_000_000, to_address="not-an-address"))
    assert session.calls == []


def test_log_sink_receives_banners(config, rpc, keypair, tmp_path):
    path = tmp_path / "audit" / "swap.log"
    sink = open_audit_log(path, "Li.Fi Swap Analysis")
    pipeline, _ = _pipeline(config, rpc, keypair, FakeResponse(200, {"connections": []}))

    pipeline.run(SwapOptions(route=ROUTE, amount=10_000_000, log_sink=sink))

    text = path.read_text(encoding="utf-8")
    assert text.startswith("Li.Fi Swap Analysis")
    assert "NEW SWAP REQUEST" in text
    assert "] No connection found between tokens" in text


def test_quote_only_and_summary(config, rpc, keypair, payload):
    pipeline, session = _pipeline(config, rpc, keypair, FakeResponse(200, quote_body(payload)))

    quote = pipeline.quote_only(ROUTE, 10_000_000)

    assert session.paths() == ["quote"]
    assert session.calls[0]["params"]["toAddress"] == pipeline.address
    summary = describe_quote(quote)
    assert "From: 0.010000000 SOL (sol)" in summary
    assert "To: 9.950000 USDT (sol)" in summary
    assert "Slippage: 0.50%" in summary
    rpc.send_raw_transaction.assert_not_called()


def test_malformed_payload_fails_before_rpc_calls(config, rpc, keypair):
    bad_payload = base64.b64encode(b"not a transaction").decode()
    pipeline, _ = _pipeline(
        config, rpc, keypair, FakeResponse(200, connections_body()), FakeResponse(200, quote_body(bad_payload))
    )

    with pytest.raises(MalformedTransactionError):
        pipeline.run(SwapOptions(route=ROUTE, amount=10_000_000))

    rpc.get_balance.assert_not_called()
    rpc.get_version.assert_not_called()
    rpc.send_raw_transaction.assert_not_called()
