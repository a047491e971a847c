"""CLI entrypoint for quoting, executing and analyzing LI.FI swaps from Solana."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from dotenv import load_dotenv
from solana.rpc.api import Client

from lifiswap.config import ConfigError, Secrets, SwapConfig, load_config, load_secrets
from lifiswap.core.errors import SwapError
from lifiswap.core.lifi import LiFiClient
from lifiswap.core.models import SwapRoute
from lifiswap.core.pipeline import SwapOptions, SwapPipeline, describe_quote
from lifiswap.core.reconcile import SwapReconciler
from lifiswap.core.utils import (
    attach_audit_log,
    detach_audit_log,
    get_logger,
    open_audit_log,
    parse_raw_amount,
)

LOGGER = get_logger("lifiswap.cli")

load_dotenv()

AMOUNT_GUIDE = (
    "Amount Format Guide (SOL has 9 decimals):",
    "1 SOL = 1000000000",
    "0.1 SOL = 100000000",
    "0.01 SOL = 10000000",
    "0.001 SOL = 1000000",
)

LOG_HEADERS = {
    "swap": "Li.Fi Swap Analysis",
    "quote": "Li.Fi Quote Results",
    "scenarios": "Li.Fi Test Results",
    "analysis": "Swap Transaction Analysis",
}


def ask(question: str, default: str, input_fn: Callable[[str], str] = input) -> str:
    answer = input_fn(f"{question} (default: {default}): ").strip()
    return answer or default


def ask_confirmation(question: str, input_fn: Callable[[str], str] = input) -> bool:
    answer = input_fn(f"{question}\n\nDo you want to proceed? (yes/no): ").strip().lower()
    return answer in ("yes", "y")


def _build_reconciler(config: SwapConfig, secrets: Secrets) -> Optional[SwapReconciler]:
    if not secrets.shyft_api_key:
        LOGGER.warning("SHYFT_API_KEY not set; post-swap reconciliation is disabled")
        return None
    return SwapReconciler(
        base_url=config.api_urls.shyft_base,
        api_key=secrets.shyft_api_key,
        timeout=config.defaults.api_timeout,
        network=config.defaults.explorer_network,
    )


def build_pipeline(config: SwapConfig, secrets: Secrets) -> SwapPipeline:
    rpc = Client(secrets.rpc_url or config.api_urls.solana_rpc, timeout=config.defaults.api_timeout)
    pipeline = SwapPipeline(
        config=config,
        lifi=LiFiClient.from_config(config, secrets.lifi_api_key),
        rpc=rpc,
        keypair=secrets.keypair,
        reconciler=_build_reconciler(config, secrets),
    )
    LOGGER.info("Solana wallet initialized with address: %s", pipeline.address)
    return pipeline


def _route_from_args(args: argparse.Namespace, config: SwapConfig,
                     input_fn: Callable[[str], str]) -> Tuple[SwapRoute, int, str]:
    defaults = config.swap_defaults
    interactive = not args.non_interactive

    def pick(value: Optional[str], question: str, default: str) -> str:
        if value:
            return value
        return ask(question, default, input_fn) if interactive else default

    from_token = pick(args.from_token, "Enter from token address", defaults.from_token)
    to_token = pick(args.to_token, "Enter to token address", defaults.to_token)
    if interactive and not args.amount:
        for line in AMOUNT_GUIDE:
            LOGGER.info(line)
    amount_text = pick(args.amount, "Enter amount in raw format", defaults.amount)
    to_chain = pick(args.to_chain, "Enter target chain", defaults.to_chain)
    to_address = pick(args.to_address, "Enter target address", defaults.default_to_address(to_chain))

    amount = parse_raw_amount(amount_text)
    LOGGER.info("Amount Details: input=%s formatted=%s", amount_text, amount)
    route = SwapRoute(
        from_chain=args.from_chain or defaults.from_chain,
        to_chain=to_chain,
        from_token=from_token,
        to_token=to_token,
    )
    return route, amount, to_address


def cmd_swap(args: argparse.Namespace, config: SwapConfig, pipeline: SwapPipeline,
             input_fn: Callable[[str], str] = input) -> int:
    route, amount, to_address = _route_from_args(args, config, input_fn)
    sink = open_audit_log(config.logs.path_for("swap"), LOG_HEADERS["swap"])

    def confirm(quote) -> bool:
        if args.yes:
            return True
        return ask_confirmation(describe_quote(quote), input_fn)

    result = pipeline.run(
        SwapOptions(
            route=route,
            amount=amount,
            to_address=to_address,
            confirm=confirm,
            log_sink=sink,
            check_route=not args.skip_route_check,
        )
    )
    LOGGER.info("Swap run finished: %s", result.status.value)
    return 0


def cmd_quote(args: argparse.Namespace, config: SwapConfig, pipeline: SwapPipeline,
              input_fn: Callable[[str], str] = input) -> int:
    route, amount, to_address = _route_from_args(args, config, input_fn)
    sink = open_audit_log(config.logs.path_for("quote"), LOG_HEADERS["quote"])
    attach_audit_log(sink)
    try:
        check = pipeline.checker.check(route)
        if not check.found:
            LOGGER.warning("No connection found between tokens; requesting quote anyway")
        quote = pipeline.quote_only(route, amount, to_address)
        LOGGER.info(describe_quote(quote))
    finally:
        detach_audit_log(sink)
    return 0


def cmd_scenarios(args: argparse.Namespace, config: SwapConfig, pipeline: SwapPipeline,
                  sleep: Callable[[float], None] = time.sleep) -> int:
    sink = open_audit_log(config.logs.path_for("scenarios"), LOG_HEADERS["scenarios"])
    attach_audit_log(sink)
    failures = 0
    try:
        LOGGER.info("Starting Li.Fi API tests...")
        for index, scenario in enumerate(config.scenarios):
            if index:
                sleep(config.defaults.scenario_delay)
            LOGGER.info("Testing scenario: %s", scenario.name)
            route = SwapRoute(scenario.from_chain, scenario.to_chain, scenario.from_token, scenario.to_token)
            try:
                pipeline.quote_only(route, parse_raw_amount(scenario.amount), scenario.to_address)
            except (SwapError, ValueError) as exc:
                failures += 1
                LOGGER.error("Failed to test scenario: %s", scenario.name)
                LOGGER.error("Error: %s", exc)
        LOGGER.info("Test suite completed! %s/%s scenarios quoted", len(config.scenarios) - failures,
                    len(config.scenarios))
    finally:
        detach_audit_log(sink)
    return 0


def cmd_analyze(args: argparse.Namespace, config: SwapConfig, pipeline: SwapPipeline) -> int:
    if pipeline.reconciler is None:
        raise ConfigError("SHYFT_API_KEY is not set in .env file")
    sink = open_audit_log(config.logs.path_for("analysis"), LOG_HEADERS["analysis"])
    attach_audit_log(sink)
    try:
        pipeline.reconciler.reconcile(args.signature)
    finally:
        detach_audit_log(sink)
    return 0


def _add_route_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from-chain", help="Source chain key (default from config)")
    parser.add_argument("--from-token", help="Source token address")
    parser.add_argument("--to-token", help="Destination token address")
    parser.add_argument("--amount", help="Raw integer amount in the source token's smallest unit")
    parser.add_argument("--to-chain", help="Destination chain key, e.g. sol or eth")
    parser.add_argument("--to-address", help="Destination address on the target chain")
    parser.add_argument("--non-interactive", action="store_true", help="Use flags and config defaults, no prompts")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Quote and execute LI.FI swaps from a Solana wallet")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    sub = parser.add_subparsers(dest="command", required=True)

    swap = sub.add_parser("swap", help="Quote, confirm, sign, broadcast and reconcile a swap")
    _add_route_args(swap)
    swap.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    swap.add_argument("--skip-route-check", action="store_true", help="Quote even without a known connection")

    quote = sub.add_parser("quote", help="Request and print a quote without signing")
    _add_route_args(quote)

    sub.add_parser("scenarios", help="Quote every scenario listed in the config")

    analyze = sub.add_parser("analyze", help="Reconcile an already finalized transaction")
    analyze.add_argument("signature", help="Transaction signature to analyze")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)

    try:
        config = load_config(args.config)
        secrets = load_secrets(require_shyft=args.command == "analyze")
    except ConfigError as exc:
        print(f"❌ Error: {exc}")
        sys.exit(1)

    try:
        pipeline = build_pipeline(config, secrets)
        if args.command == "swap":
            code = cmd_swap(args, config, pipeline)
        elif args.command == "quote":
            code = cmd_quote(args, config, pipeline)
        elif args.command == "scenarios":
            code = cmd_scenarios(args, config, pipeline)
        else:
            code = cmd_analyze(args, config, pipeline)
    except SwapError as exc:
        print(f"\n❌ Error: {exc.describe()}")
        sys.exit(1)
    except Exception as exc:
        print(f"\n❌ Error: {exc}")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
