"""Command line entry point: ``python -m deflex_swap quote|swap``."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

from deflex_swap.config import SwapConfig
from deflex_swap.errors import ConfigurationError, SwapError
from deflex_swap.features.aggregator.service import AggregatorClient
from deflex_swap.features.quote.service import QuoteFetcher
from deflex_swap.ledger import LedgerClient
from deflex_swap.models import SwapRequest
from deflex_swap.pipeline import SwapPipeline
from deflex_swap.shared.logging import format_error_for_user, setup_logging
from deflex_swap.shared.validation import AmountValidator, AssetIdValidator

logger = logging.getLogger(__name__)

DEFAULT_SLIPPAGE = "1"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="deflex-swap", description="Swap Algorand assets through Deflex"
    )
    parser.add_argument("--env-file", type=Path, default=None)
    parser.add_argument(
        "--config", type=Path, default=None, help="JSON file with timeout/retry overrides"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("quote", "Show the expected output amount"),
        ("swap", "Sign, submit and confirm a swap"),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("--from", dest="from_asset", required=True, help="Asset id or ALGO")
        command.add_argument("--to", dest="to_asset", required=True, help="Asset id or ALGO")
        command.add_argument("--amount", required=True, help="Amount in whole units, e.g. 1.5")
        command.add_argument("--slippage", default=DEFAULT_SLIPPAGE, help="Percent")

    return parser.parse_args(argv)


def _asset_id(value: str) -> int:
    result = AssetIdValidator.validate(value)
    if not result.is_valid:
        raise ValueError(f"{value!r}: {result.error_message}")
    return result.normalized_value


def _base_units(amount: str, decimals: int) -> int:
    result = AmountValidator.validate_full(amount, decimals)
    if not result.is_valid:
        raise ValueError(result.error_message)
    return result.normalized_value


def run_quote(args: argparse.Namespace) -> int:
    config = SwapConfig.load(args.config, validate=False)
    if not config.api_key:
        raise ConfigurationError(["DEFLEX_API_KEY"])

    ledger = LedgerClient.from_config(config)
    fetcher = QuoteFetcher(AggregatorClient.from_config(config), ledger)

    from_asset = _asset_id(args.from_asset)
    to_asset = _asset_id(args.to_asset)
    amount = _base_units(args.amount, ledger.get_asset_decimals(from_asset))

    quote = fetcher.fetch_quote(from_asset, to_asset, amount)
    if not quote.has_route:
        print("nothing to quote")
        return 1

    print(f"{args.amount} of {from_asset} -> {quote.normalized_amount} of {to_asset}")
    if quote.price_impact_percent is not None:
        print(f"price impact: {quote.price_impact_percent}%")
    if quote.usd_in is not None and quote.usd_out is not None:
        print(f"value: ${quote.usd_in:.2f} -> ${quote.usd_out:.2f}")
    return 0


def run_swap(args: argparse.Namespace) -> int:
    config = SwapConfig.load(args.config)
    pipeline = SwapPipeline.from_config(config)

    from_asset = _asset_id(args.from_asset)
    request = SwapRequest(
        from_asset_id=from_asset,
        to_asset_id=_asset_id(args.to_asset),
        amount=_base_units(args.amount, pipeline.ledger.get_asset_decimals(from_asset)),
        slippage_percent=args.slippage,
        sender_address=SwapPipeline.sender_address(config),
    )

    outcome = pipeline.execute(request)
    print(f"confirmed in round {outcome.confirmed_round}")
    print(f"transaction: {outcome.transaction_id}")
    if outcome.opt_in_transaction_id:
        print(f"opt-in: {outcome.opt_in_transaction_id}")
    if outcome.fee_transaction_id:
        print(f"fee: {outcome.fee_transaction_id}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    load_dotenv(args.env_file)
    setup_logging()

    try:
        if args.command == "quote":
            return run_quote(args)
        return run_swap(args)
    except SwapError as e:
        logger.error("%s failed: %s", args.command, e)
        print(format_error_for_user(e))
        return 2 if e.broadcast else 1
    except ValueError as e:
        print(f"invalid input: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
