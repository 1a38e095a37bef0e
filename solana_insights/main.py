#!/usr/bin/env python3
"""
CLI entry points for Solana Insights
Validates arguments, runs one endpoint and prints its summary and JSON
"""

import asyncio
import re
import sys
from typing import List, Optional

from solana_insights.config import Settings
from solana_insights.models import AggregationError, SolanaApiError
from solana_insights.orchestrator import SolanaAggregator
from solana_insights.reporter import Reporter, to_json

# base58 alphabet, 32-byte keys encode to 32..44 characters
ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")

USAGE = """Usage:
  python -m solana_insights.main portfolio <address>
  python -m solana_insights.main top-holders <mint|$TICKER> [limit]
  python -m solana_insights.main gainers [limit] [hours]
  python -m solana_insights.main transactions <address> [limit]
  python -m solana_insights.main holders <mint> [limit] [offset]
  python -m solana_insights.main wallets [limit] [offset]
  python -m solana_insights.main profitable [days] [limit]
  python -m solana_insights.main address <address>
  python -m solana_insights.main tokens <address> [mint]
  python -m solana_insights.main metadata <mint>
  python -m solana_insights.main stats"""


class UsageError(Exception):
    """Bad command line arguments"""


def is_valid_address(value: str) -> bool:
    """Shape check for a base58 public key"""
    return bool(ADDRESS_PATTERN.match(value or ""))


def _address(args: List[str], index: int, what: str = "address") -> str:
    if len(args) <= index:
        raise UsageError(f"Missing {what}")
    if not is_valid_address(args[index]):
        raise UsageError(f"Invalid Solana {what}: {args[index]}")
    return args[index]


def _int(args: List[str], index: int, default: int) -> int:
    if len(args) <= index:
        return default
    try:
        return int(args[index])
    except ValueError:
        raise UsageError(f"Expected a number, got {args[index]!r}") from None


async def run_command(aggregator: SolanaAggregator, args: List[str]):
    """Map a command line onto an aggregator call"""
    if not args:
        raise UsageError("No command given")
    command, rest = args[0].lower(), args[1:]

    if command == "portfolio":
        return await aggregator.portfolio(_address(rest, 0))
    if command == "top-holders":
        if rest and rest[0].startswith("$"):
            return await aggregator.top_holders(ticker=rest[0][1:], limit=_int(rest, 1, 10))
        return await aggregator.top_holders(mint=_address(rest, 0, "mint"), limit=_int(rest, 1, 10))
    if command == "gainers":
        mints = await aggregator.discover_recent_mints()
        return await aggregator.token_gainers(mints, limit=_int(rest, 0, 10), hours=_int(rest, 1, 24))
    if command == "transactions":
        return await aggregator.transaction_history(_address(rest, 0), limit=_int(rest, 1, 1))
    if command == "holders":
        return await aggregator.token_holders(_address(rest, 0, "mint"), limit=_int(rest, 1, 100),
                                              offset=_int(rest, 2, 0))
    if command == "wallets":
        return await aggregator.top_wallets(limit=_int(rest, 0, 100), offset=_int(rest, 1, 0))
    if command == "profitable":
        return await aggregator.profitable_wallets(days=_int(rest, 0, 7), limit=_int(rest, 1, 100))
    if command == "address":
        return await aggregator.address_info(_address(rest, 0))
    if command == "tokens":
        mint = _address(rest, 1, "mint") if len(rest) > 1 else None
        return await aggregator.tokens(_address(rest, 0), mint=mint)
    if command == "metadata":
        return await aggregator.token_metadata(_address(rest, 0, "mint"))
    if command == "stats":
        return await aggregator.network_stats()
    raise UsageError(f"Unknown command: {command}")


async def main(argv: Optional[List[str]] = None) -> int:
    """Run one command and print its result"""
    args = sys.argv[1:] if argv is None else argv
    settings = Settings.from_env()
    print(f"🔗 RPC endpoint: {settings.rpc_url}")

    async with SolanaAggregator(settings) as aggregator:
        try:
            result = await run_command(aggregator, args)
        except UsageError as e:
            print(f"❌ {e}")
            print(USAGE)
            return 2
        except AggregationError as e:
            print(f"❌ {e}")
            return 1
        except SolanaApiError as e:
            print(f"❌ Downstream request failed: {e}")
            print(to_json(e.to_dict()))
            return 1

    Reporter().print_result(result)
    print(to_json(result))
    return 0


def cli() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n❌ Interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    cli()
