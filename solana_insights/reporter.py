#!/usr/bin/env python3
"""
Console output formatting for Solana Insights
Summary tables for endpoint results and JSON serialization
"""

import json
from dataclasses import asdict, is_dataclass
from typing import Any

from solana_insights.models import (
    GainersReport, Portfolio, ProfitableWallets, TopHolders, TopWallets, TransactionHistory,
)


def to_json(result: Any) -> str:
    """Serialize an endpoint result (dataclass tree) to indented JSON"""
    payload = asdict(result) if is_dataclass(result) else result
    return json.dumps(payload, indent=2)


class Reporter:
    """Prints human readable summaries of endpoint results"""

    WIDTH = 90

    def print_result(self, result: Any) -> None:
        """Dispatch to the summary for the result type, if it has one"""
        printers = {
            Portfolio: self.print_portfolio,
            TopHolders: self.print_top_holders,
            GainersReport: self.print_gainers,
            TransactionHistory: self.print_transactions,
            ProfitableWallets: self.print_profitable_wallets,
            TopWallets: self.print_top_wallets,
        }
        printer = printers.get(type(result))
        if printer:
            printer(result)

    def _header(self, title: str) -> None:
        print("\n" + "=" * self.WIDTH)
        print(title)
        print("=" * self.WIDTH)

    def print_portfolio(self, portfolio: Portfolio) -> None:
        self._header(f"💼 PORTFOLIO {portfolio.address}")
        print(f"  ◎ SOL: {portfolio.sol_balance.amount:,.4f} (${portfolio.sol_balance.value_usd:,.2f})")
        print(f"  🖼️ NFTs: {portfolio.nft_holdings}")

        print(f"\n{'Symbol':<12} {'Name':<30} {'Amount':>18} {'Price':>14} {'Value':>14}")
        print("-" * self.WIDTH)
        for holding in sorted(portfolio.token_holdings, key=lambda h: h.value_usd, reverse=True):
            price_str = f"${holding.price_usd:,.6f}" if holding.price_usd > 0 else "N/A"
            print(f"{holding.symbol[:11]:<12} {holding.name[:29]:<30} {holding.amount[:18]:>18} "
                  f"{price_str:>14} ${holding.value_usd:>13,.2f}")

        print(f"\n  💰 Total Value: ${portfolio.total_value_usd:,.2f}")

    def print_top_holders(self, report: TopHolders) -> None:
        self._header(f"🐋 TOP HOLDERS {report.mint}")
        print(f"{'Owner':<46} {'Amount':>24} {'Share':>10}")
        print("-" * self.WIDTH)
        for holder in report.holders:
            print(f"{holder.address:<46} {holder.amount[:24]:>24} {holder.percentage:>10}")
        print(f"\n  📊 Listed supply: {report.total_supply}")

    def print_gainers(self, report: GainersReport) -> None:
        self._header(f"🚀 TOKEN GAINERS ({report.period})")
        if not report.tokens:
            print("  ✅ NO TOKENS MATCH THE FILTERS")
            return
        print(f"{'Symbol':<12} {'Change':>10} {'Price':>14} {'Volume':>14} {'Market Cap':>16} {'Age':>6}")
        print("-" * self.WIDTH)
        for token in report.tokens:
            meme = " 🐸" if token.is_memecoin else ""
            print(f"{token.symbol[:11]:<12} {token.price_change:>+9.1f}% ${token.current_price:>13,.6f} "
                  f"${token.volume:>13,.0f} ${token.market_cap:>15,.0f} {token.age:>5}d{meme}")

    def print_transactions(self, history: TransactionHistory) -> None:
        self._header(f"📜 TRANSACTIONS {history.address}")
        print(f"  {history.message} ({history.total} signatures)")
        for tx in history.transactions:
            icon = {"success": "✅", "failed": "❌"}.get(tx.status, "⚠️")
            fee = f"fee {tx.fee} lamports" if tx.fee is not None else tx.error
            print(f"  {icon} {tx.signature[:20]}... slot {tx.slot} {fee}")

    def print_profitable_wallets(self, report: ProfitableWallets) -> None:
        self._header(f"📈 PROFITABLE WALLETS ({report.period})")
        print(f"{'Address':<46} {'Profit (SOL)':>16} {'Txs':>8}")
        print("-" * self.WIDTH)
        for wallet in report.wallets:
            print(f"{wallet.address:<46} {wallet.profit:>+16,.4f} {wallet.transactions:>8}")

    def print_top_wallets(self, report: TopWallets) -> None:
        self._header(f"🏦 TOP WALLETS ({report.total} accounts)")
        print(f"{'Address':<46} {'Balance (SOL)':>18} {'Txs':>8}")
        print("-" * self.WIDTH)
        for account in report.accounts:
            print(f"{account.address:<46} {account.balance:>18,.2f} {account.transaction_count:>8}")
