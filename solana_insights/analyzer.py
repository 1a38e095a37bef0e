#!/usr/bin/env python3
"""
Derived computation for Solana Insights
Valuation, percentages, ranking and windowing applied after stitching
"""

import time
from typing import Callable, List, Optional, Sequence, TypeVar

from solana_insights.models import TokenGainer, TokenHolding, TokenMetadata

T = TypeVar('T')


class InsightsAnalyzer:
    """Pure, non-batched computations shared by the aggregators"""

    LAMPORTS_PER_SOL = 1e9
    SLOTS_PER_DAY = 432000  # approximate, 400ms slots
    MEMECOIN_MARKER = "meme"
    SECONDS_PER_DAY = 86400

    def to_ui_amount(self, raw_amount, decimals: int) -> float:
        """On-chain integer amount divided by 10^decimals"""
        return int(raw_amount) / (10 ** decimals)

    def format_amount(self, amount: float) -> str:
        """Plain decimal string for a token amount, without a trailing .0 on whole numbers"""
        text = repr(float(amount))
        return text[:-2] if text.endswith(".0") else text

    def lamports_to_sol(self, lamports: int) -> float:
        return lamports / self.LAMPORTS_PER_SOL

    def format_percentage(self, part: float, total: float) -> str:
        """Share of total as a two-decimal percent string, "0.00%" when total is zero"""
        if not total:
            return "0.00%"
        return f"{part / total * 100:.2f}%"

    def price_change_percent(self, current: float, previous: float) -> float:
        """Percent change from previous to current; 0.0 when there is no previous price"""
        if previous <= 0:
            return 0.0
        return (current - previous) / previous * 100

    def rank_descending(self, records: Sequence[T], key: Callable[[T], float]) -> List[T]:
        """Sort by key, highest first; equal keys keep their input order"""
        return sorted(records, key=key, reverse=True)

    def window(self, records: Sequence[T], limit: Optional[int], offset: int = 0) -> List[T]:
        """Slice records to [offset, offset + limit)"""
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        if limit is None:
            return list(records[offset:])
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        return list(records[offset:offset + limit])

    def is_memecoin(self, metadata: TokenMetadata) -> bool:
        return (self.MEMECOIN_MARKER in metadata.name.lower()
                or self.MEMECOIN_MARKER in metadata.symbol.lower())

    def age_in_days(self, first_seen: Optional[int], now: Optional[float] = None) -> int:
        """Whole days since a unix timestamp; 0 when unknown"""
        if first_seen is None:
            return 0
        now = time.time() if now is None else now
        return max(0, int((now - first_seen) // self.SECONDS_PER_DAY))

    def portfolio_total(self, sol_value_usd: float, holdings: Sequence[TokenHolding]) -> float:
        return sol_value_usd + sum(holding.value_usd for holding in holdings)

    def start_slot(self, current_slot: int, days: int) -> int:
        return current_slot - self.SLOTS_PER_DAY * days

    def select_gainers(self, gainers: Sequence[TokenGainer], limit: int,
                       min_volume: float, min_price_change: float,
                       min_market_cap: float) -> List[TokenGainer]:
        """Filter by thresholds, rank by price change, then cut to limit"""
        qualifying = [
            gainer for gainer in gainers
            if gainer.volume >= min_volume
            and gainer.price_change >= min_price_change
            and gainer.market_cap >= min_market_cap
        ]
        ranked = self.rank_descending(qualifying, key=lambda gainer: gainer.price_change)
        return self.window(ranked, limit)
