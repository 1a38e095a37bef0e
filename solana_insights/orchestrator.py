#!/usr/bin/env python3
"""
Endpoint orchestration for Solana Insights
Coordinates the RPC and market data clients, the batch scheduler, the stitcher and the analyzer
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from solana_insights.analyzer import InsightsAnalyzer
from solana_insights.api_client import MarketDataClient
from solana_insights.batching import fetch_batched
from solana_insights.config import Settings
from solana_insights.fetcher import RateLimitedFetcher
from solana_insights.models import (
    AddressInfo, AggregationError, Deadline, FetchOutcome, GainersReport, Holder, NetworkStats,
    Portfolio, ProfitableWallets, SolBalance, Success, TokenGainer, TokenHolder, TokenHolders,
    TokenHolding, TokenInfo, TokenMetadata, TokenMetadataReport, TopHolders, TopWallets,
    TransactionHistory, TransactionRecord, WalletAccount, WalletMintTokens, WalletProfit, WalletTokens,
)
from solana_insights.rpc_client import MINT_ACCOUNT_SIZE, TOKEN_PROGRAM_ID, WRAPPED_SOL_MINT, SolanaRPCClient
from solana_insights.stitcher import stitch


def _unknown_token(_mint: str) -> TokenMetadata:
    return TokenMetadata()


def _known(items: Iterable[Any]) -> List[FetchOutcome]:
    """Wrap already-fetched values so they can be stitched next to fetched sources"""
    return [Success(item) for item in items]


class SolanaAggregator:
    """Builds every endpoint's result from batched downstream fetches"""

    MAX_HISTORY_SIGNATURES = 100
    RECENT_SIGNATURES = 5
    SIGNATURE_PAGE = 1000

    def __init__(self, settings: Optional[Settings] = None,
                 rpc: Optional[SolanaRPCClient] = None,
                 market: Optional[MarketDataClient] = None,
                 analyzer: Optional[InsightsAnalyzer] = None,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None):
        self.settings = settings or Settings()
        self.rpc = rpc or SolanaRPCClient(self.settings)
        self.market = market or MarketDataClient(self.settings)
        self.analyzer = analyzer or InsightsAnalyzer()
        self._sleep = sleep

    # Plumbing

    def _deadline(self) -> Deadline:
        return Deadline.after(self.settings.deadline_seconds)

    def _fetcher(self, source: str, call: Callable[[str], Awaitable[Any]], default: Any) -> RateLimitedFetcher:
        return RateLimitedFetcher(source, call, default=default,
                                  retry_delay=self.settings.retry_delay, sleep=self._sleep)

    async def _fetch_one(self, source: str, identifier: str, call: Callable[[str], Awaitable[Any]],
                         default: Any, deadline: Deadline) -> FetchOutcome:
        return await self._fetcher(source, call, default).fetch(
            identifier, max_retries=self.settings.max_retries, deadline=deadline
        )

    async def _gather_source(self, source: str, identifiers: List[str],
                             call: Callable[[str], Awaitable[Any]], default: Any,
                             deadline: Deadline) -> List[FetchOutcome]:
        """One data source for the whole identifier set, through the batch scheduler"""
        return await fetch_batched(
            self._fetcher(source, call, default), identifiers,
            chunk_size=self.settings.chunk_size,
            inter_chunk_delay=self.settings.inter_chunk_delay,
            max_retries=self.settings.max_retries,
            deadline=deadline,
            sleep=self._sleep
        )

    async def _signature_count(self, address: str, min_context_slot: Optional[int] = None) -> int:
        signatures = await self.rpc.get_signatures_for_address(
            address, limit=self.SIGNATURE_PAGE, min_context_slot=min_context_slot
        )
        return len(signatures)

    async def _first_seen(self, mint: str) -> Optional[int]:
        """Block time of the oldest signature within the latest page of activity"""
        signatures = await self.rpc.get_signatures_for_address(mint, limit=self.SIGNATURE_PAGE)
        times = [sig.block_time for sig in signatures if sig.block_time is not None]
        return min(times) if times else None

    # Endpoints

    async def portfolio(self, address: str) -> Portfolio:
        """SOL and SPL token holdings of a wallet, valued in USD"""
        print(f"🔍 Building portfolio for {address[:10]}...")
        deadline = self._deadline()

        lamports = await self.rpc.get_balance(address)
        sol_price = await self._fetch_one("sol-price", WRAPPED_SOL_MINT, self.market.get_token_price, 0.0, deadline)
        sol_amount = self.analyzer.lamports_to_sol(lamports)
        sol_balance = SolBalance(amount=sol_amount, value_usd=sol_amount * sol_price.value)

        accounts = await self.rpc.get_parsed_token_accounts_by_owner(address)
        mints = [account.mint for account in accounts]
        metadata = await self._gather_source("token-metadata", mints, self.market.get_token_metadata,
                                             _unknown_token, deadline)
        prices = await self._gather_source("token-price", mints, self.market.get_token_price, 0.0, deadline)

        def build(mint, account, meta, price) -> TokenHolding:
            amount = account.value.ui_amount
            return TokenHolding(
                contract_address=mint,
                symbol=meta.value.symbol,
                name=meta.value.name,
                amount=self.analyzer.format_amount(amount),
                decimals=account.value.decimals,
                price_usd=price.value,
                value_usd=amount * price.value
            )

        holdings = stitch(mints, _known(accounts), metadata, prices, build=build)
        nft_count = sum(1 for account in accounts if account.is_nft)

        print(f"✅ Portfolio ready: {len(holdings)} token holdings, {nft_count} NFTs")
        return Portfolio(
            address=address,
            sol_balance=sol_balance,
            token_holdings=holdings,
            nft_holdings=nft_count,
            total_value_usd=self.analyzer.portfolio_total(sol_balance.value_usd, holdings)
        )

    async def resolve_ticker(self, ticker: str, deadline: Optional[Deadline] = None) -> Optional[str]:
        """Mint of the token-list entry with this symbol that has the highest market cap"""
        deadline = deadline or self._deadline()
        tokens = await self.market.get_token_list()
        matching = [token.address for token in tokens if token.symbol.lower() == ticker.lower()]
        if not matching:
            return None

        prices = await self._gather_source("ticker-price", matching, self.market.get_jupiter_price, 0.0, deadline)
        supplies = await self._gather_source("ticker-supply", matching, self.rpc.get_token_supply, 0.0, deadline)
        candidates = stitch(matching, prices, supplies,
                            build=lambda mint, price, supply: (mint, price.value * supply.value))
        best_mint, best_cap = self.analyzer.rank_descending(candidates, key=lambda candidate: candidate[1])[0]
        print(f"🎯 Ticker {ticker} resolved to {best_mint[:10]} (market cap ${best_cap:,.0f})")
        return best_mint

    async def top_holders(self, mint: Optional[str] = None, ticker: Optional[str] = None,
                          limit: int = 10) -> TopHolders:
        """Largest holders of a token with their share of the listed total"""
        if not mint and not ticker:
            raise AggregationError("Either ticker or mint address is required")
        deadline = self._deadline()

        if ticker:
            mint = await self.resolve_ticker(ticker, deadline)
            if mint is None:
                raise AggregationError(f"No token found with ticker {ticker}")

        print(f"🔍 Fetching top holders for {mint[:10]}...")
        largest = await self.rpc.get_token_largest_accounts(mint)
        addresses = [account.address for account in largest]
        owners = await self._gather_source("holder-owner", addresses, self.rpc.get_token_account_owner,
                                           None, deadline)

        def build(_address, account, owner):
            amount = self.analyzer.to_ui_amount(account.value.amount, account.value.decimals)
            return (owner.value.owner if owner.value else "Unknown", amount)

        rows = stitch(addresses, _known(largest), owners, build=build)
        rows = self.analyzer.window(self.analyzer.rank_descending(rows, key=lambda row: row[1]), limit)

        total = sum(amount for _owner, amount in rows)
        holders = [
            Holder(
                address=owner,
                amount=self.analyzer.format_amount(amount),
                percentage=self.analyzer.format_percentage(amount, total)
            )
            for owner, amount in rows
        ]
        return TopHolders(mint=mint, holders=holders, total_supply=self.analyzer.format_amount(total))

    async def discover_recent_mints(self, limit: int = 100) -> List[str]:
        """Candidate mint addresses owned by the token program"""
        print("🔍 Discovering token mints...")
        addresses = await self.rpc.get_program_accounts(TOKEN_PROGRAM_ID, MINT_ACCOUNT_SIZE)
        return self.analyzer.window(addresses, limit)

    async def token_gainers(self, mints: Iterable[str], hours: int = 24, limit: int = 10,
                            only_memecoins: bool = False, max_age_days: int = 30,
                            min_volume: float = 1000.0, min_price_change: float = 10.0,
                            min_market_cap: float = 10000.0) -> GainersReport:
        """Tokens whose price rose the most over the last hours, after threshold filters"""
        mints = list(mints)
        print(f"🚀 Scanning {len(mints)} tokens for gainers over {hours}h")
        deadline = self._deadline()
        now = time.time()
        start_time = int(now - hours * 3600)

        metadata = await self._gather_source("token-metadata", mints, self.market.get_token_metadata,
                                             _unknown_token, deadline)
        first_seen = await self._gather_source("token-age", mints, self._first_seen, None, deadline)

        def build_candidate(mint, meta, seen):
            return (mint, meta.value, self.analyzer.age_in_days(seen.value, now))

        candidates = [
            (mint, meta, age)
            for mint, meta, age in stitch(mints, metadata, first_seen, build=build_candidate)
            if age <= max_age_days and (not only_memecoins or self.analyzer.is_memecoin(meta))
        ]
        candidate_mints = [mint for mint, _meta, _age in candidates]
        print(f"📊 {len(candidate_mints)} tokens pass age/memecoin filters")

        current = await self._gather_source("current-price", candidate_mints, self.market.get_jupiter_price,
                                            0.0, deadline)
        previous = await self._gather_source(
            "historical-price", candidate_mints,
            lambda mint: self.market.get_historical_price(mint, start_time), 0.0, deadline
        )
        volumes = await self._gather_source("volume", candidate_mints, self.market.get_token_volume, 0.0, deadline)
        mint_infos = await self._gather_source("mint-info", candidate_mints, self.rpc.get_mint, None, deadline)

        def build(mint, candidate, current_price, previous_price, volume, info) -> TokenGainer:
            _mint, meta, age = candidate.value
            supply = self.analyzer.to_ui_amount(info.value.supply, info.value.decimals) if info.value else 0.0
            return TokenGainer(
                mint=mint,
                symbol=meta.symbol,
                name=meta.name,
                price_change=self.analyzer.price_change_percent(current_price.value, previous_price.value),
                current_price=current_price.value,
                previous_price=previous_price.value,
                volume=volume.value,
                market_cap=current_price.value * supply,
                is_memecoin=self.analyzer.is_memecoin(meta),
                age=age
            )

        gainers = stitch(candidate_mints, _known(candidates), current, previous, volumes, mint_infos, build=build)
        selected = self.analyzer.select_gainers(gainers, limit, min_volume, min_price_change, min_market_cap)
        print(f"✅ {len(selected)} gainers selected")

        return GainersReport(
            period=f"{hours} hours",
            filters={
                'only_memecoins': only_memecoins,
                'max_age': max_age_days,
                'min_volume': min_volume,
                'min_price_change': min_price_change,
                'min_market_cap': min_market_cap
            },
            tokens=selected
        )

    async def transaction_history(self, address: str, limit: int = 1) -> TransactionHistory:
        """Latest transactions of an address with fee, balances and instructions"""
        if limit < 1:
            raise AggregationError(f"limit must be >= 1, got {limit}")
        print(f"🔍 Fetching transaction history for {address[:10]}...")
        deadline = self._deadline()

        signatures = await self.rpc.get_signatures_for_address(
            address, limit=min(limit, self.MAX_HISTORY_SIGNATURES)
        )
        if not signatures:
            return TransactionHistory(address=address, transactions=[], total=0,
                                      message="No transactions found for this address")

        ids = [sig.signature for sig in signatures]
        details = await self._gather_source("transaction", ids, self.rpc.get_transaction, None, deadline)

        def build(signature, sig, detail) -> TransactionRecord:
            info = sig.value
            record = TransactionRecord(signature=signature, slot=info.slot, block_time=info.block_time,
                                       status=info.status)
            if not detail.ok:
                record.status = 'error'
                record.error = 'Failed to fetch transaction details'
            elif detail.value is None:
                record.status = 'unknown'
                record.error = 'Transaction details not available'
            else:
                record.fee = detail.value.fee
                record.pre_balances = detail.value.pre_balances
                record.post_balances = detail.value.post_balances
                record.instructions = detail.value.instructions
            return record

        transactions = stitch(ids, _known(signatures), details, build=build)
        message = ("Showing latest transaction" if limit == 1
                   else f"Showing {len(transactions)} transactions")
        return TransactionHistory(address=address, transactions=transactions,
                                  total=len(signatures), message=message)

    async def profitable_wallets(self, days: int = 7, limit: int = 100) -> ProfitableWallets:
        """Largest accounts ranked by SOL balance change over the period"""
        print(f"🔍 Ranking wallets by profit over {days} days...")
        deadline = self._deadline()
        start_slot = self.analyzer.start_slot(await self.rpc.get_slot(), days)

        largest = await self.rpc.get_largest_accounts()
        addresses = [account.address for account in largest]
        start = await self._gather_source(
            "start-balance", addresses,
            lambda address: self.rpc.get_balance(address, min_context_slot=start_slot), 0, deadline
        )
        end = await self._gather_source("end-balance", addresses, self.rpc.get_balance, 0, deadline)
        counts = await self._gather_source(
            "signature-count", addresses,
            lambda address: self._signature_count(address, min_context_slot=start_slot), 0, deadline
        )

        def build(address, start_balance, end_balance, count) -> WalletProfit:
            return WalletProfit(
                address=address,
                profit=self.analyzer.lamports_to_sol(end_balance.value - start_balance.value),
                transactions=count.value,
                start_balance=self.analyzer.lamports_to_sol(start_balance.value),
                end_balance=self.analyzer.lamports_to_sol(end_balance.value)
            )

        wallets = stitch(addresses, start, end, counts, build=build)
        ranked = self.analyzer.rank_descending(wallets, key=lambda wallet: wallet.profit)
        return ProfitableWallets(period=f"{days} days", wallets=self.analyzer.window(ranked, limit))

    async def token_holders(self, mint: str, limit: int = 100, offset: int = 0) -> TokenHolders:
        """Largest token accounts of a mint with their owners"""
        print(f"🔍 Fetching token holders for {mint[:10]}...")
        deadline = self._deadline()
        largest = await self.rpc.get_token_largest_accounts(mint)
        addresses = [account.address for account in largest]
        owners = await self._gather_source("holder-owner", addresses, self.rpc.get_token_account_owner,
                                           None, deadline)

        def build(address, account, owner) -> TokenHolder:
            return TokenHolder(
                address=address,
                amount=float(account.value.amount),
                owner=owner.value.owner if owner.value else None
            )

        holders = stitch(addresses, _known(largest), owners, build=build)
        ranked = self.analyzer.rank_descending(holders, key=lambda holder: holder.amount)
        return TokenHolders(mint=mint, total=len(largest), holders=self.analyzer.window(ranked, limit, offset))

    async def top_wallets(self, limit: int = 100, offset: int = 0) -> TopWallets:
        """Largest SOL accounts with their recent signature counts"""
        print("🔍 Fetching top wallets...")
        deadline = self._deadline()
        largest = await self.rpc.get_largest_accounts()
        addresses = [account.address for account in largest]
        counts = await self._gather_source("signature-count", addresses, self._signature_count, 0, deadline)

        def build(address, account, count) -> WalletAccount:
            return WalletAccount(
                address=address,
                balance=self.analyzer.lamports_to_sol(account.value.lamports),
                transaction_count=count.value
            )

        accounts = stitch(addresses, _known(largest), counts, build=build)
        ranked = self.analyzer.rank_descending(accounts, key=lambda account: account.balance)
        return TopWallets(total=len(largest), accounts=self.analyzer.window(ranked, limit, offset))

    async def address_info(self, address: str) -> AddressInfo:
        """Balance, token accounts and recent activity of an address"""
        print(f"🔍 Fetching address info for {address[:10]}...")
        account = await self.rpc.get_account_info(address)
        balance = await self.rpc.get_balance(address)
        token_accounts = await self.rpc.get_parsed_token_accounts_by_owner(address)
        transaction_count = await self.rpc.get_transaction_count()
        recent = await self.rpc.get_signatures_for_address(address, limit=self.RECENT_SIGNATURES)

        return AddressInfo(
            address=address,
            balance=self.analyzer.lamports_to_sol(balance),
            is_executable=bool(account and account.get('executable')),
            token_accounts=token_accounts,
            nft_count=sum(1 for token_account in token_accounts if token_account.is_nft),
            transaction_count=transaction_count,
            recent_transactions=recent
        )

    async def tokens(self, address: str, mint: Optional[str] = None):
        """Token accounts of a wallet joined with their mint info"""
        if mint:
            mint_info = await self.rpc.get_mint(mint)
            accounts = await self.rpc.get_parsed_token_accounts_by_owner(address, mint=mint)
            return WalletMintTokens(mint=mint, decimals=mint_info.decimals, supply=mint_info.supply,
                                    token_accounts=accounts)

        print(f"🔍 Fetching tokens for {address[:10]}...")
        deadline = self._deadline()
        accounts = await self.rpc.get_parsed_token_accounts_by_owner(address)
        mints = [account.mint for account in accounts]
        mint_infos = await self._gather_source("mint-info", mints, self.rpc.get_mint, None, deadline)

        def build(mint_address, account, info) -> TokenInfo:
            if not info.ok or info.value is None:
                return TokenInfo(mint=mint_address, error='Failed to fetch mint information')
            return TokenInfo(
                mint=mint_address,
                decimals=info.value.decimals,
                supply=info.value.supply,
                amount=account.value.amount,
                is_nft=info.value.decimals == 0 and account.value.amount == "1"
            )

        return WalletTokens(address=address, tokens=stitch(mints, _known(accounts), mint_infos, build=build),
                            total_tokens=len(accounts))

    async def token_metadata(self, mint: str) -> TokenMetadataReport:
        """Supply, authorities and holder distribution of a mint"""
        print(f"🔍 Fetching token metadata for {mint[:10]}...")
        mint_info = await self.rpc.get_mint(mint)
        account = await self.rpc.get_account_info(mint)
        largest = await self.rpc.get_token_largest_accounts(mint)

        holders = len(largest)
        return TokenMetadataReport(
            mint=mint,
            metadata=account.get('data') if account else None,
            supply={'total': mint_info.supply, 'decimals': mint_info.decimals},
            distribution={
                'holders': holders,
                'average_balance': int(mint_info.supply) / holders if holders else 0.0
            },
            mint_authority=mint_info.mint_authority,
            freeze_authority=mint_info.freeze_authority
        )

    async def network_stats(self) -> NetworkStats:
        """Epoch, throughput, supply and validator overview of the cluster"""
        print("🔍 Fetching network statistics...")
        epoch, supply, samples, validators, slot = await asyncio.gather(
            self.rpc.get_epoch(),
            self.rpc.get_supply(),
            self.rpc.get_recent_performance_samples(1),
            self.rpc.get_vote_accounts(),
            self.rpc.get_slot()
        )
        sample = samples[0] if samples else None
        tps = (sample.num_transactions / sample.sample_period_secs
               if sample and sample.sample_period_secs else 0.0)
        to_sol = self.analyzer.lamports_to_sol

        return NetworkStats(
            current_epoch=epoch,
            slot=slot,
            transaction_stats={
                'tps': tps,
                'total_transactions': sample.num_transactions if sample else 0
            },
            supply={
                'total': to_sol(supply.total),
                'circulating': to_sol(supply.circulating),
                'non_circulating': to_sol(supply.total - supply.circulating)
            },
            validators={
                'active': len(validators),
                'total_stake': to_sol(sum(v.activated_stake for v in validators)),
                'current_validators': [
                    {'vote_pubkey': v.vote_pubkey, 'commission': v.commission,
                     'activated_stake': to_sol(v.activated_stake)}
                    for v in validators
                ]
            },
            network_health={
                'slot_time': sample.sample_period_secs if sample else 0,
                'slots_in_sample': sample.num_slots if sample else 0
            }
        )

    async def close(self):
        await self.rpc.close()
        await self.market.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
