#!/usr/bin/env python3
"""
Downstream response schemas for Solana Insights
Typed views over the JSON returned by the price APIs, token lists and the Solana RPC.
Every parser validates the fields it reads and raises MalformedPayloadError otherwise.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from solana_insights.models import (
    MalformedPayloadError, MintInfo, SignatureInfo, TokenAccount, TokenMetadata,
)


def _expect(payload: Any, kind: type, what: str) -> Any:
    if not isinstance(payload, kind):
        raise MalformedPayloadError(
            f"{what}: expected {kind.__name__}, got {type(payload).__name__}",
            details=payload if isinstance(payload, (dict, list, str, int, float)) else None
        )
    return payload


def _dig(payload: Any, *keys: str, what: str) -> Any:
    """Walk nested dicts, failing with the full path on the first missing level"""
    current = payload
    for depth, key in enumerate(keys):
        path = ".".join(keys[:depth + 1])
        current = _expect(current, dict, f"{what} ({path})").get(key)
        if current is None:
            raise MalformedPayloadError(f"{what}: missing field {path}")
    return current


def _number(value: Any, what: str) -> float:
    # price APIs send decimals as strings
    if isinstance(value, bool):
        raise MalformedPayloadError(f"{what}: expected number, got bool")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise MalformedPayloadError(f"{what}: not a number: {value!r}") from None
    raise MalformedPayloadError(f"{what}: expected number, got {type(value).__name__}")


def _optional_number(value: Any, what: str) -> float:
    return 0.0 if value is None else _number(value, what)


def _integer(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise MalformedPayloadError(f"{what}: expected integer, got {type(value).__name__}")
    try:
        return int(value)
    except ValueError:
        raise MalformedPayloadError(f"{what}: not an integer: {value!r}") from None


# Price and metadata APIs

@dataclass
class DexScreenerPair:
    price_usd: float
    volume_h24: float

    @classmethod
    def from_payload(cls, payload: Any) -> 'DexScreenerPair':
        pair = _expect(payload, dict, "dexscreener pair")
        volume = pair.get('volume')
        if isinstance(volume, dict):
            volume_h24 = _optional_number(volume.get('h24'), "dexscreener pair volume.h24")
        else:
            volume_h24 = _optional_number(pair.get('volume24h'), "dexscreener pair volume24h")
        return cls(
            price_usd=_number(pair.get('priceUsd'), "dexscreener pair priceUsd"),
            volume_h24=volume_h24
        )


@dataclass
class DexScreenerTokenPairs:
    """Pairs trading a token; the price comes from the pair with the highest 24h volume"""
    pairs: List[DexScreenerPair]

    @classmethod
    def from_payload(cls, payload: Any) -> 'DexScreenerTokenPairs':
        body = _expect(payload, dict, "dexscreener response")
        raw_pairs = body.get('pairs') or []
        return cls(pairs=[DexScreenerPair.from_payload(p) for p in _expect(raw_pairs, list, "dexscreener pairs")])

    def spot_price(self) -> float:
        if not self.pairs:
            return 0.0
        return max(self.pairs, key=lambda pair: pair.volume_h24).price_usd


@dataclass
class JupiterPrices:
    prices: Dict[str, float]

    @classmethod
    def from_payload(cls, payload: Any) -> 'JupiterPrices':
        data = _expect(_dig(payload, 'data', what="jupiter price"), dict, "jupiter price data")
        prices = {}
        for mint, entry in data.items():
            if isinstance(entry, dict) and entry.get('price') is not None:
                prices[mint] = _number(entry['price'], f"jupiter price {mint}")
        return cls(prices=prices)

    def price_for(self, mint: str) -> float:
        return self.prices.get(mint, 0.0)


@dataclass
class JupiterHistoricalPrice:
    price: float

    @classmethod
    def from_payload(cls, payload: Any) -> 'JupiterHistoricalPrice':
        data = _expect(_dig(payload, 'data', what="jupiter historical price"), dict,
                       "jupiter historical price data")
        return cls(price=_optional_number(data.get('price'), "jupiter historical price"))


@dataclass
class TokenListEntry:
    address: str
    symbol: str
    name: str
    decimals: int

    @classmethod
    def from_payload(cls, payload: Any) -> Optional['TokenListEntry']:
        """Returns None for entries without an address or symbol"""
        if not isinstance(payload, dict):
            return None
        address, symbol = payload.get('address'), payload.get('symbol')
        if not isinstance(address, str) or not isinstance(symbol, str):
            return None
        decimals = payload.get('decimals')
        return cls(
            address=address,
            symbol=symbol,
            name=payload.get('name') if isinstance(payload.get('name'), str) else "",
            decimals=decimals if isinstance(decimals, int) and not isinstance(decimals, bool) else 0
        )


def parse_token_list(payload: Any) -> List[TokenListEntry]:
    entries = (TokenListEntry.from_payload(item) for item in _expect(payload, list, "token list"))
    return [entry for entry in entries if entry is not None]


def parse_token_metadata(payload: Any) -> TokenMetadata:
    """Token info from the token API; blank fields fall back to the unknown labels"""
    body = _expect(payload, dict, "token info")
    symbol = body.get('symbol')
    name = body.get('name')
    return TokenMetadata(
        symbol=symbol if isinstance(symbol, str) and symbol else TokenMetadata.symbol,
        name=name if isinstance(name, str) and name else TokenMetadata.name
    )


def parse_market_volume(payload: Any) -> float:
    body = _expect(payload, dict, "solscan market")
    data = body.get('data') if isinstance(body.get('data'), dict) else body
    return _optional_number(data.get('volume24h'), "solscan market volume24h")


# Solana JSON-RPC

def parse_token_account(entry: Any) -> TokenAccount:
    """Entry of getTokenAccountsByOwner with jsonParsed encoding"""
    info = _expect(_dig(entry, 'account', 'data', 'parsed', 'info', what="token account"),
                   dict, "token account info")
    token_amount = _expect(_dig(info, 'tokenAmount', what="token account"), dict, "tokenAmount")
    amount = str(_integer(_dig(token_amount, 'amount', what="tokenAmount"), "tokenAmount.amount"))
    decimals = _integer(_dig(token_amount, 'decimals', what="tokenAmount"), "tokenAmount.decimals")
    ui_amount = token_amount.get('uiAmount')
    return TokenAccount(
        address=str(entry.get('pubkey', "")),
        mint=_expect(_dig(info, 'mint', what="token account"), str, "token account mint"),
        owner=str(info.get('owner', "")),
        amount=amount,
        decimals=decimals,
        ui_amount=_number(ui_amount, "uiAmount") if ui_amount is not None else int(amount) / (10 ** decimals)
    )


def parse_mint_account(mint: str, value: Any) -> MintInfo:
    """value of getAccountInfo(jsonParsed) for a mint address"""
    if value is None:
        raise MalformedPayloadError(f"mint account {mint} not found")
    parsed = _expect(_dig(value, 'data', 'parsed', what="mint account"), dict, "mint account parsed")
    if parsed.get('type') != 'mint':
        raise MalformedPayloadError(f"account {mint} is not a mint (type={parsed.get('type')!r})")
    info = _expect(_dig(parsed, 'info', what="mint account"), dict, "mint account info")
    return MintInfo(
        mint=mint,
        decimals=_integer(_dig(info, 'decimals', what="mint account"), "mint decimals"),
        supply=str(_integer(_dig(info, 'supply', what="mint account"), "mint supply")),
        mint_authority=info.get('mintAuthority'),
        freeze_authority=info.get('freezeAuthority')
    )


@dataclass
class TokenAccountOwner:
    """Owner and decimals of a single token account"""
    owner: str
    decimals: int

    @classmethod
    def from_account_value(cls, value: Any) -> 'TokenAccountOwner':
        if value is None:
            raise MalformedPayloadError("token account not found")
        info = _expect(_dig(value, 'data', 'parsed', 'info', what="token account"), dict,
                       "token account info")
        return cls(
            owner=_expect(_dig(info, 'owner', what="token account"), str, "token account owner"),
            decimals=_integer(_dig(info, 'tokenAmount', 'decimals', what="token account"), "decimals")
        )


@dataclass
class LargestTokenAccount:
    address: str
    amount: str
    decimals: int
    ui_amount: float

    @classmethod
    def from_payload(cls, payload: Any) -> 'LargestTokenAccount':
        amount = str(_integer(_dig(payload, 'amount', what="largest token account"), "amount"))
        decimals = _integer(_dig(payload, 'decimals', what="largest token account"), "decimals")
        ui_amount = payload.get('uiAmount')
        return cls(
            address=_expect(_dig(payload, 'address', what="largest token account"), str, "address"),
            amount=amount,
            decimals=decimals,
            ui_amount=_number(ui_amount, "uiAmount") if ui_amount is not None else int(amount) / (10 ** decimals)
        )


@dataclass
class LargestAccount:
    address: str
    lamports: int

    @classmethod
    def from_payload(cls, payload: Any) -> 'LargestAccount':
        return cls(
            address=_expect(_dig(payload, 'address', what="largest account"), str, "address"),
            lamports=_integer(_dig(payload, 'lamports', what="largest account"), "lamports")
        )


def parse_signature(entry: Any) -> SignatureInfo:
    body = _expect(entry, dict, "signature info")
    block_time = body.get('blockTime')
    return SignatureInfo(
        signature=_expect(_dig(body, 'signature', what="signature info"), str, "signature"),
        slot=_integer(_dig(body, 'slot', what="signature info"), "slot"),
        block_time=_integer(block_time, "blockTime") if block_time is not None else None,
        status='failed' if body.get('err') else 'success'
    )


@dataclass
class TransactionDetails:
    """Fee, balances and instructions of a confirmed transaction (json encoding)"""
    fee: int
    pre_balances: List[int]
    post_balances: List[int]
    instructions: List[Dict[str, Any]]

    @classmethod
    def from_payload(cls, payload: Any) -> 'TransactionDetails':
        meta = _expect(_dig(payload, 'meta', what="transaction"), dict, "transaction meta")
        message = _expect(_dig(payload, 'transaction', 'message', what="transaction"), dict,
                          "transaction message")
        account_keys = _expect(message.get('accountKeys', []), list, "accountKeys")
        instructions = []
        for ix in _expect(message.get('instructions', []), list, "instructions"):
            index = _integer(_dig(ix, 'programIdIndex', what="instruction"), "programIdIndex")
            instructions.append({
                'program_id': account_keys[index] if 0 <= index < len(account_keys) else None,
                'data': ix.get('data', "")
            })
        return cls(
            fee=_integer(_dig(meta, 'fee', what="transaction meta"), "fee"),
            pre_balances=[_integer(b, "preBalances") for b in _expect(meta.get('preBalances', []), list, "preBalances")],
            post_balances=[_integer(b, "postBalances") for b in _expect(meta.get('postBalances', []), list, "postBalances")],
            instructions=instructions
        )


@dataclass
class PerformanceSample:
    num_transactions: int
    num_slots: int
    sample_period_secs: int

    @classmethod
    def from_payload(cls, payload: Any) -> 'PerformanceSample':
        return cls(
            num_transactions=_integer(_dig(payload, 'numTransactions', what="performance sample"), "numTransactions"),
            num_slots=_integer(_dig(payload, 'numSlots', what="performance sample"), "numSlots"),
            sample_period_secs=_integer(payload.get('samplePeriodSecs', 0), "samplePeriodSecs")
        )


@dataclass
class VoteAccount:
    vote_pubkey: str
    commission: int
    activated_stake: int

    @classmethod
    def from_payload(cls, payload: Any) -> 'VoteAccount':
        return cls(
            vote_pubkey=_expect(_dig(payload, 'votePubkey', what="vote account"), str, "votePubkey"),
            commission=_integer(_dig(payload, 'commission', what="vote account"), "commission"),
            activated_stake=_integer(_dig(payload, 'activatedStake', what="vote account"), "activatedStake")
        )


@dataclass
class SupplySnapshot:
    total: int
    circulating: int

    @classmethod
    def from_payload(cls, payload: Any) -> 'SupplySnapshot':
        value = _dig(payload, 'value', what="supply")
        return cls(
            total=_integer(_dig(value, 'total', what="supply"), "total"),
            circulating=_integer(_dig(value, 'circulating', what="supply"), "circulating")
        )
