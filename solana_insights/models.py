#!/usr/bin/env python3
"""
Data models and exceptions for Solana Insights
Holds fetch outcomes, request deadlines, endpoint records and error types
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class Success:
    """Downstream call resolved with a usable value"""
    value: Any
    ok: bool = field(default=True, init=False)
    reason: Optional[str] = field(default=None, init=False)


@dataclass
class Failed:
    """Downstream call gave up; value holds the source's neutral default"""
    value: Any
    reason: str
    ok: bool = field(default=False, init=False)


FetchOutcome = Union[Success, Failed]


@dataclass(frozen=True)
class Deadline:
    """Absolute point in monotonic time after which no new downstream work starts"""
    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> 'Deadline':
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at


@dataclass
class TokenMetadata:
    """Display metadata for a token mint"""
    symbol: str = "Unknown"
    name: str = "Unknown Token"


@dataclass
class TokenAccount:
    """SPL token account as returned by a jsonParsed RPC query"""
    address: str
    mint: str
    owner: str
    amount: str  # raw integer amount as decimal string
    decimals: int
    ui_amount: float

    @property
    def is_nft(self) -> bool:
        return self.decimals == 0 and self.amount == "1"


@dataclass
class MintInfo:
    """Parsed SPL mint account"""
    mint: str
    decimals: int
    supply: str  # raw integer supply as decimal string
    mint_authority: Optional[str] = None
    freeze_authority: Optional[str] = None


@dataclass
class SignatureInfo:
    """Confirmed signature entry for an address"""
    signature: str
    slot: int
    block_time: Optional[int]
    status: str


# Portfolio

@dataclass
class SolBalance:
    amount: float
    value_usd: float


@dataclass
class TokenHolding:
    contract_address: str
    symbol: str
    name: str
    amount: str
    decimals: int
    price_usd: float
    value_usd: float


@dataclass
class Portfolio:
    """Valued wallet holdings"""
    address: str
    sol_balance: SolBalance
    token_holdings: List[TokenHolding]
    nft_holdings: int
    total_value_usd: float


# Holders

@dataclass
class Holder:
    address: str
    amount: str
    percentage: str


@dataclass
class TopHolders:
    mint: str
    holders: List[Holder]
    total_supply: str


@dataclass
class TokenHolder:
    address: str
    amount: float
    owner: Optional[str]


@dataclass
class TokenHolders:
    mint: str
    total: int
    holders: List[TokenHolder]


# Gainers

@dataclass
class TokenGainer:
    mint: str
    symbol: str
    name: str
    price_change: float
    current_price: float
    previous_price: float
    volume: float
    market_cap: float
    is_memecoin: bool
    age: int


@dataclass
class GainersReport:
    period: str
    filters: Dict[str, Any]
    tokens: List[TokenGainer]


# Transactions

@dataclass
class TransactionRecord:
    """One transaction from an address history; error is set when details are missing"""
    signature: str
    slot: int
    block_time: Optional[int]
    status: str
    fee: Optional[int] = None
    pre_balances: Optional[List[int]] = None
    post_balances: Optional[List[int]] = None
    instructions: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None


@dataclass
class TransactionHistory:
    address: str
    transactions: List[TransactionRecord]
    total: int
    message: str


# Wallets

@dataclass
class WalletProfit:
    address: str
    profit: float
    transactions: int
    start_balance: float
    end_balance: float


@dataclass
class ProfitableWallets:
    period: str
    wallets: List[WalletProfit]


@dataclass
class WalletAccount:
    address: str
    balance: float
    transaction_count: int


@dataclass
class TopWallets:
    total: int
    accounts: List[WalletAccount]


# Address and token lookups

@dataclass
class AddressInfo:
    address: str
    balance: float
    is_executable: bool
    token_accounts: List[TokenAccount]
    nft_count: int
    transaction_count: int
    recent_transactions: List[SignatureInfo]


@dataclass
class TokenInfo:
    """Token account joined with its mint; error is set when the mint lookup failed"""
    mint: str
    decimals: Optional[int] = None
    supply: Optional[str] = None
    amount: Optional[str] = None
    is_nft: Optional[bool] = None
    error: Optional[str] = None


@dataclass
class WalletTokens:
    address: str
    tokens: List[TokenInfo]
    total_tokens: int


@dataclass
class WalletMintTokens:
    mint: str
    decimals: int
    supply: str
    token_accounts: List[TokenAccount]


@dataclass
class TokenMetadataReport:
    mint: str
    metadata: Optional[Dict[str, Any]]
    supply: Dict[str, Any]
    distribution: Dict[str, Any]
    mint_authority: Optional[str]
    freeze_authority: Optional[str]


@dataclass
class NetworkStats:
    current_epoch: int
    slot: int
    transaction_stats: Dict[str, Any]
    supply: Dict[str, float]
    validators: Dict[str, Any]
    network_health: Dict[str, Any]


class SolanaApiError(Exception):
    """Downstream API error with detailed error reporting"""

    def __init__(self, message: str, status: Optional[int] = None,
                 code: Optional[Any] = None, details: Optional[Any] = None,
                 endpoint: Optional[str] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.code = code
        self.details = details
        self.endpoint = endpoint
        self.response_body = response_body
        self.name = 'SolanaApiError'

    def to_dict(self) -> dict:
        """Convert error to dictionary for logging"""
        return {
            'error_type': self.name,
            'message': str(self),
            'status': self.status,
            'code': self.code,
            'endpoint': self.endpoint,
            'details': self.details,
            'response_body': self.response_body
        }

    @classmethod
    def from_response(cls, response, body: Optional[str] = None,
                      endpoint: Optional[str] = None) -> 'SolanaApiError':
        """Create error from an aiohttp response and its already-read body"""
        error_message = f"HTTP {response.status}: {response.reason}"
        error_code = None
        details = None
        try:
            response_data = json.loads(body) if body else None
        except ValueError:
            response_data = None
        if isinstance(response_data, dict):
            error_message = response_data.get('message') or response_data.get('error') or error_message
            if not isinstance(error_message, str):
                error_message = str(error_message)
            error_code = response_data.get('code') or response_data.get('errorCode')
            details = response_data.get('details') or response_data

        return cls(
            message=error_message,
            status=response.status,
            code=error_code,
            details=details,
            endpoint=endpoint,
            response_body=body
        )


class MalformedPayloadError(SolanaApiError):
    """Downstream payload does not match the expected response shape"""

    def __init__(self, message: str, endpoint: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message, endpoint=endpoint, details=details)
        self.name = 'MalformedPayloadError'


class StitchError(Exception):
    """Outcome arrays do not line up with the identifiers they were fetched for"""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.details = details
        self.name = 'StitchError'


class AggregationError(Exception):
    """Endpoint-level error such as missing arguments or an unknown ticker"""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.details = details
        self.name = 'AggregationError'
