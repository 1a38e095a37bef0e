#!/usr/bin/env python3
"""
Runtime configuration for Solana Insights
Explicit settings object handed to clients and aggregators
"""

import os
from dataclasses import dataclass, fields
from typing import Callable, Dict, Optional

from dotenv import load_dotenv


DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"


@dataclass(frozen=True)
class Settings:
    """Endpoints and batching tunables"""
    rpc_url: str = DEFAULT_RPC_URL
    dexscreener_url: str = "https://api.dexscreener.com/latest/dex/tokens"
    jupiter_price_url: str = "https://price.jup.ag/v4/price"
    jupiter_historical_url: str = "https://price.jup.ag/v4/historical"
    token_list_url: str = "https://token.jup.ag/all"
    token_info_url: str = "https://tokens.jup.ag/token"
    solscan_url: str = "https://api.solscan.io"

    chunk_size: int = 5
    max_retries: int = 2
    retry_delay: float = 1.0  # seconds between attempts for one identifier
    inter_chunk_delay: float = 1.0  # seconds between chunks
    request_timeout: float = 30.0  # per HTTP request
    deadline_seconds: float = 120.0  # whole endpoint call

    def __post_init__(self):
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        for name in ("retry_delay", "inter_chunk_delay", "request_timeout", "deadline_seconds"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> 'Settings':
        """Build settings from environment variables, loading a .env file first"""
        if env is None:
            load_dotenv()
            env = dict(os.environ)

        overrides = {}
        for field_info in fields(cls):
            var = ENV_VARS[field_info.name]
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            convert = _converter(field_info.type)
            try:
                overrides[field_info.name] = convert(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {var}: {raw!r}") from None
        return cls(**overrides)


ENV_VARS = {
    "rpc_url": "SOLANA_RPC_URL",
    "dexscreener_url": "DEXSCREENER_API_URL",
    "jupiter_price_url": "JUPITER_PRICE_API_URL",
    "jupiter_historical_url": "JUPITER_HISTORICAL_API_URL",
    "token_list_url": "JUPITER_TOKEN_LIST_URL",
    "token_info_url": "JUPITER_TOKEN_INFO_URL",
    "solscan_url": "SOLSCAN_API_URL",
    "chunk_size": "SOLANA_BATCH_SIZE",
    "max_retries": "SOLANA_MAX_RETRIES",
    "retry_delay": "SOLANA_RETRY_DELAY",
    "inter_chunk_delay": "SOLANA_BATCH_DELAY",
    "request_timeout": "SOLANA_REQUEST_TIMEOUT",
    "deadline_seconds": "SOLANA_DEADLINE_SECONDS",
}


def _converter(annotation) -> Callable[[str], object]:
    # dataclass field types may be strings under postponed evaluation
    name = annotation if isinstance(annotation, str) else getattr(annotation, '__name__', '')
    if name == 'int':
        return int
    if name == 'float':
        return float
    return str
