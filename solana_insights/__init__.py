"""
Solana Insights Package

Read-only Solana portfolio, holder, gainer and history queries built on a
rate-limited batched fetch engine: chunked concurrency, retry with delay,
and positional result stitching over the node RPC and public price APIs.
"""

from .models import (
    Deadline, Failed, FetchOutcome, Success,
    AggregationError, MalformedPayloadError, SolanaApiError, StitchError,
)
from .config import Settings
from .fetcher import RateLimitedFetcher
from .batching import fetch_batched, run_batched
from .stitcher import stitch
from .analyzer import InsightsAnalyzer
from .api_client import MarketDataClient
from .rpc_client import SolanaRPCClient
from .orchestrator import SolanaAggregator

__version__ = "1.0.0"
__all__ = [
    "Deadline",
    "Failed",
    "FetchOutcome",
    "Success",
    "AggregationError",
    "MalformedPayloadError",
    "SolanaApiError",
    "StitchError",
    "Settings",
    "RateLimitedFetcher",
    "fetch_batched",
    "run_batched",
    "stitch",
    "InsightsAnalyzer",
    "MarketDataClient",
    "SolanaRPCClient",
    "SolanaAggregator",
]
