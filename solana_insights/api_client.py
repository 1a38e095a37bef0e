#!/usr/bin/env python3
"""
HTTP API clients for Solana Insights
Shared aiohttp session handling plus the price, token list and market data APIs
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from solana_insights.config import Settings
from solana_insights.models import MalformedPayloadError, SolanaApiError, TokenMetadata
from solana_insights.schemas import (
    DexScreenerTokenPairs, JupiterHistoricalPrice, JupiterPrices, TokenListEntry,
    parse_market_volume, parse_token_list, parse_token_metadata,
)


@dataclass
class RequestMetrics:
    """Track API request metrics"""
    total_requests: int = 0
    failed_requests: int = 0
    rate_limited: int = 0
    avg_response_time: float = 0.0


class BaseJSONClient:
    """Lazily opened aiohttp session with single-attempt JSON requests"""

    USER_AGENT = 'SolanaInsights/1.0'
    MAX_CONNECTIONS = 20

    def __init__(self, settings: Optional[Settings] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.settings = settings or Settings()
        self.metrics = RequestMetrics()
        self._session = session
        self._owns_session = session is None

    async def get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session"""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.MAX_CONNECTIONS,
                keepalive_timeout=60,
                enable_cleanup_closed=True
            )
            timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=timeout,
                headers={
                    'User-Agent': self.USER_AGENT,
                    'Accept': 'application/json'
                }
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Clean up resources"""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def _request_json(self, method: str, url: str, endpoint: str,
                            params: Optional[Dict[str, Any]] = None,
                            payload: Optional[Dict[str, Any]] = None) -> Any:
        """
        Issue one request and decode its JSON body.
        Raises SolanaApiError on transport errors and non-2xx statuses; retrying is the caller's job.
        """
        session = await self.get_session()
        start_time = time.monotonic()
        self.metrics.total_requests += 1

        try:
            async with session.request(method, url, params=params, json=payload) as response:
                body = await response.text()
                if response.status == 429:
                    self.metrics.rate_limited += 1
                if not 200 <= response.status < 300:
                    self.metrics.failed_requests += 1
                    raise SolanaApiError.from_response(response, body, endpoint)
                try:
                    data = json.loads(body)
                except ValueError as e:
                    self.metrics.failed_requests += 1
                    raise MalformedPayloadError(f"Invalid JSON from {endpoint}: {e}", endpoint=endpoint) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.metrics.failed_requests += 1
            raise SolanaApiError(f"Network error on {endpoint}: {e}", endpoint=endpoint) from e

        response_time = time.monotonic() - start_time
        self.metrics.avg_response_time = (
            (self.metrics.avg_response_time * (self.metrics.total_requests - 1) + response_time)
            / self.metrics.total_requests
        )
        return data

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get request metrics summary"""
        return {
            "total_requests": self.metrics.total_requests,
            "failed_requests": self.metrics.failed_requests,
            "rate_limited_requests": self.metrics.rate_limited,
            "error_rate": self.metrics.failed_requests / max(1, self.metrics.total_requests),
            "avg_response_time_ms": self.metrics.avg_response_time * 1000
        }

    async def __aenter__(self):
        """Async context manager entry"""
        await self.get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()


class MarketDataClient(BaseJSONClient):
    """Public price, token list and market APIs; one identifier per call"""

    async def get_token_price(self, mint: str) -> float:
        """Spot price in USD from the most liquid DexScreener pair, 0.0 when none trade"""
        data = await self._request_json(
            'GET', f"{self.settings.dexscreener_url}/{mint}", endpoint="dexscreener/tokens"
        )
        return DexScreenerTokenPairs.from_payload(data).spot_price()

    async def get_jupiter_price(self, mint: str) -> float:
        """Spot price in USD from the Jupiter price API"""
        data = await self._request_json(
            'GET', self.settings.jupiter_price_url, endpoint="jupiter/price", params={'ids': mint}
        )
        return JupiterPrices.from_payload(data).price_for(mint)

    async def get_historical_price(self, mint: str, timestamp: int) -> float:
        """Jupiter price at a unix timestamp"""
        data = await self._request_json(
            'GET', self.settings.jupiter_historical_url, endpoint="jupiter/historical",
            params={'id': mint, 'timestamp': str(timestamp)}
        )
        return JupiterHistoricalPrice.from_payload(data).price

    async def get_token_list(self) -> List[TokenListEntry]:
        """Full token list"""
        print("🔍 Fetching token list...")
        data = await self._request_json('GET', self.settings.token_list_url, endpoint="jupiter/token-list")
        tokens = parse_token_list(data)
        print(f"📊 Token list has {len(tokens)} entries")
        return tokens

    async def get_token_metadata(self, mint: str) -> TokenMetadata:
        """Symbol and name for a single mint"""
        data = await self._request_json(
            'GET', f"{self.settings.token_info_url}/{mint}", endpoint="jupiter/token"
        )
        return parse_token_metadata(data)

    async def get_token_volume(self, mint: str) -> float:
        """24h traded volume in USD"""
        data = await self._request_json(
            'GET', f"{self.settings.solscan_url}/amm/market", endpoint="solscan/amm/market",
            params={'mint': mint}
        )
        return parse_market_volume(data)
