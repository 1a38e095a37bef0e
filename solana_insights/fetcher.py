#!/usr/bin/env python3
"""
Rate-limited fetcher for Solana Insights
Wraps one downstream call per identifier with bounded retry and a neutral fallback
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from solana_insights.models import Deadline, Failed, FetchOutcome, Success


def describe_error(error: BaseException) -> str:
    """Short human readable reason for a failed attempt"""
    message = str(error)
    return f"{error.__class__.__name__}: {message}" if message else error.__class__.__name__


class RateLimitedFetcher:
    """Fetches a single identifier from one source, degrading to a default instead of raising"""

    DEFAULT_RETRY_DELAY = 1.0  # seconds
    DEADLINE_SLACK = 0.01  # seconds

    def __init__(self, source: str, call: Callable[[str], Awaitable[Any]],
                 default: Any = None, retry_delay: float = DEFAULT_RETRY_DELAY,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None):
        self.source = source
        self.call = call
        self.default = default
        self.retry_delay = retry_delay
        self._sleep = sleep or asyncio.sleep

    def default_for(self, identifier: str) -> Any:
        """Neutral value for an identifier; callable defaults receive the identifier"""
        return self.default(identifier) if callable(self.default) else self.default

    async def fetch(self, identifier: str, max_retries: int = 2,
                    deadline: Optional[Deadline] = None) -> FetchOutcome:
        """
        Attempt the call up to max_retries + 1 times with a fixed pause between attempts.
        Always resolves to Success or Failed.
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")

        reason = "deadline exceeded"
        for attempt in range(max_retries + 1):
            if deadline is not None and deadline.expired:
                reason = "deadline exceeded"
                break

            try:
                if deadline is None:
                    value = await self.call(identifier)
                else:
                    value = await asyncio.wait_for(self.call(identifier), timeout=deadline.remaining())
                return Success(value)
            except asyncio.TimeoutError as e:
                # wait_for may fire up to one clock tick before expires_at
                if deadline is not None and deadline.remaining() <= self.DEADLINE_SLACK:
                    reason = "deadline exceeded"
                    break
                reason = describe_error(e)
            except Exception as e:
                reason = describe_error(e)

            if deadline is not None and deadline.expired:
                reason = "deadline exceeded"
                break

            retries_left = max_retries - attempt
            if retries_left > 0:
                delay = self.retry_delay
                if deadline is not None:
                    delay = min(delay, deadline.remaining())
                print(f"    ⚠️ {self.source} failed for {identifier[:10]}: {reason} "
                      f"(retrying in {delay:.1f}s, {retries_left} left)")
                await self._sleep(delay)

        print(f"    ❌ {self.source} unavailable for {identifier[:10]}: {reason}, using default")
        return Failed(self.default_for(identifier), reason)
