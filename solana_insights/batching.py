#!/usr/bin/env python3
"""
Batch scheduler for Solana Insights
Runs fetches chunk by chunk: concurrent inside a chunk, a cooldown between chunks
"""

import asyncio
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, TypeVar

from solana_insights.fetcher import RateLimitedFetcher, describe_error
from solana_insights.models import Deadline, Failed, FetchOutcome

T = TypeVar('T')


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    """Split items into consecutive lists of at most size elements"""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def _resolve_default(default: Any, identifier: str) -> Any:
    return default(identifier) if callable(default) else default


async def run_batched(identifiers: Iterable[str],
                      worker: Callable[[str], Awaitable[FetchOutcome]],
                      chunk_size: int = 5,
                      inter_chunk_delay: float = 1.0,
                      deadline: Optional[Deadline] = None,
                      default: Any = None,
                      sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
                      label: str = "batch") -> List[FetchOutcome]:
    """
    Run worker over identifiers in chunks of chunk_size.

    Returns one outcome per identifier in input order. Slots whose worker
    raised, or that were never started because the deadline passed, hold
    Failed(default).
    """
    identifiers = list(identifiers)
    chunks = chunked(identifiers, chunk_size)
    if not chunks:
        return []

    sleep = sleep or asyncio.sleep
    outcomes: List[FetchOutcome] = []

    for index, chunk in enumerate(chunks):
        if deadline is not None and deadline.expired:
            skipped = identifiers[len(outcomes):]
            print(f"    ❌ {label}: deadline exceeded, skipping {len(skipped)} remaining items")
            outcomes.extend(Failed(_resolve_default(default, ident), "deadline exceeded") for ident in skipped)
            break

        print(f"  📦 {label}: chunk {index + 1}/{len(chunks)} ({len(chunk)} items)")
        results = await asyncio.gather(*(worker(ident) for ident in chunk), return_exceptions=True)

        for ident, result in zip(chunk, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                print(f"    ❌ {label}: worker raised for {ident[:10]}: {describe_error(result)}")
                outcomes.append(Failed(_resolve_default(default, ident), describe_error(result)))
            else:
                outcomes.append(result)

        # Rate limiting delay between chunks
        if index < len(chunks) - 1:
            delay = inter_chunk_delay
            if deadline is not None:
                delay = min(delay, deadline.remaining())
            print(f"    ⏱️ Rate limiting: waiting {delay:.1f}s before next chunk...")
            await sleep(delay)

    return outcomes


async def fetch_batched(fetcher: RateLimitedFetcher, identifiers: Iterable[str],
                        chunk_size: int = 5, inter_chunk_delay: float = 1.0,
                        max_retries: int = 2, deadline: Optional[Deadline] = None,
                        sleep: Optional[Callable[[float], Awaitable[Any]]] = None) -> List[FetchOutcome]:
    """Run a fetcher through the scheduler, using the fetcher's default for skipped slots"""

    async def worker(identifier: str) -> FetchOutcome:
        return await fetcher.fetch(identifier, max_retries=max_retries, deadline=deadline)

    return await run_batched(
        identifiers, worker,
        chunk_size=chunk_size,
        inter_chunk_delay=inter_chunk_delay,
        deadline=deadline,
        default=fetcher.default_for,
        sleep=sleep,
        label=fetcher.source
    )
