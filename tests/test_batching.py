import asyncio

import pytest

from solana_insights.batching import chunked, fetch_batched, run_batched
from solana_insights.fetcher import RateLimitedFetcher
from solana_insights.models import Deadline, Failed, SolanaApiError, Success


async def echo(identifier):
    return Success(identifier.upper())


@pytest.mark.parametrize("chunk_size", [1, 3, 12, 20])
@pytest.mark.asyncio
async def test_output_order_matches_input_order(chunk_size, sleeps):
    identifiers = [f"id{i}" for i in range(12)]

    outcomes = await run_batched(identifiers, echo, chunk_size=chunk_size, sleep=sleeps)

    assert [o.value for o in outcomes] == [i.upper() for i in identifiers]


@pytest.mark.parametrize("count,chunk_size,expected_sleeps", [(12, 5, 2), (10, 5, 1), (5, 5, 0), (1, 5, 0)])
@pytest.mark.asyncio
async def test_cooldown_only_between_chunks(count, chunk_size, expected_sleeps, sleeps):
    identifiers = [f"id{i}" for i in range(count)]

    await run_batched(identifiers, echo, chunk_size=chunk_size, inter_chunk_delay=1.0, sleep=sleeps)

    assert sleeps.calls == [1.0] * expected_sleeps


@pytest.mark.asyncio
async def test_empty_input_does_nothing(sleeps):
    calls = []

    async def worker(identifier):
        calls.append(identifier)
        return Success(identifier)

    assert await run_batched([], worker, sleep=sleeps) == []
    assert calls == []
    assert sleeps.calls == []


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        chunked(["a", "b"], 0)


def test_chunked_splits_consecutively():
    assert chunked(list("abcdefg"), 3) == [["a", "b", "c"], ["d", "e", "f"], ["g"]]


@pytest.mark.asyncio
async def test_worker_exception_becomes_failed_with_default(sleeps):
    async def worker(identifier):
        if identifier == "bad":
            raise RuntimeError("boom")
        return Success(1.0)

    outcomes = await run_batched(["ok", "bad", "ok2"], worker, default=0.0, sleep=sleeps)

    assert [o.ok for o in outcomes] == [True, False, True]
    assert outcomes[1].value == 0.0
    assert "boom" in outcomes[1].reason


@pytest.mark.asyncio
async def test_concurrency_never_exceeds_chunk_size(sleeps):
    in_flight = 0
    peak = 0

    async def worker(identifier):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return Success(identifier)

    await run_batched([str(i) for i in range(17)], worker, chunk_size=4, sleep=sleeps)

    assert peak <= 4
    assert peak > 1


@pytest.mark.asyncio
async def test_chunks_run_sequentially(sleeps):
    events = []

    async def worker(identifier):
        events.append(("start", identifier))
        await asyncio.sleep(0)
        events.append(("end", identifier))
        return Success(identifier)

    await run_batched(["a", "b", "c", "d"], worker, chunk_size=2, sleep=sleeps)

    first_chunk_ends = [i for i, event in enumerate(events) if event in (("end", "a"), ("end", "b"))]
    second_chunk_starts = [i for i, event in enumerate(events) if event in (("start", "c"), ("start", "d"))]
    assert max(first_chunk_ends) < min(second_chunk_starts)


@pytest.mark.asyncio
async def test_expired_deadline_fills_defaults_without_calling(sleeps):
    calls = []

    async def worker(identifier):
        calls.append(identifier)
        return Success(identifier)

    outcomes = await run_batched(["a", "b", "c"], worker, deadline=Deadline(expires_at=0.0),
                                 default=lambda ident: f"default-{ident}", sleep=sleeps)

    assert calls == []
    assert [o.value for o in outcomes] == ["default-a", "default-b", "default-c"]
    assert all(o.reason == "deadline exceeded" for o in outcomes)


@pytest.mark.asyncio
async def test_twelve_identifiers_two_permanent_failures(sleeps, retry_sleeps):
    """12 ids, chunks of 5, ids 3 and 9 always fail: 10 real values, 2 defaults, 2 cooldowns"""
    identifiers = [f"mint{i}" for i in range(12)]
    broken = {"mint3", "mint9"}
    calls = []

    async def price(identifier):
        calls.append(identifier)
        if identifier in broken:
            raise SolanaApiError("HTTP 500: Internal Server Error", status=500)
        return float(identifier[4:])

    fetcher = RateLimitedFetcher("price", price, default=0.0, sleep=retry_sleeps)

    outcomes = await fetch_batched(fetcher, identifiers, chunk_size=5, inter_chunk_delay=1.0,
                                   max_retries=2, sleep=sleeps)

    assert len(outcomes) == 12
    assert [o.ok for o in outcomes].count(True) == 10
    for i, outcome in enumerate(outcomes):
        if f"mint{i}" in broken:
            assert isinstance(outcome, Failed)
            assert outcome.value == 0.0
        else:
            assert outcome.value == float(i)
    assert sleeps.calls == [1.0, 1.0]
    assert calls.count("mint3") == 3
    assert calls.count("mint9") == 3
    assert len(retry_sleeps.calls) == 4


@pytest.mark.asyncio
async def test_fetch_batched_logs_chunks(sleeps, capsys):
    fetcher = RateLimitedFetcher("metadata", lambda ident: asyncio.sleep(0, result=ident))

    await fetch_batched(fetcher, ["a", "b", "c"], chunk_size=2, sleep=sleeps)

    out = capsys.readouterr().out
    assert "metadata: chunk 1/2" in out
    assert "metadata: chunk 2/2" in out
    assert "Rate limiting" in out
