import asyncio

import pytest

from solana_insights.fetcher import RateLimitedFetcher
from solana_insights.models import Deadline, Failed, SolanaApiError, Success


class FlakyCall:
    """Fails the first `failures` calls, then returns value"""

    def __init__(self, failures, value=42.0):
        self.failures = failures
        self.value = value
        self.calls = 0

    async def __call__(self, identifier):
        self.calls += 1
        if self.calls <= self.failures:
            raise SolanaApiError("HTTP 429: Too Many Requests", status=429)
        return self.value


@pytest.mark.asyncio
async def test_always_failing_call_is_tried_max_retries_plus_one_times(sleeps):
    call = FlakyCall(failures=100)
    fetcher = RateLimitedFetcher("price", call, default=0.0, sleep=sleeps)

    outcome = await fetcher.fetch("So11111111111111111111111111111111111111112", max_retries=2)

    assert call.calls == 3
    assert isinstance(outcome, Failed)
    assert outcome.ok is False
    assert outcome.value == 0.0
    assert "429" in outcome.reason
    assert sleeps.calls == [1.0, 1.0]


@pytest.mark.asyncio
async def test_fail_once_then_succeed_uses_two_calls(sleeps):
    call = FlakyCall(failures=1, value=1.25)
    fetcher = RateLimitedFetcher("price", call, default=0.0, sleep=sleeps)

    outcome = await fetcher.fetch("mint-a", max_retries=2)

    assert call.calls == 2
    assert isinstance(outcome, Success)
    assert outcome.ok is True
    assert outcome.value == 1.25
    assert sleeps.calls == [1.0]


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt_without_sleep(sleeps):
    call = FlakyCall(failures=1)
    fetcher = RateLimitedFetcher("price", call, default=0.0, sleep=sleeps)

    outcome = await fetcher.fetch("mint-a", max_retries=0)

    assert call.calls == 1
    assert not outcome.ok
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_negative_retries_rejected():
    fetcher = RateLimitedFetcher("price", FlakyCall(failures=0), default=0.0)

    with pytest.raises(ValueError):
        await fetcher.fetch("mint-a", max_retries=-1)


@pytest.mark.asyncio
async def test_callable_default_receives_identifier(sleeps):
    fetcher = RateLimitedFetcher("tx", FlakyCall(failures=5), default=lambda ident: {"signature": ident},
                                 sleep=sleeps)

    outcome = await fetcher.fetch("sig-123", max_retries=1)

    assert outcome.value == {"signature": "sig-123"}


@pytest.mark.asyncio
async def test_unexpected_exception_is_degraded_not_raised(sleeps):
    async def broken(identifier):
        raise KeyError("priceUsd")

    fetcher = RateLimitedFetcher("price", broken, default=0.0, sleep=sleeps)

    outcome = await fetcher.fetch("mint-a", max_retries=1)

    assert not outcome.ok
    assert "KeyError" in outcome.reason


@pytest.mark.asyncio
async def test_expired_deadline_skips_the_call(sleeps):
    call = FlakyCall(failures=0)
    fetcher = RateLimitedFetcher("price", call, default=0.0, sleep=sleeps)

    outcome = await fetcher.fetch("mint-a", max_retries=2, deadline=Deadline(expires_at=0.0))

    assert call.calls == 0
    assert outcome.reason == "deadline exceeded"
    assert outcome.value == 0.0


@pytest.mark.asyncio
async def test_slow_call_is_cut_off_by_deadline(sleeps):
    calls = []

    async def hangs(identifier):
        calls.append(identifier)
        await asyncio.sleep(10)

    fetcher = RateLimitedFetcher("price", hangs, default=0.0, sleep=sleeps)

    outcome = await fetcher.fetch("mint-a", max_retries=2, deadline=Deadline.after(0.05))

    assert calls == ["mint-a"]
    assert outcome.reason == "deadline exceeded"
    assert sleeps.calls == []


@pytest.mark.asyncio
async def test_failure_reason_is_logged(sleeps, capsys):
    fetcher = RateLimitedFetcher("token-price", FlakyCall(failures=5), default=0.0, sleep=sleeps)

    await fetcher.fetch("ABCDEFGHIJKLMNOP", max_retries=1)

    out = capsys.readouterr().out
    assert "token-price" in out
    assert "ABCDEFGHIJ" in out
    assert "429" in out
    assert "using default" in out


@pytest.mark.asyncio
async def test_downstream_timeout_is_retried_while_deadline_remains(sleeps):
    calls = []

    async def times_out_once(identifier):
        calls.append(identifier)
        if len(calls) == 1:
            raise asyncio.TimeoutError("read timed out")
        return 7.0

    fetcher = RateLimitedFetcher("price", times_out_once, default=0.0, sleep=sleeps)

    outcome = await fetcher.fetch("mint-a", max_retries=2, deadline=Deadline.after(60))

    assert len(calls) == 2
    assert isinstance(outcome, Success)
    assert outcome.value == 7.0
    assert sleeps.calls == [1.0]
