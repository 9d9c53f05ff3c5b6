# tests/unit/llm/test_unit_retry.py - v1
"""Tests for llm/retry.py: classification, backoff and the retry loop."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ceremonykit.llm.errors import MalformedResponseError, ProviderConfigurationError
from ceremonykit.llm.retry import (
    RetryPolicy,
    classify_error,
    compute_backoff_delay,
    extract_retry_after,
    with_retry,
)


class _Sleeps:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestClassifyError:
    @pytest.mark.parametrize("status", [429, 503, 529])
    def test_transient_status_codes(self, api_error, status):
        verdict = classify_error(api_error("boom", status_code=status))
        assert verdict.retryable
        assert verdict.status == status

    @pytest.mark.parametrize("status", [400, 401, 404, 500])
    def test_other_status_codes_fatal(self, api_error, status):
        assert not classify_error(api_error("bad request", status_code=status)).retryable

    def test_gemini_status_name_normalized(self, api_error):
        err = api_error("quota", code=None, status="RESOURCE_EXHAUSTED")
        verdict = classify_error(err)
        assert verdict.retryable
        assert verdict.status == 429

    def test_gemini_int_code(self, api_error):
        verdict = classify_error(api_error("unavailable", code=503))
        assert verdict.status == 503
        assert verdict.retryable

    def test_anthropic_overloaded_body(self, api_error):
        err = api_error("Overloaded", body={"type": "error", "error": {"type": "overloaded_error"}})
        verdict = classify_error(err)
        assert verdict.retryable
        assert verdict.status == 529

    @pytest.mark.parametrize(
        "message",
        [
            "The model is experiencing high demand",
            "Please try again later.",
            "Service temporarily unavailable",
            "Rate limit reached for requests",
        ],
    )
    def test_transient_phrases(self, message):
        assert classify_error(RuntimeError(message)).retryable

    def test_generic_error_fatal(self):
        assert not classify_error(ValueError("invalid prompt")).retryable

    def test_own_errors_never_retryable(self):
        assert not classify_error(ProviderConfigurationError("claude", "rate limit")).retryable
        assert not classify_error(MalformedResponseError("bad", raw_text="x")).retryable


class TestExtractRetryAfter:
    def test_header_seconds(self, api_error):
        err = api_error("busy", status_code=429, headers={"retry-after": "7"})
        assert extract_retry_after(err) == 7.0

    def test_header_milliseconds(self, api_error):
        err = api_error("busy", status_code=429, headers={"retry-after-ms": "1500"})
        assert extract_retry_after(err) == 1.5

    def test_explicit_attribute(self, api_error):
        assert extract_retry_after(api_error("busy", retry_after=3)) == 3.0

    def test_gemini_retry_delay_detail(self, api_error):
        details = {
            "error": {
                "code": 429,
                "details": [
                    {"@type": "type.googleapis.com/google.rpc.QuotaFailure"},
                    {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "17s"},
                ],
            }
        }
        assert extract_retry_after(api_error("quota", details=details)) == 17.0

    def test_absent(self, api_error):
        assert extract_retry_after(api_error("busy", status_code=503)) is None

    def test_http_date_ignored(self, api_error):
        err = api_error("busy", headers={"retry-after": "Wed, 21 Oct 2026 07:28:00 GMT"})
        assert extract_retry_after(err) is None


class TestComputeBackoffDelay:
    def test_exponential(self):
        policy = RetryPolicy(initial_delay_s=1.0, backoff_multiplier=2.0, max_delay_s=100.0)
        assert [compute_backoff_delay(policy, n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self):
        policy = RetryPolicy(initial_delay_s=10.0, backoff_multiplier=3.0, max_delay_s=25.0)
        assert compute_backoff_delay(policy, 5) == 25.0

    def test_jitter_bounded(self):
        policy = RetryPolicy(initial_delay_s=4.0, max_delay_s=100.0, jitter=True)
        for _ in range(20):
            assert 2.0 <= compute_backoff_delay(policy, 0) <= 6.0


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        fn = AsyncMock(return_value="done")
        sleeps = _Sleeps()
        assert await with_retry(fn, policy=RetryPolicy(), sleep=sleeps) == "done"
        assert fn.await_count == 1
        assert sleeps.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2, 3])
    async def test_recovers_within_max_retries(self, api_error, failures):
        errors = [api_error("busy", status_code=503) for _ in range(failures)]
        fn = AsyncMock(side_effect=[*errors, "done"])
        policy = RetryPolicy(max_retries=3, initial_delay_s=1.0, max_delay_s=60.0)
        assert await with_retry(fn, policy=policy, sleep=_Sleeps()) == "done"
        assert fn.await_count == failures + 1

    @pytest.mark.asyncio
    async def test_raises_last_error_after_exhaustion(self, api_error):
        errors = [api_error(f"busy {i}", status_code=503) for i in range(4)]
        fn = AsyncMock(side_effect=errors)
        policy = RetryPolicy(max_retries=3, initial_delay_s=1.0)
        with pytest.raises(type(errors[-1])) as exc_info:
            await with_retry(fn, policy=policy, sleep=_Sleeps())
        assert exc_info.value is errors[-1]
        assert fn.await_count == 4

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_immediately(self, api_error):
        err = api_error("unauthorized", status_code=401)
        fn = AsyncMock(side_effect=[err, "never"])
        sleeps = _Sleeps()
        with pytest.raises(type(err)):
            await with_retry(fn, policy=RetryPolicy(), sleep=sleeps)
        assert fn.await_count == 1
        assert sleeps.delays == []

    @pytest.mark.asyncio
    async def test_exponential_delays(self, api_error):
        fn = AsyncMock(side_effect=[api_error("busy", status_code=529)] * 3 + ["ok"])
        sleeps = _Sleeps()
        policy = RetryPolicy(max_retries=3, initial_delay_s=2.0, backoff_multiplier=2.0)
        await with_retry(fn, policy=policy, sleep=sleeps)
        assert sleeps.delays == [2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_retry_after_honored_and_counter_not_advanced(self, api_error):
        fn = AsyncMock(side_effect=[
            api_error("busy", status_code=503),
            api_error("slow down", status_code=429, headers={"retry-after": "30"}),
            api_error("busy", status_code=503),
            "ok",
        ])
        sleeps = _Sleeps()
        policy = RetryPolicy(max_retries=3, initial_delay_s=1.0, backoff_multiplier=2.0)
        assert await with_retry(fn, policy=policy, sleep=sleeps) == "ok"
        # 30s exactly, and the following backoff resumes at step 1 (2s), not step 2.
        assert sleeps.delays == [1.0, 30.0, 2.0]

    @pytest.mark.asyncio
    async def test_retry_after_not_capped(self, api_error):
        fn = AsyncMock(side_effect=[
            api_error("slow down", status_code=429, headers={"retry-after": "120"}),
            "ok",
        ])
        sleeps = _Sleeps()
        await with_retry(fn, policy=RetryPolicy(max_delay_s=10.0), sleep=sleeps)
        assert sleeps.delays == [120.0]

    @pytest.mark.asyncio
    async def test_retry_after_counts_as_attempt(self, api_error):
        err = api_error("slow down", status_code=429, headers={"retry-after": "1"})
        fn = AsyncMock(side_effect=[err, err, err])
        with pytest.raises(type(err)):
            await with_retry(fn, policy=RetryPolicy(max_retries=2), sleep=_Sleeps())
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_passes_arguments(self):
        fn = AsyncMock(return_value="x")
        await with_retry(fn, "a", 2, policy=RetryPolicy(), sleep=_Sleeps(), flag=True)
        fn.assert_awaited_once_with("a", 2, flag=True)
