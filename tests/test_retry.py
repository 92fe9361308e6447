import asyncio

import pytest

from rheocode.types.core_types import SimpleAbortSignal
from rheocode.utils.errors import AbortError
from rheocode.utils.retry_with_backoff import (
    RetryOptions, default_should_retry, get_retry_after_delay_ms, retry_with_backoff
)

from conftest import StatusError


class Script:
    """按顺序抛出异常或返回值，记录调用次数"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def sleeps(monkeypatch):
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("rheocode.utils.retry_with_backoff.asyncio.sleep", fake_sleep)
    return delays


async def test_rate_limit_errors_are_retried_until_success(sleeps):
    func = Script(StatusError(429), StatusError(429), StatusError(429), "done")

    result = await retry_with_backoff(func, RetryOptions(max_attempts=5, initial_delay_ms=100, max_delay_ms=1000))

    assert result == "done"
    assert func.calls == 4
    assert len(sleeps) == 3


async def test_backoff_grows_with_jitter_and_respects_cap(sleeps, monkeypatch):
    monkeypatch.setattr("rheocode.utils.retry_with_backoff.random.random", lambda: 0.5)
    func = Script(StatusError(503), StatusError(503), StatusError(503), "ok")

    await retry_with_backoff(func, RetryOptions(max_attempts=4, initial_delay_ms=100, max_delay_ms=250))

    # random()=0.5 时抖动为0
    assert sleeps == [0.1, 0.2, 0.25]


async def test_non_retryable_error_is_raised_immediately(sleeps):
    func = Script(StatusError(400, "bad request"), "never")

    with pytest.raises(StatusError):
        await retry_with_backoff(func, RetryOptions(max_attempts=5, initial_delay_ms=0))

    assert func.calls == 1
    assert sleeps == []


async def test_exhausted_attempts_reraise_last_error(sleeps):
    func = Script(StatusError(500, "first"), StatusError(500, "second"), StatusError(500, "last"))

    with pytest.raises(StatusError, match="last"):
        await retry_with_backoff(func, RetryOptions(max_attempts=3, initial_delay_ms=0))

    assert func.calls == 3


async def test_aborted_signal_stops_before_calling(sleeps):
    signal = SimpleAbortSignal()
    signal.abort()
    func = Script("never")

    with pytest.raises(AbortError):
        await retry_with_backoff(func, RetryOptions(), signal)

    assert func.calls == 0


async def test_error_after_abort_is_not_retried(sleeps):
    signal = SimpleAbortSignal()

    async def func():
        signal.abort()
        raise StatusError(429)

    with pytest.raises(StatusError):
        await retry_with_backoff(func, RetryOptions(max_attempts=5, initial_delay_ms=0), signal)

    assert sleeps == []


def test_default_should_retry_classification():
    assert default_should_retry(StatusError(429))
    assert default_should_retry(StatusError(500))
    assert default_should_retry(StatusError(599))
    assert not default_should_retry(StatusError(404))
    assert default_should_retry(Exception("got status 503 from server"))
    assert default_should_retry(Exception("Error 429: quota"))
    assert not default_should_retry(ValueError("malformed response"))
    assert not default_should_retry(AbortError())
    assert not default_should_retry(asyncio.CancelledError())


def test_retry_after_header_in_seconds():
    error = StatusError(429)
    error.headers = {"Retry-After": "7"}
    assert get_retry_after_delay_ms(error) == 7000
    assert get_retry_after_delay_ms(StatusError(429)) is None
