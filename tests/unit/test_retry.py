import pytest

from portfolio_dashboard.utils.retry import retry_with_backoff


class FlakyCall:
    def __init__(self, failures: int, result="ok"):
        self.failures = failures
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError(f"boom {self.calls}")
        return self.result


@pytest.mark.asyncio
async def test_retry_succeeds_after_failures(fake_sleep):
    fn = FlakyCall(failures=2)
    result = await retry_with_backoff(fn, retries=2, base_delay=0.5, sleep=fake_sleep)

    assert result == "ok"
    assert fn.calls == 3
    assert fake_sleep.calls == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retry_raises_last_error_when_exhausted(fake_sleep):
    fn = FlakyCall(failures=10)
    with pytest.raises(ConnectionError, match="boom 3"):
        await retry_with_backoff(fn, retries=2, base_delay=0.5, sleep=fake_sleep)

    assert fn.calls == 3
    # no sleep after the final attempt
    assert fake_sleep.calls == [0.5, 1.0]


@pytest.mark.asyncio
async def test_retry_zero_retries_is_single_attempt(fake_sleep):
    fn = FlakyCall(failures=1)
    with pytest.raises(ConnectionError):
        await retry_with_backoff(fn, retries=0, sleep=fake_sleep)
    assert fn.calls == 1
    assert fake_sleep.calls == []


@pytest.mark.asyncio
async def test_retry_rejects_negative_retries():
    with pytest.raises(ValueError):
        await retry_with_backoff(FlakyCall(0), retries=-1)
