import pytest

from shared.utils.retry import RetryConfig, RetryError, calculate_delay, retry_with_backoff


class Flaky:
    def __init__(self, failures, exc=ConnectionError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc("transient")
        return value


def test_calculate_delay_without_jitter():
    config = RetryConfig(base_delay=1.0, backoff_factor=2.0, max_delay=5.0, jitter=False)
    assert [calculate_delay(i, config) for i in range(4)] == [1.0, 2.0, 4.0, 5.0]


def test_retry_until_success():
    func = Flaky(failures=2)
    delays = []
    config = RetryConfig(max_retries=3, base_delay=0.5, jitter=False)

    assert retry_with_backoff(func, "ok", config=config, sleep=delays.append) == "ok"
    assert func.calls == 3
    assert delays == [0.5, 1.0]


def test_retry_gives_up():
    func = Flaky(failures=10)
    config = RetryConfig(max_retries=2, base_delay=0, jitter=False)

    with pytest.raises(RetryError) as excinfo:
        retry_with_backoff(func, "ok", config=config, sleep=lambda _: None)

    assert func.calls == 3
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_non_retryable_exception_is_raised_immediately():
    func = Flaky(failures=1, exc=ValueError)
    config = RetryConfig(max_retries=3, base_delay=0, jitter=False)

    with pytest.raises(ValueError):
        retry_with_backoff(func, "ok", config=config, retryable_exceptions=(ConnectionError,), sleep=lambda _: None)
    assert func.calls == 1
