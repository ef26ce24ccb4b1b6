"""Tests for the retry policy and request context."""

import threading
import time

import pytest
import requests

from alert2snow.core.context import RequestContext
from alert2snow.core.exceptions import (
    ContextCancelled,
    ContextDeadlineExceeded,
    InvalidResponseError,
    ServiceNowAPIError,
)
from alert2snow.core.models import RetrySettings
from alert2snow.senders.retry import calculate_backoff, is_retryable, with_retry

FAST = RetrySettings(max_attempts=3, base_delay=0.01, max_delay=0.02)


class Flaky:
    """Callable raising the queued errors before returning ``value``."""

    def __init__(self, *errors, value="ok"):
        self.errors = list(errors)
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.value


def test_backoff_doubles_and_caps():
    assert calculate_backoff(0, 1, 10) == 1
    assert calculate_backoff(1, 1, 10) == 2
    assert calculate_backoff(2, 1, 10) == 4
    assert calculate_backoff(3, 1, 10) == 8
    assert calculate_backoff(4, 1, 10) == 10


@pytest.mark.parametrize(
    "error, expected",
    [
        (ServiceNowAPIError(500), True),
        (ServiceNowAPIError(503), True),
        (ServiceNowAPIError(400), False),
        (ServiceNowAPIError(401), False),
        (ServiceNowAPIError(404), False),
        (requests.exceptions.ConnectionError("refused"), True),
        (requests.exceptions.Timeout("slow"), True),
        (InvalidResponseError("bad json"), True),
        (RuntimeError("bug"), False),
    ],
)
def test_is_retryable(error, expected):
    assert is_retryable(error) is expected


def test_success_on_first_attempt():
    fn = Flaky()
    assert with_retry(RequestContext(), FAST, fn) == "ok"
    assert fn.calls == 1


def test_server_error_retried_until_success():
    fn = Flaky(ServiceNowAPIError(500), ServiceNowAPIError(502))
    assert with_retry(RequestContext(), FAST, fn) == "ok"
    assert fn.calls == 3


def test_server_error_retried_up_to_max_attempts():
    fn = Flaky(*[ServiceNowAPIError(500) for _ in range(5)])

    with pytest.raises(ServiceNowAPIError) as exc_info:
        with_retry(RequestContext(), FAST, fn)

    assert exc_info.value.status_code == 500
    assert fn.calls == 3


def test_client_error_is_not_retried():
    fn = Flaky(ServiceNowAPIError(400), value="never")

    with pytest.raises(ServiceNowAPIError) as exc_info:
        with_retry(RequestContext(), FAST, fn)

    assert exc_info.value.status_code == 400
    assert fn.calls == 1


def test_transport_error_is_retried():
    fn = Flaky(requests.exceptions.ConnectionError("refused"))
    assert with_retry(RequestContext(), FAST, fn) == "ok"
    assert fn.calls == 2


def test_unexpected_error_propagates_immediately():
    fn = Flaky(KeyError("bug"))
    with pytest.raises(KeyError):
        with_retry(RequestContext(), FAST, fn)
    assert fn.calls == 1


def test_no_wait_after_last_attempt():
    slow = RetrySettings(max_attempts=1, base_delay=5, max_delay=5)
    fn = Flaky(ServiceNowAPIError(503))

    started = time.monotonic()
    with pytest.raises(ServiceNowAPIError):
        with_retry(RequestContext(), slow, fn)

    assert time.monotonic() - started < 1


def test_cancel_during_backoff_aborts_immediately():
    slow = RetrySettings(max_attempts=3, base_delay=5, max_delay=10)
    fn = Flaky(ServiceNowAPIError(500), ServiceNowAPIError(500))
    ctx = RequestContext()
    timer = threading.Timer(0.05, ctx.cancel)
    timer.start()

    started = time.monotonic()
    try:
        with pytest.raises(ContextCancelled):
            with_retry(ctx, slow, fn)
    finally:
        timer.cancel()

    assert time.monotonic() - started < 2
    assert fn.calls == 1


def test_deadline_during_backoff_aborts():
    slow = RetrySettings(max_attempts=3, base_delay=5, max_delay=10)
    fn = Flaky(ServiceNowAPIError(500))

    started = time.monotonic()
    with pytest.raises(ContextDeadlineExceeded):
        with_retry(RequestContext(timeout=0.05), slow, fn)

    assert time.monotonic() - started < 2
    assert fn.calls == 1


def test_cancelled_context_skips_attempt():
    ctx = RequestContext()
    ctx.cancel()
    fn = Flaky()

    with pytest.raises(ContextCancelled):
        with_retry(ctx, FAST, fn)

    assert fn.calls == 0


def test_context_wait_returns_none_when_not_cancelled():
    ctx = RequestContext(timeout=10)
    assert ctx.wait(0.01) is None
    assert ctx.remaining() > 0


def test_context_without_deadline_has_no_remaining():
    assert RequestContext().remaining() is None
