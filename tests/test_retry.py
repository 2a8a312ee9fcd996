"""
tests/test_retry.py — Tests for the data-store retry policy.
"""

import sqlite3

import pytest

from utils.retry import RetryPolicy, call_with_retry, is_transient_sqlite_error


class Flaky:
    """Fails with the given errors, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return 'ok'


def test_classifier():
    assert is_transient_sqlite_error(sqlite3.OperationalError("database is locked"))
    assert is_transient_sqlite_error(sqlite3.OperationalError("database table is busy"))
    assert not is_transient_sqlite_error(sqlite3.OperationalError("no such table: beds"))
    assert not is_transient_sqlite_error(sqlite3.IntegrityError("locked"))
    assert not is_transient_sqlite_error(ValueError("locked"))


def test_retries_until_success():
    fn = Flaky(sqlite3.OperationalError("database is locked"))
    sleeps = []
    assert call_with_retry(fn, RetryPolicy(max_attempts=3), sleep=sleeps.append) == 'ok'
    assert fn.calls == 2
    assert len(sleeps) == 1


def test_gives_up_after_max_attempts():
    fn = Flaky(*[sqlite3.OperationalError("database is locked")] * 5)
    sleeps = []
    with pytest.raises(sqlite3.OperationalError):
        call_with_retry(fn, RetryPolicy(max_attempts=3), sleep=sleeps.append)
    assert fn.calls == 3
    assert len(sleeps) == 2


def test_fatal_errors_are_not_retried():
    fn = Flaky(sqlite3.IntegrityError("CHECK constraint failed"))
    with pytest.raises(sqlite3.IntegrityError):
        call_with_retry(fn, RetryPolicy(max_attempts=5), sleep=lambda s: None)
    assert fn.calls == 1


def test_custom_classifier():
    fn = Flaky(TimeoutError(), TimeoutError())
    policy = RetryPolicy(max_attempts=3, is_retriable=lambda e: isinstance(e, TimeoutError))
    assert call_with_retry(fn, policy, sleep=lambda s: None) == 'ok'


def test_backoff_grows_exponentially():
    policy = RetryPolicy(base_delay=0.1, jitter=0)
    assert [policy.delay_for(n) for n in (1, 2, 3)] == pytest.approx([0.1, 0.2, 0.4])


def test_jitter_bounds():
    policy = RetryPolicy(base_delay=0.1, jitter=0.05)
    for _ in range(20):
        assert 0.1 <= policy.delay_for(1) <= 0.15


def test_arguments_are_forwarded():
    assert call_with_retry(lambda a, b=0: a + b, RetryPolicy(), 2, b=3) == 5
