"""
utils/retry.py — Retry-with-backoff policy for data-store calls.

The policy lives at the data-store boundary only: the occupancy engine never
retries (a slot that keeps getting taken must go back to the user).

Delay before attempt n+1: base_delay * 2**(n-1) + uniform(0, jitter).
"""

import logging
import random
import sqlite3
import time
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


def is_transient_sqlite_error(exc: BaseException) -> bool:
    """Locked/busy database errors clear up on their own; anything else is fatal."""
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    message = str(exc).lower()
    return 'locked' in message or 'busy' in message


@dataclass
class RetryPolicy:
    """How many times to retry a call, how long to wait, and which errors qualify."""
    max_attempts: int = 3
    base_delay: float = 0.05
    jitter: float = 0.05
    is_retriable: Callable[[BaseException], bool] = field(default=is_transient_sqlite_error)

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (2 ** (attempt - 1)) + random.uniform(0, self.jitter)


def call_with_retry(fn, policy: RetryPolicy, *args, sleep=time.sleep, **kwargs):
    """
    Call fn(*args, **kwargs), retrying retriable errors per policy.

    Args:
        fn: Callable to invoke.
        policy: RetryPolicy to apply.
        sleep: Sleep function (injectable for tests).

    Returns:
        Whatever fn returns.

    Raises:
        The last exception once attempts are exhausted, or any fatal one at once.
    """
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            if attempt >= attempts or not policy.is_retriable(e):
                raise
            delay = policy.delay_for(attempt)
            logger.warning("Data store call failed (%s), retry %d/%d in %.2fs",
                           e, attempt, attempts - 1, delay)
            sleep(delay)
