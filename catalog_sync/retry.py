"""Bounded retry for store writes.

Every write the store issues is idempotent by product id (insert-if-absent,
overwrite-if-present, delete-if-present), so replaying a failed batch converges
to the same state.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

import tenacity

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retry(
    fn: Callable[[], T],
    *,
    attempts: int,
    backoff_seconds: float,
    retry_on: tuple[type[BaseException], ...],
) -> T:
    def before_sleep(retry_state: tenacity.RetryCallState) -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Store write attempt %d/%d failed: %s. Retrying in %.1fs",
            retry_state.attempt_number,
            attempts,
            exception,
            retry_state.next_action.sleep if retry_state.next_action else 0,
        )

    retrying = tenacity.Retrying(
        stop=tenacity.stop_after_attempt(attempts),
        wait=tenacity.wait_exponential(multiplier=backoff_seconds, min=backoff_seconds) if backoff_seconds else tenacity.wait_none(),
        retry=tenacity.retry_if_exception_type(retry_on),
        before_sleep=before_sleep,
        reraise=True,
    )
    return retrying(fn)
