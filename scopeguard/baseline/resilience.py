"""Bounded exponential backoff for Baseline Store reads."""

from typing import Callable, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from scopeguard.config.settings import Settings, get_settings
from scopeguard.errors import BaselineStoreUnavailable

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "baseline_store_retry",
        attempt=retry_state.attempt_number,
        error=str(error),
    )


def baseline_retrying(settings: Settings | None = None) -> Retrying:
    """Build the retry policy for store reads from settings."""
    settings = settings or get_settings()
    return Retrying(
        retry=retry_if_exception_type(BaselineStoreUnavailable),
        stop=stop_after_attempt(settings.baseline_max_attempts),
        wait=wait_exponential(
            multiplier=settings.baseline_retry_min_seconds,
            min=settings.baseline_retry_min_seconds,
            max=settings.baseline_retry_max_seconds,
        ),
        before_sleep=_log_retry,
        reraise=True,
    )


def call_with_retry(fn: Callable[[], T], settings: Settings | None = None) -> T:
    """Run ``fn``, retrying on BaselineStoreUnavailable.

    Raises:
        BaselineStoreUnavailable: Once the attempt limit is exhausted.
        BaselineStoreCorrupt: Immediately, since bad contents do not heal.
    """
    return baseline_retrying(settings)(fn)
