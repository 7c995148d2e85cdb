from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from sqlalchemy.exc import DBAPIError, OperationalError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from quickbite.core.config import Settings

logger = structlog.get_logger(__name__)


def _is_retryable_exception(exc: BaseException) -> bool:
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError):
        return exc.connection_invalidated
    return False


def _log_retry(target: str) -> Callable[[Any], None]:
    def _log(state: Any) -> None:
        outcome = state.outcome
        reason = None
        if outcome and outcome.failed:
            reason = str(outcome.exception())
        logger.warning(
            "store_connect_retry",
            target=target,
            attempt=state.attempt_number,
            reason=reason,
        )

    return _log


def retryable(target: str, settings: Settings) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    return retry(
        retry=retry_if_exception(_is_retryable_exception),
        stop=stop_after_attempt(settings.store_connect_attempts),
        wait=wait_exponential_jitter(
            initial=settings.store_connect_backoff_initial,
            max=settings.store_connect_backoff_max,
        ),
        before_sleep=_log_retry(target),
        reraise=True,
    )
