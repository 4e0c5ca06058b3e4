from __future__ import annotations

import time
from datetime import date
from typing import Callable, Optional, Sequence

import structlog
from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_incrementing

from ..core.constants import REGULARIZATION_BACKOFF_SECONDS, REGULARIZATION_MAX_ATTEMPTS
from ..core.exceptions import BatchJobFailure
from ..notifications.mailer import Mailer
from .service import RegularizationService, RegularizationSummary

logger = structlog.get_logger(__name__)


class RegularizationRunner:
    """Nightly entry point: retries the whole run, then reports by email."""

    def __init__(
        self,
        service: RegularizationService,
        mailer: Mailer,
        *,
        recipients: Sequence[str],
        max_attempts: int = REGULARIZATION_MAX_ATTEMPTS,
        backoff_seconds: float = REGULARIZATION_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._service = service
        self._mailer = mailer
        self._recipients = list(recipients)
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    def run(self, process_date: Optional[date] = None) -> RegularizationSummary:
        day = process_date or self._service.default_process_date()

        retrying = Retrying(
            stop=stop_after_attempt(self._max_attempts),
            # attempt n waits n * backoff before the next try
            wait=wait_incrementing(start=self._backoff_seconds, increment=self._backoff_seconds),
            before_sleep=self._log_retry,
            retry_error_callback=self._give_up,
            sleep=self._sleep,
        )
        summary = retrying(self._service.run, day)
        if summary is None:
            raise BatchJobFailure(f"Attendance regularization failed for {day.isoformat()}")

        self._send(f"Attendance regularization summary: {day.isoformat()}", summary.as_text())
        return summary

    @staticmethod
    def _log_retry(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "regularization.retrying",
            attempt=state.attempt_number,
            wait_seconds=state.next_action.sleep if state.next_action else None,
            error=str(exc),
        )

    def _give_up(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        day = state.args[0] if state.args else None
        logger.error("regularization.failed", attempts=state.attempt_number, error=str(exc))
        self._send(
            f"Attendance regularization FAILED: {day}",
            f"The regularization job gave up after {state.attempt_number} attempts.\n"
            f"Day left unregularized: {day}\n"
            f"Last error: {exc!r}",
        )
        return None

    def _send(self, subject: str, body: str) -> None:
        try:
            self._mailer.send(self._recipients, subject, body)
        except Exception as e:
            logger.warning("regularization.email_failed", subject=subject, error=str(e))
