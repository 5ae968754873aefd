# common/retry_utils.py
# -*- coding: utf-8 -*-
"""
Bounded retry helper for eventually-consistent backend operations.
"""

import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from admin_setup.config_models import AppSettings

from .command_utils import get_symbols, log_installer

module_logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """Raised when every attempt of a retried operation failed."""

    def __init__(self, description: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(
            f"{description} failed after {attempts} attempt(s): {last_error}"
        )
        self.description = description
        self.attempts = attempts
        self.last_error = last_error


def retry_with_side_effect(
    operation: Callable[[], T],
    attempts: int,
    on_failure: Optional[Callable[[int, BaseException], None]] = None,
    backoff: float = 0.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep_func: Callable[[float], None] = time.sleep,
    description: str = "Operation",
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> T:
    """
    Call `operation` until it succeeds, at most `attempts` times.

    Between two attempts (never after the last one) `on_failure` is called
    with the attempt number and the error, then `sleep_func(backoff)`. This
    lets the caller nudge the backend before trying again.

    Args:
        operation: Zero-argument callable; raising one of `retry_on` is a failure.
        attempts: Maximum number of calls to `operation` (at least 1).
        on_failure: Side effect run between attempts.
        backoff: Seconds passed to `sleep_func` between attempts.
        retry_on: Exception types that count as a retryable failure. Anything
            else propagates immediately.
        sleep_func: Injected sleep, `time.sleep` by default.
        description: Human name of the operation for log messages.
        app_settings: Settings used for log symbols.
        current_logger: Optional logger override.

    Returns:
        Whatever `operation` returned on the successful attempt.

    Raises:
        RetryExhaustedError: If all attempts failed.
        ValueError: If attempts is less than 1.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except retry_on as e:
            last_error = e
            if attempt == attempts:
                break
            log_installer(
                f"{symbols.get('warning', '!')} {description} failed, pass {attempt} of {attempts}. Will retry.",
                "warning",
                logger_to_use,
                app_settings,
            )
            if on_failure is not None:
                on_failure(attempt, e)
            sleep_func(backoff)

    log_installer(
        f"{symbols.get('error', '❌')} {description} failed after {attempts} attempt(s).",
        "error",
        logger_to_use,
        app_settings,
    )
    raise RetryExhaustedError(description, attempts, last_error)
