"""Bounded retry with a fixed backoff for network calls."""

import time
from collections.abc import Callable
from typing import TypeVar

import requests

from src.exceptions import TransientNetworkFailure
from src.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    requests.ConnectionError,
    requests.Timeout,
)


def call_with_retries(
    func: Callable[[], T],
    retries: int = 3,
    delay: float = 1.0,
    description: str = "request",
    retry_on: tuple[type[BaseException], ...] = TRANSIENT_ERRORS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func``, retrying transient failures a bounded number of times.

    Args:
        func: Zero-argument callable performing the network call.
        retries: Extra attempts after the first one.
        delay: Fixed wait in seconds between attempts.
        description: Short label used in log messages.
        retry_on: Exception types considered transient.
        sleep: Sleep function, injectable for tests.

    Returns:
        Whatever ``func`` returns.

    Raises:
        TransientNetworkFailure: If every attempt raised a transient error.
    """
    attempt = 0
    while True:
        try:
            return func()
        except retry_on as exc:
            if attempt >= retries:
                raise TransientNetworkFailure(
                    f"{description} failed after {attempt + 1} attempts: {exc}"
                ) from exc
            attempt += 1
            logger.warning(
                "%s failed (%s), retrying in %.1fs (%d attempts left)",
                description,
                exc.__class__.__name__,
                delay,
                retries - attempt + 1,
            )
            sleep(delay)
