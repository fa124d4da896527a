"""
Retry policy for optimistic-concurrency conflicts.

A ConflictError with reason "stale_version" means another transaction
committed a change to the same row first. Re-running the whole unit of
work once, against fresh state, is enough in practice. Other conflicts
(duplicates) are permanent and are re-raised immediately.
"""

import logging
from typing import Callable, TypeVar

from .exceptions import ConflictError


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 2


def retry_on_stale_version(operation: Callable[[], T], attempts: int = DEFAULT_ATTEMPTS) -> T:
    """
    Run `operation`, re-running it when it loses an optimistic-concurrency race.

    Args:
        operation: Callable that opens its own unit of work
        attempts: Total number of tries (2 = one retry)

    Raises:
        ConflictError: When the last attempt still conflicts, or at once
            for non-retryable conflicts
    """
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except ConflictError as e:
            if not e.is_retryable or attempt == attempts:
                raise
            logger.warning(f"Stale write detected, retrying (attempt {attempt + 1}/{attempts}): {e}")
    raise RuntimeError("retry_on_stale_version needs at least one attempt")
