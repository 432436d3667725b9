"""Bounded retry for store failures."""

import logging

from app.config.settings import get_setting
from app.domain.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def call_with_retry(operation, *args, attempts: int | None = None, **kwargs):
    """Call ``operation``, retrying on ``PersistenceError``.

    Business outcomes are never retried; only the store failing is. The
    last ``PersistenceError`` propagates once the attempts run out.
    """
    attempts = attempts or get_setting("PERSISTENCE_RETRY_ATTEMPTS")
    for attempt in range(1, attempts + 1):
        try:
            return operation(*args, **kwargs)
        except PersistenceError as err:
            if attempt == attempts:
                raise
            logger.warning(
                "%s failed (attempt %s/%s): %s",
                getattr(operation, "__name__", operation), attempt, attempts, err.message,
            )
