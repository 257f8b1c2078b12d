"""Bounded retry around database calls"""
import logging
import time

from django.db import InterfaceError, OperationalError

from ..exceptions import PersistenceTransientError, PersistenceFatalInconsistencyError
from .constants import BusinessRules

logger = logging.getLogger(__name__)

TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError)


def call_with_retry(func, *args, attempts=BusinessRules.TRANSIENT_MAX_RETRIES,
                    backoff=BusinessRules.TRANSIENT_BACKOFF_SECONDS, **kwargs):
    """
    Run func, retrying on database timeouts/unavailability.

    Only for reads and idempotent writes. Raises PersistenceTransientError
    once attempts are exhausted.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func(*args, **kwargs)
        except TRANSIENT_DB_ERRORS as e:
            logger.warning(f"[DB] transient error in {getattr(func, '__name__', func)} "
                           f"(attempt {attempt}/{attempts}): {e}")
            if attempt == attempts:
                raise PersistenceTransientError(f"Storage unavailable: {e}") from e
            time.sleep(backoff * attempt)


def call_write_once(write, confirm, context=None):
    """
    Run a non-idempotent write a single time.

    A transient error may arrive after the write committed, so the write is
    never repeated. Instead confirm() re-reads the row and returns the
    write's result if it landed, or None if it did not (raised as
    PersistenceTransientError). If the outcome cannot be read back at all,
    PersistenceFatalInconsistencyError is raised with context.
    """
    try:
        return write()
    except TRANSIENT_DB_ERRORS as e:
        logger.warning(f"[DB] transient error in {getattr(write, '__name__', write)}, checking outcome: {e}")
        try:
            outcome = call_with_retry(confirm)
        except PersistenceTransientError as read_error:
            context = dict(context or {}, cause=repr(e), read_error=repr(read_error))
            logger.critical(f"[DB] write outcome unknown, manual reconciliation needed: {context}")
            raise PersistenceFatalInconsistencyError("Write outcome could not be confirmed", context) from e
        if outcome is None:
            raise PersistenceTransientError(f"Storage unavailable: {e}") from e
        return outcome
