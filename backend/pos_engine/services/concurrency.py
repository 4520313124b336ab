# Overview: Locking, retry, and unit-of-work helpers for SQL-backed operations.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import FatalError
from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.info("Retrying after concurrency conflict (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


class SqlUnitOfWork:
    """
    One database transaction per engine operation.

    Commits when the operation returns, rolls back on any error so no partial
    mutation survives. Storage failures surface as FatalError.
    """

    def __init__(self, *, attempts: int = 3, backoff_base: float = 0.1):
        self.attempts = attempts
        self.backoff_base = backoff_base

    def run(self, func, *, retry: bool = True):
        def _op():
            result = func()
            db.session.commit()
            return result

        try:
            if retry:
                return run_with_retry(_op, attempts=self.attempts, backoff_base=self.backoff_base)
            return _op()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise FatalError("Storage operation failed") from exc
        except Exception:
            db.session.rollback()
            raise
