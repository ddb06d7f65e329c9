# Overview: Service-layer operations for concurrency; encapsulates business logic and database work.

from __future__ import annotations

import random
import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


DEFAULT_RETRY_ON = (OperationalError, StaleDataError)

# Two concurrent stock additions can pick the same lot number; the unique
# (product_id, lot_number) constraint rejects the loser, which then retries.
LOT_INSERT_RETRY_ON = (OperationalError, StaleDataError, IntegrityError)

TRANSACTION_ATTEMPTS = 10
BACKOFF_BASE = 0.05
BACKOFF_MAX = 0.5


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def _backoff(attempt: int, backoff_base: float) -> float:
    delay = min(backoff_base * (2 ** attempt), BACKOFF_MAX)
    # Jitter keeps writers that collided once from colliding again in lockstep
    return delay * random.uniform(0.5, 1.0)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float | None = None, retry_on=DEFAULT_RETRY_ON):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts) unless retry_on says otherwise.
    Business errors (insufficient stock, denials) are never retried.

    The session is rolled back before each retry, so `func` must redo ALL
    of the work it depends on. Never pass a callable that only commits.
    """
    if backoff_base is None:
        backoff_base = BACKOFF_BASE
    for attempt in range(attempts):
        try:
            return func()
        except retry_on:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(_backoff(attempt, backoff_base))


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float | None = None, retry_on=DEFAULT_RETRY_ON):
    """
    Run a unit of work and commit it, retrying the whole unit on conflict.

    WHY: A failed commit is rolled back, which discards every pending write.
    Retrying only the commit would then "succeed" with nothing saved, so the
    service call and the commit are retried together.

    Usage:
        sale = run_in_transaction(lambda: sales_service.create_sale(user, ...))
    """
    def _op():
        result = func()
        db.session.commit()
        return result

    return run_with_retry(
        _op,
        attempts=TRANSACTION_ATTEMPTS if attempts is None else attempts,
        backoff_base=backoff_base,
        retry_on=retry_on,
    )
