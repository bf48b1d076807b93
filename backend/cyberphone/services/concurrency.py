# Overview: Transaction boundary, row locking and retry helpers shared by all store services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import TransactionTimeoutError
from ..extensions import db


CONCURRENCY_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id columns still turn lost updates into StaleDataError there.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on=CONCURRENCY_ERRORS):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Idempotent toggles also pass
    IntegrityError so a duplicate insert re-reads the winner's row.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(func, *, retry_on=CONCURRENCY_ERRORS, timeout: float | None = None):
    """
    Run func as one all-or-nothing unit of work and commit it.

    - func only flushes; the single commit happens here.
    - Any exception rolls the session back before propagating.
    - If func ran past the time budget the work is rolled back and
      TransactionTimeoutError is raised (nothing is partially applied).
    """
    cfg = current_app.config
    budget = timeout if timeout is not None else cfg.get("TRANSACTION_TIMEOUT_SECONDS")
    attempts = cfg.get("TRANSACTION_RETRY_ATTEMPTS", 3)

    def _op():
        started = time.monotonic()
        try:
            result = func()
            db.session.flush()
            if budget is not None and time.monotonic() - started > budget:
                raise TransactionTimeoutError(
                    "Transaction exceeded its time budget",
                    details={"timeout_seconds": budget},
                )
            db.session.commit()
            return result
        except TransactionTimeoutError:
            db.session.rollback()
            current_app.logger.warning("Transaction rolled back after exceeding %ss", budget)
            raise
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op, attempts=attempts, retry_on=retry_on)


def run_idempotent(func, *, timeout: float | None = None):
    """Transaction for membership toggles: unique-constraint races are retried."""
    return run_in_transaction(func, retry_on=CONCURRENCY_ERRORS + (IntegrityError,), timeout=timeout)
