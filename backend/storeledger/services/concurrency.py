# Overview: Transaction helpers; atomic units of work, row locks, and retries.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from ..errors import TransactionTimeoutError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic(*, timeout_ms: int | None = None):
    """
    One unit of work on the current session.

    Commits when the block finishes, rolls back on any exception (expected
    domain errors included) and re-raises. Nothing written inside the block
    is visible unless everything is.

    timeout_ms bounds the whole transaction: PostgreSQL gets a
    statement_timeout for the transaction, and on every backend the commit
    is refused once the budget has elapsed.
    """
    started = time.monotonic()
    try:
        if timeout_ms is not None and db.session.get_bind().dialect.name == "postgresql":
            db.session.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))

        yield db.session

        if timeout_ms is not None:
            elapsed_ms = (time.monotonic() - started) * 1000
            if elapsed_ms >= timeout_ms:
                raise TransactionTimeoutError(
                    f"Transaction exceeded {timeout_ms}ms budget ({elapsed_ms:.0f}ms)"
                )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock contention.

    Retries on OperationalError (deadlocks, lock timeouts). The failed
    attempt has already been rolled back by atomic().
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
