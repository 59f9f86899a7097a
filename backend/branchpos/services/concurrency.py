# Overview: Row locking and retry helpers shared by the stock and cash services.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the given query.

    NOTE: SQLite ignores FOR UPDATE; the version_id columns on shifts, plans,
    transfers and inventory rows still catch lost updates there.
    """
    return query.with_for_update()


def lock_row(model, row_id: int):
    """Load one row by primary key under a row lock, or None."""
    return lock_for_update(db.session.query(model).filter_by(id=row_id)).first()


def _attempts(attempts: int | None) -> int:
    if attempts is not None:
        return attempts
    return current_app.config.get("DB_RETRY_ATTEMPTS", 3)


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Run func, retrying on lock timeouts and version conflicts.

    The session is rolled back before every retry, so func must rebuild its
    state from the database. Business errors propagate on the first attempt.
    """
    attempts = _attempts(attempts)
    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.error("Giving up after %d attempts: %s", attempts, exc)
                raise
            current_app.logger.warning(
                "Concurrent update detected (attempt %d/%d): %s", attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))


def commit_session():
    """
    Commit the current session.

    A version conflict or lock timeout rolls back and raises ConflictError (409).
    """
    try:
        db.session.commit()
    except RETRYABLE_ERRORS as exc:
        db.session.rollback()
        current_app.logger.warning("Commit lost a concurrent update: %s", exc)
        raise ConflictError("Record was modified by another request, please retry") from exc
