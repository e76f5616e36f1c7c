# Overview: Optimistic-lock retry loop and row locking for balance-moving operations.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConcurrencyError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id
    columns on Partner, Vendor and Device catch conflicting writers at flush.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func as one DB transaction: commit on success, roll back on error.

    Retries the whole of func on OperationalError (deadlocks, locks) and
    StaleDataError (optimistic locking conflicts), so every read-then-decide
    step inside func is re-evaluated against fresh rows. Any other
    exception rolls back and propagates unchanged.

    Raises:
        ConcurrencyError: if the conflict persists after every attempt
    """
    if attempts is None:
        attempts = current_app.config.get("LEDGER_RETRY_ATTEMPTS", 5)
    if backoff_base is None:
        backoff_base = current_app.config.get("LEDGER_RETRY_BACKOFF_SECONDS", 0.05)

    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.error(
                    "Giving up after %d attempts: %s", attempts, exc.__class__.__name__
                )
                raise ConcurrencyError(
                    "Concurrent update conflict; retry the request"
                ) from exc
            current_app.logger.warning(
                "Concurrent update conflict (%s), retry %d/%d",
                exc.__class__.__name__, attempt + 1, attempts - 1,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
    raise ConcurrencyError("No attempts were made")
