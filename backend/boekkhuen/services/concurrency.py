# Overview: Transaction boundary and row locking shared by every write path.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; unit_of_work takes the
    database write lock up front there instead.
    """
    return query.with_for_update()


def _is_lock_timeout(exc: OperationalError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return "locked" in message or "deadlock" in message or "could not obtain lock" in message


@contextmanager
def unit_of_work():
    """
    One all-or-nothing write: commit on success, rollback on any exception.

    Nothing is retried here. A failed operation leaves no stock or sale
    change behind and the caller decides whether to submit it again.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))
    try:
        yield db.session
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError("Sale was modified by another request") from exc
    except IntegrityError as exc:
        # Two first-ever stock rows for one product: the loser's insert hits the unique key
        db.session.rollback()
        raise ConflictError("Concurrent write to the same record, please retry") from exc
    except OperationalError as exc:
        db.session.rollback()
        if _is_lock_timeout(exc):
            raise ConflictError("Storage is busy, please retry") from exc
        raise
    except BaseException:
        db.session.rollback()
        raise
