# Overview: Transaction and locking helpers shared by the order services.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Run a block of session work as one transaction.

    Commits once when the block exits normally. On any exception the whole
    session is rolled back and the original exception is re-raised, so header,
    line and stock writes are never partially committed. No retry.
    """
    try:
        yield db.session
        db.session.commit()
    except BaseException:
        db.session.rollback()
        raise
