# Overview: Transaction scope for multi-row workflows and store-error translation.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..validation import ConflictError, UpstreamStoreError


def translate_store_error(exc: SQLAlchemyError) -> Exception:
    """Map a driver-level failure onto the service error taxonomy."""
    if isinstance(exc, IntegrityError):
        return ConflictError("Unique constraint violated", details={"error": str(exc.orig)})
    return UpstreamStoreError("Store operation failed", details={"error": str(exc)})


@contextmanager
def atomic(*, commit: bool = True):
    """
    Run a workflow as one database transaction.

    Every statement issued inside the block (stock deltas, counter
    increments, inserts, deletes) commits together or not at all. On any
    exception the session is rolled back and store errors are re-raised as
    ConflictError / UpstreamStoreError. No retry is attempted; the caller owns
    retry policy.

    commit=False leaves the transaction open so the block can join a larger
    unit of work; the caller must commit or roll back.
    """
    try:
        yield db.session
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise translate_store_error(exc) from exc
    except Exception:
        db.session.rollback()
        raise
