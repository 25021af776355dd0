from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from billify.core.errors import DataAccessFailure, InvoicingError

UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    return "UNIQUE" in str(orig).upper()


@contextmanager
def transaction(db: Session, conflict: type[InvoicingError] | None = None) -> Iterator[Session]:
    """
    Run the block as one atomic unit: commit on success, roll back on any failure.
    Store errors surface as DataAccessFailure, unique violations as ``conflict`` when given.
    """
    try:
        yield db
        db.commit()
    except InvoicingError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        if conflict is not None and is_unique_violation(e):
            raise conflict() from e
        raise DataAccessFailure(str(e.orig)) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise DataAccessFailure(str(e)) from e


@contextmanager
def reading(db: Session) -> Iterator[Session]:
    try:
        yield db
    except SQLAlchemyError as e:
        db.rollback()
        raise DataAccessFailure(str(e)) from e
