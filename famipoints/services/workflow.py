"""Shared unit-of-work plumbing for every workflow operation.

Each operation opens a unit of work, takes row locks on what it is about to
mutate, validates, writes, and either commits everything or rolls everything
back. State changes go through ``compare_and_set`` so that a lost race shows
up as zero affected rows instead of a silent overwrite.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import InternalFailure, InvalidDecision, InvalidState, WorkflowError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


@contextmanager
def unit_of_work(db: Session, operation: str) -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except WorkflowError as e:
        db.rollback()
        logger.warning(f"{operation} rolled back: {type(e).__name__}: {e}")
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{operation} rolled back after storage error", exc_info=True)
        raise InternalFailure(f"{operation} could not be completed") from e
    except Exception:
        db.rollback()
        raise


def lock_row(db: Session, model: type[ModelT], row_id: str) -> ModelT | None:
    """SELECT ... FOR UPDATE on one row by primary key, bypassing stale identity-map state."""
    stmt = (
        select(model)
        .where(model.id == row_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return db.execute(stmt).scalar_one_or_none()


def compare_and_set(db: Session, model: type, row_id: str, expected_status, **values) -> bool:
    """UPDATE model SET values WHERE id = row_id AND status = expected_status.

    Returns True only when exactly one row changed. On success the session's
    copy of the row, if any, is expired so the next read sees the new values.
    """
    stmt = (
        update(model)
        .where(model.id == row_id, model.status == expected_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount != 1:
        return False
    loaded = db.identity_map.get(db.identity_key(model, row_id))
    if loaded is not None:
        db.expire(loaded)
    return True


def check_transition(current, target, *, entity: str) -> None:
    if not current.can_become(target):
        raise InvalidState(f"Cannot move {entity} from {current} to {target}")


def parse_decision(status_cls, value, allowed):
    """Coerce a reviewer's decision into one of the allowed terminal statuses."""
    try:
        decision = status_cls(value)
    except ValueError:
        decision = None
    if decision not in allowed:
        raise InvalidDecision(f"Invalid decision: {value!r}")
    return decision
