import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..errors import Forbidden, InsufficientPoints, InvalidState, NotFound
from ..models import utcnow
from ..models.points import PointTransaction, TransactionType
from ..models.user import User, UserRole
from .relationship_service import is_parent_of
from .workflow import unit_of_work

logger = logging.getLogger(__name__)


def get_balance(db: Session, *, child_id: str) -> int:
    stmt = select(func.coalesce(func.sum(PointTransaction.change_amount), 0)).where(
        PointTransaction.child_id == child_id
    )
    return int(db.execute(stmt).scalar_one())


def lock_child_balance(db: Session, *, child_id: str) -> int:
    """Serialize balance consumers for one child, then read the balance.

    Every spend first writes to the child's user row, which takes the row lock
    on server databases and the write lock on SQLite. A second spend for the
    same child waits here until the first one commits, so both can never read
    the same pre-spend balance.
    """
    touched = db.execute(
        update(User)
        .where(User.id == child_id)
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if touched.rowcount != 1:
        raise NotFound(f"Child {child_id} not found")
    return get_balance(db, child_id=child_id)


def append_entry(
    db: Session,
    *,
    child_id: str,
    change_amount: int,
    entry_type: TransactionType,
    created_by_user_id: str | None,
    related_assignment_id: str | None = None,
    related_claim_id: str | None = None,
    notes: str | None = None,
) -> PointTransaction:
    entry = PointTransaction(
        child_id=child_id,
        change_amount=change_amount,
        type=entry_type,
        related_assignment_id=related_assignment_id,
        related_claim_id=related_claim_id,
        created_by_user_id=created_by_user_id,
        notes=notes,
    )
    db.add(entry)
    db.flush()
    return entry


def list_entries(db: Session, *, child_id: str, limit: int = 50, offset: int = 0) -> list[PointTransaction]:
    stmt = (
        select(PointTransaction)
        .where(PointTransaction.child_id == child_id)
        .order_by(PointTransaction.created_at.desc(), PointTransaction.id)
        .limit(limit)
        .offset(offset)
    )
    return list(db.execute(stmt).scalars())


# --- manual adjustments by a linked parent ---
def adjust_points(db: Session, *, parent_id: str, child_id: str, amount: int, notes: str | None = None) -> PointTransaction:
    if amount == 0:
        raise InvalidState("Adjustment amount must be non-zero")

    with unit_of_work(db, "adjust_points"):
        child = db.get(User, child_id)
        if not child or child.role != UserRole.CHILD:
            raise NotFound(f"Child {child_id} not found")
        if not is_parent_of(db, parent_id=parent_id, child_id=child_id):
            raise Forbidden("Only a linked parent can adjust this child's points")

        balance = lock_child_balance(db, child_id=child_id)
        if amount < 0 and balance + amount < 0:
            raise InsufficientPoints(balance, -amount)

        entry = append_entry(
            db,
            child_id=child_id,
            change_amount=amount,
            entry_type=TransactionType.MANUAL_ADJUSTMENT,
            created_by_user_id=parent_id,
            notes=notes,
        )
    logger.info(f"Manual adjustment of {amount} points for child={child_id} by parent={parent_id}")
    return entry
