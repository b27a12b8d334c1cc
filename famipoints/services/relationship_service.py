import logging

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from ..errors import DuplicateRelationship, ReferentialError
from ..models.relationship import UserRelationship
from ..models.user import User

logger = logging.getLogger(__name__)


def is_parent_of(db: Session, *, parent_id: str, child_id: str) -> bool:
    stmt = select(
        exists().where(UserRelationship.parent_id == parent_id, UserRelationship.child_id == child_id)
    )
    return bool(db.execute(stmt).scalar())


def get_parent_ids_of_child(db: Session, *, child_id: str) -> list[str]:
    stmt = (
        select(UserRelationship.parent_id)
        .where(UserRelationship.child_id == child_id)
        .order_by(UserRelationship.created_at, UserRelationship.parent_id)
    )
    return list(db.execute(stmt).scalars())


def get_child_ids_of_parent(db: Session, *, parent_id: str) -> list[str]:
    stmt = (
        select(UserRelationship.child_id)
        .where(UserRelationship.parent_id == parent_id)
        .order_by(UserRelationship.created_at, UserRelationship.child_id)
    )
    return list(db.execute(stmt).scalars())


def has_shared_child(db: Session, *, parent_a_id: str, parent_b_id: str) -> bool:
    a = aliased(UserRelationship)
    b = aliased(UserRelationship)
    stmt = select(
        exists()
        .where(a.child_id == b.child_id)
        .where(a.parent_id == parent_a_id, b.parent_id == parent_b_id)
    )
    return bool(db.execute(stmt).scalar())


def add_relationship(db: Session, *, parent_id: str, child_id: str) -> UserRelationship:
    """Link a parent to a child inside the caller's unit of work.

    Flushes but never commits, so it composes with other writes.
    """
    missing = [uid for uid in (parent_id, child_id) if db.get(User, uid) is None]
    if missing:
        raise ReferentialError(f"Unknown user id(s): {', '.join(missing)}")
    if is_parent_of(db, parent_id=parent_id, child_id=child_id):
        raise DuplicateRelationship(f"User {parent_id} is already linked to child {child_id}")

    link = UserRelationship(parent_id=parent_id, child_id=child_id)
    db.add(link)
    try:
        db.flush()
    except IntegrityError as e:
        # a concurrent transaction inserted the same pair after our pre-check
        logger.warning(f"Relationship insert collided: parent={parent_id} child={child_id}")
        raise DuplicateRelationship(f"User {parent_id} is already linked to child {child_id}") from e
    logger.info(f"Linked parent={parent_id} to child={child_id}")
    return link
