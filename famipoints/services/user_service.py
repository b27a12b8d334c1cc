import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import Forbidden, NotFound, UsernameTaken
from ..models.user import User, UserRole
from ..schemas.user import ChildCreate, UserCreate
from .relationship_service import add_relationship
from .workflow import unit_of_work

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user


def get_by_username(db: Session, username: str) -> User | None:
    return db.execute(select(User).where(User.username == username)).scalar_one_or_none()


def _insert_user(db: Session, *, username: str, role: UserRole, full_name: str | None, email: str | None) -> User:
    if get_by_username(db, username):
        raise UsernameTaken(f"Username '{username}' is already taken")
    user = User(username=username, role=role, full_name=full_name, email=email)
    db.add(user)
    try:
        db.flush()
    except IntegrityError as e:
        raise UsernameTaken(f"Username or email already taken: {username}") from e
    return user


def create_user(db: Session, *, payload: UserCreate) -> User:
    with unit_of_work(db, "create_user"):
        user = _insert_user(
            db, username=payload.username, role=payload.role, full_name=payload.full_name, email=payload.email
        )
    logger.info(f"User created: id={user.id} role={user.role}")
    return user


def create_child_account(db: Session, *, parent_id: str, payload: ChildCreate) -> User:
    """Create a child user and link it to the creating parent in one transaction."""
    with unit_of_work(db, "create_child_account"):
        parent = db.get(User, parent_id)
        if not parent or parent.role != UserRole.PARENT:
            raise Forbidden("Only parents can create child accounts")
        child = _insert_user(
            db, username=payload.username, role=UserRole.CHILD, full_name=payload.full_name, email=payload.email
        )
        add_relationship(db, parent_id=parent_id, child_id=child.id)
    logger.info(f"Child account {child.id} created and linked to parent={parent_id}")
    return child
