import logging
from datetime import timedelta
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings
from ..errors import (
    AlreadyParent,
    CannotAcceptOwnInvitation,
    CodeGenerationFailed,
    DuplicateRelationship,
    Forbidden,
    InternalFailure,
    InvalidInvitationCode,
    NotFound,
    UserNotParent,
)
from ..models import utcnow
from ..models.invite import InvitationCode, InvitationStatus
from ..models.user import User, UserRole
from ..utils.random import generate_code
from .relationship_service import add_relationship, is_parent_of
from .workflow import compare_and_set, lock_row, unit_of_work

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _is_code_collision(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    # sqlite: "UNIQUE constraint failed: invitationcode.code"
    # postgres: duplicate key value violates unique constraint "ix_invitationcode_code"
    return "invitationcode.code" in message or "ix_invitationcode_code" in message


def generate_invitation_code(
    db: Session,
    *,
    parent_id: str,
    child_id: str,
    cfg: Settings | None = None,
    code_factory: Callable[[], str] | None = None,
) -> InvitationCode:
    """Issue a single-use code that lets another parent link to ``child_id``.

    Retries on a code collision up to INVITATION_CODE_MAX_ATTEMPTS times; any
    other storage error aborts immediately.
    """
    cfg = cfg or settings
    make_code = code_factory or (lambda: generate_code(cfg.INVITATION_CODE_LENGTH))

    if not is_parent_of(db, parent_id=parent_id, child_id=child_id):
        logger.warning(f"Invitation code requested by non-parent: parent={parent_id} child={child_id}")
        raise Forbidden("You are not authorized to generate codes for this child")

    expires_at = utcnow() + timedelta(hours=cfg.INVITATION_CODE_VALIDITY_HOURS)
    for attempt in range(1, cfg.INVITATION_CODE_MAX_ATTEMPTS + 1):
        inv = InvitationCode(
            code=make_code(),
            child_id=child_id,
            created_by_parent_id=parent_id,
            status=InvitationStatus.ACTIVE,
            expires_at=expires_at,
        )
        db.add(inv)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if _is_code_collision(e):
                logger.warning(f"Invitation code collision, retrying (attempt {attempt})")
                continue
            logger.error("Failed to store invitation code", exc_info=True)
            raise InternalFailure("Could not store invitation code") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to store invitation code", exc_info=True)
            raise InternalFailure("Could not store invitation code") from e

        logger.info(f"Invitation code issued for child={child_id} by parent={parent_id}")
        return inv

    raise CodeGenerationFailed(
        f"Failed to generate a unique invitation code after {cfg.INVITATION_CODE_MAX_ATTEMPTS} attempts"
    )


def accept_invitation(db: Session, *, parent_id: str, code: str) -> str:
    """Link ``parent_id`` to the child behind ``code``. Returns the child id."""
    code = normalize_code(code)

    with unit_of_work(db, "accept_invitation"):
        inv = db.execute(
            select(InvitationCode)
            .where(
                InvitationCode.code == code,
                InvitationCode.status == InvitationStatus.ACTIVE,
                InvitationCode.expires_at > utcnow(),
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not inv:
            raise InvalidInvitationCode()

        joining = db.get(User, parent_id)
        if not joining:
            raise NotFound(f"User {parent_id} not found")
        if joining.role != UserRole.PARENT:
            raise UserNotParent("Only parents can accept invitation codes")
        if parent_id == inv.created_by_parent_id:
            raise CannotAcceptOwnInvitation("You cannot accept an invitation you generated")

        lock_row(db, User, inv.child_id)
        if is_parent_of(db, parent_id=parent_id, child_id=inv.child_id):
            raise AlreadyParent("You are already a parent of this child")

        # claim the code before linking; a racing acceptance sees zero rows here
        used = compare_and_set(
            db, InvitationCode, inv.id, InvitationStatus.ACTIVE,
            status=InvitationStatus.USED,
            used_by_parent_id=parent_id,
            used_at=utcnow(),
        )
        if not used:
            raise InvalidInvitationCode()

        try:
            add_relationship(db, parent_id=parent_id, child_id=inv.child_id)
        except DuplicateRelationship as e:
            raise AlreadyParent("You are already a parent of this child") from e
        child_id = inv.child_id

    logger.info(f"Parent {parent_id} joined child={child_id} via invitation")
    return child_id


def list_active_codes(db: Session, *, child_id: str) -> list[InvitationCode]:
    stmt = (
        select(InvitationCode)
        .where(
            InvitationCode.child_id == child_id,
            InvitationCode.status == InvitationStatus.ACTIVE,
            InvitationCode.expires_at > utcnow(),
        )
        .order_by(InvitationCode.created_at.desc())
    )
    return list(db.execute(stmt).scalars())
