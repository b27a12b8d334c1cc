import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import Forbidden, InsufficientPoints, NotFound, StatusConflict
from ..models import utcnow
from ..models.points import TransactionType
from ..models.relationship import UserRelationship
from ..models.reward import CLAIM_DECISIONS, ClaimStatus, Reward, RewardClaim
from ..models.user import User, UserRole
from ..schemas.reward import RewardCreate
from .ledger_service import append_entry, lock_child_balance
from .relationship_service import get_parent_ids_of_child, has_shared_child
from .workflow import check_transition, compare_and_set, lock_row, parse_decision, unit_of_work

logger = logging.getLogger(__name__)


def create_reward(db: Session, *, parent_id: str, payload: RewardCreate) -> Reward:
    with unit_of_work(db, "create_reward"):
        parent = db.get(User, parent_id)
        if not parent or parent.role != UserRole.PARENT:
            raise Forbidden("Only parents can create rewards")
        r = Reward(
            title=payload.title,
            description=payload.description,
            cost_points=payload.cost_points,
            created_by_user_id=parent_id,
        )
        db.add(r)
        db.flush()
    logger.info(f"Reward created: id={r.id} cost={r.cost_points} by parent={parent_id}")
    return r


def claim_reward(db: Session, *, child_id: str, reward_id: str) -> RewardClaim:
    """Claim a reward and reserve its points immediately.

    The deduction is written at claim time, not at approval, so pending claims
    can never spend the same balance twice. A rejected claim is refunded.
    """
    with unit_of_work(db, "claim_reward"):
        reward = lock_row(db, Reward, reward_id)
        if not reward:
            raise NotFound(f"Reward {reward_id} not found")
        child = db.get(User, child_id)
        if not child or child.role != UserRole.CHILD:
            raise NotFound(f"Child {child_id} not found")

        if reward.created_by_user_id not in get_parent_ids_of_child(db, child_id=child_id):
            raise Forbidden("You can only claim rewards created by your parents")

        required = reward.cost_points
        balance = lock_child_balance(db, child_id=child_id)
        if balance < required:
            raise InsufficientPoints(balance, required)

        claim = RewardClaim(
            child_id=child_id,
            reward_id=reward_id,
            points_deducted=required,
            status=ClaimStatus.PENDING,
        )
        db.add(claim)
        db.flush()

        if required > 0:
            append_entry(
                db,
                child_id=child_id,
                change_amount=-required,
                entry_type=TransactionType.REDEMPTION,
                created_by_user_id=child_id,
                related_claim_id=claim.id,
                notes=f"Redeem '{reward.title}'",
            )
    logger.info(f"Reward {reward_id} claimed by child={child_id}: claim={claim.id} points={required}")
    return claim


def review_claim(db: Session, *, parent_id: str, claim_id: str, decision: ClaimStatus) -> None:
    decision = parse_decision(ClaimStatus, decision, CLAIM_DECISIONS)

    with unit_of_work(db, "review_claim"):
        row = db.execute(
            select(RewardClaim, Reward.created_by_user_id)
            .join(Reward, Reward.id == RewardClaim.reward_id)
            .where(RewardClaim.id == claim_id)
            .with_for_update(of=RewardClaim)
            .execution_options(populate_existing=True)
        ).first()
        if not row:
            raise NotFound(f"Reward claim {claim_id} not found")
        claim, owner_id = row

        check_transition(claim.status, decision, entity="reward claim")

        # the reward's owner, or a co-parent who shares a child with the owner
        if parent_id != owner_id and not has_shared_child(db, parent_a_id=parent_id, parent_b_id=owner_id):
            raise Forbidden("You are not authorized to review this claim")

        now = utcnow()
        updated = compare_and_set(
            db, RewardClaim, claim_id, ClaimStatus.PENDING,
            status=decision,
            reviewed_by_user_id=parent_id,
            reviewed_at=now,
            updated_at=now,
        )
        if not updated:
            raise StatusConflict("Claim was reviewed by another request")

        if decision == ClaimStatus.REJECTED and claim.points_deducted > 0:
            append_entry(
                db,
                child_id=claim.child_id,
                change_amount=claim.points_deducted,
                entry_type=TransactionType.REFUND,
                created_by_user_id=parent_id,
                related_claim_id=claim_id,
                notes="Refund for rejected claim",
            )
    logger.info(f"Claim {claim_id} reviewed as {decision} by parent={parent_id}")


def get_claim(db: Session, *, claim_id: str) -> RewardClaim:
    claim = db.get(RewardClaim, claim_id)
    if not claim:
        raise NotFound(f"Reward claim {claim_id} not found")
    return claim


def list_child_claims(db: Session, *, child_id: str, status: ClaimStatus | None = None) -> list[RewardClaim]:
    stmt = select(RewardClaim).where(RewardClaim.child_id == child_id)
    if status is not None:
        stmt = stmt.where(RewardClaim.status == status)
    stmt = stmt.order_by(RewardClaim.claimed_at.desc(), RewardClaim.id)
    return list(db.execute(stmt).scalars())


def list_pending_claims_for_parent(db: Session, *, parent_id: str) -> list[RewardClaim]:
    stmt = (
        select(RewardClaim)
        .join(UserRelationship, UserRelationship.child_id == RewardClaim.child_id)
        .where(UserRelationship.parent_id == parent_id, RewardClaim.status == ClaimStatus.PENDING)
        .order_by(RewardClaim.claimed_at, RewardClaim.id)
    )
    return list(db.execute(stmt).scalars())
