"""Entry point for callers that have already authenticated the actor.

Each method opens its own session, runs one workflow operation and closes the
session. Failures surface as ``famipoints.errors`` exceptions with nothing
written.
"""
from sqlalchemy.orm import sessionmaker

from .core.config import Settings, settings
from .models.reward import ClaimStatus
from .models.task import TaskAssignmentStatus
from .schemas.invite import InvitationOut
from .schemas.points import BalanceOut, LedgerEntryOut
from .schemas.reward import ClaimOut, RewardCreate, RewardOut
from .schemas.task import AssignmentOut, TaskCreate, TaskOut
from .schemas.user import ChildCreate, UserCreate, UserOut
from .services import (
    invitation_service,
    ledger_service,
    relationship_service,
    reward_service,
    task_service,
    user_service,
)


class PointsWorkflows:
    def __init__(self, session_factory: sessionmaker, cfg: Settings | None = None):
        self._sessions = session_factory
        self._settings = cfg or settings

    # --- users and relationships ---
    def create_user(self, payload: UserCreate) -> UserOut:
        with self._sessions() as db:
            return UserOut.model_validate(user_service.create_user(db, payload=payload))

    def create_child_account(self, parent_id: str, payload: ChildCreate) -> UserOut:
        with self._sessions() as db:
            child = user_service.create_child_account(db, parent_id=parent_id, payload=payload)
            return UserOut.model_validate(child)

    def is_parent_of(self, parent_id: str, child_id: str) -> bool:
        with self._sessions() as db:
            return relationship_service.is_parent_of(db, parent_id=parent_id, child_id=child_id)

    def get_parent_ids_of_child(self, child_id: str) -> list[str]:
        with self._sessions() as db:
            return relationship_service.get_parent_ids_of_child(db, child_id=child_id)

    def has_shared_child(self, parent_a_id: str, parent_b_id: str) -> bool:
        with self._sessions() as db:
            return relationship_service.has_shared_child(db, parent_a_id=parent_a_id, parent_b_id=parent_b_id)

    # --- tasks ---
    def create_task(self, parent_id: str, payload: TaskCreate) -> TaskOut:
        with self._sessions() as db:
            return TaskOut.model_validate(task_service.create_task(db, parent_id=parent_id, payload=payload))

    def assign_task(self, parent_id: str, child_id: str, task_id: str) -> str:
        with self._sessions() as db:
            return task_service.assign_task(db, parent_id=parent_id, child_id=child_id, task_id=task_id).id

    def submit_task(self, child_id: str, assignment_id: str) -> None:
        with self._sessions() as db:
            task_service.submit_task(db, child_id=child_id, assignment_id=assignment_id)

    def verify_task(self, parent_id: str, assignment_id: str, decision: TaskAssignmentStatus) -> None:
        with self._sessions() as db:
            task_service.verify_task(db, parent_id=parent_id, assignment_id=assignment_id, decision=decision)

    def list_child_assignments(
        self, child_id: str, status: TaskAssignmentStatus | None = None
    ) -> list[AssignmentOut]:
        with self._sessions() as db:
            rows = task_service.list_child_assignments(db, child_id=child_id, status=status)
            return [AssignmentOut.model_validate(a) for a in rows]

    # --- rewards ---
    def create_reward(self, parent_id: str, payload: RewardCreate) -> RewardOut:
        with self._sessions() as db:
            return RewardOut.model_validate(reward_service.create_reward(db, parent_id=parent_id, payload=payload))

    def claim_reward(self, child_id: str, reward_id: str) -> str:
        with self._sessions() as db:
            return reward_service.claim_reward(db, child_id=child_id, reward_id=reward_id).id

    def review_claim(self, parent_id: str, claim_id: str, decision: ClaimStatus) -> None:
        with self._sessions() as db:
            reward_service.review_claim(db, parent_id=parent_id, claim_id=claim_id, decision=decision)

    def list_child_claims(self, child_id: str, status: ClaimStatus | None = None) -> list[ClaimOut]:
        with self._sessions() as db:
            return [ClaimOut.model_validate(c) for c in reward_service.list_child_claims(db, child_id=child_id, status=status)]

    def list_pending_claims(self, parent_id: str) -> list[ClaimOut]:
        with self._sessions() as db:
            claims = reward_service.list_pending_claims_for_parent(db, parent_id=parent_id)
            return [ClaimOut.model_validate(c) for c in claims]

    # --- points ---
    def get_balance(self, child_id: str) -> BalanceOut:
        with self._sessions() as db:
            return BalanceOut(child_id=child_id, balance=ledger_service.get_balance(db, child_id=child_id))

    def list_ledger(self, child_id: str, limit: int = 50, offset: int = 0) -> list[LedgerEntryOut]:
        with self._sessions() as db:
            entries = ledger_service.list_entries(db, child_id=child_id, limit=limit, offset=offset)
            return [LedgerEntryOut.model_validate(e) for e in entries]

    def adjust_points(self, parent_id: str, child_id: str, amount: int, notes: str | None = None) -> LedgerEntryOut:
        with self._sessions() as db:
            entry = ledger_service.adjust_points(db, parent_id=parent_id, child_id=child_id, amount=amount, notes=notes)
            return LedgerEntryOut.model_validate(entry)

    # --- invitations ---
    def generate_invitation_code(self, parent_id: str, child_id: str) -> str:
        with self._sessions() as db:
            inv = invitation_service.generate_invitation_code(
                db, parent_id=parent_id, child_id=child_id, cfg=self._settings
            )
            return inv.code

    def accept_invitation(self, parent_id: str, code: str) -> None:
        with self._sessions() as db:
            invitation_service.accept_invitation(db, parent_id=parent_id, code=code)

    def list_active_invitations(self, child_id: str) -> list[InvitationOut]:
        with self._sessions() as db:
            codes = invitation_service.list_active_codes(db, child_id=child_id)
            return [InvitationOut.model_validate(c) for c in codes]
