"""End-to-end runs through PointsWorkflows, one session per call."""
import pytest

from famipoints.errors import InvalidInvitationCode, StatusConflict
from famipoints.models.points import TransactionType
from famipoints.models.reward import ClaimStatus
from famipoints.models.task import TaskAssignmentStatus
from famipoints.models.user import UserRole
from famipoints.schemas.reward import RewardCreate
from famipoints.schemas.task import TaskCreate
from famipoints.schemas.user import ChildCreate, UserCreate


def test_family_lifecycle(workflows):
    mom = workflows.create_user(UserCreate(username="mama", role=UserRole.PARENT))
    dad = workflows.create_user(UserCreate(username="papa", role=UserRole.PARENT))
    kid = workflows.create_child_account(mom.id, ChildCreate(username="junior", full_name="Junior"))
    assert kid.role == UserRole.CHILD

    code = workflows.generate_invitation_code(mom.id, kid.id)
    assert [i.code for i in workflows.list_active_invitations(kid.id)] == [code]
    workflows.accept_invitation(dad.id, code)
    assert workflows.is_parent_of(dad.id, kid.id)
    assert workflows.has_shared_child(mom.id, dad.id)
    assert set(workflows.get_parent_ids_of_child(kid.id)) == {mom.id, dad.id}
    assert workflows.list_active_invitations(kid.id) == []
    with pytest.raises(InvalidInvitationCode):
        workflows.accept_invitation(dad.id, code)

    task = workflows.create_task(mom.id, TaskCreate(title="Walk the dog", points_value=40))
    assignment_id = workflows.assign_task(dad.id, kid.id, task.id)
    workflows.submit_task(kid.id, assignment_id)
    workflows.verify_task(dad.id, assignment_id, TaskAssignmentStatus.APPROVED)
    with pytest.raises(StatusConflict):
        workflows.verify_task(mom.id, assignment_id, TaskAssignmentStatus.APPROVED)

    (done,) = workflows.list_child_assignments(kid.id, TaskAssignmentStatus.APPROVED)
    assert done.verified_by_user_id == dad.id
    assert workflows.get_balance(kid.id).balance == 40

    reward = workflows.create_reward(dad.id, RewardCreate(title="Ice cream", cost_points=30))
    claim_id = workflows.claim_reward(kid.id, reward.id)
    assert [c.id for c in workflows.list_pending_claims(mom.id)] == [claim_id]
    assert workflows.get_balance(kid.id).balance == 10

    workflows.review_claim(mom.id, claim_id, ClaimStatus.REJECTED)
    (claim,) = workflows.list_child_claims(kid.id)
    assert claim.status == ClaimStatus.REJECTED
    assert workflows.get_balance(kid.id).balance == 40

    workflows.adjust_points(mom.id, kid.id, -5, notes="broke a vase")
    ledger = workflows.list_ledger(kid.id)
    assert sorted(e.type for e in ledger) == sorted([
        TransactionType.TASK_COMPLETION,
        TransactionType.REDEMPTION,
        TransactionType.REFUND,
        TransactionType.MANUAL_ADJUSTMENT,
    ])
    assert sum(e.change_amount for e in ledger) == workflows.get_balance(kid.id).balance == 35
