import logging

import pytest
from sqlalchemy import text

from famipoints.errors import InternalFailure, InvalidDecision, InvalidState, NotFound
from famipoints.models.invite import InvitationStatus
from famipoints.models.reward import ClaimStatus
from famipoints.models.task import TASK_DECISIONS, TaskAssignment, TaskAssignmentStatus
from famipoints.models.user import User
from famipoints.services.workflow import (
    check_transition,
    compare_and_set,
    lock_row,
    parse_decision,
    unit_of_work,
)


class TestStatusMachines:
    def test_task_transitions(self):
        S = TaskAssignmentStatus
        assert S.ASSIGNED.can_become(S.SUBMITTED)
        assert S.SUBMITTED.can_become(S.APPROVED)
        assert S.SUBMITTED.can_become(S.REJECTED)
        assert not S.ASSIGNED.can_become(S.APPROVED)
        assert not S.APPROVED.can_become(S.REJECTED)
        assert not S.REJECTED.can_become(S.SUBMITTED)
        assert S.APPROVED.is_terminal and S.REJECTED.is_terminal
        assert not S.ASSIGNED.is_terminal

    def test_claim_transitions(self):
        assert ClaimStatus.PENDING.can_become(ClaimStatus.APPROVED)
        assert ClaimStatus.PENDING.can_become(ClaimStatus.REJECTED)
        assert not ClaimStatus.APPROVED.can_become(ClaimStatus.REJECTED)
        assert not ClaimStatus.REJECTED.can_become(ClaimStatus.PENDING)

    def test_invitation_transitions(self):
        assert InvitationStatus.ACTIVE.can_become(InvitationStatus.USED)
        assert not InvitationStatus.USED.can_become(InvitationStatus.ACTIVE)
        assert not InvitationStatus.EXPIRED.can_become(InvitationStatus.USED)

    def test_check_transition_raises(self):
        check_transition(TaskAssignmentStatus.ASSIGNED, TaskAssignmentStatus.SUBMITTED, entity="task")
        with pytest.raises(InvalidState):
            check_transition(TaskAssignmentStatus.ASSIGNED, TaskAssignmentStatus.APPROVED, entity="task")


@pytest.mark.parametrize("value", ["APPROVED", TaskAssignmentStatus.REJECTED])
def test_parse_decision_accepts(value):
    assert parse_decision(TaskAssignmentStatus, value, TASK_DECISIONS) in TASK_DECISIONS


@pytest.mark.parametrize("value", ["SUBMITTED", TaskAssignmentStatus.ASSIGNED, "approve", None])
def test_parse_decision_rejects(value):
    with pytest.raises(InvalidDecision):
        parse_decision(TaskAssignmentStatus, value, TASK_DECISIONS)


def _assignment(db, family, make_task, status=TaskAssignmentStatus.SUBMITTED):
    a = TaskAssignment(
        child_id=family.child,
        task_id=make_task(family.parent),
        assigned_by_user_id=family.parent,
        status=status,
    )
    db.add(a)
    db.commit()
    return a.id


def test_compare_and_set_only_matches_expected_status(db, family, make_task):
    aid = _assignment(db, family, make_task)
    S = TaskAssignmentStatus

    assert compare_and_set(db, TaskAssignment, aid, S.SUBMITTED, status=S.APPROVED)
    assert not compare_and_set(db, TaskAssignment, aid, S.SUBMITTED, status=S.REJECTED)
    db.commit()

    assert lock_row(db, TaskAssignment, aid).status == S.APPROVED


def test_lock_row_refreshes_stale_identity(db, session_factory, family, make_task):
    aid = _assignment(db, family, make_task)
    stale = db.get(TaskAssignment, aid)
    assert stale.status == TaskAssignmentStatus.SUBMITTED

    with session_factory() as other:
        other.get(TaskAssignment, aid).status = TaskAssignmentStatus.REJECTED
        other.commit()

    fresh = lock_row(db, TaskAssignment, aid)
    assert fresh is stale
    assert fresh.status == TaskAssignmentStatus.REJECTED
    assert lock_row(db, TaskAssignment, "missing") is None


def test_unit_of_work_rolls_back_typed_errors(db, session_factory, family):
    with pytest.raises(NotFound):
        with unit_of_work(db, "rename"):
            db.get(User, family.child).full_name = "Renamed"
            db.flush()
            raise NotFound("nope")

    with session_factory() as other:
        assert other.get(User, family.child).full_name is None


def test_unit_of_work_maps_storage_errors(db, caplog):
    with caplog.at_level(logging.ERROR, logger="famipoints.services.workflow"):
        with pytest.raises(InternalFailure) as exc_info:
            with unit_of_work(db, "broken"):
                db.execute(text("SELECT * FROM no_such_table"))

    assert "broken" in str(exc_info.value)
    assert exc_info.value.__cause__ is not None
    assert any("storage error" in r.message for r in caplog.records)
