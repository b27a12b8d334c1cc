import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import Forbidden, NotFound, NotOwner, StatusConflict
from ..models import utcnow
from ..models.points import TransactionType
from ..models.task import TASK_DECISIONS, Task, TaskAssignment, TaskAssignmentStatus
from ..models.user import User, UserRole
from ..schemas.task import TaskCreate
from .ledger_service import append_entry
from .relationship_service import get_parent_ids_of_child, is_parent_of
from .workflow import check_transition, compare_and_set, lock_row, parse_decision, unit_of_work

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (TaskAssignmentStatus.ASSIGNED, TaskAssignmentStatus.SUBMITTED)


def _get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)


def create_task(db: Session, *, parent_id: str, payload: TaskCreate) -> Task:
    with unit_of_work(db, "create_task"):
        parent = _get_user(db, parent_id)
        if not parent or parent.role != UserRole.PARENT:
            raise Forbidden("Only parents can create tasks")
        t = Task(
            title=payload.title,
            description=payload.description,
            points_value=payload.points_value,
            created_by_user_id=parent_id,
        )
        db.add(t)
        db.flush()
    logger.info(f"Task created: id={t.id} points={t.points_value} by parent={parent_id}")
    return t


def has_active_assignment(db: Session, *, child_id: str, task_id: str) -> bool:
    """Advisory duplicate check. Nothing in the schema stops a racing second assignment."""
    stmt = select(TaskAssignment.id).where(
        TaskAssignment.child_id == child_id,
        TaskAssignment.task_id == task_id,
        TaskAssignment.status.in_(ACTIVE_STATUSES),
    )
    return db.execute(stmt.limit(1)).first() is not None


def assign_task(db: Session, *, parent_id: str, child_id: str, task_id: str) -> TaskAssignment:
    with unit_of_work(db, "assign_task"):
        child = _get_user(db, child_id)
        if not child or child.role != UserRole.CHILD:
            raise NotFound(f"Child {child_id} not found")
        task = db.get(Task, task_id)
        if not task:
            raise NotFound(f"Task {task_id} not found")
        if not is_parent_of(db, parent_id=parent_id, child_id=child_id):
            raise Forbidden("You can only assign tasks to your own children")
        # the task must come from one of this child's parents
        if task.created_by_user_id not in get_parent_ids_of_child(db, child_id=child_id):
            raise Forbidden("Task was not created by a parent of this child")

        a = TaskAssignment(
            child_id=child_id,
            task_id=task_id,
            assigned_by_user_id=parent_id,
            status=TaskAssignmentStatus.ASSIGNED,
        )
        db.add(a)
        db.flush()
    logger.info(f"Task {task_id} assigned to child={child_id} by parent={parent_id}: assignment={a.id}")
    return a


def submit_task(db: Session, *, child_id: str, assignment_id: str) -> None:
    with unit_of_work(db, "submit_task"):
        a = lock_row(db, TaskAssignment, assignment_id)
        if not a:
            raise NotFound(f"Assignment {assignment_id} not found")
        if a.child_id != child_id:
            raise NotOwner("Task not found or not assigned to you")
        check_transition(a.status, TaskAssignmentStatus.SUBMITTED, entity="task assignment")

        updated = compare_and_set(
            db, TaskAssignment, assignment_id, TaskAssignmentStatus.ASSIGNED,
            status=TaskAssignmentStatus.SUBMITTED,
            submitted_at=utcnow(),
            updated_at=utcnow(),
        )
        if not updated:
            raise StatusConflict("Task was changed by another request, please retry")
    logger.info(f"Assignment {assignment_id} submitted by child={child_id}")


def verify_task(db: Session, *, parent_id: str, assignment_id: str, decision: TaskAssignmentStatus) -> None:
    """Approve or reject a submitted assignment.

    Status change and point credit happen in the same transaction: either both
    land or neither does.
    """
    decision = parse_decision(TaskAssignmentStatus, decision, TASK_DECISIONS)

    with unit_of_work(db, "verify_task"):
        row = db.execute(
            select(TaskAssignment, Task.points_value)
            .join(Task, Task.id == TaskAssignment.task_id)
            .where(TaskAssignment.id == assignment_id)
            .with_for_update(of=TaskAssignment)
            .execution_options(populate_existing=True)
        ).first()
        if not row:
            raise NotFound(f"Assignment {assignment_id} not found")
        a, points = row

        if a.status.is_terminal:
            # someone else verified it between submission and now
            raise StatusConflict(f"Task was already verified ({a.status})")
        check_transition(a.status, decision, entity="task assignment")

        if not is_parent_of(db, parent_id=parent_id, child_id=a.child_id):
            raise Forbidden("You are not authorized to verify tasks for this child")

        now = utcnow()
        updated = compare_and_set(
            db, TaskAssignment, assignment_id, TaskAssignmentStatus.SUBMITTED,
            status=decision,
            verified_by_user_id=parent_id,
            verified_at=now,
            completed_at=now if decision == TaskAssignmentStatus.APPROVED else None,
            updated_at=now,
        )
        if not updated:
            raise StatusConflict("Task was verified by another request")

        if decision == TaskAssignmentStatus.APPROVED and points > 0:
            append_entry(
                db,
                child_id=a.child_id,
                change_amount=points,
                entry_type=TransactionType.TASK_COMPLETION,
                created_by_user_id=parent_id,
                related_assignment_id=assignment_id,
                notes=f"Task {a.task_id} approved",
            )
    logger.info(f"Assignment {assignment_id} verified as {decision} by parent={parent_id}")


def get_assignment(db: Session, *, assignment_id: str) -> TaskAssignment:
    a = db.get(TaskAssignment, assignment_id)
    if not a:
        raise NotFound(f"Assignment {assignment_id} not found")
    return a


def list_child_assignments(
    db: Session, *, child_id: str, status: TaskAssignmentStatus | None = None
) -> list[TaskAssignment]:
    stmt = select(TaskAssignment).where(TaskAssignment.child_id == child_id)
    if status is not None:
        stmt = stmt.where(TaskAssignment.status == status)
    stmt = stmt.order_by(TaskAssignment.assigned_at.desc(), TaskAssignment.id)
    return list(db.execute(stmt).scalars())
