from types import SimpleNamespace

import pytest

from famipoints.core.config import Settings
from famipoints.db.base import Base
from famipoints.db.session import make_engine, make_session_factory
from famipoints.models.points import TransactionType
from famipoints.models.relationship import UserRelationship
from famipoints.models.reward import Reward
from famipoints.models.task import Task
from famipoints.models.user import User, UserRole
from famipoints.services.ledger_service import append_entry
from famipoints.workflows import PointsWorkflows


@pytest.fixture
def cfg(tmp_path):
    # file-backed so that separate sessions really are separate connections
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'famipoints-test.db'}",
        SECRET_KEY="test-secret",
        ACCESS_TOKEN_MIN=15,
    )


@pytest.fixture
def engine(cfg):
    eng = make_engine(cfg)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def workflows(session_factory, cfg):
    return PointsWorkflows(session_factory, cfg)


@pytest.fixture
def family(db):
    """parent and co_parent share child; outsider and newcomer are unlinked parents."""
    users = {
        "parent": User(username="mom", full_name="Maria", role=UserRole.PARENT),
        "co_parent": User(username="dad", full_name="Dan", role=UserRole.PARENT),
        "outsider": User(username="neighbour", role=UserRole.PARENT),
        "newcomer": User(username="grandma", role=UserRole.PARENT),
        "child": User(username="kiddo", role=UserRole.CHILD),
        "other_child": User(username="other-kid", role=UserRole.CHILD),
        "admin": User(username="root", role=UserRole.ADMIN),
    }
    db.add_all(users.values())
    db.flush()
    db.add_all([
        UserRelationship(parent_id=users["parent"].id, child_id=users["child"].id),
        UserRelationship(parent_id=users["co_parent"].id, child_id=users["child"].id),
        UserRelationship(parent_id=users["outsider"].id, child_id=users["other_child"].id),
    ])
    db.commit()
    return SimpleNamespace(**{name: user.id for name, user in users.items()})


@pytest.fixture
def credit(db):
    def _credit(child_id: str, amount: int, by: str | None = None):
        append_entry(
            db,
            child_id=child_id,
            change_amount=amount,
            entry_type=TransactionType.MANUAL_ADJUSTMENT,
            created_by_user_id=by,
            notes="test seed",
        )
        db.commit()

    return _credit


@pytest.fixture
def make_task(db):
    def _make(owner_id: str, points: int = 50, title: str = "Tidy room") -> str:
        t = Task(title=title, points_value=points, created_by_user_id=owner_id)
        db.add(t)
        db.commit()
        return t.id

    return _make


@pytest.fixture
def make_reward(db):
    def _make(owner_id: str, cost: int = 50, title: str = "Movie night") -> str:
        r = Reward(title=title, cost_points=cost, created_by_user_id=owner_id)
        db.add(r)
        db.commit()
        return r.id

    return _make
