import pytest

from famipoints.errors import Forbidden, InsufficientPoints, InvalidState, NotFound
from famipoints.models.points import PointTransaction, TransactionType
from famipoints.services import ledger_service


def test_balance_starts_at_zero(db, family):
    assert ledger_service.get_balance(db, child_id=family.child) == 0


def test_balance_is_sum_of_entries(db, family, credit):
    credit(family.child, 30)
    credit(family.child, 25)
    credit(family.child, -10)
    credit(family.other_child, 99)

    assert ledger_service.get_balance(db, child_id=family.child) == 45
    assert ledger_service.get_balance(db, child_id=family.other_child) == 99


def test_lock_child_balance_unknown_child(db):
    with pytest.raises(NotFound):
        ledger_service.lock_child_balance(db, child_id="ghost")


def test_list_entries_paging(db, family, credit):
    for amount in (5, 10, 15):
        credit(family.child, amount)

    entries = ledger_service.list_entries(db, child_id=family.child)
    assert sorted(e.change_amount for e in entries) == [5, 10, 15]
    assert [e.created_at for e in entries] == sorted((e.created_at for e in entries), reverse=True)

    assert len(ledger_service.list_entries(db, child_id=family.child, limit=2)) == 2
    assert len(ledger_service.list_entries(db, child_id=family.child, limit=2, offset=2)) == 1


class TestAdjustPoints:
    def test_positive_adjustment(self, db, family):
        entry = ledger_service.adjust_points(
            db, parent_id=family.parent, child_id=family.child, amount=20, notes="birthday"
        )
        assert entry.type == TransactionType.MANUAL_ADJUSTMENT
        assert entry.created_by_user_id == family.parent
        assert ledger_service.get_balance(db, child_id=family.child) == 20

    def test_negative_adjustment_within_balance(self, db, family, credit):
        credit(family.child, 20)
        ledger_service.adjust_points(db, parent_id=family.co_parent, child_id=family.child, amount=-20)
        assert ledger_service.get_balance(db, child_id=family.child) == 0

    def test_negative_adjustment_cannot_overdraw(self, db, family, credit):
        credit(family.child, 10)
        with pytest.raises(InsufficientPoints) as exc_info:
            ledger_service.adjust_points(db, parent_id=family.parent, child_id=family.child, amount=-11)

        assert exc_info.value.balance == 10
        assert exc_info.value.required == 11
        assert db.query(PointTransaction).filter_by(child_id=family.child).count() == 1

    def test_zero_rejected(self, db, family):
        with pytest.raises(InvalidState):
            ledger_service.adjust_points(db, parent_id=family.parent, child_id=family.child, amount=0)

    def test_unlinked_parent_forbidden(self, db, family):
        with pytest.raises(Forbidden):
            ledger_service.adjust_points(db, parent_id=family.outsider, child_id=family.child, amount=5)
        assert ledger_service.get_balance(db, child_id=family.child) == 0

    def test_target_must_be_child(self, db, family):
        with pytest.raises(NotFound):
            ledger_service.adjust_points(db, parent_id=family.parent, child_id=family.co_parent, amount=5)
