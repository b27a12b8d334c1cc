from datetime import datetime

from pydantic import BaseModel

from ..models.points import TransactionType
from .common import ORMModel


class LedgerEntryOut(ORMModel):
    id: str
    child_id: str
    change_amount: int
    type: TransactionType
    related_assignment_id: str | None = None
    related_claim_id: str | None = None
    created_by_user_id: str | None = None
    notes: str | None = None
    created_at: datetime


class BalanceOut(BaseModel):
    child_id: str
    balance: int
