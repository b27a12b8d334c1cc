from datetime import datetime

from .common import ORMModel
from ..models.invite import InvitationStatus


class InvitationOut(ORMModel):
    code: str
    child_id: str
    created_by_parent_id: str
    status: InvitationStatus
    expires_at: datetime
