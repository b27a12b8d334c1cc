from datetime import datetime, timezone


def utcnow():
    return datetime.now(timezone.utc)


from .user import User, UserRole
from .relationship import UserRelationship
from .task import Task, TaskAssignment, TaskAssignmentStatus
from .reward import Reward, RewardClaim, ClaimStatus
from .points import PointTransaction, TransactionType
from .invite import InvitationCode, InvitationStatus
