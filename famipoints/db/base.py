# Import every model so Base.metadata knows all tables before create_all
from ..models.user import User
from ..models.relationship import UserRelationship
from ..models.task import Task, TaskAssignment
from ..models.reward import Reward, RewardClaim
from ..models.points import PointTransaction
from ..models.invite import InvitationCode
from .base_class import Base
