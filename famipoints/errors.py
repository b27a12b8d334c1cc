"""Typed failures raised by the workflow operations.

Every operation rolls back its unit-of-work before one of these reaches the
caller, so a raised error always means "nothing was written".
"""


class WorkflowError(Exception):
    pass


class NotFound(WorkflowError):
    pass


class NotOwner(NotFound):
    """The entity exists but does not belong to the acting user."""


class Forbidden(WorkflowError):
    pass


class InvalidState(WorkflowError):
    pass


class InvalidDecision(InvalidState):
    pass


class StatusConflict(WorkflowError):
    """A concurrent operation changed the row first."""


class InsufficientPoints(WorkflowError):
    def __init__(self, balance: int, required: int):
        super().__init__(f"Balance {balance} is below the required {required} points")
        self.balance = balance
        self.required = required


class DuplicateRelationship(WorkflowError):
    pass


class AlreadyParent(DuplicateRelationship):
    pass


class ReferentialError(WorkflowError):
    pass


class UsernameTaken(WorkflowError):
    pass


class InvalidInvitationCode(WorkflowError):
    # Deliberately one message for unknown, expired and used codes
    def __init__(self, message: str = "Invalid, expired, or already used invitation code"):
        super().__init__(message)


class UserNotParent(WorkflowError):
    pass


class CannotAcceptOwnInvitation(WorkflowError):
    pass


class CodeGenerationFailed(WorkflowError):
    pass


class InternalFailure(WorkflowError):
    pass


class AuthenticationError(WorkflowError):
    pass
