from __future__ import annotations


class MissionWorkflowError(RuntimeError):
    """Expected, caller-facing failure of a workflow operation."""

    kind = "Error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(MissionWorkflowError):
    kind = "NotFound"
    status_code = 404


class UnauthorizedError(MissionWorkflowError):
    kind = "Unauthorized"
    status_code = 403


class InvalidTransitionError(MissionWorkflowError):
    kind = "InvalidTransition"
    status_code = 409


class OutOfOrderError(InvalidTransitionError):
    kind = "OutOfOrder"


class NotEligibleError(InvalidTransitionError):
    kind = "NotEligible"


class InvalidInputError(MissionWorkflowError):
    kind = "InvalidInput"
    status_code = 422


class RevisionCapExceededError(MissionWorkflowError):
    kind = "RevisionCapExceeded"
    status_code = 409
