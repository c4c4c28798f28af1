# discharge_tracker/core/exceptions.py
"""
Domain errors raised by the services layer.

Each error carries the HTTP status and a stable machine-readable `code`;
main.py renders them as {"detail": ..., "code": ...}.
"""


class TrackerError(Exception):
    status_code: int = 400
    code: str = "tracker_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return "Request could not be processed."

    @property
    def message(self) -> str:
        return str(self)


class TicketNotFoundError(TrackerError):
    status_code = 404
    code = "ticket_not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Ticket not found."


class TicketClosedError(TrackerError):
    status_code = 409
    code = "ticket_closed"

    @classmethod
    def default_message(cls) -> str:
        return "Ticket is already closed."


class TicketNotAssignedError(TrackerError):
    status_code = 400
    code = "ticket_not_assigned"

    @classmethod
    def default_message(cls) -> str:
        return "Ticket has not been assigned."


class UnknownDepartmentError(TrackerError):
    status_code = 400
    code = "unknown_department"


class UnknownStepError(TrackerError):
    status_code = 400
    code = "unknown_step"


class StepOutOfOrderError(TrackerError):
    status_code = 409
    code = "step_out_of_order"


class WorkflowCloseError(TrackerError):
    """Departments with a step workflow close through their terminal step."""

    status_code = 409
    code = "use_workflow"


class EpisodeMismatchError(TrackerError):
    status_code = 400
    code = "mrno_mismatch"


class RegistryError(Exception):
    """Raised at startup when the workflow registry is inconsistent."""


class AuthenticationError(Exception):
    pass
