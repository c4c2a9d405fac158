# errors.py - Failure kinds raised by the task board core
#
# Services raise these; main.py maps them onto HTTP responses.


class TaskBoardError(Exception):
    """Base class for every semantic failure of a core operation"""

    status_code = 400
    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AccessDenied(TaskBoardError):
    """Actor has no membership on the organization owning the resource"""
    status_code = 403
    code = "access_denied"
    default_message = "Access denied"


class InsufficientRole(TaskBoardError):
    """Actor is a member but ranks below the role the operation requires"""
    status_code = 403
    code = "insufficient_role"
    default_message = "Insufficient role"


class NotAuthor(TaskBoardError):
    status_code = 403
    code = "not_author"
    default_message = "Only the author can modify this comment"


class NotFound(TaskBoardError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ValidationFailed(TaskBoardError):
    status_code = 422
    code = "validation_failed"
    default_message = "Invalid input"


class Conflict(TaskBoardError):
    status_code = 409
    code = "conflict"
    default_message = "Already exists"
