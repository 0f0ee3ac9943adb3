"""Application-level errors.

The scoring and scheduling functions never raise these; they come from the
storage and CLI layers when a caller asks for something that isn't there.
"""


class PlannerError(Exception):
    """Base exception for the study planner."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class NotFoundError(PlannerError):
    """A subject, topic or session id does not exist."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)


class MissingDataError(PlannerError):
    """
    Raised when an operation needs data the student hasn't entered yet.

    Examples:
    - Generating a schedule before setting an exam date
    - Generating a schedule with no open topics
    """

    def __init__(self, message: str = "Missing required data"):
        super().__init__(message)


class ImportFormatError(PlannerError):
    """An import file has an unsupported extension or unexpected layout."""

    def __init__(self, message: str = "Unsupported import file"):
        super().__init__(message)
