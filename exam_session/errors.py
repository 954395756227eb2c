"""Exceptions raised by the exam session engine."""


class ExamSessionError(Exception):
    """Base class for every error raised by the engine."""


class SessionNotFoundError(ExamSessionError):
    """The session row is missing or could not be read. Fatal to the attempt."""

    def __init__(self, exam_id: str, reason: str = "not found"):
        super().__init__(f"Exam session {exam_id}: {reason}")
        self.exam_id = exam_id


class InvalidSessionError(ExamSessionError):
    """A session record violates the data-model invariants."""


class InvalidAnswerError(ExamSessionError, ValueError):
    """Answer index or option label out of range."""


class InvalidOperationError(ExamSessionError):
    """The action is not allowed in the current mode or phase."""


class SubmissionError(ExamSessionError):
    """The terminal write did not take effect; the session is still in progress."""


class InsufficientQuestionsError(ExamSessionError):
    """The approved pool holds fewer questions than requested."""

    def __init__(self, module: str, requested: int, available: int):
        super().__init__(
            f"Not enough approved questions for '{module}'. "
            f"Required={requested}, Available={available}"
        )
        self.module = module
        self.requested = requested
        self.available = available
