"""
Domain errors raised by the quiz engine and its collaborators.
"""

from typing import Optional


class QuizError(Exception):
    """Base class for quiz errors."""


class InvalidAnswerError(QuizError, ValueError):
    """An answer does not fit its question (e.g. several options on a single-select question)."""


class EmptySubmissionError(QuizError, ValueError):
    """A submission reached the core without a single answered question."""


class PersistenceError(QuizError):
    """The atomic submission write failed and was rolled back."""


class NotificationError(QuizError):
    """The lead notification could not be delivered."""

    def __init__(self, message: str, reason: str = "send_failed", retryable: bool = True,
                 detail: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.retryable = retryable
        self.detail = detail
