"""
Grading error taxonomy

Per-question anomalies (MalformedAnswer, UnsupportedQuestionType,
InvalidQuestionDefinition) are recovered by the dispatcher with a flagged,
zero-score result. Structural anomalies (InconsistentQuestionReference,
PersistenceFailure) propagate to the caller.
"""
from typing import Optional


class GradingError(Exception):
    """Base class for all grading engine errors"""

    def __init__(self, message: str, question_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.question_id = question_id


class MalformedAnswer(GradingError):
    """Submitted payload does not match its question type's schema"""

    review_reason = "malformed_answer"


class UnsupportedQuestionType(GradingError):
    """Question declares a type with no registered strategy"""

    review_reason = "unsupported_question_type"

    def __init__(self, question_type: str, question_id: Optional[str] = None):
        super().__init__(f"Unsupported question type: {question_type!r}", question_id)
        self.question_type = question_type


class InvalidQuestionDefinition(GradingError):
    """Stored data or correct answer does not match the declared type"""

    review_reason = "invalid_question_definition"


class InconsistentQuestionReference(GradingError):
    """Submitted answer is paired with a question it does not reference"""

    def __init__(self, message: str, question_id: Optional[str] = None, submission_id: Optional[str] = None):
        super().__init__(message, question_id)
        self.submission_id = submission_id


class PersistenceFailure(GradingError):
    """Transactional write of a submission grade failed and was rolled back"""

    def __init__(self, submission_id: str, message: str):
        super().__init__(f"Failed to record grade for submission {submission_id}: {message}")
        self.submission_id = submission_id
