"""
Pydantic value objects flowing through the grading engine
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from datetime import datetime
from enum import Enum


class QuestionType(str, Enum):
    """Closed set of question types known to the engine"""
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    DROPDOWN = "dropdown"
    MULTIPLE_CHOICE = "multiple_choice"
    MULTIPLE_SELECT = "multiple_select"
    NUMERICAL = "numerical"
    MATCHING = "matching"
    ORDERING = "ordering"
    SHORT_ANSWER = "short_answer"
    # Known but graded by an instructor
    ESSAY = "essay"
    CODING = "coding"


class ReviewReason(str, Enum):
    """Why a result was excluded from auto-scoring"""
    MALFORMED_ANSWER = "malformed_answer"
    UNSUPPORTED_QUESTION_TYPE = "unsupported_question_type"
    INVALID_QUESTION_DEFINITION = "invalid_question_definition"
    MANUAL_GRADING_REQUIRED = "manual_grading_required"


class GradingPolicy(BaseModel):
    """Quiz-level grading configuration, passed explicitly into every grading call"""
    partial_credit_enabled: bool = True
    case_sensitive_text_match: bool = False
    rounding_precision: int = Field(2, ge=0, le=4)

    class Config:
        frozen = True


class QuestionDefinition(BaseModel):
    """A question as supplied by the quiz store"""
    id: str
    type: str  # free-form so unknown tags can be flagged instead of rejected
    question: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    correct_answer: Any = None
    # Bounded so a rounded score always fits the DECIMAL(12, 4) grade columns
    max_score: float = Field(1.0, gt=0, lt=10**8)

    class Config:
        frozen = True


class SubmittedAnswer(BaseModel):
    """One learner answer from a finalized submission attempt"""
    question_id: str
    payload: Any = None

    class Config:
        frozen = True


class GradeResult(BaseModel):
    """Per-question grading outcome, persisted verbatim"""
    question_id: str
    question_type: str
    position: int = 0
    is_correct: bool
    correctness: float = Field(..., ge=0.0, le=1.0)
    score_awarded: float
    max_score: float
    normalized_submitted_answer: Any = None
    normalized_correct_answer: Any = None
    answered: bool = True
    needs_review: bool = False
    review_reason: Optional[ReviewReason] = None
    detail: Optional[str] = None

    @property
    def counts_toward_score(self) -> bool:
        return not self.needs_review


class SubmissionGrade(BaseModel):
    """Aggregate grade for one submission attempt"""
    submission_id: str
    quiz_id: Optional[str] = None
    results: List[GradeResult]
    total_score: float
    total_max_score: float
    percentage: float
    passed: Optional[bool] = None
    needs_review: bool = False
    score_display: str  # "8.5/10"
    policy: GradingPolicy
    graded_at: datetime
