"""
Pydantic schemas for quiz-related requests and responses
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional

from app.schemas.grading import QuestionDefinition


class QuizCreate(BaseModel):
    """Request schema for creating a quiz"""
    title: str = Field(..., max_length=255, description="Quiz title")
    questions: List[QuestionDefinition] = Field(..., min_length=1)
    partial_credit_enabled: Optional[bool] = Field(None, description="Overrides the system default")
    case_sensitive_text_match: Optional[bool] = Field(None, description="Overrides the system default")
    rounding_precision: Optional[int] = Field(None, ge=0, le=4, description="Overrides the system default")
    passing_score: Optional[float] = Field(None, ge=0.0, le=100.0, description="Passing percentage")


class QuizResponse(BaseModel):
    """Response containing a stored quiz"""
    quiz_id: str
    title: str
    questions: List[Dict[str, Any]]
    total_questions: int
    total_points: float
    passing_score: Optional[float] = None

    class Config:
        from_attributes = True


class SubmissionCreate(BaseModel):
    """Schema for quiz submission"""
    user_id: str
    answers: Dict[str, Any]  # {question_id: payload}
