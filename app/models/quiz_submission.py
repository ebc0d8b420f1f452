"""
QuizSubmission model - finalized learner answers for one attempt
"""
from sqlalchemy import Column, String, TIMESTAMP, ForeignKey, func
from app.database import Base, JSONType
import uuid


class QuizSubmission(Base):
    """
    Quiz submissions table - one row per attempt, immutable once stored
    """
    __tablename__ = "quiz_submissions"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    quiz_id = Column(String(64), ForeignKey("quizzes.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    answers = Column(JSONType, nullable=False)  # {question_id: payload}
    submitted_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<QuizSubmission(id={self.id}, quiz_id={self.quiz_id}, user_id={self.user_id})>"
