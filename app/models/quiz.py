"""
Quiz model - question store consumed read-only by the grading engine
"""
from sqlalchemy import Column, String, Boolean, Integer, Float, TIMESTAMP, func
from app.database import Base, JSONType
import uuid


class Quiz(Base):
    """
    Quizzes table - question definitions plus per-quiz grading overrides
    """
    __tablename__ = "quizzes"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    questions = Column(JSONType, nullable=False)  # [{id, type, data, correct_answer, max_score}]
    # NULL means "use the system default"
    partial_credit_enabled = Column(Boolean, nullable=True)
    case_sensitive_text_match = Column(Boolean, nullable=True)
    rounding_precision = Column(Integer, nullable=True)
    passing_score = Column(Float, nullable=True)  # percentage
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title})>"
