"""
Grading record models - the persisted outcome of grading a submission

Normalized submitted and correct answers are stored with every question
grade, so later edits to a quiz never change how a past grade reads.
"""
from sqlalchemy import (
    Column, String, Integer, Boolean, Float, TIMESTAMP, DECIMAL, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from app.database import Base, JSONType
import uuid


class SubmissionGradeRecord(Base):
    """
    Submission grades table - one row per submission, overwritten on re-grade
    """
    __tablename__ = "submission_grades"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    submission_id = Column(String(64), nullable=False, unique=True, index=True)
    quiz_id = Column(String(64), nullable=True, index=True)
    total_score = Column(DECIMAL(12, 4), nullable=False)
    total_max_score = Column(DECIMAL(12, 4), nullable=False)
    percentage = Column(DECIMAL(7, 4), nullable=False)
    passed = Column(Boolean, nullable=True)
    needs_review = Column(Boolean, nullable=False, default=False)
    score_display = Column(String(64), nullable=False)
    policy = Column(JSONType, nullable=False)  # GradingPolicy snapshot
    graded_at = Column(TIMESTAMP(timezone=True), nullable=False)

    question_grades = relationship(
        "QuestionGradeRecord",
        back_populates="submission_grade",
        cascade="all, delete-orphan",
        order_by="QuestionGradeRecord.position",
    )

    def __repr__(self):
        return f"<SubmissionGradeRecord(submission_id={self.submission_id}, score={self.score_display})>"


class QuestionGradeRecord(Base):
    """
    Question grades table - per-question result with answer snapshots
    """
    __tablename__ = "question_grades"
    __table_args__ = (
        UniqueConstraint("submission_grade_id", "question_id", name="uq_question_grade"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_grade_id = Column(
        String(64), ForeignKey("submission_grades.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id = Column(String(64), nullable=False)
    question_type = Column(String(32), nullable=False)
    position = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    correctness = Column(Float, nullable=False)
    score_awarded = Column(DECIMAL(12, 4), nullable=False)
    max_score = Column(DECIMAL(12, 4), nullable=False)
    submitted_answer = Column(JSONType, nullable=True)  # normalized
    correct_answer = Column(JSONType, nullable=True)  # normalized, as of grading time
    answered = Column(Boolean, nullable=False, default=True)
    needs_review = Column(Boolean, nullable=False, default=False)
    review_reason = Column(String(64), nullable=True)
    detail = Column(String(500), nullable=True)

    submission_grade = relationship("SubmissionGradeRecord", back_populates="question_grades")

    def __repr__(self):
        return f"<QuestionGradeRecord(question_id={self.question_id}, score={self.score_awarded})>"
