"""
Grading result recorder

Persists a SubmissionGrade with one row per question result in a single
transaction. A submission has at most one grade record; re-recording it
replaces the record's contents in place.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import QuestionGradeRecord, SubmissionGradeRecord
from app.schemas.grading import GradeResult, GradingPolicy, SubmissionGrade
from app.services.exceptions import PersistenceFailure
from app.utils.cache import CacheService, cache_service

logger = logging.getLogger(__name__)

DETAIL_MAX_LENGTH = 500


def _question_row(result: GradeResult) -> QuestionGradeRecord:
    return QuestionGradeRecord(
        question_id=result.question_id,
        question_type=result.question_type,
        position=result.position,
        is_correct=result.is_correct,
        correctness=result.correctness,
        score_awarded=Decimal(str(result.score_awarded)),
        max_score=Decimal(str(result.max_score)),
        submitted_answer=result.normalized_submitted_answer,
        correct_answer=result.normalized_correct_answer,
        answered=result.answered,
        needs_review=result.needs_review,
        review_reason=result.review_reason.value if result.review_reason else None,
        detail=(result.detail or "")[:DETAIL_MAX_LENGTH] or None,
    )


def _grade_result(row: QuestionGradeRecord) -> GradeResult:
    return GradeResult(
        question_id=row.question_id,
        question_type=row.question_type,
        position=row.position,
        is_correct=row.is_correct,
        correctness=row.correctness,
        score_awarded=float(row.score_awarded),
        max_score=float(row.max_score),
        normalized_submitted_answer=row.submitted_answer,
        normalized_correct_answer=row.correct_answer,
        answered=row.answered,
        needs_review=row.needs_review,
        review_reason=row.review_reason,
        detail=row.detail,
    )


class GradeRecorder:
    """Writes and reads persisted submission grades"""

    def __init__(self, cache: CacheService = cache_service):
        self.cache = cache

    def record(self, db: Session, grade: SubmissionGrade) -> SubmissionGradeRecord:
        """
        Persist a submission grade atomically

        Args:
            db: Database session
            grade: Aggregated grade to store

        Returns:
            The stored SubmissionGradeRecord

        Raises:
            PersistenceFailure: the write failed and was rolled back
        """
        try:
            record = (
                db.query(SubmissionGradeRecord)
                .filter(SubmissionGradeRecord.submission_id == grade.submission_id)
                .first()
            )

            if record is None:
                record = SubmissionGradeRecord(submission_id=grade.submission_id)
                db.add(record)
            else:
                # Remove old rows first so the (grade, question) unique key never clashes
                record.question_grades.clear()
                db.flush()

            record.quiz_id = grade.quiz_id
            record.total_score = Decimal(str(grade.total_score))
            record.total_max_score = Decimal(str(grade.total_max_score))
            record.percentage = Decimal(str(grade.percentage))
            record.passed = grade.passed
            record.needs_review = grade.needs_review
            record.score_display = grade.score_display
            record.policy = grade.policy.model_dump()
            record.graded_at = grade.graded_at
            record.question_grades.extend(_question_row(result) for result in grade.results)

            db.commit()
            db.refresh(record)

        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to record grade for submission {grade.submission_id}: {str(e)}")
            raise PersistenceFailure(grade.submission_id, str(e)) from e

        # Replace, not just drop, the cached copy so an in-flight read cannot restore the old grade
        if not self.cache.set_grade(grade):
            self.cache.invalidate_grade(grade.submission_id)

        logger.info(
            f"Grade recorded for submission {grade.submission_id}: "
            f"{grade.score_display}, {len(grade.results)} questions"
        )

        return record

    def load(self, db: Session, submission_id: str) -> Optional[SubmissionGrade]:
        """
        Read a recorded grade, rebuilt from its persisted snapshot

        Never consults live question definitions.
        """
        cached = self.cache.get_grade(submission_id)
        if cached is not None:
            return cached

        record = (
            db.query(SubmissionGradeRecord)
            .filter(SubmissionGradeRecord.submission_id == submission_id)
            .first()
        )
        if record is None:
            return None

        grade = self.to_grade(record)
        self.cache.set_grade(grade, only_if_absent=True)
        return grade

    def to_grade(self, record: SubmissionGradeRecord) -> SubmissionGrade:
        """Convert a stored record back into the SubmissionGrade value object"""
        return SubmissionGrade(
            submission_id=record.submission_id,
            quiz_id=record.quiz_id,
            results=[_grade_result(row) for row in record.question_grades],
            total_score=float(record.total_score),
            total_max_score=float(record.total_max_score),
            percentage=float(record.percentage),
            passed=record.passed,
            needs_review=record.needs_review,
            score_display=record.score_display,
            policy=GradingPolicy(**record.policy),
            graded_at=record.graded_at,
        )


# Global instance
grade_recorder = GradeRecorder()
