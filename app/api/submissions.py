"""
Recorded grade API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.models import Quiz, QuizSubmission
from app.schemas.grading import SubmissionGrade
from app.services.grading_service import grading_service
from app.services.recorder import grade_recorder

router = APIRouter(prefix="/api/submissions", tags=["submissions"])
logger = logging.getLogger(__name__)


@router.get("/{submission_id}/grade", response_model=SubmissionGrade)
async def get_submission_grade(
    submission_id: str,
    db: Session = Depends(get_db)
):
    """
    Get the recorded grade for a submission

    Returns the grade as it was recorded, including the normalized submitted
    and correct answers captured at grading time.
    """
    grade = grade_recorder.load(db, submission_id)

    if grade is None:
        raise HTTPException(status_code=404, detail="Grade not found")

    return grade


@router.post("/{submission_id}/regrade", response_model=SubmissionGrade)
async def regrade_submission(
    submission_id: str,
    db: Session = Depends(get_db)
):
    """
    Re-grade a stored submission against the quiz's current questions

    The previous grade record is replaced in one transaction.
    """
    submission = db.query(QuizSubmission).filter(QuizSubmission.id == submission_id).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")

    quiz = db.query(Quiz).filter(Quiz.id == submission.quiz_id).first()
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")

    logger.info(f"Re-grading submission {submission_id}")

    grade = grading_service.grade_stored_submission(quiz, submission)
    grade_recorder.record(db, grade)

    return grade
