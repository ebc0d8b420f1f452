"""
Quiz creation and submission API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
import logging
import uuid
from app.database import get_db
from app.models import Quiz, QuizSubmission
from app.schemas.grading import GradingPolicy, QuestionDefinition, SubmissionGrade
from app.schemas.quiz import QuizCreate, QuizResponse, SubmissionCreate
from app.services.exceptions import (
    InconsistentQuestionReference,
    InvalidQuestionDefinition,
    UnsupportedQuestionType,
)
from app.services.grading_service import grading_service, policy_for_quiz, resolve_policy
from app.services.recorder import grade_recorder


router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)


def _quiz_response(quiz: Quiz) -> QuizResponse:
    return QuizResponse(
        quiz_id=quiz.id,
        title=quiz.title,
        questions=quiz.questions,
        total_questions=len(quiz.questions),
        total_points=sum(q.get("max_score", 1.0) for q in quiz.questions),
        passing_score=quiz.passing_score,
    )


def _validate_questions(questions: List[QuestionDefinition], policy: GradingPolicy) -> None:
    """Reject definitions whose data or correct answer does not fit their type"""
    seen = set()
    for question in questions:
        if question.id in seen:
            raise HTTPException(status_code=422, detail=f"Duplicate question id: {question.id}")
        seen.add(question.id)

        try:
            grading_service.validate_question(question, policy)
        except (UnsupportedQuestionType, InvalidQuestionDefinition) as e:
            raise HTTPException(status_code=422, detail=f"Question {question.id}: {e.message}")


def _get_quiz(db: Session, quiz_id: str) -> Quiz:
    quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


@router.post("", response_model=QuizResponse, status_code=201)
async def create_quiz(request: QuizCreate, db: Session = Depends(get_db)):
    """
    Create a quiz

    - Every question definition is checked against its type's schema
    - Policy fields left unset fall back to the system defaults at grading time
    """
    policy = resolve_policy(
        request.partial_credit_enabled,
        request.case_sensitive_text_match,
        request.rounding_precision,
    )
    _validate_questions(request.questions, policy)

    quiz = Quiz(
        title=request.title,
        questions=[question.model_dump() for question in request.questions],
        partial_credit_enabled=request.partial_credit_enabled,
        case_sensitive_text_match=request.case_sensitive_text_match,
        rounding_precision=request.rounding_precision,
        passing_score=request.passing_score,
    )

    db.add(quiz)
    db.commit()
    db.refresh(quiz)

    logger.info(f"Quiz created: {quiz.id} ({len(request.questions)} questions)")

    return _quiz_response(quiz)


@router.get("/{quiz_id}", response_model=QuizResponse)
async def get_quiz(quiz_id: str, db: Session = Depends(get_db)):
    """Fetch a quiz with its question definitions"""
    return _quiz_response(_get_quiz(db, quiz_id))


@router.put("/{quiz_id}/questions/{question_id}", response_model=QuizResponse)
async def correct_question(
    quiz_id: str, question_id: str, question: QuestionDefinition, db: Session = Depends(get_db)
):
    """
    Replace a question definition (e.g. to fix its correct answer)

    Existing grades are not touched; use the regrade endpoint to apply the
    correction to past submissions.
    """
    quiz = _get_quiz(db, quiz_id)

    if question.id != question_id:
        raise HTTPException(status_code=422, detail="Question id in body does not match the URL")

    positions = [i for i, q in enumerate(quiz.questions) if q.get("id") == question_id]
    if not positions:
        raise HTTPException(status_code=404, detail="Question not found")

    _validate_questions([question], policy_for_quiz(quiz))

    questions = list(quiz.questions)
    questions[positions[0]] = question.model_dump()
    # Reassign so the JSON column is marked dirty
    quiz.questions = questions
    db.commit()
    db.refresh(quiz)

    logger.info(f"Question {question_id} of quiz {quiz_id} replaced")

    return _quiz_response(quiz)


@router.post("/{quiz_id}/submit", response_model=SubmissionGrade, status_code=201)
async def submit_quiz(
    quiz_id: str, submission: SubmissionCreate, db: Session = Depends(get_db)
):
    """
    Submit and grade a quiz

    Grading strategy:
    - Each answer is normalized and compared by its question type's strategy
    - Partial credit, case sensitivity and rounding follow the quiz policy
    - Malformed answers are flagged for review without blocking the rest

    The submission and its grade are committed together.
    """
    quiz = _get_quiz(db, quiz_id)

    stored = QuizSubmission(
        id=str(uuid.uuid4()),
        quiz_id=quiz.id,
        user_id=submission.user_id,
        answers=submission.answers,
    )
    db.add(stored)

    logger.info(f"Grading quiz {quiz_id} for user {submission.user_id}")

    try:
        grade = grading_service.grade_stored_submission(quiz, stored)
    except InconsistentQuestionReference:
        db.rollback()
        raise

    # Commits the pending submission together with its grade
    grade_recorder.record(db, grade)

    return grade
