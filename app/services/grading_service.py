"""
Quiz grading service
Deterministic, type-dispatched grading of quiz submissions
"""
import copy
import logging
from fractions import Fraction
from typing import Any, Iterable, List, Optional, Sequence

from app.config import settings
from app.schemas.grading import (
    GradeResult,
    GradingPolicy,
    QuestionDefinition,
    QuestionType,
    ReviewReason,
    SubmissionGrade,
    SubmittedAnswer,
)
from app.services.aggregator import ScoreAggregator, award, score_aggregator
from app.services.exceptions import (
    InconsistentQuestionReference,
    InvalidQuestionDefinition,
    MalformedAnswer,
    UnsupportedQuestionType,
)
from app.services.normalizer import normalize, normalize_correct, slot_count
from app.services.strategies import get_strategy

logger = logging.getLogger(__name__)

# Per-question anomalies recovered with a flagged, zero-score result
RECOVERABLE_ERRORS = (MalformedAnswer, UnsupportedQuestionType, InvalidQuestionDefinition)


def resolve_policy(
    partial_credit_enabled: Optional[bool] = None,
    case_sensitive_text_match: Optional[bool] = None,
    rounding_precision: Optional[int] = None
) -> GradingPolicy:
    """Apply quiz-level overrides on top of the system defaults"""
    return GradingPolicy(
        partial_credit_enabled=(
            settings.PARTIAL_CREDIT_ENABLED if partial_credit_enabled is None else partial_credit_enabled
        ),
        case_sensitive_text_match=(
            settings.CASE_SENSITIVE_TEXT_MATCH if case_sensitive_text_match is None else case_sensitive_text_match
        ),
        rounding_precision=(
            settings.ROUNDING_PRECISION if rounding_precision is None else rounding_precision
        ),
    )


def policy_for_quiz(quiz) -> GradingPolicy:
    """Grading policy for a stored quiz"""
    return resolve_policy(
        quiz.partial_credit_enabled,
        quiz.case_sensitive_text_match,
        quiz.rounding_precision,
    )


class GradingService:
    """
    Service for grading quiz submissions

    Strategy:
    - Look up the question type in the closed strategy registry
    - Normalize the stored correct answer and the submitted payload
    - Compare canonical payloads and round the awarded score
    - Malformed answers, unknown types and broken definitions are flagged
      for manual review instead of failing the submission
    """

    def __init__(self, aggregator: ScoreAggregator = score_aggregator):
        self.aggregator = aggregator

    def validate_question(self, question: QuestionDefinition, policy: GradingPolicy) -> None:
        """
        Check that a question definition matches its declared type

        Raises:
            UnsupportedQuestionType: unknown type tag
            InvalidQuestionDefinition: data or correct answer has the wrong shape
        """
        strategy = get_strategy(question.type)
        if not strategy.is_auto_gradable(question.data):
            return
        normalize_correct(
            question.type,
            question.correct_answer,
            data=question.data,
            case_sensitive=policy.case_sensitive_text_match,
        )

    def grade_question(
        self,
        question: QuestionDefinition,
        answer: SubmittedAnswer,
        policy: GradingPolicy,
        position: int = 0
    ) -> GradeResult:
        """
        Grade one submitted answer against its question

        Args:
            question: Question definition from the quiz store
            answer: Learner's submitted answer
            policy: Grading policy for the quiz
            position: Display order of the question within the quiz

        Returns:
            GradeResult; flagged with score 0 on per-question anomalies

        Raises:
            InconsistentQuestionReference: answer references another question
        """
        if answer.question_id != question.id:
            raise InconsistentQuestionReference(
                f"Answer for question {answer.question_id} paired with question {question.id}",
                question_id=question.id,
            )
        return self._grade(question, answer.payload, policy, position)

    def grade_submission(
        self,
        submission_id: str,
        questions: Sequence[QuestionDefinition],
        answers: Iterable[SubmittedAnswer],
        policy: GradingPolicy,
        quiz_id: Optional[str] = None,
        passing_score: Optional[float] = None
    ) -> SubmissionGrade:
        """
        Grade a complete submission attempt in question display order

        Questions without an answer score zero. The whole batch is rejected
        before grading if any answer does not belong to exactly one question.

        Raises:
            InconsistentQuestionReference: unknown, duplicate or ambiguous references
        """
        question_ids = [question.id for question in questions]
        if len(set(question_ids)) != len(question_ids):
            raise InconsistentQuestionReference(
                "Quiz contains duplicate question ids", submission_id=submission_id
            )

        known = set(question_ids)
        by_question = {}
        for answer in answers:
            if answer.question_id not in known:
                raise InconsistentQuestionReference(
                    f"Answer references question {answer.question_id} which is not part of the quiz",
                    question_id=answer.question_id,
                    submission_id=submission_id,
                )
            if answer.question_id in by_question:
                raise InconsistentQuestionReference(
                    f"Multiple answers submitted for question {answer.question_id}",
                    question_id=answer.question_id,
                    submission_id=submission_id,
                )
            by_question[answer.question_id] = answer

        logger.info(f"Grading submission {submission_id}: {len(questions)} questions, {len(by_question)} answers")

        results: List[GradeResult] = []
        for position, question in enumerate(questions):
            answer = by_question.get(question.id)
            if answer is None:
                results.append(self._grade(question, None, policy, position))
            else:
                results.append(self.grade_question(question, answer, policy, position))

        return self.aggregator.aggregate(
            submission_id,
            results,
            policy,
            quiz_id=quiz_id,
            passing_score=passing_score,
        )

    def grade_stored_submission(self, quiz, submission) -> SubmissionGrade:
        """
        Grade a stored submission against its quiz's current definitions

        Args:
            quiz: Quiz row (questions JSON plus policy overrides)
            submission: QuizSubmission row (answers JSON)
        """
        questions = [QuestionDefinition.model_validate(question) for question in quiz.questions]
        answers = [
            SubmittedAnswer(question_id=str(question_id), payload=payload)
            for question_id, payload in (submission.answers or {}).items()
        ]
        return self.grade_submission(
            submission.id,
            questions,
            answers,
            policy_for_quiz(quiz),
            quiz_id=quiz.id,
            passing_score=quiz.passing_score,
        )

    def _grade(
        self,
        question: QuestionDefinition,
        payload: Any,
        policy: GradingPolicy,
        position: int
    ) -> GradeResult:
        submitted = None
        correct = None
        answered = payload is not None

        try:
            strategy = get_strategy(question.type)
            correct = normalize_correct(
                question.type,
                question.correct_answer,
                data=question.data,
                case_sensitive=policy.case_sensitive_text_match,
            )

            if not strategy.is_auto_gradable(question.data):
                submitted = copy.deepcopy(payload)
                return self._flagged(
                    question, position, submitted, correct, answered,
                    ReviewReason.MANUAL_GRADING_REQUIRED, "Manual grading required",
                )

            if not answered:
                return self._result(
                    question, position, None, correct, Fraction(0), "No answer provided", policy, answered=False
                )

            slots = slot_count(question.data) if strategy.question_type is QuestionType.DROPDOWN else None
            submitted = normalize(
                question.type,
                payload,
                case_sensitive=policy.case_sensitive_text_match,
                slot_count=slots,
            )
        except RECOVERABLE_ERRORS as e:
            logger.warning(f"Question {question.id} flagged for review ({e.review_reason}): {e.message}")
            return self._flagged(
                question, position, submitted, correct, answered,
                ReviewReason(e.review_reason), e.message,
            )

        correctness, detail = strategy.grade(submitted, correct, policy)
        return self._result(question, position, submitted, correct, correctness, detail, policy)

    def _result(
        self,
        question: QuestionDefinition,
        position: int,
        submitted: Any,
        correct: Any,
        correctness: Fraction,
        detail: str,
        policy: GradingPolicy,
        answered: bool = True
    ) -> GradeResult:
        score = award(question.max_score, correctness, policy.rounding_precision)
        return GradeResult(
            question_id=question.id,
            question_type=question.type,
            position=position,
            is_correct=correctness == 1,
            correctness=float(correctness),
            score_awarded=float(score),
            max_score=question.max_score,
            normalized_submitted_answer=submitted,
            normalized_correct_answer=correct,
            answered=answered,
            detail=detail,
        )

    def _flagged(
        self,
        question: QuestionDefinition,
        position: int,
        submitted: Any,
        correct: Any,
        answered: bool,
        reason: ReviewReason,
        detail: str
    ) -> GradeResult:
        return GradeResult(
            question_id=question.id,
            question_type=question.type,
            position=position,
            is_correct=False,
            correctness=0.0,
            score_awarded=0.0,
            max_score=question.max_score,
            normalized_submitted_answer=submitted,
            normalized_correct_answer=correct,
            answered=answered,
            needs_review=True,
            review_reason=reason,
            detail=detail,
        )


# Global instance
grading_service = GradingService()
