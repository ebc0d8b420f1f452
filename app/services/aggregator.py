"""
Score aggregation

Per-question scores are rounded half-up once, at grading time. Totals are
exact Decimal sums of those rounded scores, so they do not depend on the order
of the results.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from fractions import Fraction
from typing import Optional, Sequence

from app.schemas.grading import GradeResult, GradingPolicy, SubmissionGrade

logger = logging.getLogger(__name__)


def round_half_up(value: Decimal, precision: int) -> Decimal:
    """Round to `precision` decimal places, halves away from zero"""
    return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)


def award(max_score: float, correctness: Fraction, precision: int) -> Decimal:
    """max_score * correctness, rounded per the policy precision"""
    exact = Decimal(str(max_score)) * correctness.numerator / correctness.denominator
    return round_half_up(exact, precision)


def _plain(value: Decimal) -> str:
    return format(value.normalize(), "f")


def format_score_display(total_score: float, total_max_score: float) -> str:
    """Render a "score/maxScore" string such as "8.5/10" """
    return f"{_plain(Decimal(str(total_score)))}/{_plain(Decimal(str(total_max_score)))}"


class ScoreAggregator:
    """Combines per-question results into a SubmissionGrade"""

    def aggregate(
        self,
        submission_id: str,
        results: Sequence[GradeResult],
        policy: GradingPolicy,
        quiz_id: Optional[str] = None,
        passing_score: Optional[float] = None,
        graded_at: Optional[datetime] = None
    ) -> SubmissionGrade:
        """
        Build the aggregate grade for a submission

        Args:
            submission_id: Submission attempt identifier
            results: Per-question results in display order
            policy: Grading policy used for the results
            quiz_id: Quiz the submission belongs to
            passing_score: Passing percentage, if the quiz has one
            graded_at: Grading timestamp (defaults to now, UTC)

        Returns:
            SubmissionGrade with totals over results not flagged for review
        """
        counted = [result for result in results if result.counts_toward_score]
        flagged = len(results) - len(counted)

        total_score = sum((Decimal(str(r.score_awarded)) for r in counted), Decimal(0))
        total_max_score = sum((Decimal(str(r.max_score)) for r in counted), Decimal(0))

        if total_max_score > 0:
            percentage = round_half_up(total_score / total_max_score * 100, policy.rounding_precision)
        else:
            percentage = Decimal(0)

        passed = None
        if passing_score is not None:
            passed = percentage >= Decimal(str(passing_score))

        grade = SubmissionGrade(
            submission_id=submission_id,
            quiz_id=quiz_id,
            results=list(results),
            total_score=float(total_score),
            total_max_score=float(total_max_score),
            percentage=float(percentage),
            passed=passed,
            needs_review=flagged > 0,
            score_display=format_score_display(float(total_score), float(total_max_score)),
            policy=policy,
            graded_at=graded_at or datetime.now(timezone.utc),
        )

        logger.info(
            f"Submission {submission_id} aggregated: {grade.score_display} "
            f"({grade.percentage}%), flagged for review: {flagged}"
        )

        return grade


# Global instance
score_aggregator = ScoreAggregator()
