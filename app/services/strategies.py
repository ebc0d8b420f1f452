"""
Question type registry and grading strategies

One strategy per QuestionType. Strategies compare canonical payloads produced
by the normalizer and return (correctness, detail), where correctness is an
exact Fraction in [0, 1]. The registry is built once at import time and is
read-only afterwards.
"""
import math
from decimal import Decimal
from fractions import Fraction
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from app.schemas.grading import GradingPolicy, QuestionType
from app.services.exceptions import UnsupportedQuestionType
from app.services.normalizer import keywords_declared

FULL = Fraction(1)
NONE = Fraction(0)


def _binary(is_correct: bool) -> Fraction:
    return FULL if is_correct else NONE


def _proportional(matched: int, total: int, policy: GradingPolicy) -> Fraction:
    """matched/total under partial credit, all-or-nothing otherwise"""
    if total <= 0:
        return NONE
    if policy.partial_credit_enabled:
        return Fraction(matched, total)
    return _binary(matched == total)


class GradingStrategy:
    """Uniform grading contract shared by every question type"""

    question_type: QuestionType
    auto_gradable = True

    def is_auto_gradable(self, data: Optional[Dict[str, Any]] = None) -> bool:
        return self.auto_gradable

    def grade(self, submitted: Any, correct: Any, policy: GradingPolicy) -> Tuple[Fraction, str]:
        raise NotImplementedError


class TrueFalseStrategy(GradingStrategy):
    question_type = QuestionType.TRUE_FALSE

    def grade(self, submitted, correct, policy):
        is_correct = submitted == correct
        return _binary(is_correct), "Correct!" if is_correct else f"Incorrect. Correct answer: {str(correct).lower()}"


class FillBlankStrategy(GradingStrategy):
    """Binary match against any accepted answer"""

    question_type = QuestionType.FILL_BLANK

    def grade(self, submitted, correct, policy):
        is_correct = submitted in correct
        return _binary(is_correct), "Correct!" if is_correct else "Does not match any accepted answer"


class DropdownStrategy(GradingStrategy):
    """Slot-by-slot comparison with optional partial credit"""

    question_type = QuestionType.DROPDOWN

    def grade(self, submitted, correct, policy):
        matched = sum(
            1 for mine, expected in zip(submitted, correct)
            if mine["selected_option"] is not None
            and mine["selected_option"] == expected["selected_option"]
        )
        total = len(correct)
        return _proportional(matched, total, policy), f"{matched}/{total} slots correct"


class MultipleChoiceStrategy(GradingStrategy):
    question_type = QuestionType.MULTIPLE_CHOICE

    def grade(self, submitted, correct, policy):
        is_correct = submitted == correct
        return _binary(is_correct), "Correct!" if is_correct else f"Incorrect. Correct option: {correct}"


class MultipleSelectStrategy(GradingStrategy):
    """
    Set comparison

    Partial credit rewards true positives and penalizes false positives:
    clamp(|C & S| - |S - C|, 0, |C|) / |C|
    """

    question_type = QuestionType.MULTIPLE_SELECT

    def grade(self, submitted, correct, policy):
        expected = set(correct)
        selected = set(submitted)
        hits = len(expected & selected)
        misses = len(selected - expected)
        detail = f"{hits}/{len(expected)} correct options selected, {misses} incorrect"

        if not policy.partial_credit_enabled:
            return _binary(selected == expected), detail

        raw = max(0, min(hits - misses, len(expected)))
        return Fraction(raw, len(expected)), detail


class NumericalStrategy(GradingStrategy):
    question_type = QuestionType.NUMERICAL

    def grade(self, submitted, correct, policy):
        value = correct["value"]
        tolerance = correct["tolerance"]
        # Compare decimal renderings so 10.3 is within 9.8 ± 0.5
        difference = abs(Decimal(repr(submitted)) - Decimal(repr(value)))
        is_correct = (
            difference <= Decimal(repr(tolerance))
            or math.isclose(submitted, value, rel_tol=1e-9, abs_tol=1e-12)
        )
        if is_correct:
            return FULL, "Correct!"
        return NONE, f"Expected {value:g}" + (f" (±{tolerance:g})" if tolerance else "")


class MatchingStrategy(GradingStrategy):
    question_type = QuestionType.MATCHING

    def grade(self, submitted, correct, policy):
        matched = sum(1 for left, right in correct.items() if submitted.get(left) == right)
        total = len(correct)
        return _proportional(matched, total, policy), f"{matched}/{total} matches correct"


class OrderingStrategy(GradingStrategy):
    question_type = QuestionType.ORDERING

    def grade(self, submitted, correct, policy):
        matched = sum(
            1 for position, item in enumerate(correct)
            if position < len(submitted) and submitted[position] == item
        )
        # Extra items dilute the score
        total = max(len(correct), len(submitted))
        return _proportional(matched, total, policy), f"{matched}/{total} items in correct order"


class ShortAnswerStrategy(GradingStrategy):
    """
    Keyword coverage when the question declares keywords, manual review otherwise

    A keyword counts when it appears anywhere in the normalized answer.
    """

    question_type = QuestionType.SHORT_ANSWER

    def is_auto_gradable(self, data=None):
        return keywords_declared(data)

    def grade(self, submitted, correct, policy):
        found = sum(1 for keyword in correct if keyword in submitted)
        total = len(correct)
        return _proportional(found, total, policy), f"Found {found}/{total} key concepts"


class ManualReviewStrategy(GradingStrategy):
    """Known type that an instructor grades by hand"""

    auto_gradable = False

    def __init__(self, question_type: QuestionType):
        self.question_type = question_type

    def grade(self, submitted, correct, policy):
        raise TypeError(f"{self.question_type.value} questions are not auto-gradable")


REGISTRY: Mapping[QuestionType, GradingStrategy] = MappingProxyType({
    QuestionType.TRUE_FALSE: TrueFalseStrategy(),
    QuestionType.FILL_BLANK: FillBlankStrategy(),
    QuestionType.DROPDOWN: DropdownStrategy(),
    QuestionType.MULTIPLE_CHOICE: MultipleChoiceStrategy(),
    QuestionType.MULTIPLE_SELECT: MultipleSelectStrategy(),
    QuestionType.NUMERICAL: NumericalStrategy(),
    QuestionType.MATCHING: MatchingStrategy(),
    QuestionType.ORDERING: OrderingStrategy(),
    QuestionType.SHORT_ANSWER: ShortAnswerStrategy(),
    QuestionType.ESSAY: ManualReviewStrategy(QuestionType.ESSAY),
    QuestionType.CODING: ManualReviewStrategy(QuestionType.CODING),
})


def get_strategy(question_type: str) -> GradingStrategy:
    """
    Look up the strategy for a question type tag

    Raises:
        UnsupportedQuestionType: tag is not a known QuestionType
    """
    try:
        return REGISTRY[QuestionType(question_type)]
    except ValueError:
        raise UnsupportedQuestionType(str(question_type))
