"""
Test cases for the question type registry and grading strategies.
"""
from fractions import Fraction

import pytest

from app.schemas.grading import QuestionType
from app.services.exceptions import UnsupportedQuestionType
from app.services.strategies import REGISTRY, get_strategy


def grade(question_type, submitted, correct, policy):
    correctness, _ = get_strategy(question_type).grade(submitted, correct, policy)
    return correctness


class TestRegistry:
    """Test cases for strategy lookup."""

    def test_every_question_type_has_a_strategy(self):
        """Test the registry covers the whole QuestionType enum."""
        assert set(REGISTRY) == set(QuestionType)

    def test_registry_is_read_only(self):
        """Test the registry cannot be modified after import."""
        with pytest.raises(TypeError):
            REGISTRY[QuestionType.ESSAY] = get_strategy('true_false')

    def test_unknown_tag(self):
        """Test an unknown tag raises UnsupportedQuestionType."""
        with pytest.raises(UnsupportedQuestionType) as exc_info:
            get_strategy('hotspot')
        assert exc_info.value.question_type == 'hotspot'

    @pytest.mark.parametrize('tag', ['essay', 'coding'])
    def test_manual_types_are_not_auto_gradable(self, tag):
        """Test manual-review types are known but not auto-gradable."""
        assert get_strategy(tag).auto_gradable is False
        assert get_strategy(tag).is_auto_gradable({'keywords': ['x']}) is False

    @pytest.mark.parametrize('data,expected', [
        ({'keywords': ['commit']}, True),
        ({'keywords': []}, False),
        ({}, False),
        (None, False),
    ])
    def test_short_answer_needs_keywords(self, data, expected):
        """Test short answers are auto-graded only when keywords are declared."""
        assert get_strategy('short_answer').is_auto_gradable(data) is expected


class TestBinaryStrategies:
    """Test cases for all-or-nothing question types."""

    @pytest.mark.parametrize('submitted', [True, False])
    @pytest.mark.parametrize('correct', [True, False])
    def test_true_false_is_exact_equality(self, submitted, correct, policy):
        """Test true/false correctness is exactly submitted == correct."""
        assert grade('true_false', submitted, correct, policy) == (1 if submitted == correct else 0)

    def test_fill_blank_matches_any_accepted(self, policy):
        """Test any accepted answer earns full credit."""
        assert grade('fill_blank', 'lutetia', ['paris', 'lutetia'], policy) == 1
        assert grade('fill_blank', 'london', ['paris', 'lutetia'], policy) == 0

    def test_multiple_choice(self, policy):
        """Test single-answer choice is an exact identifier match."""
        assert grade('multiple_choice', 'B', 'B', policy) == 1
        assert grade('multiple_choice', 'A', 'B', policy) == 0

    def test_numerical_within_tolerance(self, policy):
        """Test answers inside the tolerance band, boundary included, are correct."""
        correct = {'value': 9.8, 'tolerance': 0.5}
        assert grade('numerical', 10.3, correct, policy) == 1
        assert grade('numerical', 10.4, correct, policy) == 0

    def test_numerical_float_noise(self, policy):
        """Test float representation noise does not fail an exact answer."""
        assert grade('numerical', 0.1 + 0.2, {'value': 0.3, 'tolerance': 0.0}, policy) == 1


class TestDropdownStrategy:
    """Test cases for slot-by-slot grading."""

    correct = [
        {'slot_index': 0, 'selected_option': 'a'},
        {'slot_index': 1, 'selected_option': 'b'},
        {'slot_index': 2, 'selected_option': 'c'},
    ]

    def submitted(self, *options):
        return [{'slot_index': i, 'selected_option': option} for i, option in enumerate(options)]

    def test_partial_credit(self, policy):
        """Test two of three slots earn two thirds."""
        correctness, detail = get_strategy('dropdown').grade(self.submitted('a', 'x', 'c'), self.correct, policy)
        assert correctness == Fraction(2, 3)
        assert detail == '2/3 slots correct'

    def test_partial_credit_disabled(self, no_partial_credit):
        """Test a single wrong slot scores zero without partial credit."""
        assert grade('dropdown', self.submitted('a', 'x', 'c'), self.correct, no_partial_credit) == 0
        assert grade('dropdown', self.submitted('a', 'b', 'c'), self.correct, no_partial_credit) == 1

    def test_blank_slot_never_matches(self, policy):
        """Test an unanswered slot earns nothing."""
        assert grade('dropdown', self.submitted('a', None, None), self.correct, policy) == Fraction(1, 3)


class TestMultipleSelectStrategy:
    """Test cases for checkbox grading."""

    def test_extra_selection_penalized(self, policy):
        """Test {A, B, C} against {A, B} scores (2 - 1) / 2."""
        assert grade('multiple_select', ['A', 'B', 'C'], ['A', 'B'], policy) == Fraction(1, 2)

    def test_floor_at_zero(self, policy):
        """Test more wrong picks than right ones never goes negative."""
        assert grade('multiple_select', ['A', 'C', 'D'], ['A', 'B'], policy) == 0

    def test_exact_set(self, policy):
        """Test the exact set earns full credit."""
        assert grade('multiple_select', ['A', 'B'], ['A', 'B'], policy) == 1

    def test_partial_credit_disabled(self, no_partial_credit):
        """Test set equality is required without partial credit."""
        assert grade('multiple_select', ['A', 'B', 'C'], ['A', 'B'], no_partial_credit) == 0
        assert grade('multiple_select', ['A'], ['A', 'B'], no_partial_credit) == 0


class TestMatchingAndOrdering:
    """Test cases for matching and ordering grading."""

    def test_matching_fraction_of_pairs(self, policy):
        """Test matching earns credit per correct pair."""
        correct = {'a': '1', 'b': '2', 'c': '3', 'd': '4'}
        submitted = {'a': '1', 'b': '3', 'c': '2', 'd': '4'}
        assert grade('matching', submitted, correct, policy) == Fraction(1, 2)

    def test_matching_without_partial_credit(self, no_partial_credit):
        """Test matching is all-or-nothing without partial credit."""
        correct = {'a': '1', 'b': '2'}
        assert grade('matching', {'a': '1', 'b': '1'}, correct, no_partial_credit) == 0

    def test_ordering_positions(self, policy):
        """Test ordering earns credit per item in the right position."""
        assert grade('ordering', ['a', 'c', 'b'], ['a', 'b', 'c'], policy) == Fraction(1, 3)

    def test_ordering_extra_items(self, policy):
        """Test extra items lower the score."""
        assert grade('ordering', ['a', 'b', 'c', 'd'], ['a', 'b', 'c'], policy) == Fraction(3, 4)


class TestShortAnswer:
    """Test cases for keyword grading of short answers."""

    KEYWORDS = ['collaboration', 'history', 'branching']

    def test_fraction_of_keywords_found(self, policy):
        """Test credit is the share of keywords found in the answer."""
        answer = 'git keeps history and makes branching cheap'
        correctness, detail = get_strategy('short_answer').grade(answer, self.KEYWORDS, policy)
        assert correctness == Fraction(2, 3)
        assert detail == 'Found 2/3 key concepts'

    def test_all_keywords_found(self, policy):
        """Test an answer containing every keyword earns full credit."""
        answer = 'branching, history and collaboration'
        assert grade('short_answer', answer, self.KEYWORDS, policy) == 1

    def test_keywords_match_inside_words(self, policy):
        """Test a keyword counts when it appears within a longer word."""
        assert grade('short_answer', 'the full commit history', ['commit', 'story'], policy) == 1

    def test_without_partial_credit(self, no_partial_credit):
        """Test a partial keyword match earns nothing without partial credit."""
        answer = 'history and branching'
        assert grade('short_answer', answer, self.KEYWORDS, no_partial_credit) == 0
