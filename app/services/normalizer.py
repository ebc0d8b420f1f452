"""
Answer normalization

Canonicalizes raw submitted payloads and stored correct answers into
comparable, JSON-serializable shapes. Every canonical form is itself a valid
input, so normalizing twice is a no-op.

Canonical shapes:
- true_false:       bool
- fill_blank:       str (submitted) / list of accepted str (correct)
- dropdown:         [{"slot_index": i, "selected_option": str | None}, ...]
- multiple_choice:  str
- multiple_select:  sorted list of str
- numerical:        float (submitted) / {"value": float, "tolerance": float} (correct)
- matching:         {left_id: right_id} sorted by key
- ordering:         list of str
- short_answer:     str (submitted) / list of keywords (correct), when keywords are declared
"""
import copy
import logging
import math
from typing import Any, Callable, Dict, List, Optional

from app.schemas.grading import QuestionType
from app.services.exceptions import (
    InvalidQuestionDefinition,
    MalformedAnswer,
    UnsupportedQuestionType,
)

logger = logging.getLogger(__name__)

LIST_TYPES = (list, tuple)


def normalize_text(value: str, case_sensitive: bool = False) -> str:
    """Trim, collapse whitespace runs and casefold unless case-sensitive"""
    collapsed = " ".join(value.split())
    return collapsed if case_sensitive else collapsed.casefold()


def _unwrap(payload: Any, *keys: str) -> Any:
    """Pull the value out of a wrapper such as {"answer": ...}"""
    if isinstance(payload, dict):
        for key in keys:
            if key in payload:
                return payload[key]
    return payload


def _option_id(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise MalformedAnswer(f"Expected an option identifier, got {value!r}")
    identifier = str(value).strip()
    if not identifier:
        raise MalformedAnswer("Option identifier is empty")
    return identifier


def _text(payload: Any, case_sensitive: bool) -> str:
    value = _unwrap(payload, "answer", "text")
    if isinstance(value, bool):
        raise MalformedAnswer(f"Expected text, got {value!r}")
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        raise MalformedAnswer(f"Expected text, got {type(value).__name__}")
    return normalize_text(value, case_sensitive)


def _boolean(payload: Any) -> bool:
    value = _unwrap(payload, "selected_answer", "answer")
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise MalformedAnswer(f"Expected true or false, got {value!r}")


def _slot_option(option: Any, case_sensitive: bool) -> Optional[str]:
    if option is None:
        return None
    if isinstance(option, bool) or not isinstance(option, (str, int)):
        raise MalformedAnswer(f"Invalid dropdown selection {option!r}")
    normalized = normalize_text(str(option), case_sensitive)
    return normalized or None


def _slots(payload: Any, case_sensitive: bool, slot_count: Optional[int]) -> List[Dict[str, Any]]:
    selections = _unwrap(payload, "selections")
    if not isinstance(selections, LIST_TYPES):
        raise MalformedAnswer("Expected a list of dropdown selections")
    if slot_count is None:
        slot_count = len(selections)
    if len(selections) != slot_count:
        raise MalformedAnswer(f"Expected {slot_count} selections, got {len(selections)}")

    by_index: Dict[int, Optional[str]] = {}
    for position, selection in enumerate(selections):
        if isinstance(selection, dict):
            index = selection.get("slot_index", selection.get("dropdown_index"))
            if "selected_option" not in selection:
                raise MalformedAnswer(f"Selection {position} has no selected_option")
            option = selection["selected_option"]
        else:
            index, option = position, selection

        if isinstance(index, bool) or not isinstance(index, int):
            raise MalformedAnswer(f"Selection {position} has no slot index")
        if not 0 <= index < slot_count:
            raise MalformedAnswer(f"Slot index {index} out of range (0..{slot_count - 1})")
        if index in by_index:
            raise MalformedAnswer(f"Duplicate selection for slot {index}")
        by_index[index] = _slot_option(option, case_sensitive)

    return [
        {"slot_index": index, "selected_option": by_index[index]}
        for index in range(slot_count)
    ]


def _single_option(payload: Any) -> str:
    return _option_id(_unwrap(payload, "selected_option", "selected_option_index"))


def _option_set(payload: Any) -> List[str]:
    value = _unwrap(payload, "selected_options", "selected_option_indices")
    if not isinstance(value, LIST_TYPES):
        raise MalformedAnswer("Expected a list of selected options")
    return sorted({_option_id(item) for item in value})


def _number(value: Any) -> float:
    if isinstance(value, bool):
        raise MalformedAnswer(f"Expected a number, got {value!r}")
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise MalformedAnswer(f"Expected a number, got {value!r}")
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        raise MalformedAnswer(f"Expected a number, got {type(value).__name__}")
    if not math.isfinite(number):
        raise MalformedAnswer("Number must be finite")
    return number


def _matching(payload: Any) -> Dict[str, str]:
    value = _unwrap(payload, "matches", "mappings")
    if not isinstance(value, dict):
        raise MalformedAnswer("Expected a mapping of left items to right items")
    pairs: Dict[str, str] = {}
    for left, right in value.items():
        left_id = _option_id(left)
        if left_id in pairs:
            raise MalformedAnswer(f"Duplicate match for {left_id!r}")
        pairs[left_id] = _option_id(right)
    return dict(sorted(pairs.items()))


def _ordering(payload: Any) -> List[str]:
    value = _unwrap(payload, "ordered_item_ids")
    if not isinstance(value, LIST_TYPES):
        raise MalformedAnswer("Expected an ordered list of item ids")
    items = [_option_id(item) for item in value]
    if len(set(items)) != len(items):
        raise MalformedAnswer("Ordering contains duplicate items")
    return items


def keywords_declared(data: Optional[Dict[str, Any]]) -> bool:
    """Whether a short-answer question declares keywords to auto-grade against"""
    return isinstance(data, dict) and bool(data.get("keywords"))


def slot_count(data: Dict[str, Any]) -> int:
    """Number of dropdown slots declared by a question's data"""
    slots = data.get("slots") if isinstance(data, dict) else None
    if not isinstance(slots, LIST_TYPES) or not slots:
        raise InvalidQuestionDefinition("Dropdown question declares no slots")
    return len(slots)


# Submitted payloads

_SUBMITTED: Dict[QuestionType, Callable[..., Any]] = {
    QuestionType.TRUE_FALSE: lambda p, cs, n: _boolean(p),
    QuestionType.FILL_BLANK: lambda p, cs, n: _text(p, cs),
    QuestionType.DROPDOWN: lambda p, cs, n: _slots(p, cs, n),
    QuestionType.MULTIPLE_CHOICE: lambda p, cs, n: _single_option(p),
    QuestionType.MULTIPLE_SELECT: lambda p, cs, n: _option_set(p),
    QuestionType.NUMERICAL: lambda p, cs, n: _number(_unwrap(p, "answer", "value")),
    QuestionType.MATCHING: lambda p, cs, n: _matching(p),
    QuestionType.ORDERING: lambda p, cs, n: _ordering(p),
    QuestionType.SHORT_ANSWER: lambda p, cs, n: _text(p, cs),
}


def _question_type(question_type: Any) -> QuestionType:
    try:
        return QuestionType(question_type)
    except ValueError:
        raise UnsupportedQuestionType(str(question_type))


def normalize(
    question_type: Any,
    payload: Any,
    *,
    case_sensitive: bool = False,
    slot_count: Optional[int] = None
) -> Any:
    """
    Canonicalize a submitted answer payload

    Args:
        question_type: Question type tag
        payload: Raw submitted payload
        case_sensitive: Keep letter case when comparing text
        slot_count: Expected number of dropdown selections

    Returns:
        Canonical payload for the type

    Raises:
        MalformedAnswer: payload does not match the type's schema
        UnsupportedQuestionType: unknown type tag
    """
    qtype = _question_type(question_type)
    normalizer = _SUBMITTED.get(qtype)
    if normalizer is None:
        # Manual-review types are stored as submitted
        return copy.deepcopy(payload)
    if payload is None:
        raise MalformedAnswer("No answer payload")
    return normalizer(payload, case_sensitive, slot_count)


# Stored correct answers

def _accepted_texts(payload: Any, data: Dict[str, Any], case_sensitive: bool) -> List[str]:
    value = _unwrap(payload, "answers", "accepted_answers")
    candidates = value if isinstance(value, LIST_TYPES) else [value]
    accepted: List[str] = []
    for candidate in candidates:
        text = _text(candidate, case_sensitive)
        if not text:
            raise MalformedAnswer("Accepted answer is empty")
        if text not in accepted:
            accepted.append(text)
    if not accepted:
        raise MalformedAnswer("No accepted answers")
    return accepted


def _correct_slots(payload: Any, data: Dict[str, Any], case_sensitive: bool) -> List[Dict[str, Any]]:
    slots = _slots(payload, case_sensitive, slot_count(data))
    for slot, declared in zip(slots, data["slots"]):
        if slot["selected_option"] is None:
            raise MalformedAnswer(f"Slot {slot['slot_index']} has no correct option")
        options = declared.get("options") if isinstance(declared, dict) else None
        if options:
            allowed = {_slot_option(option, case_sensitive) for option in options}
            if slot["selected_option"] not in allowed:
                raise MalformedAnswer(
                    f"Correct option for slot {slot['slot_index']} is not one of its options"
                )
    return slots


def _correct_option_set(payload: Any, data: Dict[str, Any], case_sensitive: bool) -> List[str]:
    options = _option_set(payload)
    if not options:
        raise MalformedAnswer("Correct option set is empty")
    return options


def _correct_number(payload: Any, data: Dict[str, Any], case_sensitive: bool) -> Dict[str, float]:
    if isinstance(payload, dict) and "value" in payload:
        value = _number(payload["value"])
        tolerance = payload.get("tolerance", data.get("tolerance", 0))
    else:
        value = _number(_unwrap(payload, "answer"))
        tolerance = data.get("tolerance", 0)
    tolerance = _number(tolerance if tolerance is not None else 0)
    if tolerance < 0:
        raise MalformedAnswer("Tolerance must not be negative")
    return {"value": value, "tolerance": tolerance}


def _correct_matching(payload: Any, data: Dict[str, Any], case_sensitive: bool) -> Dict[str, str]:
    pairs = _matching(payload)
    if not pairs:
        raise MalformedAnswer("Correct matching is empty")
    return pairs


def _correct_ordering(payload: Any, data: Dict[str, Any], case_sensitive: bool) -> List[str]:
    items = _ordering(payload)
    if not items:
        raise MalformedAnswer("Correct ordering is empty")
    return items


def _keywords(payload: Any, data: Dict[str, Any], case_sensitive: bool) -> List[str]:
    value = data.get("keywords")
    if not isinstance(value, LIST_TYPES):
        raise MalformedAnswer("Keywords must be a list of strings")
    keywords: List[str] = []
    for position, keyword in enumerate(value):
        if not isinstance(keyword, str):
            raise MalformedAnswer(f"Keyword at index {position} must be a string")
        normalized = normalize_text(keyword, case_sensitive)
        if not normalized:
            raise MalformedAnswer(f"Keyword at index {position} is empty")
        if normalized not in keywords:
            keywords.append(normalized)
    return keywords


_CORRECT: Dict[QuestionType, Callable[..., Any]] = {
    QuestionType.TRUE_FALSE: lambda p, d, cs: _boolean(p),
    QuestionType.FILL_BLANK: _accepted_texts,
    QuestionType.DROPDOWN: _correct_slots,
    QuestionType.MULTIPLE_CHOICE: lambda p, d, cs: _single_option(p),
    QuestionType.MULTIPLE_SELECT: _correct_option_set,
    QuestionType.NUMERICAL: _correct_number,
    QuestionType.MATCHING: _correct_matching,
    QuestionType.ORDERING: _correct_ordering,
    QuestionType.SHORT_ANSWER: _keywords,
}


def normalize_correct(
    question_type: Any,
    payload: Any,
    *,
    data: Optional[Dict[str, Any]] = None,
    case_sensitive: bool = False
) -> Any:
    """
    Canonicalize a stored correct answer

    Raises:
        InvalidQuestionDefinition: payload or data does not match the type
        UnsupportedQuestionType: unknown type tag
    """
    qtype = _question_type(question_type)
    normalizer = _CORRECT.get(qtype)
    if qtype is QuestionType.SHORT_ANSWER and not keywords_declared(data):
        normalizer = None
    if normalizer is None:
        return copy.deepcopy(payload)
    # Short-answer keywords come from data; the correct answer is only a model answer
    if payload is None and qtype is not QuestionType.SHORT_ANSWER:
        raise InvalidQuestionDefinition("Question has no correct answer")
    try:
        return normalizer(payload, data or {}, case_sensitive)
    except MalformedAnswer as e:
        raise InvalidQuestionDefinition(e.message) from e
