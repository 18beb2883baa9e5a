"""
Condition predicates.

One function per operator, each taking ``(source_value, target_value)``
and returning a bool. They are total: malformed or mismatched operands
make a predicate return False, never raise.
"""

import json
import math
from typing import Any, Callable

from form_builder.models import ConditionOperator, FieldType

Predicate = Callable[[Any, Any], bool]

_LIST_TYPES = (list, tuple, set, frozenset)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """Coerce a value to float; anything non-numeric becomes NaN."""
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def equals(source: Any, target: Any) -> bool:
    # Booleans never equal numbers
    if isinstance(source, bool) != isinstance(target, bool):
        return False
    try:
        return bool(source == target)
    except (TypeError, ValueError):
        return False


def not_equals(source: Any, target: Any) -> bool:
    return not equals(source, target)


def contains(source: Any, target: Any) -> bool:
    if isinstance(source, _LIST_TYPES):
        return any(equals(item, target) for item in source)
    return to_text(target) in to_text(source)


def not_contains(source: Any, target: Any) -> bool:
    return not contains(source, target)


def greater_than(source: Any, target: Any) -> bool:
    # NaN compares False
    return to_number(source) > to_number(target)


def less_than(source: Any, target: Any) -> bool:
    return to_number(source) < to_number(target)


def is_empty(source: Any, target: Any = None) -> bool:
    if source is None or source == "":
        return True
    # Mappings (matrix answers) are never empty
    if isinstance(source, _LIST_TYPES):
        return len(source) == 0
    return False


def is_not_empty(source: Any, target: Any = None) -> bool:
    return not is_empty(source)


PREDICATES: dict[ConditionOperator, Predicate] = {
    ConditionOperator.EQUALS: equals,
    ConditionOperator.NOT_EQUALS: not_equals,
    ConditionOperator.CONTAINS: contains,
    ConditionOperator.NOT_CONTAINS: not_contains,
    ConditionOperator.GREATER_THAN: greater_than,
    ConditionOperator.LESS_THAN: less_than,
    ConditionOperator.IS_EMPTY: is_empty,
    ConditionOperator.IS_NOT_EMPTY: is_not_empty,
}


def evaluate_condition(operator: ConditionOperator | str, source: Any, target: Any = None) -> bool:
    """Evaluate one operator. Unknown operators evaluate to False."""
    try:
        predicate = PREDICATES[ConditionOperator(operator)]
    except (ValueError, KeyError):
        return False
    return predicate(source, target)


OPERATOR_LABELS: dict[ConditionOperator, str] = {
    ConditionOperator.EQUALS: "Equals",
    ConditionOperator.NOT_EQUALS: "Does not equal",
    ConditionOperator.CONTAINS: "Contains",
    ConditionOperator.NOT_CONTAINS: "Does not contain",
    ConditionOperator.GREATER_THAN: "Greater than",
    ConditionOperator.LESS_THAN: "Less than",
    ConditionOperator.IS_EMPTY: "Is empty",
    ConditionOperator.IS_NOT_EMPTY: "Is not empty",
}

_TEXT_OPERATORS = (
    ConditionOperator.EQUALS,
    ConditionOperator.NOT_EQUALS,
    ConditionOperator.CONTAINS,
    ConditionOperator.NOT_CONTAINS,
    ConditionOperator.IS_EMPTY,
    ConditionOperator.IS_NOT_EMPTY,
)
_SINGLE_CHOICE_OPERATORS = (
    ConditionOperator.EQUALS,
    ConditionOperator.NOT_EQUALS,
    ConditionOperator.IS_EMPTY,
    ConditionOperator.IS_NOT_EMPTY,
)
_MULTI_CHOICE_OPERATORS = (
    ConditionOperator.CONTAINS,
    ConditionOperator.NOT_CONTAINS,
    ConditionOperator.IS_EMPTY,
    ConditionOperator.IS_NOT_EMPTY,
)
_PRESENCE_OPERATORS = (ConditionOperator.IS_EMPTY, ConditionOperator.IS_NOT_EMPTY)

# Operators offered when a field of the given type is the condition source
OPERATORS_BY_FIELD_TYPE: dict[FieldType, tuple[ConditionOperator, ...]] = {
    FieldType.TEXT: _TEXT_OPERATORS,
    FieldType.TEXTAREA: _TEXT_OPERATORS,
    FieldType.EMAIL: _TEXT_OPERATORS,
    FieldType.NUMBER: (
        ConditionOperator.EQUALS,
        ConditionOperator.NOT_EQUALS,
        ConditionOperator.GREATER_THAN,
        ConditionOperator.LESS_THAN,
        ConditionOperator.IS_EMPTY,
        ConditionOperator.IS_NOT_EMPTY,
    ),
    FieldType.SELECT: _SINGLE_CHOICE_OPERATORS,
    FieldType.RADIO: _SINGLE_CHOICE_OPERATORS,
    FieldType.DATE: _SINGLE_CHOICE_OPERATORS,
    FieldType.MULTI_SELECT: _MULTI_CHOICE_OPERATORS,
    FieldType.CHECKBOX: _MULTI_CHOICE_OPERATORS,
    FieldType.FILE: _PRESENCE_OPERATORS,
    FieldType.IMAGE: _PRESENCE_OPERATORS,
    FieldType.ATTACHMENT: _PRESENCE_OPERATORS,
    FieldType.RATING: (
        ConditionOperator.EQUALS,
        ConditionOperator.NOT_EQUALS,
        ConditionOperator.GREATER_THAN,
        ConditionOperator.LESS_THAN,
    ),
    FieldType.MATRIX: _PRESENCE_OPERATORS,
    FieldType.REPEATABLE: _PRESENCE_OPERATORS,
}


def operators_for(field_type: FieldType | str) -> tuple[ConditionOperator, ...]:
    """Operators applicable to a source field of ``field_type``."""
    try:
        return OPERATORS_BY_FIELD_TYPE[FieldType(field_type)]
    except (ValueError, KeyError):
        return (ConditionOperator.EQUALS, ConditionOperator.NOT_EQUALS)
