"""
Compiled field rules.

Each rule kind is a small frozen model; together they form a tagged union
on ``kind``. ``validate_value`` is the single dispatcher that applies a
rule to one value and returns the cleaned value plus any errors.
"""

import datetime
import math
import re
from typing import Annotated, Any, Callable, Literal, Union

from pydantic import BaseModel, Field

from form_builder.models import FieldType, FieldValidationError
from form_builder.validation.constants import EMAIL_PATTERN, MESSAGES, NUMBER_PATTERN


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


# Marker for a key absent from the value mapping
MISSING: Any = _Missing()

# (error_type, message, expected)
Failure = tuple[str, str, Any]


class BaseRule(BaseModel):
    field_id: str
    field_type: FieldType
    required: bool = False
    custom_message: str | None = None

    model_config = {"frozen": True}


class StringRule(BaseRule):
    kind: Literal["string"] = "string"
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    email: bool = False


class NumberRule(BaseRule):
    kind: Literal["number"] = "number"
    coerce: bool = True
    minimum: int | float | None = None
    maximum: int | float | None = None


class ChoiceListRule(BaseRule):
    kind: Literal["choice_list"] = "choice_list"
    min_items: int | float | None = None
    max_items: int | float | None = None


class DateRule(BaseRule):
    kind: Literal["date"] = "date"


class AnyRule(BaseRule):
    """Accepts any value. File constraints are carried for the UI only."""

    kind: Literal["any"] = "any"
    allowed_file_types: tuple[str, ...] | None = None
    max_file_size: int | float | None = None
    max_files: int | None = None


class MatrixRule(BaseRule):
    kind: Literal["matrix"] = "matrix"


class RepeatableRule(BaseRule):
    kind: Literal["repeatable"] = "repeatable"
    entry_rules: dict[str, "FieldRule"] = Field(default_factory=dict)


class MisconfiguredRule(BaseRule):
    """Stands in for a field whose constraints could not be compiled; always valid."""

    kind: Literal["misconfigured"] = "misconfigured"
    reason: str


FieldRule = Annotated[
    Union[
        StringRule,
        NumberRule,
        ChoiceListRule,
        DateRule,
        AnyRule,
        MatrixRule,
        RepeatableRule,
        MisconfiguredRule,
    ],
    Field(discriminator="kind"),
]

RepeatableRule.model_rebuild()


def is_missing(value: Any) -> bool:
    """Absent, None, blank text and empty containers count as unanswered."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _fmt(limit: int | float) -> str:
    if isinstance(limit, float) and limit.is_integer():
        return str(int(limit))
    return str(limit)


def _message(key: str, limit: int | float | None = None) -> str:
    template = MESSAGES[key]
    return template.format(limit=_fmt(limit)) if limit is not None else template


def _check_string(rule: StringRule, value: Any) -> tuple[Any, list[Failure]]:
    if not isinstance(value, str):
        return value, [("type", _message("expected_text"), "string")]
    failures: list[Failure] = []
    if rule.min_length is not None and len(value) < rule.min_length:
        failures.append(("min_length", _message("min_length", rule.min_length), rule.min_length))
    if rule.max_length is not None and len(value) > rule.max_length:
        failures.append(("max_length", _message("max_length", rule.max_length), rule.max_length))
    if rule.pattern is not None and re.fullmatch(rule.pattern, value) is None:
        failures.append(("pattern", _message("pattern"), rule.pattern))
    if rule.email and EMAIL_PATTERN.fullmatch(value) is None:
        failures.append(("email", _message("email"), "email"))
    return value, failures


def _coerce_number(value: Any, coerce: bool) -> int | float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    elif coerce and isinstance(value, str):
        text = value.strip()
        if NUMBER_PATTERN.fullmatch(text) is None:
            return None
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
    else:
        return None
    if isinstance(number, float) and not math.isfinite(number):
        return None
    return number


def _check_number(rule: NumberRule, value: Any) -> tuple[Any, list[Failure]]:
    number = _coerce_number(value, rule.coerce)
    if number is None:
        return value, [("type", _message("expected_number"), "number")]
    failures: list[Failure] = []
    if rule.minimum is not None and number < rule.minimum:
        failures.append(("minimum", _message("minimum", rule.minimum), rule.minimum))
    if rule.maximum is not None and number > rule.maximum:
        failures.append(("maximum", _message("maximum", rule.maximum), rule.maximum))
    return number, failures


def _check_choice_list(rule: ChoiceListRule, value: Any) -> tuple[Any, list[Failure]]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        return value, [("type", _message("expected_selections"), "list of strings")]
    failures: list[Failure] = []
    if rule.min_items is not None and len(value) < rule.min_items:
        failures.append(("min_items", _message("min_items", rule.min_items), rule.min_items))
    if rule.max_items is not None and len(value) > rule.max_items:
        failures.append(("max_items", _message("max_items", rule.max_items), rule.max_items))
    return list(value), failures


def _check_date(rule: DateRule, value: Any) -> tuple[Any, list[Failure]]:
    if isinstance(value, (str, datetime.date)):
        return value, []
    return value, [("type", _message("expected_date"), "date")]


def _check_any(rule: AnyRule, value: Any) -> tuple[Any, list[Failure]]:
    return value, []


def _check_matrix(rule: MatrixRule, value: Any) -> tuple[Any, list[Failure]]:
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        return value, [("type", _message("expected_matrix"), "mapping of row to column")]
    return dict(value), []


_CHECKS: dict[str, Callable[[Any, Any], tuple[Any, list[Failure]]]] = {
    "string": _check_string,
    "number": _check_number,
    "choice_list": _check_choice_list,
    "date": _check_date,
    "any": _check_any,
    "matrix": _check_matrix,
}


def _empty_value(rule: BaseRule, value: Any) -> Any:
    if isinstance(rule, ChoiceListRule):
        return list(value) if isinstance(value, (list, tuple)) else []
    if isinstance(rule, MatrixRule):
        return dict(value) if isinstance(value, dict) else {}
    if isinstance(rule, RepeatableRule):
        return list(value) if isinstance(value, (list, tuple)) else []
    if isinstance(rule, NumberRule) or value is MISSING:
        return None
    return value


def _to_errors(rule: BaseRule, path: str, failures: list[Failure], received: Any) -> list[FieldValidationError]:
    if not failures:
        return []
    if rule.custom_message:
        error_type, _, expected = failures[0]
        failures = [(error_type, rule.custom_message, expected)]
    received = None if received is MISSING else received
    return [
        FieldValidationError(
            field_id=path,
            error_type=error_type,
            message=message,
            expected=expected,
            received=received,
        )
        for error_type, message, expected in failures
    ]


def _check_repeatable(
    rule: RepeatableRule, value: Any, path: str
) -> tuple[Any, list[FieldValidationError]]:
    if not isinstance(value, (list, tuple)):
        return value, _to_errors(
            rule, path, [("type", _message("expected_entries"), "list of entries")], value
        )

    cleaned_entries: list[Any] = []
    errors: list[FieldValidationError] = []
    for index, entry in enumerate(value):
        entry_path = f"{path}.{index}"
        if not isinstance(entry, dict):
            errors.extend(
                _to_errors(rule, entry_path, [("type", _message("expected_entry"), "object")], entry)
            )
            cleaned_entries.append(entry)
            continue
        cleaned: dict[str, Any] = {}
        for sub_id, sub_rule in rule.entry_rules.items():
            sub_value, sub_errors = validate_value(
                sub_rule, entry.get(sub_id, MISSING), f"{entry_path}.{sub_id}"
            )
            cleaned[sub_id] = sub_value
            errors.extend(sub_errors)
        cleaned_entries.append(cleaned)
    return cleaned_entries, errors


def validate_value(
    rule: FieldRule, value: Any = MISSING, path: str | None = None
) -> tuple[Any, list[FieldValidationError]]:
    """
    Apply one compiled rule to one value.

    Args:
        rule: Compiled rule for the field.
        value: The field's value, or ``MISSING`` when the key is absent.
        path: Error key; defaults to the rule's field id. Entries of a
            repeatable section use ``"<field>.<index>.<sub-field>"``.

    Returns:
        Tuple of (cleaned value, list of errors). Never raises for bad input.
    """
    path = path or rule.field_id

    if isinstance(rule, MisconfiguredRule):
        return (None if value is MISSING else value), []

    if is_missing(value):
        if rule.required:
            return None, _to_errors(rule, path, [("required", _message("required"), None)], value)
        return _empty_value(rule, value), []

    if isinstance(rule, RepeatableRule):
        return _check_repeatable(rule, value, path)

    cleaned, failures = _CHECKS[rule.kind](rule, value)
    return cleaned, _to_errors(rule, path, failures, value)
