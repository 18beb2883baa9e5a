"""
Form session.

Owns the live value mapping of one rendered form. Every value change
recomputes the visible set before the call returns, so visibility and
validation always reflect the values that produced them. Repeatable
sections store a list of entries under the section's id; each entry maps
sub-field ids to values, so edits to different entries never share keys.
"""

import copy
import logging
from typing import Any, Callable, Mapping

from pydantic import BaseModel, Field

from form_builder.errors import FieldNotFoundError, NestingError
from form_builder.models import (
    FILE_TYPES,
    MULTI_CHOICE_TYPES,
    FieldType,
    FormField,
    FormSchema,
    ValidationResult,
)
from form_builder.store import SchemaStore
from form_builder.validation import ValidationContract, compile_schema
from form_builder.visibility import VisibilityEvaluator

logger = logging.getLogger("form-builder")

_FILE_SUMMARY_KEYS = ("name", "type", "size")


class SubmissionResult(BaseModel):
    """Outcome of submitting a form session."""

    accepted: bool = Field(..., description="Whether the submission passed validation")
    validation: ValidationResult
    data: dict[str, Any] | None = Field(
        default=None, description="Visible answers keyed by field label"
    )
    confirmation_message: str | None = None


def default_value(field: FormField) -> Any:
    """Initial value of a field before the user touches it."""
    if field.type in MULTI_CHOICE_TYPES or field.type == FieldType.REPEATABLE:
        return []
    if field.type == FieldType.MATRIX:
        return {}
    if field.type == FieldType.RATING:
        return 0
    if field.type == FieldType.NUMBER or field.type in FILE_TYPES:
        return None
    return ""


def _file_summary(value: Any) -> Any:
    if isinstance(value, list):
        return [_file_summary(v) for v in value]
    if isinstance(value, Mapping):
        return {key: value.get(key) for key in _FILE_SUMMARY_KEYS}
    if all(hasattr(value, key) for key in _FILE_SUMMARY_KEYS):
        return {key: getattr(value, key) for key in _FILE_SUMMARY_KEYS}
    return value


class FormSession:
    """
    Live state of one form being filled in.

    Usage:
        session = FormSession(schema)
        session.set_value("q1", "yes")
        session.is_visible("q2")
        result = session.submit()
    """

    def __init__(self, schema: FormSchema, values: Mapping[str, Any] | None = None):
        self._unsubscribe: Callable[[], None] | None = None
        self._bind(schema)
        self._values: dict[str, Any] = {f.id: default_value(f) for f in schema.fields}
        if values:
            # Keys for unknown fields are dropped
            self._values.update(
                {k: copy.deepcopy(v) for k, v in values.items() if k in self._values}
            )
        self._recompute()

    @classmethod
    def attach(cls, store: SchemaStore, values: Mapping[str, Any] | None = None) -> "FormSession":
        """Create a session that follows every schema change committed to ``store``."""
        session = cls(store.schema, values)
        session._unsubscribe = store.subscribe(session.rebind)
        return session

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def schema(self) -> FormSchema:
        return self._schema

    @property
    def contract(self) -> ValidationContract:
        return self._contract

    @property
    def values(self) -> dict[str, Any]:
        """A copy of the current value mapping."""
        return copy.deepcopy(self._values)

    @property
    def visible_set(self) -> frozenset[str]:
        return self._visible

    @property
    def visible_fields(self) -> list[str]:
        """Visible top-level field ids in schema order."""
        return [f.id for f in self._schema.fields if f.id in self._visible]

    def is_visible(self, field_id: str) -> bool:
        parent = self._schema.find_parent(field_id)
        return (parent.id if parent else field_id) in self._visible

    def rebind(self, schema: FormSchema) -> None:
        """Switch to a new schema snapshot, keeping values of surviving fields."""
        self._bind(schema)
        self._values = {
            f.id: self._values[f.id] if f.id in self._values else default_value(f)
            for f in schema.fields
        }
        self._recompute()

    # Values

    def get_value(self, field_id: str) -> Any:
        self._field(field_id)
        return copy.deepcopy(self._values.get(field_id))

    def set_value(self, field_id: str, value: Any) -> None:
        self._field(field_id)
        self._values[field_id] = copy.deepcopy(value)
        self._recompute()

    def update_values(self, values: Mapping[str, Any]) -> None:
        for field_id in values:
            self._field(field_id)
        self._values.update(copy.deepcopy(dict(values)))
        self._recompute()

    # Repeatable entries

    def entries(self, field_id: str) -> list[dict[str, Any]]:
        self._repeatable(field_id)
        return copy.deepcopy(list(self._values.get(field_id) or []))

    def can_add_entry(self, field_id: str) -> bool:
        field = self._repeatable(field_id)
        limit = field.validations.max if field.validations else None
        return not limit or len(self._values.get(field_id) or []) < limit

    def can_remove_entry(self, field_id: str) -> bool:
        field = self._repeatable(field_id)
        limit = field.validations.min if field.validations else None
        return not limit or len(self._values.get(field_id) or []) > limit

    def add_entry(self, field_id: str) -> bool:
        """
        Append an empty entry to a repeatable section.

        Returns:
            False, without changing anything, once the section holds ``max`` entries.
        """
        field = self._repeatable(field_id)
        if not self.can_add_entry(field_id):
            logger.debug(f"Refused to add entry to {field_id}: maximum reached")
            return False
        entry = {sub.id: None for sub in field.sub_fields or ()}
        self._values[field_id] = list(self._values.get(field_id) or []) + [entry]
        self._recompute()
        return True

    def remove_entry(self, field_id: str, index: int) -> bool:
        """
        Remove the entry at ``index``.

        Returns:
            False, without changing anything, once the section holds only ``min`` entries.

        Raises:
            IndexError: If there is no entry at ``index``.
        """
        if not self.can_remove_entry(field_id):
            logger.debug(f"Refused to remove entry from {field_id}: minimum reached")
            return False
        entries = list(self._values.get(field_id) or [])
        del entries[index]
        self._values[field_id] = entries
        self._recompute()
        return True

    def set_entry_value(self, field_id: str, index: int, sub_id: str, value: Any) -> None:
        field = self._repeatable(field_id)
        if field.get_sub_field(sub_id) is None:
            raise FieldNotFoundError(f"Sub-field not found: {sub_id}", sub_id)
        entries = list(self._values.get(field_id) or [])
        entry = dict(entries[index])
        entry[sub_id] = copy.deepcopy(value)
        entries[index] = entry
        self._values[field_id] = entries
        self._recompute()

    # Validation and submission

    def validate(self) -> ValidationResult:
        """Validate the visible fields against the compiled contract."""
        return self._contract.validate(self._values, visible=self._visible)

    def submit(self) -> SubmissionResult:
        result = self.validate()
        if not result.is_valid:
            logger.info(f"Submission rejected with {result.error_count} errors")
            return SubmissionResult(accepted=False, validation=result)

        data: dict[str, Any] = {}
        cleaned = result.validated_data or {}
        for field in self._schema.fields:
            if field.id not in self._visible or field.id not in cleaned:
                continue
            value = cleaned[field.id]
            if field.type in FILE_TYPES and value:
                value = _file_summary(value)
            data[field.label] = value

        logger.info(f"Submission accepted for form {self._schema.title!r}")
        return SubmissionResult(
            accepted=True,
            validation=result,
            data=data,
            confirmation_message=self._schema.settings.confirmation_message,
        )

    # Internals

    def _bind(self, schema: FormSchema) -> None:
        self._schema = schema
        self._contract = compile_schema(schema)
        self._evaluator = VisibilityEvaluator(schema)

    def _recompute(self) -> None:
        self._visible = self._evaluator.compute_visible_set(self._values)

    def _field(self, field_id: str) -> FormField:
        field = self._schema.get_field(field_id)
        if field is None:
            raise FieldNotFoundError(f"Field not found: {field_id}", field_id)
        return field

    def _repeatable(self, field_id: str) -> FormField:
        field = self._field(field_id)
        if field.type != FieldType.REPEATABLE:
            raise NestingError(f"Field {field_id} is not a repeatable section", field_id)
        return field
