"""
Field definition models for the form schema.

A form is an ordered list of fields. Each field has a fixed type, an
optional option set (choice and matrix types), an optional validation
bag, an AND-list of visibility conditions, and, for repeatable sections,
one level of sub-fields.

Attribute names are snake_case; the serialized form uses the camelCase
aliases (``sourceFieldId``, ``helpText``, ``subFields``...).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FieldType(str, Enum):
    """Supported form field types."""

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    SELECT = "select"
    MULTI_SELECT = "multiSelect"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DATE = "date"
    FILE = "file"
    IMAGE = "image"
    ATTACHMENT = "attachment"
    RATING = "rating"
    MATRIX = "matrix"
    REPEATABLE = "repeatable"


# Types whose options are a flat list of choices
CHOICE_TYPES = frozenset({
    FieldType.SELECT,
    FieldType.MULTI_SELECT,
    FieldType.CHECKBOX,
    FieldType.RADIO,
})

# Types whose value is a list of selected option values
MULTI_CHOICE_TYPES = frozenset({FieldType.MULTI_SELECT, FieldType.CHECKBOX})

FILE_TYPES = frozenset({FieldType.FILE, FieldType.IMAGE, FieldType.ATTACHMENT})


class ConditionOperator(str, Enum):
    """Comparison operators for visibility conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    NOT_CONTAINS = "notContains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    IS_EMPTY = "isEmpty"
    IS_NOT_EMPTY = "isNotEmpty"


# Operators that ignore the condition's value
UNARY_OPERATORS = frozenset({ConditionOperator.IS_EMPTY, ConditionOperator.IS_NOT_EMPTY})


class FieldOption(BaseModel):
    """One choice of a choice field, or one row/column of a matrix."""

    id: str = Field(..., description="Option id, unique within its field")
    value: str = Field(..., description="Submitted value")
    label: str = Field(..., description="Displayed label")
    is_column: bool | None = Field(
        default=None,
        alias="isColumn",
        description="Matrix only: True for a column, False/absent for a row",
    )

    model_config = {"populate_by_name": True, "frozen": True}


class FieldValidation(BaseModel):
    """Optional constraint bag attached to a field."""

    min: int | float | None = Field(
        default=None, description="Numeric lower bound, or minimum selections/entries"
    )
    max: int | float | None = Field(
        default=None, description="Numeric upper bound, or maximum selections/entries"
    )
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = Field(
        default=None, description="Regular expression the whole text must match"
    )
    allowed_file_types: tuple[str, ...] | None = Field(default=None, alias="allowedFileTypes")
    max_file_size: int | float | None = Field(default=None, alias="maxFileSize")
    max_files: int | None = Field(default=None, alias="maxFiles")
    custom_message: str | None = Field(
        default=None,
        alias="customMessage",
        description="Replaces every generated failure message for the field",
    )

    model_config = {"populate_by_name": True, "frozen": True}


class Condition(BaseModel):
    """A single comparison gating a field's visibility."""

    source_field_id: str = Field(
        ..., alias="sourceFieldId", description="Top-level field whose value is compared"
    )
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: Any = Field(
        default=None, description="Right operand; ignored by isEmpty/isNotEmpty"
    )

    model_config = {"populate_by_name": True, "frozen": True}


class FormField(BaseModel):
    """Definition of a single form field."""

    id: str = Field(..., min_length=1, description="Field id, unique across the whole schema")
    type: FieldType = Field(..., description="Field type")
    label: str = Field(..., description="Question label")
    required: bool = Field(default=False)
    placeholder: str | None = Field(default=None)
    help_text: str | None = Field(default=None, alias="helpText")
    options: tuple[FieldOption, ...] | None = Field(
        default=None, description="Choices, or matrix rows and columns"
    )
    validations: FieldValidation | None = Field(default=None)
    conditions: tuple[Condition, ...] | None = Field(
        default=None, description="Visibility conditions, all must hold"
    )
    sub_fields: tuple["FormField", ...] | None = Field(
        default=None, alias="subFields", description="Repeatable sections only"
    )

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def rows(self) -> list[FieldOption]:
        """Matrix rows: options not flagged as columns."""
        return [opt for opt in self.options or () if not opt.is_column]

    @property
    def columns(self) -> list[FieldOption]:
        """Matrix columns."""
        return [opt for opt in self.options or () if opt.is_column]

    @property
    def has_conditions(self) -> bool:
        return bool(self.conditions)

    def get_option(self, option_id: str) -> FieldOption | None:
        for opt in self.options or ():
            if opt.id == option_id:
                return opt
        return None

    def get_sub_field(self, sub_id: str) -> "FormField | None":
        for sub in self.sub_fields or ():
            if sub.id == sub_id:
                return sub
        return None
