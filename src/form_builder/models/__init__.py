"""
Data models for form-builder.

This module contains Pydantic models for:
- Field definitions (types, options, validations, conditions)
- The form schema snapshot and its settings
- Validation results
"""

from form_builder.models.field_definitions import (
    CHOICE_TYPES,
    FILE_TYPES,
    MULTI_CHOICE_TYPES,
    UNARY_OPERATORS,
    Condition,
    ConditionOperator,
    FieldOption,
    FieldType,
    FieldValidation,
    FormField,
)
from form_builder.models.form_schema import (
    FormSchema,
    FormSettings,
    iter_field_ids,
)
from form_builder.models.validation_result import (
    CompileIssue,
    FieldValidationError,
    ValidationResult,
)

__all__ = [
    # Field definitions
    "FieldType",
    "ConditionOperator",
    "FieldOption",
    "FieldValidation",
    "Condition",
    "FormField",
    "CHOICE_TYPES",
    "MULTI_CHOICE_TYPES",
    "FILE_TYPES",
    "UNARY_OPERATORS",
    # Schema
    "FormSchema",
    "FormSettings",
    "iter_field_ids",
    # Validation
    "ValidationResult",
    "FieldValidationError",
    "CompileIssue",
]
