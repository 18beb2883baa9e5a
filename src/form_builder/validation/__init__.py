"""
Validation compiler and rule dispatcher.
"""

from form_builder.validation.compiler import (
    ValidationContract,
    compile_field,
    compile_schema,
)
from form_builder.validation.rules import (
    MISSING,
    FieldRule,
    MisconfiguredRule,
    is_missing,
    validate_value,
)

__all__ = [
    "compile_schema",
    "compile_field",
    "ValidationContract",
    "FieldRule",
    "MisconfiguredRule",
    "validate_value",
    "is_missing",
    "MISSING",
]
