"""
Validation result models.

These models represent the output of the compiled validation contract.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class FieldValidationError(BaseModel):
    """Validation error for a specific field."""

    field_id: str = Field(..., description="Id of the field with error (dotted path inside repeatables)")
    error_type: str = Field(..., description="Type of validation error")
    message: str = Field(..., description="Human-readable error message")
    expected: Any | None = Field(default=None, description="Expected value/format")
    received: Any | None = Field(default=None, description="Received value")


class ValidationResult(BaseModel):
    """Result of form validation."""

    is_valid: bool = Field(..., description="Whether the form data is valid")
    errors: list[FieldValidationError] = Field(
        default_factory=list, description="List of validation errors"
    )
    validated_data: dict[str, Any] | None = Field(
        default=None, description="Cleaned/coerced data if valid"
    )
    warnings: list[str] = Field(
        default_factory=list, description="Non-blocking warnings"
    )

    @property
    def valid(self) -> bool:
        """Alias of ``is_valid``."""
        return self.is_valid

    @property
    def error_count(self) -> int:
        """Get the number of validation errors."""
        return len(self.errors)

    @property
    def errors_by_field_id(self) -> dict[str, list[str]]:
        """Get error messages grouped by field id."""
        return self.to_error_dict()

    def get_field_errors(self, field_id: str) -> list[FieldValidationError]:
        """Get all errors for a specific field."""
        return [e for e in self.errors if e.field_id == field_id]

    def to_error_dict(self) -> dict[str, list[str]]:
        """Convert errors to a dict mapping field ids to error messages."""
        result: dict[str, list[str]] = {}
        for error in self.errors:
            if error.field_id not in result:
                result[error.field_id] = []
            result[error.field_id].append(error.message)
        return result


class CompileIssue(BaseModel):
    """A problem found while compiling a schema into a validation contract."""

    field_id: str = Field(..., description="Field the issue is attributed to")
    kind: Literal["pattern", "self_reference", "dangling_condition", "sub_field_condition"]
    severity: Literal["error", "warning"] = "error"
    message: str
