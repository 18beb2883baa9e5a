"""
Exceptions raised by form-builder.

Integrity errors are raised at the schema store boundary; the mutation
that caused them is discarded and the previous snapshot stays current.
"""


class FormBuilderError(Exception):
    """Base class for all form-builder errors."""


class SchemaIntegrityError(FormBuilderError, ValueError):
    """A mutation or import would leave the schema structurally invalid."""

    def __init__(self, message: str, field_id: str | None = None):
        super().__init__(message)
        self.field_id = field_id


class DuplicateFieldIdError(SchemaIntegrityError):
    """A field id is already used (or was used and retired) in the schema."""


class FieldNotFoundError(SchemaIntegrityError):
    """No field with the given id exists."""


class OptionNotFoundError(SchemaIntegrityError):
    """No option with the given id exists on the field."""


class InvalidOrderError(SchemaIntegrityError):
    """A reorder payload is not a permutation of the current field ids."""


class SelfReferencingConditionError(SchemaIntegrityError):
    """A field has a condition whose source is the field itself."""


class NestingError(SchemaIntegrityError):
    """Sub-fields were placed where the model does not allow them."""
