"""
form-builder: Schema-Driven Form Engine.

Compose a form schema field by field, then render it as a live form
with conditional visibility and compiled validation.

Building a schema:
    from form_builder import FormBuilder

    builder = FormBuilder()
    q1 = builder.add_field("radio")
    q2 = builder.add_field("text")
    builder.add_condition(q2, source_field_id=q1, operator="equals", value="option1")

    exported = builder.export_schema()

Filling in a form:
    from form_builder import FormSession

    session = FormSession(builder.schema)
    session.set_value(q1, "option1")
    session.is_visible(q2)   # True
    result = session.submit()

Lower level:
    from form_builder import compile_schema, VisibilityEvaluator

    contract = compile_schema(schema)
    contract.validate(values).errors_by_field_id

    VisibilityEvaluator(schema).compute_visible_set(values)
"""

from form_builder.builder import FormBuilder
from form_builder.errors import (
    DuplicateFieldIdError,
    FieldNotFoundError,
    FormBuilderError,
    InvalidOrderError,
    NestingError,
    OptionNotFoundError,
    SchemaIntegrityError,
    SelfReferencingConditionError,
)
from form_builder.models import (
    CompileIssue,
    Condition,
    ConditionOperator,
    FieldOption,
    FieldType,
    FieldValidation,
    FieldValidationError,
    FormField,
    FormSchema,
    FormSettings,
    ValidationResult,
)
from form_builder.session import FormSession, SubmissionResult
from form_builder.store import SchemaStore
from form_builder.validation import ValidationContract, compile_schema
from form_builder.visibility import VisibilityEvaluator, evaluate_condition

__all__ = [
    # Main interface
    "SchemaStore",
    "FormBuilder",
    "FormSession",
    "SubmissionResult",
    # Schema models
    "FieldType",
    "ConditionOperator",
    "FieldOption",
    "FieldValidation",
    "Condition",
    "FormField",
    "FormSchema",
    "FormSettings",
    # Validation
    "compile_schema",
    "ValidationContract",
    "ValidationResult",
    "FieldValidationError",
    "CompileIssue",
    # Visibility
    "VisibilityEvaluator",
    "evaluate_condition",
    # Errors
    "FormBuilderError",
    "SchemaIntegrityError",
    "DuplicateFieldIdError",
    "FieldNotFoundError",
    "OptionNotFoundError",
    "InvalidOrderError",
    "SelfReferencingConditionError",
    "NestingError",
]

__version__ = "0.1.0"
