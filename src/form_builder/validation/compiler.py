"""
Validation compiler.

Turns a ``FormSchema`` into a ``ValidationContract``: one compiled rule
per top-level field, with repeatable sections carrying the rules of
their sub-fields. Compilation never raises for a bad constraint; an
invalid ``pattern`` is reported as a compile issue and the field's rule
is replaced by an always-valid ``MisconfiguredRule``.
"""

import logging
import re
from typing import Any, Collection, Mapping

from pydantic import BaseModel, Field

from form_builder.models import (
    CompileIssue,
    FieldType,
    FieldValidation,
    FieldValidationError,
    FormField,
    FormSchema,
    ValidationResult,
)
from form_builder.validation.rules import (
    MISSING,
    AnyRule,
    ChoiceListRule,
    DateRule,
    FieldRule,
    MatrixRule,
    MisconfiguredRule,
    NumberRule,
    RepeatableRule,
    StringRule,
    validate_value,
)

logger = logging.getLogger("form-builder")


class ValidationContract(BaseModel):
    """Compiled per-field acceptance rules for one schema snapshot."""

    rules: dict[str, FieldRule] = Field(default_factory=dict)
    issues: list[CompileIssue] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def compile_errors(self) -> dict[str, list[str]]:
        """Error-severity compile issues keyed by field id."""
        result: dict[str, list[str]] = {}
        for issue in self.issues:
            if issue.severity == "error":
                result.setdefault(issue.field_id, []).append(issue.message)
        return result

    @property
    def misconfigured_fields(self) -> list[str]:
        return [fid for fid, rule in self.rules.items() if isinstance(rule, MisconfiguredRule)]

    def rule_for(self, field_id: str) -> FieldRule | None:
        return self.rules.get(field_id)

    def validate_field(self, field_id: str, value: Any = MISSING) -> list[FieldValidationError]:
        rule = self.rules.get(field_id)
        if rule is None:
            return []
        _, errors = validate_value(rule, value)
        return errors

    def validate(
        self,
        values: Mapping[str, Any],
        visible: Collection[str] | None = None,
    ) -> ValidationResult:
        """
        Validate a value mapping.

        Args:
            values: Field id to current value.
            visible: If given, only these field ids are validated; hidden
                fields neither fail nor appear in the cleaned data.

        Returns:
            ValidationResult; ``validated_data`` is set only when valid.
        """
        data: dict[str, Any] = {}
        errors: list[FieldValidationError] = []
        warnings: list[str] = []

        for field_id, rule in self.rules.items():
            if visible is not None and field_id not in visible:
                continue
            if isinstance(rule, MisconfiguredRule):
                warnings.append(f"Field {field_id} is misconfigured and was not validated: {rule.reason}")
            cleaned, field_errors = validate_value(rule, values.get(field_id, MISSING))
            data[field_id] = cleaned
            errors.extend(field_errors)

        is_valid = not errors
        return ValidationResult(
            is_valid=is_valid,
            errors=errors,
            validated_data=data if is_valid else None,
            warnings=warnings,
        )


def compile_field(field: FormField, issues: list[CompileIssue]) -> FieldRule:
    """Build the rule for one field, appending any compile issues."""
    v = field.validations or FieldValidation()
    base = {
        "field_id": field.id,
        "field_type": field.type,
        "required": field.required,
        "custom_message": v.custom_message,
    }
    field_type = field.type

    if field_type in (FieldType.TEXT, FieldType.TEXTAREA):
        if v.pattern:
            try:
                re.compile(v.pattern)
            except re.error as e:
                reason = f"Invalid pattern {v.pattern!r}: {e}"
                issues.append(CompileIssue(field_id=field.id, kind="pattern", message=reason))
                return MisconfiguredRule(**base, reason=reason)
        return StringRule(
            **base,
            min_length=v.min_length,
            max_length=v.max_length,
            pattern=v.pattern or None,
        )
    if field_type == FieldType.EMAIL:
        return StringRule(**base, email=True)
    if field_type == FieldType.NUMBER:
        return NumberRule(**base, minimum=v.min, maximum=v.max)
    if field_type in (FieldType.SELECT, FieldType.RADIO):
        return StringRule(**base)
    if field_type in (FieldType.MULTI_SELECT, FieldType.CHECKBOX):
        return ChoiceListRule(**base, min_items=v.min, max_items=v.max)
    if field_type == FieldType.DATE:
        return DateRule(**base)
    if field_type in (FieldType.FILE, FieldType.IMAGE, FieldType.ATTACHMENT):
        return AnyRule(
            **base,
            allowed_file_types=v.allowed_file_types,
            max_file_size=v.max_file_size,
            max_files=v.max_files,
        )
    if field_type == FieldType.RATING:
        return NumberRule(**base, coerce=False)
    if field_type == FieldType.MATRIX:
        return MatrixRule(**base)
    if field_type == FieldType.REPEATABLE:
        entry_rules = {sub.id: compile_field(sub, issues) for sub in field.sub_fields or ()}
        return RepeatableRule(**base, entry_rules=entry_rules)
    return AnyRule(**base)


def check_conditions(schema: FormSchema) -> list[CompileIssue]:
    """Report self-referencing and dangling conditions."""
    issues: list[CompileIssue] = []
    top_level = set(schema.field_ids())
    for field in schema.fields:
        for condition in field.conditions or ():
            source = condition.source_field_id
            if source == field.id:
                issues.append(CompileIssue(
                    field_id=field.id,
                    kind="self_reference",
                    message=f"Field {field.id} has a condition on itself; it will never be visible",
                ))
            elif source not in top_level:
                issues.append(CompileIssue(
                    field_id=field.id,
                    kind="dangling_condition",
                    severity="warning",
                    message=f"Condition source {source} does not exist; field {field.id} will stay hidden",
                ))
        for sub in field.sub_fields or ():
            if sub.conditions:
                issues.append(CompileIssue(
                    field_id=sub.id,
                    kind="sub_field_condition",
                    severity="warning",
                    message=f"Conditions on sub-field {sub.id} are ignored",
                ))
    return issues


def compile_schema(schema: FormSchema) -> ValidationContract:
    """
    Compile a schema into a validation contract.

    Args:
        schema: The schema snapshot.

    Returns:
        ValidationContract with one rule per top-level field and the list
        of compile issues found.
    """
    issues: list[CompileIssue] = []
    rules = {field.id: compile_field(field, issues) for field in schema.fields}
    issues.extend(check_conditions(schema))

    for issue in issues:
        logger.warning(f"Compile {issue.severity} on field {issue.field_id}: {issue.message}")

    return ValidationContract(rules=rules, issues=issues)
