"""
Builder mutation API.

Field-type-aware conveniences layered on a ``SchemaStore``: synthesizing
new fields with default labels and options, editing options, matrix rows
and columns, repeatable sub-fields and visibility conditions. Every
method resolves to one store command, so each call is atomic.
"""

import re
import uuid
from typing import Any, Collection, Mapping

from pydantic import ValidationError

from form_builder.config import get_config
from form_builder.errors import (
    FieldNotFoundError,
    NestingError,
    OptionNotFoundError,
    SchemaIntegrityError,
)
from form_builder.models import (
    CHOICE_TYPES,
    FILE_TYPES,
    Condition,
    ConditionOperator,
    FieldOption,
    FieldType,
    FieldValidation,
    FormField,
    FormSchema,
)
from form_builder.store import SchemaStore, dump_model, to_alias_keys
from form_builder.visibility.predicates import operators_for

DEFAULT_LABELS: dict[FieldType, str] = {
    FieldType.TEXT: "Text Question",
    FieldType.TEXTAREA: "Long Answer Question",
    FieldType.NUMBER: "Number Question",
    FieldType.EMAIL: "Email Address",
    FieldType.SELECT: "Dropdown Question",
    FieldType.MULTI_SELECT: "Multi-Select Question",
    FieldType.CHECKBOX: "Checkbox Question",
    FieldType.RADIO: "Multiple Choice Question",
    FieldType.DATE: "Date Question",
    FieldType.FILE: "File Upload",
    FieldType.RATING: "Rating Question",
    FieldType.MATRIX: "Matrix Question",
    FieldType.REPEATABLE: "Repeatable Section",
}
DEFAULT_LABEL = "New Question"
DEFAULT_PLACEHOLDER = "Enter your answer"


def derive_option_value(label: str) -> str:
    """Option value for a label: lower-cased, whitespace runs become one underscore."""
    return re.sub(r"\s+", "_", label.lower())


def default_label(field_type: FieldType | str) -> str:
    try:
        return DEFAULT_LABELS.get(FieldType(field_type), DEFAULT_LABEL)
    except ValueError:
        return DEFAULT_LABEL


class FormBuilder:
    """
    Mutation API used by the builder UI.

    Usage:
        builder = FormBuilder()
        q1 = builder.add_field("radio")
        q2 = builder.add_field("text")
        builder.add_condition(q2, source_field_id=q1, operator="equals", value="option1")
        schema = builder.schema
    """

    def __init__(self, store: SchemaStore | None = None):
        self.store = store if store is not None else SchemaStore()

    @property
    def schema(self) -> FormSchema:
        return self.store.schema

    # Schema-level commands

    def set_title(self, title: str) -> None:
        self.store.set_title(title)

    def set_description(self, description: str) -> None:
        self.store.set_description(description)

    def update_settings(self, partial: Mapping[str, Any]) -> None:
        self.store.update_settings(partial)

    def reset(self) -> None:
        self.store.reset()

    def import_schema(self, schema: FormSchema | Mapping[str, Any]) -> None:
        self.store.import_schema(schema)

    def export_schema(self) -> dict[str, Any]:
        return self.store.export_schema()

    def reorder_fields(self, fields: list[FormField | Mapping[str, Any]]) -> None:
        self.store.reorder_fields(fields)

    def move_field(self, field_id: str, index: int) -> None:
        """Move a top-level field to ``index`` (clamped to the list bounds)."""
        fields = list(self.schema.fields)
        current = self._top_level_index(field_id)
        moved = fields.pop(current)
        index = max(0, min(index, len(fields)))
        fields.insert(index, moved)
        self.store.reorder_fields(fields)

    # Fields

    def generate_id(self, taken: Collection[str] = ()) -> str:
        """A fresh id not used by any field, past or present, nor in ``taken``."""
        length = get_config().id_length
        while True:
            candidate = uuid.uuid4().hex[:length]
            if candidate not in taken and candidate not in self.store.issued_ids:
                return candidate

    def add_field(self, field_type: FieldType | str) -> str:
        """
        Append a new field with type defaults.

        Returns:
            The new field's id.
        """
        field = self._new_field(FieldType(field_type), default_label(field_type))
        self.store.add_field(field)
        return field.id

    def update_field(self, field_id: str, partial: Mapping[str, Any]) -> None:
        """
        Update a field or sub-field.

        Top-level keys overwrite existing ones, except ``validations``,
        which is merged one level deep into the current validations.
        """
        parent, field = self._locate(field_id)
        if parent is not None:
            self.update_sub_field(parent.id, field_id, partial)
            return
        self.store.update_field(field_id, self._merge_validations(field, partial))

    def update_validation(self, field_id: str, key: str, value: Any) -> None:
        """Set one validation key; ``None`` removes it."""
        self.update_field(field_id, {"validations": {key: value}})

    def remove_field(self, field_id: str) -> None:
        parent, _ = self._locate(field_id)
        if parent is not None:
            self.remove_sub_field(parent.id, field_id)
        else:
            self.store.remove_field(field_id)

    # Repeatable sub-fields

    def add_sub_field(self, parent_id: str, field_type: FieldType | str) -> str:
        """
        Append a sub-field to a repeatable section.

        Returns:
            The new sub-field's id.

        Raises:
            NestingError: If the parent is not repeatable or the new type is.
        """
        parent = self._repeatable(parent_id)
        field_type = FieldType(field_type)
        if field_type == FieldType.REPEATABLE:
            raise NestingError("Repeatable sections cannot be nested", parent_id)

        sub_fields = list(parent.sub_fields or ())
        sub = self._new_field(field_type, f"Sub Field {len(sub_fields) + 1}", sub_field=True)
        sub_fields.append(sub)
        self.store.update_field(parent_id, {"subFields": sub_fields})
        return sub.id

    def update_sub_field(self, parent_id: str, sub_id: str, partial: Mapping[str, Any]) -> None:
        parent = self._repeatable(parent_id)
        sub = parent.get_sub_field(sub_id)
        if sub is None:
            raise FieldNotFoundError(f"Sub-field not found: {sub_id}", sub_id)

        changes = self._merge_validations(sub, partial)
        if changes.get("conditions"):
            raise NestingError("Sub-fields cannot carry conditions", sub_id)
        try:
            updated = FormField.model_validate({**dump_model(sub), **changes})
        except ValidationError as e:
            raise SchemaIntegrityError(f"Invalid update for sub-field {sub_id}: {e}", sub_id) from e

        sub_fields = [updated if s.id == sub_id else s for s in parent.sub_fields or ()]
        self.store.update_field(parent_id, {"subFields": sub_fields})

    def remove_sub_field(self, parent_id: str, sub_id: str) -> None:
        parent = self._repeatable(parent_id)
        if parent.get_sub_field(sub_id) is None:
            raise FieldNotFoundError(f"Sub-field not found: {sub_id}", sub_id)
        sub_fields = [s for s in parent.sub_fields or () if s.id != sub_id]
        self.store.update_field(parent_id, {"subFields": sub_fields})

    # Options

    def add_option(self, field_id: str) -> str:
        """Append "Option N" to a field's options. Returns the option id."""
        _, field = self._locate(field_id)
        options = list(field.options or ())
        n = len(options) + 1
        option = FieldOption(
            id=self.generate_id(taken=[o.id for o in options]),
            value=f"option{n}",
            label=f"Option {n}",
        )
        self.update_field(field_id, {"options": options + [option]})
        return option.id

    def update_option(self, field_id: str, option_id: str, label: str) -> None:
        """Relabel an option; its value is re-derived from the label."""
        _, field = self._locate(field_id)
        if field.get_option(option_id) is None:
            raise OptionNotFoundError(f"Option {option_id} not found on field {field_id}", field_id)
        options = [
            o.model_copy(update={"label": label, "value": derive_option_value(label)})
            if o.id == option_id else o
            for o in field.options or ()
        ]
        self.update_field(field_id, {"options": options})

    def remove_option(self, field_id: str, option_id: str) -> None:
        _, field = self._locate(field_id)
        if field.get_option(option_id) is None:
            raise OptionNotFoundError(f"Option {option_id} not found on field {field_id}", field_id)
        options = [o for o in field.options or () if o.id != option_id]
        self.update_field(field_id, {"options": options})

    def add_matrix_row(self, field_id: str) -> str:
        return self._add_matrix_option(field_id, is_column=False)

    def add_matrix_column(self, field_id: str) -> str:
        return self._add_matrix_option(field_id, is_column=True)

    # Conditions

    def available_operators(self, source_field_id: str) -> tuple[ConditionOperator, ...]:
        source = self.schema.get_field(source_field_id)
        if source is None:
            raise FieldNotFoundError(f"Field not found: {source_field_id}", source_field_id)
        return operators_for(source.type)

    def add_condition(
        self,
        field_id: str,
        source_field_id: str | None = None,
        operator: ConditionOperator | str | None = None,
        value: Any = "",
    ) -> int:
        """
        Append a visibility condition to a top-level field.

        The source defaults to the first other field and the operator to
        the first one applicable to the source's type.

        Returns:
            Index of the new condition.
        """
        field = self._top_level(field_id)
        if source_field_id is None:
            others = [f.id for f in self.schema.fields if f.id != field_id]
            if not others:
                raise SchemaIntegrityError("No other field is available as a condition source", field_id)
            source_field_id = others[0]
        if operator is None:
            source = self.schema.get_field(source_field_id)
            operator = operators_for(source.type)[0] if source else ConditionOperator.EQUALS

        conditions = list(field.conditions or ())
        conditions.append(Condition(source_field_id=source_field_id, operator=operator, value=value))
        self.store.update_field(field_id, {"conditions": conditions})
        return len(conditions) - 1

    def update_condition(self, field_id: str, index: int, **changes: Any) -> None:
        field = self._top_level(field_id)
        conditions = list(field.conditions or ())
        self._check_condition_index(field_id, conditions, index)
        merged = {**dump_model(conditions[index]), **to_alias_keys(Condition, changes)}
        try:
            conditions[index] = Condition.model_validate(merged)
        except ValidationError as e:
            raise SchemaIntegrityError(f"Invalid condition for field {field_id}: {e}", field_id) from e
        self.store.update_field(field_id, {"conditions": conditions})

    def remove_condition(self, field_id: str, index: int) -> None:
        field = self._top_level(field_id)
        conditions = list(field.conditions or ())
        self._check_condition_index(field_id, conditions, index)
        del conditions[index]
        self.store.update_field(field_id, {"conditions": conditions})

    # Internals

    def _new_field(self, field_type: FieldType, label: str, sub_field: bool = False) -> FormField:
        data: dict[str, Any] = {
            "id": self.generate_id(),
            "type": field_type,
            "label": label,
            "required": False,
            "placeholder": "" if field_type in FILE_TYPES else DEFAULT_PLACEHOLDER,
            "helpText": "",
            "options": self._default_options(field_type),
            "validations": {},
        }
        if not sub_field:
            data["conditions"] = []
        if field_type == FieldType.REPEATABLE:
            data["subFields"] = []
        return FormField.model_validate(data)

    def _default_options(self, field_type: FieldType) -> list[FieldOption]:
        if field_type in CHOICE_TYPES:
            specs = [(f"option{n}", f"Option {n}", None) for n in (1, 2, 3)]
        elif field_type == FieldType.MATRIX:
            specs = [(f"row{n}", f"Row {n}", False) for n in (1, 2)]
            specs += [(f"column{n}", f"Column {n}", True) for n in (1, 2, 3)]
        else:
            return []

        options: list[FieldOption] = []
        for value, label, is_column in specs:
            option_id = self.generate_id(taken=[o.id for o in options])
            options.append(FieldOption(id=option_id, value=value, label=label, is_column=is_column))
        return options

    def _add_matrix_option(self, field_id: str, is_column: bool) -> str:
        _, field = self._locate(field_id)
        if field.type != FieldType.MATRIX:
            raise SchemaIntegrityError(f"Field {field_id} is not a matrix", field_id)
        options = list(field.options or ())
        if is_column:
            n = len(field.columns) + 1
            value, label = f"column{n}", f"Column {n}"
        else:
            n = len(field.rows) + 1
            value, label = f"row{n}", f"Row {n}"
        option = FieldOption(
            id=self.generate_id(taken=[o.id for o in options]),
            value=value,
            label=label,
            is_column=is_column,
        )
        self.update_field(field_id, {"options": options + [option]})
        return option.id

    def _merge_validations(self, field: FormField, partial: Mapping[str, Any]) -> dict[str, Any]:
        changes = to_alias_keys(FormField, partial)
        new = changes.get("validations")
        if new is None:
            return changes
        if isinstance(new, FieldValidation):
            new = dump_model(new)
        current = dump_model(field.validations) if field.validations else {}
        changes["validations"] = {**current, **to_alias_keys(FieldValidation, new)}
        return changes

    def _locate(self, field_id: str) -> tuple[FormField | None, FormField]:
        """Return (parent repeatable or None, field)."""
        schema = self.schema
        field = schema.get_field(field_id)
        if field is not None:
            return None, field
        parent = schema.find_parent(field_id)
        if parent is not None:
            return parent, parent.get_sub_field(field_id)
        raise FieldNotFoundError(f"Field not found: {field_id}", field_id)

    def _top_level(self, field_id: str) -> FormField:
        field = self.schema.get_field(field_id)
        if field is not None:
            return field
        if self.schema.find_parent(field_id) is not None:
            raise NestingError("Conditions can only be attached to top-level fields", field_id)
        raise FieldNotFoundError(f"Field not found: {field_id}", field_id)

    def _top_level_index(self, field_id: str) -> int:
        for i, f in enumerate(self.schema.fields):
            if f.id == field_id:
                return i
        raise FieldNotFoundError(f"Field not found: {field_id}", field_id)

    def _repeatable(self, parent_id: str) -> FormField:
        parent = self.schema.get_field(parent_id)
        if parent is None:
            raise FieldNotFoundError(f"Field not found: {parent_id}", parent_id)
        if parent.type != FieldType.REPEATABLE:
            raise NestingError(f"Field {parent_id} is not a repeatable section", parent_id)
        return parent

    @staticmethod
    def _check_condition_index(field_id: str, conditions: list[Condition], index: int) -> None:
        if not 0 <= index < len(conditions):
            raise SchemaIntegrityError(f"Field {field_id} has no condition at index {index}", field_id)
