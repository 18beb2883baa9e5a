"""
Schema store.

Holds exactly one ``FormSchema`` snapshot and applies mutating commands
to it. Every command builds a complete new snapshot, checks its
integrity, and swaps it in with a single assignment, so a rejected
command leaves the previous snapshot current. Snapshots are frozen and
safe to keep around for diffing or undo.
"""

import logging
from typing import Any, Callable, Iterable, Mapping

from pydantic import BaseModel, ValidationError

from form_builder.errors import (
    DuplicateFieldIdError,
    FieldNotFoundError,
    InvalidOrderError,
    NestingError,
    SchemaIntegrityError,
    SelfReferencingConditionError,
)
from form_builder.models import FieldType, FormField, FormSchema, FormSettings

logger = logging.getLogger("form-builder")

SchemaListener = Callable[[FormSchema], None]


def to_alias_keys(model_cls: type[BaseModel], partial: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize a partial update to the model's serialized key names.

    Accepts either attribute names (``help_text``) or aliases (``helpText``).

    Raises:
        SchemaIntegrityError: If a key is not a field of the model.
    """
    aliases = {name: info.alias or name for name, info in model_cls.model_fields.items()}
    known = set(aliases.values())
    result: dict[str, Any] = {}
    for key, value in partial.items():
        if key in aliases:
            key = aliases[key]
        elif key not in known:
            raise SchemaIntegrityError(f"Unknown {model_cls.__name__} key: {key!r}")
        result[key] = value
    return result


def dump_model(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)


def coerce_field(field: FormField | Mapping[str, Any]) -> FormField:
    if isinstance(field, FormField):
        return field
    try:
        return FormField.model_validate(field)
    except ValidationError as e:
        field_id = field.get("id") if isinstance(field, Mapping) else None
        raise SchemaIntegrityError(f"Invalid field definition: {e}", field_id) from e


def check_integrity(fields: Iterable[FormField], retired: Iterable[str] = ()) -> None:
    """
    Check structural invariants of a field list.

    Raises:
        DuplicateFieldIdError: An id repeats, or reuses a retired id.
        SelfReferencingConditionError: A condition's source is its own field.
        NestingError: Sub-fields on a non-repeatable, or a nested repeatable.
        SchemaIntegrityError: Duplicate option ids within one field.
    """
    seen: set[str] = set()
    retired_ids = set(retired)
    for field in fields:
        _check_field(field, seen, retired_ids, nested=False)


def _check_field(field: FormField, seen: set[str], retired: set[str], nested: bool) -> None:
    if field.id in seen:
        raise DuplicateFieldIdError(f"Duplicate field id: {field.id}", field.id)
    if field.id in retired:
        raise DuplicateFieldIdError(
            f"Field id {field.id} belonged to a deleted field and cannot be reused", field.id
        )
    seen.add(field.id)

    for condition in field.conditions or ():
        if condition.source_field_id == field.id:
            raise SelfReferencingConditionError(
                f"Field {field.id} has a condition on itself", field.id
            )

    option_ids = [opt.id for opt in field.options or ()]
    if len(option_ids) != len(set(option_ids)):
        raise SchemaIntegrityError(f"Duplicate option id in field {field.id}", field.id)

    if nested and field.type == FieldType.REPEATABLE:
        raise NestingError(f"Repeatable section {field.id} cannot be nested", field.id)
    if field.sub_fields:
        if field.type != FieldType.REPEATABLE:
            raise NestingError(
                f"Field {field.id} of type {field.type.value} cannot have sub-fields", field.id
            )
        for sub in field.sub_fields:
            _check_field(sub, seen, retired, nested=True)


class SchemaStore:
    """
    Owner of the active form schema.

    Usage:
        store = SchemaStore()
        store.set_title("Customer survey")
        store.add_field({"id": "q1", "type": "text", "label": "Name"})
        snapshot = store.schema
    """

    def __init__(self, schema: FormSchema | Mapping[str, Any] | None = None):
        self._listeners: list[SchemaListener] = []
        self._issued_ids: set[str] = set()
        self._schema = FormSchema.default()
        if schema is not None:
            self.import_schema(schema)

    @property
    def schema(self) -> FormSchema:
        """The current snapshot."""
        return self._schema

    @property
    def issued_ids(self) -> frozenset[str]:
        """Every field id used during this schema's lifetime, deleted ones included."""
        return frozenset(self._issued_ids)

    def subscribe(self, listener: SchemaListener) -> Callable[[], None]:
        """
        Call ``listener`` with each new snapshot after a command commits.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_field(self, field_id: str) -> FormField | None:
        return self._schema.get_field(field_id)

    # Commands

    def set_title(self, title: str) -> None:
        self._commit(self._revalidated("set_title", title=title), "set_title")

    def set_description(self, description: str) -> None:
        self._commit(self._revalidated("set_description", description=description), "set_description")

    def add_field(self, field: FormField | Mapping[str, Any]) -> None:
        field = coerce_field(field)
        fields = self._schema.fields + (field,)
        self._commit(self._schema.model_copy(update={"fields": fields}), "add_field")

    def update_field(self, field_id: str, partial: Mapping[str, Any]) -> None:
        """
        Shallow-merge ``partial`` into a top-level field.

        Keys overwrite the existing ones; nested objects such as
        ``validations`` are replaced, not merged.
        """
        index = self._index_of(field_id)
        existing = self._schema.fields[index]
        merged = {**dump_model(existing), **to_alias_keys(FormField, partial)}
        try:
            updated = FormField.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"Rejected update of field {field_id}: {e}")
            raise SchemaIntegrityError(f"Invalid update for field {field_id}: {e}", field_id) from e

        fields = list(self._schema.fields)
        fields[index] = updated
        self._commit(self._schema.model_copy(update={"fields": tuple(fields)}), "update_field")

    def remove_field(self, field_id: str) -> None:
        """
        Remove a top-level field.

        Conditions on other fields that reference it are left in place and
        fail closed during visibility evaluation.
        """
        self._index_of(field_id)
        fields = tuple(f for f in self._schema.fields if f.id != field_id)
        self._commit(self._schema.model_copy(update={"fields": fields}), "remove_field")

    def reorder_fields(self, fields: Iterable[FormField | Mapping[str, Any]]) -> None:
        """
        Replace the field list with a reordered one.

        Raises:
            InvalidOrderError: If the ids are not a permutation of the current ids.
        """
        reordered = tuple(coerce_field(f) for f in fields)
        new_ids = [f.id for f in reordered]
        current_ids = self._schema.field_ids()
        if len(new_ids) != len(current_ids) or sorted(new_ids) != sorted(current_ids):
            logger.warning(f"Rejected reorder: {new_ids} is not a permutation of {current_ids}")
            raise InvalidOrderError("Reordered fields must be a permutation of the existing fields")
        self._commit(self._schema.model_copy(update={"fields": reordered}), "reorder_fields")

    def update_settings(self, partial: Mapping[str, Any]) -> None:
        merged = {**dump_model(self._schema.settings), **to_alias_keys(FormSettings, partial)}
        try:
            settings = FormSettings.model_validate(merged)
        except ValidationError as e:
            raise SchemaIntegrityError(f"Invalid settings: {e}") from e
        self._commit(self._schema.model_copy(update={"settings": settings}), "update_settings")

    def reset(self) -> None:
        self._commit(FormSchema.default(), "reset", new_lifetime=True)

    def import_schema(self, schema: FormSchema | Mapping[str, Any]) -> None:
        """Replace the whole schema after checking its integrity."""
        if not isinstance(schema, FormSchema):
            try:
                schema = FormSchema.model_validate(schema)
            except ValidationError as e:
                logger.warning(f"Rejected import: {e}")
                raise SchemaIntegrityError(f"Invalid schema: {e}") from e
        self._commit(schema, "import_schema", new_lifetime=True)

    def export_schema(self) -> dict[str, Any]:
        return self._schema.to_dict()

    # Internals

    def _index_of(self, field_id: str) -> int:
        for i, f in enumerate(self._schema.fields):
            if f.id == field_id:
                return i
        raise FieldNotFoundError(f"Field not found: {field_id}", field_id)

    def _revalidated(self, action: str, **changes: Any) -> FormSchema:
        """Copy of the snapshot with top-level ``changes``, validated like an import."""
        try:
            return FormSchema.model_validate({**self._schema.model_dump(), **changes})
        except ValidationError as e:
            logger.warning(f"Rejected {action}: {e}")
            raise SchemaIntegrityError(f"Invalid {action}: {e}") from e

    def _commit(self, schema: FormSchema, action: str, new_lifetime: bool = False) -> None:
        retired: set[str] = set()
        if not new_lifetime:
            retired = self._issued_ids - set(self._schema.all_field_ids())
        try:
            check_integrity(schema.fields, retired)
        except SchemaIntegrityError as e:
            logger.warning(f"Rejected {action}: {e}")
            raise

        self._schema = schema
        if new_lifetime:
            self._issued_ids = set()
        self._issued_ids.update(schema.all_field_ids())
        logger.debug(f"{action}: schema now has {len(schema.fields)} fields")

        for listener in list(self._listeners):
            listener(schema)
