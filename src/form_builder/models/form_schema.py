"""
Form schema models.

``FormSchema`` is both the in-memory snapshot held by the store and the
export format: ``to_dict()`` yields a plain JSON-compatible structure
that ``FormSchema.model_validate`` (or ``from_json``) reads back.
"""

import json
from typing import Any, Iterable

from pydantic import BaseModel, Field

from form_builder.config import get_config
from form_builder.models.field_definitions import FormField


def _default_settings() -> "FormSettings":
    return FormSettings.default()


class FormSettings(BaseModel):
    """Presentation settings. Paging flags are stored but not acted on."""

    show_progress_bar: bool = Field(default=True, alias="showProgressBar")
    show_page_titles: bool = Field(default=True, alias="showPageTitles")
    confirmation_message: str = Field(
        default="Thank you for your submission!", alias="confirmationMessage"
    )

    model_config = {"populate_by_name": True, "frozen": True}

    @classmethod
    def default(cls) -> "FormSettings":
        config = get_config()
        return cls(
            show_progress_bar=config.default_show_progress_bar,
            show_page_titles=config.default_show_page_titles,
            confirmation_message=config.default_confirmation_message,
        )


class FormSchema(BaseModel):
    """
    Complete form definition.

    Field order is significant and user-controlled.
    """

    title: str = Field(..., description="Form title")
    description: str = Field(default="", description="Form description")
    fields: tuple[FormField, ...] = Field(default=(), description="Ordered top-level fields")
    settings: FormSettings = Field(default_factory=_default_settings)

    model_config = {"populate_by_name": True, "frozen": True}

    @classmethod
    def default(cls) -> "FormSchema":
        """Empty schema with the configured default title and settings."""
        config = get_config()
        return cls(
            title=config.default_title,
            description=config.default_description,
            fields=(),
            settings=FormSettings.default(),
        )

    @classmethod
    def from_json(cls, text: str) -> "FormSchema":
        return cls.model_validate(json.loads(text))

    def field_ids(self) -> list[str]:
        """Top-level field ids in order."""
        return [f.id for f in self.fields]

    def all_field_ids(self) -> list[str]:
        """Every field id including sub-fields. Duplicates are kept."""
        return list(iter_field_ids(self.fields))

    def get_field(self, field_id: str) -> FormField | None:
        """Find a top-level field."""
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def find_field(self, field_id: str) -> FormField | None:
        """Find a top-level field or a sub-field of a repeatable."""
        for f in self.fields:
            if f.id == field_id:
                return f
            sub = f.get_sub_field(field_id)
            if sub is not None:
                return sub
        return None

    def find_parent(self, field_id: str) -> FormField | None:
        """Return the repeatable that owns a sub-field, or None."""
        for f in self.fields:
            if f.get_sub_field(field_id) is not None:
                return f
        return None

    def to_dict(self) -> dict[str, Any]:
        """Export as a JSON-compatible dict (camelCase keys, absent optionals omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: int | None = None) -> str:
        if indent is None:
            indent = get_config().indent_json_output
        return json.dumps(self.to_dict(), indent=indent)


def iter_field_ids(fields: Iterable[FormField]) -> Iterable[str]:
    for f in fields:
        yield f.id
        if f.sub_fields:
            yield from iter_field_ids(f.sub_fields)
