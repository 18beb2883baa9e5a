"""
Visibility evaluator.

Computes which fields are visible for a given value mapping. The
computation is a pure function of the schema snapshot and the values,
re-run from scratch on each call; results may be memoized per value
mapping since an evaluator is bound to one immutable snapshot.
"""

from collections import OrderedDict
from typing import Any, Hashable, Iterable, Mapping

from form_builder.config import get_config
from form_builder.models import Condition, FormField, FormSchema
from form_builder.visibility.predicates import evaluate_condition

_SCALARS = (str, int, float, bool, type(None))


def freeze_values(value: Any) -> Hashable:
    """
    Hashable, type-tagged copy of a JSON-like value.

    Raises:
        TypeError: For anything other than scalars, lists and str-keyed dicts.
    """
    if isinstance(value, _SCALARS):
        return (type(value).__name__, value)
    if isinstance(value, list):
        return ("list", tuple(freeze_values(v) for v in value))
    if isinstance(value, dict):
        if not all(isinstance(k, str) for k in value):
            raise TypeError("Only string keys can be frozen")
        return ("dict", tuple(sorted((k, freeze_values(v)) for k, v in value.items())))
    raise TypeError(f"Cannot freeze value of type {type(value).__name__}")


class VisibilityEvaluator:
    """
    Evaluate field conditions against live values.

    A field with no conditions is always visible. A field with conditions
    is visible only when all of them hold. A condition whose source is
    missing from the top-level field list, or is the field itself, never
    holds.

    Usage:
        evaluator = VisibilityEvaluator(schema)
        evaluator.compute_visible_set({"q1": "yes"})
        evaluator.is_visible("q2", {"q1": "yes"})
    """

    def __init__(
        self,
        schema: FormSchema | Iterable[FormField],
        cache_size: int | None = None,
    ):
        fields = schema.fields if isinstance(schema, FormSchema) else schema
        self._fields: tuple[FormField, ...] = tuple(fields)
        self._source_ids = frozenset(f.id for f in self._fields)
        self._parents = {
            sub.id: f.id for f in self._fields for sub in f.sub_fields or ()
        }
        if cache_size is None:
            cache_size = get_config().visibility_cache_size
        self._cache_size = cache_size
        self._cache: OrderedDict[Hashable, frozenset[str]] = OrderedDict()

    @property
    def fields(self) -> tuple[FormField, ...]:
        return self._fields

    def condition_holds(self, field: FormField, condition: Condition, values: Mapping[str, Any]) -> bool:
        source_id = condition.source_field_id
        if source_id == field.id or source_id not in self._source_ids:
            return False
        return evaluate_condition(condition.operator, values.get(source_id), condition.value)

    def field_visible(self, field: FormField, values: Mapping[str, Any]) -> bool:
        if not field.conditions:
            return True
        return all(self.condition_holds(field, c, values) for c in field.conditions)

    def compute_visible_set(self, values: Mapping[str, Any] | None = None) -> frozenset[str]:
        """Ids of the top-level fields visible for ``values``."""
        values = values or {}
        key = self._cache_key(values)
        if key is not None and key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        visible = frozenset(f.id for f in self._fields if self.field_visible(f, values))

        if key is not None:
            self._cache[key] = visible
            if len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
        return visible

    def visible_fields(self, values: Mapping[str, Any] | None = None) -> list[str]:
        """Visible top-level field ids in schema order."""
        visible = self.compute_visible_set(values)
        return [f.id for f in self._fields if f.id in visible]

    def is_visible(self, field_id: str, values: Mapping[str, Any] | None = None) -> bool:
        """
        Whether a field is visible.

        Sub-fields follow their repeatable section. Unknown ids are not visible.
        """
        field_id = self._parents.get(field_id, field_id)
        return field_id in self.compute_visible_set(values)

    def _cache_key(self, values: Mapping[str, Any]) -> Hashable | None:
        # Values that are not plain JSON data are evaluated but never cached
        if self._cache_size <= 0:
            return None
        try:
            return freeze_values(dict(values))
        except TypeError:
            return None
