"""
Conditional visibility for form fields.

Predicates evaluate single operators; the evaluator combines a field's
conditions with AND semantics.
"""

from form_builder.visibility.evaluator import VisibilityEvaluator
from form_builder.visibility.predicates import (
    OPERATOR_LABELS,
    OPERATORS_BY_FIELD_TYPE,
    PREDICATES,
    evaluate_condition,
    operators_for,
)

__all__ = [
    "VisibilityEvaluator",
    "evaluate_condition",
    "operators_for",
    "PREDICATES",
    "OPERATOR_LABELS",
    "OPERATORS_BY_FIELD_TYPE",
]
