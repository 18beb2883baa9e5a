"""
Constants for the validation compiler.

Message templates and patterns used when building and applying field
rules. Templates are formatted with ``limit`` where they take one.
"""

import re

# Email shape check, always applied to email fields with fullmatch
EMAIL_PATTERN = re.compile(
    r"(?!\.)(?!.*\.\.)([A-Z0-9_'+\-.]*)[A-Z0-9_+-]@([A-Z0-9][A-Z0-9\-]*\.)+[A-Z]{2,}",
    re.IGNORECASE,
)

# Plain decimal numerals accepted when coercing text to a number
NUMBER_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

MESSAGES = {
    "required": "This field is required",
    "expected_text": "Expected text",
    "min_length": "Must be at least {limit} characters",
    "max_length": "Must be at most {limit} characters",
    "pattern": "Invalid format",
    "email": "Invalid email address",
    "expected_number": "Must be a number",
    "minimum": "Must be at least {limit}",
    "maximum": "Must be at most {limit}",
    "expected_selections": "Expected a list of selections",
    "min_items": "Please select at least {limit} options",
    "max_items": "Please select at most {limit} options",
    "expected_date": "Invalid date",
    "expected_matrix": "Invalid selection",
    "expected_entries": "Expected a list of entries",
    "expected_entry": "Invalid entry",
}
