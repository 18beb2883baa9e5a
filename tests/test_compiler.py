"""Tests for the validation compiler."""

import datetime

import pytest

from form_builder.models import FormSchema
from form_builder.validation import MISSING, compile_schema, is_missing, validate_value
from form_builder.validation.rules import (
    AnyRule,
    ChoiceListRule,
    MisconfiguredRule,
    NumberRule,
    RepeatableRule,
    StringRule,
)


def _schema(*fields: dict) -> FormSchema:
    return FormSchema.model_validate({"title": "T", "fields": list(fields)})


def _compile(field: dict):
    return compile_schema(_schema(field))


class TestIsMissing:
    """Tests for the unanswered check."""

    @pytest.mark.parametrize("value", [MISSING, None, "", "   ", [], {}])
    def test_missing(self, value):
        """Test values that count as unanswered."""
        assert is_missing(value)

    @pytest.mark.parametrize("value", ["x", 0, False, ["a"], {"r": "c"}])
    def test_present(self, value):
        """Test values that count as answered."""
        assert not is_missing(value)


class TestRuleSelection:
    """Tests for the field type to rule mapping."""

    @pytest.mark.parametrize(
        "field_type,rule_cls",
        [
            ("text", StringRule),
            ("textarea", StringRule),
            ("email", StringRule),
            ("select", StringRule),
            ("radio", StringRule),
            ("number", NumberRule),
            ("rating", NumberRule),
            ("multiSelect", ChoiceListRule),
            ("checkbox", ChoiceListRule),
            ("file", AnyRule),
            ("image", AnyRule),
            ("attachment", AnyRule),
            ("repeatable", RepeatableRule),
        ],
    )
    def test_rule_kind(self, field_type, rule_cls):
        """Test each type compiles to the expected rule."""
        contract = _compile({"id": "f", "type": field_type, "label": "F"})
        assert isinstance(contract.rule_for("f"), rule_cls)

    def test_one_rule_per_top_level_field(self):
        """Test sub-fields are folded into their section's rule."""
        contract = compile_schema(_schema(
            {"id": "a", "type": "text", "label": "A"},
            {"id": "rep", "type": "repeatable", "label": "R", "subFields": [{"id": "s", "type": "text", "label": "S"}]},
        ))
        assert list(contract.rules) == ["a", "rep"]
        assert list(contract.rule_for("rep").entry_rules) == ["s"]


class TestRequired:
    """Tests for required handling."""

    @pytest.mark.parametrize(
        "field_type,empty",
        [
            ("text", ""),
            ("text", "  "),
            ("number", None),
            ("multiSelect", []),
            ("matrix", {}),
            ("file", None),
            ("date", ""),
        ],
    )
    def test_required_empty_fails(self, field_type, empty):
        """Test empty values fail a required field."""
        contract = _compile({"id": "f", "type": field_type, "label": "F", "required": True})
        result = contract.validate({"f": empty})
        assert result.errors_by_field_id == {"f": ["This field is required"]}

    def test_required_absent_fails(self):
        """Test an absent key fails a required field."""
        contract = _compile({"id": "f", "type": "text", "label": "F", "required": True})
        assert contract.validate({}).errors_by_field_id == {"f": ["This field is required"]}

    def test_optional_empty_passes(self):
        """Test an empty optional field passes despite its constraints."""
        contract = _compile({
            "id": "f", "type": "text", "label": "F", "validations": {"minLength": 3},
        })
        result = contract.validate({"f": ""})
        assert result.is_valid
        assert result.validated_data == {"f": ""}

    def test_optional_absent_cleaned_values(self):
        """Test cleaned values for absent optional fields."""
        contract = compile_schema(_schema(
            {"id": "n", "type": "number", "label": "N"},
            {"id": "m", "type": "multiSelect", "label": "M"},
            {"id": "x", "type": "matrix", "label": "X"},
            {"id": "t", "type": "text", "label": "T"},
        ))
        assert contract.validate({}).validated_data == {"n": None, "m": [], "x": {}, "t": None}

    def test_required_rating_zero_passes(self):
        """Test zero counts as an answer for a rating."""
        contract = _compile({"id": "r", "type": "rating", "label": "R", "required": True})
        assert contract.validate({"r": 0}).is_valid


class TestText:
    """Tests for text rules."""

    def test_length_bounds(self):
        """Test minLength and maxLength."""
        contract = _compile({
            "id": "f", "type": "text", "label": "F",
            "validations": {"minLength": 2, "maxLength": 4},
        })
        assert contract.validate_field("f", "a")[0].message == "Must be at least 2 characters"
        assert contract.validate_field("f", "abcde")[0].message == "Must be at most 4 characters"
        assert contract.validate_field("f", "abc") == []

    def test_pattern_matches_whole_value(self):
        """Test the pattern must match the entire value."""
        contract = _compile({
            "id": "f", "type": "text", "label": "F", "validations": {"pattern": "[0-9]{3}"},
        })
        assert contract.validate_field("f", "123") == []
        errors = contract.validate_field("f", "1234")
        assert [e.error_type for e in errors] == ["pattern"]
        assert errors[0].message == "Invalid format"

    def test_non_string_rejected(self):
        """Test text fields require strings."""
        contract = _compile({"id": "f", "type": "text", "label": "F"})
        assert contract.validate_field("f", 42)[0].message == "Expected text"

    def test_email(self):
        """Test the email shape check."""
        contract = _compile({"id": "e", "type": "email", "label": "E"})
        assert contract.validate_field("e", "user@example.com") == []
        assert contract.validate_field("e", "not-an-email")[0].message == "Invalid email address"
        assert contract.validate_field("e", "a@b")[0].error_type == "email"

    @pytest.mark.parametrize("value", ["a@b.co\n", "a@b.co\nx", " a@b.co"])
    def test_email_whole_value(self, value):
        """Test the email check covers the whole value, trailing newline included."""
        contract = _compile({"id": "e", "type": "email", "label": "E"})
        assert [e.error_type for e in contract.validate_field("e", value)] == ["email"]

    def test_custom_message_replaces_all(self):
        """Test a custom message collapses failures into one."""
        contract = _compile({
            "id": "f", "type": "text", "label": "F", "required": True,
            "validations": {"minLength": 5, "pattern": "[a-z]+", "customMessage": "Lowercase, five or more"},
        })
        errors = contract.validate_field("f", "AB")
        assert [e.message for e in errors] == ["Lowercase, five or more"]
        assert contract.validate_field("f", "")[0].message == "Lowercase, five or more"


class TestNumber:
    """Tests for number and rating rules."""

    def test_bounds(self):
        """Test min and max."""
        contract = _compile({
            "id": "n", "type": "number", "label": "N", "validations": {"min": 18, "max": 99},
        })
        assert contract.validate_field("n", 17)[0].message == "Must be at least 18"
        assert contract.validate_field("n", 100)[0].message == "Must be at most 99"
        assert contract.validate_field("n", 18) == []

    def test_string_coercion(self):
        """Test numeric strings are coerced and cleaned."""
        contract = _compile({"id": "n", "type": "number", "label": "N"})
        result = contract.validate({"n": " 42 "})
        assert result.validated_data == {"n": 42}
        assert contract.validate({"n": "2.5"}).validated_data == {"n": 2.5}
        assert contract.validate({"n": "-3"}).validated_data == {"n": -3}
        assert contract.validate({"n": ".5"}).validated_data == {"n": 0.5}
        assert contract.validate({"n": "1e3"}).validated_data == {"n": 1000.0}

    @pytest.mark.parametrize("value", ["abc", True, [1], "nan", "inf", "infinity", "1_000", "1e999", "0x10", "1.2.3"])
    def test_not_a_number(self, value):
        """Test non-numeric values fail."""
        contract = _compile({"id": "n", "type": "number", "label": "N"})
        assert contract.validate_field("n", value)[0].message == "Must be a number"

    def test_rating_requires_number(self):
        """Test ratings do not coerce strings."""
        contract = _compile({"id": "r", "type": "rating", "label": "R"})
        assert contract.validate_field("r", 4) == []
        assert contract.validate_field("r", "4")[0].error_type == "type"


class TestChoices:
    """Tests for choice rules."""

    def test_single_choice(self):
        """Test select and radio accept a string."""
        contract = _compile({"id": "s", "type": "select", "label": "S", "required": True})
        assert contract.validate_field("s", "option1") == []
        assert contract.validate_field("s", ["option1"])[0].error_type == "type"

    def test_required_multi_select_with_min(self):
        """Test selection count bounds."""
        contract = _compile({
            "id": "m", "type": "multiSelect", "label": "M", "required": True,
            "validations": {"min": 2, "max": 3},
        })
        assert contract.validate_field("m", [])[0].message == "This field is required"
        assert contract.validate_field("m", ["a"])[0].message == "Please select at least 2 options"
        assert contract.validate_field("m", ["a", "b", "c", "d"])[0].message == "Please select at most 3 options"
        assert contract.validate_field("m", ["a", "b"]) == []

    def test_selections_must_be_strings(self):
        """Test a list of non-strings fails."""
        contract = _compile({"id": "c", "type": "checkbox", "label": "C"})
        assert contract.validate_field("c", [1, 2])[0].error_type == "type"

    def test_matrix(self):
        """Test matrix answers map rows to columns."""
        contract = _compile({"id": "x", "type": "matrix", "label": "X", "required": True})
        assert contract.validate_field("x", {"row1": "column2"}) == []
        assert contract.validate_field("x", {"row1": 2})[0].message == "Invalid selection"

    def test_date(self):
        """Test date values."""
        contract = _compile({"id": "d", "type": "date", "label": "D"})
        assert contract.validate_field("d", "2024-05-01") == []
        assert contract.validate_field("d", datetime.date(2024, 5, 1)) == []
        assert contract.validate_field("d", 20240501)[0].message == "Invalid date"


class TestFiles:
    """Tests for upload fields."""

    def test_constraints_carried_not_enforced(self):
        """Test file constraints are advisory."""
        contract = _compile({
            "id": "f", "type": "file", "label": "F",
            "validations": {"allowedFileTypes": [".pdf"], "maxFileSize": 1, "maxFiles": 1},
        })
        rule = contract.rule_for("f")
        assert rule.allowed_file_types == (".pdf",)
        assert rule.max_files == 1
        assert contract.validate_field("f", [{"name": "a.png", "size": 10}, {"name": "b.png"}]) == []


class TestRepeatable:
    """Tests for repeatable sections."""

    @pytest.fixture
    def contract(self):
        return _compile({
            "id": "people",
            "type": "repeatable",
            "label": "People",
            "validations": {"min": 1, "max": 3},
            "subFields": [
                {"id": "name", "type": "text", "label": "Name", "required": True},
                {"id": "age", "type": "number", "label": "Age", "validations": {"min": 0}},
            ],
        })

    def test_entries_validated_with_paths(self, contract):
        """Test errors inside entries are keyed by section, index and sub-field."""
        result = contract.validate({"people": [
            {"name": "Ann", "age": 30},
            {"name": "", "age": -1},
        ]})
        assert result.errors_by_field_id == {
            "people.1.name": ["This field is required"],
            "people.1.age": ["Must be at least 0"],
        }

    def test_valid_entries_cleaned(self, contract):
        """Test cleaned entries carry coerced sub-values."""
        result = contract.validate({"people": [{"name": "Ann", "age": "30"}]})
        assert result.is_valid
        assert result.validated_data == {"people": [{"name": "Ann", "age": 30}]}

    def test_entry_count_not_checked(self, contract):
        """Test entry bounds are left to entry management."""
        assert contract.validate({"people": []}).is_valid

    def test_malformed_entries(self, contract):
        """Test non-list values and non-object entries."""
        assert contract.validate_field("people", "x")[0].message == "Expected a list of entries"
        errors = contract.validate_field("people", ["x"])
        assert errors[0].field_id == "people.0"
        assert errors[0].message == "Invalid entry"


class TestCompileIssues:
    """Tests for compile-time problems."""

    def test_bad_pattern(self):
        """Test an invalid pattern is reported and the field is not validated."""
        contract = compile_schema(_schema(
            {"id": "f", "type": "text", "label": "F", "required": True, "validations": {"pattern": "[a-"}},
            {"id": "g", "type": "text", "label": "G", "required": True},
        ))
        assert isinstance(contract.rule_for("f"), MisconfiguredRule)
        assert list(contract.compile_errors) == ["f"]
        assert contract.misconfigured_fields == ["f"]

        result = contract.validate({"f": "", "g": ""})
        assert result.errors_by_field_id == {"g": ["This field is required"]}
        assert any("f" in w for w in result.warnings)

    def test_bad_pattern_in_sub_field(self):
        """Test pattern problems inside sections are reported against the sub-field."""
        contract = _compile({
            "id": "rep", "type": "repeatable", "label": "R",
            "subFields": [{"id": "s", "type": "text", "label": "S", "validations": {"pattern": "("}}],
        })
        assert [i.field_id for i in contract.issues] == ["s"]
        assert contract.validate({"rep": [{"s": "anything"}]}).is_valid

    def test_condition_issues(self):
        """Test self-referencing and dangling conditions are reported."""
        contract = compile_schema(_schema(
            {"id": "a", "type": "text", "label": "A", "conditions": [{"sourceFieldId": "a", "operator": "isEmpty"}]},
            {"id": "b", "type": "text", "label": "B", "conditions": [{"sourceFieldId": "gone", "operator": "isEmpty"}]},
            {
                "id": "rep", "type": "repeatable", "label": "R",
                "subFields": [{
                    "id": "s", "type": "text", "label": "S",
                    "conditions": [{"sourceFieldId": "a", "operator": "isEmpty"}],
                }],
            },
        ))
        kinds = {(i.field_id, i.kind, i.severity) for i in contract.issues}
        assert kinds == {
            ("a", "self_reference", "error"),
            ("b", "dangling_condition", "warning"),
            ("s", "sub_field_condition", "warning"),
        }
        assert list(contract.compile_errors) == ["a"]


class TestVisibleSubset:
    """Tests for validating only visible fields."""

    def test_hidden_required_field_skipped(self):
        """Test hidden fields neither fail nor appear in the data."""
        contract = compile_schema(_schema(
            {"id": "q1", "type": "radio", "label": "Q1"},
            {"id": "q2", "type": "text", "label": "Q2", "required": True},
        ))
        result = contract.validate({"q1": "no", "q2": ""}, visible={"q1"})
        assert result.is_valid
        assert result.validated_data == {"q1": "no"}

    def test_visible_required_field_fails(self):
        """Test a revealed required field must be answered."""
        contract = compile_schema(_schema(
            {"id": "q1", "type": "radio", "label": "Q1"},
            {"id": "q2", "type": "text", "label": "Q2", "required": True},
        ))
        result = contract.validate({"q1": "yes", "q2": ""}, visible={"q1", "q2"})
        assert result.errors_by_field_id == {"q2": ["This field is required"]}
        assert result.validated_data is None


class TestValidateValue:
    """Tests for the rule dispatcher."""

    def test_never_raises(self):
        """Test odd inputs produce errors rather than exceptions."""
        rule = StringRule(field_id="f", field_type="text", pattern="[a-z]+")
        for value in (object(), 1.5, {"a": 1}, b"bytes"):
            _, errors = validate_value(rule, value)
            assert errors

    def test_custom_path(self):
        """Test errors use the given path."""
        rule = NumberRule(field_id="n", field_type="number", required=True)
        _, errors = validate_value(rule, MISSING, path="rep.0.n")
        assert errors[0].field_id == "rep.0.n"
