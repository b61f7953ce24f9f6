"""Tests for chatfn.tools.validation"""

import logging

import pytest

from chatfn.tools.validation import validate_arguments


PARAMS = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 2, "maxLength": 5},
        "age": {"type": "integer", "minimum": 0, "maximum": 150},
        "tags": {"type": "array", "minItems": 1, "maxItems": 3},
        "unit": {"type": "string", "enum": ["metric", "imperial"]},
        "code": {"type": "string", "pattern": "^[A-Z]{3}$"},
        "ratio": {"type": "number", "exclusiveMinimum": 0, "exclusiveMaximum": 1},
        "value": {"type": ["string", "number"]},
    },
    "required": ["name"],
}


# =========================================================================
# Type checking
# =========================================================================


class TestTypeChecking:

    def test_bool_is_not_number(self):
        assert validate_arguments({"name": "Ada", "ratio": True}, PARAMS).valid is False
        assert validate_arguments({"name": "Ada", "age": True}, PARAMS).valid is False

    def test_bool_error_names_boolean(self):
        outcome = validate_arguments({"name": "Ada", "age": False}, PARAMS)
        assert outcome.error == "Invalid type for parameter 'age': expected integer, got boolean"

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_is_not_number(self, value):
        assert validate_arguments({"name": "Ada", "value": value}, PARAMS).valid is False

    def test_integral_float_is_integer(self):
        assert validate_arguments({"name": "Ada", "age": 3.0}, PARAMS).valid is True
        assert validate_arguments({"name": "Ada", "age": 3.5}, PARAMS).valid is False

    def test_tuple_is_array(self):
        assert validate_arguments({"name": "Ada", "tags": ("a",)}, PARAMS).valid is True

    def test_null(self):
        params = {"type": "object", "properties": {"x": {"type": "null"}}}
        assert validate_arguments({"x": None}, params).valid is True
        outcome = validate_arguments({"x": "a"}, params)
        assert outcome.error == "Invalid type for parameter 'x': expected null, got string"

    def test_unknown_type_accepted(self, caplog):
        params = {"type": "object", "properties": {"id": {"type": "uuid"}}}
        with caplog.at_level(logging.WARNING, logger="chatfn.tools.validation"):
            assert validate_arguments({"id": "x"}, params).valid is True
        assert "Unknown parameter type 'uuid'" in caplog.text

    def test_nested_property_reported_by_path(self):
        params = {
            "type": "object",
            "properties": {
                "point": {
                    "type": "object",
                    "properties": {"x": {"type": "number"}},
                },
            },
        }
        outcome = validate_arguments({"point": {"x": "1"}}, params)
        assert outcome.error == "Invalid type for parameter 'point.x': expected number, got string"


# =========================================================================
# validate_arguments
# =========================================================================


class TestValidateArguments:

    def test_valid(self):
        outcome = validate_arguments({"name": "Ada", "age": 36}, PARAMS)
        assert outcome.valid is True
        assert outcome.error is None

    def test_args_must_be_dict(self):
        outcome = validate_arguments(["Ada"], PARAMS)
        assert outcome.valid is False

    def test_missing_required(self):
        outcome = validate_arguments({}, PARAMS)
        assert outcome.error == "Missing required parameter: name"

    def test_wrong_type(self):
        outcome = validate_arguments({"name": 5}, PARAMS)
        assert outcome.error == "Invalid type for parameter 'name': expected string, got number"

    @pytest.mark.parametrize("args", [
        {"name": "A"},
        {"name": "Abcdef"},
        {"name": "Ada", "age": 151},
        {"name": "Ada", "age": -1},
        {"name": "Ada", "tags": []},
        {"name": "Ada", "tags": [1, 2, 3, 4]},
        {"name": "Ada", "unit": "kelvin"},
        {"name": "Ada", "code": "abc"},
        {"name": "Ada", "ratio": 1},
        {"name": "Ada", "ratio": 0},
    ])
    def test_constraint_violations(self, args):
        outcome = validate_arguments(args, PARAMS)
        assert outcome.valid is False
        offending = [k for k in args if k != "name"] or ["name"]
        assert f"'{offending[0]}'" in outcome.error

    @pytest.mark.parametrize("args", [
        {"name": "Ab"},
        {"name": "Abcde", "age": 150},
        {"name": "Ada", "age": 0, "tags": [1, 2, 3]},
        {"name": "Ada", "unit": "metric", "code": "ABC", "ratio": 0.5},
    ])
    def test_within_bounds(self, args):
        assert validate_arguments(args, PARAMS).valid is True

    def test_type_list(self):
        assert validate_arguments({"name": "Ada", "value": 1}, PARAMS).valid is True
        assert validate_arguments({"name": "Ada", "value": "1"}, PARAMS).valid is True
        assert validate_arguments({"name": "Ada", "value": [1]}, PARAMS).valid is False

    def test_extra_keys_allowed_by_default(self):
        assert validate_arguments({"name": "Ada", "extra": 1}, PARAMS).valid is True

    def test_additional_properties_false(self):
        params = dict(PARAMS, additionalProperties=False)
        outcome = validate_arguments({"name": "Ada", "extra": 1}, params)
        assert outcome.error == "Unexpected parameters: extra"

    def test_no_parameters(self):
        assert validate_arguments({"anything": 1}, None).valid is True

    def test_invalid_pattern_in_schema(self):
        params = {"type": "object", "properties": {"s": {"type": "string", "pattern": "("}}}
        outcome = validate_arguments({"s": "a"}, params)
        assert outcome.valid is False
        assert "invalid pattern" in outcome.error

    def test_required_reported_before_property_errors(self):
        outcome = validate_arguments({"age": "old"}, PARAMS)
        assert outcome.error == "Missing required parameter: name"
