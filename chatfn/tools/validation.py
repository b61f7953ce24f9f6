"""
Argument validation against a function's JSON Schema ``parameters``.

Validation is delegated to ``jsonschema``'s Draft 7 validator with a stricter
type checker: ``bool`` is never a number, NaN and infinities are not numbers,
and tuples count as arrays. Type names the checker does not know are accepted
with a warning so a loosely written schema never blocks a call.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Set

from jsonschema import Draft7Validator, validators
from jsonschema.exceptions import UndefinedTypeCheck, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ValidationOutcome:
    valid: bool
    error: Optional[str] = None


_VALID = ValidationOutcome(valid=True)


def _invalid(message: str) -> ValidationOutcome:
    return ValidationOutcome(valid=False, error=message)


def _is_number(checker, instance: Any) -> bool:
    # bool is an int subclass but never a JSON number
    if isinstance(instance, bool) or not isinstance(instance, (int, float)):
        return False
    return math.isfinite(instance)


def _is_integer(checker, instance: Any) -> bool:
    return _is_number(checker, instance) and float(instance).is_integer()


def _is_array(checker, instance: Any) -> bool:
    return isinstance(instance, (list, tuple))


def _accept_any(checker, instance: Any) -> bool:
    return True


_TYPE_CHECKER = Draft7Validator.TYPE_CHECKER.redefine_many({
    "number": _is_number,
    "integer": _is_integer,
    "array": _is_array,
})

ArgumentValidator = validators.extend(Draft7Validator, type_checker=_TYPE_CHECKER)


def _declared_types(schema: Any) -> Iterator[str]:
    """Yield every type name used anywhere in *schema*."""
    if isinstance(schema, dict):
        for key, value in schema.items():
            if key == "type" and isinstance(value, str):
                yield value
            elif key == "type" and isinstance(value, list):
                yield from (t for t in value if isinstance(t, str))
            else:
                yield from _declared_types(value)
    elif isinstance(schema, list):
        for item in schema:
            yield from _declared_types(item)


def _is_known(name: str) -> bool:
    try:
        _TYPE_CHECKER.is_type(None, name)
    except UndefinedTypeCheck:
        return False
    return True


def _validator_for(parameters: Dict[str, Any]) -> Draft7Validator:
    unknown: Set[str] = {t for t in _declared_types(parameters) if not _is_known(t)}
    if not unknown:
        return ArgumentValidator(parameters)

    for name in sorted(unknown):
        logger.warning(f"Unknown parameter type '{name}', accepting value")
    checker = _TYPE_CHECKER.redefine_many({name: _accept_any for name in unknown})
    return validators.extend(Draft7Validator, type_checker=checker)(parameters)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _describe(error: ValidationError) -> str:
    """Turn a jsonschema error into a reason naming the offending key."""
    path = ".".join(str(part) for part in error.path)

    if error.validator == "required":
        missing = [key for key in error.validator_value if key not in error.instance]
        return f"Missing required parameter: {', '.join(missing)}"

    if error.validator == "additionalProperties":
        known = error.schema.get("properties") or {}
        unexpected = [key for key in error.instance if key not in known]
        return f"Unexpected parameters: {', '.join(unexpected)}"

    if not path:
        return error.message

    if error.validator == "type":
        expected = error.validator_value
        expected_str = " | ".join(expected) if isinstance(expected, list) else expected
        return (
            f"Invalid type for parameter '{path}': expected {expected_str}, "
            f"got {_type_name(error.instance)}"
        )

    return f"Invalid value for parameter '{path}': {error.message}"


def validate_arguments(args: Any, parameters: Optional[Dict[str, Any]]) -> ValidationOutcome:
    """
    Validate a call's arguments against a function's parameter schema.

    Args:
        args: Parsed arguments from the model
        parameters: The schema's ``parameters`` object

    Returns:
        ValidationOutcome; ``error`` names the offending parameter
    """
    if not parameters:
        return _VALID

    if not isinstance(args, dict):
        return _invalid("Arguments must be an object")

    validator = _validator_for(parameters)
    try:
        errors = sorted(validator.iter_errors(args), key=lambda err: list(err.path))
    except re.error as e:
        return _invalid(f"Parameter schema has an invalid pattern: {e}")

    if errors:
        return _invalid(_describe(errors[0]))
    return _VALID
