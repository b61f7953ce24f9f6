"""
Result sanitization - turn arbitrary handler output into a JSON-safe value.

Every value is assigned one tag and each tag has exactly one rule:

    primitive      None / bool / int / str / finite float -> unchanged
    non-finite     nan / inf -> None
    sequence       list / tuple / set / frozenset -> list of sanitized items
    mapping        dict -> str keys, sanitized values, callables dropped
    error-like     exceptions -> {"error": True, "name", "message"}
    function-like  callables -> "[Function]"
    symbol-like    Enum members -> "<Class.MEMBER>"
    object         dataclasses / objects with __dict__ -> public data attributes
    other          str(value)

Reference cycles become "[Circular]". sanitize() never raises.
"""

import dataclasses
import logging
import math
from enum import Enum
from typing import Any, Set

logger = logging.getLogger(__name__)

FUNCTION_PLACEHOLDER = "[Function]"
CIRCULAR_PLACEHOLDER = "[Circular]"


def _tag(value: Any) -> str:
    if value is None or isinstance(value, (bool, int, str)):
        return "primitive"
    if isinstance(value, float):
        return "primitive" if math.isfinite(value) else "non_finite"
    if isinstance(value, Enum):
        return "symbol"
    if isinstance(value, BaseException):
        return "error"
    if isinstance(value, dict):
        return "mapping"
    if isinstance(value, (list, tuple, set, frozenset)):
        return "sequence"
    if callable(value) and not isinstance(value, type):
        return "function"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return "object"
    if hasattr(value, "__dict__") and not isinstance(value, type):
        return "object"
    return "other"


def _public_attributes(value: Any) -> dict:
    if dataclasses.is_dataclass(value):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return {k: v for k, v in vars(value).items() if not k.startswith("_")}


def _sanitize(value: Any, seen: Set[int]) -> Any:
    tag = _tag(value)

    if tag == "primitive":
        return value
    if tag == "non_finite":
        return None
    if tag == "symbol":
        return f"<{type(value).__name__}.{value.name}>"
    if tag == "function":
        return FUNCTION_PLACEHOLDER
    if tag == "error":
        return {
            "error": True,
            "name": type(value).__name__,
            "message": str(value),
        }
    if tag == "other":
        try:
            return str(value)
        except Exception:
            return f"<{type(value).__name__}>"

    # Containers: guard against cycles on the current path only
    marker = id(value)
    if marker in seen:
        return CIRCULAR_PLACEHOLDER
    seen.add(marker)
    try:
        if tag == "sequence":
            return [_sanitize(item, seen) for item in value]

        source = value if tag == "mapping" else _public_attributes(value)
        out = {}
        for key, item in source.items():
            if _tag(item) == "function":
                continue
            out[key if isinstance(key, str) else str(key)] = _sanitize(item, seen)
        return out
    finally:
        seen.discard(marker)


def sanitize(value: Any) -> Any:
    """
    Return a JSON-serializable approximation of *value*.

    JSON-serializable input comes back deep-equal (tuples become lists).
    """
    try:
        return _sanitize(value, set())
    except Exception as e:
        logger.warning(f"Sanitization fell back to str() for {type(value).__name__}: {e}")
        try:
            return str(value)
        except Exception:
            return f"<{type(value).__name__}>"
