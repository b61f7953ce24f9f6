"""
chatfn Tools - Function registry for model function calling

Provides:
- FunctionSchema / FunctionRecord / ExecutionResult: data types
- FunctionRegistry: register, validate and execute functions
- sanitize: convert handler output to a JSON-safe value
- @function decorator: build schemas from type hints
- register_builtin_functions: time, math, weather and location helpers

Usage:
    from chatfn.tools import FunctionRegistry

    registry = FunctionRegistry()
    registry.register("echo", {
        "name": "echo",
        "description": "Echo the given text",
        "parameters": {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
    }, lambda args: args["text"])
"""

from .models import (
    ExecutionError,
    ExecutionResult,
    FunctionRecord,
    FunctionSchema,
)
from .registry import FunctionRegistry
from .sanitize import sanitize
from .validation import ValidationOutcome, validate_arguments
from .decorator import function
from .builtin import register_builtin_functions

__all__ = [
    # Models
    "ExecutionError",
    "ExecutionResult",
    "FunctionRecord",
    "FunctionSchema",
    # Registry
    "FunctionRegistry",
    # Helpers
    "sanitize",
    "ValidationOutcome",
    "validate_arguments",
    "function",
    "register_builtin_functions",
]
