"""
Built-in functions - ready-made handlers for common assistant requests.

They are ordinary handlers registered through the same interface as any
user-supplied function:

    registry = FunctionRegistry()
    register_builtin_functions(registry)
"""

import ast
import logging
import math
import operator
from datetime import datetime, timezone
from typing import Any, Dict

import httpx

from .registry import FunctionRegistry

logger = logging.getLogger(__name__)

WEATHER_API_URL = "https://api.open-meteo.com/v1/forecast"
LOCATION_API_URL = "https://ipapi.co/json/"
HTTP_TIMEOUT = 4.0


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def get_current_weather(args: Dict[str, Any]) -> Dict[str, Any]:
    """Fetch current weather for a coordinate pair from Open-Meteo."""
    params = {
        "latitude": args["latitude"],
        "longitude": args["longitude"],
        "hourly": "apparent_temperature",
        "current_weather": "true",
    }
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.get(WEATHER_API_URL, params=params)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPStatusError as e:
        raise RuntimeError(f"Failed to get weather data: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise RuntimeError(f"Failed to get weather data: {e}") from e


async def get_location(args: Dict[str, Any]) -> Dict[str, Any]:
    """Approximate the caller's location from their public IP address."""
    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
            response = await client.get(LOCATION_API_URL)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPStatusError as e:
        raise RuntimeError(f"Failed to get location: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise RuntimeError(f"Failed to get location: {e}") from e


def get_current_time(args: Dict[str, Any]) -> str:
    """Current UTC date and time in ISO 8601 format."""
    return datetime.now(timezone.utc).isoformat()


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}
_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def _evaluate(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        return _BINARY_OPS[type(node.op)](_evaluate(node.left), _evaluate(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def calculate_math(args: Dict[str, Any]) -> float:
    """Evaluate a basic arithmetic expression (+ - * / // % and parentheses)."""
    expression = args.get("expression")
    if not isinstance(expression, str):
        raise ValueError("Expression must be a string")

    try:
        tree = ast.parse(expression, mode="eval")
        result = _evaluate(tree)
    except ZeroDivisionError:
        raise ValueError("Math calculation failed: division by zero")
    except (SyntaxError, ValueError) as e:
        raise ValueError(f'Math calculation failed: invalid expression "{expression}" ({e})')

    if not math.isfinite(result):
        raise ValueError("Math calculation failed: invalid calculation result")
    return result


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

BUILTIN_SCHEMAS = [
    {
        "name": "get_current_weather",
        "description": "Get the current weather in a given location",
        "parameters": {
            "type": "object",
            "properties": {
                "latitude": {
                    "type": "string",
                    "description": "Latitude coordinate of the location",
                },
                "longitude": {
                    "type": "string",
                    "description": "Longitude coordinate of the location",
                },
            },
            "required": ["latitude", "longitude"],
        },
    },
    {
        "name": "get_location",
        "description": "Get the user's location based on their IP address",
        "parameters": {"type": "object", "properties": {}},
    },
    {
        "name": "get_current_time",
        "description": "Get the current date and time",
        "parameters": {"type": "object", "properties": {}},
    },
    {
        "name": "calculate_math",
        "description": "Calculate simple math expressions",
        "parameters": {
            "type": "object",
            "properties": {
                "expression": {
                    "type": "string",
                    "description": "Mathematical expression to evaluate (e.g., '2 + 2', '10 * 5')",
                    "minLength": 1,
                    "maxLength": 200,
                },
            },
            "required": ["expression"],
        },
    },
]

BUILTIN_HANDLERS = {
    "get_current_weather": get_current_weather,
    "get_location": get_location,
    "get_current_time": get_current_time,
    "calculate_math": calculate_math,
}


def register_builtin_functions(registry: FunctionRegistry) -> None:
    """Register every built-in function with *registry*."""
    registry.register_many(BUILTIN_SCHEMAS, BUILTIN_HANDLERS)
    logger.info(f"Registered {len(BUILTIN_SCHEMAS)} built-in functions")
