"""
@function decorator - build a registry entry from a typed Python function.

Inspects the signature and type hints to build the JSON Schema for
``parameters`` and wraps the function into the handler shape the registry
expects (one arguments dict in, a value out).

Usage::

    from typing import Annotated, Literal
    from chatfn.tools import FunctionRegistry, function

    registry = FunctionRegistry()

    @function(registry=registry)
    async def get_forecast(
        city: Annotated[str, "City name"],
        days: Annotated[int, "Number of days"] = 3,
        units: Literal["metric", "imperial"] = "metric",
    ) -> dict:
        \"\"\"Get a weather forecast for a city.\"\"\"
        ...

    # get_forecast is still callable as before
    # get_forecast.schema.parameters == {"type": "object", "properties": {...}, "required": ["city"]}
"""

import functools
import inspect
import types
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from .models import FunctionSchema
from .registry import FunctionRegistry

_NoneType = type(None)
_UNION_ORIGINS = (Union, types.UnionType)


def _split_annotated(annotation: Any):
    """Return ``(base_type, description)`` for ``Annotated[T, "desc"]``."""
    if get_origin(annotation) is Annotated:
        base, *extras = get_args(annotation)
        desc = next((e for e in extras if isinstance(e, str)), None)
        return base, desc
    return annotation, None


def _is_optional(annotation: Any) -> bool:
    return get_origin(annotation) in _UNION_ORIGINS and _NoneType in get_args(annotation)


def _type_to_schema(annotation: Any) -> Dict[str, Any]:
    """Map a Python type annotation to a JSON Schema dict."""
    base, _ = _split_annotated(annotation)
    origin = get_origin(base)

    if origin in _UNION_ORIGINS:
        args = [a for a in get_args(base) if a is not _NoneType]
        if len(args) == 1:
            return _type_to_schema(args[0])
        return {"type": [_type_to_schema(a).get("type", "string") for a in args]}

    if origin is Literal:
        values = list(get_args(base))
        schema = _type_to_schema(type(values[0])) if values else {"type": "string"}
        schema["enum"] = values
        return schema

    if base is str:
        return {"type": "string"}
    if base is bool:
        return {"type": "boolean"}
    if base is int:
        return {"type": "integer"}
    if base is float:
        return {"type": "number"}

    if base is list or origin is list:
        schema: Dict[str, Any] = {"type": "array"}
        args = get_args(base)
        if args:
            schema["items"] = _type_to_schema(args[0])
        return schema

    if base is dict or origin is dict:
        return {"type": "object"}

    return {"type": "string"}


def build_parameters(func: Callable) -> Dict[str, Any]:
    """Build ``{"type": "object", ...}`` from *func*'s signature."""
    sig = inspect.signature(func)
    try:
        hints = get_type_hints(func, include_extras=True)
    except Exception:
        hints = {}

    properties: Dict[str, Any] = {}
    required: List[str] = []

    for name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        annotation = hints.get(name, param.annotation)
        if annotation is inspect.Parameter.empty:
            annotation = str

        prop = _type_to_schema(annotation)
        base, desc = _split_annotated(annotation)
        if desc:
            prop["description"] = desc
        properties[name] = prop

        if param.default is inspect.Parameter.empty and not _is_optional(base):
            required.append(name)

    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def build_handler(func: Callable) -> Callable[[Dict[str, Any]], Any]:
    """Wrap a keyword-argument function as ``handler(args: dict)``."""
    accepted = {
        name
        for name, param in inspect.signature(func).parameters.items()
        if param.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    }

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_handler(args: Dict[str, Any]) -> Any:
            return await func(**{k: v for k, v in args.items() if k in accepted})
        return async_handler

    @functools.wraps(func)
    def handler(args: Dict[str, Any]) -> Any:
        return func(**{k: v for k, v in args.items() if k in accepted})
    return handler


def function(
    func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    registry: Optional[FunctionRegistry] = None,
) -> Any:
    """Decorator that registers a typed function with a FunctionRegistry.

    Supports both bare ``@function`` and ``@function(name=..., registry=...)``.
    The function is returned unchanged apart from ``schema`` and ``handler``
    attributes. Without *registry*, the shared default registry is used.
    """

    def _register(fn: Callable) -> Callable:
        fn_name = name or fn.__name__
        doc = inspect.getdoc(fn) or ""
        desc = description or (doc.split("\n")[0].strip() if doc else fn_name)

        schema = FunctionSchema(name=fn_name, description=desc, parameters=build_parameters(fn))
        handler = build_handler(fn)
        (registry or FunctionRegistry.get_instance()).register(fn_name, schema, handler)

        fn.schema = schema
        fn.handler = handler
        return fn

    if func is not None:
        return _register(func)
    return _register
