"""
Tests for the @function decorator

Tests cover:
- Schema generation from type hints
- Annotated descriptions, Optional, Literal and list parameters
- Registration into an explicit or the shared registry
- Generated handlers for sync and async functions
"""

from typing import Annotated, Dict, List, Literal, Optional

import pytest

from chatfn.tools import FunctionRegistry, function
from chatfn.tools.decorator import build_handler, build_parameters


# =============================================================================
# Schema generation
# =============================================================================

class TestBuildParameters:

    def test_primitive_types(self):
        def fn(name: str, count: int, ratio: float, enabled: bool):
            pass

        params = build_parameters(fn)
        assert params["type"] == "object"
        assert params["properties"] == {
            "name": {"type": "string"},
            "count": {"type": "integer"},
            "ratio": {"type": "number"},
            "enabled": {"type": "boolean"},
        }
        assert params["required"] == ["name", "count", "ratio", "enabled"]

    def test_defaults_are_optional(self):
        def fn(city: str, days: int = 3):
            pass

        assert build_parameters(fn)["required"] == ["city"]

    def test_optional_is_not_required(self):
        def fn(city: Optional[str]):
            pass

        params = build_parameters(fn)
        assert "required" not in params
        assert params["properties"]["city"] == {"type": "string"}

    def test_pep604_optional_is_not_required(self):
        def fn(days: int | None, city: str):
            pass

        params = build_parameters(fn)
        assert params["required"] == ["city"]
        assert params["properties"]["days"] == {"type": "integer"}

    def test_pep604_union_lists_types(self):
        def fn(value: int | str):
            pass

        assert build_parameters(fn)["properties"]["value"] == {"type": ["integer", "string"]}

    def test_annotated_description(self):
        def fn(city: Annotated[str, "City name"]):
            pass

        assert build_parameters(fn)["properties"]["city"] == {
            "type": "string",
            "description": "City name",
        }

    def test_literal_becomes_enum(self):
        def fn(units: Literal["metric", "imperial"] = "metric"):
            pass

        assert build_parameters(fn)["properties"]["units"] == {
            "type": "string",
            "enum": ["metric", "imperial"],
        }

    def test_list_and_dict(self):
        def fn(tags: List[str], extra: Dict[str, int]):
            pass

        props = build_parameters(fn)["properties"]
        assert props["tags"] == {"type": "array", "items": {"type": "string"}}
        assert props["extra"] == {"type": "object"}

    def test_varargs_skipped(self):
        def fn(a: int, *args, **kwargs):
            pass

        assert list(build_parameters(fn)["properties"]) == ["a"]


# =============================================================================
# Handlers
# =============================================================================

class TestBuildHandler:

    def test_sync_handler_filters_unknown_keys(self):
        def add(a: int, b: int) -> int:
            return a + b

        handler = build_handler(add)
        assert handler({"a": 1, "b": 2, "junk": 3}) == 3

    @pytest.mark.asyncio
    async def test_async_handler(self):
        async def shout(text: str) -> str:
            return text.upper()

        handler = build_handler(shout)
        assert await handler({"text": "hi"}) == "HI"


# =============================================================================
# Decorator
# =============================================================================

class TestFunctionDecorator:

    def test_registers_into_registry(self):
        registry = FunctionRegistry()

        @function(registry=registry)
        def get_forecast(city: Annotated[str, "City name"], days: int = 3) -> str:
            """Get a weather forecast for a city.

            Longer explanation that is not part of the description.
            """
            return f"{city}:{days}"

        assert registry.has("get_forecast")
        schema = registry.list_schemas()[0]
        assert schema["description"] == "Get a weather forecast for a city."
        assert schema["parameters"]["required"] == ["city"]
        assert get_forecast("Oslo") == "Oslo:3"
        assert get_forecast.schema.name == "get_forecast"

    def test_custom_name_and_description(self):
        registry = FunctionRegistry()

        @function(name="sum_two", description="Add numbers", registry=registry)
        def add(a: int, b: int) -> int:
            return a + b

        assert registry.names() == ["sum_two"]
        assert registry.list_schemas()[0]["description"] == "Add numbers"

    def test_bare_decorator_uses_shared_registry(self):
        FunctionRegistry.reset()
        try:
            @function
            def ping() -> str:
                """Reply with pong."""
                return "pong"

            assert FunctionRegistry.get_instance().has("ping")
        finally:
            FunctionRegistry.reset()

    @pytest.mark.asyncio
    async def test_registered_handler_executes(self):
        registry = FunctionRegistry()

        @function(registry=registry)
        async def multiply(a: int, b: int) -> int:
            """Multiply two integers."""
            return a * b

        result = await registry.execute("multiply", {"a": 6, "b": 7})
        assert result.success is True
        assert result.result == 42

    @pytest.mark.asyncio
    async def test_generated_schema_validates(self):
        registry = FunctionRegistry()

        @function(registry=registry)
        def label(units: Literal["metric", "imperial"]) -> str:
            """Echo the units."""
            return units

        result = await registry.execute("label", {"units": "kelvin"})
        assert result.success is False
        assert "units" in result.error.message
