"""
chatfn Tool Models - Data structures for function registration and execution
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from ..errors import ErrorKind


@dataclass
class FunctionSchema:
    """
    Declarative contract for one callable function

    Attributes:
        name: Unique function name (must match the registry key)
        description: What the function does, shown to the model
        parameters: JSON-Schema-like object describing the arguments
    """
    name: str
    description: str
    parameters: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionSchema":
        """Build from a plain dict or an OpenAI ``{"type": "function", "function": {...}}`` wrapper"""
        if data.get("type") == "function" and isinstance(data.get("function"), dict):
            data = data["function"]
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            parameters=data.get("parameters", {"type": "object", "properties": {}}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


@dataclass(frozen=True)
class FunctionRecord:
    """A schema bound to its handler. Owned by FunctionRegistry."""
    schema: FunctionSchema
    handler: Callable[..., Any]

    @property
    def name(self) -> str:
        return self.schema.name


@dataclass
class ExecutionError:
    """Structured failure carried by an ExecutionResult"""
    message: str
    kind: ErrorKind
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "kind": self.kind.value,
            **self.details,
        }


@dataclass
class ExecutionResult:
    """
    Outcome of one function invocation

    Attributes:
        success: Whether the handler returned normally
        function_name: Function that was requested
        result: Handler return value (sanitized when requested)
        error: Structured failure when success is False
        execution_time_ms: Wall-clock time spent, in milliseconds
        timeout: Timeout budget in force, in seconds
        timestamp: When the result was produced
    """
    success: bool
    function_name: str
    result: Any = None
    error: Optional[ExecutionError] = None
    execution_time_ms: int = 0
    timeout: Optional[float] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, function_name: str, result: Any) -> "ExecutionResult":
        return cls(success=True, function_name=function_name, result=result)

    @classmethod
    def fail(
        cls,
        function_name: str,
        message: str,
        kind: Union[ErrorKind, str],
        **details: Any,
    ) -> "ExecutionResult":
        return cls(
            success=False,
            function_name=function_name,
            error=ExecutionError(message=message, kind=ErrorKind(kind), details=details),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "function_name": self.function_name,
            "result": self.result,
            "error": self.error.to_dict() if self.error else None,
            "execution_time_ms": self.execution_time_ms,
            "timeout": self.timeout,
            "timestamp": self.timestamp.isoformat(),
        }
