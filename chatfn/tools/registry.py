"""
chatfn Function Registry - Name-addressable functions with validation and sandboxing
"""

import asyncio
import inspect
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union

from ..constants import DEFAULT_FUNCTION_TIMEOUT
from ..errors import ErrorKind, HandlerError, SchemaError
from .models import ExecutionResult, FunctionRecord, FunctionSchema
from .sanitize import sanitize as sanitize_value
from .validation import validate_arguments

logger = logging.getLogger(__name__)

SchemaLike = Union[FunctionSchema, Dict[str, Any]]


def check_schema(name: str, schema: FunctionSchema) -> None:
    """Raise SchemaError if *schema* is not a usable function contract."""
    if not name or not isinstance(name, str):
        raise SchemaError("Function name must be a non-empty string")
    if not schema.name or not isinstance(schema.name, str):
        raise SchemaError("Schema name must be a non-empty string")
    if schema.name != name:
        raise SchemaError(
            f"Schema name '{schema.name}' does not match registration name '{name}'"
        )
    if not schema.description or not isinstance(schema.description, str):
        raise SchemaError(f"Schema for '{name}' must have a non-empty string description")

    params = schema.parameters
    if params is None:
        return
    if not isinstance(params, dict):
        raise SchemaError(f"Parameters for '{name}' must be an object")
    if "type" in params and params["type"] != "object":
        raise SchemaError(
            f"Parameters for '{name}' must have type 'object', got '{params['type']}'"
        )
    if "properties" in params and not isinstance(params["properties"], dict):
        raise SchemaError(f"Parameter properties for '{name}' must be an object")
    if "required" in params and not isinstance(params["required"], list):
        raise SchemaError(f"Required parameters for '{name}' must be an array")


class FunctionRegistry:
    """
    Authoritative mapping from function name to executable contract

    Usage:
        registry = FunctionRegistry()
        registry.register("get_time", {
            "name": "get_time",
            "description": "Get the current time",
            "parameters": {"type": "object", "properties": {}},
        }, get_time)

        result = await registry.execute_safely("get_time", {})
        if result.success:
            print(result.result)

    Registration is expected at setup time. Mutations are guarded by a lock so
    registering from another thread while a conversation runs is safe.
    Execution works against a snapshot of the record taken at lookup time.
    """

    _instance: Optional["FunctionRegistry"] = None
    _instance_lock: threading.Lock = threading.Lock()

    def __init__(self, default_timeout: float = DEFAULT_FUNCTION_TIMEOUT):
        self.default_timeout = default_timeout
        self._records: Dict[str, FunctionRecord] = {}
        self._lock = threading.Lock()
        self._abandoned: Set["asyncio.Future[Any]"] = set()

    @classmethod
    def get_instance(cls) -> "FunctionRegistry":
        """Get the shared default registry"""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared default registry (for testing)"""
        with cls._instance_lock:
            cls._instance = None

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, name: str, schema: SchemaLike, handler: Callable[..., Any]) -> None:
        """
        Register a function, replacing any previous binding for *name*

        Args:
            name: Registry key
            schema: FunctionSchema or plain dict (OpenAI wrapper accepted)
            handler: Callable taking one arguments dict, sync or async

        Raises:
            SchemaError: If the schema is missing or malformed
            HandlerError: If handler is not callable
        """
        if isinstance(schema, dict):
            schema = FunctionSchema.from_dict(schema)
        elif not isinstance(schema, FunctionSchema):
            raise SchemaError(f"Schema for '{name}' must be an object")

        check_schema(name, schema)

        if not callable(handler):
            raise HandlerError(f"Handler for '{name}' must be callable")

        with self._lock:
            if name in self._records:
                logger.warning(f"Function '{name}' already registered, overwriting")
            self._records[name] = FunctionRecord(schema=schema, handler=handler)

        logger.info(f"Registered function: {name}")

    def register_many(
        self,
        schemas: List[SchemaLike],
        handlers: Mapping[str, Callable[..., Any]],
    ) -> None:
        """Register a batch of schemas against a name -> handler mapping."""
        for schema in schemas:
            if isinstance(schema, dict):
                schema = FunctionSchema.from_dict(schema)
            handler = handlers.get(schema.name)
            if handler is None:
                raise HandlerError(f"No handler found for function: {schema.name}")
            self.register(schema.name, schema, handler)

    def unregister(self, name: str) -> bool:
        """
        Remove a function by name

        Returns:
            True if it was registered, False otherwise
        """
        with self._lock:
            removed = self._records.pop(name, None) is not None
        if removed:
            logger.info(f"Unregistered function: {name}")
        return removed

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def has(self, name: str) -> bool:
        return name in self._records

    def names(self) -> List[str]:
        return list(self._records.keys())

    def list_schemas(self) -> List[Dict[str, Any]]:
        """Schemas for every registered function, in registration order"""
        with self._lock:
            records = list(self._records.values())
        return [record.schema.to_dict() for record in records]

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"<FunctionRegistry functions={len(self._records)}>"

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        name: str,
        args: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """
        Execute a registered function

        Gates, in order: existence, argument validation, handler execution
        raced against *timeout*. Every result carries the elapsed time and
        the timeout in force. Never raises.
        """
        if args is None:
            args = {}
        timeout = self.default_timeout if timeout is None else timeout

        start = time.monotonic()
        result = await self._execute(name, args, timeout)
        result.execution_time_ms = int((time.monotonic() - start) * 1000)
        result.timeout = timeout
        return result

    async def execute_safely(
        self,
        name: str,
        args: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        sanitize: bool = True,
    ) -> ExecutionResult:
        """
        Execute with the caller's timeout and a transport-safe result

        *timeout* falls back to the registry's default_timeout. Successful
        results are sanitized after the timeout race resolves. Any internal
        fault becomes an UNEXPECTED_ERROR result.
        """
        timeout = self.default_timeout if timeout is None else timeout
        start = time.monotonic()
        try:
            result = await self.execute(name, args, timeout=timeout)
            if result.success and sanitize:
                result.result = sanitize_value(result.result)
        except Exception as e:
            logger.error(f"Unexpected error executing '{name}': {e}", exc_info=True)
            result = ExecutionResult.fail(
                name,
                f"Unexpected error during function execution: {e}",
                ErrorKind.UNEXPECTED_ERROR,
                original_error=type(e).__name__,
            )
            result.execution_time_ms = int((time.monotonic() - start) * 1000)
            result.timeout = timeout
        return result

    async def _execute(self, name: str, args: Dict[str, Any], timeout: float) -> ExecutionResult:
        record = self._records.get(name)
        if record is None:
            return ExecutionResult.fail(
                name, f"Function '{name}' not found", ErrorKind.NOT_FOUND,
            )

        outcome = validate_arguments(args, record.schema.parameters)
        if not outcome.valid:
            return ExecutionResult.fail(name, outcome.error, ErrorKind.VALIDATION_ERROR)

        task = asyncio.ensure_future(self._invoke(record.handler, args))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            # Abandoned, not cancelled: whatever it settles with is dropped
            self._abandoned.add(task)
            task.add_done_callback(self._abandoned.discard)
            task.add_done_callback(_late_settlement_logger(name))
            logger.warning(f"Function '{name}' timed out after {timeout}s")
            return ExecutionResult.fail(
                name,
                f"Function execution timeout after {timeout}s",
                ErrorKind.TIMEOUT_ERROR,
            )

        try:
            result = task.result()
        except Exception as e:
            logger.error(f"Function '{name}' execution failed: {e}", exc_info=True)
            return ExecutionResult.fail(
                name,
                f"Function execution failed: {e}",
                ErrorKind.EXECUTION_ERROR,
                original_error=type(e).__name__,
            )

        return ExecutionResult.ok(name, result)

    @staticmethod
    async def _invoke(handler: Callable[..., Any], args: Dict[str, Any]) -> Any:
        """Run *handler* so a timeout can fire even for blocking callables."""
        if inspect.iscoroutinefunction(handler):
            return await handler(args)

        # Plain callables run in a worker thread; a lost race abandons the thread
        result = await asyncio.to_thread(handler, args)
        if inspect.isawaitable(result):
            return await result
        return result


def _late_settlement_logger(name: str) -> Callable[["asyncio.Future[Any]"], None]:
    """Done-callback that retrieves an abandoned call's outcome."""

    def _collect(task: "asyncio.Future[Any]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug(f"Abandoned call to '{name}' failed after its timeout: {error}")
        else:
            logger.debug(f"Abandoned call to '{name}' settled after its timeout")

    return _collect
