"""
chatfn Conversation - Multi-round function-calling conversation

A Conversation owns one transcript and drives the protocol with the model:

    user message -> completion -> (function call -> function result -> completion)* -> text

Every turn returns a ProcessResult. Failures never escape process_message;
they are folded into a failure envelope and recorded in the transcript as an
assistant message so later turns see that something went wrong.

Example:
    registry = FunctionRegistry()
    register_builtin_functions(registry)

    async with OpenAIClient(model="gpt-4") as client:
        conversation = Conversation(client, registry)
        result = await conversation.process_message("What time is it?")
        print(result.message)
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from ..constants import BATCH_PAUSE_SECONDS
from ..errors import (
    ChatfnError,
    ConversationBusyError,
    ErrorKind,
    FunctionExecutionError,
    InvalidContentError,
    InvalidInputError,
    InvalidRoleError,
    TooManyFunctionCallsError,
)
from ..llm.base import Completion, FunctionCall
from ..protocols import CompletionClientProtocol
from ..tools.models import ExecutionResult
from ..tools.registry import FunctionRegistry
from ..tools.sanitize import sanitize
from ..tools.validation import ValidationOutcome
from .config import ConversationConfig
from .context_manager import ContextManager
from .models import ConversationExport, ConversationStats, Message, ProcessResult, Role

logger = logging.getLogger(__name__)


@dataclass
class _Turn:
    """Per-turn state threaded through the function-call rounds"""
    include_history: bool
    max_tokens: Optional[int]
    overrides: Dict[str, Any]
    messages: List[Message] = field(default_factory=list)
    function_calls: List[str] = field(default_factory=list)


class Conversation:
    """
    Conversation orchestrator.

    Turns are serialized per conversation: concurrent process_message calls
    queue on an asyncio.Lock, and transcript mutators raise
    ConversationBusyError while a turn is in flight.
    """

    def __init__(
        self,
        client: CompletionClientProtocol,
        registry: Optional[FunctionRegistry] = None,
        config: Optional[ConversationConfig] = None,
    ):
        """
        Args:
            client: Anything with an async ``complete(messages, functions, **kwargs)``
            registry: Functions the model may call (empty registry if omitted)
            config: Conversation settings
        """
        self.client = client
        self.registry = registry if registry is not None else FunctionRegistry()
        self.config = config or ConversationConfig()
        self.config.validate()
        self.context = ContextManager(self.config)

        self._messages: List[Message] = []
        self._lock = asyncio.Lock()
        self._reset(self.config.system_prompt)

    def __repr__(self) -> str:
        return f"<Conversation messages={len(self._messages)} functions={len(self.registry)}>"

    # ==========================================================================
    # TRANSCRIPT
    # ==========================================================================

    @property
    def busy(self) -> bool:
        """True while a turn is in flight"""
        return self._lock.locked()

    def _ensure_idle(self) -> None:
        if self.busy:
            raise ConversationBusyError("Conversation is processing a message")

    def _reset(self, system_prompt: str) -> None:
        self._messages = [Message(role=Role.SYSTEM, content=system_prompt)]

    def _append(
        self,
        role: Role,
        content: str,
        function_call: Optional[FunctionCall] = None,
        name: Optional[str] = None,
    ) -> Message:
        message = Message(role=role, content=content, function_call=function_call, name=name)
        self._messages.append(message)
        self._messages = self.context.trim_history(self._messages)
        return message

    def start_conversation(self, system_prompt: Optional[str] = None) -> None:
        """Reset the transcript to just the system message"""
        self._ensure_idle()
        if system_prompt is not None:
            if not isinstance(system_prompt, str) or not system_prompt.strip():
                raise InvalidContentError("System prompt must be a non-empty string")
            self.config.system_prompt = system_prompt
        self._reset(self.config.system_prompt)
        logger.info("Conversation started")

    def update_system_message(self, system_prompt: str) -> None:
        """Replace the system prompt without touching the rest of the transcript"""
        self._ensure_idle()
        if not isinstance(system_prompt, str) or not system_prompt.strip():
            raise InvalidContentError("System prompt must be a non-empty string")

        self.config.system_prompt = system_prompt
        first = self._messages[0] if self._messages else None
        if first is not None and first.role == Role.SYSTEM:
            first.content = system_prompt
        else:
            self._messages.insert(0, Message(role=Role.SYSTEM, content=system_prompt))
        logger.info("System message updated")

    def add_message(
        self,
        role: Union[Role, str],
        content: str,
        function_call: Optional[Union[FunctionCall, Dict[str, Any]]] = None,
        name: Optional[str] = None,
    ) -> Message:
        """
        Append a message to the transcript, then apply the count-based trim.

        Raises:
            InvalidRoleError: role is not system/user/assistant/function
            InvalidContentError: content is not a string
            ConversationBusyError: a turn is in flight
        """
        self._ensure_idle()
        try:
            role = Role(role)
        except ValueError:
            raise InvalidRoleError(f"Invalid role: {role!r}")
        if not isinstance(content, str):
            raise InvalidContentError("Message content must be a string")
        if isinstance(function_call, dict):
            function_call = FunctionCall.from_dict(function_call)

        return self._append(role, content, function_call=function_call, name=name)

    def history(self, include_system: bool = True) -> List[Message]:
        """Copy of the transcript"""
        if include_system:
            return list(self._messages)
        return [m for m in self._messages if m.role != Role.SYSTEM]

    def api_messages(self) -> List[Dict[str, Any]]:
        """Transcript in wire format"""
        return [m.to_api_dict() for m in self._messages]

    def clear_history(self) -> None:
        """Drop everything but the system message"""
        self._ensure_idle()
        self._reset(self.config.system_prompt)
        logger.info("Conversation history cleared")

    def get_stats(self) -> ConversationStats:
        history = self.history(include_system=False)
        return ConversationStats(
            total_messages=len(history),
            user_messages=sum(1 for m in history if m.role == Role.USER),
            assistant_messages=sum(1 for m in history if m.role == Role.ASSISTANT),
            function_messages=sum(1 for m in history if m.role == Role.FUNCTION),
            estimated_tokens=self.context.estimate_tokens(self._messages),
            started_at=history[0].timestamp if history else None,
        )

    def _model_config(self) -> Dict[str, Any]:
        get_config = getattr(self.client, "get_config", None)
        if callable(get_config):
            return dict(get_config())
        return {}

    def export(self, include_system: bool = False) -> ConversationExport:
        return ConversationExport(
            messages=[m.to_dict() for m in self.history(include_system=include_system)],
            stats=self.get_stats().to_dict(),
            config=self._model_config(),
        )

    def export_text(self, include_system: bool = False) -> str:
        """One ``[timestamp] ROLE: content`` line per message"""
        lines = []
        for message in self.history(include_system=include_system):
            stamp = message.timestamp.strftime("%Y-%m-%d %H:%M:%S")
            content = message.content
            if message.function_call is not None and not content:
                content = f"<calls {message.function_call.name}({message.function_call.arguments})>"
            lines.append(f"[{stamp}] {message.role.value.upper()}: {content}")
        return "\n".join(lines)

    def load_history(
        self,
        records: Union[ConversationExport, Dict[str, Any], Iterable[Dict[str, Any]]],
    ) -> None:
        """
        Restore a transcript from an export.

        A leading system record replaces the current system message; otherwise
        the current one is kept. The count-based trim is applied afterwards.
        """
        self._ensure_idle()
        if isinstance(records, ConversationExport):
            records = records.messages
        elif isinstance(records, dict):
            records = records.get("messages", [])

        try:
            loaded = [Message.from_dict(record) for record in records]
        except (KeyError, ValueError) as e:
            raise InvalidRoleError(f"Invalid message record: {e}") from e

        if loaded and loaded[0].role == Role.SYSTEM:
            system = loaded.pop(0)
            self.config.system_prompt = system.content
        else:
            system = Message(role=Role.SYSTEM, content=self.config.system_prompt)

        self._messages = self.context.trim_history([system] + loaded)
        logger.info(f"Loaded {len(loaded)} messages into conversation")

    # ==========================================================================
    # MAIN ENTRY POINT
    # ==========================================================================

    async def process_message(
        self,
        user_input: str,
        include_history: bool = True,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> ProcessResult:
        """
        Run one user turn to completion.

        Args:
            user_input: The user's message
            include_history: Send the whole transcript, or only the system
                message plus this turn's messages
            max_tokens: Estimated-token budget for the request transcript
            temperature: Sampling temperature override for this turn

        Returns:
            ProcessResult; never raises for processing failures
        """
        async with self._lock:
            return await self._process(user_input, include_history, max_tokens, temperature)

    async def _process(
        self,
        user_input: Any,
        include_history: bool,
        max_tokens: Optional[int],
        temperature: Optional[float],
    ) -> ProcessResult:
        overrides = {"temperature": temperature} if temperature is not None else {}
        turn = _Turn(include_history=include_history, max_tokens=max_tokens, overrides=overrides)

        try:
            if not isinstance(user_input, str) or not user_input.strip():
                raise InvalidInputError("User input must be a non-empty string")

            turn.messages.append(self._append(Role.USER, user_input.strip()))
            completion = await self._complete(turn)
            return await self._dispatch(completion, turn)

        except Exception as e:
            return self._fail(e, turn)

    def _fail(self, error: Exception, turn: _Turn) -> ProcessResult:
        """Convert *error* into a failure envelope and record it"""
        if isinstance(error, ChatfnError):
            detail = error.to_dict()
            text = error.message
            logger.error(f"Turn failed ({error.kind.value}): {text}")
        else:
            detail = {"kind": ErrorKind.PROCESSING_ERROR.value, "message": str(error)}
            text = str(error) or type(error).__name__
            logger.error(f"Turn failed with unexpected error: {text}", exc_info=True)

        if isinstance(error, FunctionExecutionError):
            message = f"I encountered an error while executing the function: {text}"
        else:
            message = f"I encountered an error: {text}"

        detail.setdefault("message", text)
        self._append(Role.ASSISTANT, message)
        return ProcessResult.failure(message, detail, turn.function_calls)

    # ==========================================================================
    # FUNCTION-CALL ROUNDS
    # ==========================================================================

    def _request_messages(self, turn: _Turn) -> List[Dict[str, Any]]:
        if turn.include_history:
            messages = list(self._messages)
        else:
            messages = [self._messages[0]] + turn.messages

        if turn.max_tokens:
            messages = self.context.trim_to_token_limit(messages, turn.max_tokens)
        return [m.to_api_dict() for m in messages]

    async def _complete(self, turn: _Turn) -> Completion:
        functions = self.registry.list_schemas()
        return await self.client.complete(
            self._request_messages(turn),
            functions or None,
            **turn.overrides,
        )

    async def _dispatch(self, completion: Completion, turn: _Turn) -> ProcessResult:
        """Run function rounds until the model answers with text"""
        rounds = 0
        while completion.has_function_call:
            call = completion.function_call
            if rounds >= self.config.max_function_rounds:
                raise TooManyFunctionCallsError(
                    f"Exceeded {self.config.max_function_rounds} function calls in one turn",
                    details={"function_name": call.name},
                )
            rounds += 1
            turn.function_calls.append(call.name)
            logger.info(f"Function call requested: {call.name} (round {rounds})")

            turn.messages.append(self._append(Role.ASSISTANT, "", function_call=call))
            try:
                await self._run_function(call, turn)
            except Exception as e:
                logger.error(f"Function round for '{call.name}' failed: {e}", exc_info=True)
                turn.messages.append(
                    self._append(Role.FUNCTION, f"Function execution failed: {e}", name=call.name)
                )
                try:
                    completion = await self._complete(turn)
                except Exception as follow_up:
                    raise FunctionExecutionError(
                        str(e) or type(e).__name__,
                        details={"function_name": call.name, "follow_up_error": str(follow_up)},
                    ) from follow_up
                continue

            completion = await self._complete(turn)

        if not completion.content:
            raise ChatfnError("Completion returned no content", kind=ErrorKind.PROCESSING_ERROR)

        self._append(Role.ASSISTANT, completion.content)
        return ProcessResult(
            success=True,
            message=completion.content,
            usage=completion.usage,
            finish_reason=completion.finish_reason,
            model=completion.model,
            function_calls=list(turn.function_calls),
        )

    async def _run_function(self, call: FunctionCall, turn: _Turn) -> None:
        """Parse, execute and record one function call"""
        try:
            args = json.loads(call.arguments) if call.arguments else {}
        except json.JSONDecodeError as e:
            logger.warning(f"Could not parse arguments for '{call.name}': {e}")
            turn.messages.append(
                self._append(Role.FUNCTION, f"Failed to parse function arguments: {e}", name=call.name)
            )
            return

        result = await self.registry.execute_safely(
            call.name, args, timeout=self.config.function_timeout,
        )
        if result.success:
            logger.info(f"Function {call.name} OK ({result.execution_time_ms}ms)")
        else:
            logger.warning(f"Function {call.name} failed: {result.error.kind.value}")

        turn.messages.append(
            self._append(Role.FUNCTION, self.format_function_result(result, call.name), name=call.name)
        )

    @staticmethod
    def format_function_result(result: ExecutionResult, function_name: str) -> str:
        """Render an ExecutionResult as function-message text"""
        if not result.success:
            error = result.error
            return f"Error executing {function_name}: {error.message} (Type: {error.kind.value})"

        value = result.result
        if isinstance(value, str):
            return value if value else json.dumps(value)
        if value is None or isinstance(value, bool):
            return json.dumps(value)
        if isinstance(value, (dict, list, tuple)):
            try:
                return json.dumps(value, indent=2, ensure_ascii=False)
            except (TypeError, ValueError):
                pass
            try:
                return json.dumps(sanitize(value), indent=2, ensure_ascii=False)
            except (TypeError, ValueError):
                return f"[unserializable result from {function_name}]"
        return str(value)

    # ==========================================================================
    # HELPERS
    # ==========================================================================

    async def process_batch(self, inputs: Iterable[str], **options: Any) -> List[ProcessResult]:
        """Process *inputs* one after another with a short pause between them"""
        results: List[ProcessResult] = []
        for index, user_input in enumerate(inputs):
            if index:
                await asyncio.sleep(BATCH_PAUSE_SECONDS)
            results.append(await self.process_message(user_input, **options))
        return results

    async def preview_response(self, user_input: str, **options: Any) -> ProcessResult:
        """Run a turn and then restore the transcript as it was"""
        async with self._lock:
            snapshot = list(self._messages)
            try:
                return await self._process(
                    user_input,
                    options.get("include_history", True),
                    options.get("max_tokens"),
                    options.get("temperature"),
                )
            finally:
                self._messages = snapshot

    def available_functions(self) -> List[Dict[str, Any]]:
        summaries = []
        for schema in self.registry.list_schemas():
            parameters = schema.get("parameters") or {}
            summaries.append({
                "name": schema["name"],
                "description": schema["description"],
                "parameters": list((parameters.get("properties") or {}).keys()),
                "required": list(parameters.get("required") or []),
            })
        return summaries

    async def test_function(
        self, name: str, args: Optional[Dict[str, Any]] = None,
    ) -> ExecutionResult:
        """Call a registered function directly, outside any turn"""
        return await self.registry.execute_safely(name, args or {})

    def validate_function_call(
        self, call: Union[FunctionCall, Dict[str, Any], None],
    ) -> ValidationOutcome:
        """Check a function call request before executing it"""
        if isinstance(call, FunctionCall):
            call = call.to_dict()
        if not isinstance(call, dict):
            return ValidationOutcome(False, "Function call must be an object")

        name = call.get("name")
        if not name or not isinstance(name, str):
            return ValidationOutcome(False, "Function call must have a valid name")
        if not self.registry.has(name):
            return ValidationOutcome(False, f"Function '{name}' is not registered")

        arguments = call.get("arguments")
        if arguments:
            if not isinstance(arguments, str):
                return ValidationOutcome(False, "Function call arguments must be a JSON string")
            try:
                json.loads(arguments)
            except json.JSONDecodeError as e:
                return ValidationOutcome(False, f"Invalid function arguments JSON: {e}")

        return ValidationOutcome(True, None)

    async def _execute_call(self, call: Union[FunctionCall, Dict[str, Any]]) -> ExecutionResult:
        outcome = self.validate_function_call(call)
        data = call.to_dict() if isinstance(call, FunctionCall) else call
        name = data.get("name") if isinstance(data, dict) else None
        if not outcome.valid:
            return ExecutionResult.fail(str(name), outcome.error, ErrorKind.VALIDATION_ERROR)

        args = json.loads(data["arguments"]) if data.get("arguments") else {}
        return await self.registry.execute_safely(name, args, timeout=self.config.function_timeout)

    async def execute_function_sequence(
        self, calls: Iterable[Union[FunctionCall, Dict[str, Any]]],
    ) -> List[ExecutionResult]:
        """Validate and execute calls in order; the transcript is not touched"""
        return [await self._execute_call(call) for call in calls]

    async def execute_functions_parallel(
        self, calls: Iterable[Union[FunctionCall, Dict[str, Any]]],
    ) -> List[ExecutionResult]:
        """Like execute_function_sequence but runs the calls concurrently"""
        return list(await asyncio.gather(*(self._execute_call(call) for call in calls)))
