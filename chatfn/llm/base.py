"""
chatfn LLM Client Base - Base class and common types for completion clients

This module provides:
- LLMConfig: Configuration dataclass, validated once per client
- FunctionCall / Usage / Completion: Standardized response format
- BaseLLMClient: Abstract base that adds transcript checks and retries
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..constants import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_TEMPERATURE,
    MAX_MAX_TOKENS,
    MAX_TEMPERATURE,
    MIN_MAX_TOKENS,
    MIN_TEMPERATURE,
)
from ..errors import BadRequestError
from .retry import RetryPolicy, call_with_retry


@dataclass
class LLMConfig:
    """
    Configuration for completion clients.

    Attributes:
        api_key: API key for the provider
        model: Model name (e.g., "gpt-4", "gpt-4o")
        temperature: Sampling temperature (0.0 - 2.0)
        max_tokens: Maximum tokens in response (1 - 4096)
        base_url: Optional base URL override for API
        timeout: Per-request timeout in seconds
        default_headers: Additional headers to send with requests
        extra: Provider-specific parameters merged into every request
    """
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    base_url: Optional[str] = None
    timeout: float = 60.0
    default_headers: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        """Raise ValueError if model or sampling parameters are out of range"""
        if not isinstance(self.model, str) or not self.model.strip():
            raise ValueError("Model must be a non-empty string")

        if (
            isinstance(self.temperature, bool)
            or not isinstance(self.temperature, (int, float))
            or not MIN_TEMPERATURE <= self.temperature <= MAX_TEMPERATURE
        ):
            raise ValueError(
                f"Temperature must be a number between {MIN_TEMPERATURE:g} and {MAX_TEMPERATURE:g}"
            )

        if (
            isinstance(self.max_tokens, bool)
            or not isinstance(self.max_tokens, int)
            or not MIN_MAX_TOKENS <= self.max_tokens <= MAX_MAX_TOKENS
        ):
            raise ValueError(
                f"Max tokens must be an integer between {MIN_MAX_TOKENS} and {MAX_MAX_TOKENS}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Public view of the config (no credentials)"""
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }


@dataclass
class FunctionCall:
    """A function call requested by the model; arguments is the raw JSON string"""
    name: str
    arguments: str = "{}"

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionCall":
        arguments = data.get("arguments", "{}")
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        return cls(name=data.get("name", ""), arguments=arguments)


@dataclass
class Usage:
    """Token usage information"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class Completion:
    """
    Standardized completion response.

    Either ``content`` holds the assistant's text, or ``function_call`` holds
    a function invocation request.
    """
    content: Optional[str] = None
    function_call: Optional[FunctionCall] = None
    finish_reason: Optional[str] = None
    usage: Optional[Usage] = None
    model: Optional[str] = None

    # Raw response for debugging
    raw_response: Optional[Any] = None

    @property
    def has_function_call(self) -> bool:
        return self.function_call is not None and bool(self.function_call.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "function_call": self.function_call.to_dict() if self.function_call else None,
            "finish_reason": self.finish_reason,
            "usage": self.usage.to_dict() if self.usage else None,
            "model": self.model,
        }


def check_transcript(messages: List[Dict[str, Any]]) -> None:
    """Raise BadRequestError unless *messages* is a non-empty, well-formed transcript."""
    if not isinstance(messages, list) or not messages:
        raise BadRequestError("Messages must be a non-empty list")

    for index, message in enumerate(messages):
        if not isinstance(message, dict) or not message.get("role"):
            raise BadRequestError(f"Message {index} must have a role")
        content = message.get("content")
        if message["role"] == "assistant" and message.get("function_call"):
            if content is not None and not isinstance(content, str):
                raise BadRequestError(f"Message {index} content must be a string")
            continue
        if not isinstance(content, str) or not content:
            raise BadRequestError(f"Message {index} must have role and content properties")


class BaseLLMClient(ABC):
    """
    Abstract base class for completion clients.

    Subclasses implement ``_call_api`` (one raw request, no retries). The
    public ``complete`` validates the transcript and wraps ``_call_api`` in the
    retry policy, raising classified CompletionErrors.

    Example:
        class MyClient(BaseLLMClient):
            async def _call_api(self, messages, functions, **kwargs):
                # Provider-specific implementation
                ...
    """

    # Provider name (override in subclasses)
    provider: str = "unknown"

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        retry_policy: Optional[RetryPolicy] = None,
        **kwargs,
    ):
        """
        Initialize the client.

        Args:
            config: LLMConfig instance
            retry_policy: Backoff policy (defaults to 3 retries, 1s base)
            **kwargs: Override config values

        Raises:
            ValueError: If the model or sampling parameters are invalid
        """
        if config is None:
            config = LLMConfig(**kwargs)
        else:
            for key, value in kwargs.items():
                if hasattr(config, key):
                    setattr(config, key, value)

        config.validate()
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy()
        self._client = None  # Lazy-initialized SDK client

    def get_config(self) -> Dict[str, Any]:
        return self.config.to_dict()

    def update_config(self, **changes: Any) -> None:
        """Apply changes and re-validate; the old config is kept on failure"""
        candidate = replace(self.config, **changes)
        candidate.validate()
        self.config = candidate

    @abstractmethod
    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        functions: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ) -> Completion:
        """
        Make one API call (provider-specific, no retries).

        Args:
            messages: Transcript in wire format
            functions: Optional function schemas to advertise
            **kwargs: Per-call overrides (temperature, max_tokens)

        Returns:
            Completion with standardized format
        """
        pass

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        functions: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ) -> Completion:
        """
        Request the next completion for *messages*.

        Args:
            messages: Transcript in wire format (role/content/function_call/name)
            functions: Function schemas the model may call
            **kwargs: Per-call overrides (temperature, max_tokens)

        Returns:
            Completion holding either text or a function call request

        Raises:
            CompletionError: Terminal failure or retries exhausted
        """
        check_transcript(messages)
        overrides = {k: v for k, v in kwargs.items() if v is not None}

        async def request() -> Completion:
            return await self._call_api(messages, functions or None, **overrides)

        return await call_with_retry(request, self.retry_policy)

    async def close(self) -> None:
        """Close the client and release resources"""
        if self._client and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
