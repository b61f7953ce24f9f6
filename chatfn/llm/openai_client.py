"""
chatfn OpenAI Client - Completion client for the OpenAI chat API

Speaks the ``functions`` / ``function_call`` request shape. Works with any
OpenAI-compatible endpoint through ``base_url``.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from .base import BaseLLMClient, Completion, FunctionCall, LLMConfig, Usage
from .retry import RetryPolicy, classify_error

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """
    OpenAI API client.

    Example:
        client = OpenAIClient(api_key="sk-xxx", model="gpt-4")
        completion = await client.complete(
            [{"role": "user", "content": "What time is it?"}],
            functions=registry.list_schemas(),
        )

        # OpenAI-compatible server
        client = OpenAIClient(api_key="xxx", base_url="http://localhost:8000/v1")
    """

    provider = "openai"

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        retry_policy: Optional[RetryPolicy] = None,
        **kwargs,
    ):
        """
        Initialize OpenAI client.

        Args:
            config: LLMConfig instance
            retry_policy: Backoff policy for retryable failures
            api_key: OpenAI API key (or set OPENAI_API_KEY env var)
            **kwargs: Additional config options
        """
        if config is None and kwargs.get("api_key") is None:
            kwargs["api_key"] = os.environ.get("OPENAI_API_KEY")
        elif config is not None and config.api_key is None and "api_key" not in kwargs:
            config.api_key = os.environ.get("OPENAI_API_KEY")

        super().__init__(config, retry_policy, **kwargs)

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the SDK client; SDK retries are off, the policy owns them"""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=0,
                default_headers=self.config.default_headers or None,
            )
        return self._client

    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        functions: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ) -> Completion:
        """Make one OpenAI API call"""
        client = self._get_client()

        params: Dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "messages": messages,
            "temperature": kwargs.get("temperature", self.config.temperature),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            **self.config.extra,
        }
        if functions:
            params["functions"] = functions
            params["function_call"] = "auto"

        response = await client.chat.completions.create(**params)

        choice = response.choices[0]
        message = choice.message

        function_call = None
        if getattr(message, "function_call", None) is not None:
            function_call = FunctionCall(
                name=message.function_call.name,
                arguments=message.function_call.arguments or "{}",
            )

        usage = None
        if response.usage:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return Completion(
            content=message.content,
            function_call=function_call,
            finish_reason=choice.finish_reason,
            usage=usage,
            model=response.model,
            raw_response=response,
        )

    async def verify_credentials(self) -> bool:
        """
        Check the API key with a models listing.

        Returns:
            True when the key is accepted

        Raises:
            CompletionError: Classified failure (e.g. AuthError for a bad key)
        """
        client = self._get_client()
        try:
            await client.models.list()
        except Exception as e:
            classified = classify_error(e)
            logger.error(f"Credential check failed ({classified.kind.value}): {classified}")
            raise classified from e
        logger.info("API key validated")
        return True
