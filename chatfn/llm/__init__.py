"""
chatfn LLM - Retrying completion clients

Usage:
    from chatfn.llm import OpenAIClient

    async with OpenAIClient(model="gpt-4") as client:
        completion = await client.complete([{"role": "user", "content": "Hi"}])
"""

from .base import (
    BaseLLMClient,
    Completion,
    FunctionCall,
    LLMConfig,
    Usage,
    check_transcript,
)
from .openai_client import OpenAIClient
from .retry import RetryPolicy, call_with_retry, classify_error, classify_status

__all__ = [
    "BaseLLMClient",
    "Completion",
    "FunctionCall",
    "LLMConfig",
    "Usage",
    "check_transcript",
    "OpenAIClient",
    "RetryPolicy",
    "call_with_retry",
    "classify_error",
    "classify_status",
]
