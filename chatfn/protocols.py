"""
chatfn Protocols - Interfaces the conversation layer depends on

Any object with a matching ``complete`` coroutine can drive a Conversation,
which keeps the orchestrator independent of a particular provider.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .llm.base import Completion


@runtime_checkable
class CompletionClientProtocol(Protocol):
    """
    Abstract interface for completion clients

    Example:
        class ScriptedClient:
            def __init__(self, completions):
                self._completions = list(completions)

            async def complete(self, messages, functions=None, **kwargs):
                return self._completions.pop(0)
    """

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        functions: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> Completion:
        """
        Request the next completion

        Args:
            messages: Transcript in wire format
            functions: Function schemas the model may call
            **kwargs: Per-call overrides such as temperature and max_tokens

        Returns:
            Completion with either text or a function call request

        Raises:
            CompletionError: Classified failure after retries
        """
        ...
