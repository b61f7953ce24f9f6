"""Transcript size management.

Two policies:

- ``trim_history``: count-based, applied after every append.
- ``trim_to_token_limit``: token-budget based, applied to a request
  transcript when the caller supplies a budget.

Token counts are estimates (~4 bytes per token plus a fixed per-message
overhead), good enough for trimming and stats but not for billing.
"""

import logging
from typing import List

from .config import ConversationConfig
from .models import Message, Role

logger = logging.getLogger(__name__)


class ContextManager:
    """Keeps a transcript within count and token bounds."""

    def __init__(self, config: ConversationConfig) -> None:
        self.config = config

    def estimate_tokens(self, messages: List[Message]) -> int:
        overhead = self.config.message_overhead_tokens
        return sum(m.estimated_tokens(overhead) for m in messages)

    def trim_history(self, messages: List[Message]) -> List[Message]:
        """Keep the system message plus the most recent ``max - 1`` entries."""
        limit = self.config.max_history_length
        if len(messages) <= limit:
            return messages

        trimmed = self._keep_recent(messages, limit - 1)
        logger.debug(f"Trimmed transcript from {len(messages)} to {len(trimmed)} messages")
        return trimmed

    def trim_to_token_limit(self, messages: List[Message], max_tokens: int) -> List[Message]:
        """Keep the system message, then the newest messages that fit *max_tokens*.

        Stops at the first message that does not fit so the kept tail stays
        contiguous.
        """
        if not messages:
            return messages

        system = next((m for m in messages if m.role == Role.SYSTEM), None)
        others = [m for m in messages if m is not system]

        used = self.estimate_tokens([system]) if system is not None else 0
        kept: List[Message] = []
        for message in reversed(others):
            cost = self.estimate_tokens([message])
            if used + cost > max_tokens:
                break
            kept.append(message)
            used += cost

        kept.reverse()
        if len(kept) < len(others):
            logger.debug(
                f"Token trim kept {len(kept)} of {len(others)} messages "
                f"(~{used} tokens, budget {max_tokens})"
            )
        return ([system] if system is not None else []) + kept

    @staticmethod
    def _keep_recent(messages: List[Message], keep: int) -> List[Message]:
        """Return the system message (if first) plus the last *keep* messages."""
        if messages[0].role == Role.SYSTEM:
            system, rest = [messages[0]], messages[1:]
        else:
            system, rest = [], messages

        return system + (rest[-keep:] if len(rest) > keep else rest)
