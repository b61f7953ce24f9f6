"""Conversation configuration.

Centralizes the tunable parameters of a conversation: transcript bounds,
function execution budget and the round cap that keeps every turn finite.
"""

from dataclasses import dataclass

from ..constants import (
    CONVERSATION_FUNCTION_TIMEOUT,
    DEFAULT_MAX_FUNCTION_ROUNDS,
    DEFAULT_MAX_HISTORY_LENGTH,
    DEFAULT_SYSTEM_PROMPT,
    MESSAGE_OVERHEAD_TOKENS,
)


@dataclass
class ConversationConfig:
    """All conversation settings in one place."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Transcript
    max_history_length: int = DEFAULT_MAX_HISTORY_LENGTH
    """Entries kept after a count-based trim, system message included."""
    message_overhead_tokens: int = MESSAGE_OVERHEAD_TOKENS
    """Fixed token cost added per message by the estimator."""

    # Function calls
    function_timeout: float = CONVERSATION_FUNCTION_TIMEOUT
    """Timeout in seconds for each function call made during a turn."""
    max_function_rounds: int = DEFAULT_MAX_FUNCTION_ROUNDS
    """Function calls allowed in one user turn before it fails."""

    def validate(self) -> None:
        if not isinstance(self.system_prompt, str) or not self.system_prompt.strip():
            raise ValueError("System prompt must be a non-empty string")
        if self.max_history_length < 2:
            raise ValueError("max_history_length must be at least 2")
        if self.function_timeout <= 0:
            raise ValueError("function_timeout must be positive")
        if self.max_function_rounds < 1:
            raise ValueError("max_function_rounds must be at least 1")
