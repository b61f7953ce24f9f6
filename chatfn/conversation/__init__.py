"""
chatfn Conversation - Transcript management and the function-calling loop

Usage:
    from chatfn.conversation import Conversation, ConversationConfig

    conversation = Conversation(client, registry, ConversationConfig(max_function_rounds=3))
    result = await conversation.process_message("What's 17 * 23?")
"""

from .config import ConversationConfig
from .context_manager import ContextManager
from .models import (
    ConversationExport,
    ConversationStats,
    Message,
    ProcessResult,
    Role,
)
from .orchestrator import Conversation

__all__ = [
    "Conversation",
    "ConversationConfig",
    "ContextManager",
    "ConversationExport",
    "ConversationStats",
    "Message",
    "ProcessResult",
    "Role",
]
