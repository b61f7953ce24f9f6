"""
chatfn Config - YAML settings and conversation wiring
"""

from .loader import (
    ChatfnSettings,
    ConfigLoader,
    ConversationSettings,
    LLMSettings,
    RegistrySettings,
    build_conversation,
)

__all__ = [
    "ChatfnSettings",
    "ConfigLoader",
    "ConversationSettings",
    "LLMSettings",
    "RegistrySettings",
    "build_conversation",
]
