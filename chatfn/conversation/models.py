"""
Conversation data types - messages, stats, turn results and exports
"""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..constants import CHARS_PER_TOKEN, MESSAGE_OVERHEAD_TOKENS
from ..llm.base import FunctionCall, Usage


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Closed set of transcript roles"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


@dataclass
class Message:
    """
    One transcript entry

    Attributes:
        role: Who produced the message
        content: Message text (empty for a function call request)
        timestamp: Assigned when the message enters the transcript
        function_call: The model's function call request, assistant only
        name: Function name, function-role messages only
    """
    role: Role
    content: str
    timestamp: datetime = field(default_factory=_now)
    function_call: Optional[FunctionCall] = None
    name: Optional[str] = None

    def to_api_dict(self) -> Dict[str, Any]:
        """Wire shape sent to the completion endpoint"""
        data: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.function_call is not None:
            data["function_call"] = self.function_call.to_dict()
        if self.name is not None:
            data["name"] = self.name
        return data

    def to_dict(self) -> Dict[str, Any]:
        data = self.to_api_dict()
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        elif not isinstance(timestamp, datetime):
            timestamp = _now()

        function_call = data.get("function_call")
        if isinstance(function_call, dict):
            function_call = FunctionCall.from_dict(function_call)

        return cls(
            role=Role(data["role"]),
            content=data.get("content") or "",
            timestamp=timestamp,
            function_call=function_call,
            name=data.get("name"),
        )

    def estimated_tokens(self, overhead: int = MESSAGE_OVERHEAD_TOKENS) -> int:
        """~4 UTF-8 bytes per token plus a fixed per-message overhead"""
        tokens = math.ceil(len(self.content.encode("utf-8")) / CHARS_PER_TOKEN) + overhead
        if self.function_call is not None:
            payload = json.dumps(self.function_call.to_dict())
            tokens += math.ceil(len(payload) / CHARS_PER_TOKEN)
        return tokens


@dataclass
class ConversationStats:
    """Derived snapshot of a transcript"""
    total_messages: int = 0
    user_messages: int = 0
    assistant_messages: int = 0
    function_messages: int = 0
    estimated_tokens: int = 0
    started_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_messages": self.total_messages,
            "user_messages": self.user_messages,
            "assistant_messages": self.assistant_messages,
            "function_messages": self.function_messages,
            "estimated_tokens": self.estimated_tokens,
            "started_at": self.started_at.isoformat() if self.started_at else None,
        }


@dataclass
class ProcessResult:
    """
    Envelope returned by every conversation turn

    On failure ``error`` holds ``{"kind", "message", ...}`` and ``message`` is
    the text recorded in the transcript for the failed turn.
    """
    success: bool
    message: str
    usage: Optional[Usage] = None
    finish_reason: Optional[str] = None
    model: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    function_calls: List[str] = field(default_factory=list)

    @classmethod
    def failure(
        cls,
        message: str,
        error: Dict[str, Any],
        function_calls: Optional[List[str]] = None,
    ) -> "ProcessResult":
        return cls(
            success=False,
            message=message,
            error=error,
            function_calls=list(function_calls or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "usage": self.usage.to_dict() if self.usage else None,
            "finish_reason": self.finish_reason,
            "model": self.model,
            "error": self.error,
            "function_calls": list(self.function_calls),
        }


@dataclass
class ConversationExport:
    """Plain structured record of a conversation, ready to persist"""
    messages: List[Dict[str, Any]]
    stats: Dict[str, Any]
    config: Dict[str, Any]
    exported_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exported_at": self.exported_at.isoformat(),
            "messages": self.messages,
            "stats": self.stats,
            "config": self.config,
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
