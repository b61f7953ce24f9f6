"""
chatfn - Function-calling conversations over a chat completion API

chatfn runs a conversation with a language model that may ask to call
registered Python functions. It takes care of schema validation, timeouts,
retries with backoff, transcript trimming and error envelopes.

Key Features:
- FunctionRegistry with JSON-Schema-style argument validation and timeouts
- Retrying completion client with table-driven error classification
- Conversation orchestrator with a bounded multi-round function-call loop
- @function decorator that builds schemas from type hints
- YAML + environment configuration

Quick Start:
    from chatfn import Conversation, FunctionRegistry, OpenAIClient, function

    registry = FunctionRegistry()

    @function(registry=registry)
    def add(a: int, b: int) -> int:
        '''Add two integers.'''
        return a + b

    async with OpenAIClient(model="gpt-4") as client:
        conversation = Conversation(client, registry)
        result = await conversation.process_message("What is 2 + 40?")
        print(result.message)
"""

__version__ = "0.1.0"

from .errors import (
    AuthError,
    BadRequestError,
    ChatfnError,
    CompletionError,
    ConversationBusyError,
    ConversationError,
    ErrorKind,
    FunctionExecutionError,
    HandlerError,
    InvalidContentError,
    InvalidInputError,
    InvalidRoleError,
    ModelNotFoundError,
    NetworkError,
    RateLimitError,
    RequestFailedError,
    SchemaError,
    ServerError,
    TooManyFunctionCallsError,
)
from .tools import (
    ExecutionResult,
    FunctionRegistry,
    FunctionSchema,
    function,
    register_builtin_functions,
    sanitize,
)
from .llm import (
    BaseLLMClient,
    Completion,
    FunctionCall,
    LLMConfig,
    OpenAIClient,
    RetryPolicy,
    Usage,
)
from .protocols import CompletionClientProtocol
from .conversation import (
    Conversation,
    ConversationConfig,
    ConversationExport,
    ConversationStats,
    Message,
    ProcessResult,
    Role,
)
from .config import ChatfnSettings, ConfigLoader, build_conversation

__all__ = [
    "__version__",
    # Errors
    "AuthError",
    "BadRequestError",
    "ChatfnError",
    "CompletionError",
    "ConversationBusyError",
    "ConversationError",
    "ErrorKind",
    "FunctionExecutionError",
    "HandlerError",
    "InvalidContentError",
    "InvalidInputError",
    "InvalidRoleError",
    "ModelNotFoundError",
    "NetworkError",
    "RateLimitError",
    "RequestFailedError",
    "SchemaError",
    "ServerError",
    "TooManyFunctionCallsError",
    # Tools
    "ExecutionResult",
    "FunctionRegistry",
    "FunctionSchema",
    "function",
    "register_builtin_functions",
    "sanitize",
    # LLM
    "BaseLLMClient",
    "Completion",
    "CompletionClientProtocol",
    "FunctionCall",
    "LLMConfig",
    "OpenAIClient",
    "RetryPolicy",
    "Usage",
    # Conversation
    "Conversation",
    "ConversationConfig",
    "ConversationExport",
    "ConversationStats",
    "Message",
    "ProcessResult",
    "Role",
    # Config
    "ChatfnSettings",
    "ConfigLoader",
    "build_conversation",
]
