"""
Test that the public chatfn imports work.
"""


def test_core_imports():
    """Test top-level package exports"""
    from chatfn import (
        Conversation,
        FunctionRegistry,
        OpenAIClient,
        ProcessResult,
        function,
        __version__,
    )

    assert Conversation is not None
    assert FunctionRegistry is not None
    assert OpenAIClient is not None
    assert ProcessResult is not None
    assert function is not None
    assert __version__


def test_subpackage_imports():
    """Test subpackage exports"""
    from chatfn.tools import ExecutionResult, sanitize
    from chatfn.llm import RetryPolicy, classify_error
    from chatfn.conversation import ContextManager, Role
    from chatfn.config import ConfigLoader

    assert ExecutionResult is not None
    assert sanitize is not None
    assert RetryPolicy is not None
    assert classify_error is not None
    assert ContextManager is not None
    assert Role.FUNCTION.value == "function"
    assert ConfigLoader is not None


def test_error_kinds_are_strings():
    from chatfn import ErrorKind

    assert ErrorKind.TOO_MANY_FUNCTION_CALLS == "TOO_MANY_FUNCTION_CALLS"
