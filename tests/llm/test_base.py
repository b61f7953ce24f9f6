"""Tests for chatfn.llm.base: config validation, transcript checks, complete()"""

import pytest

from chatfn.errors import AuthError, BadRequestError, RateLimitError
from chatfn.llm.base import (
    BaseLLMClient,
    Completion,
    FunctionCall,
    LLMConfig,
    Usage,
    check_transcript,
)
from chatfn.llm.retry import RetryPolicy


# ── Concrete subclass for testing ──


class StubLLMClient(BaseLLMClient):
    provider = "stub"

    def __init__(self, *args, errors=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.errors = list(errors or [])
        self.calls = []

    async def _call_api(self, messages, functions=None, **kwargs):
        self.calls.append({"messages": messages, "functions": functions, "kwargs": kwargs})
        if self.errors:
            raise self.errors.pop(0)
        return Completion(content="stub", usage=Usage(total_tokens=3), model=self.config.model)


FAST = RetryPolicy(base_delay=0.0, max_jitter=0.0)
USER = [{"role": "user", "content": "hi"}]


# =========================================================================
# LLMConfig
# =========================================================================


class TestLLMConfig:

    def test_defaults_valid(self):
        config = LLMConfig()
        config.validate()
        assert config.model == "gpt-4"
        assert config.temperature == 0.7
        assert config.max_tokens == 1000

    @pytest.mark.parametrize("changes", [
        {"model": ""},
        {"temperature": -0.1},
        {"temperature": 2.1},
        {"temperature": True},
        {"max_tokens": 0},
        {"max_tokens": 4097},
        {"max_tokens": 10.5},
    ])
    def test_invalid(self, changes):
        with pytest.raises(ValueError):
            LLMConfig(**changes).validate()

    @pytest.mark.parametrize("changes", [
        {"temperature": 0},
        {"temperature": 2},
        {"max_tokens": 1},
        {"max_tokens": 4096},
    ])
    def test_boundaries(self, changes):
        LLMConfig(**changes).validate()

    def test_to_dict_has_no_credentials(self):
        assert "api_key" not in LLMConfig(api_key="sk-secret").to_dict()


# =========================================================================
# Response types
# =========================================================================


class TestResponseTypes:

    def test_function_call_from_dict_serializes_arguments(self):
        call = FunctionCall.from_dict({"name": "f", "arguments": {"a": 1}})
        assert call.arguments == '{"a": 1}'

    def test_has_function_call(self):
        assert Completion(content="x").has_function_call is False
        assert Completion(function_call=FunctionCall(name="f")).has_function_call is True

    def test_to_dict(self):
        completion = Completion(content="x", usage=Usage(1, 2, 3), finish_reason="stop")
        assert completion.to_dict()["usage"] == {
            "prompt_tokens": 1,
            "completion_tokens": 2,
            "total_tokens": 3,
        }


# =========================================================================
# check_transcript
# =========================================================================


class TestCheckTranscript:

    def test_valid(self):
        check_transcript([
            {"role": "system", "content": "s"},
            {"role": "user", "content": "u"},
            {"role": "assistant", "content": "", "function_call": {"name": "f", "arguments": "{}"}},
            {"role": "function", "name": "f", "content": "r"},
        ])

    @pytest.mark.parametrize("messages", [
        [],
        None,
        [{"content": "no role"}],
        [{"role": "user"}],
        [{"role": "user", "content": ""}],
        [{"role": "user", "content": 5}],
        [{"role": "assistant", "content": ""}],
    ])
    def test_invalid(self, messages):
        with pytest.raises(BadRequestError):
            check_transcript(messages)


# =========================================================================
# BaseLLMClient
# =========================================================================


class TestBaseClient:

    def test_invalid_config_rejected_at_construction(self):
        with pytest.raises(ValueError):
            StubLLMClient(temperature=3.0)

    def test_kwargs_override_config(self):
        client = StubLLMClient(LLMConfig(), model="gpt-4o")
        assert client.get_config()["model"] == "gpt-4o"

    def test_update_config_keeps_old_on_failure(self):
        client = StubLLMClient()
        with pytest.raises(ValueError):
            client.update_config(max_tokens=0)
        assert client.config.max_tokens == 1000

        client.update_config(temperature=0.2)
        assert client.config.temperature == 0.2

    @pytest.mark.asyncio
    async def test_complete(self):
        client = StubLLMClient()
        completion = await client.complete(USER, [{"name": "f"}], temperature=None, max_tokens=50)
        assert completion.content == "stub"
        assert client.calls[0]["functions"] == [{"name": "f"}]
        assert client.calls[0]["kwargs"] == {"max_tokens": 50}

    @pytest.mark.asyncio
    async def test_empty_functions_not_sent(self):
        client = StubLLMClient()
        await client.complete(USER, [])
        assert client.calls[0]["functions"] is None

    @pytest.mark.asyncio
    async def test_bad_transcript_makes_no_call(self):
        client = StubLLMClient()
        with pytest.raises(BadRequestError):
            await client.complete([])
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_retries_rate_limit(self):
        client = StubLLMClient(
            retry_policy=FAST,
            errors=[RateLimitError("slow down"), RateLimitError("slow down")],
        )
        completion = await client.complete(USER)
        assert completion.content == "stub"
        assert len(client.calls) == 3

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self):
        client = StubLLMClient(retry_policy=FAST, errors=[AuthError("bad key")])
        with pytest.raises(AuthError):
            await client.complete(USER)
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_async_context_manager(self):
        async with StubLLMClient() as client:
            assert client.provider == "stub"
        assert client._client is None
