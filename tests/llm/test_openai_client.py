"""Tests for chatfn.llm.openai_client with a fake SDK client"""

from types import SimpleNamespace

import pytest

from chatfn.errors import AuthError, ServerError
from chatfn.llm import LLMConfig, OpenAIClient, RetryPolicy


class StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


def make_response(content=None, function_call=None, finish_reason="stop"):
    message = SimpleNamespace(content=content, function_call=function_call)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)],
        usage=SimpleNamespace(prompt_tokens=5, completion_tokens=7, total_tokens=12),
        model="gpt-4-0613",
    )


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def create(self, **params):
        self.requests.append(params)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeModels:
    def __init__(self, error=None):
        self.error = error

    async def list(self):
        if self.error:
            raise self.error
        return []


class FakeSDK:
    def __init__(self, outcomes=(), models_error=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(outcomes))
        self.models = FakeModels(models_error)
        self.closed = False

    async def close(self):
        self.closed = True


def make_client(sdk, **kwargs):
    client = OpenAIClient(
        api_key="sk-test",
        retry_policy=RetryPolicy(base_delay=0.0, max_jitter=0.0),
        **kwargs,
    )
    client._client = sdk
    return client


USER = [{"role": "user", "content": "What time is it?"}]


# =========================================================================
# Construction
# =========================================================================


class TestConstruction:

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIClient().config.api_key == "sk-env"

    def test_api_key_from_env_with_config(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIClient(config=LLMConfig(model="gpt-4o")).config.api_key == "sk-env"

    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIClient(api_key="sk-explicit").config.api_key == "sk-explicit"

    def test_sdk_retries_disabled(self):
        client = OpenAIClient(api_key="sk-test")
        assert client._get_client().max_retries == 0


# =========================================================================
# complete
# =========================================================================


class TestComplete:

    @pytest.mark.asyncio
    async def test_text_response(self):
        sdk = FakeSDK([make_response(content="It is noon")])
        client = make_client(sdk)

        completion = await client.complete(USER)

        assert completion.content == "It is noon"
        assert completion.function_call is None
        assert completion.finish_reason == "stop"
        assert completion.usage.total_tokens == 12
        assert completion.model == "gpt-4-0613"

        request = sdk.chat.completions.requests[0]
        assert request["model"] == "gpt-4"
        assert request["temperature"] == 0.7
        assert request["max_tokens"] == 1000
        assert "functions" not in request

    @pytest.mark.asyncio
    async def test_function_call_response(self):
        call = SimpleNamespace(name="get_current_time", arguments="{}")
        sdk = FakeSDK([make_response(function_call=call, finish_reason="function_call")])
        client = make_client(sdk)
        schemas = [{"name": "get_current_time", "description": "Time", "parameters": {}}]

        completion = await client.complete(USER, schemas)

        assert completion.has_function_call
        assert completion.function_call.name == "get_current_time"
        request = sdk.chat.completions.requests[0]
        assert request["functions"] == schemas
        assert request["function_call"] == "auto"

    @pytest.mark.asyncio
    async def test_overrides_and_extra(self):
        sdk = FakeSDK([make_response(content="ok")])
        client = make_client(sdk, extra={"top_p": 0.5})

        await client.complete(USER, temperature=0.1)

        request = sdk.chat.completions.requests[0]
        assert request["temperature"] == 0.1
        assert request["top_p"] == 0.5

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        sdk = FakeSDK([StatusError(502), make_response(content="recovered")])
        client = make_client(sdk)

        completion = await client.complete(USER)

        assert completion.content == "recovered"
        assert len(sdk.chat.completions.requests) == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries(self):
        sdk = FakeSDK([StatusError(500)] * 4)
        client = make_client(sdk)

        with pytest.raises(ServerError) as exc_info:
            await client.complete(USER)
        assert exc_info.value.attempts == 4

    @pytest.mark.asyncio
    async def test_close(self):
        sdk = FakeSDK()
        client = make_client(sdk)
        await client.close()
        assert sdk.closed is True
        assert client._client is None


# =========================================================================
# verify_credentials
# =========================================================================


class TestVerifyCredentials:

    @pytest.mark.asyncio
    async def test_valid_key(self):
        client = make_client(FakeSDK())
        assert await client.verify_credentials() is True

    @pytest.mark.asyncio
    async def test_invalid_key(self):
        client = make_client(FakeSDK(models_error=StatusError(401)))
        with pytest.raises(AuthError):
            await client.verify_credentials()
