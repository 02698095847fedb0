"""Tests for backend construction, selection and error wrapping."""

import pytest
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from conftest import ScriptedBackend
from llm_conductor.backends import Provider, get_api_key
from llm_conductor.backends.anthropic import AnthropicBackend
from llm_conductor.backends.openai import OpenAIBackend
from llm_conductor.context import Context
from llm_conductor.errors import BackendUnavailable, ConfigurationError, classify_backend_error
from llm_conductor.factory import create_backend
from llm_conductor.params import ChatOptions
from llm_conductor.registry import BackendRegistry
from llm_conductor.types import Message


class TestFactory:
    """create_backend and API key lookup."""

    def test_create_with_api_key(self):
        """Test the factory builds a backend from an explicit key."""
        backend = create_backend(Provider.OPENAI, api_key="sk-test")
        assert isinstance(backend, OpenAIBackend)
        assert backend.provider_name == "openai"
        assert backend.supports_streaming

    def test_create_from_client(self):
        """Test the factory wraps a caller-supplied client."""
        client = AsyncAnthropic(api_key="test")
        backend = create_backend("anthropic", client=client, name="claude")
        assert isinstance(backend, AnthropicBackend)
        assert backend.name == "claude"

    def test_client_rejects_construction_options(self):
        """SDK settings cannot be combined with a pre-configured client."""
        client = AsyncOpenAI(api_key="test")
        with pytest.raises(ConfigurationError, match="timeout"):
            create_backend(Provider.OPENAI, client=client, timeout=5)

    def test_from_client_type_check(self):
        """Test a client of the wrong SDK is rejected."""
        with pytest.raises(TypeError):
            OpenAIBackend.from_client(AsyncAnthropic(api_key="test"))

    def test_unknown_provider(self):
        """Test unsupported providers raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            create_backend("gemini", api_key="x")

    def test_get_api_key(self):
        """Test API keys are read from the environment mapping."""
        assert get_api_key(Provider.ANTHROPIC, environ={"ANTHROPIC_API_KEY": "k"}) == "k"
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            get_api_key(Provider.OPENAI, environ={})


class TestBackendRegistry:
    def test_selection(self):
        """Test selecting a backend and model."""
        backend = ScriptedBackend()
        registry = BackendRegistry({"main": backend})

        assert not registry.is_configured
        with pytest.raises(ConfigurationError):
            registry.current

        registry.set_current("main", "model-x")
        assert registry.current == ("main", backend, "model-x")
        assert registry.names() == ["main"]

    def test_invalid_selection(self):
        """Test unknown backends and empty models are rejected."""
        registry = BackendRegistry({"main": ScriptedBackend()})
        with pytest.raises(ConfigurationError):
            registry.set_current("other", "m")
        with pytest.raises(ConfigurationError):
            registry.set_current("main", "")

    @pytest.mark.asyncio
    async def test_aclose_closes_all(self):
        """Test closing the registry closes every backend."""
        first, second = ScriptedBackend(), ScriptedBackend()
        registry = BackendRegistry({"a": first, "b": second})
        await registry.aclose()
        assert first.closed and second.closed


class TestSDKBackend:
    """Request flow through the SDK backend with the network call stubbed."""

    @pytest.mark.asyncio
    async def test_chat_parses_response(self):
        """Test a chat request is built and its response parsed."""
        backend = OpenAIBackend.from_client(AsyncOpenAI(api_key="test"))
        sent = {}

        async def fake_chat_impl(model, request):
            sent.update(model=model, **request)
            return ChatCompletion.model_validate(
                {
                    "id": "cmpl-1",
                    "object": "chat.completion",
                    "created": 0,
                    "model": model,
                    "choices": [
                        {"index": 0, "finish_reason": "stop", "message": {"role": "assistant", "content": "pong"}}
                    ],
                    "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
                }
            )

        backend._chat_impl = fake_chat_impl
        response = await backend.chat("gpt-4o", Context(messages=[Message.user("ping")]), ChatOptions())

        assert sent["model"] == "gpt-4o"
        assert sent["messages"] == [{"role": "user", "content": "ping"}]
        assert response.content == "pong"
        assert response.usage.total_tokens == 4

    @pytest.mark.asyncio
    async def test_chat_wraps_errors(self):
        """Test SDK failures surface as BackendUnavailable."""
        backend = AnthropicBackend.from_client(AsyncAnthropic(api_key="test"))
        cause = ConnectionError("refused")

        async def failing(model, request):
            raise cause

        backend._chat_impl = failing
        with pytest.raises(BackendUnavailable) as exc_info:
            await backend.chat("claude", Context(messages=[Message.user("hi")]), ChatOptions())

        assert exc_info.value.original_exc is cause
        assert exc_info.value.__cause__ is cause
        assert "Connection problem" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_base_backend_has_no_streaming(self):
        """Test the base backend does not stream."""
        backend = ScriptedBackend()
        assert not backend.supports_streaming
        with pytest.raises(NotImplementedError):
            super(ScriptedBackend, backend).chat_stream("m", Context(), ChatOptions())


def test_classify_unknown_error():
    """Test unknown exceptions are wrapped under their class name."""
    wrapped = classify_backend_error(ValueError("odd"))
    assert isinstance(wrapped, BackendUnavailable)
    assert str(wrapped).startswith("ValueError")
