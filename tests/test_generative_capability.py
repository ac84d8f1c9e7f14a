"""Tests for the Anthropic-backed capability using a stubbed SDK client."""
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from core.exceptions import ConfigurationError, GenerationSchemaViolationError, GenerationUnavailableError
from services.generation_prompts import CORE_INGREDIENTS_TOOL
from services.generative_capability import AnthropicCapability


class _Messages:
    def __init__(self, result):
        self.result = result
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _client(result):
    return SimpleNamespace(messages=_Messages(result))


def _message(content, stop_reason="tool_use"):
    return SimpleNamespace(content=content, stop_reason=stop_reason, usage=SimpleNamespace(output_tokens=42))


def test_returns_tool_input_and_forces_tool_choice():
    block = SimpleNamespace(type="tool_use", name="select_core_ingredients", input={"proteins": ["tofu"]})
    client = _client(_message([block]))
    capability = AnthropicCapability(client=client, model="test-model", max_tokens=100)

    assert capability.generate("prompt", CORE_INGREDIENTS_TOOL) == {"proteins": ["tofu"]}
    kwargs = client.messages.kwargs
    assert kwargs["tool_choice"] == {"type": "tool", "name": "select_core_ingredients"}
    assert kwargs["model"] == "test-model"
    assert kwargs["messages"][0]["content"] == "prompt"


def test_missing_tool_output_is_a_schema_violation():
    client = _client(_message([SimpleNamespace(type="text", text="sorry")], stop_reason="end_turn"))
    with pytest.raises(GenerationSchemaViolationError):
        AnthropicCapability(client=client).generate("prompt", CORE_INGREDIENTS_TOOL)


def test_truncated_output_is_a_schema_violation():
    client = _client(_message([], stop_reason="max_tokens"))
    with pytest.raises(GenerationSchemaViolationError):
        AnthropicCapability(client=client).generate("prompt", CORE_INGREDIENTS_TOOL)


def test_api_error_is_unavailable():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client = _client(anthropic.APIConnectionError(request=request))
    with pytest.raises(GenerationUnavailableError):
        AnthropicCapability(client=client).generate("prompt", CORE_INGREDIENTS_TOOL)


def test_missing_api_key_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr("core.config.ANTHROPIC_API_KEY", None)
    with pytest.raises(ConfigurationError):
        AnthropicCapability()
