"""Clients for the external generative capability.

The orchestrator only depends on the `GenerativeCapability` protocol:
``generate(prompt, tool) -> dict``. A tool is a JSON-schema description of
the required output; the client forces the model to answer through that
tool so the reply is structured. Transport and API failures raise
`GenerationUnavailableError`; a reply without the tool output raises
`GenerationSchemaViolationError`. Field-level validation is done by the
caller.
"""

import time
from typing import Any, Dict, Optional, Protocol

import anthropic

from core import config
from core.exceptions import ConfigurationError, GenerationSchemaViolationError, GenerationUnavailableError
from core.logger import get_logger

logger = get_logger("services.generative_capability")


class GenerativeCapability(Protocol):
    def generate(self, prompt: str, tool: Dict[str, Any]) -> Dict[str, Any]:
        ...


class AnthropicCapability:
    """Generative capability backed by the Anthropic Messages API with forced tool use."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        client: Optional[anthropic.Anthropic] = None,
    ):
        api_key = api_key or config.ANTHROPIC_API_KEY
        if client is None and not api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY is not set", config_key="ANTHROPIC_API_KEY")
        self._client = client or anthropic.Anthropic(api_key=api_key)
        self._model = model or config.GENERATION_MODEL
        self._max_tokens = max_tokens or config.GENERATION_MAX_TOKENS

    def generate(self, prompt: str, tool: Dict[str, Any]) -> Dict[str, Any]:
        """Send `prompt` and return the input the model passed to `tool`."""
        started = time.monotonic()
        try:
            message = self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                tools=[tool],
                tool_choice={"type": "tool", "name": tool["name"]},
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            logger.warning("Generation request for tool %s failed: %s", tool["name"], exc)
            raise GenerationUnavailableError(f"Generative capability error: {exc}") from exc

        duration_ms = int((time.monotonic() - started) * 1000)
        output_tokens = getattr(getattr(message, "usage", None), "output_tokens", None)
        logger.info("Tool %s answered in %sms (%s output tokens)", tool["name"], duration_ms, output_tokens)

        if message.stop_reason == "max_tokens":
            raise GenerationSchemaViolationError(
                f"Response for {tool['name']} was truncated after {output_tokens} tokens"
            )

        for block in message.content:
            if getattr(block, "type", None) == "tool_use" and block.name == tool["name"]:
                return dict(block.input)

        raise GenerationSchemaViolationError(f"No tool output returned for {tool['name']}")


def get_generative_capability() -> GenerativeCapability:
    """FastAPI dependency building the configured capability client.

    Tests and alternative deployments override this dependency instead of
    patching module state.
    """
    return AnthropicCapability()
