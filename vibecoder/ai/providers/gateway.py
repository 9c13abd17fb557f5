"""OpenAI-compatible AI gateway provider using the openai SDK."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import openai
from openai import AsyncOpenAI

from vibecoder.ai.errors import AgentConfigurationError, AgentRateLimitedError, AgentUnavailableError
from vibecoder.ai.providers.base import AIModel, Provider, SimpleModelResponse

logger = logging.getLogger(__name__)


def _map_gateway_error(exc: Exception, model_name: str) -> Exception:
  """Translate SDK failures into the agent error taxonomy."""
  if isinstance(exc, openai.RateLimitError):
    return AgentRateLimitedError()
  if isinstance(exc, openai.AuthenticationError):
    return AgentConfigurationError("AI gateway rejected the configured API key.")
  if isinstance(exc, openai.APIStatusError):
    if exc.status_code == 429:
      return AgentRateLimitedError()
    if exc.status_code == 402:
      return AgentUnavailableError("AI gateway credits exhausted. Please try again later.")
    logger.warning("AI gateway returned status=%s model=%s", exc.status_code, model_name)
    return AgentUnavailableError()
  if isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError)):
    logger.warning("AI gateway unreachable model=%s: %s", model_name, exc)
    return AgentUnavailableError()
  return exc


class GatewayModel(AIModel):
  """Chat-completions client bound to one gateway model."""

  def __init__(self, name: str, *, api_key: str, base_url: str, client: AsyncOpenAI | None = None) -> None:
    self.name: str = name
    self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

  @staticmethod
  def _messages(prompt: str, system: str | None) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if system:
      messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages

  @staticmethod
  def _options(temperature: float | None, max_tokens: int | None) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if temperature is not None:
      options["temperature"] = temperature
    if max_tokens is not None:
      options["max_tokens"] = max_tokens
    return options

  async def generate(self, prompt: str, *, system: str | None = None, temperature: float | None = None, max_tokens: int | None = None) -> SimpleModelResponse:
    """Generate a complete response from the gateway."""
    try:
      response = await self._client.chat.completions.create(model=self.name, messages=self._messages(prompt, system), **self._options(temperature, max_tokens))
    except openai.OpenAIError as exc:
      raise _map_gateway_error(exc, self.name) from exc

    content = (response.choices[0].message.content or "") if response.choices else ""
    usage = None
    if response.usage:
      usage = {"prompt_tokens": response.usage.prompt_tokens, "completion_tokens": response.usage.completion_tokens, "total_tokens": response.usage.total_tokens}
    logger.debug("Gateway response model=%s chars=%s", self.name, len(content))
    return SimpleModelResponse(content=content, usage=usage)

  async def stream(self, prompt: str, *, system: str | None = None, temperature: float | None = None, max_tokens: int | None = None) -> AsyncIterator[str]:
    """Yield content deltas as the gateway streams them."""
    try:
      response = await self._client.chat.completions.create(model=self.name, messages=self._messages(prompt, system), stream=True, **self._options(temperature, max_tokens))
      async for chunk in response:
        if not chunk.choices:
          continue
        delta = chunk.choices[0].delta.content
        if delta:
          yield delta
    except openai.OpenAIError as exc:
      raise _map_gateway_error(exc, self.name) from exc


class GatewayProvider(Provider):
  """Provider for the OpenAI-compatible AI gateway."""

  def __init__(self, *, api_key: str | None, base_url: str, default_model: str) -> None:
    self.name: str = "gateway"
    self._api_key = api_key
    self._base_url = base_url
    self._default_model = default_model

  def get_model(self, model: str | None = None) -> AIModel:
    """Return a gateway model client."""
    if not self._api_key:
      raise AgentConfigurationError("VIBECODER_AI_GATEWAY_API_KEY is not configured.")
    return GatewayModel(model or self._default_model, api_key=self._api_key, base_url=self._base_url)
