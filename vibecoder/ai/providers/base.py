"""Base interfaces for AI providers and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass

from vibecoder.ai.json_parser import strip_code_fences


@dataclass
class SimpleModelResponse:
  """Minimal model response structure."""

  content: str
  usage: dict[str, int] | None = None


class AIModel(ABC):
  """Abstract chat-completions model."""

  name: str

  @abstractmethod
  async def generate(self, prompt: str, *, system: str | None = None, temperature: float | None = None, max_tokens: int | None = None) -> SimpleModelResponse:
    """Generate a complete response for the given prompt."""

  async def stream(self, prompt: str, *, system: str | None = None, temperature: float | None = None, max_tokens: int | None = None) -> AsyncIterator[str]:
    """Yield response text incrementally; models without streaming yield once."""
    response = await self.generate(prompt, system=system, temperature=temperature, max_tokens=max_tokens)
    yield response.content

  @staticmethod
  def strip_json_fences(raw: str) -> str:
    return strip_code_fences(raw)


class Provider(ABC):
  """Abstract base class for AI providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None) -> AIModel:
    """Return the model client for the provider."""
