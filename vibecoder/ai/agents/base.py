"""Base class for AI agents."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from vibecoder.ai.pipeline.contracts import AgentContext
from vibecoder.ai.providers.base import AIModel

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")

logger = logging.getLogger(__name__)


class BaseAgent(ABC, Generic[InputT, OutputT]):
  """Base agent with shared dependencies."""

  name: str
  temperature: float = 0.7
  max_tokens: int = 4000

  def __init__(self, *, model: AIModel) -> None:
    self._model = model

  @property
  def model_name(self) -> str:
    return getattr(self._model, "name", "unknown")

  @abstractmethod
  async def run(self, input_data: InputT, ctx: AgentContext) -> OutputT:
    """Run the agent on input data."""

  def _record_usage(self, *, purpose: str, ctx: AgentContext, usage: dict[str, int] | None) -> None:
    if not usage:
      return
    logger.info("Model usage agent=%s model=%s purpose=%s job_id=%s project_id=%s prompt_tokens=%s completion_tokens=%s", self.name, self.model_name, purpose, ctx.job_id, ctx.project_id, usage.get("prompt_tokens"), usage.get("completion_tokens"))
