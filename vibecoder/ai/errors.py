"""Agent failure taxonomy."""

from __future__ import annotations

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."


class AgentError(RuntimeError):
  """Base class for failures attributable to the generation backend, not the user."""

  status_code = 502
  default_message = "AI service is temporarily unavailable."

  def __init__(self, message: str | None = None) -> None:
    super().__init__(message or self.default_message)
    self.message = message or self.default_message


class AgentRateLimitedError(AgentError):
  """The gateway answered 429; callers should retry later."""

  status_code = 429
  default_message = RATE_LIMIT_MESSAGE


class AgentUnavailableError(AgentError):
  status_code = 502
  default_message = "AI service is temporarily unavailable."


class AgentOutputError(AgentError):
  status_code = 502
  default_message = "AI service returned no usable output."


class PlanMalformedError(AgentOutputError):
  """Architect output could not be parsed into a non-empty plan."""

  default_message = "Architect returned a malformed plan."


class HealFailedError(AgentError):
  status_code = 422
  default_message = "Could not repair the failing code."


class AgentConfigurationError(AgentError):
  status_code = 503
  default_message = "AI service is not configured."
