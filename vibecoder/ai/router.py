"""Routing utilities for per-agent model selection."""

from __future__ import annotations

from enum import Enum

from vibecoder.ai.providers.base import AIModel, Provider
from vibecoder.ai.providers.gateway import GatewayProvider
from vibecoder.config import Settings


class AgentRole(str, Enum):
  """Pipeline roles that call the generation backend."""

  ARCHITECT = "architect"
  BUILDER = "builder"
  HEAL = "heal"


def get_provider(settings: Settings) -> Provider:
  return GatewayProvider(api_key=settings.ai_gateway_api_key, base_url=settings.ai_gateway_url, default_model=settings.builder_model)


def get_model_for_role(settings: Settings, role: str | AgentRole) -> AIModel:
  """Return a model client for the given pipeline role."""
  key = role.value if isinstance(role, AgentRole) else role
  model_map = {
    AgentRole.ARCHITECT.value: settings.architect_model,
    AgentRole.BUILDER.value: settings.builder_model,
    AgentRole.HEAL.value: settings.heal_model,
  }
  try:
    model_name = model_map[key]
  except KeyError as exc:
    raise ValueError(f"Unsupported agent role '{role}'.") from exc
  return get_provider(settings).get_model(model_name)
