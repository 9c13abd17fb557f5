"""Shared FastAPI dependencies for services, agents and validation."""

from __future__ import annotations

from fastapi import Depends

from vibecoder.ai.agents.architect import ArchitectAgent
from vibecoder.ai.agents.healer import HealAgent
from vibecoder.ai.router import AgentRole, get_model_for_role
from vibecoder.config import Settings, get_settings
from vibecoder.jobs.feed import JobFeed, get_job_feed
from vibecoder.services.jobs import JobService, get_job_service
from vibecoder.validation.shadow import ShadowValidator, get_shadow_validator


def get_job_service_dep(settings: Settings = Depends(get_settings)) -> JobService:  # noqa: B008
  """Job service bound to the configured repository."""
  return get_job_service(settings)


def get_job_feed_dep() -> JobFeed:
  return get_job_feed()


def get_shadow_validator_dep() -> ShadowValidator:
  """Process-wide validator; builds are serialized across requests."""
  return get_shadow_validator()


def get_architect_agent(settings: Settings = Depends(get_settings)) -> ArchitectAgent:  # noqa: B008
  return ArchitectAgent(model=get_model_for_role(settings, AgentRole.ARCHITECT))


def get_heal_agent(settings: Settings = Depends(get_settings)) -> HealAgent:  # noqa: B008
  return HealAgent(model=get_model_for_role(settings, AgentRole.HEAL))
