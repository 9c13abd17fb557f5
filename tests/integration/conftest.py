from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient

from vibecoder.ai.agents.architect import ArchitectAgent
from vibecoder.ai.agents.healer import HealAgent
from vibecoder.api.deps import get_architect_agent, get_heal_agent, get_job_feed_dep, get_job_service_dep, get_shadow_validator_dep
from vibecoder.core.security import get_current_user_id
from vibecoder.jobs.feed import JobFeed
from vibecoder.main import app
from vibecoder.services.jobs import JobService
from vibecoder.validation.shadow import ShadowValidator

from tests.fakes import FakeModel


class CurrentUser:
  """Mutable caller identity used by the auth override."""

  def __init__(self, uid: str = "user-1") -> None:
    self.uid = uid


@pytest.fixture
def current_user() -> CurrentUser:
  return CurrentUser()


@pytest.fixture
def architect_model() -> FakeModel:
  return FakeModel(name="architect-model")


@pytest.fixture
def heal_model() -> FakeModel:
  return FakeModel(name="heal-model")


@pytest.fixture
def shadow_validator() -> ShadowValidator:
  return ShadowValidator()


@pytest.fixture
async def async_client(service: JobService, feed: JobFeed, current_user: CurrentUser, architect_model: FakeModel, heal_model: FakeModel, shadow_validator: ShadowValidator) -> AsyncIterator[AsyncClient]:
  app.dependency_overrides[get_current_user_id] = lambda: current_user.uid
  app.dependency_overrides[get_job_service_dep] = lambda: service
  app.dependency_overrides[get_job_feed_dep] = lambda: feed
  app.dependency_overrides[get_architect_agent] = lambda: ArchitectAgent(model=architect_model)
  app.dependency_overrides[get_heal_agent] = lambda: HealAgent(model=heal_model)
  app.dependency_overrides[get_shadow_validator_dep] = lambda: shadow_validator
  try:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
      yield client
  finally:
    app.dependency_overrides.clear()
