from __future__ import annotations

import json

import pytest
from httpx import AsyncClient

from vibecoder.ai.errors import RATE_LIMIT_MESSAGE, AgentRateLimitedError
from vibecoder.api.deps import get_shadow_validator_dep
from vibecoder.main import app
from vibecoder.validation.shadow import BuildOutcome, ShadowValidator

from tests.fakes import VALID_APP, FakeModel, ScriptedRunner

PLAN = {
  "files": [
    {"path": "src/components/Hero.tsx", "priority": 1},
    {"path": "src/App.tsx", "priority": 2},
  ],
  "complexityScore": 3,
}


@pytest.mark.anyio
async def test_architect_returns_normalized_plan(async_client: AsyncClient, architect_model: FakeModel) -> None:
  architect_model.queue(json.dumps(PLAN))
  response = await async_client.post(
    "/v1/agents/architect",
    json={
      "prompt": "Moody photo print shop",
      "current_code": VALID_APP,
      "products": [{"id": "p1", "name": "Night print", "price": 25, "tags": ["print"]}],
      "style_profile_id": "luxury-minimal",
      "project_id": "project-1",
    },
  )

  assert response.status_code == 200, response.text
  body = response.json()
  assert body["is_fallback"] is False
  assert body["plan"]["execution_order"] == ["src/components/Hero.tsx", "src/App.tsx"]
  prompt = architect_model.calls[0]["prompt"]
  assert "- Night print ($25) [print]" in prompt
  assert "## Current Store Code Summary\nLines: " in prompt
  assert "## Requested Style Profile\nLuxury Minimal" in prompt


@pytest.mark.anyio
async def test_architect_falls_back_on_malformed_plan(async_client: AsyncClient, architect_model: FakeModel) -> None:
  architect_model.queue("Sorry, here is a description instead of JSON.")
  response = await async_client.post("/v1/agents/architect", json={"prompt": "Moody photo print shop"})
  assert response.status_code == 200
  assert response.json()["is_fallback"] is True
  assert response.json()["plan"]["execution_order"] == ["src/App.tsx"]


@pytest.mark.anyio
async def test_architect_enforces_policy(async_client: AsyncClient, architect_model: FakeModel) -> None:
  response = await async_client.post("/v1/agents/architect", json={"prompt": "Build an account settings page"})
  assert response.status_code == 422
  assert response.json()["ruleId"] == "settings_restriction"
  assert architect_model.calls == []


@pytest.mark.anyio
async def test_architect_rate_limit_sets_retry_after(async_client: AsyncClient, architect_model: FakeModel) -> None:
  architect_model.queue(AgentRateLimitedError())
  response = await async_client.post("/v1/agents/architect", json={"prompt": "Moody photo print shop"})
  assert response.status_code == 429
  assert response.json()["detail"] == RATE_LIMIT_MESSAGE
  assert response.headers["retry-after"] == "30"


@pytest.mark.anyio
async def test_heal_returns_validated_fix(async_client: AsyncClient, heal_model: FakeModel) -> None:
  heal_model.queue(f"The list was undefined before data loaded.\n/// BEGIN_CODE ///\n```tsx\n{VALID_APP}\n```")
  response = await async_client.post(
    "/v1/agents/heal",
    json={"runtime_error": "TypeError: Cannot read properties of undefined (reading 'map')", "failed_code": VALID_APP, "style_profile_id": "brutalist"},
  )

  assert response.status_code == 200, response.text
  assert response.json() == {"diagnosis": "The list was undefined before data loaded.", "code": VALID_APP.strip(), "error_type": "undefined_access"}


@pytest.mark.anyio
async def test_heal_rejects_fix_that_fails_validation(async_client: AsyncClient, heal_model: FakeModel) -> None:
  app.dependency_overrides[get_shadow_validator_dep] = lambda: ShadowValidator(ScriptedRunner(BuildOutcome(success=False, error="Unexpected token")))
  heal_model.queue(f"Fixed.\n/// BEGIN_CODE ///\n{VALID_APP}")
  response = await async_client.post("/v1/agents/heal", json={"runtime_error": "ReferenceError: motion is not defined", "failed_code": VALID_APP})

  assert response.status_code == 422
  assert response.json()["detail"] == "Healed code failed validation: Unexpected token"
