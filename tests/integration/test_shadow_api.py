from __future__ import annotations

import asyncio

import pytest
from httpx import AsyncClient

from vibecoder.api.deps import get_shadow_validator_dep
from vibecoder.main import app
from vibecoder.validation.shadow import CallbackBuildRunner, ShadowValidator

from tests.fakes import VALID_APP


@pytest.mark.anyio
async def test_shadow_test_passes_valid_code(async_client: AsyncClient) -> None:
  response = await async_client.post("/v1/shadow/test", json={"code": VALID_APP})
  body = response.json()
  assert response.status_code == 200
  assert body["success"] is True
  assert body["code"] == VALID_APP
  assert body["request_id"]


@pytest.mark.anyio
async def test_shadow_test_reports_syntax_error(async_client: AsyncClient) -> None:
  response = await async_client.post("/v1/shadow/test", json={"code": "export default function App() { return (<div>Hi</div>; }"})
  body = response.json()
  assert body["success"] is False
  assert body["error"] == "Unbalanced parentheses: 1 unclosed"


@pytest.mark.anyio
async def test_pending_requires_callback_runner(async_client: AsyncClient) -> None:
  response = await async_client.get("/v1/shadow/pending")
  assert response.status_code == 409


@pytest.mark.anyio
async def test_cancel_without_running_test(async_client: AsyncClient) -> None:
  response = await async_client.post("/v1/shadow/cancel")
  assert response.status_code == 204


@pytest.mark.anyio
async def test_sandbox_reports_build_result(async_client: AsyncClient) -> None:
  runner = CallbackBuildRunner()
  app.dependency_overrides[get_shadow_validator_dep] = lambda: ShadowValidator(runner)

  pending_test = asyncio.create_task(async_client.post("/v1/shadow/test", json={"code": VALID_APP}))

  async def _wait_for_pending() -> list[dict]:
    while True:
      builds = (await async_client.get("/v1/shadow/pending")).json()["builds"]
      if builds:
        return builds
      await asyncio.sleep(0.01)

  builds = await asyncio.wait_for(_wait_for_pending(), timeout=2.0)
  assert builds[0]["code"] == VALID_APP

  unknown = await async_client.post("/v1/shadow/unknown-request/result", json={"success": True})
  assert unknown.status_code == 404

  report = await async_client.post(f"/v1/shadow/{builds[0]['request_id']}/result", json={"success": False, "error": "Could not resolve 'framer-motion'"})
  assert report.json() == {"accepted": True}

  result = (await pending_test).json()
  assert result["success"] is False
  assert result["error"] == "Could not resolve 'framer-motion'"
  assert result["request_id"] == builds[0]["request_id"]
