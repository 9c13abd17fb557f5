from __future__ import annotations

import dataclasses
import json

import httpx
import pytest
from openai import AsyncOpenAI

from vibecoder.ai.errors import AgentConfigurationError, AgentRateLimitedError, AgentUnavailableError
from vibecoder.ai.providers.gateway import GatewayModel
from vibecoder.ai.router import AgentRole, get_model_for_role
from vibecoder.config import get_settings

COMPLETION = {
  "id": "chatcmpl-1",
  "object": "chat.completion",
  "created": 0,
  "model": "vibecoder-pro",
  "choices": [{"index": 0, "message": {"role": "assistant", "content": "{\"files\": []}"}, "finish_reason": "stop"}],
  "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
}


def _model(handler) -> GatewayModel:
  client = AsyncOpenAI(api_key="test-key", base_url="https://gateway.test/v1", max_retries=0, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
  return GatewayModel("vibecoder-pro", api_key="test-key", base_url="https://gateway.test/v1", client=client)


def _chunk(content: str) -> str:
  payload = {"id": "chatcmpl-1", "object": "chat.completion.chunk", "created": 0, "model": "vibecoder-pro", "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": None}]}
  return f"data: {json.dumps(payload)}\n\n"


@pytest.mark.anyio
async def test_generate_returns_content_and_usage() -> None:
  seen: list[dict] = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(json.loads(request.content))
    return httpx.Response(200, json=COMPLETION)

  response = await _model(handler).generate("Plan a store", system="You are the architect", temperature=0.7, max_tokens=4000)

  assert response.content == "{\"files\": []}"
  assert response.usage == {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17}
  assert seen[0]["messages"][0] == {"role": "system", "content": "You are the architect"}
  assert seen[0]["max_tokens"] == 4000


@pytest.mark.anyio
async def test_stream_yields_deltas() -> None:
  body = _chunk("export default ") + _chunk("function App() {}") + "data: [DONE]\n\n"

  def handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=body.encode("utf-8"), headers={"content-type": "text/event-stream"})

  chunks = [chunk async for chunk in _model(handler).stream("Build App.tsx")]
  assert "".join(chunks) == "export default function App() {}"


@pytest.mark.anyio
@pytest.mark.parametrize(
  ("status_code", "expected"),
  [(429, AgentRateLimitedError), (401, AgentConfigurationError), (402, AgentUnavailableError), (503, AgentUnavailableError)],
)
async def test_gateway_status_codes_map_to_agent_errors(status_code: int, expected: type[Exception]) -> None:
  model = _model(lambda request: httpx.Response(status_code, json={"error": {"message": "nope"}}))
  with pytest.raises(expected):
    await model.generate("Plan a store")


@pytest.mark.anyio
async def test_gateway_connection_failure_is_unavailable() -> None:
  def handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

  with pytest.raises(AgentUnavailableError):
    await _model(handler).generate("Plan a store")


def test_model_for_role_requires_gateway_key() -> None:
  settings = get_settings()
  with pytest.raises(AgentConfigurationError):
    get_model_for_role(dataclasses.replace(settings, ai_gateway_api_key=None), AgentRole.ARCHITECT)

  configured = dataclasses.replace(settings, ai_gateway_api_key="test-key", architect_model="planner-model")
  assert get_model_for_role(configured, AgentRole.ARCHITECT).name == "planner-model"
  with pytest.raises(ValueError):
    get_model_for_role(configured, "designer")
