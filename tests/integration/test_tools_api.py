import pytest
from httpx import AsyncClient

from vibecoder.prompting.shaping import RELEVANT_CODE_HEADING

from tests.fakes import VALID_APP


@pytest.mark.anyio
async def test_policy_check_allows_storefront_requests(async_client: AsyncClient) -> None:
  response = await async_client.post("/v1/policy/check", json={"prompt": "Add a testimonials section under the products"})
  assert response.status_code == 200
  assert response.json() == {"allowed": True, "rule_id": None, "category": None, "message": None}


@pytest.mark.anyio
async def test_policy_check_returns_exact_response(async_client: AsyncClient) -> None:
  response = await async_client.post("/v1/policy/check", json={"prompt": "Please integrate Stripe for checkout"})
  body = response.json()
  assert body["allowed"] is False
  assert body["rule_id"] == "payment_restriction"
  assert body["category"] == "Payment Policy"
  assert body["message"]


@pytest.mark.anyio
async def test_styles_are_listed_in_display_order(async_client: AsyncClient) -> None:
  response = await async_client.get("/v1/styles")
  assert response.status_code == 200
  assert [profile["id"] for profile in response.json()] == ["luxury-minimal", "cyberpunk-neon", "streetwear-dark", "kawaii-pop", "brutalist", "vaporwave"]
  assert set(response.json()[0]["color_palette"]) == {"primary", "secondary", "accent", "background", "text"}


@pytest.mark.anyio
async def test_shape_prompt_for_global_change_attaches_full_code(async_client: AsyncClient) -> None:
  response = await async_client.post("/v1/prompts/shape", json={"prompt": "Redesign the whole store", "current_code": VALID_APP, "style_profile_id": "kawaii-pop"})
  body = response.json()
  assert body["is_global_change"] is True
  assert body["pruned"] is False
  assert f"{RELEVANT_CODE_HEADING}\n```tsx\n{VALID_APP}\n```" in body["ai_prompt"]
  assert body["ai_prompt"].startswith("Redesign the whole store\n\n")


@pytest.mark.anyio
async def test_shape_prompt_for_targeted_edit_attaches_code(async_client: AsyncClient) -> None:
  response = await async_client.post("/v1/prompts/shape", json={"prompt": "Change the footer text", "current_code": VALID_APP})
  body = response.json()
  assert body["is_global_change"] is False
  assert "footer" in body["relevant_sections"]
  assert f"{RELEVANT_CODE_HEADING}\n```tsx\n" in body["ai_prompt"]
