import logging

from fastapi import APIRouter, Depends

from vibecoder.api.models import PolicyCheckRequest, PolicyCheckResponse, ShapePromptRequest, ShapePromptResponse, StyleProfileResponse
from vibecoder.core.security import get_current_user_id
from vibecoder.guard.policy import check_policy_violation, get_policy_violation_response
from vibecoder.prompting.shaping import shape_ai_prompt
from vibecoder.prompting.styles import STYLE_PROFILES

router = APIRouter()
logger = logging.getLogger("vibecoder.api.routes.tools")


@router.post("/policy/check", response_model=PolicyCheckResponse, dependencies=[Depends(get_current_user_id)])
async def check_policy(payload: PolicyCheckRequest) -> PolicyCheckResponse:
  """Pre-check a prompt so the client can answer locally without creating a job."""
  rule = check_policy_violation(payload.prompt)
  if rule is None:
    return PolicyCheckResponse(allowed=True)
  return PolicyCheckResponse(allowed=False, rule_id=rule.id, category=rule.category, message=get_policy_violation_response(rule))


@router.get("/styles", response_model=list[StyleProfileResponse])
async def list_style_profiles() -> list[StyleProfileResponse]:
  """Available style profiles in display order."""
  return [
    StyleProfileResponse(
      id=profile.id,
      name=profile.name,
      description=profile.description,
      color_palette={"primary": profile.color_palette.primary, "secondary": profile.color_palette.secondary, "accent": profile.color_palette.accent, "background": profile.color_palette.background, "text": profile.color_palette.text},
      typography={"heading": profile.typography.heading, "body": profile.typography.body},
    )
    for profile in STYLE_PROFILES
  ]


@router.post("/prompts/shape", response_model=ShapePromptResponse, dependencies=[Depends(get_current_user_id)])
async def shape_prompt(payload: ShapePromptRequest) -> ShapePromptResponse:
  """Preview the AI prompt a generation would receive."""
  shaped = shape_ai_prompt(payload.prompt, current_code=payload.current_code, style_profile_id=payload.style_profile_id)
  return ShapePromptResponse(ai_prompt=shaped.ai_prompt, is_global_change=shaped.intent.is_global_change, relevant_sections=list(shaped.intent.relevant_sections), confidence=shaped.intent.confidence, pruned=shaped.pruned)
