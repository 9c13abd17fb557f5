import logging

from fastapi import APIRouter, Depends

from vibecoder.ai.agents.architect import ArchitectAgent, plan_or_fallback
from vibecoder.ai.agents.healer import HealAgent
from vibecoder.ai.pipeline.contracts import AgentContext, ArchitectRequest, HealRequest
from vibecoder.api.deps import get_architect_agent, get_heal_agent, get_shadow_validator_dep
from vibecoder.api.models import ArchitectPlanRequest, ArchitectPlanResponse, HealRequestBody, HealResponse
from vibecoder.core.security import get_current_user_id
from vibecoder.guard.policy import PolicyViolationError, check_policy_violation
from vibecoder.prompting.pruning import ProductSummary, create_code_summary, format_products_for_context
from vibecoder.prompting.styles import get_style_profile
from vibecoder.services.healing import heal_runtime_error
from vibecoder.validation.shadow import ShadowValidator

router = APIRouter()
logger = logging.getLogger("vibecoder.api.routes.agents")


@router.post("/agents/architect", response_model=ArchitectPlanResponse)
async def plan_storefront(  # noqa: B008
  payload: ArchitectPlanRequest,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  agent: ArchitectAgent = Depends(get_architect_agent),  # noqa: B008
) -> ArchitectPlanResponse:
  """Produce a build plan; malformed model output falls back to the single-file plan."""
  rule = check_policy_violation(payload.prompt)
  if rule is not None:
    raise PolicyViolationError(rule)

  products = [ProductSummary(id=item.id, name=item.name, price=str(item.price), tags=tuple(item.tags)) for item in payload.products]
  profile = get_style_profile(payload.style_profile_id)
  request = ArchitectRequest(
    prompt=payload.prompt,
    current_code_summary=create_code_summary(payload.current_code) if payload.current_code else None,
    products_data=format_products_for_context(products) or None,
    style_profile=profile.name if profile else None,
  )
  plan = await plan_or_fallback(agent, request, AgentContext(project_id=payload.project_id, user_id=user_id))
  return ArchitectPlanResponse(plan=plan, is_fallback=plan.is_fallback)


@router.post("/agents/heal", response_model=HealResponse)
async def heal_preview(  # noqa: B008
  payload: HealRequestBody,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  agent: HealAgent = Depends(get_heal_agent),  # noqa: B008
  validator: ShadowValidator = Depends(get_shadow_validator_dep),  # noqa: B008
) -> HealResponse:
  """Repair a crashed preview; the fix is returned only after it passes shadow validation."""
  profile = get_style_profile(payload.style_profile_id)
  request = HealRequest(runtime_error=payload.runtime_error, failed_code=payload.failed_code, style_profile=profile.name if profile else None, project_id=payload.project_id)
  result = await heal_runtime_error(agent, validator, request, AgentContext(project_id=payload.project_id, user_id=user_id))
  return HealResponse(diagnosis=result.diagnosis, code=result.code, error_type=result.error_type)
