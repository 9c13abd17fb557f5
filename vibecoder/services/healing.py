"""Runtime-error healing with re-validation before the fix is returned."""

from __future__ import annotations

import logging

from vibecoder.ai.agents.healer import HealAgent
from vibecoder.ai.errors import HealFailedError
from vibecoder.ai.pipeline.contracts import AgentContext, HealRequest, HealResult
from vibecoder.validation.shadow import ShadowValidator

logger = logging.getLogger(__name__)


async def heal_runtime_error(agent: HealAgent, validator: ShadowValidator, request: HealRequest, ctx: AgentContext) -> HealResult:
  """Ask the heal agent for a fix and shadow-test it; a fix that fails is never returned."""
  result = await agent.run(request, ctx)
  outcome = await validator.test_code(result.code)
  if not outcome.success:
    logger.warning("Healed code rejected project_id=%s error_type=%s: %s", ctx.project_id, result.error_type, outcome.error)
    raise HealFailedError(f"Healed code failed validation: {outcome.error}")

  logger.info("Healed runtime error project_id=%s error_type=%s build_time_ms=%s", ctx.project_id, result.error_type, outcome.build_time_ms)
  return result
