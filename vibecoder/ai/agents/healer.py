"""Heal agent: minimal repair of a crashed live preview."""

from __future__ import annotations

import logging

from vibecoder.ai.agents.base import BaseAgent
from vibecoder.ai.agents.builder import extract_code_from_response
from vibecoder.ai.agents.prompts import BEGIN_CODE_MARKER, HEAL_SYSTEM_PROMPT, render_heal_prompt
from vibecoder.ai.errors import HealFailedError
from vibecoder.ai.pipeline.contracts import AgentContext, HealErrorType, HealRequest, HealResult

logger = logging.getLogger(__name__)

MIN_HEALED_CODE_LENGTH = 20


def classify_runtime_error(runtime_error: str) -> HealErrorType:
  """Bucket a runtime error message for heal statistics."""
  if "Cannot read" in runtime_error:
    return "undefined_access"
  if "is not defined" in runtime_error:
    return "missing_import"
  if "hook" in runtime_error:
    return "hook_violation"
  if "key" in runtime_error:
    return "missing_key"
  return "syntax_error"


def parse_heal_response(content: str) -> tuple[str, str]:
  """Split a heal response into (diagnosis, corrected file)."""
  marker_index = content.find(BEGIN_CODE_MARKER)
  if marker_index < 0:
    raise HealFailedError("Heal response did not include corrected code.")
  diagnosis = content[:marker_index].strip().strip("`").strip()
  code = extract_code_from_response(content)
  if len(code) < MIN_HEALED_CODE_LENGTH:
    raise HealFailedError("Heal response did not include corrected code.")
  return diagnosis, code


class HealAgent(BaseAgent[HealRequest, HealResult]):
  """Repair only the defect behind a runtime error."""

  name = "Heal"
  temperature = 0.3
  max_tokens = 8000

  async def run(self, input_data: HealRequest, ctx: AgentContext) -> HealResult:
    """Stream the corrected file for the reported error."""
    error_type = classify_runtime_error(input_data.runtime_error)
    logger.info("Healing runtime error type=%s project_id=%s: %s", error_type, ctx.project_id, input_data.runtime_error[:200])

    prompt = render_heal_prompt(input_data)
    chunks: list[str] = []
    async for chunk in self._model.stream(prompt, system=HEAL_SYSTEM_PROMPT, temperature=self.temperature, max_tokens=self.max_tokens):
      chunks.append(chunk)

    diagnosis, code = parse_heal_response("".join(chunks))
    return HealResult(diagnosis=diagnosis, code=code, error_type=error_type)
