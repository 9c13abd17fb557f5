"""Architect agent: turns a shaped prompt into a modular file manifest."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from vibecoder.ai.agents.base import BaseAgent
from vibecoder.ai.agents.prompts import ARCHITECT_SYSTEM_PROMPT, ASSEMBLY_FILE, render_architect_prompt
from vibecoder.ai.errors import PlanMalformedError
from vibecoder.ai.json_parser import parse_json_with_fallback, strip_code_fences
from vibecoder.ai.pipeline.contracts import AgentContext, ArchitectRequest, BuildPlan, PlanFile

logger = logging.getLogger(__name__)

FALLBACK_LINE_ESTIMATE = 400
_NON_WORD_RE = re.compile(r"[^0-9a-zA-Z]+")


def _component_path(name: str) -> str:
  pascal = "".join(part[:1].upper() + part[1:] for part in _NON_WORD_RE.split(name) if part)
  return f"src/components/{pascal or 'Section'}.tsx"


def _repair_plan_json(plan_json: dict[str, Any]) -> dict[str, Any]:
  """Normalize common deviations from the manifest shape before validation."""

  # Some responses wrap the manifest in a top-level "plan" key.
  if isinstance(plan_json.get("plan"), dict):
    plan_json = dict(plan_json["plan"])

  # Convert a component tree of sections into the file manifest.
  tree = plan_json.get("componentTree")
  if not plan_json.get("files") and isinstance(tree, dict) and isinstance(tree.get("sections"), list):
    files: list[dict[str, Any]] = []
    for index, section in enumerate(tree["sections"], start=1):
      if not isinstance(section, dict) or not section.get("name"):
        continue
      files.append({"path": _component_path(str(section["name"])), "description": section.get("description", ""), "lineEstimate": section.get("lineEstimate", 100), "priority": section.get("priority", index)})
    plan_json["files"] = files

  # Accept bare path strings in the file list.
  if isinstance(plan_json.get("files"), list):
    plan_json["files"] = [{"path": item} if isinstance(item, str) else item for item in plan_json["files"]]

  forecast = plan_json.get("debugForecast")
  if "complexityScore" not in plan_json and isinstance(forecast, dict) and "complexityScore" in forecast:
    plan_json["complexityScore"] = forecast["complexityScore"]

  return plan_json


def _is_assembly(path: str) -> bool:
  return path == ASSEMBLY_FILE or path.rsplit("/", 1)[-1] == "App.tsx"


def _is_data_file(path: str) -> bool:
  lowered = path.lower()
  stem = lowered.rsplit("/", 1)[-1].split(".", 1)[0]
  return "/data/" in lowered or lowered.startswith("data/") or stem == "constants" or stem.endswith("data")


def normalize_execution_order(plan: BuildPlan) -> BuildPlan:
  """Order data files first and the assembly file last, adding it when missing."""
  files = list(plan.files)
  known = {item.path for item in files}

  # Keep the model's order for known paths, then append the rest by priority.
  order: list[str] = []
  for path in plan.execution_order:
    if path in known and path not in order:
      order.append(path)
  for item in sorted(files, key=lambda entry: entry.priority):
    if item.path not in order:
      order.append(item.path)

  assembly = next((path for path in order if _is_assembly(path)), None)
  if assembly is None:
    assembly = ASSEMBLY_FILE
    files.append(PlanFile(path=ASSEMBLY_FILE, description="Assemble the storefront from the generated components.", line_estimate=80, priority=max(item.priority for item in files) + 1))

  data_files = [path for path in order if path != assembly and _is_data_file(path)]
  components = [path for path in order if path != assembly and not _is_data_file(path)]
  return plan.model_copy(update={"files": files, "execution_order": [*data_files, *components, assembly]})


def parse_build_plan(raw: str) -> BuildPlan:
  """Parse a model response into a validated, normalized plan."""
  cleaned = strip_code_fences(raw)
  if not cleaned:
    raise PlanMalformedError("Architect returned an empty response.")

  try:
    payload = parse_json_with_fallback(cleaned)
  except json.JSONDecodeError as exc:
    raise PlanMalformedError(f"Architect plan is not valid JSON: {exc.msg}") from exc
  if not isinstance(payload, dict):
    raise PlanMalformedError("Architect plan must be a JSON object.")

  try:
    plan = BuildPlan.model_validate(_repair_plan_json(payload))
  except ValidationError as exc:
    raise PlanMalformedError(f"Architect plan failed validation with {exc.error_count()} error(s).") from exc
  return normalize_execution_order(plan)


def build_fallback_plan() -> BuildPlan:
  """Single-file plan used when the architect output is unusable."""
  file = PlanFile(path=ASSEMBLY_FILE, description="Complete storefront in a single file.", line_estimate=FALLBACK_LINE_ESTIMATE, priority=1)
  return BuildPlan(files=[file], execution_order=[ASSEMBLY_FILE], complexity_score=5, is_fallback=True)


class ArchitectAgent(BaseAgent[ArchitectRequest, BuildPlan]):
  """Produce the build plan before any code is written."""

  name = "Architect"
  temperature = 0.7
  max_tokens = 4000

  async def run(self, input_data: ArchitectRequest, ctx: AgentContext) -> BuildPlan:
    """Call the planning model and validate its manifest."""
    prompt = render_architect_prompt(input_data)
    response = await self._model.generate(prompt, system=ARCHITECT_SYSTEM_PROMPT, temperature=self.temperature, max_tokens=self.max_tokens)
    self._record_usage(purpose="plan", ctx=ctx, usage=response.usage)

    plan = parse_build_plan(response.content)
    logger.info("Architect planned files=%s complexity=%s job_id=%s", len(plan.files), plan.complexity_score, ctx.job_id)
    return plan


async def plan_or_fallback(agent: ArchitectAgent, request: ArchitectRequest, ctx: AgentContext) -> BuildPlan:
  """Run the architect, substituting the single-file plan when its output is malformed."""
  try:
    return await agent.run(request, ctx)
  except PlanMalformedError as exc:
    logger.warning("Architect plan rejected job_id=%s: %s. Using single-file fallback.", ctx.job_id, exc.message)
    return build_fallback_plan()
