"""Background execution of generation jobs.

A job runs the architect once, then the builder for every planned file in
execution order, then shadow-tests the assembled entry file. Progress lines are
appended to the job as stages advance. Cancellation is checked between stages
and every terminal write is conditional on the job still running, so a user
cancel is never overwritten.
"""

from __future__ import annotations

import logging
from typing import Any

from vibecoder.ai.agents.architect import ArchitectAgent, plan_or_fallback
from vibecoder.ai.agents.builder import BuilderAgent
from vibecoder.ai.agents.prompts import ASSEMBLY_FILE
from vibecoder.ai.errors import AgentError, AgentOutputError
from vibecoder.ai.pipeline.contracts import AgentContext, ArchitectRequest, BuildPlan, BuilderRequest, PlanFile
from vibecoder.ai.router import AgentRole, get_model_for_role
from vibecoder.config import Settings
from vibecoder.jobs.errors import JobCancelledError
from vibecoder.jobs.models import GenerationJob
from vibecoder.jobs.progress import JobProgressTracker
from vibecoder.services.credits import CreditLedger, CreditsClient, CreditsUnavailableError, InsufficientCreditsError, build_credits_client
from vibecoder.services.jobs import JobService
from vibecoder.validation.shadow import ShadowValidator, get_shadow_validator, quick_syntax_check

logger = logging.getLogger(__name__)

INSUFFICIENT_CREDITS_MESSAGE = "Insufficient credits for this generation."
BILLING_UNAVAILABLE_MESSAGE = "Billing service is unavailable. Please try again."
INTERNAL_ERROR_MESSAGE = "Generation failed due to an internal error."
PLAN_READY_SUMMARY = "Plan ready for review"


class GeneratedCodeRejectedError(AgentOutputError):
  """Generated code did not pass validation."""

  def __init__(self, reason: str | None) -> None:
    super().__init__(f"Generated code failed validation: {reason or 'unknown error'}")


def _render_generated(generated: dict[str, str]) -> str | None:
  # Earlier files give later ones (notably the entry file) their import surface.
  if not generated:
    return None
  return "\n\n".join(f"// {path}\n{code}" for path, code in generated.items())


class GenerationJobProcessor:
  """Drive one job from pending to a terminal status."""

  def __init__(
    self,
    service: JobService,
    *,
    architect: ArchitectAgent,
    builder: BuilderAgent,
    validator: ShadowValidator,
    credits: CreditsClient,
    architect_credits: int = 5,
    builder_credits: int = 3,
  ) -> None:
    self._service = service
    self._architect = architect
    self._builder = builder
    self._validator = validator
    self._credits = credits
    self._architect_credits = architect_credits
    self._builder_credits = builder_credits

  async def process(self, job_id: str) -> GenerationJob | None:
    """Run the pipeline for a pending job; jobs in any other status are left alone."""
    record = await self._service.start_job(job_id, logs=["Generation started."])
    if record is None:
      logger.info("Job is not pending; skipping job_id=%s", job_id)
      return None

    tracker = JobProgressTracker(job_id=job_id, service=self._service)
    ledger = CreditLedger(self._credits, record.user_id, job_id)
    ctx = AgentContext(job_id=job_id, project_id=record.project_id, user_id=record.user_id)

    try:
      return await self._run(record, tracker, ledger, ctx)
    except JobCancelledError:
      logger.info("Discarding results of job that left running state job_id=%s", job_id)
      current = await self._service.get_job(job_id)
      # A user cancel keeps its charges; a job failed underneath the worker (stale timeout) is refunded.
      if current.status != "cancelled":
        await ledger.refund_all(f"job_{current.status}")
      return current
    except InsufficientCreditsError as exc:
      logger.info("Insufficient credits job_id=%s needed=%s available=%s", job_id, exc.needed, exc.available)
      return await self._fail(job_id, INSUFFICIENT_CREDITS_MESSAGE)
    except CreditsUnavailableError as exc:
      logger.error("Billing unavailable job_id=%s: %s", job_id, exc)
      await ledger.refund_all("billing_unavailable")
      return await self._fail(job_id, BILLING_UNAVAILABLE_MESSAGE)
    except AgentError as exc:
      logger.warning("Generation failed job_id=%s error=%s: %s", job_id, type(exc).__name__, exc.message)
      await ledger.refund_all(f"generation_failed:{type(exc).__name__}")
      return await self._fail(job_id, exc.message)
    except Exception:  # noqa: BLE001
      logger.exception("Unexpected error while processing job_id=%s", job_id)
      await ledger.refund_all("internal_error")
      return await self._fail(job_id, INTERNAL_ERROR_MESSAGE)

  async def _run(self, record: GenerationJob, tracker: JobProgressTracker, ledger: CreditLedger, ctx: AgentContext) -> GenerationJob:
    job_id = record.id
    prompt = record.ai_prompt or record.prompt

    await ledger.charge("vibecoder_architect", self._architect_credits)
    await tracker.log("Architect is planning the storefront...")
    plan = await plan_or_fallback(self._architect, ArchitectRequest(prompt=prompt), ctx)
    if plan.is_fallback:
      await tracker.log("Plan unavailable; building a single-file storefront.")
    else:
      await tracker.log(f"Plan ready: {len(plan.files)} file(s), complexity {plan.complexity_score}/10.")

    plan_payload: dict[str, Any] = plan.model_dump(mode="json")
    if record.is_plan_mode:
      completed = await self._service.complete_job(job_id, code_result=None, summary=PLAN_READY_SUMMARY, plan_result=plan_payload, logs=["Plan ready for review."])
      if completed is None:
        raise JobCancelledError(f"Job {job_id} finished before its plan was stored.")
      return completed

    await tracker.ensure_running()
    await ledger.charge("vibecoder_builder", self._builder_credits)
    generated, summaries = await self._build_files(plan, prompt, tracker, ctx)

    entry_path = plan.execution_order[-1] if plan.execution_order else ASSEMBLY_FILE
    entry_code = generated.get(entry_path)
    if entry_code is None:
      raise AgentOutputError(f"Builder did not produce {entry_path}")

    await tracker.log("Shadow testing the assembled storefront...")
    outcome = await self._validator.test_code(entry_code)
    if not outcome.success:
      raise GeneratedCodeRejectedError(outcome.error)

    summary = summaries[-1] if summaries else f"Generated {len(generated)} file(s)."
    plan_payload["generated_files"] = generated
    completed = await self._service.complete_job(job_id, code_result=entry_code, summary=summary, plan_result=plan_payload, logs=["Shadow test passed.", "Generation complete."])
    if completed is None:
      raise JobCancelledError(f"Job {job_id} finished before its result was stored.")
    logger.info("Generation completed job_id=%s files=%s build_time_ms=%s", job_id, len(generated), outcome.build_time_ms)
    return completed

  async def _build_files(self, plan: BuildPlan, prompt: str, tracker: JobProgressTracker, ctx: AgentContext) -> tuple[dict[str, str], list[str]]:
    generated: dict[str, str] = {}
    summaries: list[str] = []
    total = len(plan.execution_order)
    entry_path = plan.execution_order[-1] if plan.execution_order else ASSEMBLY_FILE

    for index, path in enumerate(plan.execution_order, start=1):
      await tracker.ensure_running()
      planned = plan.file_for(path) or PlanFile(path=path)
      await tracker.log(f"Building {path} ({index}/{total})...")

      result = await self._builder.run(BuilderRequest(prompt=prompt, plan=plan, file=planned, current_code=_render_generated(generated)), ctx)
      if result.logs:
        await tracker.log(*result.logs)

      # Supporting files are checked structurally; the entry file gets a full shadow test.
      if path != entry_path:
        check = quick_syntax_check(result.code, require_entry=False)
        if not check.valid:
          raise GeneratedCodeRejectedError(f"{path}: {check.error}")

      generated[path] = result.code
      if result.summary:
        summaries.append(result.summary)

    return generated, summaries

  async def _fail(self, job_id: str, message: str) -> GenerationJob | None:
    failed = await self._service.fail_job(job_id, message, expected=("running",))
    if failed is None:
      logger.info("Job already left running state; failure not recorded job_id=%s", job_id)
      return await self._service.get_job(job_id)
    return failed


def build_job_processor(settings: Settings, service: JobService) -> GenerationJobProcessor:
  """Wire agents, validator and billing from configuration."""
  architect = ArchitectAgent(model=get_model_for_role(settings, AgentRole.ARCHITECT))
  builder = BuilderAgent(model=get_model_for_role(settings, AgentRole.BUILDER))
  return GenerationJobProcessor(
    service,
    architect=architect,
    builder=builder,
    validator=get_shadow_validator(),
    credits=build_credits_client(settings),
    architect_credits=settings.architect_credits,
    builder_credits=settings.builder_credits,
  )
