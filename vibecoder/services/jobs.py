import logging
from collections.abc import Iterable
from typing import Any

from fastapi import BackgroundTasks

from vibecoder.config import Settings
from vibecoder.guard.policy import PolicyViolationError, check_policy_violation
from vibecoder.jobs.errors import ActiveJobExistsError, JobAccessDeniedError, JobFinalizedError, JobNotFoundError, NoProjectError, UnauthenticatedError
from vibecoder.jobs.feed import JobChange, JobFeed, get_job_feed
from vibecoder.jobs.models import ACTIVE_STATUSES, GenerationJob, JobStatus, now_iso
from vibecoder.storage.factory import _get_jobs_repo
from vibecoder.storage.jobs_repo import JobsRepository
from vibecoder.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

STALE_JOB_MESSAGE = "Generation timed out"
_CANCEL_LOG = "Generation cancelled by user."


class JobService:
  """Own job persistence invariants and publish every committed change to the feed."""

  def __init__(self, repo: JobsRepository, feed: JobFeed, *, stale_timeout_seconds: int = 120, default_model_id: str = "vibecoder-pro") -> None:
    self._repo = repo
    self._feed = feed
    self._stale_timeout_seconds = stale_timeout_seconds
    self._default_model_id = default_model_id

  @property
  def stale_timeout_seconds(self) -> int:
    return self._stale_timeout_seconds

  async def create_job(self, *, project_id: str | None, user_id: str | None, prompt: str, ai_prompt: str | None = None, model_id: str | None = None, is_plan_mode: bool = False) -> GenerationJob:
    """Insert a pending job after the policy guard and the active-job check."""
    if not user_id:
      raise UnauthenticatedError()
    if not project_id:
      raise NoProjectError()

    # Reject out-of-scope requests before anything is persisted or billed.
    rule = check_policy_violation(prompt)
    if rule is not None:
      raise PolicyViolationError(rule)

    # Query before create; an expired job no longer blocks the project.
    active = await self._repo.find_active_job(project_id)
    if active is not None:
      active = await self.expire_if_stale(active)
      if active.is_active:
        raise ActiveJobExistsError(job_id=active.id)

    timestamp = now_iso()
    record = GenerationJob(
      id=generate_job_id(),
      project_id=project_id,
      user_id=user_id,
      prompt=prompt,
      ai_prompt=ai_prompt or prompt,
      status="pending",
      created_at=timestamp,
      updated_at=timestamp,
      model_id=model_id or self._default_model_id,
      is_plan_mode=is_plan_mode,
    )
    # Storage enforces the same invariant for concurrent creators.
    await self._repo.create_job(record)
    logger.info("Created generation job job_id=%s project_id=%s plan_mode=%s", record.id, project_id, is_plan_mode)
    self._publish("insert", record)
    return record

  async def get_job(self, job_id: str, *, user_id: str | None = None) -> GenerationJob:
    record = await self._repo.get_job(job_id)
    if record is None:
      raise JobNotFoundError(job_id=job_id)
    if user_id and record.user_id != user_id:
      raise JobAccessDeniedError(job_id=job_id)
    return record

  async def get_active_job(self, project_id: str, *, user_id: str | None = None) -> GenerationJob | None:
    """Return the project's most recent pending or running job, expiring it when stale."""
    record = await self._repo.find_active_job(project_id)
    if record is None:
      return None
    if user_id and record.user_id != user_id:
      raise JobAccessDeniedError(job_id=record.id)
    record = await self.expire_if_stale(record)
    return record if record.is_active else None

  async def list_project_jobs(self, project_id: str, *, user_id: str | None = None, limit: int = 20) -> list[GenerationJob]:
    return await self._repo.list_project_jobs(project_id, user_id=user_id, limit=limit)

  async def cancel_job(self, job_id: str, *, user_id: str | None = None) -> GenerationJob:
    """Move a pending or running job to cancelled; terminal jobs are immutable."""
    record = await self.get_job(job_id, user_id=user_id)
    if record.is_terminal:
      raise JobFinalizedError(job_id=job_id)

    updated = await self._repo.transition_job(job_id, expected=ACTIVE_STATUSES, status="cancelled", completed_at=now_iso(), logs=[_CANCEL_LOG])
    if updated is None:
      # Lost the race against the worker or another tab.
      latest = await self._repo.get_job(job_id)
      if latest is None:
        raise JobNotFoundError(job_id=job_id)
      raise JobFinalizedError(job_id=job_id)

    logger.info("Cancelled generation job job_id=%s previous_status=%s", job_id, record.status)
    self._publish("update", updated)
    return updated

  async def start_job(self, job_id: str, *, logs: list[str] | None = None) -> GenerationJob | None:
    """Claim a pending job for execution; None when it is no longer pending."""
    updated = await self._repo.transition_job(job_id, expected=("pending",), status="running", started_at=now_iso(), logs=logs)
    if updated is not None:
      self._publish("update", updated)
    return updated

  async def append_logs(self, job_id: str, logs: list[str]) -> GenerationJob | None:
    """Append progress lines to a running job; None when it left the running state."""
    updated = await self._repo.transition_job(job_id, expected=("running",), logs=logs)
    if updated is not None:
      self._publish("update", updated)
    return updated

  async def complete_job(self, job_id: str, *, code_result: str | None, summary: str | None, plan_result: dict[str, Any] | None, logs: list[str] | None = None) -> GenerationJob | None:
    updated = await self._repo.transition_job(job_id, expected=("running",), status="completed", code_result=code_result, summary=summary, plan_result=plan_result, completed_at=now_iso(), logs=logs)
    if updated is not None:
      logger.info("Completed generation job job_id=%s", job_id)
      self._publish("update", updated)
    return updated

  async def fail_job(self, job_id: str, error_message: str, *, expected: Iterable[JobStatus] = ("pending", "running"), logs: list[str] | None = None) -> GenerationJob | None:
    """Fail an active job with a one-line reason; never overwrites a terminal status."""
    updated = await self._repo.transition_job(job_id, expected=expected, status="failed", error_message=error_message, completed_at=now_iso(), logs=logs)
    if updated is not None:
      logger.info("Failed generation job job_id=%s reason=%s", job_id, error_message)
      self._publish("update", updated)
    return updated

  async def expire_if_stale(self, record: GenerationJob) -> GenerationJob:
    """Force-fail an active job that has not been touched within the stale timeout."""
    if not record.is_stale(self._stale_timeout_seconds):
      return record

    # Only apply if nobody moved the job since we observed it.
    updated = await self.fail_job(record.id, STALE_JOB_MESSAGE, expected=(record.status,), logs=[STALE_JOB_MESSAGE])
    if updated is not None:
      logger.warning("Expired stale generation job job_id=%s last_update=%s", record.id, record.updated_at)
      return updated
    latest = await self._repo.get_job(record.id)
    return latest or record

  def _publish(self, kind: str, record: GenerationJob) -> None:
    self._feed.publish(JobChange(kind=kind, job=record))  # type: ignore[arg-type]


def get_job_service(settings: Settings) -> JobService:
  """Build a job service bound to the configured repository and the process feed."""
  return JobService(_get_jobs_repo(settings), get_job_feed(), stale_timeout_seconds=settings.stale_job_timeout_seconds, default_model_id=settings.default_model_id)


def trigger_job_processing(background_tasks: BackgroundTasks, job_id: str, settings: Settings, service: JobService) -> None:
  """Schedule in-process execution of a pending job."""

  if not settings.jobs_auto_process:
    return

  async def _dispatch() -> None:
    try:
      from vibecoder.jobs.worker import build_job_processor

      processor = build_job_processor(settings, service)
      await processor.process(job_id)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed to dispatch job %s: %s", job_id, exc, exc_info=True)
      # Fail the job so it does not stay pending until the stale timeout.
      await service.fail_job(job_id, "Generation failed to start.", logs=["Dispatch failed."])

  # Run after the response is sent so job creation returns immediately.
  background_tasks.add_task(_dispatch)
