"""Observer and state owner for a project's current generation job.

The orchestrator keeps an in-memory reference to the "current job" of one
project and reconciles it from two sources: a point query for the most recent
active job and the realtime change feed. Whichever arrives last wins. Terminal
callbacks fire exactly once per (job id, terminal status) pair.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Literal

from vibecoder.guard.policy import PolicyViolationError
from vibecoder.jobs.errors import ActiveJobExistsError, JobError, NoProjectError, UnauthenticatedError
from vibecoder.jobs.feed import JobFeed, JobSubscription
from vibecoder.jobs.models import GenerationJob
from vibecoder.services.jobs import JobService

logger = logging.getLogger(__name__)

NoticeLevel = Literal["info", "error"]
JobCallback = Callable[[GenerationJob], Awaitable[None] | None]
NoticeCallback = Callable[[NoticeLevel, str], Awaitable[None] | None]

CREATE_FAILED_NOTICE = "Failed to start generation"
CANCEL_FAILED_NOTICE = "Failed to cancel generation"
CANCELLED_NOTICE = "Generation cancelled"


async def _invoke(callback: Callable[..., Any] | None, *args: Any) -> None:
  if callback is None:
    return
  result = callback(*args)
  if inspect.isawaitable(result):
    await result


class JobOrchestrator:
  """Track the current generation job of a project across reconnects."""

  def __init__(
    self,
    service: JobService,
    feed: JobFeed,
    *,
    project_id: str | None,
    user_id: str | None,
    on_update: JobCallback | None = None,
    on_complete: JobCallback | None = None,
    on_error: JobCallback | None = None,
    on_notice: NoticeCallback | None = None,
    stale_check_interval_seconds: float | None = None,
  ) -> None:
    self.project_id = project_id
    self.user_id = user_id
    self._service = service
    self._feed = feed
    self._on_update = on_update
    self._on_complete = on_complete
    self._on_error = on_error
    self._on_notice = on_notice
    self._stale_check_interval_seconds = stale_check_interval_seconds
    self._current: GenerationJob | None = None
    self._processed: set[str] = set()
    self._dismissed: set[str] = set()
    self._subscription: JobSubscription | None = None
    self._consumer: asyncio.Task[None] | None = None
    self._watchdog: asyncio.Task[None] | None = None

  @property
  def current_job(self) -> GenerationJob | None:
    return self._current

  @property
  def has_active_job(self) -> bool:
    return self._current is not None and self._current.is_active

  @property
  def has_completed_job(self) -> bool:
    return self._current is not None and self._current.status == "completed"

  @property
  def has_failed_job(self) -> bool:
    return self._current is not None and self._current.status == "failed"

  @property
  def is_started(self) -> bool:
    return self._subscription is not None

  async def start(self) -> None:
    """Subscribe, reconcile with a point query, then consume realtime events."""
    if self._subscription is not None or not self.project_id:
      return

    # Subscribe before querying so no commit falls between the two.
    self._subscription = self._feed.subscribe(self.project_id)
    await self.resume_if_active()
    self._consumer = asyncio.create_task(self._consume(self._subscription))
    if self._stale_check_interval_seconds:
      self._watchdog = asyncio.create_task(self._watch_stale(self._stale_check_interval_seconds))

  async def stop(self) -> None:
    """Release the subscription and background tasks."""
    for task in (self._watchdog, self._consumer):
      if task is None:
        continue
      task.cancel()
      with contextlib.suppress(asyncio.CancelledError):
        await task
    self._watchdog = None
    self._consumer = None
    if self._subscription is not None:
      self._subscription.close()
      self._subscription = None

  async def __aenter__(self) -> JobOrchestrator:
    await self.start()
    return self

  async def __aexit__(self, *exc_info: object) -> None:
    await self.stop()

  async def resume_if_active(self) -> GenerationJob | None:
    """Adopt the most recent pending or running job of the project, if any."""
    if not self.project_id:
      return None
    try:
      record = await self._service.get_active_job(self.project_id)
    except Exception:  # noqa: BLE001
      logger.warning("Active job lookup failed project_id=%s", self.project_id, exc_info=True)
      return None
    if record is None:
      return None
    logger.info("Resuming generation job job_id=%s status=%s", record.id, record.status)
    await self._apply(record)
    return record

  async def create_job(self, prompt: str, *, ai_prompt: str | None = None, model_id: str | None = None, is_plan_mode: bool = False) -> GenerationJob | None:
    """Create a pending job and adopt it; failures become notices and return None."""
    if not self.user_id:
      raise UnauthenticatedError()
    if not self.project_id:
      raise NoProjectError()

    try:
      record = await self._service.create_job(project_id=self.project_id, user_id=self.user_id, prompt=prompt, ai_prompt=ai_prompt, model_id=model_id, is_plan_mode=is_plan_mode)
    except PolicyViolationError as exc:
      await _invoke(self._on_notice, "error", str(exc))
      return None
    except ActiveJobExistsError as exc:
      await _invoke(self._on_notice, "error", exc.message)
      # Show the job that is already running instead of a duplicate.
      await self.resume_if_active()
      return None
    except Exception:  # noqa: BLE001
      logger.exception("Failed to create generation job project_id=%s", self.project_id)
      await _invoke(self._on_notice, "error", CREATE_FAILED_NOTICE)
      return None

    await self._apply(record)
    return record

  async def cancel_job(self, job_id: str | None = None) -> bool:
    """Cancel the given job, or the current one; return True on success."""
    target = job_id or (self._current.id if self._current else None)
    if target is None:
      return False

    try:
      await self._service.cancel_job(target, user_id=self.user_id)
    except JobError as exc:
      logger.warning("Cancel rejected job_id=%s reason=%s", target, exc.message)
      await _invoke(self._on_notice, "error", CANCEL_FAILED_NOTICE)
      return False
    except Exception:  # noqa: BLE001
      logger.exception("Failed to cancel generation job job_id=%s", target)
      await _invoke(self._on_notice, "error", CANCEL_FAILED_NOTICE)
      return False

    self._dismiss(target)
    await _invoke(self._on_notice, "info", CANCELLED_NOTICE)
    return True

  def acknowledge_job(self, job_id: str | None = None) -> None:
    """Forget the current job reference; the stored job is untouched."""
    if self._current is None:
      return
    if job_id is not None and job_id != self._current.id:
      return
    self._dismiss(self._current.id)

  async def check_stale(self) -> GenerationJob | None:
    """Re-poll the current job and force-fail it if it stopped making progress."""
    record = self._current
    if record is None or not record.is_active:
      return record
    if not record.is_stale(self._service.stale_timeout_seconds):
      return record

    # A missed realtime event may have already finished the job.
    latest = await self._service.get_job(record.id)
    latest = await self._service.expire_if_stale(latest)
    await self._apply(latest)
    return latest

  async def _apply(self, record: GenerationJob) -> None:
    if record.project_id != self.project_id or record.id in self._dismissed:
      return
    self._current = record
    await self._notify(self._on_update, record)

    if record.status not in ("completed", "failed"):
      return
    key = f"{record.id}_{record.status}"
    if key in self._processed:
      return
    self._processed.add(key)
    if record.status == "completed":
      await self._notify(self._on_complete, record)
    else:
      await self._notify(self._on_error, record)

  async def _notify(self, callback: JobCallback | None, record: GenerationJob) -> None:
    # A failing observer must not stop state tracking or later callbacks.
    try:
      await _invoke(callback, record)
    except asyncio.CancelledError:
      raise
    except Exception:  # noqa: BLE001
      logger.warning("Job callback failed project_id=%s job_id=%s status=%s", self.project_id, record.id, record.status, exc_info=True)

  def _dismiss(self, job_id: str) -> None:
    self._dismissed.add(job_id)
    if self._current is not None and self._current.id == job_id:
      self._current = None

  async def _consume(self, subscription: JobSubscription) -> None:
    async for change in subscription:
      try:
        await self._apply(change.job)
      except asyncio.CancelledError:
        raise
      except Exception:  # noqa: BLE001
        logger.warning("Job change could not be applied project_id=%s job_id=%s", self.project_id, change.job.id, exc_info=True)

  async def _watch_stale(self, interval: float) -> None:
    while True:
      await asyncio.sleep(interval)
      try:
        await self.check_stale()
      except asyncio.CancelledError:
        raise
      except Exception:  # noqa: BLE001
        logger.warning("Stale job check failed project_id=%s", self.project_id, exc_info=True)
