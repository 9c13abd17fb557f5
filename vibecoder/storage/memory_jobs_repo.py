"""In-process jobs repository for local development and tests."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from vibecoder.jobs.errors import ActiveJobExistsError
from vibecoder.jobs.models import GenerationJob, JobStatus, ensure_transition, now_iso
from vibecoder.storage.jobs_repo import JobsRepository


def _copy(record: GenerationJob) -> GenerationJob:
  return replace(record, progress_logs=list(record.progress_logs), plan_result=dict(record.plan_result) if record.plan_result is not None else None)


class InMemoryJobsRepository(JobsRepository):
  """Keep jobs in a dict guarded by a lock; mirrors the Postgres active-job index."""

  def __init__(self) -> None:
    self._jobs: dict[str, GenerationJob] = {}
    self._order: list[str] = []
    self._lock = asyncio.Lock()

  async def create_job(self, record: GenerationJob) -> None:
    async with self._lock:
      for job_id in reversed(self._order):
        existing = self._jobs[job_id]
        if existing.project_id == record.project_id and existing.is_active:
          raise ActiveJobExistsError(job_id=existing.id)
      self._jobs[record.id] = _copy(record)
      self._order.append(record.id)

  async def get_job(self, job_id: str) -> GenerationJob | None:
    record = self._jobs.get(job_id)
    return _copy(record) if record is not None else None

  async def find_active_job(self, project_id: str) -> GenerationJob | None:
    for job_id in reversed(self._order):
      record = self._jobs[job_id]
      if record.project_id == project_id and record.is_active:
        return _copy(record)
    return None

  async def list_project_jobs(self, project_id: str, *, user_id: str | None = None, limit: int = 20) -> list[GenerationJob]:
    records = [self._jobs[job_id] for job_id in reversed(self._order) if self._jobs[job_id].project_id == project_id and (user_id is None or self._jobs[job_id].user_id == user_id)]
    return [_copy(record) for record in records[:limit]]

  async def transition_job(
    self,
    job_id: str,
    *,
    expected: Iterable[JobStatus],
    status: JobStatus | None = None,
    logs: list[str] | None = None,
    code_result: str | None = None,
    summary: str | None = None,
    plan_result: dict[str, Any] | None = None,
    error_message: str | None = None,
    started_at: str | None = None,
    completed_at: str | None = None,
  ) -> GenerationJob | None:
    async with self._lock:
      record = self._jobs.get(job_id)
      if record is None or record.status not in set(expected):
        return None
      if status is not None and status != record.status:
        ensure_transition(job_id, record.status, status)

      # Apply partial updates to mimic the Postgres repository.
      changes: dict[str, Any] = {"updated_at": now_iso(), "progress_logs": [*record.progress_logs, *(logs or [])]}
      fields = {"status": status, "code_result": code_result, "summary": summary, "plan_result": plan_result, "error_message": error_message, "started_at": started_at, "completed_at": completed_at}
      changes.update({key: value for key, value in fields.items() if value is not None})
      updated = replace(record, **changes)
      self._jobs[job_id] = updated
      return _copy(updated)
