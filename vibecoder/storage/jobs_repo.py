"""Storage interfaces for generation jobs."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol

from vibecoder.jobs.models import GenerationJob, JobStatus


class JobsRepository(Protocol):
  """Repository contract for generation job persistence."""

  async def create_job(self, record: GenerationJob) -> None:
    """Persist a new job; raise ActiveJobExistsError if the project already has an active job."""

  async def get_job(self, job_id: str) -> GenerationJob | None:
    """Fetch a job by identifier."""

  async def find_active_job(self, project_id: str) -> GenerationJob | None:
    """Return the most recent pending or running job for a project."""

  async def list_project_jobs(self, project_id: str, *, user_id: str | None = None, limit: int = 20) -> list[GenerationJob]:
    """Return a project's jobs, newest first, optionally only those of one user."""

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
    """Apply an update only while the job is in one of the expected statuses.

    Log lines are appended, never replaced. Returns None when the job is missing
    or its status no longer matches.
    """
