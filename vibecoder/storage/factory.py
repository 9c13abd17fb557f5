"""Repository factory for storage backends."""

from __future__ import annotations

from vibecoder.config import Settings
from vibecoder.storage.jobs_repo import JobsRepository
from vibecoder.storage.memory_jobs_repo import InMemoryJobsRepository
from vibecoder.storage.postgres_jobs_repo import PostgresJobsRepository

_MEMORY_REPO: InMemoryJobsRepository | None = None


def _get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the active jobs repository."""
  global _MEMORY_REPO

  # The memory backend is process-wide so every request sees the same jobs.
  if settings.jobs_backend == "memory":
    if _MEMORY_REPO is None:
      _MEMORY_REPO = InMemoryJobsRepository()
    return _MEMORY_REPO

  if not settings.pg_dsn:
    raise ValueError("VIBECODER_PG_DSN must be set to enable Postgres persistence.")

  return PostgresJobsRepository()
