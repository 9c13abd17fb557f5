"""Postgres-backed repository for generation jobs using SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from vibecoder.core.database import get_session_factory
from vibecoder.jobs.errors import ActiveJobExistsError
from vibecoder.jobs.models import GenerationJob, JobStatus, ensure_transition, now_iso
from vibecoder.schema.jobs import ACTIVE_PROJECT_INDEX, GenerationJobRow
from vibecoder.storage.jobs_repo import JobsRepository

logger = logging.getLogger(__name__)


class PostgresJobsRepository(JobsRepository):
  """Persist generation jobs to the ai_generation_jobs table."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_job(self, record: GenerationJob) -> None:
    async with self._session_factory() as session:
      row = GenerationJobRow(
        id=record.id,
        project_id=record.project_id,
        user_id=record.user_id,
        prompt=record.prompt,
        ai_prompt=record.ai_prompt,
        status=record.status,
        code_result=record.code_result,
        summary=record.summary,
        plan_result=record.plan_result,
        error_message=record.error_message,
        model_id=record.model_id,
        is_plan_mode=record.is_plan_mode,
        progress_logs=list(record.progress_logs),
        started_at=record.started_at,
        completed_at=record.completed_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
      )
      session.add(row)
      try:
        await session.commit()
      except IntegrityError as exc:
        await session.rollback()
        # The partial unique index rejects a second active job for the project.
        if ACTIVE_PROJECT_INDEX not in str(exc.orig):
          raise
        active = await self.find_active_job(record.project_id)
        logger.info("Rejected concurrent job project_id=%s active_job_id=%s", record.project_id, active.id if active else None)
        raise ActiveJobExistsError(job_id=active.id if active else None) from exc

  async def get_job(self, job_id: str) -> GenerationJob | None:
    async with self._session_factory() as session:
      row = await session.get(GenerationJobRow, job_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def find_active_job(self, project_id: str) -> GenerationJob | None:
    async with self._session_factory() as session:
      stmt = select(GenerationJobRow).where(GenerationJobRow.project_id == project_id, GenerationJobRow.status.in_(("pending", "running"))).order_by(GenerationJobRow.created_at.desc()).limit(1)
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None:
        return None
      return self._model_to_record(row)

  async def list_project_jobs(self, project_id: str, *, user_id: str | None = None, limit: int = 20) -> list[GenerationJob]:
    async with self._session_factory() as session:
      stmt = select(GenerationJobRow).where(GenerationJobRow.project_id == project_id)
      if user_id is not None:
        stmt = stmt.where(GenerationJobRow.user_id == user_id)
      stmt = stmt.order_by(GenerationJobRow.created_at.desc()).limit(limit)
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows]

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
    async with self._session_factory() as session:
      # Lock the row so the status check and the write are one atomic step.
      stmt = select(GenerationJobRow).where(GenerationJobRow.id == job_id).with_for_update()
      row = (await session.execute(stmt)).scalar_one_or_none()
      if row is None or row.status not in set(expected):
        await session.rollback()
        return None
      if status is not None and status != row.status:
        ensure_transition(job_id, row.status, status)
        row.status = status
      if logs:
        # Reassign so the JSONB column is flagged dirty.
        row.progress_logs = [*(row.progress_logs or []), *logs]
      if code_result is not None:
        row.code_result = code_result
      if summary is not None:
        row.summary = summary
      if plan_result is not None:
        row.plan_result = plan_result
      if error_message is not None:
        row.error_message = error_message
      if started_at is not None:
        row.started_at = started_at
      if completed_at is not None:
        row.completed_at = completed_at
      row.updated_at = now_iso()
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  @staticmethod
  def _model_to_record(row: GenerationJobRow) -> GenerationJob:
    return GenerationJob(
      id=row.id,
      project_id=row.project_id,
      user_id=row.user_id,
      prompt=row.prompt,
      ai_prompt=row.ai_prompt,
      status=row.status,  # type: ignore[arg-type]
      created_at=row.created_at,
      updated_at=row.updated_at,
      model_id=row.model_id,
      is_plan_mode=row.is_plan_mode,
      code_result=row.code_result,
      summary=row.summary,
      plan_result=row.plan_result,
      error_message=row.error_message,
      progress_logs=list(row.progress_logs or []),
      started_at=row.started_at,
      completed_at=row.completed_at,
    )
