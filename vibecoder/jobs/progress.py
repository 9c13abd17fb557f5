"""Progress-log tracking for running generation jobs."""

from __future__ import annotations

import logging

from vibecoder.jobs.errors import JobCancelledError
from vibecoder.jobs.models import GenerationJob
from vibecoder.services.jobs import JobService

logger = logging.getLogger(__name__)


class JobProgressTracker:
  """Append progress lines to a running job and surface cancellation."""

  def __init__(self, *, job_id: str, service: JobService) -> None:
    self._job_id = job_id
    self._service = service
    self._sent = 0

  @property
  def job_id(self) -> str:
    return self._job_id

  @property
  def sent_count(self) -> int:
    return self._sent

  async def log(self, *messages: str) -> GenerationJob:
    """Persist log lines; raise JobCancelledError once the job stopped running."""
    lines = [message for message in messages if message]
    if not lines:
      return await self.ensure_running()

    record = await self._service.append_logs(self._job_id, lines)
    if record is None:
      raise JobCancelledError(f"Job {self._job_id} is no longer running.")
    self._sent += len(lines)
    return record

  async def ensure_running(self) -> GenerationJob:
    """Re-read the job between stages; cancellation is advisory and checked here."""
    record = await self._service.get_job(self._job_id)
    if record.status != "running":
      logger.info("Job left running state job_id=%s status=%s", self._job_id, record.status)
      raise JobCancelledError(f"Job {self._job_id} is {record.status}.")
    return record
