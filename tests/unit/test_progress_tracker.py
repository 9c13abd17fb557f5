import pytest

from vibecoder.jobs.errors import JobCancelledError
from vibecoder.jobs.progress import JobProgressTracker
from vibecoder.services.jobs import JobService


async def _running_job(service: JobService):
  job = await service.create_job(project_id="project-1", user_id="user-1", prompt="Add a testimonials section")
  return await service.start_job(job.id)


@pytest.mark.anyio
async def test_log_appends_lines_in_order(service: JobService) -> None:
  job = await _running_job(service)
  tracker = JobProgressTracker(job_id=job.id, service=service)

  await tracker.log("Architect is planning the storefront...")
  record = await tracker.log("Building src/App.tsx (1/1)...", "", "Writing JSX")

  assert record.progress_logs[-3:] == ["Architect is planning the storefront...", "Building src/App.tsx (1/1)...", "Writing JSX"]
  assert tracker.sent_count == 3


@pytest.mark.anyio
async def test_log_after_cancel_raises(service: JobService) -> None:
  job = await _running_job(service)
  tracker = JobProgressTracker(job_id=job.id, service=service)
  await service.cancel_job(job.id)

  with pytest.raises(JobCancelledError):
    await tracker.log("Building src/App.tsx (1/1)...")
  with pytest.raises(JobCancelledError):
    await tracker.ensure_running()
  with pytest.raises(JobCancelledError):
    await tracker.log()
