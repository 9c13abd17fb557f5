from __future__ import annotations

import asyncio
from typing import Any

import pytest

from vibecoder.jobs.errors import UnauthenticatedError
from vibecoder.jobs.feed import JobChange, JobFeed
from vibecoder.jobs.models import GenerationJob
from vibecoder.jobs.orchestrator import CANCEL_FAILED_NOTICE, CANCELLED_NOTICE, JobOrchestrator
from vibecoder.services.jobs import STALE_JOB_MESSAGE, JobService
from vibecoder.storage.memory_jobs_repo import InMemoryJobsRepository


class Recorder:
  def __init__(self) -> None:
    self.updates: list[GenerationJob] = []
    self.completed: list[GenerationJob] = []
    self.failed: list[GenerationJob] = []
    self.notices: list[tuple[str, str]] = []

  def callbacks(self) -> dict[str, Any]:
    return {"on_update": self.updates.append, "on_complete": self.completed.append, "on_error": self.failed.append, "on_notice": self._notice}

  async def _notice(self, level: str, message: str) -> None:
    self.notices.append((level, message))


async def _drain() -> None:
  # Let the consumer task pick up published changes.
  for _ in range(10):
    await asyncio.sleep(0)


def _orchestrator(service: JobService, feed: JobFeed, recorder: Recorder, user_id: str | None = "user-1") -> JobOrchestrator:
  return JobOrchestrator(service, feed, project_id="project-1", user_id=user_id, **recorder.callbacks())


@pytest.mark.anyio
async def test_start_resumes_active_job(service: JobService, feed: JobFeed) -> None:
  record = await service.create_job(project_id="project-1", user_id="user-1", prompt="Make my hero dark")
  recorder = Recorder()
  async with _orchestrator(service, feed, recorder) as orchestrator:
    assert orchestrator.current_job is not None
    assert orchestrator.current_job.id == record.id
    assert orchestrator.has_active_job
  assert recorder.updates[0].id == record.id
  assert feed.subscriber_count("project-1") == 0


@pytest.mark.anyio
async def test_completion_fires_once_per_job_and_status(service: JobService, feed: JobFeed) -> None:
  recorder = Recorder()
  async with _orchestrator(service, feed, recorder) as orchestrator:
    record = await orchestrator.create_job("Make my hero dark")
    assert record is not None
    await service.start_job(record.id)
    completed = await service.complete_job(record.id, code_result="export default function App() {}", summary="done", plan_result=None)
    await _drain()
    # A redelivered event must not fire the completion callback again.
    feed.publish(JobChange(kind="update", job=completed))
    await _drain()
    assert orchestrator.has_completed_job

  assert [job.id for job in recorder.completed] == [record.id]
  assert recorder.failed == []
  assert [job.status for job in recorder.updates][-1] == "completed"


@pytest.mark.anyio
async def test_create_job_policy_violation_is_a_notice(service: JobService, feed: JobFeed, repo: InMemoryJobsRepository) -> None:
  recorder = Recorder()
  orchestrator = _orchestrator(service, feed, recorder)
  assert await orchestrator.create_job("please add a login page") is None
  assert recorder.notices[0][0] == "error"
  assert recorder.notices[0][1].startswith("Authentication features are securely managed")
  assert await repo.list_project_jobs("project-1") == []


@pytest.mark.anyio
async def test_create_job_conflict_adopts_existing_job(service: JobService, feed: JobFeed) -> None:
  existing = await service.create_job(project_id="project-1", user_id="user-1", prompt="Make my hero dark")
  recorder = Recorder()
  orchestrator = _orchestrator(service, feed, recorder)
  assert await orchestrator.create_job("Change the footer") is None
  assert recorder.notices == [("error", "A generation is already in progress for this project.")]
  assert orchestrator.current_job is not None and orchestrator.current_job.id == existing.id


@pytest.mark.anyio
async def test_create_job_requires_user(service: JobService, feed: JobFeed) -> None:
  orchestrator = _orchestrator(service, feed, Recorder(), user_id=None)
  with pytest.raises(UnauthenticatedError):
    await orchestrator.create_job("Make my hero dark")


@pytest.mark.anyio
async def test_cancel_dismisses_job_and_ignores_late_events(service: JobService, feed: JobFeed) -> None:
  recorder = Recorder()
  async with _orchestrator(service, feed, recorder) as orchestrator:
    record = await orchestrator.create_job("Make my hero dark")
    assert record is not None
    assert await orchestrator.cancel_job() is True
    await _drain()
    assert orchestrator.current_job is None

  assert recorder.notices == [("info", CANCELLED_NOTICE)]
  assert (await service.get_job(record.id)).status == "cancelled"


@pytest.mark.anyio
async def test_cancel_of_finished_job_reports_failure(service: JobService, feed: JobFeed) -> None:
  recorder = Recorder()
  orchestrator = _orchestrator(service, feed, recorder)
  record = await orchestrator.create_job("Make my hero dark")
  assert record is not None
  await service.start_job(record.id)
  await service.fail_job(record.id, "boom")
  assert await orchestrator.cancel_job(record.id) is False
  assert recorder.notices == [("error", CANCEL_FAILED_NOTICE)]


@pytest.mark.anyio
async def test_acknowledge_clears_current_job(service: JobService, feed: JobFeed) -> None:
  orchestrator = _orchestrator(service, feed, Recorder())
  record = await orchestrator.create_job("Make my hero dark")
  assert record is not None
  orchestrator.acknowledge_job("another-job")
  assert orchestrator.current_job is not None
  orchestrator.acknowledge_job(record.id)
  assert orchestrator.current_job is None
  assert (await service.get_job(record.id)).status == "pending"


@pytest.mark.anyio
async def test_check_stale_force_fails_silent_job(service: JobService, feed: JobFeed, repo: InMemoryJobsRepository) -> None:
  recorder = Recorder()
  async with _orchestrator(service, feed, recorder) as orchestrator:
    stale = GenerationJob(id="job-stale", project_id="project-1", user_id="user-1", prompt="p", ai_prompt="p", status="running", created_at="2020-01-01T00:00:00Z", updated_at="2020-01-01T00:00:00Z")
    await repo.create_job(stale)
    feed.publish(JobChange(kind="insert", job=stale))
    await _drain()
    assert orchestrator.current_job is not None and orchestrator.current_job.id == "job-stale"

    result = await orchestrator.check_stale()

  assert result is not None and result.status == "failed"
  assert result.error_message == STALE_JOB_MESSAGE
  assert [job.id for job in recorder.failed] == ["job-stale"]


@pytest.mark.anyio
async def test_failing_callback_does_not_stop_event_consumption(service: JobService, feed: JobFeed) -> None:
  seen: list[str] = []
  completed: list[str] = []

  def on_update(record: GenerationJob) -> None:
    if not seen and record.status == "pending":
      seen.append("boom")
      raise RuntimeError("client went away")
    seen.append(record.status)

  async with JobOrchestrator(service, feed, project_id="project-1", user_id="user-1", on_update=on_update, on_complete=lambda record: completed.append(record.id)) as orchestrator:
    record = await service.create_job(project_id="project-1", user_id="user-1", prompt="Make my hero dark")
    await _drain()
    await service.start_job(record.id)
    await service.complete_job(record.id, code_result="export default function App() {}", summary="done", plan_result=None)
    await _drain()

    assert seen == ["boom", "running", "completed"]
    assert completed == [record.id]
    assert orchestrator.current_job.status == "completed"


@pytest.mark.anyio
async def test_reconnect_resumes_same_job(service: JobService, feed: JobFeed) -> None:
  first = _orchestrator(service, feed, Recorder())
  async with first:
    record = await first.create_job("Make my hero dark")
    await service.start_job(record.id)
    await _drain()
  assert feed.subscriber_count("project-1") == 0

  # A fresh observer after the connection dropped adopts the same job.
  second = _orchestrator(service, feed, Recorder())
  resumed = await second.resume_if_active()
  assert resumed is not None
  assert (resumed.id, resumed.status) == (record.id, "running")
  assert second.current_job.id == record.id
