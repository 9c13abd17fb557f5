from __future__ import annotations

import pytest

from vibecoder.jobs.feed import JobChange, JobFeed, JobSubscription
from vibecoder.jobs.models import GenerationJob


def _change(project_id: str = "project-1", job_id: str = "job-1") -> JobChange:
  job = GenerationJob(id=job_id, project_id=project_id, user_id="user-1", prompt="p", ai_prompt="p", status="pending", created_at="2026-01-01T00:00:00Z", updated_at="2026-01-01T00:00:00Z")
  return JobChange(kind="insert", job=job)


@pytest.mark.anyio
async def test_changes_are_scoped_to_project() -> None:
  feed = JobFeed()
  mine = feed.subscribe("project-1")
  other = feed.subscribe("project-2")
  assert feed.publish(_change("project-1")) == 1

  change = await mine.get()
  assert change is not None and change.job.project_id == "project-1"
  other.close()
  assert await other.get() is None
  mine.close()


def test_close_unsubscribes() -> None:
  feed = JobFeed()
  subscription = feed.subscribe("project-1")
  assert feed.subscriber_count("project-1") == 1
  subscription.close()
  subscription.close()
  assert subscription.closed
  assert feed.subscriber_count("project-1") == 0
  assert feed.publish(_change()) == 0


def test_full_queue_drops_changes_without_blocking() -> None:
  subscription = JobSubscription(JobFeed(), "project-1", maxsize=1)
  assert subscription.deliver(_change(job_id="a")) is True
  assert subscription.deliver(_change(job_id="b")) is False
