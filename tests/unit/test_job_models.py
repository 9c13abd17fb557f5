from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from vibecoder.jobs.errors import InvalidTransitionError
from vibecoder.jobs.models import DATE_FORMAT, GenerationJob, can_transition, ensure_transition


def _job(status: str = "pending", updated_at: str = "2026-01-01T00:00:00Z") -> GenerationJob:
  return GenerationJob(id="job-1", project_id="project-1", user_id="user-1", prompt="p", ai_prompt="p", status=status, created_at=updated_at, updated_at=updated_at)  # type: ignore[arg-type]


@pytest.mark.parametrize(
  ("current", "target", "allowed"),
  [
    ("pending", "running", True),
    ("pending", "cancelled", True),
    ("pending", "failed", True),
    ("pending", "completed", False),
    ("running", "completed", True),
    ("running", "failed", True),
    ("running", "cancelled", True),
    ("running", "pending", False),
    ("completed", "running", False),
    ("failed", "cancelled", False),
    ("cancelled", "pending", False),
  ],
)
def test_transition_table(current: str, target: str, allowed: bool) -> None:
  assert can_transition(current, target) is allowed


def test_ensure_transition_raises_for_terminal_jobs() -> None:
  with pytest.raises(InvalidTransitionError) as excinfo:
    ensure_transition("job-1", "completed", "cancelled")
  assert excinfo.value.job_id == "job-1"
  assert excinfo.value.status_code == 409


def test_is_stale_only_for_active_jobs() -> None:
  updated = datetime(2026, 1, 1, tzinfo=UTC)
  stamp = updated.strftime(DATE_FORMAT)
  later = updated + timedelta(seconds=121)
  assert _job("running", stamp).is_stale(120, now=later) is True
  assert _job("running", stamp).is_stale(120, now=updated + timedelta(seconds=60)) is False
  assert _job("completed", stamp).is_stale(120, now=later) is False


def test_active_and_terminal_flags() -> None:
  assert _job("pending").is_active
  assert not _job("pending").is_terminal
  assert _job("cancelled").is_terminal
