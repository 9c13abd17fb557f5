"""Domain models for storefront generation jobs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from vibecoder.jobs.errors import InvalidTransitionError

JobStatus = Literal["pending", "running", "completed", "failed", "cancelled"]

DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
ACTIVE_STATUSES: frozenset[str] = frozenset({"pending", "running"})
TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed", "cancelled"})

# pending -> failed covers stale jobs and dispatch failures before execution starts.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
  "pending": frozenset({"running", "failed", "cancelled"}),
  "running": frozenset({"completed", "failed", "cancelled"}),
  "completed": frozenset(),
  "failed": frozenset(),
  "cancelled": frozenset(),
}


def now_iso() -> str:
  """Return the current UTC time in the persisted timestamp format."""
  return time.strftime(DATE_FORMAT, time.gmtime())


def parse_iso(value: str) -> datetime:
  return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=UTC)


def can_transition(current: str, target: str) -> bool:
  return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(job_id: str, current: str, target: str) -> None:
  """Raise when a status change is not part of the job lifecycle."""
  if not can_transition(current, target):
    raise InvalidTransitionError(f"Job cannot move from {current} to {target}.", job_id=job_id)


@dataclass
class GenerationJob:
  """One storefront generation request and its lifecycle."""

  id: str
  project_id: str
  user_id: str
  prompt: str
  ai_prompt: str
  status: JobStatus
  created_at: str
  updated_at: str
  model_id: str = "vibecoder-pro"
  is_plan_mode: bool = False
  code_result: str | None = None
  summary: str | None = None
  plan_result: dict[str, Any] | None = None
  error_message: str | None = None
  progress_logs: list[str] = field(default_factory=list)
  started_at: str | None = None
  completed_at: str | None = None

  @property
  def is_active(self) -> bool:
    return self.status in ACTIVE_STATUSES

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES

  def is_stale(self, timeout_seconds: float, *, now: datetime | None = None) -> bool:
    """Return True when an active job has not been touched within the timeout."""
    if not self.is_active:
      return False
    reference = now or datetime.now(UTC)
    return (reference - parse_iso(self.updated_at)).total_seconds() > timeout_seconds
