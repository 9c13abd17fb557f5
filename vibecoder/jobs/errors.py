"""Job lifecycle errors surfaced to API callers and observers."""

from __future__ import annotations


class JobError(RuntimeError):
  """Base class for job lifecycle failures with an HTTP mapping."""

  status_code = 400
  default_message = "Job request failed."

  def __init__(self, message: str | None = None, *, job_id: str | None = None) -> None:
    super().__init__(message or self.default_message)
    self.message = message or self.default_message
    self.job_id = job_id


class UnauthenticatedError(JobError):
  status_code = 401
  default_message = "Please sign in to continue"


class NoProjectError(JobError):
  status_code = 400
  default_message = "No project selected"


class JobNotFoundError(JobError):
  status_code = 404
  default_message = "Job not found."


class JobAccessDeniedError(JobError):
  status_code = 403
  default_message = "Access denied."


class JobFinalizedError(JobError):
  status_code = 409
  default_message = "Job is already finalized and cannot be cancelled."


class ActiveJobExistsError(JobError):
  """Raised when a project already has a pending or running job."""

  status_code = 409
  default_message = "A generation is already in progress for this project."


class InvalidTransitionError(JobError):
  status_code = 409
  default_message = "Invalid job status transition."


class JobCancelledError(Exception):
  """Raised inside the pipeline when the job was cancelled by the user."""
