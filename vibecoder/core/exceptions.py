import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vibecoder.ai.errors import AgentError
from vibecoder.config import get_settings
from vibecoder.guard.policy import PolicyViolationError
from vibecoder.jobs.errors import ActiveJobExistsError, JobError
from vibecoder.services.credits import INSUFFICIENT_CREDITS, CreditsUnavailableError, InsufficientCreditsError

RETRY_AFTER_SECONDS = "30"


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    error_message = str(value)
    if error_message:
      return f"{type(value).__name__}: {error_message}"
    return type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None, **extra: Any) -> dict[str, Any]:
  """Build an error payload with the request id for log correlation."""
  payload: dict[str, Any] = {"detail": detail}
  payload.update({key: value for key, value in extra.items() if value is not None})
  if request_id:
    payload["requestId"] = request_id
  return payload


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  # Prompts and code are user content; keep them out of responses and logs.
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if "ctx" in scrubbed and isinstance(scrubbed["ctx"], dict):
      scrubbed_ctx = dict(scrubbed["ctx"])
      scrubbed_ctx.pop("input", None)
      scrubbed["ctx"] = scrubbed_ctx
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  logger = logging.getLogger("uvicorn.error")
  request_id = _request_id(request)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors without leaking payloads."""
  request_id = _request_id(request)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger = logging.getLogger("uvicorn.error")
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions without exposing 5xx diagnostics."""
  settings = get_settings()
  request_id = _request_id(request)
  if exc.status_code >= 500:
    logger = logging.getLogger("uvicorn.error")
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail, exc_info=True)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if settings.log_http_4xx:
    logger = logging.getLogger("uvicorn.error")
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)

  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=getattr(exc, "headers", None))


async def policy_violation_exception_handler(request: Request, exc: PolicyViolationError) -> JSONResponse:
  """Return the user-facing policy response with the matched rule."""
  request_id = _request_id(request)
  logging.getLogger("vibecoder.guard").info("Policy violation request_id=%s rule=%s", request_id, exc.rule.id)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(str(exc), request_id=request_id, ruleId=exc.rule.id, category=exc.rule.category))


async def job_exception_handler(request: Request, exc: JobError) -> JSONResponse:
  """Map job lifecycle errors to their HTTP status."""
  request_id = _request_id(request)
  # Conflicts carry the job the caller should resume instead.
  active_job_id = exc.job_id if isinstance(exc, ActiveJobExistsError) else None
  if get_settings().log_http_4xx:
    logging.getLogger("uvicorn.error").warning("Job error request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.message)
  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.message, request_id=request_id, activeJobId=active_job_id))


async def agent_exception_handler(request: Request, exc: AgentError) -> JSONResponse:
  """Return agent failures without provider diagnostics."""
  logger = logging.getLogger("uvicorn.error")
  request_id = _request_id(request)
  logger.warning("Agent failure request_id=%s path=%s error_type=%s detail=%s", request_id, request.url.path, type(exc).__name__, exc.message)
  headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.status_code == status.HTTP_429_TOO_MANY_REQUESTS else None
  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.message, request_id=request_id), headers=headers)


async def insufficient_credits_exception_handler(request: Request, exc: InsufficientCreditsError) -> JSONResponse:
  request_id = _request_id(request)
  return JSONResponse(status_code=status.HTTP_402_PAYMENT_REQUIRED, content=_error_payload(str(exc), request_id=request_id, code=INSUFFICIENT_CREDITS, needed=exc.needed, available=exc.available))


async def credits_unavailable_exception_handler(request: Request, exc: CreditsUnavailableError) -> JSONResponse:
  request_id = _request_id(request)
  logging.getLogger("uvicorn.error").error("Billing unavailable request_id=%s path=%s: %s", request_id, request.url.path, exc)
  return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=_error_payload("Billing service is unavailable. Please try again.", request_id=request_id))
