from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from vibecoder import __version__
from vibecoder.ai.errors import AgentError
from vibecoder.api.routes import agents, jobs, shadow, tools
from vibecoder.config import get_settings
from vibecoder.core.exceptions import (
  agent_exception_handler,
  credits_unavailable_exception_handler,
  global_exception_handler,
  http_exception_handler,
  insufficient_credits_exception_handler,
  job_exception_handler,
  policy_violation_exception_handler,
  request_validation_exception_handler,
)
from vibecoder.core.lifespan import lifespan
from vibecoder.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from vibecoder.guard.policy import PolicyViolationError
from vibecoder.jobs.errors import JobError
from vibecoder.services.credits import CreditsUnavailableError, InsufficientCreditsError

settings = get_settings()

app = FastAPI(title="VibeCoder", version=__version__, lifespan=lifespan, docs_url="/docs" if settings.debug else None, redoc_url=None, openapi_url="/openapi.json" if settings.debug else None)

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id", "retry-after"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(PolicyViolationError, policy_violation_exception_handler)
app.add_exception_handler(JobError, job_exception_handler)
app.add_exception_handler(AgentError, agent_exception_handler)
app.add_exception_handler(InsufficientCreditsError, insufficient_credits_exception_handler)
app.add_exception_handler(CreditsUnavailableError, credits_unavailable_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(jobs.router, prefix="/v1", tags=["jobs"])
app.include_router(tools.router, prefix="/v1", tags=["tools"])
app.include_router(agents.router, prefix="/v1", tags=["agents"])
app.include_router(shadow.router, prefix="/v1", tags=["shadow"])
