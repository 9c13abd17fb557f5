import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from vibecoder.api.deps import get_job_feed_dep, get_job_service_dep
from vibecoder.api.models import CreateJobRequest, JobListResponse, JobResponse
from vibecoder.config import Settings, get_settings
from vibecoder.core.security import get_current_user_id
from vibecoder.jobs.feed import JobFeed
from vibecoder.jobs.models import GenerationJob
from vibecoder.jobs.orchestrator import JobOrchestrator, NoticeLevel
from vibecoder.prompting.shaping import shape_ai_prompt
from vibecoder.services.jobs import JobService, trigger_job_processing

router = APIRouter()
logger = logging.getLogger("vibecoder.api.routes.jobs")

KEEPALIVE_SECONDS = 15.0


def format_sse(event: str, payload: dict[str, Any]) -> str:
  """Encode one server-sent event frame."""
  return f"event: {event}\ndata: {json.dumps(payload, separators=(',', ':'))}\n\n"


@router.post("/projects/{project_id}/jobs", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(  # noqa: B008
  project_id: str,
  payload: CreateJobRequest,
  background_tasks: BackgroundTasks,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  service: JobService = Depends(get_job_service_dep),  # noqa: B008
) -> JobResponse:
  """Start a storefront generation; execution continues in the background."""
  ai_prompt = payload.ai_prompt
  if ai_prompt is None and (payload.current_code or payload.style_profile_id):
    ai_prompt = shape_ai_prompt(payload.prompt, current_code=payload.current_code, style_profile_id=payload.style_profile_id).ai_prompt

  record = await service.create_job(project_id=project_id, user_id=user_id, prompt=payload.prompt, ai_prompt=ai_prompt, model_id=payload.model_id, is_plan_mode=payload.is_plan_mode)
  trigger_job_processing(background_tasks, record.id, settings, service)
  return JobResponse.from_record(record)


@router.get("/projects/{project_id}/jobs", response_model=JobListResponse)
async def list_project_jobs(  # noqa: B008
  project_id: str,
  limit: int = Query(default=20, ge=1, le=100),
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  service: JobService = Depends(get_job_service_dep),  # noqa: B008
) -> JobListResponse:
  """Recent jobs of the project that belong to the caller, newest first."""
  records = await service.list_project_jobs(project_id, user_id=user_id, limit=limit)
  return JobListResponse(jobs=[JobResponse.from_record(record) for record in records])


@router.get("/projects/{project_id}/jobs/active", response_model=JobResponse)
async def get_active_job(  # noqa: B008
  project_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  service: JobService = Depends(get_job_service_dep),  # noqa: B008
) -> JobResponse:
  """Resume query used after a reload; stale jobs are failed before answering."""
  record = await service.get_active_job(project_id, user_id=user_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active generation for this project.")
  return JobResponse.from_record(record)


@router.get("/projects/{project_id}/jobs/events")
async def stream_job_events(  # noqa: B008
  project_id: str,
  request: Request,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  service: JobService = Depends(get_job_service_dep),  # noqa: B008
  feed: JobFeed = Depends(get_job_feed_dep),  # noqa: B008
) -> StreamingResponse:
  """Server-sent events for the caller's jobs in this project."""
  queue: asyncio.Queue[tuple[str, dict[str, Any]]] = asyncio.Queue()

  def _push(event: str) -> Callable[[GenerationJob], None]:
    def _callback(record: GenerationJob) -> None:
      if record.user_id == user_id:
        queue.put_nowait((event, JobResponse.from_record(record).model_dump(mode="json")))

    return _callback

  def _notice(level: NoticeLevel, message: str) -> None:
    queue.put_nowait(("notice", {"level": level, "message": message}))

  orchestrator = JobOrchestrator(service, feed, project_id=project_id, user_id=user_id, on_update=_push("job"), on_complete=_push("completed"), on_error=_push("failed"), on_notice=_notice, stale_check_interval_seconds=float(service.stale_timeout_seconds))

  async def _events() -> AsyncIterator[str]:
    async with orchestrator:
      while not await request.is_disconnected():
        try:
          event, payload = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
        except TimeoutError:
          yield ": keep-alive\n\n"
          continue
        yield format_sse(event, payload)
    logger.debug("Event stream closed project_id=%s user_id=%s", project_id, user_id)

  return StreamingResponse(_events(), media_type="text/event-stream", headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"})


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(  # noqa: B008
  job_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  service: JobService = Depends(get_job_service_dep),  # noqa: B008
) -> JobResponse:
  """Fetch a job with its progress logs and result."""
  record = await service.get_job(job_id, user_id=user_id)
  return JobResponse.from_record(record)


@router.post("/jobs/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(  # noqa: B008
  job_id: str,
  user_id: str = Depends(get_current_user_id),  # noqa: B008
  service: JobService = Depends(get_job_service_dep),  # noqa: B008
) -> JobResponse:
  """Cancel a pending or running job; terminal jobs answer 409."""
  record = await service.cancel_job(job_id, user_id=user_id)
  return JobResponse.from_record(record)
