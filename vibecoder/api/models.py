from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr

from vibecoder.ai.pipeline.contracts import BuildPlan, HealErrorType
from vibecoder.jobs.models import GenerationJob, JobStatus

MAX_PROMPT_CHARS = 8000
MAX_CODE_CHARS = 400_000


class CreateJobRequest(BaseModel):
  """Request payload for starting a storefront generation."""

  prompt: StrictStr = Field(min_length=1, max_length=MAX_PROMPT_CHARS, description="The user's request as typed.", examples=["Make my store dark and moody"])
  ai_prompt: StrictStr | None = Field(default=None, min_length=1, description="Pre-shaped prompt; built from the other fields when omitted.")
  current_code: StrictStr | None = Field(default=None, max_length=MAX_CODE_CHARS, description="Current storefront code used for context pruning.")
  style_profile_id: StrictStr | None = Field(default=None, description="Style profile to inject into the AI prompt.", examples=["luxury-minimal"])
  model_id: StrictStr | None = Field(default=None, min_length=1)
  is_plan_mode: StrictBool = False
  model_config = ConfigDict(extra="forbid")


class JobResponse(BaseModel):
  """Public view of a generation job."""

  id: StrictStr
  project_id: StrictStr
  user_id: StrictStr
  prompt: StrictStr
  ai_prompt: StrictStr
  status: JobStatus
  code_result: StrictStr | None = None
  summary: StrictStr | None = None
  plan_result: dict[str, Any] | None = None
  error_message: StrictStr | None = None
  model_id: StrictStr
  is_plan_mode: bool
  progress_logs: list[str] = Field(default_factory=list)
  started_at: StrictStr | None = None
  completed_at: StrictStr | None = None
  created_at: StrictStr
  updated_at: StrictStr

  @classmethod
  def from_record(cls, record: GenerationJob) -> JobResponse:
    return cls(
      id=record.id,
      project_id=record.project_id,
      user_id=record.user_id,
      prompt=record.prompt,
      ai_prompt=record.ai_prompt,
      status=record.status,
      code_result=record.code_result,
      summary=record.summary,
      plan_result=record.plan_result,
      error_message=record.error_message,
      model_id=record.model_id,
      is_plan_mode=record.is_plan_mode,
      progress_logs=list(record.progress_logs),
      started_at=record.started_at,
      completed_at=record.completed_at,
      created_at=record.created_at,
      updated_at=record.updated_at,
    )


class JobListResponse(BaseModel):
  jobs: list[JobResponse]


class PolicyCheckRequest(BaseModel):
  prompt: StrictStr = Field(max_length=MAX_PROMPT_CHARS)
  model_config = ConfigDict(extra="forbid")


class PolicyCheckResponse(BaseModel):
  """Result of a policy pre-check; message is the exact user-facing response."""

  allowed: bool
  rule_id: StrictStr | None = None
  category: StrictStr | None = None
  message: StrictStr | None = None


class StyleProfileResponse(BaseModel):
  id: StrictStr
  name: StrictStr
  description: StrictStr
  color_palette: dict[str, str]
  typography: dict[str, str]


class ShapePromptRequest(BaseModel):
  """Preview how a request would be shaped before generation."""

  prompt: StrictStr = Field(min_length=1, max_length=MAX_PROMPT_CHARS)
  current_code: StrictStr | None = Field(default=None, max_length=MAX_CODE_CHARS)
  style_profile_id: StrictStr | None = None
  model_config = ConfigDict(extra="forbid")


class ShapePromptResponse(BaseModel):
  ai_prompt: StrictStr
  is_global_change: bool
  relevant_sections: list[str]
  confidence: float
  pruned: bool


class ProductInput(BaseModel):
  id: StrictStr
  name: StrictStr
  price: StrictStr | float | int
  tags: list[StrictStr] = Field(default_factory=list)


class ArchitectPlanRequest(BaseModel):
  """Request a build plan without starting a job."""

  prompt: StrictStr = Field(min_length=1, max_length=MAX_PROMPT_CHARS)
  current_code: StrictStr | None = Field(default=None, max_length=MAX_CODE_CHARS)
  products: list[ProductInput] = Field(default_factory=list)
  style_profile_id: StrictStr | None = None
  project_id: StrictStr | None = None
  model_config = ConfigDict(extra="forbid")


class ArchitectPlanResponse(BaseModel):
  plan: BuildPlan
  is_fallback: bool


class HealRequestBody(BaseModel):
  """A crashed live preview and the code that produced it."""

  runtime_error: StrictStr = Field(min_length=1, max_length=MAX_PROMPT_CHARS)
  failed_code: StrictStr = Field(min_length=1, max_length=MAX_CODE_CHARS)
  style_profile_id: StrictStr | None = None
  project_id: StrictStr | None = None
  model_config = ConfigDict(extra="forbid")


class HealResponse(BaseModel):
  diagnosis: StrictStr
  code: StrictStr
  error_type: HealErrorType


class ShadowTestRequest(BaseModel):
  code: StrictStr = Field(max_length=MAX_CODE_CHARS)
  model_config = ConfigDict(extra="forbid")


class ShadowTestResponse(BaseModel):
  success: bool
  code: StrictStr
  error: StrictStr | None = None
  build_time_ms: int | None = None
  request_id: StrictStr | None = None


class PendingShadowBuild(BaseModel):
  request_id: StrictStr
  code: StrictStr


class PendingShadowBuildsResponse(BaseModel):
  builds: list[PendingShadowBuild]


class ShadowBuildReport(BaseModel):
  """Sandbox callback for one pending build."""

  success: StrictBool
  error: StrictStr | None = None
  model_config = ConfigDict(extra="forbid")


class ShadowBuildReportResponse(BaseModel):
  accepted: bool
