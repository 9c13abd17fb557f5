"""Shared data contracts for the generation pipeline."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

HealErrorType = Literal["undefined_access", "missing_import", "hook_violation", "missing_key", "syntax_error"]


class _Contract(BaseModel):
  # Model output arrives in camelCase; Python callers use field names.
  model_config = ConfigDict(alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True)


class ColorPalette(_Contract):
  """Palette suggested by the architect."""

  primary: str | None = None
  secondary: str | None = None
  accent: str | None = None
  background: str | None = None
  text: str | None = None


class Typography(_Contract):
  heading_font: str | None = None
  body_font: str | None = None
  heading_weight: str | None = None
  size_scale: str | None = None


class VibeAnalysis(_Contract):
  """Palette, typography and mood analysis for the requested store."""

  visual_style: str | None = None
  color_palette: ColorPalette = Field(default_factory=ColorPalette)
  typography: Typography = Field(default_factory=Typography)
  mood_keywords: list[str] = Field(default_factory=list)


class PlanFile(_Contract):
  """One file the builder must produce."""

  path: str = Field(min_length=1)
  description: str = ""
  line_estimate: int = 100
  priority: int = 1


class BuildPlan(_Contract):
  """Modular file manifest produced by the architect."""

  vibe_analysis: VibeAnalysis = Field(default_factory=VibeAnalysis)
  unique_design_feature: dict[str, Any] | None = None
  files: list[PlanFile] = Field(min_length=1)
  execution_order: list[str] = Field(default_factory=list)
  complexity_score: int = 5
  is_fallback: bool = False

  @field_validator("complexity_score", mode="before")
  @classmethod
  def _clamp_complexity(cls, value: Any) -> int:
    try:
      score = int(value)
    except (TypeError, ValueError):
      return 5
    return max(1, min(10, score))

  def file_for(self, path: str) -> PlanFile | None:
    return next((item for item in self.files if item.path == path), None)


class ArchitectRequest(_Contract):
  """Inputs for a planning call."""

  prompt: str = Field(min_length=1)
  current_code_summary: str | None = None
  products_data: str | None = None
  style_profile: str | None = None


class BuilderRequest(_Contract):
  """Inputs for generating one planned file."""

  prompt: str = Field(min_length=1)
  plan: BuildPlan
  file: PlanFile
  current_code: str | None = None
  pruned_context: str | None = None
  style_profile: str | None = None


class BuilderResult(BaseModel):
  path: str
  code: str
  summary: str | None = None
  logs: list[str] = Field(default_factory=list)


class HealRequest(_Contract):
  """A live-preview crash and the file that produced it."""

  runtime_error: str = Field(min_length=1)
  failed_code: str = Field(min_length=1)
  style_profile: str | None = None
  project_id: str | None = None


class HealResult(BaseModel):
  diagnosis: str
  code: str
  error_type: HealErrorType


class AgentContext(BaseModel):
  """Identifiers attached to agent calls for logging."""

  job_id: str | None = None
  project_id: str | None = None
  user_id: str | None = None
