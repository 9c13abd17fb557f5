from __future__ import annotations

from sqlalchemy import Boolean, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from vibecoder.core.database import Base

ACTIVE_PROJECT_INDEX = "ux_ai_generation_jobs_active_project"


class GenerationJobRow(Base):
  __tablename__ = "ai_generation_jobs"
  __table_args__ = (
    # At most one pending/running job per project, enforced by storage.
    Index(ACTIVE_PROJECT_INDEX, "project_id", unique=True, postgresql_where=text("status IN ('pending', 'running')")),
    Index("ix_ai_generation_jobs_project_created", "project_id", "created_at"),
  )

  id: Mapped[str] = mapped_column(String, primary_key=True)
  project_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  prompt: Mapped[str] = mapped_column(Text, nullable=False)
  ai_prompt: Mapped[str] = mapped_column(Text, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, index=True)
  code_result: Mapped[str | None] = mapped_column(Text, nullable=True)
  summary: Mapped[str | None] = mapped_column(Text, nullable=True)
  plan_result: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  model_id: Mapped[str] = mapped_column(String, nullable=False, server_default=text("'vibecoder-pro'"))
  is_plan_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"))
  progress_logs: Mapped[list] = mapped_column(JSONB, nullable=False, server_default=text("'[]'::jsonb"))
  started_at: Mapped[str | None] = mapped_column(String, nullable=True)
  completed_at: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""))
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""))
