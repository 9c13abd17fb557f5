"""Create AI generation jobs table.

Revision ID: 9f3a6c1d2b7e
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from vibecoder.core.migration_guards import guarded_create_index, guarded_create_table, guarded_drop_index, guarded_drop_table

revision = "9f3a6c1d2b7e"
down_revision = None
branch_labels = None
depends_on = None

_UTC_NOW_ISO = """to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')"""


def upgrade() -> None:
  """Upgrade schema."""
  guarded_create_table(
    "ai_generation_jobs",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("project_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("prompt", sa.Text(), nullable=False),
    sa.Column("ai_prompt", sa.Text(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("code_result", sa.Text(), nullable=True),
    sa.Column("summary", sa.Text(), nullable=True),
    sa.Column("plan_result", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("model_id", sa.String(), server_default=sa.text("'vibecoder-pro'"), nullable=False),
    sa.Column("is_plan_mode", sa.Boolean(), server_default=sa.text("false"), nullable=False),
    sa.Column("progress_logs", postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
    sa.Column("started_at", sa.String(), nullable=True),
    sa.Column("completed_at", sa.String(), nullable=True),
    sa.Column("created_at", sa.String(), server_default=sa.text(_UTC_NOW_ISO), nullable=False),
    sa.Column("updated_at", sa.String(), server_default=sa.text(_UTC_NOW_ISO), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  guarded_create_index(op.f("ix_ai_generation_jobs_project_id"), "ai_generation_jobs", ["project_id"], unique=False)
  guarded_create_index(op.f("ix_ai_generation_jobs_user_id"), "ai_generation_jobs", ["user_id"], unique=False)
  guarded_create_index(op.f("ix_ai_generation_jobs_status"), "ai_generation_jobs", ["status"], unique=False)
  guarded_create_index("ix_ai_generation_jobs_project_created", "ai_generation_jobs", ["project_id", "created_at"], unique=False)
  # At most one pending or running job per project.
  guarded_create_index("ux_ai_generation_jobs_active_project", "ai_generation_jobs", ["project_id"], unique=True, postgresql_where=sa.text("status IN ('pending', 'running')"))


def downgrade() -> None:
  """Downgrade schema."""
  guarded_drop_index("ux_ai_generation_jobs_active_project", table_name="ai_generation_jobs")
  guarded_drop_index("ix_ai_generation_jobs_project_created", table_name="ai_generation_jobs")
  guarded_drop_index(op.f("ix_ai_generation_jobs_status"), table_name="ai_generation_jobs")
  guarded_drop_index(op.f("ix_ai_generation_jobs_user_id"), table_name="ai_generation_jobs")
  guarded_drop_index(op.f("ix_ai_generation_jobs_project_id"), table_name="ai_generation_jobs")
  guarded_drop_table("ai_generation_jobs")
