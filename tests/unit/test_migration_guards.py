from unittest.mock import MagicMock, patch

from vibecoder.core.migration_guards import guarded_create_index, guarded_create_table, guarded_drop_table


def _op(*, exists: bool) -> MagicMock:
  op = MagicMock()
  op.get_bind.return_value.execute.return_value.first.return_value = (1,) if exists else None
  return op


def test_create_table_skips_existing_table() -> None:
  with patch("vibecoder.core.migration_guards.op", _op(exists=True)) as op:
    guarded_create_table("ai_generation_jobs")
  op.create_table.assert_not_called()


def test_create_table_when_missing() -> None:
  with patch("vibecoder.core.migration_guards.op", _op(exists=False)) as op:
    guarded_create_table("ai_generation_jobs")
    guarded_drop_table("ai_generation_jobs")
  op.create_table.assert_called_once_with("ai_generation_jobs")
  op.drop_table.assert_not_called()


def test_create_index_requires_table() -> None:
  with patch("vibecoder.core.migration_guards.op", _op(exists=False)) as op:
    guarded_create_index("ix_ai_generation_jobs_status", "ai_generation_jobs", ["status"])
  op.create_index.assert_not_called()
