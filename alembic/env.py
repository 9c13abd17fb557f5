"""Alembic environment running migrations over the async engine."""

from __future__ import annotations

import asyncio
import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

import vibecoder.schema.jobs  # noqa: F401
from vibecoder.core.database import Base, _database_url

config = context.config
if config.config_file_name is not None:
  fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")
target_metadata = Base.metadata


def _require_url() -> str:
  url = _database_url()
  if not url:
    raise RuntimeError("VIBECODER_PG_DSN must be set to run migrations.")
  return url


def run_migrations_offline() -> None:
  """Emit SQL without a live connection."""
  context.configure(url=_require_url(), target_metadata=target_metadata, literal_binds=True, dialect_opts={"paramstyle": "named"})
  with context.begin_transaction():
    context.run_migrations()


def _run_migrations(connection: Connection) -> None:
  context.configure(connection=connection, target_metadata=target_metadata)
  with context.begin_transaction():
    context.run_migrations()


async def run_migrations_online() -> None:
  engine = create_async_engine(_require_url())
  try:
    async with engine.connect() as connection:
      await connection.run_sync(_run_migrations)
  finally:
    await engine.dispose()
  logger.info("Migrations applied.")


if context.is_offline_mode():
  run_migrations_offline()
else:
  asyncio.run(run_migrations_online())
