import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from vibecoder.config import get_settings
from vibecoder.core.database import create_schema
from vibecoder.core.firebase import initialize_firebase
from vibecoder.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging, auth and storage before serving requests."""
  settings = get_settings()
  logger = logging.getLogger("vibecoder.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified. environment=%s jobs_backend=%s shadow_runner=%s", settings.environment, settings.jobs_backend, settings.shadow_runner)
  except RuntimeError:
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  initialize_firebase()

  if settings.jobs_backend == "postgres":
    try:
      await create_schema()
      logger.info("Generation jobs schema ensured.")
    except Exception as exc:  # noqa: BLE001
      logger.warning("Failed to ensure generation jobs schema at startup: %s", exc)

  if not settings.ai_gateway_api_key:
    logger.warning("AI gateway API key not set; generation requests will fail until it is configured.")

  yield
