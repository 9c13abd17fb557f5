"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from functools import lru_cache

from vibecoder.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_JOBS_BACKENDS = {"postgres", "memory"}
_SHADOW_RUNNERS = {"none", "subprocess", "callback"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the VibeCoder generation service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  jobs_backend: str
  jobs_auto_process: bool
  stale_job_timeout_seconds: int
  ai_gateway_url: str
  ai_gateway_api_key: str | None
  architect_model: str
  builder_model: str
  heal_model: str
  default_model_id: str
  shadow_runner: str
  shadow_build_command: tuple[str, ...] | None
  shadow_build_timeout_seconds: float
  shadow_timeout_accepts: bool
  credits_url: str | None
  credits_api_key: str | None
  architect_credits: int
  builder_credits: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("VIBECODER_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("VIBECODER_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("VIBECODER_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  return value or None


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _parse_command(raw: str | None) -> tuple[str, ...] | None:
  value = _optional_str(raw)
  if value is None:
    return None
  return tuple(shlex.split(value))


def _resolve_pg_dsn() -> str | None:
  # Fall back to the conventional DATABASE_URL used by hosting platforms.
  return _optional_str(os.getenv("VIBECODER_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("VIBECODER_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("VIBECODER_DEBUG"))

  log_max_bytes = _positive_int("VIBECODER_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("VIBECODER_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("VIBECODER_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("VIBECODER_LOG_HTTP_4XX"))

  jobs_backend = (os.getenv("VIBECODER_JOBS_BACKEND") or "postgres").strip().lower()
  if jobs_backend not in _JOBS_BACKENDS:
    raise ValueError(f"VIBECODER_JOBS_BACKEND must be one of: {', '.join(sorted(_JOBS_BACKENDS))}.")

  # Jobs are processed in-process unless an external worker owns execution.
  jobs_auto_process = _parse_bool(os.getenv("VIBECODER_JOBS_AUTO_PROCESS", "1"))
  stale_job_timeout_seconds = _positive_int("VIBECODER_STALE_JOB_TIMEOUT_SECONDS", "120")

  shadow_runner = (os.getenv("VIBECODER_SHADOW_RUNNER") or "none").strip().lower()
  if shadow_runner not in _SHADOW_RUNNERS:
    raise ValueError(f"VIBECODER_SHADOW_RUNNER must be one of: {', '.join(sorted(_SHADOW_RUNNERS))}.")

  shadow_build_command = _parse_command(os.getenv("VIBECODER_SHADOW_BUILD_COMMAND"))
  if shadow_runner == "subprocess" and shadow_build_command is None:
    raise ValueError("VIBECODER_SHADOW_BUILD_COMMAND must be set when VIBECODER_SHADOW_RUNNER=subprocess.")

  shadow_build_timeout_seconds = float(os.getenv("VIBECODER_SHADOW_BUILD_TIMEOUT_SECONDS", "10"))
  if shadow_build_timeout_seconds <= 0:
    raise ValueError("VIBECODER_SHADOW_BUILD_TIMEOUT_SECONDS must be positive.")

  # A build that never reports back is rejected unless explicitly opted in.
  shadow_timeout_accepts = _parse_bool(os.getenv("VIBECODER_SHADOW_TIMEOUT_ACCEPTS"))

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("VIBECODER_ALLOWED_ORIGINS")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=_resolve_pg_dsn(),
    pg_connect_timeout=int(os.getenv("VIBECODER_PG_CONNECT_TIMEOUT", "5")),
    jobs_backend=jobs_backend,
    jobs_auto_process=jobs_auto_process,
    stale_job_timeout_seconds=stale_job_timeout_seconds,
    ai_gateway_url=(os.getenv("VIBECODER_AI_GATEWAY_URL") or "https://ai.gateway.lovable.dev/v1").strip(),
    ai_gateway_api_key=_optional_str(os.getenv("VIBECODER_AI_GATEWAY_API_KEY")),
    architect_model=(os.getenv("VIBECODER_ARCHITECT_MODEL") or "google/gemini-3-pro-preview").strip(),
    builder_model=(os.getenv("VIBECODER_BUILDER_MODEL") or "google/gemini-3-flash-preview").strip(),
    heal_model=(os.getenv("VIBECODER_HEAL_MODEL") or "google/gemini-3-flash-preview").strip(),
    default_model_id=(os.getenv("VIBECODER_DEFAULT_MODEL_ID") or "vibecoder-pro").strip(),
    shadow_runner=shadow_runner,
    shadow_build_command=shadow_build_command,
    shadow_build_timeout_seconds=shadow_build_timeout_seconds,
    shadow_timeout_accepts=shadow_timeout_accepts,
    credits_url=_optional_str(os.getenv("VIBECODER_CREDITS_URL")),
    credits_api_key=_optional_str(os.getenv("VIBECODER_CREDITS_API_KEY")),
    architect_credits=_positive_int("VIBECODER_ARCHITECT_CREDITS", "5"),
    builder_credits=_positive_int("VIBECODER_BUILDER_CREDITS", "3"),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load the database subset without requiring the full service contract."""

  return DatabaseSettings(debug=_parse_bool(os.getenv("VIBECODER_DEBUG")), pg_dsn=_resolve_pg_dsn(), pg_connect_timeout=int(os.getenv("VIBECODER_PG_CONNECT_TIMEOUT", "5")))
