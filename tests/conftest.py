"""Shared fixtures for the VibeCoder test suite."""

from __future__ import annotations

import os

# Settings are read once per process; configure before any app import.
os.environ.setdefault("VIBECODER_ALLOWED_ORIGINS", "http://localhost:3000")
os.environ["VIBECODER_JOBS_BACKEND"] = "memory"
os.environ["VIBECODER_JOBS_AUTO_PROCESS"] = "0"
os.environ["VIBECODER_SHADOW_RUNNER"] = "none"

import pytest  # noqa: E402

from vibecoder.jobs.feed import JobFeed  # noqa: E402
from vibecoder.services.jobs import JobService  # noqa: E402
from vibecoder.storage.memory_jobs_repo import InMemoryJobsRepository  # noqa: E402

from tests.fakes import FakeModel  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def repo() -> InMemoryJobsRepository:
  return InMemoryJobsRepository()


@pytest.fixture
def feed() -> JobFeed:
  return JobFeed()


@pytest.fixture
def service(repo: InMemoryJobsRepository, feed: JobFeed) -> JobService:
  return JobService(repo, feed, stale_timeout_seconds=120)


@pytest.fixture
def fake_model() -> FakeModel:
  return FakeModel()
