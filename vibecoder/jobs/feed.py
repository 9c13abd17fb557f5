"""In-process per-project change feed for generation jobs."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from vibecoder.jobs.models import GenerationJob

logger = logging.getLogger(__name__)

ChangeKind = Literal["insert", "update"]
MAX_QUEUED_CHANGES = 256


@dataclass(frozen=True)
class JobChange:
  """A committed insert or update carrying the full job row."""

  kind: ChangeKind
  job: GenerationJob


class JobSubscription:
  """Queue-backed subscription to one project's job changes."""

  def __init__(self, feed: JobFeed, project_id: str, *, maxsize: int = MAX_QUEUED_CHANGES) -> None:
    self._feed = feed
    self.project_id = project_id
    self._queue: asyncio.Queue[JobChange | None] = asyncio.Queue(maxsize=maxsize)
    self._closed = False

  @property
  def closed(self) -> bool:
    return self._closed

  def deliver(self, change: JobChange) -> bool:
    """Queue a change without blocking; return False when it was dropped."""
    if self._closed:
      return False
    try:
      self._queue.put_nowait(change)
    except asyncio.QueueFull:
      logger.warning("Dropping job change for slow subscriber project_id=%s job_id=%s", self.project_id, change.job.id)
      return False
    return True

  async def get(self) -> JobChange | None:
    """Wait for the next change; None once the subscription is closed."""
    if self._closed and self._queue.empty():
      return None
    return await self._queue.get()

  def close(self) -> None:
    if self._closed:
      return
    self._closed = True
    self._feed._unsubscribe(self)
    # Wake a consumer blocked on get().
    try:
      self._queue.put_nowait(None)
    except asyncio.QueueFull:
      pass

  def __aiter__(self) -> JobSubscription:
    return self

  async def __anext__(self) -> JobChange:
    change = await self.get()
    if change is None:
      raise StopAsyncIteration
    return change

  async def __aenter__(self) -> JobSubscription:
    return self

  async def __aexit__(self, *exc_info: object) -> None:
    self.close()


class JobFeed:
  """Fan out committed job changes to subscribers of the owning project."""

  def __init__(self) -> None:
    self._subscribers: dict[str, set[JobSubscription]] = defaultdict(set)

  def subscribe(self, project_id: str) -> JobSubscription:
    subscription = JobSubscription(self, project_id)
    self._subscribers[project_id].add(subscription)
    logger.debug("Job feed subscription opened project_id=%s", project_id)
    return subscription

  def publish(self, change: JobChange) -> int:
    """Deliver a change to every subscriber of its project and return the delivery count."""
    delivered = 0
    for subscription in list(self._subscribers.get(change.job.project_id, ())):
      if subscription.deliver(change):
        delivered += 1
    return delivered

  def subscriber_count(self, project_id: str) -> int:
    return len(self._subscribers.get(project_id, ()))

  def _unsubscribe(self, subscription: JobSubscription) -> None:
    subscribers = self._subscribers.get(subscription.project_id)
    if not subscribers:
      return
    subscribers.discard(subscription)
    if not subscribers:
      del self._subscribers[subscription.project_id]
    logger.debug("Job feed subscription closed project_id=%s", subscription.project_id)


@lru_cache(maxsize=1)
def get_job_feed() -> JobFeed:
  """Return the process-wide job feed."""
  return JobFeed()
