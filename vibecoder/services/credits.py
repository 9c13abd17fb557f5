"""Credit deduction and compensation for paid generation stages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from vibecoder.config import Settings

logger = logging.getLogger(__name__)

INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"


class InsufficientCreditsError(RuntimeError):
  """The user cannot pay for the next stage; never refunded."""

  def __init__(self, needed: int, available: int | None = None) -> None:
    super().__init__("Insufficient credits for this generation.")
    self.needed = needed
    self.available = available


class CreditsUnavailableError(RuntimeError):
  """The billing service could not be reached or rejected the call."""


class CreditsClient(Protocol):
  """External billing collaborator."""

  async def deduct(self, user_id: str, amount: int, *, action: str, job_id: str | None = None) -> None:
    """Deduct credits; raise InsufficientCreditsError when the balance is too low."""

  async def refund(self, user_id: str, amount: int, *, reason: str, job_id: str | None = None) -> None:
    """Return previously deducted credits."""


class LoggingCreditsClient:
  """No-op billing used when no billing service is configured."""

  async def deduct(self, user_id: str, amount: int, *, action: str, job_id: str | None = None) -> None:
    logger.info("Credits deduct skipped (billing not configured) user_id=%s amount=%s action=%s job_id=%s", user_id, amount, action, job_id)

  async def refund(self, user_id: str, amount: int, *, reason: str, job_id: str | None = None) -> None:
    logger.info("Credits refund skipped (billing not configured) user_id=%s amount=%s reason=%s job_id=%s", user_id, amount, reason, job_id)


class HttpCreditsClient:
  """Billing service client over HTTP."""

  def __init__(self, base_url: str, api_key: str | None = None, *, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._base_url = base_url.rstrip("/")
    self._api_key = api_key
    self._timeout = timeout
    self._transport = transport

  def _build_client(self) -> httpx.AsyncClient:
    # Never route billing calls through environment proxies.
    return httpx.AsyncClient(base_url=self._base_url, transport=self._transport, timeout=self._timeout, trust_env=False)

  def _headers(self) -> dict[str, str]:
    if not self._api_key:
      return {}
    return {"authorization": f"Bearer {self._api_key}"}

  async def deduct(self, user_id: str, amount: int, *, action: str, job_id: str | None = None) -> None:
    payload = {"userId": user_id, "amount": amount, "action": action, "jobId": job_id}
    try:
      async with self._build_client() as client:
        response = await client.post("/deduct", json=payload, headers=self._headers())
    except httpx.RequestError as exc:
      logger.error("Credits deduct request failed user_id=%s: %s", user_id, exc)
      raise CreditsUnavailableError("Billing service unreachable.") from exc

    if response.status_code == 402:
      body = response.json() if response.content else {}
      raise InsufficientCreditsError(amount, body.get("available") if isinstance(body, dict) else None)
    if response.is_error:
      logger.error("Credits deduct returned %s user_id=%s: %s", response.status_code, user_id, response.text)
      raise CreditsUnavailableError(f"Billing service returned {response.status_code}.")

  async def refund(self, user_id: str, amount: int, *, reason: str, job_id: str | None = None) -> None:
    payload = {"userId": user_id, "amount": amount, "reason": reason, "jobId": job_id}
    try:
      async with self._build_client() as client:
        response = await client.post("/refund", json=payload, headers=self._headers())
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
      logger.error("Credits refund returned %s user_id=%s: %s", exc.response.status_code, user_id, exc.response.text)
      raise CreditsUnavailableError(f"Billing service returned {exc.response.status_code}.") from exc
    except httpx.RequestError as exc:
      logger.error("Credits refund request failed user_id=%s: %s", user_id, exc)
      raise CreditsUnavailableError("Billing service unreachable.") from exc


def build_credits_client(settings: Settings) -> CreditsClient:
  """Return the HTTP billing client, or the logging no-op when billing is not configured."""
  if settings.credits_url:
    return HttpCreditsClient(settings.credits_url, settings.credits_api_key)
  return LoggingCreditsClient()


@dataclass
class CreditLedger:
  """Track credits deducted for one job so failures can be compensated exactly."""

  client: CreditsClient
  user_id: str
  job_id: str
  charged: int = 0
  entries: list[tuple[str, int]] = field(default_factory=list)

  async def charge(self, action: str, amount: int) -> None:
    """Deduct before a paid stage; recorded only once the deduction succeeded."""
    await self.client.deduct(self.user_id, amount, action=action, job_id=self.job_id)
    self.charged += amount
    self.entries.append((action, amount))

  async def refund_all(self, reason: str) -> int:
    """Refund everything charged so far; billing failures are logged, not raised."""
    amount = self.charged
    if amount <= 0:
      return 0
    try:
      await self.client.refund(self.user_id, amount, reason=reason, job_id=self.job_id)
    except Exception:  # noqa: BLE001
      logger.exception("Credits refund failed job_id=%s amount=%s", self.job_id, amount)
      return 0
    self.charged = 0
    logger.info("Refunded credits job_id=%s amount=%s reason=%s", self.job_id, amount, reason)
    return amount
