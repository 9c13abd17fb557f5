"""Shadow validation of generated code before it replaces the live preview.

Candidate code first goes through cheap structural checks. When those pass and
a build runner is configured, the code is built in isolation with a bounded
timeout. Only one build runs at a time; further tests wait their turn.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import time
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol

from vibecoder.config import Settings, get_settings
from vibecoder.utils.ids import generate_request_id

logger = logging.getLogger(__name__)

MIN_CODE_LENGTH = 20
CANCELLED_ERROR = "Test cancelled"
TIMEOUT_ERROR = "Shadow build timed out"
TRUNCATION_CHARS = frozenset("<{([,:=.+-*/")

_EXPORT_DEFAULT_RE = re.compile(r"export\s+default\s+")
_APP_COMPONENT_RE = re.compile(r"function\s+App\b|const\s+App\s*=")


@dataclass(frozen=True)
class SyntaxCheckResult:
  valid: bool
  error: str | None = None


@dataclass(frozen=True)
class ShadowTestResult:
  """Outcome of one shadow test; never persisted."""

  success: bool
  code: str
  error: str | None = None
  build_time_ms: int | None = None
  request_id: str | None = None


@dataclass(frozen=True)
class BuildOutcome:
  success: bool
  error: str | None = None


_VALID = SyntaxCheckResult(valid=True)


def _describe_imbalance(label: str, balance: int) -> str:
  detail = f"{balance} unclosed" if balance > 0 else f"{abs(balance)} extra closing"
  return f"Unbalanced {label}: {detail}"


def check_bracket_balance(code: str) -> SyntaxCheckResult:
  """Count braces, parentheses and brackets outside strings and comments."""
  braces = parens = brackets = 0
  in_single = in_double = in_template = False
  in_line_comment = in_block_comment = False
  escaped = False
  index = 0
  length = len(code)

  while index < length:
    char = code[index]
    nxt = code[index + 1] if index + 1 < length else ""

    if in_line_comment:
      if char == "\n":
        in_line_comment = False
      index += 1
      continue

    if in_block_comment:
      if char == "*" and nxt == "/":
        in_block_comment = False
        index += 1
      index += 1
      continue

    if in_single or in_double or in_template:
      if escaped:
        escaped = False
      elif char == "\\":
        escaped = True
      elif in_single and char == "'":
        in_single = False
      elif in_double and char == '"':
        in_double = False
      elif in_template and char == "`":
        in_template = False
      index += 1
      continue

    if char == "/" and nxt == "/":
      in_line_comment = True
      index += 2
      continue
    if char == "/" and nxt == "*":
      in_block_comment = True
      index += 2
      continue

    if char == "'":
      in_single = True
    elif char == '"':
      in_double = True
    elif char == "`":
      in_template = True
    elif char == "{":
      braces += 1
    elif char == "}":
      braces -= 1
    elif char == "(":
      parens += 1
    elif char == ")":
      parens -= 1
    elif char == "[":
      brackets += 1
    elif char == "]":
      brackets -= 1

    if braces < 0:
      return SyntaxCheckResult(False, "Extra closing brace }")
    if parens < 0:
      return SyntaxCheckResult(False, "Extra closing parenthesis )")
    if brackets < 0:
      return SyntaxCheckResult(False, "Extra closing bracket ]")
    index += 1

  if in_single or in_double or in_template:
    return SyntaxCheckResult(False, "Unterminated string literal")
  if braces:
    return SyntaxCheckResult(False, _describe_imbalance("braces", braces))
  if parens:
    return SyntaxCheckResult(False, _describe_imbalance("parentheses", parens))
  if brackets:
    return SyntaxCheckResult(False, _describe_imbalance("brackets", brackets))
  return _VALID


def quick_syntax_check(code: str | None, *, require_entry: bool = True) -> SyntaxCheckResult:
  """Structural pre-check; the first failing rule is reported.

  ``require_entry`` disables the default-export and App checks for supporting
  files such as data modules and components.
  """
  if not code or len(code.strip()) < MIN_CODE_LENGTH:
    return SyntaxCheckResult(False, "Code too short or empty")

  if require_entry:
    if not _EXPORT_DEFAULT_RE.search(code):
      return SyntaxCheckResult(False, "Missing export default")
    if not _APP_COMPONENT_RE.search(code):
      return SyntaxCheckResult(False, "Missing App component")

  balance = check_bracket_balance(code)
  if not balance.valid:
    return balance

  if code.count("`") % 2:
    return SyntaxCheckResult(False, "Unterminated template literal (backtick)")

  if "<" in code and ">" not in code:
    return SyntaxCheckResult(False, "Unterminated JSX tag")

  last_char = code.strip()[-1]
  if last_char in TRUNCATION_CHARS:
    return SyntaxCheckResult(False, f"Code ends with incomplete character: {last_char}")

  return _VALID


def validate_code_for_preview(code: str | None) -> SyntaxCheckResult:
  """Plain counting variant of the structural check, usable without a validator."""
  if not code or len(code.strip()) < MIN_CODE_LENGTH:
    return SyntaxCheckResult(False, "Code too short or empty")
  if not _EXPORT_DEFAULT_RE.search(code):
    return SyntaxCheckResult(False, "Missing export default")
  if not _APP_COMPONENT_RE.search(code):
    return SyntaxCheckResult(False, "Missing App component")
  if code.count("{") != code.count("}"):
    return SyntaxCheckResult(False, "Unbalanced braces")
  if code.count("(") != code.count(")"):
    return SyntaxCheckResult(False, "Unbalanced parentheses")
  if code.count("[") != code.count("]"):
    return SyntaxCheckResult(False, "Unbalanced brackets")
  return _VALID


class ShadowBuildRunner(Protocol):
  """Isolated build of a candidate artifact."""

  async def build(self, request_id: str, code: str) -> BuildOutcome:
    """Build the code and report success or the first error."""


class SubprocessBuildRunner:
  """Run a configured bundler command with the code on stdin."""

  def __init__(self, command: Sequence[str]) -> None:
    if not command:
      raise ValueError("Shadow build command must not be empty.")
    self._command = tuple(command)

  async def build(self, request_id: str, code: str) -> BuildOutcome:
    process = await asyncio.create_subprocess_exec(*self._command, stdin=asyncio.subprocess.PIPE, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE)
    try:
      stdout, stderr = await process.communicate(code.encode("utf-8"))
    except asyncio.CancelledError:
      # Timeouts and cancellations must not leave the bundler running.
      if process.returncode is None:
        process.kill()
        await process.wait()
      raise

    if process.returncode == 0:
      return BuildOutcome(success=True)

    output = (stderr or stdout).decode("utf-8", errors="replace").strip()
    first_line = next((line.strip() for line in output.splitlines() if line.strip()), "")
    logger.info("Shadow build failed request_id=%s returncode=%s", request_id, process.returncode)
    return BuildOutcome(success=False, error=first_line[:500] or f"Build exited with status {process.returncode}")


class CallbackBuildRunner:
  """Hand builds to an external sandbox and wait for it to report back.

  Each build is a pending future keyed by request id, so concurrent reports can
  never resolve the wrong caller.
  """

  def __init__(self) -> None:
    self._pending: dict[str, tuple[str, asyncio.Future[BuildOutcome]]] = {}

  async def build(self, request_id: str, code: str) -> BuildOutcome:
    future: asyncio.Future[BuildOutcome] = asyncio.get_running_loop().create_future()
    self._pending[request_id] = (code, future)
    try:
      return await future
    finally:
      self._pending.pop(request_id, None)

  def pending(self) -> dict[str, str]:
    """Return request id to code for builds still awaiting a report."""
    return {request_id: code for request_id, (code, future) in self._pending.items() if not future.done()}

  def report_success(self, request_id: str) -> bool:
    return self._resolve(request_id, BuildOutcome(success=True))

  def report_error(self, request_id: str, error: str) -> bool:
    return self._resolve(request_id, BuildOutcome(success=False, error=error))

  def _resolve(self, request_id: str, outcome: BuildOutcome) -> bool:
    entry = self._pending.get(request_id)
    if entry is None or entry[1].done():
      logger.info("Ignoring report for unknown shadow build request_id=%s", request_id)
      return False
    entry[1].set_result(outcome)
    return True


class ShadowValidator:
  """Validate candidate code in isolation before promotion."""

  def __init__(self, runner: ShadowBuildRunner | None = None, *, build_timeout_seconds: float = 10.0, timeout_accepts: bool = False) -> None:
    self._runner = runner
    self._build_timeout_seconds = build_timeout_seconds
    self._timeout_accepts = timeout_accepts
    self._lock = asyncio.Lock()
    self._epoch = 0
    self._in_flight = 0
    self._active: asyncio.Task[BuildOutcome] | None = None
    self._last_result: ShadowTestResult | None = None

  @property
  def runner(self) -> ShadowBuildRunner | None:
    return self._runner

  @property
  def is_testing(self) -> bool:
    return self._in_flight > 0

  @property
  def last_result(self) -> ShadowTestResult | None:
    return self._last_result

  async def test_code(self, code: str) -> ShadowTestResult:
    """Run the syntax fast path, then an isolated build when a runner is configured."""
    request_id = generate_request_id()
    started = time.monotonic()

    syntax = quick_syntax_check(code)
    if not syntax.valid:
      return self._finish(ShadowTestResult(success=False, code=code, error=syntax.error, build_time_ms=_elapsed_ms(started), request_id=request_id))
    if self._runner is None:
      return self._finish(ShadowTestResult(success=True, code=code, build_time_ms=_elapsed_ms(started), request_id=request_id))

    epoch = self._epoch
    self._in_flight += 1
    try:
      async with self._lock:
        # A cancel issued while this test was queued resolves it without building.
        if epoch != self._epoch:
          return self._finish(ShadowTestResult(success=False, code=code, error=CANCELLED_ERROR, build_time_ms=_elapsed_ms(started), request_id=request_id))
        outcome = await self._run_build(request_id, code)
    finally:
      self._in_flight -= 1

    return self._finish(ShadowTestResult(success=outcome.success, code=code, error=outcome.error, build_time_ms=_elapsed_ms(started), request_id=request_id))

  def cancel_test(self) -> None:
    """Resolve the running and queued tests as cancelled."""
    self._epoch += 1
    if self._active is not None and not self._active.done():
      self._active.cancel()
    logger.info("Shadow tests cancelled in_flight=%s", self._in_flight)

  async def _run_build(self, request_id: str, code: str) -> BuildOutcome:
    task = asyncio.create_task(self._runner.build(request_id, code))  # type: ignore[union-attr]
    self._active = task
    try:
      done, _ = await asyncio.wait({task}, timeout=self._build_timeout_seconds)
    except asyncio.CancelledError:
      task.cancel()
      raise
    finally:
      self._active = None

    if not done:
      task.cancel()
      with contextlib.suppress(asyncio.CancelledError):
        await task
      logger.warning("Shadow build timed out request_id=%s timeout=%ss accepted=%s", request_id, self._build_timeout_seconds, self._timeout_accepts)
      return BuildOutcome(success=True) if self._timeout_accepts else BuildOutcome(success=False, error=TIMEOUT_ERROR)

    if task.cancelled():
      return BuildOutcome(success=False, error=CANCELLED_ERROR)

    exc = task.exception()
    if exc is not None:
      logger.error("Shadow build runner failed request_id=%s", request_id, exc_info=exc)
      return BuildOutcome(success=False, error="Shadow build could not run")
    return task.result()

  def _finish(self, result: ShadowTestResult) -> ShadowTestResult:
    self._last_result = result
    if result.success:
      logger.debug("Shadow test passed request_id=%s build_time_ms=%s", result.request_id, result.build_time_ms)
    else:
      logger.info("Shadow test rejected request_id=%s error=%s", result.request_id, result.error)
    return result


def _elapsed_ms(started: float) -> int:
  return int((time.monotonic() - started) * 1000)


def build_shadow_validator(settings: Settings) -> ShadowValidator:
  """Build a validator with the runner selected by configuration."""
  runner: ShadowBuildRunner | None = None
  if settings.shadow_runner == "subprocess" and settings.shadow_build_command:
    runner = SubprocessBuildRunner(settings.shadow_build_command)
  elif settings.shadow_runner == "callback":
    runner = CallbackBuildRunner()
  return ShadowValidator(runner, build_timeout_seconds=settings.shadow_build_timeout_seconds, timeout_accepts=settings.shadow_timeout_accepts)


@lru_cache(maxsize=1)
def get_shadow_validator() -> ShadowValidator:
  """Return the process-wide validator so builds stay serialized across requests."""
  return build_shadow_validator(get_settings())
