"""Lenient JSON parsing for model plans."""

from __future__ import annotations

import json
import re
from typing import Any

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r'([{,]\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*:)')
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


def strip_code_fences(raw: str) -> str:
  """Remove a single leading and trailing markdown fence."""
  return _FENCE_RE.sub("", raw.strip()).strip()


def parse_json_with_fallback(raw: str) -> Any:
  """Parse JSON, recovering from surrounding prose, trailing commas and bare keys."""
  last_error: json.JSONDecodeError | None = None

  # Prefer strict parsing so valid payloads are never mutated.
  try:
    return json.loads(raw)
  except json.JSONDecodeError as exc:
    last_error = exc

  candidate = extract_json_block(raw)
  if candidate is None:
    raise last_error

  for repair in (_identity, _strip_trailing_commas, _quote_bare_keys):
    candidate = repair(candidate)
    try:
      return json.loads(candidate)
    except json.JSONDecodeError as exc:
      last_error = exc

  raise last_error


def _identity(raw: str) -> str:
  return raw


def _strip_trailing_commas(raw: str) -> str:
  return _TRAILING_COMMA_RE.sub(r"\1", raw)


def _quote_bare_keys(raw: str) -> str:
  # Only identifiers directly after an opening brace or comma are treated as keys.
  return _BARE_KEY_RE.sub(r'\1"\2"\3', raw)


def extract_json_block(raw: str) -> str | None:
  """Return the first balanced JSON object or array in the text."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char in "{[":
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None
