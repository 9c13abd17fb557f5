"""Builder agent: generates the source of one planned file."""

from __future__ import annotations

import logging
import re

from vibecoder.ai.agents.base import BaseAgent
from vibecoder.ai.agents.prompts import BEGIN_CODE_MARKER, BUILDER_SYSTEM_PROMPT, render_builder_prompt
from vibecoder.ai.errors import AgentOutputError
from vibecoder.ai.pipeline.contracts import AgentContext, BuilderRequest, BuilderResult

logger = logging.getLogger(__name__)

TYPE_CODE_MARKER = "/// TYPE: CODE ///"
COMPLETE_SENTINEL = "// --- VIBECODER_COMPLETE ---"
MIN_CODE_LENGTH = 50

_LOG_TAG_RE = re.compile(r"\[LOG:\s*([^\]]+)\]")
_OPEN_FENCE_RE = re.compile(r"^```(?:tsx?|jsx?|javascript|typescript)?\s*\n?", re.IGNORECASE)
_CLOSE_FENCE_RE = re.compile(r"\n?```\s*$")
_SENTINEL_RE = re.compile(re.escape(COMPLETE_SENTINEL) + r"\s*")


def extract_code_from_response(content: str) -> str:
  """Return the code after the code marker with log tags, fences and the sentinel removed."""
  begin_index = content.find(BEGIN_CODE_MARKER)
  type_index = content.find(TYPE_CODE_MARKER)
  if begin_index >= 0:
    code = content[begin_index + len(BEGIN_CODE_MARKER) :]
  elif type_index >= 0:
    code = content[type_index + len(TYPE_CODE_MARKER) :]
  else:
    code = content

  code = _LOG_TAG_RE.sub("", code)
  code = _SENTINEL_RE.sub("", code).strip()
  code = _OPEN_FENCE_RE.sub("", code)
  return _CLOSE_FENCE_RE.sub("", code).strip()


def extract_summary_from_response(content: str) -> str | None:
  """Return the markdown summary written before the code marker, if any."""
  begin_index = content.find(BEGIN_CODE_MARKER)
  if begin_index < 0:
    return None
  start = content.find(TYPE_CODE_MARKER)
  start = start + len(TYPE_CODE_MARKER) if 0 <= start < begin_index else 0
  summary = _LOG_TAG_RE.sub("", content[start:begin_index]).strip()
  return summary or None


def extract_log_tags(content: str) -> list[str]:
  return [match.strip() for match in _LOG_TAG_RE.findall(content)]


class BuilderAgent(BaseAgent[BuilderRequest, BuilderResult]):
  """Turn one planned file into source code."""

  name = "Builder"
  temperature = 0.7
  max_tokens = 8000

  async def run(self, input_data: BuilderRequest, ctx: AgentContext) -> BuilderResult:
    """Stream the file from the model and extract its code."""
    prompt = render_builder_prompt(input_data)
    chunks: list[str] = []
    async for chunk in self._model.stream(prompt, system=BUILDER_SYSTEM_PROMPT, temperature=self.temperature, max_tokens=self.max_tokens):
      chunks.append(chunk)
    content = "".join(chunks)

    code = extract_code_from_response(content)
    if len(code) < MIN_CODE_LENGTH:
      logger.warning("Builder produced no usable code path=%s chars=%s job_id=%s", input_data.file.path, len(code), ctx.job_id)
      raise AgentOutputError("Builder generated empty or invalid code")

    logger.info("Builder generated path=%s chars=%s job_id=%s", input_data.file.path, len(code), ctx.job_id)
    return BuilderResult(path=input_data.file.path, code=code, summary=extract_summary_from_response(content), logs=extract_log_tags(content))
