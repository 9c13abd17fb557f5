"""Compose the AI-facing prompt from a raw user request."""

from __future__ import annotations

from dataclasses import dataclass

from vibecoder.prompting.pruning import PromptIntent, analyze_prompt_intent, extract_relevant_context
from vibecoder.prompting.styles import inject_style_profile

RELEVANT_CODE_HEADING = "## Relevant existing code"


@dataclass(frozen=True)
class ShapedPrompt:
  ai_prompt: str
  intent: PromptIntent
  pruned: bool


def shape_ai_prompt(prompt: str, *, current_code: str | None = None, style_profile_id: str | None = None) -> ShapedPrompt:
  """Attach the existing code (pruned for targeted edits), then inject the style profile."""
  intent = analyze_prompt_intent(prompt)
  shaped = prompt
  pruned = False

  if current_code:
    # Global and unclear requests see the full artifact; only section edits are pruned.
    context = current_code
    if not intent.is_global_change:
      context = extract_relevant_context(current_code, intent.relevant_sections)
      pruned = context != current_code
    shaped = f"{prompt}\n\n{RELEVANT_CODE_HEADING}\n```tsx\n{context}\n```"

  return ShapedPrompt(ai_prompt=inject_style_profile(shaped, style_profile_id), intent=intent, pruned=pruned)
