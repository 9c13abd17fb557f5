"""Context pruning for follow-up generation prompts.

Pruning is a line- and brace-counting heuristic, not a parser: it keeps the
import block, the sections a request mentions, and the component export so the
downstream prompt stays small while remaining recognizable.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

SECTION_KEYWORDS: dict[str, tuple[str, ...]] = {
  "hero": ("hero", "banner", "header", "headline", "title", "above the fold", "landing"),
  "products": ("product", "grid", "card", "listing", "shop", "store", "item"),
  "footer": ("footer", "bottom", "contact", "social", "link", "copyright"),
  "navigation": ("nav", "navigation", "menu", "tab", "navbar"),
  "about": ("about", "bio", "story", "who", "creator", "artist"),
  "testimonials": ("testimonial", "review", "feedback", "quote"),
  "pricing": ("pricing", "price", "plan", "subscription", "tier"),
  "gallery": ("gallery", "portfolio", "showcase", "work", "project"),
  "cta": ("cta", "call to action", "button", "buy", "purchase", "checkout"),
}

GLOBAL_KEYWORDS: tuple[str, ...] = (
  "entire", "whole", "all", "everything", "complete", "full",
  "rebuild", "redesign", "redo", "from scratch", "new",
  "theme", "color scheme", "style", "vibe", "aesthetic",
)

ELISION_MARKER = "// ... other sections ..."
MIN_PRUNED_LINES = 20
MIN_SECTION_LINES = 3
MAX_CONTEXT_PRODUCTS = 10

_EXPORT_RE = re.compile(r"export default function \w+\(\)")
_COLOR_CLASS_RE = re.compile(r"(?:bg|text|border)-(?:zinc|violet|blue|red|green|pink|cyan|amber|orange|purple)-\d{2,3}")


@dataclass(frozen=True)
class PromptIntent:
  """Classification of what part of the storefront a request touches."""

  is_global_change: bool
  relevant_sections: list[str] = field(default_factory=list)
  confidence: float = 0.5


@dataclass(frozen=True)
class ProductSummary:
  """Condensed product listing used as architect context."""

  id: str
  name: str
  price: str
  tags: tuple[str, ...] = ()


def _phrase_pattern(phrase: str) -> re.Pattern[str]:
  # Word-bounded with an optional plural so "links" matches "link" but "small" never matches "all".
  body = r"\s+".join(re.escape(word) for word in phrase.split())
  return re.compile(rf"\b{body}(?:s|es)?\b")


_GLOBAL_PATTERNS = tuple(_phrase_pattern(keyword) for keyword in GLOBAL_KEYWORDS)
_SECTION_PATTERNS = {section: tuple(_phrase_pattern(keyword) for keyword in keywords) for section, keywords in SECTION_KEYWORDS.items()}


def _matches_any(text: str, patterns: Iterable[re.Pattern[str]]) -> bool:
  return any(pattern.search(text) for pattern in patterns)


def analyze_prompt_intent(prompt: str) -> PromptIntent:
  """Decide whether a request is global or targets specific sections."""
  lower_prompt = (prompt or "").lower()

  # Global indicators always win; global requests see the full artifact.
  if _matches_any(lower_prompt, _GLOBAL_PATTERNS):
    return PromptIntent(is_global_change=True, relevant_sections=[], confidence=0.9)

  relevant_sections = [section for section, patterns in _SECTION_PATTERNS.items() if _matches_any(lower_prompt, patterns)]

  # Unclear intent falls back to full context.
  if not relevant_sections:
    return PromptIntent(is_global_change=True, relevant_sections=[], confidence=0.5)

  confidence = min(0.95, 0.6 + 0.1 * len(relevant_sections))
  return PromptIntent(is_global_change=False, relevant_sections=relevant_sections, confidence=round(confidence, 2))


def _opens_section(lower_line: str, sections: Sequence[str]) -> bool:
  for section in sections:
    patterns = (f"{{/* {section}", f"// {section}", f"<{section}", f"const {section}", f"function {section}")
    if any(pattern in lower_line for pattern in patterns):
      return True
  return False


def extract_relevant_context(full_code: str, relevant_sections: Sequence[str]) -> str:
  """Reduce code to the import block, matching sections and the export signature."""
  if not relevant_sections:
    return full_code

  sections = [section.lower() for section in relevant_sections]
  lines = full_code.split("\n")
  relevant_lines: list[str] = []

  # Keep the leading import block verbatim.
  for line in lines:
    if line.startswith("import ") or line.strip() == "":
      relevant_lines.append(line)
      continue
    break

  in_section = False
  brace_depth = 0
  section_buffer: list[str] = []

  for line in lines[len(relevant_lines) :]:
    if not in_section and _opens_section(line.lower(), sections):
      in_section = True
      brace_depth = 0
      section_buffer = []

    if not in_section:
      continue

    section_buffer.append(line)
    brace_depth += line.count("{") - line.count("}")

    # Close once braces balance, but never on the opening line itself.
    if brace_depth <= 0 and len(section_buffer) >= MIN_SECTION_LINES:
      relevant_lines.extend(section_buffer)
      relevant_lines.extend(["", ELISION_MARKER, ""])
      in_section = False
      section_buffer = []

  if len(relevant_lines) < MIN_PRUNED_LINES:
    logger.debug("Pruned context too short (%d lines); using full code", len(relevant_lines))
    return full_code

  export_match = _EXPORT_RE.search(full_code)
  if export_match and not any("export default" in line for line in relevant_lines):
    relevant_lines.append(f"{export_match.group(0)} {{")
    relevant_lines.append("  // ... component logic ...")

  return "\n".join(relevant_lines)


def prune_context(prompt: str, full_code: str) -> tuple[PromptIntent, str]:
  """Classify the prompt and prune the code to match."""
  intent = analyze_prompt_intent(prompt)
  if intent.is_global_change:
    return intent, full_code
  pruned = extract_relevant_context(full_code, intent.relevant_sections)
  logger.info("Context pruned sections=%s lines_before=%d lines_after=%d", intent.relevant_sections, full_code.count("\n") + 1, pruned.count("\n") + 1)
  return intent, pruned


def create_code_summary(full_code: str) -> str:
  """Summarize existing storefront code for the architect."""
  lines = full_code.split("\n")
  lower_code = full_code.lower()
  summary = [f"Lines: {len(lines)}"]

  detected = [section for section in SECTION_KEYWORDS if section in lower_code]
  summary.append(f"Sections detected: {', '.join(detected) or 'unknown'}")

  colors = list(dict.fromkeys(_COLOR_CLASS_RE.findall(full_code)))[:10]
  if colors:
    summary.append(f"Colors: {', '.join(colors)}")

  if "useSellsPayCheckout" in full_code:
    summary.append("✓ SellsPay checkout integrated")
  if "framer-motion" in full_code or "motion." in full_code:
    summary.append("✓ Framer Motion animations")
  state_hooks = full_code.count("useState")
  if state_hooks:
    summary.append(f"State hooks: {state_hooks}")

  return "\n".join(summary)


def format_products_for_context(products: Sequence[ProductSummary]) -> str:
  """Render up to ten products as compact bullet lines."""
  if not products:
    return ""

  formatted = []
  for product in products[:MAX_CONTEXT_PRODUCTS]:
    tags = f" [{', '.join(product.tags)}]" if product.tags else ""
    formatted.append(f"- {product.name} (${product.price}){tags}")

  if len(products) > MAX_CONTEXT_PRODUCTS:
    formatted.append(f"... and {len(products) - MAX_CONTEXT_PRODUCTS} more products")

  return "\n".join(formatted)
