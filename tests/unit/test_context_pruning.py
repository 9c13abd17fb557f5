from __future__ import annotations

from vibecoder.prompting.pruning import (
  ELISION_MARKER,
  ProductSummary,
  analyze_prompt_intent,
  create_code_summary,
  extract_relevant_context,
  format_products_for_context,
  prune_context,
)

IMPORTS = "import React from 'react';\nimport { motion } from 'framer-motion';\n"


def _storefront(filler_lines: int = 30) -> str:
  filler = "\n".join(f"  const filler{i} = {i};" for i in range(filler_lines))
  return (
    f"{IMPORTS}\n"
    "function Hero() {\n"
    "  return (\n"
    "    <header className=\"py-24\">Welcome</header>\n"
    "  );\n"
    "}\n\n"
    "function Footer() {\n"
    "  return (\n"
    "    <footer className=\"py-8\">Links</footer>\n"
    "  );\n"
    "}\n\n"
    "export default function App() {\n"
    f"{filler}\n"
    "  return <main><Hero /><Footer /></main>;\n"
    "}\n"
  )


def test_global_keywords_win() -> None:
  intent = analyze_prompt_intent("Redesign the hero with a new vibe")
  assert intent.is_global_change is True
  assert intent.relevant_sections == []
  assert intent.confidence == 0.9


def test_footer_link_update_is_targeted() -> None:
  intent = analyze_prompt_intent("update the footer links")
  assert intent.is_global_change is False
  assert intent.relevant_sections == ["footer"]


def test_entire_store_redesign_is_global_despite_section_keywords() -> None:
  intent = analyze_prompt_intent("redesign the entire store")
  assert intent.is_global_change is True
  assert intent.relevant_sections == []


def test_unclear_intent_falls_back_to_global() -> None:
  intent = analyze_prompt_intent("make it pop")
  assert intent.is_global_change is True
  assert intent.confidence == 0.5


def test_targeted_sections_are_detected() -> None:
  intent = analyze_prompt_intent("Change the footer links and the hero banner")
  assert intent.is_global_change is False
  assert intent.relevant_sections == ["hero", "footer"]
  assert intent.confidence == 0.8


def test_keywords_match_whole_words_only() -> None:
  # "small" contains "all" but is not the global keyword.
  intent = analyze_prompt_intent("make the footer text small")
  assert intent.is_global_change is False
  assert intent.relevant_sections == ["footer"]


def test_confidence_is_capped() -> None:
  intent = analyze_prompt_intent("hero nav footer about pricing gallery testimonial product")
  assert intent.confidence == 0.95


def test_extract_relevant_context_falls_back_when_too_short() -> None:
  code = _storefront(filler_lines=0)
  assert extract_relevant_context(code, ["footer"]) == code


def test_extract_relevant_context_keeps_imports_and_section() -> None:
  code = IMPORTS + "\n" + "\n".join(
    ["function Footer() {", "  return (", "    <footer>"] + [f"      <a href=\"/l{i}\">Link {i}</a>" for i in range(20)] + ["    </footer>", "  );", "}"]
  ) + "\n\nfunction Hero() {\n  return <header />;\n}\n\nexport default function App() {\n  return null;\n}\n"
  pruned = extract_relevant_context(code, ["footer"])
  assert pruned.startswith(IMPORTS)
  assert "function Footer()" in pruned
  assert ELISION_MARKER in pruned
  assert "function Hero()" not in pruned
  assert "export default function App() {" in pruned


def test_no_sections_returns_full_code() -> None:
  code = _storefront()
  assert extract_relevant_context(code, []) == code


def test_prune_context_returns_full_code_for_global_changes() -> None:
  code = _storefront()
  intent, pruned = prune_context("redesign everything", code)
  assert intent.is_global_change is True
  assert pruned == code


def test_create_code_summary_reports_sections_and_hooks() -> None:
  code = _storefront() + "\nconst [open, setOpen] = useState(false);\n<div className=\"bg-violet-500 text-zinc-100\" />\n"
  summary = create_code_summary(code)
  assert summary.splitlines()[0].startswith("Lines: ")
  assert "hero" in summary
  assert "footer" in summary
  assert "bg-violet-500" in summary
  assert "Framer Motion" in summary
  assert "State hooks: 1" in summary


def test_format_products_limits_to_ten() -> None:
  products = [ProductSummary(id=f"p{i}", name=f"Item {i}", price="9.99", tags=("art",) if i == 0 else ()) for i in range(12)]
  formatted = format_products_for_context(products).splitlines()
  assert formatted[0] == "- Item 0 ($9.99) [art]"
  assert len(formatted) == 11
  assert formatted[-1] == "... and 2 more products"


def test_format_products_empty() -> None:
  assert format_products_for_context([]) == ""
