from __future__ import annotations

from vibecoder.prompting.shaping import RELEVANT_CODE_HEADING, shape_ai_prompt
from vibecoder.prompting.styles import STYLE_PROFILES, get_default_style_profile, get_style_profile, inject_style_profile


def test_profiles_are_unique_and_default_is_luxury_minimal() -> None:
  ids = [profile.id for profile in STYLE_PROFILES]
  assert len(ids) == len(set(ids)) == 6
  assert get_default_style_profile().id == "luxury-minimal"


def test_get_style_profile_handles_unknown_and_empty_ids() -> None:
  assert get_style_profile("vaporwave").name == "Vaporwave"
  assert get_style_profile("does-not-exist") is None
  assert get_style_profile(None) is None
  assert get_style_profile("") is None


def test_inject_style_profile_appends_fragment() -> None:
  profile = get_style_profile("brutalist")
  injected = inject_style_profile("Make a poster shop", "brutalist")
  assert injected == f"Make a poster shop\n\n{profile.prompt_fragment}"


def test_inject_style_profile_leaves_prompt_for_unknown_profile() -> None:
  assert inject_style_profile("Make a poster shop", "unknown") == "Make a poster shop"
  assert inject_style_profile("Make a poster shop") == "Make a poster shop"


def test_shape_ai_prompt_global_change_keeps_full_code() -> None:
  code = "export default function App() {}\n// existing store marker"
  shaped = shape_ai_prompt("Change the theme to dark", current_code=code, style_profile_id="kawaii-pop")
  assert shaped.intent.is_global_change is True
  assert shaped.pruned is False
  assert f"{RELEVANT_CODE_HEADING}\n```tsx\n{code}\n```" in shaped.ai_prompt
  assert shaped.ai_prompt.startswith("Change the theme to dark\n\n")
  assert "Kawaii" in shaped.ai_prompt


def test_shape_ai_prompt_unclear_intent_keeps_full_code() -> None:
  code = "export default function App() {}\n// existing store marker"
  shaped = shape_ai_prompt("Make it pop more", current_code=code)
  assert shaped.intent.is_global_change is True
  assert shaped.intent.confidence == 0.5
  assert "// existing store marker" in shaped.ai_prompt


def test_shape_ai_prompt_attaches_context_for_targeted_edit() -> None:
  code = "export default function App() {\n  return <footer>Links</footer>;\n}"
  shaped = shape_ai_prompt("Change the footer color", current_code=code)
  assert shaped.intent.relevant_sections == ["footer"]
  # Too little code to prune; the whole file is attached.
  assert shaped.pruned is False
  assert f"{RELEVANT_CODE_HEADING}\n```tsx\n{code}\n```" in shaped.ai_prompt


def test_shape_ai_prompt_without_code_is_prompt_only() -> None:
  assert shape_ai_prompt("Change the footer color").ai_prompt == "Change the footer color"
