"""Prompt templates and renderers shared by agents."""

from __future__ import annotations

import json

from vibecoder.ai.pipeline.contracts import ArchitectRequest, BuilderRequest, HealRequest

BEGIN_CODE_MARKER = "/// BEGIN_CODE ///"
ASSEMBLY_FILE = "src/App.tsx"

ARCHITECT_SYSTEM_PROMPT = f"""You are the lead architect for creator storefronts on a managed digital marketplace.
You do not write implementation code. You produce the build plan a builder agent follows.

Rules:
- Design for the requested vibe, not a generic template. Every plan names one unique design feature.
- Never plan authentication flows, settings pages, backend code or payment logic. Purchases use the
  platform checkout hook. Navigation uses local tab state, not a router.
- The hero section is the first element. Store navigation sits below the hero.
- Split the store into small files so no single file exceeds roughly 150 lines.
- Data files (product arrays, constants) come first in the execution order.
  The assembly file {ASSEMBLY_FILE} is always last.

Respond with JSON only, matching this shape:
{{
  "vibeAnalysis": {{
    "visualStyle": "string",
    "colorPalette": {{"primary": "#HEX", "secondary": "#HEX", "accent": "#HEX", "background": "#HEX", "text": "#HEX"}},
    "typography": {{"headingFont": "string", "bodyFont": "string", "headingWeight": "string", "sizeScale": "string"}},
    "moodKeywords": ["string"]
  }},
  "uniqueDesignFeature": {{"element": "string", "implementation": "string", "rationale": "string"}},
  "files": [
    {{"path": "src/data/products.ts", "description": "string", "lineEstimate": 30, "priority": 1}},
    {{"path": "{ASSEMBLY_FILE}", "description": "string", "lineEstimate": 60, "priority": 9}}
  ],
  "executionOrder": ["src/data/products.ts", "{ASSEMBLY_FILE}"],
  "complexityScore": 3
}}"""

BUILDER_SYSTEM_PROMPT = f"""You are the lead frontend engineer for creator storefronts on a managed marketplace.
You implement exactly one file of the architect's plan using React, Tailwind CSS, lucide-react icons
and framer-motion.

Guardrails:
- No login or signup forms, no payment forms, no fetch calls for product data, no router.
- Purchases go through the platform checkout hook.
- The hero section is the first element; store navigation sits below it.
- Images use absolute external URLs, never local paths.

Output format:
1. A short markdown summary of what you built.
2. Optional [LOG: action] lines.
3. The marker {BEGIN_CODE_MARKER}
4. The complete file content. The assembly file must start with export default function App()."""

HEAL_SYSTEM_PROMPT = f"""You repair a storefront that crashed at runtime in the live preview.
Fix only the defect that caused the reported error.

- Identify the exact expression that throws.
- Apply the smallest possible fix (optional chaining, a missing import, moving a hook to the top level, a list key).
- Do not refactor, restyle, rename or add features. Keep every Tailwind class as it is.

Output format:
1. One or two sentences explaining what was wrong.
2. The marker {BEGIN_CODE_MARKER}
3. The complete corrected file, not a snippet or a diff."""


def render_architect_prompt(request: ArchitectRequest) -> str:
  """Assemble the architect user message from the request context."""
  parts = [f"## User Request\n{request.prompt}\n"]
  if request.current_code_summary:
    parts.append(f"## Current Store Code Summary\n{request.current_code_summary}\n")
  if request.products_data:
    parts.append(f"## Available Products\n{request.products_data}\n")
  if request.style_profile:
    parts.append(f"## Requested Style Profile\n{request.style_profile}\n")
  parts.append("## Instructions\nCreate a detailed architectural plan for this storefront. Output ONLY valid JSON matching the schema.")
  return "\n".join(parts)


def render_builder_prompt(request: BuilderRequest) -> str:
  """Assemble the builder user message for one planned file."""
  plan_json = json.dumps(request.plan.model_dump(mode="json", exclude={"is_fallback"}), indent=2)
  parts = [f"## User Request\n{request.prompt}\n", f"## Architect's Plan\n```json\n{plan_json}\n```\n"]
  parts.append(f"## File To Build\nPath: {request.file.path}\nPurpose: {request.file.description}\nTarget length: about {request.file.line_estimate} lines\n")
  if request.style_profile:
    parts.append(f"## Style Profile\n{request.style_profile}\n")

  # Prefer the pruned context over the full file to keep prompts small.
  if request.pruned_context:
    parts.append(f"## Relevant Existing Code\n```tsx\n{request.pruned_context}\n```\n")
  elif request.current_code:
    parts.append(f"## Current Full Code\n```tsx\n{request.current_code}\n```\n")
  parts.append("## Instructions\nGenerate the complete, production-ready content of this file following the plan.")
  return "\n".join(parts)


def render_heal_prompt(request: HealRequest) -> str:
  """Assemble the heal user message around the runtime error and failing file."""
  first_line = request.runtime_error.strip().splitlines()[0] if request.runtime_error.strip() else request.runtime_error
  parts = [
    f"## Runtime Error\n```\n{request.runtime_error}\n```\n",
    f"## Failed Code\n```tsx\n{request.failed_code}\n```\n",
    f'## Instructions\n1. Find the exact line causing "{first_line}"\n2. Apply the minimal fix\n3. Do not change styling or add features\n4. Output the complete fixed file',
  ]
  if request.style_profile:
    parts.append(f"\nStyle profile: {request.style_profile} (preserve this aesthetic)")
  return "\n".join(parts)
