"""Named visual style profiles injected into generation prompts."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ColorPalette:
  primary: str
  secondary: str
  accent: str
  background: str
  text: str


@dataclass(frozen=True)
class Typography:
  heading: str
  body: str


@dataclass(frozen=True)
class StyleProfile:
  """A named bundle of visual conventions for the builder prompt."""

  id: str
  name: str
  description: str
  prompt_fragment: str
  color_palette: ColorPalette
  typography: Typography


STYLE_PROFILES: tuple[StyleProfile, ...] = (
  StyleProfile(
    id="luxury-minimal",
    name="Luxury Minimal",
    description="High-end, Apple-inspired aesthetic",
    prompt_fragment="""
STYLE: Luxury Minimal
- Background: bg-zinc-950 with subtle gradient overlays
- Typography: serif or elegant sans-serif feel, large tracking-tight headings
- Spacing: extremely generous whitespace (py-24, px-8 on sections)
- Colors: monochromatic with gold/cream accents (text-amber-100/50)
- Shadows: elegant diffused shadows (shadow-[0_20px_50px_rgba(0,0,0,0.3)])
- Borders: subtle, near-invisible (border-zinc-800/30)
- Animations: slow, graceful fade-ins and scale transitions
- Hero: full-bleed with minimal text, maximum impact
- Product Cards: clean, spacious, focused on product imagery
""",
    color_palette=ColorPalette(primary="#fafafa", secondary="#a1a1aa", accent="#fcd34d", background="#09090b", text="#fafafa"),
    typography=Typography(heading="font-serif tracking-tight", body="font-sans text-zinc-400"),
  ),
  StyleProfile(
    id="cyberpunk-neon",
    name="Cyberpunk Neon",
    description="Neon-lit, futuristic aesthetic",
    prompt_fragment="""
STYLE: Cyberpunk Neon
- Background: pure black (bg-black) with neon glow overlays
- Typography: monospace or tech fonts, glitchy effects welcome
- Colors: cyan, magenta, electric blue (text-cyan-400, text-fuchsia-500)
- Borders: neon glow (border-cyan-500 shadow-[0_0_20px_rgba(6,182,212,0.5)])
- Glassmorphism: heavy use (bg-black/50 backdrop-blur-xl border border-cyan-500/30)
- Animations: glitch effects, scanlines, pulsing neon
- Hero: dark with vibrant neon accents, grid patterns welcome
- Product Cards: dark glass with neon borders on hover
""",
    color_palette=ColorPalette(primary="#22d3ee", secondary="#d946ef", accent="#3b82f6", background="#000000", text="#22d3ee"),
    typography=Typography(heading="font-mono tracking-wider uppercase", body="font-mono text-cyan-400/80"),
  ),
  StyleProfile(
    id="streetwear-dark",
    name="Streetwear Dark",
    description="Bold, urban, high-contrast",
    prompt_fragment="""
STYLE: Streetwear Dark
- Background: deep black/charcoal (bg-zinc-950)
- Typography: heavy, bold sans-serif (text-6xl font-black tracking-tighter)
- Colors: high contrast with vibrant accents (bg-red-500, bg-orange-500)
- Imagery: strong product photos, grunge textures
- Layout: asymmetric, editorial-style grids
- Hero: massive typography, overlapping elements
- Product Cards: bold borders, dramatic hover states
- Animations: snappy, punchy transitions
""",
    color_palette=ColorPalette(primary="#ffffff", secondary="#a1a1aa", accent="#ef4444", background="#09090b", text="#ffffff"),
    typography=Typography(heading="font-black tracking-tighter uppercase", body="font-bold text-zinc-400"),
  ),
  StyleProfile(
    id="kawaii-pop",
    name="Kawaii Pop",
    description="Cute, playful, pastel colors",
    prompt_fragment="""
STYLE: Kawaii Pop
- Background: soft pastels (bg-pink-50, bg-purple-50)
- Typography: rounded, friendly fonts (rounded-full on buttons too)
- Colors: soft pink, lavender, mint, peach (text-pink-600, bg-purple-200)
- Borders: rounded everything (rounded-3xl, rounded-full)
- Shadows: soft, colorful drop shadows (shadow-lg shadow-pink-200/50)
- Animations: bouncy spring animations
- Hero: cheerful with cute illustrations or stickers
- Product Cards: rounded cards with soft shadows
""",
    color_palette=ColorPalette(primary="#ec4899", secondary="#a855f7", accent="#34d399", background="#fdf2f8", text="#831843"),
    typography=Typography(heading="font-bold tracking-tight", body="font-medium text-pink-800"),
  ),
  StyleProfile(
    id="brutalist",
    name="Brutalist",
    description="Raw, bold, intentionally rough",
    prompt_fragment="""
STYLE: Brutalist
- Background: stark white or black, no gradients
- Typography: bold, harsh, sometimes ALL CAPS (font-black text-black)
- Colors: black and white with ONE accent color (red or yellow)
- Borders: thick, visible, harsh (border-4 border-black)
- Shadows: none, flat 2D feel
- Layout: asymmetric, intentionally "broken" looking
- Hero: raw, impactful, massive text
- Product Cards: simple boxes with thick borders
""",
    color_palette=ColorPalette(primary="#000000", secondary="#ffffff", accent="#dc2626", background="#ffffff", text="#000000"),
    typography=Typography(heading="font-black uppercase", body="font-bold"),
  ),
  StyleProfile(
    id="vaporwave",
    name="Vaporwave",
    description="Retro 80s/90s aesthetic",
    prompt_fragment="""
STYLE: Vaporwave
- Background: purple to pink to teal gradient (bg-gradient-to-br from-purple-900 via-pink-600 to-cyan-400)
- Typography: retro fonts, occasional Japanese text
- Colors: hot pink, cyan, purple, sunset gradients
- Imagery: roman busts, palm trees, sunsets, perspective grids
- Hero: sunset gradient with silhouette elements
- Product Cards: neon outlines, holographic effects
- Animations: slow, dreamy, floating
""",
    color_palette=ColorPalette(primary="#ec4899", secondary="#06b6d4", accent="#a855f7", background="#3b0764", text="#fdf4ff"),
    typography=Typography(heading="font-bold tracking-widest", body="font-medium text-pink-200"),
  ),
)

_PROFILES_BY_ID = {profile.id: profile for profile in STYLE_PROFILES}


def get_style_profile(profile_id: str | None) -> StyleProfile | None:
  """Look up a style profile by id."""
  if not profile_id:
    return None
  return _PROFILES_BY_ID.get(profile_id)


def get_default_style_profile() -> StyleProfile:
  """Return the default profile (Luxury Minimal)."""
  return STYLE_PROFILES[0]


def inject_style_profile(prompt: str, profile_id: str | None = None) -> str:
  """Append the profile's prompt fragment; unknown ids leave the prompt unchanged."""
  profile = get_style_profile(profile_id)
  if profile is None:
    return prompt
  return f"{prompt}\n\n{profile.prompt_fragment}"
