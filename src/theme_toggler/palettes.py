"""UI colour palettes.

One palette per effective theme. This module only holds constants; it
never reads or writes the stored preference.

Callers that want custom colours overlay their own values on top of a
palette in memory (see resolve_color), they do not edit these dicts.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from .themes import EffectiveTheme

DARK_COLORS: Dict[str, str] = {
    "BG": "#0a0a0f",
    "BG_PANEL": "#12121a",
    "BG_FIELD": "#1a1a28",
    "TEXT": "#e0e0ff",
    "MUTED": "#6a6a8a",
    "BORDER": "#2a2a3f",
    "ACCENT": "#ff8833",
    "ACCENT_TEXT": "#000000",
}

LIGHT_COLORS: Dict[str, str] = {
    "BG": "#f8f9fa",
    "BG_PANEL": "#ffffff",
    "BG_FIELD": "#e9ecef",
    "TEXT": "#212529",
    "MUTED": "#6c757d",
    "BORDER": "#dee2e6",
    "ACCENT": "#0d6efd",
    "ACCENT_TEXT": "#ffffff",
}

PALETTES: Dict[EffectiveTheme, Dict[str, str]] = {
    EffectiveTheme.DARK: DARK_COLORS,
    EffectiveTheme.LIGHT: LIGHT_COLORS,
}


def palette_for(effective: EffectiveTheme) -> Dict[str, str]:
    return dict(PALETTES[EffectiveTheme(effective)])


def resolve_color(effective: EffectiveTheme, key: str, overrides: Optional[Mapping[str, str]] = None) -> str:
    """Resolve a colour key, honouring an in-memory override if one is set."""
    val = (overrides or {}).get(key)
    return str(val) if val else PALETTES[EffectiveTheme(effective)][key]
