"""
Theme Resolution
================

Maps a stored theme token plus the OS dark-mode signal to the theme that
is actually rendered, together with its icon and translated label.

Everything here is pure: no I/O, no state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .error_handling import UnknownThemeError


class ThemeToken(str, Enum):
    """Stored user intent"""
    SYSTEM = "system"
    LIGHT = "light"
    DARK = "dark"


class EffectiveTheme(str, Enum):
    """Rendered outcome; never persisted"""
    LIGHT = "light"
    DARK = "dark"


class IconId(str, Enum):
    """Icon identifiers (Bootstrap Icons class names)"""
    HALF = "bi bi-circle-half"
    SUN = "bi bi-brightness-high-fill"
    MOON = "bi bi-moon-fill"


DEFAULT_LABELS: Dict[ThemeToken, str] = {
    ThemeToken.SYSTEM: "System",
    ThemeToken.LIGHT: "Light",
    ThemeToken.DARK: "Dark",
}

_ICONS: Dict[ThemeToken, IconId] = {
    ThemeToken.SYSTEM: IconId.HALF,
    ThemeToken.LIGHT: IconId.SUN,
    ThemeToken.DARK: IconId.MOON,
}


@dataclass(frozen=True)
class ResolvedTheme:
    """What the UI layer is told to show"""
    effective: EffectiveTheme
    key: ThemeToken
    icon: IconId
    label: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "effective": self.effective.value,
            "key": self.key.value,
            "icon": self.icon.value,
            "label": self.label,
        }


def parse_token(value: Any) -> ThemeToken:
    """Validate *value* as a theme token; raises UnknownThemeError"""
    if isinstance(value, ThemeToken):
        return value
    try:
        return ThemeToken(value)
    except ValueError:
        raise UnknownThemeError(f"Unknown theme: {value!r}", context={"token": repr(value)})


def label_for(table: Optional[Mapping[str, str]], token: ThemeToken) -> str:
    """Translated label for *token*, English default when missing or empty"""
    label = (table or {}).get(token.value)
    return label if isinstance(label, str) and label else DEFAULT_LABELS[token]


def menu_labels(table: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Labels for all three options, in menu order"""
    return {token.value: label_for(table, token) for token in ThemeToken}


def resolve(
    token: Any,
    system_prefers_dark: bool,
    table: Optional[Mapping[str, str]] = None
) -> ResolvedTheme:
    """
    Resolve a theme token into the theme to render

    Args:
        token: "system", "light" or "dark" (or a ThemeToken)
        system_prefers_dark: Current OS dark-mode signal
        table: Translation table (may be partial or empty)

    Returns:
        ResolvedTheme

    Raises:
        UnknownThemeError: If *token* is not a theme token
    """
    key = parse_token(token)

    if key is ThemeToken.SYSTEM:
        effective = EffectiveTheme.DARK if system_prefers_dark else EffectiveTheme.LIGHT
    elif key is ThemeToken.DARK:
        effective = EffectiveTheme.DARK
    else:
        effective = EffectiveTheme.LIGHT

    return ResolvedTheme(
        effective=effective,
        key=key,
        icon=_ICONS[key],
        label=label_for(table, key),
    )
