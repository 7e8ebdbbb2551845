"""
System Theme Preference
=======================

Detects whether the OS prefers dark mode and notifies listeners when
that changes.

Supports:
- Windows: registry AppsUseLightTheme
- macOS: defaults read AppleInterfaceStyle
- Linux/GNOME: gsettings color-scheme / gtk-theme
- Fallback: GTK_THEME environment variable

Detection is local-only. Changes are picked up by calling poll(); the
tkinter binding schedules that on the UI thread.
"""

import logging
import os
import platform
import subprocess
from typing import Callable, List, Optional

logger = logging.getLogger("theme_toggler.system_preference")

PreferenceCallback = Callable[[bool], None]


# ============================================================================
# PLATFORM DETECTION
# ============================================================================

def _run(args: List[str]) -> Optional[str]:
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=2)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("%s failed: %s", args[0], e)
        return None
    return result.stdout.strip() if result.returncode == 0 else None


def _detect_windows() -> Optional[bool]:
    try:
        import winreg
    except ImportError:
        return None
    key_path = r"Software\Microsoft\Windows\CurrentVersion\Themes\Personalize"
    try:
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, key_path) as key:
            # 0 = dark, 1 = light
            value, _ = winreg.QueryValueEx(key, "AppsUseLightTheme")
    except OSError as e:
        logger.debug("Registry lookup failed: %s", e)
        return None
    return int(value) == 0


def _detect_macos() -> Optional[bool]:
    # Key is absent in light mode, so a failed read means light
    output = _run(["defaults", "read", "-g", "AppleInterfaceStyle"])
    return output is not None and output.lower() == "dark"


def _detect_linux() -> Optional[bool]:
    scheme = _run(["gsettings", "get", "org.gnome.desktop.interface", "color-scheme"])
    if scheme:
        if "dark" in scheme.lower():
            return True
        if "light" in scheme.lower() or "default" in scheme.lower():
            return False

    gtk_theme = _run(["gsettings", "get", "org.gnome.desktop.interface", "gtk-theme"])
    if gtk_theme:
        return "dark" in gtk_theme.lower()

    env_theme = os.environ.get("GTK_THEME")
    if env_theme:
        return "dark" in env_theme.lower()
    return None


def detect_prefers_dark() -> bool:
    """Current OS preference; light when it cannot be determined"""
    system = platform.system()
    if system == "Windows":
        detected = _detect_windows()
    elif system == "Darwin":
        detected = _detect_macos()
    elif system == "Linux":
        detected = _detect_linux()
    else:
        detected = None
    return bool(detected)


# ============================================================================
# CLASSES
# ============================================================================

class SystemPreference:
    """
    OS dark-mode signal with change notification

    Usage:
        pref = SystemPreference()
        pref.on_preference_change(lambda dark: print("dark" if dark else "light"))
        pref.poll()   # call periodically
    """

    def __init__(self, detector: Callable[[], bool] = detect_prefers_dark):
        self._detector = detector
        self._callbacks: List[PreferenceCallback] = []
        self._last: Optional[bool] = None

    def prefers_dark(self) -> bool:
        if self._last is None:
            self._last = bool(self._detector())
        return self._last

    def on_preference_change(self, callback: PreferenceCallback) -> None:
        self._callbacks.append(callback)

    def poll(self) -> bool:
        """Re-detect; notify listeners if the preference flipped. Returns True on change"""
        current = bool(self._detector())
        previous, self._last = self._last, current
        if previous is None or previous == current:
            return False
        logger.info("System preference changed: %s", "dark" if current else "light")
        self._notify(current)
        return True

    def _notify(self, prefers_dark: bool) -> None:
        for callback in list(self._callbacks):
            callback(prefers_dark)


class StaticPreference(SystemPreference):
    """Preference set by hand (headless hosts, tests)"""

    def __init__(self, prefers_dark: bool = False):
        self._value = bool(prefers_dark)
        super().__init__(detector=lambda: self._value)
        self._last = self._value

    def set(self, prefers_dark: bool) -> None:
        """Change the preference and notify listeners"""
        self._value = bool(prefers_dark)
        self.poll()
