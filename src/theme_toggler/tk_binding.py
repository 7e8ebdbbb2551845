"""
Tkinter UI Binding
==================

Reference UI layer for the theme controller: a menubutton with three
radio entries (System / Light / Dark) mounted into a Tk container, plus
window-wide recolouring for the effective theme.

The effective theme is also published as the Tcl variable
``theme_toggler_effective`` on the window, the Tk counterpart of a
document-level theme attribute.

IMPORTANT: Tkinter is not thread-safe. Everything here, including
preference polling, runs on the Tk main thread via after().
"""

import logging
import tkinter as tk
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .error_handling import BindingError
from .palettes import palette_for, resolve_color
from .themes import EffectiveTheme, IconId, ResolvedTheme, ThemeToken

logger = logging.getLogger("theme_toggler.tk_binding")

GLYPHS: Dict[IconId, str] = {
    IconId.HALF: "◐",
    IconId.SUN: "☀",
    IconId.MOON: "☾",
}

_MOUNT_MARKER = "_theme_toggler_mounted"


def _widget_options(hook: Any) -> Dict[str, Any]:
    """Styling hooks given as dicts are Tk widget options; anything else is kept on the handle only"""
    return dict(hook) if isinstance(hook, dict) else {}


@dataclass
class TkControlHandle:
    """Widgets making up one mounted toggler"""
    root: Any
    container: tk.Frame
    button: tk.Menubutton
    menu: tk.Menu
    selected: tk.StringVar
    classes: Dict[str, Any]
    callbacks: List[Callable[[str], None]] = field(default_factory=list)
    effective: Optional[EffectiveTheme] = None

    def dispatch(self, token: str):
        for callback in list(self.callbacks):
            callback(token)


class TkThemeBinding:
    """
    IUIBinding implementation on tkinter

    Usage:
        root = tk.Tk()
        controller = ThemeController(binding=TkThemeBinding(root))
        controller.start()
        root.mainloop()
    """

    THEME_VARIABLE = "theme_toggler_effective"

    def __init__(
        self,
        window: tk.Misc,
        on_effective_change: Optional[Callable[[EffectiveTheme], None]] = None,
        colors: Optional[Dict[str, Dict[str, str]]] = None
    ):
        """
        Args:
            window: Default root (the Tk window)
            on_effective_change: Called after the palette has been applied
            colors: Per-theme colour overrides, e.g. {"dark": {"ACCENT": "#ff00ff"}}
        """
        self.window = window
        self.on_effective_change = on_effective_change
        self.colors = colors or {}

    # ========================================================================
    # MOUNTING
    # ========================================================================

    def resolve_root(self, root: Any):
        if root is None:
            return self.window
        if isinstance(root, tk.Misc):
            return root
        if isinstance(root, str):
            try:
                return self.window.nametowidget(root)
            except KeyError:
                return None
        return None

    def mount(self, root: Any) -> bool:
        if getattr(root, _MOUNT_MARKER, False):
            return True
        setattr(root, _MOUNT_MARKER, True)
        return False

    def render_control(
        self,
        root: Any,
        options: Dict[str, str],
        classes: Dict[str, Any],
        prepend: bool = False
    ) -> TkControlHandle:
        logger.debug("Creating element..")

        container = tk.Frame(root, **_widget_options(classes.get("container")))
        button = tk.Menubutton(
            container,
            text=f"{GLYPHS[IconId.HALF]} {options[ThemeToken.SYSTEM.value]}",
            relief="raised", bd=1, direction="below",
            **_widget_options(classes.get("button"))
        )
        menu = tk.Menu(button, tearoff=0, **_widget_options(classes.get("menu")))
        selected = tk.StringVar(master=root, value=ThemeToken.SYSTEM.value)

        handle = TkControlHandle(
            root=root,
            container=container,
            button=button,
            menu=menu,
            selected=selected,
            classes=dict(classes),
        )

        for token in ThemeToken:
            menu.add_radiobutton(
                label=options[token.value],
                value=token.value,
                variable=selected,
                command=lambda t=token.value: handle.dispatch(t),
            )
        button.config(menu=menu)
        button.pack(side="left")

        siblings = [w for w in root.pack_slaves() if w is not container]
        if prepend and siblings:
            container.pack(side="top", anchor="ne", padx=6, pady=6, before=siblings[0])
            logger.debug("Prepended element to the root.")
        else:
            container.pack(side="top", anchor="ne", padx=6, pady=6)
            logger.debug("Appended element to the root.")

        return handle

    # ========================================================================
    # UPDATES
    # ========================================================================

    def on_user_select(self, handle: TkControlHandle, callback: Callable[[str], None]):
        handle.callbacks.append(callback)

    def apply_effective(self, handle: TkControlHandle, resolved: ResolvedTheme):
        """
        Show *resolved* on the control and recolour the window

        Raises:
            BindingError: If the widgets have been destroyed
        """
        try:
            handle.selected.set(resolved.key.value)
            handle.button.config(text=f"{GLYPHS[resolved.icon]} {resolved.label}")
            self._apply_palette(handle, resolved.effective)
            self.window.setvar(self.THEME_VARIABLE, resolved.effective.value)
        except tk.TclError as e:
            raise BindingError(f"Cannot apply theme {resolved.key.value}: {e}")
        handle.effective = resolved.effective

        if self.on_effective_change:
            self.on_effective_change(resolved.effective)

    def update_labels(self, handle: TkControlHandle, table: Dict[str, str]):
        try:
            for index, token in enumerate(ThemeToken):
                handle.menu.entryconfigure(index, label=table[token.value])
        except tk.TclError as e:
            raise BindingError(f"Cannot relabel menu: {e}")

    def _color(self, effective: EffectiveTheme, key: str) -> str:
        return resolve_color(effective, key, self.colors.get(effective.value))

    def _apply_palette(self, handle: TkControlHandle, effective: EffectiveTheme):
        colors = {key: self._color(effective, key) for key in palette_for(effective)}
        self.window.tk_setPalette(
            background=colors["BG"],
            foreground=colors["TEXT"],
            activeBackground=colors["ACCENT"],
            activeForeground=colors["ACCENT_TEXT"],
        )
        handle.button.configure(
            bg=colors["BG_PANEL"], fg=colors["TEXT"],
            activebackground=colors["BG_FIELD"], activeforeground=colors["TEXT"],
        )
        handle.menu.configure(
            bg=colors["BG_PANEL"], fg=colors["TEXT"],
            activebackground=colors["ACCENT"], activeforeground=colors["ACCENT_TEXT"],
            selectcolor=colors["ACCENT"],
        )


# ============================================================================
# PREFERENCE POLLING
# ============================================================================

class TkPreferencePoller:
    """Polls a SystemPreference on the Tk main thread"""

    def __init__(self, window: tk.Misc, preference, interval_ms: int = 2000):
        self.window = window
        self.preference = preference
        self.interval_ms = interval_ms
        self._after_id = None

    def start(self):
        if self._after_id is None:
            self._schedule()

    def stop(self):
        try:
            if self._after_id is not None:
                self.window.after_cancel(self._after_id)
        except tk.TclError as e:
            logger.debug("after_cancel failed: %s", e)
        finally:
            self._after_id = None

    def _schedule(self):
        try:
            self._after_id = self.window.after(self.interval_ms, self._tick)
        except tk.TclError as e:
            # Window already destroyed
            logger.debug("after(): %s", e)
            self._after_id = None

    def _tick(self):
        self._after_id = None
        self.preference.poll()
        self._schedule()
