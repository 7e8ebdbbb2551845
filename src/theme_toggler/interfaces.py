"""
Interface Protocols
===================

Capabilities the controller consumes. The engine depends only on these;
concrete implementations live in storage, system_preference,
locale_resolver and tk_binding (or in the host application).
"""

from typing import Any, Callable, Dict, Optional, Protocol

from .themes import ResolvedTheme


class IStorageBackend(Protocol):
    """Key/value storage (local or session scope)"""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class IPreferenceSignal(Protocol):
    """OS dark-mode preference"""

    def prefers_dark(self) -> bool:
        ...

    def on_preference_change(self, callback: Callable[[bool], None]) -> None:
        ...


class ILocaleEnvironment(Protocol):
    """Where auto-detected languages come from"""

    def reported_language(self) -> Optional[str]:
        """Language tag reported by the environment ("en-US")"""
        ...

    def document_language(self) -> Optional[str]:
        """Language declared by the host document / window"""
        ...


class IUIBinding(Protocol):
    """
    UI layer the controller drives

    The controller never builds widgets itself; it asks the binding to
    render one control per root and then talks to it through the handle.
    """

    def resolve_root(self, root: Any) -> Any:
        """Turn a selector or handle into a root, None if not found"""
        ...

    def mount(self, root: Any) -> bool:
        """Claim *root*; return True if it was already bound"""
        ...

    def render_control(
        self,
        root: Any,
        options: Dict[str, str],
        classes: Dict[str, Any],
        prepend: bool = False
    ) -> Any:
        ...

    def on_user_select(self, handle: Any, callback: Callable[[str], None]) -> None:
        ...

    def apply_effective(self, handle: Any, resolved: ResolvedTheme) -> None:
        ...

    def update_labels(self, handle: Any, table: Dict[str, str]) -> None:
        ...


Fetcher = Callable[[str], Any]
