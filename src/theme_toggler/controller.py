"""
Theme Controller - Coordinates storage, locale and UI
=====================================================

The only component the UI layer talks to. One controller binds to one UI
root; it keeps no theme state of its own (the current token lives in the
persistent store) and re-derives what to show on every transition.

Lifecycle:
    UNINITIALIZED --start()--> READY

Every step of start() runs through ErrorHandler.capture(), so a failure
in storage, translations or the UI binding degrades to a default instead
of aborting initialization.
"""

# ============================================================================
# MODULE OVERVIEW
# ============================================================================
# Purpose:
#   controller.py
#
# Connected modules (direct imports):
#   codec, config, error_handling, interfaces, locale_resolver, storage,
#   system_preference, themes
# ============================================================================

import logging
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .codec import Decoder, Encoder
from .config import STORAGE_KEY, TogglerConfig
from .error_handling import BindingConflictError, ErrorHandler, Result
from .interfaces import Fetcher, ILocaleEnvironment, IPreferenceSignal, IUIBinding
from .locale_resolver import LocaleResolver, fetch_json
from .storage import PersistentStore, StorageBackends
from .system_preference import SystemPreference
from .themes import ResolvedTheme, ThemeToken, menu_labels, parse_token, resolve

logger = logging.getLogger("theme_toggler.controller")


class ControllerState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


def generate_instance_id() -> str:
    """Unique id binding a controller to its mounted control"""
    return f"_{uuid.uuid4()}"


# ============================================================================
# CLASSES
# ============================================================================

class ThemeController:
    """
    Theme toggler engine for one UI root

    Usage:
        controller = ThemeController(binding=TkThemeBinding(root))
        controller.start({"storage": {"backend": "session"}})
        controller.select_theme("dark")
        controller.set_locale("cs")
    """

    COMPONENT = "ThemeController"

    def __init__(
        self,
        binding: IUIBinding,
        preference: Optional[IPreferenceSignal] = None,
        backends: Optional[StorageBackends] = None,
        fetcher: Fetcher = fetch_json,
        environment: Optional[ILocaleEnvironment] = None,
        clock: Optional[Callable[[], int]] = None,
        error_handler: Optional[ErrorHandler] = None,
        storage_key: str = STORAGE_KEY,
        methods: Optional[Dict[str, Tuple[Encoder, Decoder]]] = None
    ):
        """
        Initialize the controller

        Args:
            binding: IUIBinding implementation
            preference: IPreferenceSignal (OS detection if None)
            backends: Named storage backends (JSON file + memory if None)
            fetcher: Callable returning parsed JSON for a translation URL
            environment: ILocaleEnvironment for language auto-detection
            clock: Millisecond clock for expiration (wall clock if None)
            error_handler: ErrorHandler (one logging to the controller logger if None)
            storage_key: Key the theme token is stored under
            methods: Extra codec methods usable as storage.encryption.method
        """
        # Phase 1: collaborators and defaults
        self.binding = binding
        self.preference = preference or SystemPreference()
        self.backends = backends or StorageBackends()
        self.fetcher = fetcher
        self.environment = environment
        self.clock = clock
        self.storage_key = storage_key
        self.methods = dict(methods or {})

        self._state = ControllerState.UNINITIALIZED
        self._root = None
        self._handle = None
        self._locale: Optional[str] = None
        self._translations: Dict[str, str] = {}
        self._apply_config(TogglerConfig())

        # Phase 2: identity (binding happens in start())
        self.instance_id = generate_instance_id()
        # The debug option only affects this logger
        self.log = logger.getChild(self.instance_id)
        self.error_handler = error_handler or ErrorHandler(self.log)

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def config(self) -> TogglerConfig:
        return self._config

    @property
    def translations(self) -> Dict[str, str]:
        """Active translation table"""
        return dict(self._translations)

    @property
    def locale(self) -> Optional[str]:
        return self._locale

    @property
    def root(self):
        return self._root

    @property
    def handle(self):
        return self._handle

    @property
    def store(self) -> PersistentStore:
        return self._store

    # ========================================================================
    # PUBLIC API
    # ========================================================================

    def start(self, config: Union[TogglerConfig, Dict[str, Any], None] = None) -> Optional[ResolvedTheme]:
        """
        Mount, load locale and stored theme, publish, start listening

        Never raises. Returns the published theme, or None when the root
        was already bound (the call is then a no-op).
        """
        if self._state is ControllerState.READY:
            self.log.info("Controller %s already started. Skipping.", self.instance_id)
            return None

        self.log.info("Initializing..")

        if isinstance(config, TogglerConfig):
            cfg = config
        else:
            result = self._guard("configure", TogglerConfig.from_dict, config, self.methods)
            if not result.ok:
                self.log.warning("Invalid configuration. Falling back to defaults.")
            cfg = result.unwrap_or(TogglerConfig())
        if not self._guard("configure", self._apply_config, cfg).ok:
            self._apply_config(TogglerConfig())

        if self._config.debug:
            self.log.setLevel(logging.DEBUG)

        # Bind identity to root
        root = self._guard("resolve_root", self.binding.resolve_root, self._config.root).unwrap_or(None)
        if root is None:
            self.log.warning("Root element not found. Falling back to default root.")
            root = self._guard("resolve_root", self.binding.resolve_root, None).unwrap_or(None)

        if self._guard("mount", self.binding.mount, root).unwrap_or(False):
            self.error_handler.handle_error(
                BindingConflictError(
                    "Element already exists in the root. Skipping creation..",
                    context={"instance_id": self.instance_id}
                ),
                notify_user=False
            )
            return None
        self._root = root

        # Locale and translations
        default_locale = self._config.i18n.default_locale
        self._locale = self._guard("detect_locale", self._locale_resolver.detect_locale).unwrap_or(default_locale)
        self._translations = self._guard(
            "load_translations", self._locale_resolver.load_translations, self._locale
        ).unwrap_or({})

        # Stored theme
        token = self._load_token()
        resolved = resolve(token, self._prefers_dark(), self._translations)

        # Render and publish
        self._handle = self._guard(
            "render_control",
            self.binding.render_control,
            root,
            menu_labels(self._translations),
            self._config.classes.to_dict(),
            self._config.prepend,
        ).unwrap_or(None)
        if self._handle is not None:
            self._guard("on_user_select", self.binding.on_user_select, self._handle, self._on_user_select)
        self._publish(resolved)

        self._guard("on_preference_change", self.preference.on_preference_change, self._on_preference_change)

        self._state = ControllerState.READY
        self.log.info("Initialized! (instance=%s, locale=%s, theme=%s -> %s)",
                    self.instance_id, self._locale, resolved.key.value, resolved.effective.value)
        return resolved

    def select_theme(self, token: Any) -> ResolvedTheme:
        """
        Store *token* and publish the theme it resolves to

        Raises:
            UnknownThemeError: If *token* is not a theme token (nothing is written)
        """
        key = parse_token(token)
        self.log.info("Updating theme to: %s", key.value)

        self._guard("write", self._store.write, self.storage_key, key.value)
        resolved = resolve(key, self._prefers_dark(), self._translations)
        self._publish(resolved)
        return resolved

    def set_locale(self, locale: str) -> Dict[str, str]:
        """
        Switch the active translation table and relabel the control

        The selected and effective theme do not change.
        """
        self.log.info("Setting language to: %s", locale)
        table = self._locale_resolver.load_translations(locale)
        self._locale = locale
        self._translations = table

        if self._handle is not None:
            self._guard("update_labels", self.binding.update_labels, self._handle, menu_labels(table))
        self.refresh()

        self.log.info("Language updated to: %s", locale)
        return dict(table)

    def current_token(self) -> ThemeToken:
        """Stored token, or system when nothing valid is stored"""
        stored = self._guard("read", self._store.read, self.storage_key).unwrap_or(None)
        if stored is None:
            return ThemeToken.SYSTEM
        return self._guard("parse_token", parse_token, stored).unwrap_or(ThemeToken.SYSTEM)

    def refresh(self) -> ResolvedTheme:
        """Re-resolve the stored token against the current OS signal and publish"""
        resolved = resolve(self.current_token(), self._prefers_dark(), self._translations)
        self._publish(resolved)
        return resolved

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _apply_config(self, config: TogglerConfig):
        store = PersistentStore(
            self.backends.get(config.storage.backend),
            config.storage,
            clock=self.clock,
            methods=self.methods,
        )
        self._locale_resolver = LocaleResolver(config.i18n, self.environment, self.fetcher)
        self._store = store
        self._config = config

    def _guard(self, operation: str, func: Callable, *args) -> Result:
        return self.error_handler.capture(self.COMPONENT, operation, func, *args)

    def _load_token(self) -> ThemeToken:
        stored = self._guard("read", self._store.read, self.storage_key).unwrap_or(None)
        if stored is not None:
            parsed = self._guard("parse_token", parse_token, stored)
            if parsed.ok:
                self.log.info("Saved theme found: %s", parsed.value.value)
                return parsed.value

        self.log.info("No saved theme found. Defaulting to: system")
        self._guard("write", self._store.write, self.storage_key, ThemeToken.SYSTEM.value)
        return ThemeToken.SYSTEM

    def _prefers_dark(self) -> bool:
        return bool(self._guard("prefers_dark", self.preference.prefers_dark).unwrap_or(False))

    def _publish(self, resolved: ResolvedTheme):
        if self._handle is None:
            self.log.debug("No control mounted; %s not published", resolved.key.value)
            return
        if self._guard("apply_effective", self.binding.apply_effective, self._handle, resolved).ok:
            self.log.debug("Theme %s applied (%s).", resolved.key.value, resolved.effective.value)

    def _on_user_select(self, token: str):
        self._guard("select_theme", self.select_theme, token)

    def _on_preference_change(self, prefers_dark: bool):
        if self.current_token() is not ThemeToken.SYSTEM:
            return
        self.log.debug("Detected system preference: %s", "dark" if prefers_dark else "light")
        self._publish(resolve(ThemeToken.SYSTEM, prefers_dark, self._translations))
