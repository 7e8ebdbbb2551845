"""
Theme Toggler
=============

Theme-preference persistence and resolution engine: decides whether the
system, light or dark theme is in effect, keeps that choice across
restarts and keeps a mounted UI control in sync with it.
"""

__version__ = "1.1.0"

from .codec import Codec
from .config import TogglerConfig
from .controller import ControllerState, ThemeController
from .error_handling import (
    BindingConflictError,
    ConfigurationError,
    DecodeError,
    StorageError,
    ThemeTogglerError,
    TranslationLoadError,
    UnknownThemeError,
)
from .locale_resolver import LocaleResolver
from .storage import JsonFileBackend, MemoryBackend, PersistentStore, StorageBackends
from .system_preference import StaticPreference, SystemPreference
from .themes import EffectiveTheme, IconId, ResolvedTheme, ThemeToken, resolve

__all__ = [
    "__version__",
    "BindingConflictError",
    "Codec",
    "ConfigurationError",
    "ControllerState",
    "DecodeError",
    "EffectiveTheme",
    "IconId",
    "JsonFileBackend",
    "LocaleResolver",
    "MemoryBackend",
    "PersistentStore",
    "ResolvedTheme",
    "StaticPreference",
    "StorageBackends",
    "StorageError",
    "SystemPreference",
    "ThemeController",
    "ThemeToken",
    "ThemeTogglerError",
    "TogglerConfig",
    "TranslationLoadError",
    "UnknownThemeError",
    "resolve",
]
