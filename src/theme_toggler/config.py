"""
Configuration
=============

Configuration as objects (not dicts) for the theme toggler.

Options arrive as a nested dict using the public option names
(``i18n.autoDetect``, ``storage.expirationMs`` ...), are deep-merged over
built-in defaults, validated, and frozen into dataclasses.
"""

# ============================================================================
# MODULE OVERVIEW
# ============================================================================
# Purpose:
#   config.py
#
# Connected modules (direct imports):
#   codec, error_handling
#
# Notes:
#   - Legacy option names ("storage.type", "storage.expiration") are
#     accepted as aliases.
# ============================================================================

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Union

from .codec import KEYED_METHODS, METHODS
from .error_handling import ConfigurationError


# ============================================================================
# CONFIGURATION / CONSTANTS
# ============================================================================

STORAGE_KEY = "useTheme"

BACKENDS = ("local", "session")
AUTO_DETECT_MODES = ("off", "browser", "document")

DEFAULT_TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "system": "System",
        "light": "Light",
        "dark": "Dark",
    }
}

TranslationSource = Union[Dict[str, str], str]


def default_options() -> Dict[str, Any]:
    """Built-in defaults, in public option form"""
    return {
        "root": None,
        "prepend": False,
        "debug": False,
        "i18n": {
            "default": "en",
            "autoDetect": "off",
            "translations": copy.deepcopy(DEFAULT_TRANSLATIONS),
        },
        "classes": {
            "container": "",
            "button": "",
            "menu": "",
        },
        "storage": {
            "backend": "local",
            "expirationMs": None,
            "encryption": {
                "enabled": True,
                "method": "xor",
                "key": "theme-toggler",
            },
        },
    }


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge *override* into a copy of *base*, recursing into nested dicts

    ``translations`` is replaced wholesale rather than merged, so a caller
    supplying their own locales does not inherit entries they did not ask for
    unless they omit the key entirely.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if key != "translations" and isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _apply_aliases(options: Dict[str, Any]) -> Dict[str, Any]:
    """Map legacy option names onto current ones"""
    storage = options.get("storage")
    if isinstance(storage, dict):
        storage = dict(storage)
        if "type" in storage and "backend" not in storage:
            storage["backend"] = storage.pop("type")
        if "expiration" in storage and "expirationMs" not in storage:
            storage["expirationMs"] = storage.pop("expiration")
        options = {**options, "storage": storage}
    return options


# ============================================================================
# CONFIGURATION CLASSES
# ============================================================================

@dataclass(frozen=True)
class EncryptionConfig:
    """Obfuscation applied to stored envelopes"""
    enabled: bool = True
    method: str = "xor"
    key: Optional[str] = "theme-toggler"

    @property
    def effective_method(self) -> str:
        """Method actually applied ('none' when disabled)"""
        return self.method if self.enabled else "none"


@dataclass(frozen=True)
class StorageConfig:
    """Storage backend and expiration policy"""
    backend: str = "local"
    expiration_ms: Optional[int] = None
    encryption: EncryptionConfig = field(default_factory=EncryptionConfig)


@dataclass(frozen=True)
class I18nConfig:
    """Locale selection and translation sources"""
    default_locale: str = "en"
    auto_detect: str = "off"
    translations: Dict[str, TranslationSource] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_TRANSLATIONS)
    )


@dataclass(frozen=True)
class ClassesConfig:
    """Styling hooks handed to the UI binding untouched"""
    container: Any = ""
    button: Any = ""
    menu: Any = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"container": self.container, "button": self.button, "menu": self.menu}


@dataclass(frozen=True)
class TogglerConfig:
    """Complete toggler configuration"""
    root: Any = None
    prepend: bool = False
    debug: bool = False
    i18n: I18nConfig = field(default_factory=I18nConfig)
    classes: ClassesConfig = field(default_factory=ClassesConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @classmethod
    def from_dict(
        cls,
        options: Optional[Dict[str, Any]] = None,
        methods: Optional[Iterable[str]] = None
    ) -> 'TogglerConfig':
        """
        Build configuration from public options merged over defaults

        Args:
            options: Nested option dict (may be None or partial)
            methods: Extra codec method names accepted besides the built-ins

        Returns:
            TogglerConfig instance

        Raises:
            ConfigurationError: If the merged options are invalid
        """
        if options is not None and not isinstance(options, dict):
            raise ConfigurationError(
                f"Options must be a mapping, got {type(options).__name__}",
                context={"type": type(options).__name__}
            )
        merged = deep_merge(default_options(), _apply_aliases(options or {}))

        errors = ConfigValidator.validate(merged, methods)
        if errors:
            raise ConfigurationError(
                "Invalid configuration: " + "; ".join(errors),
                context={"errors": errors}
            )

        i18n = merged["i18n"]
        storage = merged["storage"]
        encryption = storage["encryption"]
        classes = merged["classes"]
        auto_detect = i18n["autoDetect"] or "off"

        return cls(
            root=merged["root"],
            prepend=bool(merged["prepend"]),
            debug=bool(merged["debug"]),
            i18n=I18nConfig(
                default_locale=i18n["default"],
                auto_detect=auto_detect,
                translations=dict(i18n["translations"] or {}),
            ),
            classes=ClassesConfig(
                container=classes.get("container", ""),
                button=classes.get("button", ""),
                menu=classes.get("menu", ""),
            ),
            storage=StorageConfig(
                backend=storage["backend"],
                expiration_ms=storage["expirationMs"],
                encryption=EncryptionConfig(
                    enabled=bool(encryption["enabled"]),
                    method=str(encryption["method"] or "none").lower(),
                    key=encryption.get("key"),
                ),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to public option form"""
        return {
            "root": self.root,
            "prepend": self.prepend,
            "debug": self.debug,
            "i18n": {
                "default": self.i18n.default_locale,
                "autoDetect": self.i18n.auto_detect,
                "translations": copy.deepcopy(self.i18n.translations),
            },
            "classes": self.classes.to_dict(),
            "storage": {
                "backend": self.storage.backend,
                "expirationMs": self.storage.expiration_ms,
                "encryption": {
                    "enabled": self.storage.encryption.enabled,
                    "method": self.storage.encryption.method,
                    "key": self.storage.encryption.key,
                },
            },
        }


# ============================================================================
# VALIDATION
# ============================================================================

class ConfigValidator:
    """Validate merged option dicts"""

    @staticmethod
    def validate(options: Dict[str, Any], methods: Optional[Iterable[str]] = None) -> list[str]:
        """
        Validate configuration

        Args:
            options: Merged option dict
            methods: Extra codec method names accepted besides the built-ins

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        # Sections must be mappings before their keys can be checked
        for section in ("i18n", "classes", "storage"):
            if section in options and not isinstance(options[section], dict):
                errors.append(f"{section} must be a mapping")
        storage = options.get("storage")
        if isinstance(storage, dict) and "encryption" in storage and not isinstance(storage["encryption"], dict):
            errors.append("storage.encryption must be a mapping")
        if errors:
            return errors

        known_methods = set(METHODS) | {str(name).lower() for name in (methods or ())}

        i18n = options.get("i18n") or {}
        if not isinstance(i18n.get("default"), str) or not i18n.get("default"):
            errors.append("i18n.default must be a non-empty string")

        auto_detect = i18n.get("autoDetect") or "off"
        if auto_detect not in AUTO_DETECT_MODES:
            errors.append(f"i18n.autoDetect must be one of {', '.join(AUTO_DETECT_MODES)}")

        translations = i18n.get("translations")
        if translations is not None and not isinstance(translations, dict):
            errors.append("i18n.translations must be a mapping")
        else:
            for locale, source in (translations or {}).items():
                if not isinstance(source, (dict, str)):
                    errors.append(f"i18n.translations.{locale} must be a table or a URL")

        storage = options.get("storage") or {}
        if storage.get("backend") not in BACKENDS:
            errors.append(f"storage.backend must be one of {', '.join(BACKENDS)}")

        expiration = storage.get("expirationMs")
        if expiration is not None and (
            isinstance(expiration, bool) or not isinstance(expiration, int) or expiration <= 0
        ):
            errors.append("storage.expirationMs must be a positive integer or null")

        encryption = storage.get("encryption") or {}
        method = str(encryption.get("method") or "none").lower()
        if method not in known_methods:
            errors.append(f"storage.encryption.method must be one of {', '.join(sorted(known_methods))}")
        elif encryption.get("enabled") and method in KEYED_METHODS and not encryption.get("key"):
            errors.append(f"storage.encryption.key is required for method '{method}'")

        return errors
