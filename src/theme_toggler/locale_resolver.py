"""
Locale Resolution
=================

Picks the active language tag and loads its translation table.

Fallback chain for ``load_translations(locale)``:
    remote URL -> inline table -> default locale's table -> {}

No failure escapes this module: a broken URL or malformed payload only
moves resolution one step down the chain.
"""

from __future__ import annotations

import json
import locale as _locale
import logging
import os
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, Optional

from .config import I18nConfig
from .error_handling import TranslationLoadError
from .interfaces import Fetcher, ILocaleEnvironment

logger = logging.getLogger("theme_toggler.locale")

USER_AGENT = "Theme-Toggler"


# ============================================================================
# REMOTE SOURCE
# ============================================================================

def fetch_json(url: str, timeout_s: float = 5.0) -> Any:
    """
    GET *url* and decode its JSON body

    Raises:
        TranslationLoadError: On network failure, non-2xx status or bad JSON
    """
    req = urllib.request.Request(
        url,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        method="GET",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout_s) as resp:
            status = getattr(resp, "status", 200)
            if not 200 <= status < 300:
                raise TranslationLoadError(f"HTTP {status} for {url}", context={"url": url, "status": status})
            return json.loads(resp.read().decode("utf-8"))
    except TranslationLoadError:
        raise
    except (urllib.error.URLError, TimeoutError, OSError, ValueError) as e:
        raise TranslationLoadError(f"Failed to load translations from {url}: {e}", context={"url": url})


# ============================================================================
# ENVIRONMENT
# ============================================================================

class SystemLocaleEnvironment:
    """
    Language information from the running process

    reported_language() plays the role of the browser's language: it comes
    from the locale environment variables, then from the C library locale.
    document_language() is whatever the host application declares.
    """

    ENV_VARS = ("LC_ALL", "LC_MESSAGES", "LANG")

    def __init__(self, document_language: Optional[str] = None):
        self._document_language = document_language

    def reported_language(self) -> Optional[str]:
        for var in self.ENV_VARS:
            value = os.environ.get(var)
            if value and value not in ("C", "POSIX"):
                return value
        try:
            lang, _ = _locale.getlocale()
        except ValueError:
            return None
        return lang

    def document_language(self) -> Optional[str]:
        return self._document_language


def primary_subtag(tag: Optional[str]) -> Optional[str]:
    """'en' from 'en-US', 'en_US.UTF-8' or 'en'"""
    if not tag:
        return None
    base = tag.split(".", 1)[0].split("@", 1)[0]
    primary = base.replace("_", "-").split("-", 1)[0].strip().lower()
    return primary or None


# ============================================================================
# RESOLVER
# ============================================================================

class LocaleResolver:
    """Detect the language and load translations with fallback"""

    def __init__(
        self,
        config: Optional[I18nConfig] = None,
        environment: Optional[ILocaleEnvironment] = None,
        fetcher: Fetcher = fetch_json
    ):
        """
        Args:
            config: i18n configuration
            environment: ILocaleEnvironment (process locale if None)
            fetcher: Callable returning parsed JSON for a URL
        """
        self.config = config or I18nConfig()
        self.environment = environment or SystemLocaleEnvironment()
        self.fetcher = fetcher

    def detect_locale(self) -> str:
        """Active language tag according to ``auto_detect``"""
        mode = self.config.auto_detect or "off"
        default = self.config.default_locale

        if mode == "browser":
            detected = primary_subtag(self._ask(self.environment.reported_language)) or default
            logger.debug("Detected language from environment: %s", detected)
        elif mode == "document":
            detected = self._ask(self.environment.document_language) or default
            logger.debug("Detected language from document: %s", detected)
        else:
            detected = default
            logger.debug("Language auto-detection is disabled. Using default: %s", default)

        return detected

    @staticmethod
    def _ask(probe: Callable[[], Optional[str]]) -> Optional[str]:
        try:
            value = probe()
        except (OSError, ValueError) as e:
            logger.warning("Language detection failed: %s", e)
            return None
        return value if isinstance(value, str) and value.strip() else None

    def load_translations(self, locale: str) -> Dict[str, str]:
        """
        Translation table for *locale*

        Never raises; returns {} when nothing usable is configured.
        """
        translations = self.config.translations or {}
        source = translations.get(locale)

        if isinstance(source, str):
            table = self._fetch(source)
            if table is not None:
                logger.info("Translations loaded successfully for language: %s", locale)
                return table
        elif isinstance(source, dict):
            logger.debug("Translations found in config for language: %s", locale)
            return source

        logger.info("No usable translations for language: %s. Using default (%s).",
                    locale, self.config.default_locale)
        return self._default_table(locale)

    def _default_table(self, requested: str) -> Dict[str, str]:
        default = self.config.default_locale
        source = (self.config.translations or {}).get(default)
        if isinstance(source, dict):
            return source
        # Only fetch the default here if it was not the URL that just failed
        if isinstance(source, str) and requested != default:
            table = self._fetch(source)
            if table is not None:
                return table
        return {}

    def _fetch(self, url: str) -> Optional[Dict[str, str]]:
        try:
            payload = self.fetcher(url)
        except TranslationLoadError as e:
            logger.warning("%s", e.message)
            return None
        except Exception as e:
            logger.warning("Failed to load translations from %s: %s", url, e)
            return None

        if not isinstance(payload, dict):
            logger.warning("Translations from %s are not an object", url)
            return None
        return {str(k): v for k, v in payload.items() if isinstance(v, str)}
