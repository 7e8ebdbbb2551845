"""
Unit Tests - Theme Toggler components
=====================================

Tests cover:
- Codec methods and decode failures
- Persistent store (envelope, backends, expiration)
- Theme resolution
- Locale detection and translation fallback
- Configuration and config files
- Error handling
- System preference signal
"""

import json
import logging
import os
import tempfile
import unittest
import urllib.error
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

# Import components to test
import sys
sys.path.insert(0, str(Path(__file__).parent / "src"))

from theme_toggler.codec import Codec
from theme_toggler.config import (
    ConfigValidator,
    EncryptionConfig,
    I18nConfig,
    StorageConfig,
    TogglerConfig,
    default_options,
)
from theme_toggler.config_loader import ConfigLoader
from theme_toggler.error_handling import (
    ConfigurationError,
    DecodeError,
    ErrorHandler,
    ErrorSeverity,
    Result,
    StorageError,
    ThemeTogglerError,
    TranslationLoadError,
    UnknownThemeError,
)
from theme_toggler.locale_resolver import (
    LocaleResolver,
    SystemLocaleEnvironment,
    fetch_json,
    primary_subtag,
)
from theme_toggler.storage import (
    JsonFileBackend,
    MemoryBackend,
    PersistentStore,
    StorageBackends,
    StorageEnvelope,
)
from theme_toggler.system_preference import StaticPreference, SystemPreference, detect_prefers_dark
from theme_toggler.themes import (
    EffectiveTheme,
    IconId,
    ThemeToken,
    label_for,
    menu_labels,
    parse_token,
    resolve,
)


CS_TABLE = {"system": "Systém", "light": "Světlý", "dark": "Tmavý"}

PAYLOADS = [
    "",
    "dark",
    '{"value":"dark","timestamp":null}',
    "Světlý ☾ Tmavý",
]


class FakeClock:
    """Millisecond clock moved by hand"""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class FakeEnvironment:
    def __init__(self, reported=None, document=None):
        self.reported = reported
        self.document = document

    def reported_language(self):
        return self.reported

    def document_language(self):
        return self.document


# ============================================================================
# TEST CODEC
# ============================================================================

class TestCodec(unittest.TestCase):
    """Test reversible storage encodings"""

    def test_round_trip_all_methods(self):
        """decode(encode(p)) == p for every built-in method"""
        codecs = [Codec("none"), Codec("base64"), Codec("hex"), Codec("xor", key="k"), Codec("xor", key="longer key ☾")]
        for codec in codecs:
            for payload in PAYLOADS:
                with self.subTest(codec=codec.method, payload=payload):
                    self.assertEqual(codec.decode(codec.encode(payload)), payload)

    def test_none_is_identity(self):
        self.assertEqual(Codec("none").encode("abc"), "abc")
        self.assertEqual(Codec().decode("abc"), "abc")

    def test_hex_is_lowercase_utf8(self):
        self.assertEqual(Codec("hex").encode("A"), "41")
        self.assertEqual(Codec("hex").encode("é"), "c3a9")
        self.assertEqual(Codec("hex").encode("{}"), "7b7d")

    def test_base64_standard_alphabet(self):
        self.assertEqual(Codec("base64").encode("dark"), "ZGFyaw==")

    def test_xor_output_is_hex(self):
        # 'a' (0x61) ^ 'k' (0x6b) == 0x0a
        self.assertEqual(Codec("xor", key="k").encode("a"), "0a")
        self.assertEqual(Codec("xor", key="k").encode("aa"), "0a0a")

    def test_xor_key_repeats(self):
        codec = Codec("xor", key="ab")
        encoded = codec.encode("abab")
        self.assertEqual(encoded, "00000000")

    def test_method_name_case_insensitive(self):
        self.assertEqual(Codec("XOR", key="k").method, "xor")

    def test_xor_requires_key(self):
        with self.assertRaises(ConfigurationError):
            Codec("xor")
        with self.assertRaises(ConfigurationError):
            Codec("xor", key="")

    def test_unknown_method(self):
        with self.assertRaises(ConfigurationError):
            Codec("rot13")

    def test_malformed_hex(self):
        with self.assertRaises(DecodeError):
            Codec("hex").decode("abc")
        with self.assertRaises(DecodeError):
            Codec("hex").decode("zz")
        with self.assertRaises(DecodeError):
            Codec("xor", key="k").decode("not hex")

    def test_invalid_base64(self):
        with self.assertRaises(DecodeError):
            Codec("base64").decode("not base64!")

    def test_invalid_utf8(self):
        with self.assertRaises(DecodeError):
            Codec("hex").decode("ff")

    def test_pluggable_method(self):
        reverse = (lambda data, key: data[::-1], lambda data, key: data[::-1])
        codec = Codec("reverse", methods={"reverse": reverse})

        self.assertEqual(codec.encode("abc"), "cba")
        self.assertEqual(codec.decode("cba"), "abc")


# ============================================================================
# TEST STORAGE
# ============================================================================

class TestStorageEnvelope(unittest.TestCase):
    """Test envelope serialization"""

    def test_compact_json(self):
        self.assertEqual(StorageEnvelope("dark").to_json(), '{"value":"dark","timestamp":null}')
        self.assertEqual(StorageEnvelope("light", 5).to_json(), '{"value":"light","timestamp":5}')

    def test_from_json(self):
        envelope = StorageEnvelope.from_json('{"value":"dark","timestamp":12}')
        self.assertEqual(envelope, StorageEnvelope("dark", 12))

    def test_from_json_rejects_garbage(self):
        for data in ["not json", "[]", '{"timestamp":1}', '{"value":"dark","timestamp":"soon"}']:
            with self.subTest(data=data):
                with self.assertRaises(DecodeError):
                    StorageEnvelope.from_json(data)

    def test_from_json_rejects_non_finite_timestamp(self):
        for data in ['{"value":"dark","timestamp":NaN}', '{"value":"dark","timestamp":1e400}']:
            with self.subTest(data=data):
                with self.assertRaises(DecodeError):
                    StorageEnvelope.from_json(data)

    def test_expiry_boundaries(self):
        envelope = StorageEnvelope("dark", 1000)
        self.assertFalse(envelope.is_expired(5000, None))
        self.assertFalse(envelope.is_expired(1000 + 99, 100))
        self.assertFalse(envelope.is_expired(1000 + 100, 100))
        self.assertTrue(envelope.is_expired(1000 + 101, 100))

    def test_missing_timestamp_under_policy_is_expired(self):
        self.assertTrue(StorageEnvelope("dark").is_expired(5000, 100))


class TestPersistentStore(unittest.TestCase):
    """Test store round trips, expiration and fail-closed reads"""

    ENCRYPTIONS = [
        EncryptionConfig(enabled=False),
        EncryptionConfig(enabled=True, method="none", key=None),
        EncryptionConfig(enabled=True, method="base64", key=None),
        EncryptionConfig(enabled=True, method="hex", key=None),
        EncryptionConfig(enabled=True, method="xor", key="k"),
    ]

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.clock = FakeClock()

    def tearDown(self):
        self.tmpdir.cleanup()

    def _backends(self):
        return {
            "session": MemoryBackend(),
            "local": JsonFileBackend(Path(self.tmpdir.name) / "storage.json"),
        }

    def test_write_then_read_every_combination(self):
        """read(write(k, v)) == v for every backend and encryption method"""
        for name, backend in self._backends().items():
            for encryption in self.ENCRYPTIONS:
                for expiration in (None, 3_600_000):
                    config = StorageConfig(backend=name, expiration_ms=expiration, encryption=encryption)
                    store = PersistentStore(backend, config, clock=self.clock)
                    with self.subTest(backend=name, method=encryption.effective_method, expiration=expiration):
                        store.write("useTheme", "dark")
                        self.assertEqual(store.read("useTheme"), "dark")

    def test_plain_layout(self):
        backend = MemoryBackend()
        store = PersistentStore(backend, StorageConfig(encryption=EncryptionConfig(enabled=False)))
        store.write("useTheme", "light")

        self.assertEqual(backend.get("useTheme"), '{"value":"light","timestamp":null}')

    def test_timestamp_only_with_policy(self):
        backend = MemoryBackend()
        config = StorageConfig(expiration_ms=1000, encryption=EncryptionConfig(enabled=False))
        PersistentStore(backend, config, clock=self.clock).write("useTheme", "light")

        self.assertEqual(json.loads(backend.get("useTheme"))["timestamp"], self.clock.now)

    def test_encoded_layout_is_not_plain(self):
        backend = MemoryBackend()
        store = PersistentStore(backend, StorageConfig(encryption=EncryptionConfig(method="xor", key="k")))
        store.write("useTheme", "dark")

        raw = backend.get("useTheme")
        self.assertNotIn("dark", raw)
        self.assertEqual(Codec("xor", key="k").decode(raw), '{"value":"dark","timestamp":null}')

    def test_read_absent(self):
        store = PersistentStore(MemoryBackend(), StorageConfig())
        self.assertIsNone(store.read("useTheme"))

    def test_expired_value_is_deleted(self):
        """Read after T+1 ms returns None and removes the key"""
        backend = MemoryBackend()
        store = PersistentStore(backend, StorageConfig(expiration_ms=3_600_000), clock=self.clock)
        store.write("useTheme", "dark")

        self.clock.advance(3_600_000 + 1)

        self.assertIsNone(store.read("useTheme"))
        self.assertNotIn("useTheme", backend)

    def test_value_inside_window(self):
        """Read at T-1 ms still returns the value"""
        backend = MemoryBackend()
        store = PersistentStore(backend, StorageConfig(expiration_ms=3_600_000), clock=self.clock)
        store.write("useTheme", "dark")

        self.clock.advance(3_600_000 - 1)

        self.assertEqual(store.read("useTheme"), "dark")
        self.assertIn("useTheme", backend)

    def test_corrupt_payload_reads_as_absent(self):
        backend = MemoryBackend({"useTheme": "garbage"})
        for encryption in self.ENCRYPTIONS:
            store = PersistentStore(backend, StorageConfig(encryption=encryption))
            with self.subTest(method=encryption.effective_method):
                self.assertIsNone(store.read("useTheme"))

    def test_non_finite_timestamp_reads_as_absent(self):
        config = StorageConfig(expiration_ms=1000, encryption=EncryptionConfig(enabled=False))
        for raw in ['{"value":"dark","timestamp":NaN}', '{"value":"dark","timestamp":1e400}']:
            store = PersistentStore(MemoryBackend({"useTheme": raw}), config, clock=self.clock)
            with self.subTest(raw=raw):
                self.assertIsNone(store.read("useTheme"))

    def test_extra_codec_method(self):
        reverse = (lambda data, key: data[::-1], lambda data, key: data[::-1])
        backend = MemoryBackend()
        config = StorageConfig(encryption=EncryptionConfig(method="reverse", key=None))
        store = PersistentStore(backend, config, methods={"reverse": reverse})
        store.write("useTheme", "dark")

        self.assertEqual(backend.get("useTheme"), '{"value":"dark","timestamp":null}'[::-1])
        self.assertEqual(store.read("useTheme"), "dark")

    def test_wrong_key_reads_as_absent(self):
        backend = MemoryBackend()
        PersistentStore(backend, StorageConfig(encryption=EncryptionConfig(method="xor", key="a"))).write("t", "dark")
        store = PersistentStore(backend, StorageConfig(encryption=EncryptionConfig(method="xor", key="b")))

        self.assertIsNone(store.read("t"))

    def test_backend_failure_raises_storage_error(self):
        backend = Mock()
        backend.get.side_effect = OSError("disk gone")
        backend.set.side_effect = OSError("disk gone")
        store = PersistentStore(backend, StorageConfig())

        with self.assertRaises(StorageError):
            store.read("useTheme")
        with self.assertRaises(StorageError):
            store.write("useTheme", "dark")

    def test_bad_encryption_config(self):
        with self.assertRaises(ConfigurationError):
            PersistentStore(MemoryBackend(), StorageConfig(encryption=EncryptionConfig(method="xor", key="")))


class TestJsonFileBackend(unittest.TestCase):
    """Test the on-disk backend"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = Path(self.tmpdir.name) / "nested" / "storage.json"

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_persists_across_instances(self):
        JsonFileBackend(self.path).set("useTheme", "abc")
        self.assertEqual(JsonFileBackend(self.path).get("useTheme"), "abc")

    def test_missing_file_is_empty(self):
        self.assertIsNone(JsonFileBackend(self.path).get("useTheme"))

    def test_corrupt_file_is_empty(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        backend = JsonFileBackend(self.path)

        self.assertIsNone(backend.get("useTheme"))
        backend.set("useTheme", "abc")
        self.assertEqual(backend.get("useTheme"), "abc")

    def test_delete_keeps_other_keys(self):
        backend = JsonFileBackend(self.path)
        backend.set("a", "1")
        backend.set("b", "2")
        backend.delete("a")
        backend.delete("missing")

        self.assertIsNone(backend.get("a"))
        self.assertEqual(backend.get("b"), "2")

    def test_named_backends(self):
        local, session = MemoryBackend(), MemoryBackend()
        backends = StorageBackends(local=local, session=session)

        self.assertIs(backends.get("local"), local)
        self.assertIs(backends.get("session"), session)


# ============================================================================
# TEST THEME RESOLUTION
# ============================================================================

class TestThemeResolution(unittest.TestCase):
    """Test resolve() totality and labels"""

    TABLES = {
        "full": CS_TABLE,
        "partial": {"light": "Světlý"},
        "empty": {},
    }

    def test_all_tokens_and_tables(self):
        for name, table in self.TABLES.items():
            for dark in (True, False):
                with self.subTest(table=name, dark=dark):
                    system = resolve("system", dark, table)
                    light = resolve("light", dark, table)
                    dark_theme = resolve("dark", dark, table)

                    self.assertEqual(system.effective, EffectiveTheme.DARK if dark else EffectiveTheme.LIGHT)
                    self.assertEqual(light.effective, EffectiveTheme.LIGHT)
                    self.assertEqual(dark_theme.effective, EffectiveTheme.DARK)

                    self.assertEqual(system.key, ThemeToken.SYSTEM)
                    self.assertEqual(system.icon, IconId.HALF)
                    self.assertEqual(light.icon, IconId.SUN)
                    self.assertEqual(dark_theme.icon, IconId.MOON)

    def test_labels_fall_back_to_english(self):
        self.assertEqual(resolve("system", False, {}).label, "System")
        self.assertEqual(resolve("light", False, {"light": "Světlý"}).label, "Světlý")
        self.assertEqual(resolve("dark", False, {"light": "Světlý"}).label, "Dark")
        self.assertEqual(resolve("dark", False, None).label, "Dark")
        self.assertEqual(label_for({"dark": ""}, ThemeToken.DARK), "Dark")

    def test_unknown_token(self):
        for token in ["sepia", "", None, "DARK", 3]:
            with self.subTest(token=token):
                with self.assertRaises(UnknownThemeError):
                    resolve(token, True, CS_TABLE)

    def test_parse_token(self):
        self.assertIs(parse_token("dark"), ThemeToken.DARK)
        self.assertIs(parse_token(ThemeToken.LIGHT), ThemeToken.LIGHT)

    def test_menu_labels_order(self):
        self.assertEqual(list(menu_labels({})), ["system", "light", "dark"])
        self.assertEqual(menu_labels(CS_TABLE)["dark"], "Tmavý")

    def test_to_dict(self):
        self.assertEqual(
            resolve("dark", False, {}).to_dict(),
            {"effective": "dark", "key": "dark", "icon": "bi bi-moon-fill", "label": "Dark"},
        )


# ============================================================================
# TEST LOCALE RESOLVER
# ============================================================================

class TestLocaleDetection(unittest.TestCase):
    """Test detect_locale() modes"""

    def _resolver(self, mode, reported=None, document=None):
        config = I18nConfig(default_locale="en", auto_detect=mode)
        return LocaleResolver(config, FakeEnvironment(reported, document), fetcher=Mock())

    def test_off_uses_default(self):
        self.assertEqual(self._resolver("off", reported="cs-CZ").detect_locale(), "en")

    def test_browser_primary_subtag(self):
        self.assertEqual(self._resolver("browser", reported="cs-CZ").detect_locale(), "cs")
        self.assertEqual(self._resolver("browser", reported="de_AT.UTF-8").detect_locale(), "de")

    def test_browser_unavailable(self):
        self.assertEqual(self._resolver("browser").detect_locale(), "en")
        self.assertEqual(self._resolver("browser", reported="  ").detect_locale(), "en")

    def test_document_language(self):
        self.assertEqual(self._resolver("document", document="cs").detect_locale(), "cs")
        self.assertEqual(self._resolver("document").detect_locale(), "en")

    def test_primary_subtag(self):
        self.assertEqual(primary_subtag("en-US"), "en")
        self.assertEqual(primary_subtag("pt_BR.UTF-8@euro"), "pt")
        self.assertIsNone(primary_subtag(""))

    def test_system_environment_reads_env(self):
        with patch.dict(os.environ, {"LC_ALL": "fr_FR.UTF-8"}):
            self.assertEqual(SystemLocaleEnvironment().reported_language(), "fr_FR.UTF-8")
        self.assertEqual(SystemLocaleEnvironment(document_language="cs").document_language(), "cs")


class TestTranslationLoading(unittest.TestCase):
    """Test the remote -> inline -> default -> empty chain"""

    def _resolver(self, translations, fetcher=None, default="en"):
        config = I18nConfig(default_locale=default, translations=translations)
        return LocaleResolver(config, FakeEnvironment(), fetcher=fetcher or Mock())

    def test_inline_table(self):
        resolver = self._resolver({"cs": CS_TABLE})
        self.assertEqual(resolver.load_translations("cs"), CS_TABLE)

    def test_remote_table(self):
        fetcher = Mock(return_value=CS_TABLE)
        resolver = self._resolver({"cs": "https://example.test/cs.json"}, fetcher)

        self.assertEqual(resolver.load_translations("cs"), CS_TABLE)
        fetcher.assert_called_once_with("https://example.test/cs.json")

    def test_remote_failure_falls_back_to_default(self):
        fetcher = Mock(side_effect=TranslationLoadError("HTTP 404"))
        en = {"system": "System", "light": "Light", "dark": "Dark"}
        resolver = self._resolver({"cs": "https://example.test/cs.json", "en": en}, fetcher)

        self.assertEqual(resolver.load_translations("cs"), en)

    def test_remote_non_object_falls_back(self):
        resolver = self._resolver({"cs": "https://example.test/cs.json"}, Mock(return_value=["x"]))
        self.assertEqual(resolver.load_translations("cs"), {})

    def test_unexpected_fetcher_error_falls_back(self):
        resolver = self._resolver({"cs": "https://example.test/cs.json"}, Mock(side_effect=RuntimeError("boom")))
        self.assertEqual(resolver.load_translations("cs"), {})

    def test_unknown_locale_uses_default(self):
        resolver = self._resolver({"en": {"system": "Sys"}})
        self.assertEqual(resolver.load_translations("fr"), {"system": "Sys"})

    def test_nothing_configured_returns_empty(self):
        """Unknown locale and no default table terminates with {}"""
        self.assertEqual(self._resolver({"cs": CS_TABLE}).load_translations("fr"), {})
        self.assertEqual(self._resolver({}).load_translations("fr"), {})

    def test_default_locale_url(self):
        fetcher = Mock(return_value={"system": "Sys"})
        resolver = self._resolver({"en": "https://example.test/en.json"}, fetcher)

        self.assertEqual(resolver.load_translations("fr"), {"system": "Sys"})

    def test_failing_default_url_fetched_once(self):
        fetcher = Mock(side_effect=TranslationLoadError("down"))
        resolver = self._resolver({"en": "https://example.test/en.json"}, fetcher)

        self.assertEqual(resolver.load_translations("en"), {})
        self.assertEqual(fetcher.call_count, 1)


class TestFetchJson(unittest.TestCase):
    """Test the urllib translation fetcher"""

    def _response(self, status=200, body=b"{}"):
        resp = MagicMock()
        resp.status = status
        resp.read.return_value = body
        cm = MagicMock()
        cm.__enter__.return_value = resp
        return cm

    @patch("urllib.request.urlopen")
    def test_success(self, urlopen):
        urlopen.return_value = self._response(body=json.dumps(CS_TABLE).encode("utf-8"))
        self.assertEqual(fetch_json("https://example.test/cs.json"), CS_TABLE)

    @patch("urllib.request.urlopen")
    def test_non_2xx(self, urlopen):
        urlopen.return_value = self._response(status=404)
        with self.assertRaises(TranslationLoadError):
            fetch_json("https://example.test/cs.json")

    @patch("urllib.request.urlopen")
    def test_network_error(self, urlopen):
        urlopen.side_effect = urllib.error.URLError("offline")
        with self.assertRaises(TranslationLoadError):
            fetch_json("https://example.test/cs.json")

    @patch("urllib.request.urlopen")
    def test_bad_json(self, urlopen):
        urlopen.return_value = self._response(body=b"<html>")
        with self.assertRaises(TranslationLoadError):
            fetch_json("https://example.test/cs.json")


# ============================================================================
# TEST CONFIGURATION
# ============================================================================

class TestConfiguration(unittest.TestCase):
    """Test configuration classes"""

    def test_defaults(self):
        config = TogglerConfig.from_dict()

        self.assertIsNone(config.root)
        self.assertFalse(config.prepend)
        self.assertEqual(config.i18n.default_locale, "en")
        self.assertEqual(config.i18n.auto_detect, "off")
        self.assertEqual(config.i18n.translations["en"]["dark"], "Dark")
        self.assertEqual(config.storage.backend, "local")
        self.assertIsNone(config.storage.expiration_ms)
        self.assertTrue(config.storage.encryption.enabled)
        self.assertEqual(config.storage.encryption.method, "xor")

    def test_partial_options_merge_over_defaults(self):
        config = TogglerConfig.from_dict({"storage": {"encryption": {"method": "hex"}}})

        self.assertEqual(config.storage.encryption.method, "hex")
        self.assertTrue(config.storage.encryption.enabled)
        self.assertEqual(config.storage.backend, "local")
        self.assertEqual(config.i18n.default_locale, "en")

    def test_translations_replaced_wholesale(self):
        config = TogglerConfig.from_dict({"i18n": {"translations": {"cs": CS_TABLE}}})

        self.assertEqual(config.i18n.translations, {"cs": CS_TABLE})
        self.assertEqual(config.i18n.default_locale, "en")

    def test_legacy_aliases(self):
        config = TogglerConfig.from_dict({"storage": {"type": "session", "expiration": 1000}})

        self.assertEqual(config.storage.backend, "session")
        self.assertEqual(config.storage.expiration_ms, 1000)

    def test_auto_detect_false_means_off(self):
        self.assertEqual(TogglerConfig.from_dict({"i18n": {"autoDetect": False}}).i18n.auto_detect, "off")

    def test_xor_without_key(self):
        with self.assertRaises(ConfigurationError):
            TogglerConfig.from_dict({"storage": {"encryption": {"method": "xor", "key": ""}}})

    def test_xor_without_key_when_disabled(self):
        config = TogglerConfig.from_dict({"storage": {"encryption": {"enabled": False, "key": None}}})
        self.assertEqual(config.storage.encryption.effective_method, "none")

    def test_invalid_values(self):
        bad = [
            {"storage": {"backend": "cookie"}},
            {"storage": {"expirationMs": -5}},
            {"storage": {"expirationMs": True}},
            {"storage": {"encryption": {"method": "aes"}}},
            {"i18n": {"autoDetect": "geoip"}},
            {"i18n": {"default": ""}},
            {"i18n": {"translations": {"cs": 5}}},
            {"i18n": "cs"},
            {"classes": "btn"},
            {"storage": "session"},
            {"storage": {"encryption": "xor"}},
        ]
        for options in bad:
            with self.subTest(options=options):
                with self.assertRaises(ConfigurationError):
                    TogglerConfig.from_dict(options)

    def test_scalar_sections_are_reported(self):
        options = default_options()
        options["storage"] = {"backend": "local", "encryption": "xor"}
        options["i18n"] = "cs"

        self.assertEqual(
            ConfigValidator.validate(options),
            ["i18n must be a mapping", "storage.encryption must be a mapping"],
        )

    def test_extra_codec_method_names(self):
        options = {"storage": {"encryption": {"method": "Reverse"}}}

        with self.assertRaises(ConfigurationError):
            TogglerConfig.from_dict(options)
        config = TogglerConfig.from_dict(options, methods=["reverse"])
        self.assertEqual(config.storage.encryption.method, "reverse")

    def test_non_mapping_options(self):
        with self.assertRaises(ConfigurationError):
            TogglerConfig.from_dict(["root"])

    def test_validator_reports_all_problems(self):
        options = default_options()
        options["storage"]["backend"] = "cookie"
        options["storage"]["expirationMs"] = 0

        self.assertEqual(len(ConfigValidator.validate(options)), 2)

    def test_to_dict_round_trip(self):
        config = TogglerConfig.from_dict({
            "prepend": True,
            "classes": {"button": "btn-sm"},
            "storage": {"backend": "session", "expirationMs": 60000},
        })
        self.assertEqual(TogglerConfig.from_dict(config.to_dict()), config)


class TestConfigLoader(unittest.TestCase):
    """Test YAML / JSON config files"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmpdir.name)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_load_yaml(self):
        path = self.dir / "theme_toggler.yaml"
        path.write_text(
            "storage:\n"
            "  backend: session\n"
            "  expirationMs: 3600000\n"
            "  encryption:\n"
            "    method: base64\n"
            "i18n:\n"
            "  autoDetect: browser\n",
            encoding="utf-8",
        )
        config = ConfigLoader.load_from_file(path)

        self.assertEqual(config.storage.backend, "session")
        self.assertEqual(config.storage.expiration_ms, 3600000)
        self.assertEqual(config.storage.encryption.method, "base64")
        self.assertEqual(config.i18n.auto_detect, "browser")

    def test_load_json(self):
        path = self.dir / "theme_toggler.json"
        path.write_text(json.dumps({"i18n": {"translations": {"cs": CS_TABLE}}}), encoding="utf-8")

        self.assertEqual(ConfigLoader.load_from_file(path).i18n.translations["cs"], CS_TABLE)

    def test_empty_yaml_is_defaults(self):
        path = self.dir / "theme_toggler.yml"
        path.write_text("", encoding="utf-8")

        self.assertEqual(ConfigLoader.load_from_file(path), TogglerConfig())

    def test_errors(self):
        (self.dir / "bad.yaml").write_text("storage: [unclosed", encoding="utf-8")
        (self.dir / "list.yaml").write_text("- a\n- b\n", encoding="utf-8")
        (self.dir / "conf.toml").write_text("", encoding="utf-8")

        for name in ["missing.yaml", "bad.yaml", "list.yaml", "conf.toml"]:
            with self.subTest(name=name):
                with self.assertRaises(ConfigurationError):
                    ConfigLoader.load_from_file(self.dir / name)

    def test_scalar_section_in_file(self):
        path = self.dir / "theme_toggler.yaml"
        path.write_text("storage: session\n", encoding="utf-8")

        with self.assertRaises(ConfigurationError):
            ConfigLoader.load_from_file(path)

    def test_save_and_reload(self):
        config = TogglerConfig.from_dict({"i18n": {"translations": {"cs": CS_TABLE}}, "prepend": True})
        for suffix in (".yaml", ".json"):
            with self.subTest(suffix=suffix):
                path = self.dir / "out" / f"theme_toggler{suffix}"
                ConfigLoader.save_to_file(config, path)
                self.assertEqual(ConfigLoader.load_from_file(path), config)

    def test_find_config_file(self):
        self.assertIsNone(ConfigLoader.find_config_file([self.dir]))
        (self.dir / "theme_toggler.json").write_text("{}", encoding="utf-8")
        self.assertEqual(ConfigLoader.find_config_file([self.dir]), self.dir / "theme_toggler.json")


# ============================================================================
# TEST ERROR HANDLING
# ============================================================================

class TestErrorHandling(unittest.TestCase):
    """Test error handling system"""

    def setUp(self):
        self.mock_logger = Mock()
        self.error_handler = ErrorHandler(self.mock_logger)

    def test_error_severities(self):
        self.assertEqual(ConfigurationError("x").severity, ErrorSeverity.CRITICAL)
        self.assertEqual(DecodeError("x").severity, ErrorSeverity.WARNING)
        self.assertEqual(StorageError("x").severity, ErrorSeverity.ERROR)
        self.assertIn("saved", StorageError("x").user_message)

    def test_error_to_dict(self):
        data = UnknownThemeError("Unknown theme: 'sepia'", context={"token": "sepia"}).to_dict()

        self.assertEqual(data["type"], "UnknownThemeError")
        self.assertEqual(data["context"], {"token": "sepia"})

    def test_capture_success(self):
        result = self.error_handler.capture("Test", "op", lambda x: x * 2, 21)

        self.assertTrue(result.ok)
        self.assertEqual(result.value, 42)
        self.assertEqual(self.error_handler.get_recent_errors(), [])

    def test_capture_failure_converts_foreign_errors(self):
        def failing():
            raise ValueError("bad")

        result = self.error_handler.capture("Test", "op", failing)

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, ThemeTogglerError)
        self.assertIn("ValueError", result.error.message)
        self.assertEqual(result.unwrap_or("fallback"), "fallback")
        self.mock_logger.log.assert_called_once()
        self.assertEqual(self.mock_logger.log.call_args[0][0], logging.ERROR)

    def test_log_level_follows_severity(self):
        self.error_handler.handle_error(DecodeError("bad payload"), notify_user=False)
        self.assertEqual(self.mock_logger.log.call_args[0][0], logging.WARNING)

    def test_history_is_bounded(self):
        handler = ErrorHandler(self.mock_logger, max_history=3)
        for i in range(5):
            handler.handle_error(ThemeTogglerError(f"Error {i}"), notify_user=False)

        self.assertEqual([e.message for e in handler.get_recent_errors(10)], ["Error 2", "Error 3", "Error 4"])

    def test_on_error_callback(self):
        callback = Mock()
        self.error_handler.on_error = callback
        self.error_handler.handle_error(ThemeTogglerError("x"))

        callback.assert_called_once()

    def test_result_helpers(self):
        self.assertTrue(Result.success(1).ok)
        self.assertEqual(Result.failure(DecodeError("x")).unwrap_or(2), 2)


# ============================================================================
# TEST SYSTEM PREFERENCE
# ============================================================================

class TestSystemPreference(unittest.TestCase):
    """Test OS preference signal"""

    def test_poll_notifies_on_change(self):
        detector = Mock(side_effect=[False, False, True])
        preference = SystemPreference(detector=detector)
        callback = Mock()
        preference.on_preference_change(callback)

        self.assertFalse(preference.prefers_dark())
        self.assertFalse(preference.poll())
        self.assertTrue(preference.poll())

        callback.assert_called_once_with(True)
        self.assertTrue(preference.prefers_dark())

    def test_first_poll_does_not_notify(self):
        preference = SystemPreference(detector=lambda: True)
        callback = Mock()
        preference.on_preference_change(callback)

        self.assertFalse(preference.poll())
        callback.assert_not_called()

    def test_static_preference(self):
        preference = StaticPreference(False)
        callback = Mock()
        preference.on_preference_change(callback)

        preference.set(True)
        preference.set(True)

        self.assertTrue(preference.prefers_dark())
        callback.assert_called_once_with(True)

    @patch("theme_toggler.system_preference._run")
    @patch("theme_toggler.system_preference.platform.system", return_value="Linux")
    def test_detect_gnome_dark(self, _system, run):
        run.return_value = "'prefer-dark'"
        self.assertTrue(detect_prefers_dark())

    @patch("theme_toggler.system_preference._run", return_value=None)
    @patch("theme_toggler.system_preference.platform.system", return_value="Linux")
    def test_detect_falls_back_to_light(self, _system, _run):
        with patch.dict(os.environ, {}, clear=True):
            self.assertFalse(detect_prefers_dark())

    @patch("theme_toggler.system_preference._run", return_value="Dark")
    @patch("theme_toggler.system_preference.platform.system", return_value="Darwin")
    def test_detect_macos(self, _system, _run):
        self.assertTrue(detect_prefers_dark())


if __name__ == "__main__":
    unittest.main()
