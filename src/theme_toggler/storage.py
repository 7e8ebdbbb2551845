"""
Persistent Store
================

Stores the theme preference in a key/value backend, wrapped in an
envelope with an optional write timestamp and obfuscated by the codec.

Features:
- Lazy expiration (checked on read, expired keys are deleted)
- Fail-closed reads: anything unreadable is treated as absent
- Two backend scopes: "local" (JSON file) and "session" (memory)
"""

# ============================================================================
# MODULE OVERVIEW
# ============================================================================
# Purpose:
#   storage.py
#
# Connected modules (direct imports):
#   codec, config, error_handling, interfaces
#
# Notes:
#   - Envelope JSON is compact: {"value":"dark","timestamp":null}
# ============================================================================

import json
import logging
import math
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from .codec import Codec, Decoder, Encoder
from .config import StorageConfig
from .error_handling import DecodeError, StorageError
from .interfaces import IStorageBackend

logger = logging.getLogger("theme_toggler.storage")

Clock = Callable[[], int]


def now_ms() -> int:
    """Wall clock in milliseconds since epoch"""
    return int(time.time() * 1000)


# ============================================================================
# ENVELOPE
# ============================================================================

@dataclass(frozen=True)
class StorageEnvelope:
    """A stored value with its write time (ms) when expiration is enabled"""
    value: str
    timestamp: Optional[int] = None

    def to_json(self) -> str:
        return json.dumps(
            {"value": self.value, "timestamp": self.timestamp},
            separators=(",", ":"),
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, data: str) -> 'StorageEnvelope':
        """Parse an envelope; raises DecodeError if malformed"""
        try:
            payload = json.loads(data)
        except ValueError as e:
            raise DecodeError(f"Envelope is not valid JSON: {e}")

        if not isinstance(payload, dict) or "value" not in payload:
            raise DecodeError("Envelope is missing 'value'", context={"type": type(payload).__name__})

        timestamp = payload.get("timestamp")
        if timestamp is not None and (isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))):
            raise DecodeError("Envelope timestamp is not a number", context={"timestamp": repr(timestamp)})
        if isinstance(timestamp, float) and not math.isfinite(timestamp):
            raise DecodeError("Envelope timestamp is not finite", context={"timestamp": repr(timestamp)})

        value = payload["value"]
        return cls(
            value=value if isinstance(value, str) else json.dumps(value),
            timestamp=int(timestamp) if timestamp is not None else None,
        )

    def is_expired(self, now: int, expiration_ms: Optional[int]) -> bool:
        if expiration_ms is None:
            return False
        # Written without a policy, read with one: no age to trust
        if self.timestamp is None:
            return True
        return now - self.timestamp > expiration_ms


# ============================================================================
# BACKENDS
# ============================================================================

class MemoryBackend:
    """Process-lifetime storage (session scope)"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class JsonFileBackend:
    """
    Key/value pairs kept in one JSON object file (local scope)

    A missing or corrupt file reads as empty. Writes replace the whole file
    through a temporary sibling so a crash never leaves half a file behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except ValueError as e:
            logger.warning("Ignoring corrupt storage file %s: %s", self.path, e)
            return {}
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}", context={"path": str(self.path)})
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}", context={"path": str(self.path)})

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)


def default_storage_path() -> Path:
    return Path.home() / ".theme_toggler" / "storage.json"


@dataclass
class StorageBackends:
    """The two named backends a store can be configured with"""
    local: IStorageBackend = field(default_factory=lambda: JsonFileBackend(default_storage_path()))
    session: IStorageBackend = field(default_factory=MemoryBackend)

    def get(self, name: str) -> IStorageBackend:
        if name == "session":
            return self.session
        return self.local


# ============================================================================
# STORE
# ============================================================================

class PersistentStore:
    """
    Envelope + codec + expiration over a backend

    Usage:
        store = PersistentStore(MemoryBackend(), StorageConfig(expiration_ms=3_600_000))
        store.write("useTheme", "dark")
        store.read("useTheme")   # "dark", or None once an hour has passed
    """

    def __init__(
        self,
        backend: IStorageBackend,
        config: Optional[StorageConfig] = None,
        clock: Optional[Clock] = None,
        methods: Optional[Dict[str, Tuple[Encoder, Decoder]]] = None
    ):
        """
        Initialize store

        Args:
            backend: IStorageBackend implementation
            config: Storage configuration (defaults if None)
            clock: Millisecond clock (wall clock if None)
            methods: Extra codec methods, name -> (encoder, decoder)

        Raises:
            ConfigurationError: If the encryption settings are unusable
        """
        self.backend = backend
        self.config = config or StorageConfig()
        self.clock = clock or now_ms
        encryption = self.config.encryption
        self.codec = Codec(encryption.effective_method, encryption.key, methods)

    def write(self, key: str, value: str) -> None:
        """
        Store *value* under *key*

        Raises:
            StorageError: If the backend cannot be written
        """
        timestamp = self.clock() if self.config.expiration_ms is not None else None
        data = self.codec.encode(StorageEnvelope(value, timestamp).to_json())
        try:
            self.backend.set(key, data)
        except OSError as e:
            raise StorageError(f"Failed to store {key}: {e}", context={"key": key})
        logger.debug("Saved key %s (%s, encoding=%s)", key, self.config.backend, self.codec.method)

    def read(self, key: str) -> Optional[str]:
        """
        Read the value stored under *key*

        Returns:
            The value, or None if absent, unreadable or expired

        Raises:
            StorageError: If the backend cannot be read
        """
        try:
            raw = self.backend.get(key)
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}", context={"key": key})
        if not raw:
            return None

        try:
            envelope = StorageEnvelope.from_json(self.codec.decode(raw))
        except DecodeError as e:
            logger.warning("Discarding unreadable value for %s: %s", key, e.message)
            return None

        if envelope.is_expired(self.clock(), self.config.expiration_ms):
            self.remove(key)
            logger.info("Item %s has expired.", key)
            return None

        return envelope.value

    def remove(self, key: str) -> None:
        try:
            self.backend.delete(key)
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}", context={"key": key})
