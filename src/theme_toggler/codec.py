"""
Storage Codec
=============

Reversible encodings applied to stored theme data.

These are obfuscation methods, not ciphers: anyone with the key (or none)
can read the payload back.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Callable, Dict, Optional, Tuple

from .error_handling import ConfigurationError, DecodeError

Encoder = Callable[[str, Optional[str]], str]
Decoder = Callable[[str, Optional[str]], str]

_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")


def _to_hex(data: bytes) -> str:
    return "".join(f"{byte:02x}" for byte in data)


def _from_hex(data: str) -> bytes:
    if not _HEX_RE.fullmatch(data):
        raise DecodeError("Malformed hex payload", context={"length": len(data)})
    return bytes(int(data[i:i + 2], 16) for i in range(0, len(data), 2))


def _utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Decoded bytes are not UTF-8: {e}")


def _xor(data: bytes, key: bytes) -> bytes:
    return bytes(b ^ key[i % len(key)] for i, b in enumerate(data))


# ============================================================================
# BUILT-IN METHODS
# ============================================================================

def _identity(data: str, key: Optional[str] = None) -> str:
    return data


def _encode_base64(data: str, key: Optional[str] = None) -> str:
    return base64.b64encode(data.encode("utf-8")).decode("ascii")


def _decode_base64(data: str, key: Optional[str] = None) -> str:
    try:
        raw = base64.b64decode(data.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}")
    return _utf8(raw)


def _encode_hex(data: str, key: Optional[str] = None) -> str:
    return _to_hex(data.encode("utf-8"))


def _decode_hex(data: str, key: Optional[str] = None) -> str:
    return _utf8(_from_hex(data))


def _encode_xor(data: str, key: Optional[str] = None) -> str:
    return _to_hex(_xor(data.encode("utf-8"), key.encode("utf-8")))


def _decode_xor(data: str, key: Optional[str] = None) -> str:
    return _utf8(_xor(_from_hex(data), key.encode("utf-8")))


METHODS: Dict[str, Tuple[Encoder, Decoder]] = {
    "none": (_identity, _identity),
    "base64": (_encode_base64, _decode_base64),
    "hex": (_encode_hex, _decode_hex),
    "xor": (_encode_xor, _decode_xor),
}

KEYED_METHODS = frozenset({"xor"})


# ============================================================================
# CLASSES
# ============================================================================

class Codec:
    """
    Encode/decode a string payload with one named method

    Usage:
        codec = Codec("xor", key="k")
        stored = codec.encode('{"value":"dark"}')
        codec.decode(stored)

    Extra methods can be plugged in per instance:
        Codec("rot13", methods={"rot13": (enc, dec)})
    """

    def __init__(
        self,
        method: str = "none",
        key: Optional[str] = None,
        methods: Optional[Dict[str, Tuple[Encoder, Decoder]]] = None
    ):
        self.method = (method or "none").lower()
        self.key = key
        self._methods = dict(METHODS)
        if methods:
            self._methods.update({name.lower(): pair for name, pair in methods.items()})

        if self.method not in self._methods:
            raise ConfigurationError(
                f"Unknown encryption method: {method}",
                context={"method": method, "supported": sorted(self._methods)}
            )
        if self.method in KEYED_METHODS and not key:
            raise ConfigurationError(
                f"Encryption method '{self.method}' requires a non-empty key",
                context={"method": self.method}
            )

        self._encoder, self._decoder = self._methods[self.method]

    def encode(self, plain: str) -> str:
        return self._encoder(plain, self.key)

    def decode(self, encoded: str) -> str:
        """Decode *encoded*; raises DecodeError on malformed input"""
        try:
            return self._decoder(encoded, self.key)
        except DecodeError:
            raise
        except (ValueError, TypeError) as e:
            raise DecodeError(f"{self.method} decode failed: {e}", context={"method": self.method})

    def __repr__(self) -> str:
        return f"Codec(method={self.method!r})"
