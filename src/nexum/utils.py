from __future__ import annotations

import base64
import binascii
import hashlib
from typing import Any

import rfc8785


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    try:
        return base64.b64decode(value + padding, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64: {value!r}") from exc


def hex_decode(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise ValueError(f"Invalid hex: {value!r}") from exc


def int_to_min_bytes(value: int) -> bytes:
    """Minimal big-endian encoding of a non-negative integer. Zero is ``b""``."""
    if value < 0:
        raise ValueError(f"Cannot encode negative value {value} as unsigned")
    if value == 0:
        return b""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def min_bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data, "big") if data else 0


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return {"$bytes": bytes(value).hex()}
    if isinstance(value, int) and not isinstance(value, bool):
        # RFC 8785 is limited to IEEE doubles; big integers go through strings.
        return {"$int": str(value)}
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "__fingerprint__"):
        return _jsonable(value.__fingerprint__())
    if value is None or isinstance(value, (str, bool, float)):
        return value
    return repr(value)


def fingerprint(*parts: Any) -> int:
    """
    Stable uint64 key for a logical request.

    Parts are canonicalized with RFC 8785, hashed with SHA-256 and the first
    8 bytes are read as a big-endian unsigned integer.
    """
    canonical = rfc8785.dumps(_jsonable(list(parts)))
    return int.from_bytes(hashlib.sha256(canonical).digest()[:8], "big")
