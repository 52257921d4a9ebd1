"""
Account / contract addresses.

An address is 32 raw bytes. Its textual form is bech32 with the ``erd``
human-readable part. Equality and hashing use the raw bytes only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import bech32

from ..errors import AddressFormatError


HRP = "erd"
ADDRESS_LENGTH = 32


@dataclass(frozen=True)
class Address:
    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise AddressFormatError(f"Address bytes expected, got {type(self.raw).__name__}")
        if len(self.raw) != ADDRESS_LENGTH:
            raise AddressFormatError(
                f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.raw)}"
            )
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_bech32(cls, text: str) -> "Address":
        hrp, data = bech32.bech32_decode(text)
        if hrp is None or data is None:
            raise AddressFormatError(f"Invalid bech32 address: {text!r}")
        if hrp != HRP:
            raise AddressFormatError(f"Unexpected address prefix {hrp!r} in {text!r}")
        decoded = bech32.convertbits(data, 5, 8, False)
        if decoded is None:
            raise AddressFormatError(f"Invalid bech32 payload: {text!r}")
        return cls(bytes(decoded))

    @classmethod
    def from_hex(cls, value: str) -> "Address":
        try:
            return cls(bytes.fromhex(value))
        except ValueError as exc:
            raise AddressFormatError(f"Invalid hex address: {value!r}") from exc

    @classmethod
    def zero(cls) -> "Address":
        return cls(bytes(ADDRESS_LENGTH))

    @classmethod
    def parse(cls, value: Union["Address", str, bytes]) -> "Address":
        """Accept an Address, a bech32 string or 32 raw bytes."""
        if isinstance(value, Address):
            return value
        if isinstance(value, (bytes, bytearray)):
            return cls(bytes(value))
        if isinstance(value, str):
            return cls.from_bech32(value)
        raise AddressFormatError(f"Cannot build an address from {type(value).__name__}")

    def to_bech32(self) -> str:
        data = bech32.convertbits(self.raw, 8, 5)
        return bech32.bech32_encode(HRP, data)

    def hex(self) -> str:
        return self.raw.hex()

    def is_smart_contract(self) -> bool:
        return self.raw[:8] == bytes(8)

    def __str__(self) -> str:
        return self.to_bech32()

    def __repr__(self) -> str:
        return f"Address({self.to_bech32()!r})"

    def __fingerprint__(self) -> str:
        return self.to_bech32()
