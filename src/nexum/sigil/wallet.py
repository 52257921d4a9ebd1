"""
Ed25519 signing wallet.

The wallet holds a 32-byte Ed25519 seed. Its address is the raw public key.
Keys are read from ``NEXUM_PRIVATE_KEY`` (hex), which may be provided by
``~/.nexum/.env``.

Dependencies: cryptography (Ed25519 primitives)
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from ..config import load_env
from ..errors import WalletError
from .address import Address


def generate_seed() -> str:
    """Generate a new random Ed25519 seed as 64 hex chars."""
    return secrets.token_hex(32)


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load the hex seed from a .env file or the environment.

    Args:
        env_path: Path to .env file (default: ~/.nexum/.env)

    Returns:
        Hex seed without 0x prefix

    Raises:
        WalletError: If NEXUM_PRIVATE_KEY is not set
    """
    load_env(env_path)
    private_key = os.environ.get("NEXUM_PRIVATE_KEY")
    if not private_key:
        raise WalletError("NEXUM_PRIVATE_KEY not found in the environment or .env file")
    return private_key[2:] if private_key.startswith("0x") else private_key


class Wallet:
    def __init__(self, seed_hex: str) -> None:
        try:
            seed = bytes.fromhex(seed_hex)
        except ValueError as exc:
            raise WalletError("Private key must be hex encoded") from exc
        if len(seed) != 32:
            raise WalletError(f"Private key must be 32 bytes, got {len(seed)}")
        self._key = ed25519.Ed25519PrivateKey.from_private_bytes(seed)
        public = self._key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.address = Address(public)

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "Wallet":
        return cls(load_private_key(env_path))

    @classmethod
    def generate(cls) -> "Wallet":
        return cls(generate_seed())

    def sign(self, message: bytes) -> bytes:
        """Sign raw bytes. Returns the 64-byte Ed25519 signature."""
        return self._key.sign(message)

    def verify(self, message: bytes, signature: bytes) -> bool:
        try:
            self._key.public_key().verify(signature, message)
        except InvalidSignature:
            return False
        return True

    def __repr__(self) -> str:
        return f"Wallet({self.address.to_bech32()!r})"
