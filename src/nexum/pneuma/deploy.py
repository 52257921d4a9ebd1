"""
Contract deployment calls.

A deployment is a transaction to the zero address whose data is
``<code hex>@0500@<metadata hex>[@args...]``; ``0500`` selects the WASM VM.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

from ..sigil.address import Address
from .transfers import CanonicalCall


WASM_VM_TYPE = b"\x05\x00"


@dataclass(frozen=True)
class CodeMetadata:
    upgradeable: bool = True
    readable: bool = True
    payable: bool = False
    payable_by_sc: bool = False

    UPGRADEABLE = 0x0100
    READABLE = 0x0400
    PAYABLE = 0x0002
    PAYABLE_BY_SC = 0x0004

    def to_int(self) -> int:
        flags = 0
        if self.upgradeable:
            flags |= self.UPGRADEABLE
        if self.readable:
            flags |= self.READABLE
        if self.payable:
            flags |= self.PAYABLE
        if self.payable_by_sc:
            flags |= self.PAYABLE_BY_SC
        return flags

    def to_bytes(self) -> bytes:
        return self.to_int().to_bytes(2, "big")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "CodeMetadata":
        flags = int.from_bytes(raw, "big")
        return cls(
            upgradeable=bool(flags & cls.UPGRADEABLE),
            readable=bool(flags & cls.READABLE),
            payable=bool(flags & cls.PAYABLE),
            payable_by_sc=bool(flags & cls.PAYABLE_BY_SC),
        )


def load_code(code: Union[bytes, str, Path]) -> bytes:
    """Accept raw WASM bytes or a path to a .wasm file."""
    if isinstance(code, (bytes, bytearray)):
        return bytes(code)
    return Path(code).read_bytes()


def build_deploy_call(
    sender: "Address | str",
    code: bytes,
    code_metadata: CodeMetadata,
    arguments: Sequence[bytes] = (),
    egld_value: int = 0,
) -> CanonicalCall:
    # No function name: the code hex leads the data string.
    return CanonicalCall(
        sender=Address.parse(sender).to_bech32(),
        receiver=Address.zero().to_bech32(),
        function=None,
        arguments=(code, WASM_VM_TYPE, code_metadata.to_bytes(), *arguments),
        egld_value=egld_value,
    )
