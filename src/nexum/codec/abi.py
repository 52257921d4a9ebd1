"""
ABI type name to descriptor mapping.

Generated bindings refer to wire types by their ABI names
(``u64``, ``List<BigUint>``, ``variadic<multi<Address,u32>>`` ...). This
module resolves such a name to a descriptor at runtime. An unknown name is
a contract violation by the caller and raises ``TypeError``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from . import multi, types


PRIMITIVES: dict[str, Any] = {
    "u8": types.U8,
    "u16": types.U16,
    "u32": types.U32,
    "u64": types.U64,
    "usize": types.U32,
    "i8": types.I8,
    "i16": types.I16,
    "i32": types.I32,
    "i64": types.I64,
    "isize": types.I32,
    "BigUint": types.BigUint,
    "BigInt": types.BigInt,
    "bool": types.Bool,
    "bytes": types.Buffer,
    "ManagedBuffer": types.Buffer,
    "utf-8 string": types.String,
    "TokenIdentifier": types.TokenIdentifier,
    "EgldOrEsdtTokenIdentifier": types.TokenIdentifier,
    "Address": types.AddressValue,
}

_GENERICS = {
    "List": types.List,
    "Option": types.Option,
    "variadic": multi.Variadic,
    "optional": multi.OptionalValue,
}


def _split_args(inner: str) -> list[str]:
    parts, depth, current = [], 0, ""
    for ch in inner:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


@lru_cache(maxsize=None)
def descriptor_for(abi_name: str) -> Any:
    abi_name = abi_name.strip()
    if abi_name in PRIMITIVES:
        return PRIMITIVES[abi_name]
    if "<" in abi_name and abi_name.endswith(">"):
        head, inner = abi_name.split("<", 1)
        args = [descriptor_for(a) for a in _split_args(inner[:-1])]
        if head == "multi":
            return multi.MultiValue(*args)
        if head == "tuple":
            return types.Tuple(*args)
        if head in _GENERICS and len(args) == 1:
            return _GENERICS[head](args[0])
    raise TypeError(f"Unknown ABI type: {abi_name!r}")
