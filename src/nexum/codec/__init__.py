"""Contract wire codec: type descriptors, multi-values, ABI name lookup."""

from .abi import descriptor_for
from .multi import (
    MultiDescriptor,
    MultiValue,
    Nothing,
    OptionalValue,
    Variadic,
    decode_multi,
    encode_args,
)
from .types import (
    AddressValue,
    BigInt,
    BigUint,
    Bool,
    Buffer,
    I8,
    I16,
    I32,
    I64,
    List,
    Option,
    String,
    Struct,
    TokenIdentifier,
    Tuple,
    TypeDescriptor,
    U8,
    U16,
    U32,
    U64,
)

__all__ = [
    "TypeDescriptor",
    "MultiDescriptor",
    "U8",
    "U16",
    "U32",
    "U64",
    "I8",
    "I16",
    "I32",
    "I64",
    "BigUint",
    "BigInt",
    "Bool",
    "Buffer",
    "String",
    "TokenIdentifier",
    "AddressValue",
    "List",
    "Option",
    "Tuple",
    "Struct",
    "MultiValue",
    "Variadic",
    "OptionalValue",
    "Nothing",
    "encode_args",
    "decode_multi",
    "descriptor_for",
]
