"""
Single-value type descriptors for the contract wire encoding.

A descriptor pairs a native Python value with its ``multiversx_sdk.abi``
typed value. The SDK does the byte-level work in both encodings:

- top-level: used when the value is a whole argument / return value. Integers
  are minimal big-endian, buffers are raw.
- nested: used inside lists, options and structs. Integers are fixed width,
  dynamic values carry a u32 big-endian length prefix.

Descriptors add range checks before encoding and turn decoded SDK values back
into native ones (``int``, ``str``, :class:`~nexum.sigil.address.Address`,
lists, dicts ...).

Dependencies: multiversx-sdk (typed values and codec)
"""

from __future__ import annotations

import io
from typing import Any, Callable, Optional, Sequence

from multiversx_sdk import abi

from ..errors import CodecDecodeError, CodecEncodeError
from ..sigil.address import ADDRESS_LENGTH, Address


# Failures raised by the SDK codec on malformed input.
SDK_CODEC_ERRORS = (ValueError, TypeError, IndexError, OverflowError)


class TypeDescriptor:
    """Base class. Subclasses build SDK values and convert them back."""

    name = "?"

    def create(self) -> Any:
        """Fresh SDK value to decode into."""
        raise NotImplementedError

    def wrap(self, value: Any) -> Any:
        """Native value to SDK value, validated."""
        raise NotImplementedError

    def unwrap(self, typed: Any) -> Any:
        return typed.value

    def check_top(self, data: bytes) -> None:
        pass

    def encode_top(self, value: Any) -> bytes:
        typed = self.wrap(value)
        writer = io.BytesIO()
        try:
            typed.encode_top_level(writer)
        except SDK_CODEC_ERRORS as exc:
            raise CodecEncodeError(f"{self.name}: {exc}") from exc
        return writer.getvalue()

    def encode_nested(self, value: Any) -> bytes:
        typed = self.wrap(value)
        writer = io.BytesIO()
        try:
            typed.encode_nested(writer)
        except SDK_CODEC_ERRORS as exc:
            raise CodecEncodeError(f"{self.name}: {exc}") from exc
        return writer.getvalue()

    def decode_top(self, data: bytes) -> Any:
        data = bytes(data)
        self.check_top(data)
        typed = self.create()
        try:
            typed.decode_top_level(data)
        except SDK_CODEC_ERRORS as exc:
            raise CodecDecodeError(f"{self.name}: {exc}") from exc
        return self.unwrap(typed)

    def decode_nested(self, data: bytes, offset: int = 0) -> tuple[Any, int]:
        reader = io.BytesIO(bytes(data))
        reader.seek(offset)
        typed = self.create()
        try:
            typed.decode_nested(reader)
        except SDK_CODEC_ERRORS as exc:
            raise CodecDecodeError(f"{self.name}: {exc}") from exc
        return self.unwrap(typed), reader.tell()

    def __repr__(self) -> str:
        return self.name

    def __fingerprint__(self) -> str:
        return self.name


def _check_int(name: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise CodecEncodeError(f"{name} expects int, got {type(value).__name__}")
    return value


class Integer(TypeDescriptor):
    """Fixed-width (``size`` bytes) or arbitrary-size (``size=None``) integer."""

    def __init__(self, name: str, factory: Callable[..., Any], size: Optional[int], signed: bool) -> None:
        self.name = name
        self.factory = factory
        self.size = size
        self.signed = signed

    def _in_range(self, value: int) -> bool:
        if not self.signed and value < 0:
            return False
        if self.size is None:
            return True
        bits = 8 * self.size
        if self.signed:
            return -(1 << (bits - 1)) <= value < (1 << (bits - 1))
        return value < (1 << bits)

    def create(self) -> Any:
        return self.factory()

    def wrap(self, value: Any) -> Any:
        value = _check_int(self.name, value)
        if not self._in_range(value):
            raise CodecEncodeError(f"{value} out of range for {self.name}")
        return self.factory(value)

    def unwrap(self, typed: Any) -> int:
        return int(typed.value)

    def check_top(self, data: bytes) -> None:
        if self.size is not None and len(data) > self.size:
            raise CodecDecodeError(f"{self.name}: {len(data)} bytes exceed width {self.size}")


class BoolType(TypeDescriptor):
    name = "bool"

    def create(self) -> abi.BoolValue:
        return abi.BoolValue()

    def wrap(self, value: Any) -> abi.BoolValue:
        if not isinstance(value, bool):
            raise CodecEncodeError(f"bool expects bool, got {type(value).__name__}")
        return abi.BoolValue(value)

    def unwrap(self, typed: Any) -> bool:
        return bool(typed.value)

    def check_top(self, data: bytes) -> None:
        if data not in (b"", b"\x01"):
            raise CodecDecodeError(f"bool: invalid top-level value {data.hex()!r}")


class BufferType(TypeDescriptor):
    name = "bytes"

    def create(self) -> abi.BytesValue:
        return abi.BytesValue()

    def wrap(self, value: Any) -> abi.BytesValue:
        if not isinstance(value, (bytes, bytearray)):
            raise CodecEncodeError(f"{self.name} expects bytes, got {type(value).__name__}")
        return abi.BytesValue(bytes(value))

    def unwrap(self, typed: Any) -> bytes:
        return bytes(typed.value)


class StringType(TypeDescriptor):
    name = "utf-8 string"
    factory: Callable[..., Any] = abi.StringValue

    def create(self) -> Any:
        return self.factory()

    def wrap(self, value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            try:
                value = bytes(value).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise CodecEncodeError(f"{self.name}: invalid utf-8") from exc
        if not isinstance(value, str):
            raise CodecEncodeError(f"{self.name} expects str, got {type(value).__name__}")
        return self.factory(value)

    def unwrap(self, typed: Any) -> str:
        return str(typed.value)


class TokenIdentifierType(StringType):
    name = "TokenIdentifier"
    factory = abi.TokenIdentifierValue


class AddressType(TypeDescriptor):
    name = "Address"

    def create(self) -> abi.AddressValue:
        return abi.AddressValue()

    def wrap(self, value: Any) -> abi.AddressValue:
        try:
            return abi.AddressValue(Address.parse(value).raw)
        except ValueError as exc:
            raise CodecEncodeError(str(exc)) from exc

    def unwrap(self, typed: Any) -> Address:
        return Address(bytes(typed.value))

    def check_top(self, data: bytes) -> None:
        if len(data) != ADDRESS_LENGTH:
            raise CodecDecodeError(f"Address: expected {ADDRESS_LENGTH} bytes, got {len(data)}")


class _Nested(TypeDescriptor):
    """Top-level form is the nested form; every byte must be consumed."""

    def decode_top(self, data: bytes) -> Any:
        value, offset = self.decode_nested(data, 0)
        if offset != len(data):
            raise CodecDecodeError(
                f"{self.name}: {len(data) - offset} trailing bytes after top-level decode"
            )
        return value


class List(TypeDescriptor):
    def __init__(self, item: TypeDescriptor) -> None:
        self.item = item
        self.name = f"List<{item.name}>"

    def create(self) -> abi.ListValue:
        return abi.ListValue(items=[], item_creator=self.item.create)

    def wrap(self, value: Any) -> abi.ListValue:
        return abi.ListValue(items=[self.item.wrap(v) for v in value], item_creator=self.item.create)

    def unwrap(self, typed: Any) -> list:
        return [self.item.unwrap(v) for v in typed.items]


class Option(_Nested):
    def __init__(self, item: TypeDescriptor) -> None:
        self.item = item
        self.name = f"Option<{item.name}>"

    def create(self) -> abi.OptionValue:
        return abi.OptionValue(self.item.create())

    def wrap(self, value: Any) -> abi.OptionValue:
        return abi.OptionValue(None if value is None else self.item.wrap(value))

    def unwrap(self, typed: Any) -> Any:
        if typed.value is None:
            return None
        return self.item.unwrap(typed.value)

    def decode_top(self, data: bytes) -> Any:
        if not data:
            return None
        return super().decode_top(data)


class Tuple(_Nested):
    def __init__(self, *items: TypeDescriptor) -> None:
        self.items = items
        self.name = "tuple<" + ",".join(i.name for i in items) + ">"

    def create(self) -> abi.StructValue:
        return abi.StructValue([abi.Field(str(i), item.create()) for i, item in enumerate(self.items)])

    def wrap(self, value: Any) -> abi.StructValue:
        if len(value) != len(self.items):
            raise CodecEncodeError(f"{self.name} expects {len(self.items)} items, got {len(value)}")
        return abi.StructValue(
            [abi.Field(str(i), item.wrap(v)) for i, (item, v) in enumerate(zip(self.items, value))]
        )

    def unwrap(self, typed: Any) -> tuple:
        return tuple(item.unwrap(f.value) for item, f in zip(self.items, typed.fields))


class Struct(_Nested):
    """
    Named-field struct. Decodes to ``factory(**fields)`` when a factory is
    given (e.g. a dataclass), otherwise to a dict.
    """

    def __init__(
        self,
        name: str,
        fields: Sequence[tuple[str, TypeDescriptor]],
        factory: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.name = name
        self.fields = list(fields)
        self.factory = factory

    def _field(self, value: Any, field: str) -> Any:
        if isinstance(value, dict):
            if field not in value:
                raise CodecEncodeError(f"{self.name}: missing field {field!r}")
            return value[field]
        if not hasattr(value, field):
            raise CodecEncodeError(f"{self.name}: missing field {field!r}")
        return getattr(value, field)

    def create(self) -> abi.StructValue:
        return abi.StructValue([abi.Field(f, t.create()) for f, t in self.fields])

    def wrap(self, value: Any) -> abi.StructValue:
        return abi.StructValue([abi.Field(f, t.wrap(self._field(value, f))) for f, t in self.fields])

    def unwrap(self, typed: Any) -> Any:
        values = {f: t.unwrap(field.value) for (f, t), field in zip(self.fields, typed.fields)}
        if self.factory is not None:
            return self.factory(**values)
        return values


U8 = Integer("u8", abi.U8Value, 1, signed=False)
U16 = Integer("u16", abi.U16Value, 2, signed=False)
U32 = Integer("u32", abi.U32Value, 4, signed=False)
U64 = Integer("u64", abi.U64Value, 8, signed=False)
I8 = Integer("i8", abi.I8Value, 1, signed=True)
I16 = Integer("i16", abi.I16Value, 2, signed=True)
I32 = Integer("i32", abi.I32Value, 4, signed=True)
I64 = Integer("i64", abi.I64Value, 8, signed=True)
BigUint = Integer("BigUint", abi.BigUIntValue, None, signed=False)
BigInt = Integer("BigInt", abi.BigIntValue, None, signed=True)
Bool = BoolType()
Buffer = BufferType()
String = StringType()
TokenIdentifier = TokenIdentifierType()
AddressValue = AddressType()
