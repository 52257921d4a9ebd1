"""
Multi-value descriptors, argument encoding and the top-level result decoder.

A contract endpoint returns an ordered list of top-encoded byte strings. The
caller describes the expected shape with a descriptor; multi-value descriptors
consume zero or more entries, single-value descriptors consume exactly one.

Arguments are serialized into parts by ``multiversx_sdk.abi.Serializer``.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from multiversx_sdk import abi

from ..errors import CodecDecodeError, CodecEncodeError
from .types import SDK_CODEC_ERRORS, TypeDescriptor


_serializer = abi.Serializer(parts_separator="@")


class MultiDescriptor:
    """Consumes a variable number of top-level entries."""

    name = "multi"

    def wrap(self, value: Any) -> Any:
        raise NotImplementedError

    def encode_multi(self, value: Any) -> list[bytes]:
        return _serialize([self.wrap(value)])

    def decode_multi(self, results: Sequence[bytes], index: int) -> tuple[Any, int]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.name

    def __fingerprint__(self) -> str:
        return self.name


def _serialize(typed: list[Any]) -> list[bytes]:
    try:
        return _serializer.serialize_to_parts(typed)
    except SDK_CODEC_ERRORS as exc:
        raise CodecEncodeError(str(exc)) from exc


def _wrap_one(descriptor: Any, value: Any) -> Any:
    if not isinstance(descriptor, (MultiDescriptor, TypeDescriptor)):
        raise TypeError(f"Unsupported type descriptor: {descriptor!r}")
    return descriptor.wrap(value)


def _decode_one(descriptor: Any, results: Sequence[bytes], index: int) -> tuple[Any, int]:
    if isinstance(descriptor, MultiDescriptor):
        return descriptor.decode_multi(results, index)
    if not isinstance(descriptor, TypeDescriptor):
        raise TypeError(f"Unsupported type descriptor: {descriptor!r}")
    if index >= len(results):
        raise CodecDecodeError(f"{descriptor.name}: not enough results (expected index {index})")
    return descriptor.decode_top(results[index]), index + 1


class MultiValue(MultiDescriptor):
    def __init__(self, *items: Any) -> None:
        self.items = items
        self.name = "multi<" + ",".join(repr(i) for i in items) + ">"

    def wrap(self, value: Any) -> abi.MultiValue:
        if len(value) != len(self.items):
            raise CodecEncodeError(f"{self.name} expects {len(self.items)} values, got {len(value)}")
        return abi.MultiValue([_wrap_one(item, v) for item, v in zip(self.items, value)])

    def decode_multi(self, results: Sequence[bytes], index: int) -> tuple[tuple, int]:
        values = []
        for item in self.items:
            value, index = _decode_one(item, results, index)
            values.append(value)
        return tuple(values), index


class Variadic(MultiDescriptor):
    """Consumes every remaining entry."""

    def __init__(self, item: Any) -> None:
        self.item = item
        self.name = f"variadic<{item!r}>"

    def wrap(self, value: Any) -> abi.VariadicValues:
        return abi.VariadicValues(items=[_wrap_one(self.item, v) for v in value])

    def decode_multi(self, results: Sequence[bytes], index: int) -> tuple[list, int]:
        values = []
        while index < len(results):
            value, index = _decode_one(self.item, results, index)
            values.append(value)
        return values, index


class OptionalValue(MultiDescriptor):
    """Consumes one entry if present, otherwise yields None."""

    def __init__(self, item: Any) -> None:
        self.item = item
        self.name = f"optional<{item!r}>"

    def wrap(self, value: Any) -> abi.OptionalValue:
        return abi.OptionalValue(None if value is None else _wrap_one(self.item, value))

    def decode_multi(self, results: Sequence[bytes], index: int) -> tuple[Any, int]:
        if index >= len(results):
            return None, index
        return _decode_one(self.item, results, index)


class NothingType(MultiDescriptor):
    """Endpoint returns nothing."""

    name = "nothing"

    def wrap(self, value: Any) -> abi.MultiValue:
        return abi.MultiValue([])

    def decode_multi(self, results: Sequence[bytes], index: int) -> tuple[None, int]:
        return None, index


Nothing = NothingType()


def encode_args(descriptors: Sequence[Any], values: Sequence[Any]) -> list[bytes]:
    """Top-encode a list of endpoint arguments."""
    if len(descriptors) != len(values):
        raise ValueError(f"Expected {len(descriptors)} arguments, got {len(values)}")
    return _serialize([_wrap_one(d, v) for d, v in zip(descriptors, values)])


def decode_multi(results: Sequence[bytes], shape: Optional[Any], strict: bool = True) -> Any:
    """
    Decode raw endpoint results into the caller-supplied shape.

    Args:
        results: Top-level encoded return values, in order
        shape: A single or multi descriptor; None means "no return value"
        strict: Reject results left over after the shape is decoded

    Returns:
        The decoded native value

    Raises:
        CodecDecodeError: If results don't match the shape
    """
    if shape is None:
        shape = Nothing
    value, index = _decode_one(shape, list(results), 0)
    if strict and index != len(results):
        raise CodecDecodeError(f"{len(results) - index} unexpected trailing results for {shape!r}")
    return value
