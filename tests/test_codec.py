"""Tests for the contract wire codec."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from multiversx_sdk import abi

from nexum.codec import (
    AddressValue,
    BigInt,
    BigUint,
    Bool,
    Buffer,
    I64,
    I8,
    List,
    MultiValue,
    Option,
    OptionalValue,
    String,
    Struct,
    U8,
    U32,
    U64,
    Variadic,
    decode_multi,
    descriptor_for,
    encode_args,
)
from nexum.errors import CodecDecodeError, CodecEncodeError
from nexum.sigil.address import Address


class TestNumbers:
    def test_unsigned_top_is_minimal(self) -> None:
        assert U64.encode_top(0) == b""
        assert U64.encode_top(256) == b"\x01\x00"
        assert U64.decode_top(b"") == 0

    def test_unsigned_nested_is_fixed_width(self) -> None:
        assert U64.encode_nested(5) == b"\x00" * 7 + b"\x05"
        assert U32.decode_nested(b"\x00\x00\x00\x07\xff", 0) == (7, 4)

    def test_unsigned_overflow(self) -> None:
        with pytest.raises(CodecEncodeError):
            U8.encode_top(256)
        with pytest.raises(CodecDecodeError):
            U8.decode_top(b"\x01\x00")

    def test_signed(self) -> None:
        assert I8.encode_top(-1) == b"\xff"
        assert I64.encode_top(127) == b"\x7f"
        assert I64.encode_top(128) == b"\x00\x80"
        assert I64.decode_top(b"\xff") == -1
        assert I64.encode_nested(-2) == b"\xff" * 7 + b"\xfe"

    def test_big_uint(self) -> None:
        assert BigUint.encode_top(10**18) == (10**18).to_bytes(8, "big")
        assert BigUint.encode_nested(256) == b"\x00\x00\x00\x02\x01\x00"
        assert BigUint.decode_nested(b"\x00\x00\x00\x00", 0) == (0, 4)

    def test_big_int(self) -> None:
        assert BigInt.encode_top(-256) == b"\xff\x00"
        assert BigInt.decode_top(b"\xff\x00") == -256


class TestBuffers:
    def test_bool(self) -> None:
        assert Bool.encode_top(False) == b""
        assert Bool.decode_top(b"\x01") is True
        with pytest.raises(CodecDecodeError):
            Bool.decode_top(b"\x02")

    def test_string_nested(self) -> None:
        assert String.encode_nested("sum") == b"\x00\x00\x00\x03sum"
        assert String.decode_top(b"sum") == "sum"

    def test_truncated_buffer(self) -> None:
        with pytest.raises(CodecDecodeError):
            Buffer.decode_nested(b"\x00\x00\x00\x05ab", 0)

    def test_address(self) -> None:
        address = Address(b"\x01" * 32)
        assert AddressValue.encode_top(address) == b"\x01" * 32
        assert AddressValue.decode_top(b"\x01" * 32) == address


class TestComposites:
    def test_list(self) -> None:
        assert List(U32).encode_top([1, 2]) == bytes.fromhex("0000000100000002")
        assert List(U32).encode_nested([1]) == bytes.fromhex("0000000100000001")
        assert List(U32).decode_top(bytes.fromhex("0000000100000002")) == [1, 2]

    def test_option(self) -> None:
        assert Option(U8).encode_top(None) == b""
        assert Option(U8).encode_top(5) == b"\x01\x05"
        assert Option(U8).encode_nested(None) == b"\x00"
        assert Option(U8).decode_top(b"") is None
        assert Option(U8).decode_top(b"\x01\x05") == 5

    def test_struct_to_dict(self) -> None:
        pair = Struct("Pair", [("token", String), ("amount", BigUint)])
        raw = pair.encode_top({"token": "WEGLD", "amount": 3})
        assert pair.decode_top(raw) == {"token": "WEGLD", "amount": 3}

    def test_struct_factory(self) -> None:
        @dataclass
        class Pair:
            token: str
            amount: int

        pair = Struct("Pair", [("token", String), ("amount", BigUint)], factory=Pair)
        assert pair.decode_top(pair.encode_top(Pair("A", 1))) == Pair("A", 1)

    def test_trailing_bytes(self) -> None:
        with pytest.raises(CodecDecodeError):
            List(U32).decode_top(b"\x00\x00\x00\x01\x00")


class TestMulti:
    def test_multi_with_variadic(self) -> None:
        shape = MultiValue(U8, Variadic(BigUint))
        assert decode_multi([b"\x01", b"\x02", b"\x03"], shape) == (1, [2, 3])

    def test_optional_value_absent(self) -> None:
        assert decode_multi([], OptionalValue(BigUint)) is None
        assert decode_multi([b"\x05"], OptionalValue(BigUint)) == 5

    def test_single_value(self) -> None:
        assert decode_multi([b"\x05"], BigUint) == 5

    def test_missing_result(self) -> None:
        with pytest.raises(CodecDecodeError):
            decode_multi([], BigUint)

    def test_trailing_results(self) -> None:
        with pytest.raises(CodecDecodeError):
            decode_multi([b"\x01", b"\x02"], BigUint)
        assert decode_multi([b"\x01", b"\x02"], BigUint, strict=False) == 1

    def test_encode_args(self) -> None:
        assert encode_args([BigUint, Variadic(U8)], [5, [1, 2]]) == [b"\x05", b"\x01", b"\x02"]

    def test_unknown_descriptor_is_fatal(self) -> None:
        with pytest.raises(TypeError):
            decode_multi([b"\x01"], object())


class TestAbiNames:
    def test_primitives(self) -> None:
        assert descriptor_for("BigUint") is BigUint
        assert descriptor_for("u64") is U64

    def test_generics(self) -> None:
        shape = descriptor_for("variadic<multi<Address,u32>>")
        raw = [b"\x02" * 32, b"\x07"]
        assert decode_multi(raw, shape) == [(Address(b"\x02" * 32), 7)]

    def test_list_of_option(self) -> None:
        shape = descriptor_for("List<Option<u8>>")
        assert shape.decode_top(b"\x01\x05\x00") == [5, None]

    def test_unknown(self) -> None:
        with pytest.raises(TypeError):
            descriptor_for("Unknown<u8>")


class TestSdkValues:
    def test_wrap_builds_sdk_values(self) -> None:
        assert isinstance(BigUint.wrap(5), abi.BigUIntValue)
        assert isinstance(List(U8).wrap([1]), abi.ListValue)
        assert isinstance(Option(U8).wrap(None), abi.OptionValue)

    def test_args_match_sdk_serializer(self) -> None:
        serializer = abi.Serializer(parts_separator="@")
        expected = serializer.serialize_to_parts([abi.U32Value(7), abi.StringValue("sum")])
        assert encode_args([U32, String], [7, "sum"]) == expected

    def test_optional_argument_must_be_last(self) -> None:
        with pytest.raises(CodecEncodeError):
            encode_args([OptionalValue(U8), U8], [1, 2])
