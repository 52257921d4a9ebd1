"""Tests for payment normalization and transaction data encoding."""

from __future__ import annotations

import pytest

from nexum.errors import AddressFormatError, EgldAndEsdtPaymentsDetected
from nexum.pneuma.transfers import CanonicalCall, TokenTransfer


SENDER = "erd1h4uhy73dev6qrfj7wxsguapzs8632mfwqjswjpsj6kzm2jfrnslqsuduqu"
RECEIVER = "erd1qqqqqqqqqqqqqpgq9wmk04e90fkhcuzns0pgwm33sdtxze346vpsq0ka9p"
RECEIVER_HEX = "000000000000000005002bb767d7257a6d7c705383c2876e318356616635d303"

ENDPOINT_NAME = "myEndpoint"
ENDPOINT_NAME_HEX = "6d79456e64706f696e74"
FUNGIBLE_NAME = "WEGLD-abcdef"
FUNGIBLE_NAME_HEX = "5745474c442d616263646566"
NON_FUNGIBLE_NAME = "SFT-abcdef"
NON_FUNGIBLE_NAME_HEX = "5346542d616263646566"

ARGS = (bytes([1, 2]), bytes([3, 4]))


def make_call(args=(), egld_value=0, transfers=()) -> CanonicalCall:
    return CanonicalCall(
        sender=SENDER,
        receiver=RECEIVER,
        function=ENDPOINT_NAME,
        arguments=args,
        egld_value=egld_value,
        esdt_transfers=transfers,
    )


FUNGIBLE = TokenTransfer(FUNGIBLE_NAME, 0, 100)
NON_FUNGIBLE = TokenTransfer(NON_FUNGIBLE_NAME, 1, 100)


class TestNoPayment:
    def test_passthrough(self) -> None:
        call = make_call(ARGS)
        result = call.normalize()
        assert result == call
        assert result.get_transaction_data() == "myEndpoint@0102@0304"

    def test_egld_only_is_unchanged(self) -> None:
        call = make_call(ARGS, egld_value=10)
        result = call.normalize()
        assert result == call
        assert result.egld_value == 10
        assert result.get_transaction_data() == "myEndpoint@0102@0304"


class TestSingleTransfer:
    def test_fungible_no_args(self) -> None:
        result = make_call(transfers=[FUNGIBLE]).normalize()
        assert result.receiver == RECEIVER
        assert result.function == "ESDTTransfer"
        assert result.get_transaction_data() == (
            f"ESDTTransfer@{FUNGIBLE_NAME_HEX}@64@{ENDPOINT_NAME_HEX}"
        )

    def test_fungible_with_args(self) -> None:
        result = make_call(ARGS, transfers=[FUNGIBLE]).normalize()
        assert result.get_transaction_data() == (
            f"ESDTTransfer@{FUNGIBLE_NAME_HEX}@64@{ENDPOINT_NAME_HEX}@0102@0304"
        )

    def test_non_fungible_is_a_self_call(self) -> None:
        result = make_call(transfers=[NON_FUNGIBLE]).normalize()
        assert result.receiver == SENDER
        assert result.function == "ESDTNFTTransfer"
        assert result.get_transaction_data() == (
            f"ESDTNFTTransfer@{NON_FUNGIBLE_NAME_HEX}@01@64@{RECEIVER_HEX}@{ENDPOINT_NAME_HEX}"
        )

    def test_non_fungible_with_args(self) -> None:
        result = make_call(ARGS, transfers=[NON_FUNGIBLE]).normalize()
        assert result.get_transaction_data() == (
            f"ESDTNFTTransfer@{NON_FUNGIBLE_NAME_HEX}@01@64@{RECEIVER_HEX}"
            f"@{ENDPOINT_NAME_HEX}@0102@0304"
        )

    def test_transfer_without_inner_function(self) -> None:
        call = CanonicalCall(SENDER, RECEIVER, None, (), 0, (FUNGIBLE,))
        assert call.normalize().get_transaction_data() == f"ESDTTransfer@{FUNGIBLE_NAME_HEX}@64"


class TestMultiTransfer:
    def test_mixed_transfers_no_args(self) -> None:
        transfers = [TokenTransfer(FUNGIBLE_NAME, 0, 10), NON_FUNGIBLE]
        result = make_call(transfers=transfers).normalize()
        assert result.receiver == SENDER
        assert result.egld_value == 0
        assert result.get_transaction_data() == (
            f"MultiESDTNFTTransfer@{RECEIVER_HEX}@02@{FUNGIBLE_NAME_HEX}@@0a"
            f"@{NON_FUNGIBLE_NAME_HEX}@01@64@{ENDPOINT_NAME_HEX}"
        )

    def test_mixed_transfers_with_args(self) -> None:
        transfers = [TokenTransfer(FUNGIBLE_NAME, 0, 10), NON_FUNGIBLE]
        result = make_call(ARGS, transfers=transfers).normalize()
        assert result.get_transaction_data() == (
            f"MultiESDTNFTTransfer@{RECEIVER_HEX}@02@{FUNGIBLE_NAME_HEX}@@0a"
            f"@{NON_FUNGIBLE_NAME_HEX}@01@64@{ENDPOINT_NAME_HEX}@0102@0304"
        )

    def test_two_fungible_transfers_use_multi_encoding(self) -> None:
        transfers = [FUNGIBLE, TokenTransfer("USDC-123456", 0, 5)]
        result = make_call(transfers=transfers).normalize()
        assert result.function == "MultiESDTNFTTransfer"


class TestConflicts:
    @pytest.mark.parametrize("count", [1, 2, 3])
    def test_egld_with_transfers_is_rejected(self, count: int) -> None:
        transfers = [TokenTransfer(FUNGIBLE_NAME, 0, 10 + i) for i in range(count)]
        with pytest.raises(EgldAndEsdtPaymentsDetected):
            make_call(ARGS, egld_value=2, transfers=transfers).normalize()

    def test_invalid_receiver_for_nft(self) -> None:
        call = CanonicalCall(SENDER, "not-an-address", ENDPOINT_NAME, (), 0, (NON_FUNGIBLE,))
        with pytest.raises(AddressFormatError):
            call.normalize()


class TestProperties:
    @pytest.mark.parametrize(
        "transfers",
        [
            [],
            [FUNGIBLE],
            [NON_FUNGIBLE],
            [FUNGIBLE, NON_FUNGIBLE],
        ],
    )
    def test_normalize_is_idempotent(self, transfers) -> None:
        once = make_call(ARGS, transfers=transfers).normalize()
        assert once.esdt_transfers == ()
        assert once.normalize() == once

    def test_input_is_not_mutated(self) -> None:
        call = make_call(ARGS, transfers=[FUNGIBLE])
        call.normalize()
        assert call.esdt_transfers == (FUNGIBLE,)
        assert call.function == ENDPOINT_NAME

    def test_empty_argument_keeps_its_segment(self) -> None:
        call = make_call((b"", b"\x01"))
        assert call.get_transaction_data() == "myEndpoint@@01"

    def test_no_arguments_no_segments(self) -> None:
        assert make_call().get_transaction_data() == "myEndpoint"

    def test_zero_amount_encodes_empty(self) -> None:
        call = make_call(transfers=[TokenTransfer(FUNGIBLE_NAME, 0, 0)])
        assert call.normalize().get_transaction_data() == (
            f"ESDTTransfer@{FUNGIBLE_NAME_HEX}@@{ENDPOINT_NAME_HEX}"
        )

    def test_sendable_transaction(self) -> None:
        sendable = make_call(ARGS, transfers=[FUNGIBLE]).normalize().to_sendable_transaction(5_000_000)
        assert sendable.receiver == RECEIVER
        assert sendable.gas_limit == 5_000_000
        assert sendable.egld_value == 0
        assert sendable.data.startswith("ESDTTransfer@")

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenTransfer(FUNGIBLE_NAME, 0, -1)
