"""Tests for receipt parsing and result extraction."""

from __future__ import annotations

import pytest

from nexum.codec import BigUint, MultiValue, U8
from nexum.errors import (
    CodecDecodeError,
    GatewayParseError,
    NoSCDeployLogInTheResponse,
    NoSmartContractResult,
    SmartContractExecutionError,
)
from nexum.pneuma.receipt import TransactionReceipt
from nexum.pneuma.results import (
    decode_result,
    find_deployed_address,
    find_sc_error,
    find_smart_contract_result,
    find_smart_contract_result_or_none,
    is_success,
    parse_result_data,
    raise_for_contract_error,
)
from nexum.utils import b64encode


CONTRACT = "erd1qqqqqqqqqqqqqpgq9wmk04e90fkhcuzns0pgwm33sdtxze346vpsq0ka9p"
SENDER = "erd1h4uhy73dev6qrfj7wxsguapzs8632mfwqjswjpsj6kzm2jfrnslqsuduqu"


def signal_error(message: str) -> dict:
    return {
        "address": CONTRACT,
        "identifier": "signalError",
        "topics": [b64encode(b"\x01" * 32), b64encode(message.encode("utf-8"))],
        "data": None,
    }


def receipt(status="success", scrs=None, events=None) -> TransactionReceipt:
    tx = {"status": status, "hash": "ab" * 32, "gasUsed": 1200}
    if scrs is not None:
        tx["smartContractResults"] = scrs
    if events is not None:
        tx["logs"] = {"address": CONTRACT, "events": events}
    return TransactionReceipt.from_json(tx)


class TestParseResultData:
    def test_values(self) -> None:
        assert parse_result_data("@6f6b@0a@0218711a00") == [b"\x0a", bytes.fromhex("0218711a00")]

    def test_empty_segment(self) -> None:
        assert parse_result_data("@6f6b@@05") == [b"", b"\x05"]

    def test_no_values(self) -> None:
        assert parse_result_data("@6f6b") == []

    @pytest.mark.parametrize("data", ["6f6b@05", "@75736572@05", "@6f6b@zz"])
    def test_invalid(self, data: str) -> None:
        with pytest.raises(CodecDecodeError):
            parse_result_data(data)


class TestFromJson:
    def test_fields(self) -> None:
        parsed = receipt(scrs=[{"hash": "h1", "nonce": 3, "data": "@6f6b", "value": "10"}])
        assert parsed.gas_used == 1200
        assert parsed.smart_contract_results[0].value == 10
        assert parsed.logs is None

    def test_missing_status(self) -> None:
        with pytest.raises(GatewayParseError):
            TransactionReceipt.from_json({"hash": "x"})

    def test_malformed_scr(self) -> None:
        with pytest.raises(GatewayParseError):
            TransactionReceipt.from_json({"status": "success", "smartContractResults": [{"data": "@6f6b"}]})

    @pytest.mark.parametrize(
        "fields",
        [
            {"logs": []},
            {"logs": {"events": "signalError"}},
            {"logs": {"events": ["oops"]}},
            {"smartContractResults": {"h1": {"nonce": 1}}},
            {"smartContractResults": ["@6f6b"]},
        ],
    )
    def test_mistyped_containers(self, fields: dict) -> None:
        with pytest.raises(GatewayParseError):
            TransactionReceipt.from_json({"status": "success", **fields})


class TestFindResult:
    def test_from_scr(self) -> None:
        parsed = receipt(scrs=[
            {"hash": "refund", "nonce": 0, "data": "@6f6b@ff"},
            {"hash": "result", "nonce": 7, "data": "@6f6b@05"},
        ])
        assert find_smart_contract_result(parsed) == [b"\x05"]

    def test_refund_only(self) -> None:
        parsed = receipt(scrs=[{"hash": "refund", "nonce": 0, "data": "@6f6b"}])
        with pytest.raises(NoSmartContractResult):
            find_smart_contract_result(parsed)
        assert find_smart_contract_result_or_none(parsed) is None

    def test_write_log_fallback(self) -> None:
        parsed = receipt(events=[
            {"address": CONTRACT, "identifier": "writeLog", "topics": [], "data": "QDZmNmJAMGFAMDIxODcxMWEwMA=="},
        ])
        assert find_smart_contract_result(parsed) == [b"\x0a", bytes.fromhex("0218711a00")]

    def test_write_log_decodes_multi(self) -> None:
        parsed = receipt(events=[
            {"address": CONTRACT, "identifier": "writeLog", "topics": [], "data": "QDZmNmJAMGFAMDIxODcxMWEwMA=="},
        ])
        results = find_smart_contract_result(parsed)
        assert decode_result(results, MultiValue(U8, BigUint)) == (10, 9000000000)

    def test_nothing_at_all(self) -> None:
        with pytest.raises(NoSmartContractResult):
            find_smart_contract_result(receipt())


class TestErrors:
    def test_success(self) -> None:
        assert is_success(receipt(scrs=[]))
        raise_for_contract_error(receipt(scrs=[]))

    def test_signal_error_overrides_success(self) -> None:
        parsed = receipt(events=[signal_error("error signalled by smartcontract: nope")])
        assert not is_success(parsed)
        error = find_sc_error(parsed.logs)
        assert error.status == 10
        assert error.message == "error signalled by smartcontract: nope"

    def test_other_error_status(self) -> None:
        parsed = receipt(status="fail", events=[signal_error("out of gas")])
        with pytest.raises(SmartContractExecutionError) as info:
            raise_for_contract_error(parsed)
        assert info.value.status == 4
        assert info.value.message == "out of gas"

    def test_failed_without_event(self) -> None:
        with pytest.raises(SmartContractExecutionError):
            raise_for_contract_error(receipt(status="invalid"))

    def test_wrong_topic_count(self) -> None:
        event = signal_error("x")
        event["topics"] = event["topics"][:1]
        with pytest.raises(GatewayParseError):
            find_sc_error(receipt(events=[event]).logs)


class TestDeployedAddress:
    def test_sc_deploy_event(self) -> None:
        parsed = receipt(events=[{"address": CONTRACT, "identifier": "SCDeploy", "topics": []}])
        assert find_deployed_address(parsed).to_bech32() == CONTRACT

    def test_missing(self) -> None:
        with pytest.raises(NoSCDeployLogInTheResponse):
            find_deployed_address(receipt(events=[]))


class TestDecodeResult:
    def test_none_shape_ignores_values(self) -> None:
        assert decode_result([b"\x01"], None) is None

    def test_mismatch(self) -> None:
        with pytest.raises(CodecDecodeError):
            decode_result([], BigUint)
