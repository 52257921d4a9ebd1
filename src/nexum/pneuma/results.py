"""
Result extraction from transaction receipts.

The return data of a contract call is not a field of the transaction: it is
carried by a follow-up smart contract result (SCR) whose data looks like
``@6f6b@<hex>@<hex>...`` (``6f6b`` is "ok"). When the call produced no such
SCR (e.g. intra-shard calls without value), the same payload is found in a
``writeLog`` event. Errors are reported through a ``signalError`` event.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..codec import decode_multi
from ..errors import (
    CodecDecodeError,
    GatewayParseError,
    NoSCDeployLogInTheResponse,
    NoSmartContractResult,
    SmartContractExecutionError,
)
from ..sigil.address import Address
from ..utils import b64decode, hex_decode
from .receipt import TransactionLogs, TransactionReceipt


RESULT_OK = "6f6b"
SUCCESS_STATUSES = frozenset({"success", "successful", "executed"})
ERROR_SIGNALLED_BY_SMART_CONTRACT = "error signalled by smartcontract"
SIGNAL_ERROR = "signalError"
WRITE_LOG = "writeLog"
SC_DEPLOY = "SCDeploy"


@dataclass(frozen=True)
class SmartContractError:
    status: int
    message: str


def parse_result_data(data: str) -> list[bytes]:
    """
    Split ``@6f6b@aa@bb`` into ``[b"\\xaa", b"\\xbb"]``.

    Raises:
        CodecDecodeError: If the payload is not an "ok" result
    """
    segments = data.split("@")
    if len(segments) < 2 or segments[0] != "":
        raise CodecDecodeError(f"Cannot decode smart contract result: {data!r}")
    if segments[1] != RESULT_OK:
        raise CodecDecodeError(f"Smart contract result is not ok: {data!r}")
    try:
        return [hex_decode(segment) for segment in segments[2:]]
    except ValueError as exc:
        raise CodecDecodeError(f"Cannot decode smart contract result: {data!r}") from exc


def _decode_base64_text(value: str) -> str:
    try:
        return b64decode(value).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as exc:
        raise CodecDecodeError(f"Cannot decode base64 text {value!r}") from exc


def _result_from_logs(logs: TransactionLogs) -> Optional[list[bytes]]:
    for event in reversed(logs.events):
        if event.identifier != WRITE_LOG or not event.data:
            continue
        decoded = _decode_base64_text(event.data)
        if decoded.startswith("@"):
            return parse_result_data(decoded)
    return None


def find_smart_contract_result_or_none(receipt: TransactionReceipt) -> Optional[list[bytes]]:
    """Like ``find_smart_contract_result`` but returns None when absent."""
    for scr in receipt.smart_contract_results or ():
        # nonce 0 entries are refunds / async callbacks, not return data
        if scr.nonce != 0 and scr.data.startswith("@"):
            return parse_result_data(scr.data)
    if receipt.logs is not None:
        return _result_from_logs(receipt.logs)
    return None


def find_smart_contract_result(receipt: TransactionReceipt) -> list[bytes]:
    """
    Locate the raw return values of a contract call.

    Raises:
        NoSmartContractResult: If no result entry exists
        CodecDecodeError: If a result entry exists but is not decodable
    """
    result = find_smart_contract_result_or_none(receipt)
    if result is None:
        raise NoSmartContractResult()
    return result


def find_sc_error(logs: Optional[TransactionLogs]) -> Optional[SmartContractError]:
    """
    Find the ``signalError`` event, if any.

    Raises:
        GatewayParseError: If the event doesn't have exactly two topics
    """
    if logs is None:
        return None
    for event in logs.events:
        if event.identifier != SIGNAL_ERROR:
            continue
        if len(event.topics) != 2:
            raise GatewayParseError(
                f"signalError event must have 2 topics, got {len(event.topics)}"
            )
        message = _decode_base64_text(event.topics[1])
        status = 10 if ERROR_SIGNALLED_BY_SMART_CONTRACT in message else 4
        return SmartContractError(status=status, message=message)
    return None


def is_success(receipt: TransactionReceipt) -> bool:
    """A success status is overridden by any error-signalling event."""
    if receipt.status not in SUCCESS_STATUSES:
        return False
    return find_sc_error(receipt.logs) is None


def find_deployed_address(receipt: TransactionReceipt) -> Address:
    """
    Read the new contract address from the ``SCDeploy`` event.

    Raises:
        NoSCDeployLogInTheResponse: If no deploy event is present
    """
    if receipt.logs is not None:
        for event in receipt.logs.events:
            if event.identifier == SC_DEPLOY:
                return Address.from_bech32(event.address)
    raise NoSCDeployLogInTheResponse()


def decode_result(results: list[bytes], shape: Any) -> Any:
    """Decode into ``shape``. A ``None`` shape ignores the results."""
    if shape is None:
        return None
    return decode_multi(results, shape)


def raise_for_contract_error(receipt: TransactionReceipt) -> None:
    """Raise ``SmartContractExecutionError`` unless the receipt is a success."""
    if is_success(receipt):
        return
    error = find_sc_error(receipt.logs)
    if error is not None:
        raise SmartContractExecutionError(error.status, error.message)
    raise SmartContractExecutionError(4, f"transaction status {receipt.status}")
