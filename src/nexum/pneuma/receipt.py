"""
Transaction receipt model.

Receipts come from the gateway's ``/transaction/{hash}?withResults=true`` (or
are synthesized by the simulation and mock backends). Only the fields the
result extractor needs are modelled. Event topics and data stay base64 as
delivered by the gateway.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import GatewayParseError


@dataclass(frozen=True)
class SmartContractResult:
    hash: str
    nonce: int
    data: str
    value: int = 0
    sender: Optional[str] = None
    receiver: Optional[str] = None


@dataclass(frozen=True)
class LogEvent:
    address: str
    identifier: str
    topics: tuple[str, ...] = ()
    data: Optional[str] = None


@dataclass(frozen=True)
class TransactionLogs:
    address: str
    events: tuple[LogEvent, ...] = ()


@dataclass(frozen=True)
class TransactionReceipt:
    status: str
    hash: Optional[str] = None
    gas_used: int = 0
    smart_contract_results: Optional[tuple[SmartContractResult, ...]] = None
    logs: Optional[TransactionLogs] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_json(cls, tx: dict[str, Any]) -> "TransactionReceipt":
        """
        Parse the ``transaction`` object of a gateway response.

        Raises:
            GatewayParseError: If a required field is missing or mistyped
        """
        if not isinstance(tx, dict):
            raise GatewayParseError(f"Transaction must be an object, got {type(tx).__name__}")
        status = tx.get("status")
        if not isinstance(status, str):
            raise GatewayParseError("Transaction has no status")

        try:
            scrs = tx.get("smartContractResults")
            parsed_scrs = None
            if scrs is not None:
                if not isinstance(scrs, list):
                    raise GatewayParseError("smartContractResults must be a list")
                parsed_scrs = tuple(parse_scr(scr) for scr in scrs)

            logs = tx.get("logs")
            parsed_logs = parse_logs(logs) if logs is not None else None
            gas_used = int(tx.get("gasUsed", 0) or 0)
        except (TypeError, ValueError, KeyError) as exc:
            raise GatewayParseError(f"Malformed transaction receipt: {exc}") from exc

        return cls(
            status=status,
            hash=tx.get("hash"),
            gas_used=gas_used,
            smart_contract_results=parsed_scrs,
            logs=parsed_logs,
            raw=tx,
        )


def parse_scr(scr: dict[str, Any], hash_: Optional[str] = None) -> SmartContractResult:
    if not isinstance(scr, dict):
        raise GatewayParseError(f"Smart contract result must be an object, got {type(scr).__name__}")
    return SmartContractResult(
        hash=hash_ if hash_ is not None else scr.get("hash", ""),
        nonce=int(scr["nonce"]),
        data=scr.get("data", "") or "",
        value=int(scr.get("value", 0) or 0),
        sender=scr.get("sender"),
        receiver=scr.get("receiver"),
    )


def parse_logs(logs: dict[str, Any]) -> TransactionLogs:
    if not isinstance(logs, dict):
        raise GatewayParseError(f"Transaction logs must be an object, got {type(logs).__name__}")
    raw_events = logs.get("events") or []
    if not isinstance(raw_events, list):
        raise GatewayParseError("Log events must be a list")
    events = []
    for event in raw_events:
        if not isinstance(event, dict):
            raise GatewayParseError(f"Log event must be an object, got {type(event).__name__}")
        events.append(
            LogEvent(
                address=event.get("address", ""),
                identifier=event["identifier"],
                topics=tuple(event.get("topics") or ()),
                data=event.get("data"),
            )
        )
    return TransactionLogs(address=logs.get("address", ""), events=tuple(events))
