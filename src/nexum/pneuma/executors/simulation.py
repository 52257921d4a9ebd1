"""
Dry-run executor.

Sends the call to ``transaction/cost?checkSignature=false`` instead of
submitting it. Nothing is signed and no state changes. The simulation
response is turned into a synthetic receipt so the regular result extractor
applies unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Sequence

from ...errors import GatewayParseError, SimulationError, SmartContractExecutionError
from ...sigil.address import Address
from ..gateway import GatewayClient
from ..receipt import TransactionReceipt, parse_logs, parse_scr
from ..results import decode_result, find_sc_error, find_smart_contract_result_or_none
from ..rpc import fetch_account, fetch_guardian_data, fetch_network_config
from ..transfers import CanonicalCall, TokenTransfer
from ..tx import GUARDED_TRANSACTION_OPTIONS, GUARDED_TRANSACTION_VERSION, build_transaction
from .base import CallResult, never_skip, normalized_call


logger = logging.getLogger(__name__)

SIMULATION_GUARDIAN_SIGNATURE = "00"


class SimulationExecutor:
    def __init__(
        self,
        gateway: "GatewayClient | str",
        sender: "Address | str",
        should_skip_deserialization: Callable[[CanonicalCall], bool] = never_skip,
    ) -> None:
        self.gateway = GatewayClient(gateway) if isinstance(gateway, str) else gateway
        self.sender = Address.parse(sender)
        self.should_skip_deserialization = should_skip_deserialization

    async def simulate(self, call: CanonicalCall, gas_limit: int) -> dict[str, Any]:
        """
        Run the dry-run and return the raw response envelope.

        Account nonce, guardian data and network config are fetched
        concurrently.
        """
        account, guardian, network = await asyncio.gather(
            fetch_account(self.gateway, call.sender),
            fetch_guardian_data(self.gateway, call.sender),
            fetch_network_config(self.gateway),
        )
        tx = build_transaction(call, account.nonce, gas_limit, network)
        tx = replace(tx, version=network.min_transaction_version)
        if guardian.guarded and guardian.active_guardian is not None:
            tx = replace(
                tx,
                guardian=guardian.active_guardian,
                guardian_signature=SIMULATION_GUARDIAN_SIGNATURE,
                version=GUARDED_TRANSACTION_VERSION,
                options=GUARDED_TRANSACTION_OPTIONS,
            )

        response = await self.gateway.post("transaction/cost?checkSignature=false", tx.to_dict())
        if not isinstance(response.body, dict):
            raise GatewayParseError(f"Cannot parse simulation response (HTTP {response.status_code})")
        return response.body

    async def call(
        self,
        contract: "Address | str",
        function: str,
        args: Sequence[bytes],
        gas_limit: int,
        shape: Any = None,
        egld_value: int = 0,
        esdt_transfers: Sequence[TokenTransfer] = (),
    ) -> CallResult:
        call = normalized_call(self.sender, contract, function or None, args, egld_value, esdt_transfers)
        body = await self.simulate(call, gas_limit)

        data = body.get("data")
        if not isinstance(data, dict):
            raise SimulationError(str(body.get("code", "")), str(body.get("error", "")))

        raw_scrs = data.get("smartContractResults") or {}
        if not isinstance(raw_scrs, dict):
            raise GatewayParseError(
                f"Simulation smartContractResults must be an object keyed by hash, got {type(raw_scrs).__name__}"
            )
        try:
            scrs = []
            for tx_hash, scr in raw_scrs.items():
                if not isinstance(scr, dict):
                    raise GatewayParseError(f"Simulated result {tx_hash} must be an object")
                if scr.get("data") is not None:
                    scrs.append(parse_scr(scr, hash_=tx_hash))
            logs = parse_logs(data["logs"]) if data.get("logs") else None
            gas_used = int(data.get("txGasUnits", 0) or 0)
        except (KeyError, TypeError, ValueError) as exc:
            raise GatewayParseError(f"Malformed simulation response: {exc}") from exc

        receipt = TransactionReceipt(
            status="success",
            gas_used=gas_used,
            smart_contract_results=tuple(scrs),
            logs=logs,
            raw=data,
        )
        logger.debug(
            "Simulated transaction",
            extra={"event": "simulation.call", "function": function, "gas_units": gas_used},
        )

        results = find_smart_contract_result_or_none(receipt)
        if results is None:
            error = find_sc_error(logs)
            if error is not None:
                raise SmartContractExecutionError(error.status, error.message)
            results = []
        if self.should_skip_deserialization(call):
            return CallResult(receipt=receipt, result=None)
        return CallResult(receipt=receipt, result=decode_result(results, shape))
