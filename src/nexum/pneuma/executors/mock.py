"""
Mock executor backed by an in-memory ``MockWorld``.

Runs inline with no I/O. Calls go through the same normalization, receipt and
result-extraction path as the network backend.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from ...sigil.address import Address
from ..deploy import CodeMetadata, build_deploy_call
from ..results import (
    decode_result,
    find_deployed_address,
    find_smart_contract_result,
    raise_for_contract_error,
)
from ..transfers import CanonicalCall, TokenTransfer
from .base import CallResult, never_skip, normalized_call
from .world import MockWorld


logger = logging.getLogger(__name__)


class MockExecutor:
    """
    Query, transaction and deploy executor over a ``MockWorld``.

    Args:
        world: The simulated ledger
        caller: Sender of transactions and deployments; queries default to the
            contract itself as caller
        should_skip_deserialization: Hook deciding, per normalized call,
            whether the result is returned undecoded (``None``)
    """

    def __init__(
        self,
        world: MockWorld,
        caller: Optional["Address | str"] = None,
        should_skip_deserialization: Callable[[CanonicalCall], bool] = never_skip,
    ) -> None:
        self.world = world
        self.caller = Address.parse(caller) if caller is not None else None
        self.should_skip_deserialization = should_skip_deserialization

    def _sender(self) -> Address:
        if self.caller is None:
            raise ValueError("MockExecutor needs a caller for transactions and deployments")
        return self.caller

    def _decode(self, call: CanonicalCall, results: list[bytes], shape: Any) -> Any:
        if self.should_skip_deserialization(call):
            return None
        return decode_result(results, shape)

    async def execute(
        self,
        contract: "Address | str",
        function: str,
        args: Sequence[bytes],
        shape: Any = None,
        egld_value: int = 0,
        esdt_transfers: Sequence[TokenTransfer] = (),
    ) -> Any:
        caller = self.caller or Address.parse(contract)
        call = normalized_call(caller, contract, function, args, egld_value, esdt_transfers)
        results = self.world.query(call)
        return self._decode(call, results, shape)

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
        call = normalized_call(self._sender(), contract, function, args, egld_value, esdt_transfers)
        receipt = self.world.execute(call)
        logger.debug(
            "Mock transaction executed",
            extra={"event": "mock.call", "function": function, "status": receipt.status},
        )
        raise_for_contract_error(receipt)
        if self.should_skip_deserialization(call):
            return CallResult(receipt=receipt, result=None)
        results = find_smart_contract_result(receipt)
        return CallResult(receipt=receipt, result=decode_result(results, shape))

    async def deploy(
        self,
        code: bytes,
        code_metadata: CodeMetadata,
        gas_limit: int,
        args: Sequence[bytes] = (),
        shape: Any = None,
        egld_value: int = 0,
    ) -> tuple[Address, CallResult]:
        call = build_deploy_call(self._sender(), code, code_metadata, args, egld_value)
        _, receipt = self.world.deploy(call)
        raise_for_contract_error(receipt)
        address = find_deployed_address(receipt)
        logger.info("Mock contract deployed", extra={"event": "mock.deploy", "address": address.to_bech32()})
        if self.should_skip_deserialization(call):
            return address, CallResult(receipt=receipt, result=None)
        results = find_smart_contract_result(receipt)
        return address, CallResult(receipt=receipt, result=decode_result(results, shape))
