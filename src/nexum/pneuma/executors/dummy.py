"""
Executor that records calls instead of running them.

Useful to build transaction data offline, e.g. for a multisig proposal or an
external signer. ``call`` returns an empty result and keeps the last
``SendableTransaction``.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ...sigil.address import Address
from ..deploy import CodeMetadata, build_deploy_call
from ..receipt import TransactionReceipt
from ..transfers import SendableTransaction, TokenTransfer
from .base import CallResult, normalized_call


class DummyExecutor:
    def __init__(self, sender: Optional["Address | str"] = None) -> None:
        self.sender = Address.parse(sender) if sender is not None else Address.zero()
        self.last_transaction: Optional[SendableTransaction] = None

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
        self.last_transaction = call.to_sendable_transaction(gas_limit)
        return CallResult(receipt=TransactionReceipt(status="pending"), result=None)

    async def deploy(
        self,
        code: bytes,
        code_metadata: CodeMetadata,
        gas_limit: int,
        args: Sequence[bytes] = (),
        shape: Any = None,
        egld_value: int = 0,
    ) -> tuple[Address, CallResult]:
        call = build_deploy_call(self.sender, code, code_metadata, args, egld_value)
        self.last_transaction = call.to_sendable_transaction(gas_limit)
        return Address.zero(), CallResult(receipt=TransactionReceipt(status="pending"), result=None)
