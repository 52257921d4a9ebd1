"""
Executor capability contracts.

Three independent protocols, any backend may implement any subset:

- ``QueryExecutor``: read-only, safe to retry and to run concurrently
- ``TransactionExecutor``: state-changing contract call
- ``DeployExecutor``: contract deployment

``shape`` is the codec descriptor of the expected return value (``None`` for
"returns nothing"). Arguments are already top-encoded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from ...sigil.address import Address
from ..deploy import CodeMetadata
from ..receipt import TransactionReceipt
from ..transfers import CanonicalCall, TokenTransfer, build_call


@dataclass(frozen=True)
class CallResult:
    receipt: TransactionReceipt
    result: Any = None


class QueryExecutor(Protocol):
    async def execute(
        self,
        contract: "Address | str",
        function: str,
        args: Sequence[bytes],
        shape: Any = None,
        egld_value: int = 0,
        esdt_transfers: Sequence[TokenTransfer] = (),
    ) -> Any: ...


class TransactionExecutor(Protocol):
    async def call(
        self,
        contract: "Address | str",
        function: str,
        args: Sequence[bytes],
        gas_limit: int,
        shape: Any = None,
        egld_value: int = 0,
        esdt_transfers: Sequence[TokenTransfer] = (),
    ) -> CallResult: ...


class DeployExecutor(Protocol):
    async def deploy(
        self,
        code: bytes,
        code_metadata: CodeMetadata,
        gas_limit: int,
        args: Sequence[bytes] = (),
        shape: Any = None,
        egld_value: int = 0,
    ) -> tuple[Address, CallResult]: ...


def normalized_call(
    sender: "Address | str",
    receiver: "Address | str",
    function: Optional[str],
    args: Sequence[bytes],
    egld_value: int,
    esdt_transfers: Sequence[TokenTransfer],
) -> CanonicalCall:
    return build_call(sender, receiver, function, args, egld_value, esdt_transfers).normalize()


def never_skip(call: CanonicalCall) -> bool:
    return False
