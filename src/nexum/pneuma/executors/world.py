"""
In-memory ledger for the mock executor.

The world holds accounts (nonce, native balance, token balances, storage) and
Python implementations of contracts. It executes *normalized* calls: built-in
token transfer functions are interpreted here, then the inner endpoint is
dispatched to the contract. Each execution is atomic: a failed call leaves
balances and storage untouched (only the sender nonce moves).

Receipts are shaped like gateway receipts so the regular result extractor can
be used on them.
"""

from __future__ import annotations

import copy
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from ...errors import MockExecutionError
from ...sigil.address import Address
from ...utils import b64encode, min_bytes_to_int
from ..deploy import WASM_VM_TYPE, CodeMetadata
from ..gateway import GatewayClient
from ..receipt import LogEvent, SmartContractResult, TransactionLogs, TransactionReceipt
from ..transfers import (
    ESDT_NFT_TRANSFER,
    ESDT_TRANSFER,
    MULTI_ESDT_NFT_TRANSFER,
    CanonicalCall,
    TokenTransfer,
)
from .snapshot import WorldSnapshot


class ContractSignal(Exception):
    """Raised by contract code to abort the call (``signalError``)."""


def endpoint(name: Optional[str] = None) -> Callable:
    def decorate(fn: Callable) -> Callable:
        fn._endpoint_name = name or fn.__name__
        return fn
    return decorate


class MockContract:
    """
    Base class for Python contract implementations.

    Endpoints are methods decorated with ``@endpoint``. They receive a
    ``CallContext`` and the raw top-encoded arguments, and return a list of
    top-encoded results.
    """

    def endpoints(self) -> dict[str, Callable]:
        found = {}
        for attr in dir(type(self)):
            fn = getattr(self, attr)
            name = getattr(fn, "_endpoint_name", None)
            if name is not None:
                found[name] = fn
        return found

    def dispatch(self, ctx: "CallContext", function: str, args: list[bytes]) -> list[bytes]:
        fn = self.endpoints().get(function)
        if fn is None:
            raise ContractSignal(f"invalid function (not found): {function}")
        try:
            return list(fn(ctx, *args) or [])
        except TypeError as exc:
            raise ContractSignal(f"wrong number of arguments: {exc}") from exc


@dataclass
class MockAccount:
    address: Address
    nonce: int = 0
    balance: int = 0
    tokens: dict[tuple[str, int], int] = field(default_factory=dict)
    storage: dict[bytes, bytes] = field(default_factory=dict)
    code: Optional[bytes] = None
    code_metadata: Optional[CodeMetadata] = None
    owner: Optional[Address] = None

    def token_balance(self, identifier: str, nonce: int = 0) -> int:
        return self.tokens.get((identifier, nonce), 0)


class CallContext:
    """What a contract endpoint sees while it runs."""

    def __init__(
        self,
        world: "MockWorld",
        contract: MockAccount,
        caller: Address,
        egld_value: int,
        payments: list[TokenTransfer],
    ) -> None:
        self.world = world
        self.contract = contract
        self.caller = caller
        self.egld_value = egld_value
        self.payments = payments
        self.events: list[LogEvent] = []

    @staticmethod
    def _key(key: Union[str, bytes]) -> bytes:
        return key.encode("utf-8") if isinstance(key, str) else key

    def storage_get(self, key: Union[str, bytes]) -> bytes:
        return self.contract.storage.get(self._key(key), b"")

    def storage_set(self, key: Union[str, bytes], value: bytes) -> None:
        key = self._key(key)
        if value:
            self.contract.storage[key] = value
        else:
            self.contract.storage.pop(key, None)

    def emit(self, identifier: str, topics: list[bytes], data: bytes = b"") -> None:
        self.events.append(
            LogEvent(
                address=self.contract.address.to_bech32(),
                identifier=identifier,
                topics=tuple(b64encode(t) for t in topics),
                data=b64encode(data) if data else None,
            )
        )

    def require(self, condition: bool, message: str) -> None:
        if not condition:
            raise ContractSignal(message)


class MockWorld:
    def __init__(self) -> None:
        self.accounts: dict[Address, MockAccount] = {}
        self.contracts: dict[Address, MockContract] = {}
        self.codes: dict[bytes, Callable[[], MockContract]] = {}
        self._tx_counter = 0

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def account(self, address: "Address | str") -> MockAccount:
        address = Address.parse(address)
        if address not in self.accounts:
            self.accounts[address] = MockAccount(address=address)
        return self.accounts[address]

    def set_balance(self, address: "Address | str", balance: int) -> None:
        self.account(address).balance = balance

    def set_token_balance(self, address: "Address | str", identifier: str, nonce: int, amount: int) -> None:
        self.account(address).tokens[(identifier, nonce)] = amount

    def register_contract(
        self,
        address: "Address | str",
        contract: MockContract,
        owner: Optional["Address | str"] = None,
    ) -> MockAccount:
        """Bind a contract implementation to an existing or new address."""
        account = self.account(address)
        self.contracts[account.address] = contract
        if account.code is None:
            account.code = type(contract).__name__.encode("utf-8")
        if owner is not None:
            account.owner = Address.parse(owner)
        return account

    def register_code(self, code: bytes, factory: Callable[[], MockContract]) -> None:
        """Make ``code`` deployable; ``factory`` builds a fresh implementation."""
        self.codes[bytes(code)] = factory

    @classmethod
    def from_snapshot(cls, path: "Path | str") -> "MockWorld":
        """
        Load accounts from a JSON snapshot file (see :mod:`.snapshot`).

        Raises:
            WorldSnapshotError: If the file can't be read or parsed
        """
        return WorldSnapshot.from_file(path).apply(cls())

    @classmethod
    async def from_gateway(cls, gateway: GatewayClient, addresses: Sequence["Address | str"]) -> "MockWorld":
        """Copy the on-chain state of ``addresses`` into a fresh world."""
        snapshot = await WorldSnapshot.fetch(gateway, addresses)
        return snapshot.apply(cls())

    def snapshot(self) -> WorldSnapshot:
        return WorldSnapshot.from_world(self)

    def save_into_file(self, path: "Path | str") -> None:
        self.snapshot().save_into_file(path)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _next_hash(self, *parts: bytes) -> str:
        self._tx_counter += 1
        digest = hashlib.sha256(self._tx_counter.to_bytes(8, "big") + b"".join(parts))
        return digest.hexdigest()

    def _move_egld(self, sender: MockAccount, receiver: MockAccount, amount: int) -> None:
        if amount == 0:
            return
        if sender.balance < amount:
            raise ContractSignal("insufficient funds")
        sender.balance -= amount
        receiver.balance += amount

    def _move_token(self, sender: MockAccount, receiver: MockAccount, transfer: TokenTransfer) -> None:
        key = (transfer.identifier, transfer.nonce)
        available = sender.tokens.get(key, 0)
        if available < transfer.amount:
            raise ContractSignal(f"insufficient funds for token {transfer.identifier}")
        sender.tokens[key] = available - transfer.amount
        if sender.tokens[key] == 0:
            del sender.tokens[key]
        receiver.tokens[key] = receiver.tokens.get(key, 0) + transfer.amount

    @staticmethod
    def _parse_built_in(call: CanonicalCall) -> tuple[Address, list[TokenTransfer], Optional[str], list[bytes]]:
        args = list(call.arguments)
        try:
            if call.function == ESDT_TRANSFER:
                destination = Address.from_bech32(call.receiver)
                transfers = [TokenTransfer(args[0].decode("utf-8"), 0, min_bytes_to_int(args[1]))]
                rest = args[2:]
            elif call.function == ESDT_NFT_TRANSFER:
                destination = Address(args[3])
                transfers = [
                    TokenTransfer(args[0].decode("utf-8"), min_bytes_to_int(args[1]), min_bytes_to_int(args[2]))
                ]
                rest = args[4:]
            else:
                destination = Address(args[0])
                count = min_bytes_to_int(args[1])
                transfers = []
                for i in range(count):
                    token_id, nonce, amount = args[2 + 3 * i: 5 + 3 * i]
                    transfers.append(
                        TokenTransfer(token_id.decode("utf-8"), min_bytes_to_int(nonce), min_bytes_to_int(amount))
                    )
                rest = args[2 + 3 * count:]
        except (IndexError, ValueError, UnicodeDecodeError) as exc:
            raise ContractSignal(f"invalid arguments for {call.function}") from exc

        inner_function = rest[0].decode("utf-8") if rest else None
        return destination, transfers, inner_function, rest[1:]

    def _invoke(
        self,
        destination: MockAccount,
        caller: Address,
        function: str,
        args: list[bytes],
        egld_value: int,
        payments: list[TokenTransfer],
    ) -> tuple[list[bytes], list[LogEvent]]:
        contract = self.contracts.get(destination.address)
        if contract is None:
            raise ContractSignal(f"no contract code at {destination.address.to_bech32()}")
        ctx = CallContext(self, destination, caller, egld_value, payments)
        results = contract.dispatch(ctx, function, args)
        return results, ctx.events

    def _run(self, call: CanonicalCall) -> tuple[list[bytes], list[LogEvent]]:
        sender = self.account(call.sender)
        if call.function in (ESDT_TRANSFER, ESDT_NFT_TRANSFER, MULTI_ESDT_NFT_TRANSFER):
            destination_address, transfers, inner, inner_args = self._parse_built_in(call)
            destination = self.account(destination_address)
            for transfer in transfers:
                self._move_token(sender, destination, transfer)
            if inner is None:
                return [], []
            return self._invoke(destination, sender.address, inner, inner_args, 0, transfers)

        receiver = self.account(call.receiver)
        self._move_egld(sender, receiver, call.egld_value)
        if call.function is None:
            return [], []
        return self._invoke(receiver, sender.address, call.function, list(call.arguments), call.egld_value, [])

    def query(self, call: CanonicalCall) -> list[bytes]:
        """
        Run a call and discard every state change.

        Raises:
            MockExecutionError: If the contract signals an error
        """
        saved = copy.deepcopy(self.accounts)
        try:
            results, _ = self._run(call)
        except ContractSignal as exc:
            raise MockExecutionError(str(exc)) from exc
        finally:
            self.accounts = saved
        return results

    def _receipt(
        self,
        call: CanonicalCall,
        tx_hash: str,
        results: Optional[list[bytes]],
        events: list[LogEvent],
        error: Optional[str],
    ) -> TransactionReceipt:
        sender = Address.from_bech32(call.sender)
        if error is not None:
            events = [
                LogEvent(
                    address=call.receiver,
                    identifier="signalError",
                    topics=(b64encode(sender.raw), b64encode(error.encode("utf-8"))),
                    data=None,
                )
            ]
            return TransactionReceipt(
                status="fail",
                hash=tx_hash,
                smart_contract_results=(),
                logs=TransactionLogs(address=call.receiver, events=tuple(events)),
            )

        data = "@" + "@".join(["6f6b"] + [r.hex() for r in results or []])
        scr = SmartContractResult(
            hash=self._next_hash(tx_hash.encode("ascii")),
            nonce=self.account(sender).nonce,
            data=data,
            sender=call.receiver,
            receiver=call.sender,
        )
        events = list(events) + [
            LogEvent(address=call.receiver, identifier="completedTxEvent", topics=(b64encode(bytes.fromhex(tx_hash)),))
        ]
        return TransactionReceipt(
            status="success",
            hash=tx_hash,
            smart_contract_results=(scr,),
            logs=TransactionLogs(address=call.receiver, events=tuple(events)),
        )

    def execute(self, call: CanonicalCall) -> TransactionReceipt:
        """Apply a state-changing call. Failures produce a ``fail`` receipt."""
        self.account(call.sender)
        tx_hash = self._next_hash(call.get_transaction_data().encode("utf-8"))
        saved = copy.deepcopy(self.accounts)
        try:
            results, events = self._run(call)
        except ContractSignal as exc:
            self.accounts = saved
            sender = self.account(call.sender)
            sender.nonce += 1
            return self._receipt(call, tx_hash, None, [], str(exc))
        sender = self.account(call.sender)
        sender.nonce += 1
        return self._receipt(call, tx_hash, results, events, None)

    def new_contract_address(self, creator: Address, nonce: int) -> Address:
        digest = hashlib.sha256(creator.raw + nonce.to_bytes(8, "little")).digest()
        return Address(bytes(8) + WASM_VM_TYPE + digest[10:30] + creator.raw[30:])

    def deploy(self, call: CanonicalCall) -> tuple[Address, TransactionReceipt]:
        """
        Deploy registered code. The call is built by ``build_deploy_call``.

        Raises:
            MockExecutionError: If the code was never registered
        """
        code, _vm_type, metadata, *args = call.arguments
        factory = self.codes.get(code)
        if factory is None:
            raise MockExecutionError("Deployed code is not registered in the mock world")

        creator = self.account(call.sender)
        address = self.new_contract_address(creator.address, creator.nonce)
        tx_hash = self._next_hash(code, creator.address.raw)
        saved = copy.deepcopy(self.accounts)
        saved_contracts = dict(self.contracts)
        try:
            account = self.account(address)
            account.code = code
            account.code_metadata = CodeMetadata.from_bytes(metadata)
            account.owner = creator.address
            contract = factory()
            self.contracts[address] = contract
            self._move_egld(creator, account, call.egld_value)
            ctx = CallContext(self, account, creator.address, call.egld_value, [])
            results = contract.dispatch(ctx, "init", list(args)) if "init" in contract.endpoints() else []
            events = ctx.events
        except ContractSignal as exc:
            self.accounts = saved
            self.contracts = saved_contracts
            self.account(call.sender).nonce += 1
            return address, self._receipt(call, tx_hash, None, [], str(exc))

        creator = self.account(call.sender)
        creator.nonce += 1
        deploy_event = LogEvent(
            address=address.to_bech32(),
            identifier="SCDeploy",
            topics=(b64encode(address.raw), b64encode(creator.address.raw)),
        )
        receipt = self._receipt(call, tx_hash, results, [deploy_event] + events, None)
        return address, receipt
