"""
Executors talking to a live gateway.

``NetworkQueryExecutor`` runs read-only VM queries. ``NetworkExecutor`` signs
and submits transactions, then polls until the transaction is final and hands
the receipt to the result extractor.

A transaction is submitted exactly once. Anything that fails after the
gateway accepted it is raised as ``PostSubmissionError`` (state may have
changed), except contract errors, which are ``SmartContractExecutionError``,
and the polling timeout, which is ``TransactionTimeoutError`` and carries the
transaction hash.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from ...config import Settings
from ...errors import (
    NexumError,
    PostSubmissionError,
    SmartContractExecutionError,
    TransactionTimeoutError,
)
from ...sigil.address import Address
from ...sigil.wallet import Wallet
from ..deploy import CodeMetadata, build_deploy_call
from ..gateway import GatewayClient
from ..receipt import TransactionReceipt
from ..results import (
    decode_result,
    find_deployed_address,
    find_smart_contract_result,
    raise_for_contract_error,
)
from ..rpc import NetworkConfig, fetch_account, fetch_network_config, query_vm
from ..transfers import CanonicalCall, TokenTransfer
from ..tx import (
    EachDuration,
    RefreshStrategy,
    build_transaction,
    send_transaction,
    sign_transaction,
    wait_for_receipt,
)
from .base import CallResult, never_skip, normalized_call


logger = logging.getLogger(__name__)


def _gateway(gateway: "GatewayClient | str") -> GatewayClient:
    return GatewayClient(gateway) if isinstance(gateway, str) else gateway


class NetworkQueryExecutor:
    def __init__(self, gateway: "GatewayClient | str") -> None:
        self.gateway = _gateway(gateway)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "NetworkQueryExecutor":
        settings = settings or Settings.from_env()
        return cls(GatewayClient(settings.gateway_url, timeout=settings.http_timeout))

    @property
    def endpoint_id(self) -> str:
        return self.gateway.url

    async def execute(
        self,
        contract: "Address | str",
        function: str,
        args: Sequence[bytes],
        shape: Any = None,
        egld_value: int = 0,
        esdt_transfers: Sequence[TokenTransfer] = (),
    ) -> Any:
        # Queries have no signer: the contract is its own caller.
        call = normalized_call(contract, contract, function, args, egld_value, esdt_transfers)
        results = await query_vm(
            self.gateway,
            contract=call.receiver,
            function=call.function or "",
            args=call.arguments,
            caller=call.sender,
            value=call.egld_value,
        )
        return decode_result(results, shape)


class NetworkExecutor:
    """
    Transaction and deploy executor.

    Concurrent calls from the same wallet race on the account nonce: callers
    must serialize them.

    Args:
        gateway: Gateway client or URL
        wallet: Signing wallet; its address is the sender
        network: Network parameters (fetched lazily when omitted)
        timeout: Seconds to wait for a final status
        refresh: Poll pacing (default: every second)
        should_skip_deserialization: Hook returning True for calls whose
            result must not be decoded
    """

    def __init__(
        self,
        gateway: "GatewayClient | str",
        wallet: Wallet,
        network: Optional[NetworkConfig] = None,
        timeout: float = 10.0,
        refresh: Optional[RefreshStrategy] = None,
        should_skip_deserialization: Callable[[CanonicalCall], bool] = never_skip,
    ) -> None:
        self.gateway = _gateway(gateway)
        self.wallet = wallet
        self.network = network
        self.timeout = timeout
        self.refresh = refresh or EachDuration(1.0)
        self.should_skip_deserialization = should_skip_deserialization

    @classmethod
    async def connect(
        cls,
        gateway: "GatewayClient | str",
        wallet: Wallet,
        **kwargs: Any,
    ) -> "NetworkExecutor":
        """Create an executor and fetch the network config up front."""
        gateway = _gateway(gateway)
        network = await fetch_network_config(gateway)
        return cls(gateway, wallet, network=network, **kwargs)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, wallet: Optional[Wallet] = None) -> "NetworkExecutor":
        settings = settings or Settings.from_env()
        if wallet is None:
            wallet = Wallet(settings.private_key) if settings.private_key else Wallet.from_env()
        return cls(
            GatewayClient(settings.gateway_url, timeout=settings.http_timeout),
            wallet,
            timeout=settings.tx_timeout,
            refresh=EachDuration(settings.poll_interval),
        )

    async def _network_config(self) -> NetworkConfig:
        if self.network is None:
            self.network = await fetch_network_config(self.gateway)
        return self.network

    async def submit(self, call: CanonicalCall, gas_limit: int) -> tuple[str, TransactionReceipt]:
        """
        Sign, send once and wait for the final receipt.

        Raises:
            TransactionTimeoutError: If the transaction isn't final in time
            PostSubmissionError: If the receipt can't be read once sent
        """
        network = await self._network_config()
        account = await fetch_account(self.gateway, self.wallet.address)
        tx = sign_transaction(build_transaction(call, account.nonce, gas_limit, network), self.wallet)
        tx_hash = await send_transaction(self.gateway, tx)
        try:
            receipt = await wait_for_receipt(self.gateway, tx_hash, self.timeout, self.refresh)
        except TransactionTimeoutError:
            raise
        except NexumError as exc:
            raise PostSubmissionError(tx_hash, None, exc) from exc
        return tx_hash, receipt

    def _extract(self, call: CanonicalCall, receipt: TransactionReceipt, shape: Any) -> Any:
        raise_for_contract_error(receipt)
        if self.should_skip_deserialization(call):
            return None
        return decode_result(find_smart_contract_result(receipt), shape)

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
        call = normalized_call(
            self.wallet.address, contract, function or None, args, egld_value, esdt_transfers
        )
        tx_hash, receipt = await self.submit(call, gas_limit)
        try:
            result = self._extract(call, receipt, shape)
        except SmartContractExecutionError:
            raise
        except NexumError as exc:
            raise PostSubmissionError(tx_hash, receipt, exc) from exc
        return CallResult(receipt=receipt, result=result)

    async def deploy(
        self,
        code: bytes,
        code_metadata: CodeMetadata,
        gas_limit: int,
        args: Sequence[bytes] = (),
        shape: Any = None,
        egld_value: int = 0,
    ) -> tuple[Address, CallResult]:
        call = build_deploy_call(self.wallet.address, code, code_metadata, args, egld_value)
        tx_hash, receipt = await self.submit(call, gas_limit)
        try:
            result = self._extract(call, receipt, shape)
            address = find_deployed_address(receipt)
        except SmartContractExecutionError:
            raise
        except NexumError as exc:
            raise PostSubmissionError(tx_hash, receipt, exc) from exc
        logger.info(
            "Contract deployed",
            extra={"event": "tx.deploy", "tx_hash": tx_hash, "address": address.to_bech32()},
        )
        return address, CallResult(receipt=receipt, result=result)
