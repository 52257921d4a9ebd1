"""
Transaction builder: build, sign, send and wait for finality.

The bytes to sign come from ``multiversx_sdk.TransactionComputer``, so the
signature covers exactly what the protocol expects. The payload sent to the
gateway carries the same fields: ``data`` travels base64 encoded and
``options`` is omitted when zero.

Sending is never retried here. Polling for the receipt is retried until a
final status is reached or the timeout expires.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Optional

from multiversx_sdk import Address as SdkAddress
from multiversx_sdk import Transaction as SdkTransaction
from multiversx_sdk import TransactionComputer

from ..caching.clock import seconds_until_next_block
from ..errors import GatewayError, GatewayParseError, TransactionTimeoutError
from ..sigil.wallet import Wallet
from ..utils import b64encode
from .gateway import GatewayClient
from .receipt import TransactionReceipt
from .rpc import NetworkConfig
from .transfers import CanonicalCall


logger = logging.getLogger(__name__)

TRANSACTION_VERSION = 1
GUARDED_TRANSACTION_VERSION = 2
GUARDED_TRANSACTION_OPTIONS = 2
PENDING_STATUSES = frozenset({"pending", "received", "partially-executed"})

_computer = TransactionComputer()


@dataclass(frozen=True)
class Transaction:
    nonce: int
    value: int
    receiver: str
    sender: str
    gas_price: int
    gas_limit: int
    data: str
    chain_id: str
    version: int = TRANSACTION_VERSION
    options: int = 0
    guardian: Optional[str] = None
    signature: Optional[str] = None
    guardian_signature: Optional[str] = None

    def to_dict(self, with_signatures: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "nonce": self.nonce,
            "value": str(self.value),
            "receiver": self.receiver,
            "sender": self.sender,
            "gasPrice": self.gas_price,
            "gasLimit": self.gas_limit,
        }
        if self.data:
            payload["data"] = b64encode(self.data.encode("utf-8"))
        if with_signatures and self.signature is not None:
            payload["signature"] = self.signature
        payload["chainID"] = self.chain_id
        payload["version"] = self.version
        if self.options:
            payload["options"] = self.options
        if self.guardian is not None:
            payload["guardian"] = self.guardian
        if with_signatures and self.guardian_signature is not None:
            payload["guardianSignature"] = self.guardian_signature
        return payload

    def to_sdk(self) -> SdkTransaction:
        return SdkTransaction(
            sender=SdkAddress.new_from_bech32(self.sender),
            receiver=SdkAddress.new_from_bech32(self.receiver),
            gas_limit=self.gas_limit,
            chain_id=self.chain_id,
            nonce=self.nonce,
            value=self.value,
            gas_price=self.gas_price,
            data=self.data.encode("utf-8"),
            version=self.version,
            options=self.options,
            guardian=SdkAddress.new_from_bech32(self.guardian) if self.guardian else None,
        )

    def serialize_for_signing(self) -> bytes:
        return _computer.compute_bytes_for_signing(self.to_sdk())


def build_transaction(
    call: CanonicalCall,
    nonce: int,
    gas_limit: int,
    network: NetworkConfig,
) -> Transaction:
    """
    Build an unsigned transaction from a normalized call.

    Args:
        call: Output of ``CanonicalCall.normalize()``
        nonce: Sender account nonce
        gas_limit: Gas limit
        network: Chain id and minimum gas price

    Returns:
        Unsigned Transaction
    """
    return Transaction(
        nonce=nonce,
        value=call.egld_value,
        receiver=call.receiver,
        sender=call.sender,
        gas_price=network.min_gas_price,
        gas_limit=gas_limit,
        data=call.get_transaction_data(),
        chain_id=network.chain_id,
    )


def sign_transaction(tx: Transaction, wallet: Wallet) -> Transaction:
    signature = wallet.sign(tx.serialize_for_signing())
    return replace(tx, signature=signature.hex())


async def send_transaction(gateway: GatewayClient, tx: Transaction) -> str:
    """
    Submit a signed transaction once.

    Returns:
        Transaction hash
    """
    data = await gateway.post_data("transaction/send", tx.to_dict())
    tx_hash = data.get("txHash")
    if not isinstance(tx_hash, str):
        raise GatewayParseError("transaction/send response has no txHash")
    logger.info("Transaction sent", extra={"event": "tx.sent", "tx_hash": tx_hash})
    return tx_hash


class RefreshStrategy:
    async def wait(self) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class EachDuration(RefreshStrategy):
    interval: float

    async def wait(self) -> None:
        await asyncio.sleep(self.interval)


@dataclass(frozen=True)
class EachBlock(RefreshStrategy):
    async def wait(self) -> None:
        await asyncio.sleep(seconds_until_next_block(time.time()))


async def _poll_until_final(
    gateway: GatewayClient,
    tx_hash: str,
    refresh: RefreshStrategy,
) -> TransactionReceipt:
    attempt = 0
    while True:
        attempt += 1
        try:
            data = await gateway.get_data(f"transaction/{tx_hash}?withResults=true")
        except GatewayError as exc:
            logger.warning(
                "Polling transaction failed, retrying",
                extra={"event": "tx.poll.retry", "tx_hash": tx_hash, "attempt": attempt, "error": str(exc)},
            )
        else:
            # Malformed receipts are not retried.
            receipt = TransactionReceipt.from_json(data.get("transaction"))
            logger.debug(
                "Polled transaction",
                extra={"event": "tx.poll", "tx_hash": tx_hash, "status": receipt.status, "attempt": attempt},
            )
            if receipt.status not in PENDING_STATUSES:
                return receipt
        await refresh.wait()


async def wait_for_receipt(
    gateway: GatewayClient,
    tx_hash: str,
    timeout: float,
    refresh: Optional[RefreshStrategy] = None,
) -> TransactionReceipt:
    """
    Poll a transaction until its status is final.

    Raises:
        TransactionTimeoutError: If it's still pending after ``timeout`` seconds
    """
    refresh = refresh or EachDuration(1.0)
    try:
        return await asyncio.wait_for(_poll_until_final(gateway, tx_hash, refresh), timeout)
    except asyncio.TimeoutError as exc:
        raise TransactionTimeoutError(tx_hash, timeout) from exc
