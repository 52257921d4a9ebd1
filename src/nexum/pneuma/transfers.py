"""
Payment normalization and transaction data encoding.

A call may carry native coin (the envelope ``value``) or token transfers, never
both. Token transfers are not envelope fields: they are folded into a call to
one of the built-in transfer functions, with the called endpoint and its
arguments appended:

    ESDTTransfer@<id>@<amount>[@<fn>[@args...]]
    ESDTNFTTransfer@<id>@<nonce>@<amount>@<receiver>[@<fn>[@args...]]
    MultiESDTNFTTransfer@<receiver>@<count>@(<id>@<nonce>@<amount>)*[@<fn>[@args...]]

The NFT and multi forms are self-calls: the envelope receiver becomes the
sender and the real receiver travels as an argument.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from ..errors import EgldAndEsdtPaymentsDetected
from ..sigil.address import Address
from ..utils import int_to_min_bytes


ESDT_TRANSFER = "ESDTTransfer"
ESDT_NFT_TRANSFER = "ESDTNFTTransfer"
MULTI_ESDT_NFT_TRANSFER = "MultiESDTNFTTransfer"


@dataclass(frozen=True)
class TokenTransfer:
    identifier: str
    nonce: int
    amount: int

    def __post_init__(self) -> None:
        if self.nonce < 0 or self.nonce >= 1 << 64:
            raise ValueError(f"Token nonce out of u64 range: {self.nonce}")
        if self.amount < 0:
            raise ValueError(f"Token amount must be non-negative: {self.amount}")

    @property
    def is_fungible(self) -> bool:
        return self.nonce == 0

    def __fingerprint__(self) -> list:
        return [self.identifier, self.nonce, self.amount]


@dataclass(frozen=True)
class SendableTransaction:
    """A call reduced to the envelope fields a signer needs."""

    receiver: str
    egld_value: int
    gas_limit: int
    data: str


@dataclass(frozen=True)
class CanonicalCall:
    sender: str
    receiver: str
    function: Optional[str]
    arguments: tuple[bytes, ...] = ()
    egld_value: int = 0
    esdt_transfers: tuple[TokenTransfer, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "arguments", tuple(bytes(a) for a in self.arguments))
        object.__setattr__(self, "esdt_transfers", tuple(self.esdt_transfers))

    def _inner_call(self) -> list[bytes]:
        inner = []
        if self.function is not None:
            inner.append(self.function.encode("utf-8"))
        inner.extend(self.arguments)
        return inner

    def normalize(self) -> "CanonicalCall":
        """
        Fold token transfers into a built-in transfer call.

        Returns:
            A new CanonicalCall with no token transfers left

        Raises:
            EgldAndEsdtPaymentsDetected: If native amount and transfers are both set
            AddressFormatError: If the receiver is not a valid address
        """
        transfers = self.esdt_transfers
        if not transfers:
            return self
        if self.egld_value > 0:
            raise EgldAndEsdtPaymentsDetected()

        if len(transfers) == 1:
            transfer = transfers[0]
            token_id = transfer.identifier.encode("utf-8")
            if transfer.is_fungible:
                receiver = self.receiver
                function = ESDT_TRANSFER
                built_in = [token_id, int_to_min_bytes(transfer.amount)]
            else:
                receiver = self.sender
                function = ESDT_NFT_TRANSFER
                built_in = [
                    token_id,
                    int_to_min_bytes(transfer.nonce),
                    int_to_min_bytes(transfer.amount),
                    Address.from_bech32(self.receiver).raw,
                ]
        else:
            receiver = self.sender
            function = MULTI_ESDT_NFT_TRANSFER
            built_in = [
                Address.from_bech32(self.receiver).raw,
                int_to_min_bytes(len(transfers)),
            ]
            for transfer in transfers:
                built_in.append(transfer.identifier.encode("utf-8"))
                built_in.append(int_to_min_bytes(transfer.nonce))
                built_in.append(int_to_min_bytes(transfer.amount))

        return replace(
            self,
            receiver=receiver,
            function=function,
            arguments=tuple(built_in + self._inner_call()),
            egld_value=0,
            esdt_transfers=(),
        )

    def get_transaction_data(self) -> str:
        """``fn@hex(arg1)@hex(arg2)...``; an empty argument keeps its empty segment."""
        segments = []
        if self.function is not None:
            segments.append(self.function)
        segments.extend(arg.hex() for arg in self.arguments)
        return "@".join(segments)

    def to_sendable_transaction(self, gas_limit: int) -> SendableTransaction:
        return SendableTransaction(
            receiver=self.receiver,
            egld_value=self.egld_value,
            gas_limit=gas_limit,
            data=self.get_transaction_data(),
        )


def build_call(
    sender: "Address | str",
    receiver: "Address | str",
    function: Optional[str],
    arguments: Sequence[bytes] = (),
    egld_value: int = 0,
    esdt_transfers: Sequence[TokenTransfer] = (),
) -> CanonicalCall:
    """Build a CanonicalCall from addresses in any accepted form."""
    return CanonicalCall(
        sender=Address.parse(sender).to_bech32(),
        receiver=Address.parse(receiver).to_bech32(),
        function=function,
        arguments=tuple(arguments),
        egld_value=egld_value,
        esdt_transfers=tuple(esdt_transfers),
    )
