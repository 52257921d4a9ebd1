"""
Token reads: ESDT properties from the system contract, balances of an account.

Properties come from the ``getTokenProperties`` view of the ESDT system smart
contract. Its return values are a name, a type, the owner address, minted and
burnt amounts (decimal strings), then ``Key-value`` flags such as
``NumDecimals-18`` or ``CanMint-true``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..codec import AddressValue, MultiValue, String, Variadic, decode_multi
from ..errors import CodecDecodeError, GatewayParseError, QueryError, TokenNotFoundError, TokenParseError
from ..sigil.address import Address
from .gateway import GatewayClient
from .rpc import query_vm


ESDT_SYSTEM_CONTRACT = "erd1qqqqqqqqqqqqqqqpqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqzllls8a5w6u"
TOKEN_NOT_FOUND_MESSAGE = "no ticker with given name"

_PROPERTIES_SHAPE = MultiValue(String, String, AddressValue, String, String, Variadic(String))


@dataclass(frozen=True)
class TokenProperties:
    identifier: str
    name: str
    type: str
    owner: str
    minted_value: int
    burnt_value: int
    decimals: int
    is_paused: bool = False
    can_upgrade: bool = False
    can_mint: bool = False
    can_burn: bool = False
    can_change_owner: bool = False
    can_pause: bool = False
    can_freeze: bool = False
    can_wipe: bool = False
    can_add_special_roles: bool = False
    can_transfer_nft_creation_role: bool = False
    nft_create_stopped: bool = False
    wiped_amount: int = 0


_FLAGS = {
    "IsPaused": "is_paused",
    "CanUpgrade": "can_upgrade",
    "CanMint": "can_mint",
    "CanBurn": "can_burn",
    "CanChangeOwner": "can_change_owner",
    "CanPause": "can_pause",
    "CanFreeze": "can_freeze",
    "CanWipe": "can_wipe",
    "CanAddSpecialRoles": "can_add_special_roles",
    "CanTransferNFTCreateRole": "can_transfer_nft_creation_role",
    "NFTCreateStopped": "nft_create_stopped",
}


@dataclass(frozen=True)
class TokenBalance:
    token_identifier: str
    nonce: int
    balance: int
    attributes: Optional[str] = None


def _amount(identifier: str, raw: str) -> int:
    try:
        return int(raw or "0")
    except ValueError as exc:
        raise TokenParseError(identifier, f"{raw!r} is not an amount") from exc


def parse_token_properties(identifier: str, results: list[bytes]) -> TokenProperties:
    try:
        name, type_, owner, minted, burnt, flags = decode_multi(results, _PROPERTIES_SHAPE)
    except CodecDecodeError as exc:
        raise TokenParseError(identifier, str(exc)) from exc

    pairs = dict(flag.split("-", 1) for flag in flags if "-" in flag)
    if "NumDecimals" not in pairs:
        raise TokenParseError(identifier, "no NumDecimals entry")

    return TokenProperties(
        identifier=identifier,
        name=name,
        type=type_,
        owner=owner.to_bech32(),
        minted_value=_amount(identifier, minted),
        burnt_value=_amount(identifier, burnt),
        decimals=_amount(identifier, pairs["NumDecimals"]),
        wiped_amount=_amount(identifier, pairs.get("NumWiped", "0")),
        **{field: pairs.get(key) == "true" for key, field in _FLAGS.items()},
    )


async def fetch_token_properties(gateway: GatewayClient, identifier: str) -> TokenProperties:
    """
    Read a token's properties from the ESDT system contract.

    Raises:
        TokenNotFoundError: If no token has this identifier
        TokenParseError: If the contract's answer has an unexpected shape
    """
    try:
        results = await query_vm(
            gateway,
            contract=ESDT_SYSTEM_CONTRACT,
            function="getTokenProperties",
            args=[identifier.encode("utf-8")],
        )
    except QueryError as exc:
        if TOKEN_NOT_FOUND_MESSAGE in str(exc):
            raise TokenNotFoundError(identifier) from exc
        raise
    return parse_token_properties(identifier, results)


def collection_identifier(token_identifier: str) -> str:
    """``SFT-abcdef-0a`` -> ``SFT-abcdef``; fungible identifiers are unchanged."""
    return "-".join(token_identifier.split("-")[:2])


def _parse_balance(address: str, raw: Any) -> TokenBalance:
    if not isinstance(raw, dict) or not isinstance(raw.get("tokenIdentifier"), str):
        raise GatewayParseError(f"Malformed token balance for {address}: {raw!r}")
    try:
        return TokenBalance(
            token_identifier=raw["tokenIdentifier"],
            nonce=int(raw.get("nonce") or 0),
            balance=int(raw.get("balance") or 0),
            attributes=raw.get("attributes") or None,
        )
    except (TypeError, ValueError) as exc:
        raise GatewayParseError(f"Malformed token balance for {address}: {exc}") from exc


async def fetch_token_balances(gateway: GatewayClient, address: "Address | str") -> list[TokenBalance]:
    """
    Every token held by an account (``address/{bech32}/esdt``).

    Identifiers of non-fungible holdings keep their nonce suffix, as returned
    by the gateway.
    """
    bech32 = Address.parse(address).to_bech32()
    data = await gateway.get_data(f"address/{bech32}/esdt")
    esdts = data.get("esdts") or {}
    if not isinstance(esdts, dict):
        raise GatewayParseError(f"esdts for {bech32} must be an object")
    return [_parse_balance(bech32, raw) for raw in esdts.values()]
