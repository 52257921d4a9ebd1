"""
World snapshots: the on-disk form of a mock ledger.

A snapshot can be fetched from a live gateway for a set of addresses, merged
with another one, saved to a JSON file and loaded into a ``MockWorld``.

File format::

    {
      "addressInfos": [{"data": {"account": {"address": "erd1...", "nonce": 0,
                                             "balance": "0", "code": "<hex>",
                                             "ownerAddress": "erd1..."}}}],
      "addressKeys": {"erd1...": {"data": {"pairs": {"<hex key>": "<hex value>"}}}},
      "addressBalances": {"erd1...": [{"tokenIdentifier": "...", "nonce": 0, "amount": "10"}]}
    }
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Sequence

from ...errors import NexumError, WorldSnapshotError
from ...sigil.address import Address
from ...utils import hex_decode
from ..gateway import GatewayClient
from ..rpc import parse_account
from ..token import collection_identifier, fetch_token_balances

if TYPE_CHECKING:
    from .world import MockWorld


logger = logging.getLogger(__name__)


@dataclass
class WorldSnapshot:
    # Account objects as returned by ``address/{bech32}``
    address_infos: list[dict[str, Any]] = field(default_factory=list)
    # bech32 -> {hex key: hex value}
    address_keys: dict[str, dict[str, str]] = field(default_factory=dict)
    # bech32 -> [{"tokenIdentifier", "nonce", "amount"[, "attributes"]}]
    address_balances: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    @classmethod
    def from_json(cls, raw: Any) -> "WorldSnapshot":
        try:
            return cls(
                address_infos=[info["data"]["account"] for info in raw.get("addressInfos", [])],
                address_keys={
                    bech32: dict(keys["data"]["pairs"])
                    for bech32, keys in raw.get("addressKeys", {}).items()
                },
                address_balances={
                    bech32: list(balances)
                    for bech32, balances in raw.get("addressBalances", {}).items()
                },
            )
        except (AttributeError, KeyError, TypeError) as exc:
            raise WorldSnapshotError(f"Malformed world snapshot: {exc!r}") from exc

    def to_json(self) -> dict[str, Any]:
        return {
            "addressInfos": [{"data": {"account": info}} for info in self.address_infos],
            "addressKeys": {b: {"data": {"pairs": pairs}} for b, pairs in self.address_keys.items()},
            "addressBalances": self.address_balances,
        }

    @classmethod
    def from_file(cls, path: "Path | str") -> "WorldSnapshot":
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise WorldSnapshotError(f"Unable to read world snapshot from {path}: {exc}") from exc
        return cls.from_json(raw)

    def save_into_file(self, path: "Path | str") -> None:
        try:
            Path(path).write_text(json.dumps(self.to_json(), indent=2), encoding="utf-8")
        except OSError as exc:
            raise WorldSnapshotError(f"Unable to write world snapshot to {path}: {exc}") from exc

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    def overwrite(self, other: "WorldSnapshot") -> None:
        """Merge ``other`` into this snapshot; its entries win."""
        positions = {info.get("address"): i for i, info in enumerate(self.address_infos)}
        for info in other.address_infos:
            index = positions.get(info.get("address"))
            if index is None:
                positions[info.get("address")] = len(self.address_infos)
                self.address_infos.append(info)
            else:
                self.address_infos[index] = info
        self.address_keys.update(other.address_keys)
        self.address_balances.update(other.address_balances)

    # ------------------------------------------------------------------
    # Gateway
    # ------------------------------------------------------------------

    @classmethod
    async def fetch(cls, gateway: GatewayClient, addresses: Sequence["Address | str"]) -> "WorldSnapshot":
        """
        Read account state, storage and token balances of ``addresses``.

        Requests for all addresses run concurrently.

        Raises:
            WorldSnapshotError: If any of the reads fails
        """
        bech32s = [Address.parse(a).to_bech32() for a in addresses]
        try:
            infos, keys, balances = await asyncio.gather(
                asyncio.gather(*(_fetch_account(gateway, b) for b in bech32s)),
                asyncio.gather(*(_fetch_keys(gateway, b) for b in bech32s)),
                asyncio.gather(*(_fetch_balances(gateway, b) for b in bech32s)),
            )
        except NexumError as exc:
            raise WorldSnapshotError(f"Unable to fetch world snapshot: {exc}") from exc

        logger.info(
            "Fetched world snapshot",
            extra={"event": "world.snapshot.fetch", "addresses": len(bech32s)},
        )
        return cls(
            address_infos=list(infos),
            address_keys=dict(zip(bech32s, keys)),
            address_balances=dict(zip(bech32s, balances)),
        )

    # ------------------------------------------------------------------
    # Worlds
    # ------------------------------------------------------------------

    def apply(self, world: "MockWorld") -> "MockWorld":
        """Load every account of the snapshot into ``world``."""
        try:
            for info in self.address_infos:
                account = world.account(info["address"])
                account.nonce = int(info.get("nonce", 0))
                account.balance = int(info.get("balance", "0") or 0)
                if info.get("code"):
                    account.code = hex_decode(info["code"])
                if info.get("ownerAddress"):
                    account.owner = Address.from_bech32(info["ownerAddress"])
            for bech32, pairs in self.address_keys.items():
                account = world.account(bech32)
                for key, value in pairs.items():
                    account.storage[hex_decode(key)] = hex_decode(value)
            for bech32, balances in self.address_balances.items():
                account = world.account(bech32)
                for balance in balances:
                    token_key = (balance["tokenIdentifier"], int(balance.get("nonce", 0)))
                    account.tokens[token_key] = int(balance["amount"])
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise WorldSnapshotError(f"Malformed world snapshot: {exc!r}") from exc
        return world

    @classmethod
    def from_world(cls, world: "MockWorld") -> "WorldSnapshot":
        snapshot = cls()
        for address, account in world.accounts.items():
            bech32 = address.to_bech32()
            info: dict[str, Any] = {
                "address": bech32,
                "nonce": account.nonce,
                "balance": str(account.balance),
            }
            if account.code is not None:
                info["code"] = account.code.hex()
            if account.owner is not None:
                info["ownerAddress"] = account.owner.to_bech32()
            snapshot.address_infos.append(info)
            if account.storage:
                snapshot.address_keys[bech32] = {k.hex(): v.hex() for k, v in account.storage.items()}
            if account.tokens:
                snapshot.address_balances[bech32] = [
                    {"tokenIdentifier": identifier, "nonce": nonce, "amount": str(amount)}
                    for (identifier, nonce), amount in account.tokens.items()
                ]
        return snapshot


async def _fetch_account(gateway: GatewayClient, bech32: str) -> dict[str, Any]:
    data = await gateway.get_data(f"address/{bech32}")
    account = data.get("account")
    parse_account(account, bech32)
    return account


async def _fetch_keys(gateway: GatewayClient, bech32: str) -> dict[str, str]:
    data = await gateway.get_data(f"address/{bech32}/keys")
    pairs = data.get("pairs") or {}
    if not isinstance(pairs, dict):
        raise WorldSnapshotError(f"Storage pairs of {bech32} must be an object")
    return pairs


async def _fetch_balances(gateway: GatewayClient, bech32: str) -> list[dict[str, Any]]:
    amounts = []
    for balance in await fetch_token_balances(gateway, bech32):
        amount: dict[str, Any] = {
            "tokenIdentifier": collection_identifier(balance.token_identifier),
            "nonce": balance.nonce,
            "amount": str(balance.balance),
        }
        if balance.attributes is not None:
            amount["attributes"] = balance.attributes
        amounts.append(amount)
    return amounts
