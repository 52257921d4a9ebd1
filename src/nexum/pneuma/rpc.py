"""
Read-only gateway calls: network parameters, account state and VM queries.

All functions take a ``GatewayClient`` and return small frozen records.
Account info can be served through any ``CachingStrategy``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..caching.base import CachingNone, CachingStrategy
from ..errors import GatewayParseError, QueryError
from ..sigil.address import Address
from ..utils import b64decode
from .gateway import GatewayClient


@dataclass(frozen=True)
class NetworkConfig:
    chain_id: str
    min_gas_price: int
    min_transaction_version: int

    @classmethod
    def from_json(cls, config: dict[str, Any]) -> "NetworkConfig":
        try:
            return cls(
                chain_id=str(config["erd_chain_id"]),
                min_gas_price=int(config["erd_min_gas_price"]),
                min_transaction_version=int(config["erd_min_transaction_version"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise GatewayParseError(f"Malformed network config: {exc}") from exc


@dataclass(frozen=True)
class AccountInfo:
    address: str
    nonce: int
    balance: int
    username: str = ""
    code: str = ""
    code_hash: Optional[str] = None
    root_hash: Optional[str] = None
    code_metadata: Optional[str] = None
    developer_reward: int = 0
    owner_address: Optional[str] = None


@dataclass(frozen=True)
class GuardianData:
    guarded: bool
    active_guardian: Optional[str] = None


async def fetch_network_config(gateway: GatewayClient) -> NetworkConfig:
    data = await gateway.get_data("network/config")
    return NetworkConfig.from_json(data.get("config") or {})


def parse_account(account: Any, bech32: str) -> AccountInfo:
    if not isinstance(account, dict):
        raise GatewayParseError(f"No account in response for {bech32}")
    try:
        return AccountInfo(
            address=account.get("address", bech32),
            nonce=int(account.get("nonce", 0)),
            balance=int(account.get("balance", "0") or 0),
            username=account.get("username", "") or "",
            code=account.get("code", "") or "",
            code_hash=account.get("codeHash") or None,
            root_hash=account.get("rootHash") or None,
            code_metadata=account.get("codeMetadata") or None,
            developer_reward=int(account.get("developerReward", "0") or 0),
            owner_address=account.get("ownerAddress") or None,
        )
    except (TypeError, ValueError) as exc:
        raise GatewayParseError(f"Malformed account for {bech32}: {exc}") from exc


async def fetch_account(
    gateway: GatewayClient,
    address: "Address | str",
    caching: Optional[CachingStrategy] = None,
) -> AccountInfo:
    """
    Fetch an account's state.

    Args:
        gateway: Gateway client
        address: Account address
        caching: Cache for the result, keyed by gateway URL and address
            (default: no caching)

    Raises:
        GatewayParseError: If the response doesn't describe an account
    """
    bech32 = Address.parse(address).to_bech32()
    caching = caching or CachingNone()

    async def load() -> AccountInfo:
        data = await gateway.get_data(f"address/{bech32}")
        return parse_account(data.get("account"), bech32)

    key = CachingStrategy.key_for("fetch_account", gateway.url, bech32)
    return await caching.get_or_set(key, load)


async def fetch_guardian_data(gateway: GatewayClient, address: "Address | str") -> GuardianData:
    bech32 = Address.parse(address).to_bech32()
    data = await gateway.get_data(f"address/{bech32}/guardian-data")
    guardian_data = data.get("guardianData") or {}
    if not isinstance(guardian_data, dict):
        raise GatewayParseError(f"guardianData for {bech32} must be an object")
    active = guardian_data.get("activeGuardian") or {}
    if not isinstance(active, dict):
        raise GatewayParseError(f"activeGuardian for {bech32} must be an object")
    return GuardianData(
        guarded=bool(guardian_data.get("guarded", False)),
        active_guardian=active.get("address") or None,
    )


async def query_vm(
    gateway: GatewayClient,
    contract: str,
    function: str,
    args: Sequence[bytes],
    caller: Optional[str] = None,
    value: int = 0,
) -> list[bytes]:
    """
    Run a read-only contract call (``vm-values/query``).

    Args:
        gateway: Gateway client
        contract: bech32 contract address
        function: Endpoint name
        args: Top-encoded arguments
        caller: bech32 caller (default: omitted)
        value: Native amount attached to the query

    Returns:
        Raw return values

    Raises:
        QueryError: If the VM returned no data
    """
    body: dict[str, Any] = {
        "scAddress": contract,
        "funcName": function,
        "value": str(value),
        "args": [arg.hex() for arg in args],
    }
    if caller is not None:
        body["caller"] = caller

    data = await gateway.post_data("vm-values/query", body)
    vm_output = data.get("data")
    if not isinstance(vm_output, dict):
        raise GatewayParseError("vm-values/query response has no data.data")
    return_data = vm_output.get("returnData")
    if return_data is None:
        raise QueryError(vm_output.get("returnMessage") or vm_output.get("returnCode") or "query failed")
    try:
        return [b64decode(item or "") for item in return_data]
    except ValueError as exc:
        raise GatewayParseError(f"Malformed returnData: {exc}") from exc
