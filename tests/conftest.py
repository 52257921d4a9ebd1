"""Shared fixtures: a small adder contract and its world snapshot."""

from __future__ import annotations

from pathlib import Path

import pytest

from nexum.codec import BigUint
from nexum.pneuma.executors.world import ContractSignal, MockContract, MockWorld, endpoint


FIXTURES = Path(__file__).parent / "fixtures"
ADDER = "erd1qqqqqqqqqqqqqpgq9wmk04e90fkhcuzns0pgwm33sdtxze346vpsq0ka9p"
OWNER = "erd1h4uhy73dev6qrfj7wxsguapzs8632mfwqjswjpsj6kzm2jfrnslqsuduqu"
ADDER_CODE = b"\x00asm-adder"


class AdderContract(MockContract):
    @endpoint()
    def init(self, ctx, initial=b""):
        ctx.storage_set("sum", initial)

    @endpoint("getSum")
    def get_sum(self, ctx):
        return [ctx.storage_get("sum")]

    @endpoint()
    def add(self, ctx, value):
        total = BigUint.decode_top(ctx.storage_get("sum")) + BigUint.decode_top(value)
        ctx.storage_set("sum", BigUint.encode_top(total))
        ctx.emit("add", [b"add", value])
        return [BigUint.encode_top(total)]

    @endpoint()
    def upgrade(self, ctx, value):
        ctx.require(ctx.caller == ctx.contract.owner, "only owner can upgrade")
        ctx.storage_set("sum", value)

    @endpoint()
    def deposit(self, ctx):
        ctx.require(bool(ctx.payments), "no token payment")
        received = sum(p.amount for p in ctx.payments)
        return [BigUint.encode_top(received)]

    @endpoint()
    def fail(self, ctx):
        raise ContractSignal("error signalled by smartcontract: always fails")


@pytest.fixture()
def snapshot_path() -> Path:
    return FIXTURES / "adder_world.json"


@pytest.fixture()
def world(snapshot_path: Path) -> MockWorld:
    world = MockWorld.from_snapshot(snapshot_path)
    world.register_contract(ADDER, AdderContract())
    world.register_code(ADDER_CODE, AdderContract)
    return world
