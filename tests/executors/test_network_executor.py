"""Tests for the gateway-backed executors, against an in-process fake gateway."""

from __future__ import annotations

import base64
import json

import httpx
import pytest
from multiversx_sdk import TransactionComputer

from nexum.codec import BigUint
from nexum.errors import (
    GatewayParseError,
    NoSmartContractResult,
    PostSubmissionError,
    QueryError,
    SmartContractExecutionError,
    TransactionTimeoutError,
)
from nexum.pneuma.deploy import CodeMetadata
from nexum.pneuma.executors import NetworkExecutor, NetworkQueryExecutor
from nexum.pneuma.gateway import GatewayClient
from nexum.pneuma.tx import EachDuration, Transaction
from nexum.sigil.wallet import Wallet


GATEWAY = "https://gateway.test"
ADDER = "erd1qqqqqqqqqqqqqpgq9wmk04e90fkhcuzns0pgwm33sdtxze346vpsq0ka9p"
SEED = "1a927e2af5306a9bb2ea777f73e06ecc0ac9aaa72fb4ea3fecf659451394cccf"
TX_HASH = "ab" * 32

NETWORK_CONFIG = {
    "erd_chain_id": "D",
    "erd_min_gas_price": 1000000000,
    "erd_min_transaction_version": 1,
}


def ok(data: dict) -> httpx.Response:
    return httpx.Response(200, json={"data": data, "error": "", "code": "successful"})


def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FakeGateway:
    """Routes gateway requests; ``receipts`` are served in order, the last one repeats."""

    def __init__(self, receipts: list[dict]) -> None:
        self.receipts = receipts
        self.sent: list[dict] = []
        self.queries: list[dict] = []
        self.polls = 0
        self.query_response: dict = {"returnData": ["BQ=="], "returnCode": "ok"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/network/config":
            return ok({"config": NETWORK_CONFIG})
        if path.startswith("/address/"):
            return ok({"account": {"address": path.split("/")[2], "nonce": 7, "balance": "0"}})
        if path == "/transaction/send":
            self.sent.append(json.loads(request.content))
            return ok({"txHash": TX_HASH})
        if path == f"/transaction/{TX_HASH}":
            assert request.url.params["withResults"] == "true"
            receipt = self.receipts[min(self.polls, len(self.receipts) - 1)]
            self.polls += 1
            if receipt is None:
                return httpx.Response(502)
            return ok({"transaction": receipt})
        if path == "/vm-values/query":
            self.queries.append(json.loads(request.content))
            return ok({"data": self.query_response})
        return httpx.Response(404, json={"data": None, "error": "not found", "code": "bad_request"})


def transaction(status: str, scrs=None, events=None) -> dict:
    tx = {"hash": TX_HASH, "status": status, "gasUsed": 1000}
    if scrs is not None:
        tx["smartContractResults"] = scrs
    if events is not None:
        tx["logs"] = {"address": ADDER, "events": events}
    return tx


SUCCESS = transaction("success", scrs=[{"hash": "r", "nonce": 8, "data": "@6f6b@0f"}])


@pytest.fixture()
def wallet() -> Wallet:
    return Wallet(SEED)


def make_executor(fake: FakeGateway, wallet: Wallet, timeout: float = 2.0) -> NetworkExecutor:
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return NetworkExecutor(
        GatewayClient(GATEWAY, client=client),
        wallet,
        timeout=timeout,
        refresh=EachDuration(0.001),
    )


class TestNetworkQueryExecutor:
    @pytest.mark.asyncio
    async def test_query(self) -> None:
        fake = FakeGateway([])
        client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
        executor = NetworkQueryExecutor(GatewayClient(GATEWAY, client=client))
        assert await executor.execute(ADDER, "getSum", [b"\x01"], BigUint) == 5
        body = fake.queries[0]
        assert body["scAddress"] == ADDER
        assert body["caller"] == ADDER
        assert body["funcName"] == "getSum"
        assert body["args"] == ["01"]
        assert executor.endpoint_id == GATEWAY

    @pytest.mark.asyncio
    async def test_query_without_return_data(self) -> None:
        fake = FakeGateway([])
        fake.query_response = {"returnData": None, "returnCode": "user error", "returnMessage": "bad"}
        client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
        executor = NetworkQueryExecutor(GatewayClient(GATEWAY, client=client))
        with pytest.raises(QueryError, match="bad"):
            await executor.execute(ADDER, "getSum", [], BigUint)


class TestNetworkExecutor:
    @pytest.mark.asyncio
    async def test_call_success(self, wallet: Wallet) -> None:
        fake = FakeGateway([SUCCESS])
        executor = make_executor(fake, wallet)
        outcome = await executor.call(ADDER, "add", [b"\x0a"], 5_000_000, BigUint)
        assert outcome.result == 15
        assert outcome.receipt.status == "success"

        sent = fake.sent[0]
        assert sent["nonce"] == 7
        assert sent["sender"] == wallet.address.to_bech32()
        assert sent["receiver"] == ADDER
        assert sent["chainID"] == "D"
        assert sent["gasPrice"] == 1000000000
        assert sent["data"] == b64("add@0a")

    @pytest.mark.asyncio
    async def test_signature_covers_signing_bytes(self, wallet: Wallet) -> None:
        fake = FakeGateway([SUCCESS])
        await make_executor(fake, wallet).call(ADDER, "add", [b"\x0a"], 5_000_000, BigUint)
        sent = fake.sent[0]
        unsigned = Transaction(
            nonce=sent["nonce"],
            value=int(sent["value"]),
            receiver=sent["receiver"],
            sender=sent["sender"],
            gas_price=sent["gasPrice"],
            gas_limit=sent["gasLimit"],
            data="add@0a",
            chain_id=sent["chainID"],
            version=sent["version"],
        )
        signing_bytes = TransactionComputer().compute_bytes_for_signing(unsigned.to_sdk())
        assert wallet.verify(signing_bytes, bytes.fromhex(sent["signature"]))
        assert unsigned.to_dict(with_signatures=False) == {k: v for k, v in sent.items() if k != "signature"}

    @pytest.mark.asyncio
    async def test_polls_until_final(self, wallet: Wallet) -> None:
        fake = FakeGateway([transaction("pending"), None, transaction("pending"), SUCCESS])
        outcome = await make_executor(fake, wallet).call(ADDER, "add", [b"\x0a"], 5_000_000, BigUint)
        assert outcome.result == 15
        assert fake.polls == 4
        assert len(fake.sent) == 1

    @pytest.mark.asyncio
    async def test_contract_error(self, wallet: Wallet) -> None:
        failed = transaction(
            "success",
            events=[{
                "address": ADDER,
                "identifier": "signalError",
                "topics": [b64("x" * 32), b64("error signalled by smartcontract: no")],
            }],
        )
        with pytest.raises(SmartContractExecutionError) as info:
            await make_executor(FakeGateway([failed]), wallet).call(ADDER, "add", [], 5_000_000)
        assert info.value.status == 10

    @pytest.mark.asyncio
    async def test_missing_result_after_submission(self, wallet: Wallet) -> None:
        refund_only = transaction("success", scrs=[{"hash": "r", "nonce": 0, "data": "@6f6b"}])
        with pytest.raises(PostSubmissionError) as info:
            await make_executor(FakeGateway([refund_only]), wallet).call(ADDER, "add", [], 5_000_000, BigUint)
        assert info.value.tx_hash == TX_HASH
        assert isinstance(info.value.cause, NoSmartContractResult)

    @pytest.mark.asyncio
    async def test_malformed_receipt_after_submission(self, wallet: Wallet) -> None:
        fake = FakeGateway([transaction("success", events=["oops"])])
        with pytest.raises(PostSubmissionError) as info:
            await make_executor(fake, wallet).call(ADDER, "add", [], 5_000_000)
        assert info.value.tx_hash == TX_HASH
        assert info.value.receipt is None
        assert isinstance(info.value.cause, GatewayParseError)
        assert len(fake.sent) == 1
        assert fake.polls == 1

    @pytest.mark.asyncio
    async def test_timeout(self, wallet: Wallet) -> None:
        fake = FakeGateway([transaction("pending")])
        with pytest.raises(TransactionTimeoutError) as info:
            await make_executor(fake, wallet, timeout=0.05).call(ADDER, "add", [], 5_000_000)
        assert info.value.tx_hash == TX_HASH
        assert len(fake.sent) == 1

    @pytest.mark.asyncio
    async def test_send_rejected(self, wallet: Wallet) -> None:
        fake = FakeGateway([SUCCESS])

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/transaction/send":
                return httpx.Response(400, json={"data": None, "error": "lowerNonceInTx", "code": "bad_request"})
            return fake(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        executor = NetworkExecutor(GatewayClient(GATEWAY, client=client), wallet, refresh=EachDuration(0.001))
        with pytest.raises(GatewayParseError, match="lowerNonceInTx"):
            await executor.call(ADDER, "add", [], 5_000_000)
        assert fake.polls == 0

    @pytest.mark.asyncio
    async def test_deploy(self, wallet: Wallet) -> None:
        deployed = transaction(
            "success",
            scrs=[{"hash": "r", "nonce": 8, "data": "@6f6b"}],
            events=[{"address": ADDER, "identifier": "SCDeploy", "topics": []}],
        )
        fake = FakeGateway([deployed])
        address, outcome = await make_executor(fake, wallet).deploy(
            b"\x00asm", CodeMetadata(), 60_000_000, [b"\x05"]
        )
        assert address.to_bech32() == ADDER
        assert outcome.result is None
        assert fake.sent[0]["data"] == b64("0061736d@0500@0500@05")
        assert fake.sent[0]["receiver"] == "erd1qqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqqq6gq4hu"

    @pytest.mark.asyncio
    async def test_connect_fetches_config(self, wallet: Wallet) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(FakeGateway([])))
        executor = await NetworkExecutor.connect(GatewayClient(GATEWAY, client=client), wallet)
        assert executor.network.chain_id == "D"
