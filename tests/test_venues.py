"""Tests for venue adapters."""

import base64
import json

import httpx
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from swap_engine.config.settings import SOL_MINT
from swap_engine.venues.base import ExecutionError, FailureReason, QuoteError, SwapPayload
from swap_engine.venues.jupiter import JupiterQuoteClient
from swap_engine.venues.paper import PaperVenue
from swap_engine.venues.solana_rpc import SolanaLedger, keypair_signer, parse_keypair

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
WALLET = "BotWa11et1111111111111111111111111111111111"

QUOTE_RESPONSE = {
    "inputMint": SOL_MINT,
    "outputMint": USDC_MINT,
    "inAmount": "1000000000",
    "outAmount": "149250000",
    "priceImpactPct": "0.12",
    "slippageBps": 30,
    "routePlan": [],
}


def jupiter_client(handler) -> JupiterQuoteClient:
    client = httpx.AsyncClient(base_url="https://jup.test", transport=httpx.MockTransport(handler))
    return JupiterQuoteClient(user_public_key=WALLET, client=client)


def rpc_ledger(handler, **kwargs) -> SolanaLedger:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SolanaLedger(
        rpc_url="https://rpc.test",
        wallet_public_key=WALLET,
        signer=lambda tx: tx,
        confirm_interval_seconds=0,
        client=client,
        **kwargs,
    )


def rpc_result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


# Paper venue


@pytest.mark.asyncio
async def test_paper_quote_and_submit():
    venue = PaperVenue(rates={(SOL_MINT, USDC_MINT): 0.15}, price_impact_pct=0.0)

    quote = await venue.get_quote(SOL_MINT, USDC_MINT, 1_000_000_000, 30)
    assert quote.out_amount == 150_000_000

    signature = await venue.submit(await venue.build_swap(quote))
    assert signature.startswith("PAPER_")
    assert venue.submissions[0]["in_amount"] == 1_000_000_000


@pytest.mark.asyncio
async def test_paper_inverse_rate_and_missing_route():
    venue = PaperVenue(rates={(SOL_MINT, USDC_MINT): 0.5}, price_impact_pct=0.0)

    quote = await venue.get_quote(USDC_MINT, SOL_MINT, 1_000, 30)
    assert quote.out_amount == 2_000
    assert await venue.get_quote(SOL_MINT, "UNKNOWN", 1_000, 30) is None


@pytest.mark.asyncio
async def test_paper_queued_failure():
    venue = PaperVenue(rates={(SOL_MINT, USDC_MINT): 0.5})
    venue.fail_next_submission("nope", FailureReason.TIMED_OUT)
    payload = await venue.build_swap(await venue.get_quote(SOL_MINT, USDC_MINT, 1_000, 30))

    with pytest.raises(ExecutionError) as exc_info:
        await venue.submit(payload)
    assert exc_info.value.reason == FailureReason.TIMED_OUT

    assert (await venue.submit(payload)).startswith("PAPER_")


# Jupiter


@pytest.mark.asyncio
async def test_jupiter_quote():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=QUOTE_RESPONSE)

    quote = await jupiter_client(handler).get_quote(SOL_MINT, USDC_MINT, 1_000_000_000, 30)

    assert seen["path"] == "/quote"
    assert seen["params"]["amount"] == "1000000000"
    assert seen["params"]["slippageBps"] == "30"
    assert quote.in_amount == 1_000_000_000
    assert quote.out_amount == 149_250_000
    assert quote.price_impact_pct == pytest.approx(0.12)
    assert quote.route == QUOTE_RESPONSE


@pytest.mark.asyncio
async def test_jupiter_no_route_is_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"error": "Could not find any route", "errorCode": "COULD_NOT_FIND_ANY_ROUTE"}
        )

    assert await jupiter_client(handler).get_quote(SOL_MINT, USDC_MINT, 1, 30) is None


@pytest.mark.asyncio
async def test_jupiter_transport_errors():
    def server_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "internal"})

    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    def unreachable(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    for handler in (server_error, not_json, unreachable):
        with pytest.raises(QuoteError):
            await jupiter_client(handler).get_quote(SOL_MINT, USDC_MINT, 1, 30)


@pytest.mark.asyncio
async def test_jupiter_build_swap():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/quote":
            return httpx.Response(200, json=QUOTE_RESPONSE)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"swapTransaction": "dHg=", "lastValidBlockHeight": 123})

    client = jupiter_client(handler)
    quote = await client.get_quote(SOL_MINT, USDC_MINT, 1_000_000_000, 30)
    payload = await client.build_swap(quote)

    assert payload.transaction == "dHg="
    assert payload.last_valid_block_height == 123
    assert seen["body"]["userPublicKey"] == WALLET
    assert seen["body"]["quoteResponse"] == QUOTE_RESPONSE
    assert seen["body"]["wrapAndUnwrapSol"] is True


# Solana RPC


@pytest.mark.asyncio
async def test_ledger_submit_and_confirm():
    methods = []
    statuses = iter([None, {"confirmationStatus": "processed", "err": None},
                     {"confirmationStatus": "confirmed", "err": None}])

    def handler(request: httpx.Request) -> httpx.Response:
        method = json.loads(request.content)["method"]
        methods.append(method)
        if method == "sendTransaction":
            return rpc_result(request, "5igSig")
        return rpc_result(request, {"value": [next(statuses)]})

    signature = await rpc_ledger(handler).submit(SwapPayload(transaction="dHg="))

    assert signature == "5igSig"
    assert methods == ["sendTransaction"] + ["getSignatureStatuses"] * 3


@pytest.mark.asyncio
async def test_ledger_simulation_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "jsonrpc": "2.0",
                "id": body["id"],
                "error": {"code": -32002, "message": "Transaction simulation failed"},
            },
        )

    with pytest.raises(ExecutionError) as exc_info:
        await rpc_ledger(handler).submit(SwapPayload(transaction="dHg="))
    assert exc_info.value.reason == FailureReason.SIMULATION_FAILED


@pytest.mark.asyncio
async def test_ledger_confirmation_timeout_does_not_resend():
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        method = json.loads(request.content)["method"]
        methods.append(method)
        if method == "sendTransaction":
            return rpc_result(request, "5igSig")
        return rpc_result(request, {"value": [None]})

    with pytest.raises(ExecutionError) as exc_info:
        await rpc_ledger(handler, confirm_attempts=3).submit(SwapPayload(transaction="dHg="))

    assert exc_info.value.reason == FailureReason.TIMED_OUT
    assert methods.count("sendTransaction") == 1


@pytest.mark.asyncio
async def test_ledger_failed_transaction():
    def handler(request: httpx.Request) -> httpx.Response:
        if json.loads(request.content)["method"] == "sendTransaction":
            return rpc_result(request, "5igSig")
        return rpc_result(
            request, {"value": [{"confirmationStatus": "confirmed", "err": {"InstructionError": [0, 1]}}]}
        )

    with pytest.raises(ExecutionError):
        await rpc_ledger(handler).submit(SwapPayload(transaction="dHg="))


@pytest.mark.asyncio
async def test_ledger_balances():
    def handler(request: httpx.Request) -> httpx.Response:
        method = json.loads(request.content)["method"]
        if method == "getBalance":
            return rpc_result(request, {"value": 2_500_000_000})
        token_account = {"account": {"data": {"parsed": {"info": {"tokenAmount": {"uiAmount": 12.5}}}}}}
        return rpc_result(request, {"value": [token_account, token_account]})

    ledger = rpc_ledger(handler)

    assert await ledger.get_balance(SOL_MINT) == 2.5
    assert await ledger.get_balance(USDC_MINT) == 25.0


def test_ledger_requires_rpc_url():
    with pytest.raises(ValueError):
        SolanaLedger(rpc_url="", wallet_public_key=WALLET, signer=lambda tx: tx)


def test_keypair_parsing_and_signing():
    keypair = Keypair()
    parsed = parse_keypair(json.dumps(list(bytes(keypair))))
    assert parsed.pubkey() == keypair.pubkey()

    message = MessageV0.try_compile(
        keypair.pubkey(),
        [transfer(TransferParams(from_pubkey=keypair.pubkey(), to_pubkey=Keypair().pubkey(), lamports=1))],
        [],
        Hash.default(),
    )
    unsigned = VersionedTransaction.populate(message, [Signature.default()])

    signed_b64 = keypair_signer(parsed)(base64.b64encode(bytes(unsigned)).decode())
    signed = VersionedTransaction.from_bytes(base64.b64decode(signed_b64))

    assert signed.signatures[0] != Signature.default()
    assert signed.message == message
