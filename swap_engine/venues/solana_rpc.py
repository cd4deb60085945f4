"""Solana ledger adapter.

Signs, submits and confirms swap transactions and reads wallet balances over
Solana JSON-RPC.
"""

import asyncio
import base64
from typing import Any, Callable, Optional

import httpx
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from swap_engine.config.settings import SOL_MINT
from swap_engine.venues.base import (
    BalanceProvider,
    ExecutionError,
    FailureReason,
    SwapPayload,
    TransactionExecutor,
    VenueError,
)

LAMPORTS_PER_SOL = 1_000_000_000

# JSON-RPC error code for a failed preflight simulation
SIMULATION_FAILED_CODE = -32002

Signer = Callable[[str], str]


def parse_keypair(raw: str) -> Keypair:
    """Parse a private key given as base58 or as a JSON byte array."""
    value = raw.strip()
    if value.startswith("["):
        arr = [int(part) for part in value.strip("[]").split(",") if part.strip()]
        return Keypair.from_bytes(bytes(arr))
    return Keypair.from_base58_string(value)


def keypair_signer(keypair: Keypair) -> Signer:
    """Build a signer that signs base64 versioned transactions with a keypair."""

    def sign(transaction_b64: str) -> str:
        unsigned = VersionedTransaction.from_bytes(base64.b64decode(transaction_b64))
        signed = VersionedTransaction(unsigned.message, [keypair])
        return base64.b64encode(bytes(signed)).decode()

    return sign


class SolanaLedger(TransactionExecutor, BalanceProvider):
    """Solana JSON-RPC adapter.

    Submission is never retried: a transaction that may already have been
    broadcast is reported as failed or timed out, never re-sent.
    """

    def __init__(
        self,
        rpc_url: str,
        wallet_public_key: str,
        signer: Signer,
        timeout_seconds: float = 30.0,
        confirm_attempts: int = 30,
        confirm_interval_seconds: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize ledger adapter.

        Args:
            rpc_url: Solana RPC endpoint
            wallet_public_key: Bot wallet address (base58)
            signer: Callable signing a base64 transaction
            timeout_seconds: Per-request timeout
            confirm_attempts: Status polls before giving up on confirmation
            confirm_interval_seconds: Delay between status polls
            client: Preconfigured HTTP client (tests inject a mock transport)
        """
        if not rpc_url:
            raise ValueError("Solana RPC URL is not configured")

        self.rpc_url = rpc_url
        self.wallet_public_key = wallet_public_key
        self.signer = signer
        self.timeout_seconds = timeout_seconds
        self.confirm_attempts = confirm_attempts
        self.confirm_interval_seconds = confirm_interval_seconds
        self._client = client
        self._request_id = 0

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _call(self, method: str, params: list) -> dict[str, Any]:
        """Issue a JSON-RPC call and return the raw response envelope."""
        self._request_id += 1
        body = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        try:
            response = await self._get_client().post(self.rpc_url, json=body)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise VenueError(f"RPC timeout: {method}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise VenueError(f"RPC request failed ({method}): {e}") from e

    async def submit(self, payload: SwapPayload) -> str:
        try:
            signed = self.signer(payload.transaction)
        except Exception as e:
            raise ExecutionError(f"Failed to sign transaction: {e}") from e

        try:
            envelope = await self._call(
                "sendTransaction",
                [
                    signed,
                    {"encoding": "base64", "skipPreflight": False, "preflightCommitment": "confirmed"},
                ],
            )
        except VenueError as e:
            raise ExecutionError(str(e)) from e

        if "error" in envelope:
            error = envelope["error"]
            reason = (
                FailureReason.SIMULATION_FAILED
                if error.get("code") == SIMULATION_FAILED_CODE
                else FailureReason.REJECTED
            )
            raise ExecutionError(f"Failed to send transaction: {error.get('message', error)}", reason)

        signature = envelope.get("result")
        if not signature:
            raise ExecutionError("RPC returned no signature")

        await self._wait_for_confirmation(signature)
        return signature

    async def _wait_for_confirmation(self, signature: str):
        for _ in range(self.confirm_attempts):
            try:
                envelope = await self._call(
                    "getSignatureStatuses", [[signature], {"searchTransactionHistory": True}]
                )
            except VenueError:
                # Transient status errors are polled through
                envelope = {}

            statuses = (envelope.get("result") or {}).get("value") or []
            status = statuses[0] if statuses else None
            if status and status.get("confirmationStatus") in ("confirmed", "finalized"):
                if status.get("err") is not None:
                    raise ExecutionError(f"Transaction {signature} failed: {status['err']}")
                return

            await asyncio.sleep(self.confirm_interval_seconds)

        raise ExecutionError(
            f"Transaction {signature} not confirmed after {self.confirm_attempts} attempts",
            FailureReason.TIMED_OUT,
        )

    async def get_balance(self, asset: str) -> float:
        if asset == SOL_MINT:
            envelope = await self._call(
                "getBalance", [self.wallet_public_key, {"commitment": "confirmed"}]
            )
            if "error" in envelope:
                raise VenueError(f"Failed to get SOL balance: {envelope['error']}")
            return envelope["result"]["value"] / LAMPORTS_PER_SOL

        envelope = await self._call(
            "getTokenAccountsByOwner",
            [self.wallet_public_key, {"mint": asset}, {"encoding": "jsonParsed"}],
        )
        if "error" in envelope:
            raise VenueError(f"Failed to get token balance for {asset}: {envelope['error']}")

        accounts = envelope["result"]["value"]
        return sum(
            float(account["account"]["data"]["parsed"]["info"]["tokenAmount"]["uiAmount"] or 0.0)
            for account in accounts
        )
