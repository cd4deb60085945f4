"""Jupiter aggregator quote client.

Prices swaps and builds swap transactions through the Jupiter v6 HTTP API.
"""

from typing import Any, Optional

import httpx

from swap_engine.config.settings import DEFAULT_JUPITER_URL
from swap_engine.venues.base import Quote, QuoteClient, QuoteError, SwapPayload

# Error codes Jupiter returns when there is simply no liquidity
NO_ROUTE_ERROR_CODES = {
    "COULD_NOT_FIND_ANY_ROUTE",
    "NO_ROUTES_FOUND",
    "TOKEN_NOT_TRADABLE",
    "ROUTE_PLAN_DOES_NOT_CONSUME_ALL_THE_AMOUNT",
}


class JupiterQuoteClient(QuoteClient):
    """Jupiter v6 adapter.

    A missing route is reported as ``None``; only transport failures and
    malformed responses raise QuoteError.
    """

    def __init__(
        self,
        user_public_key: str,
        base_url: str = DEFAULT_JUPITER_URL,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Jupiter client.

        Args:
            user_public_key: Wallet that will sign the swap transactions
            base_url: Jupiter API root
            timeout_seconds: Per-request timeout
            client: Preconfigured HTTP client (tests inject a mock transport)
        """
        self.user_public_key = user_public_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._client = client

    @property
    def venue_name(self) -> str:
        return "JUPITER"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=httpx.Timeout(self.timeout_seconds),
            )
        return self._client

    async def close(self):
        """Close HTTP client"""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, endpoint: str, **kwargs) -> tuple[int, dict[str, Any]]:
        try:
            response = await self._get_client().request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            raise QuoteError(f"Jupiter request timeout: {endpoint}") from e
        except httpx.RequestError as e:
            raise QuoteError(f"Jupiter request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise QuoteError(
                f"Jupiter returned non-JSON body ({response.status_code})"
            ) from e

        return response.status_code, data

    async def get_quote(
        self,
        input_asset: str,
        output_asset: str,
        amount: int,
        slippage_bps: int,
    ) -> Optional[Quote]:
        params = {
            "inputMint": input_asset,
            "outputMint": output_asset,
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
        }
        status, data = await self._request("GET", "/quote", params=params)

        if status >= 400:
            if data.get("errorCode") in NO_ROUTE_ERROR_CODES:
                return None
            raise QuoteError(f"Jupiter quote failed ({status}): {data.get('error', data)}")

        if "outAmount" not in data or "inAmount" not in data:
            raise QuoteError(f"Unexpected Jupiter quote response: {data}")

        try:
            return Quote(
                input_asset=data.get("inputMint", input_asset),
                output_asset=data.get("outputMint", output_asset),
                in_amount=int(data["inAmount"]),
                out_amount=int(data["outAmount"]),
                price_impact_pct=float(data.get("priceImpactPct") or 0.0),
                slippage_bps=int(data.get("slippageBps", slippage_bps)),
                route=data,
            )
        except (TypeError, ValueError) as e:
            raise QuoteError(f"Malformed Jupiter quote: {e}") from e

    async def build_swap(self, quote: Quote) -> SwapPayload:
        body = {
            "quoteResponse": quote.route,
            "userPublicKey": self.user_public_key,
            "wrapAndUnwrapSol": True,
        }
        status, data = await self._request("POST", "/swap", json=body)

        if status >= 400:
            raise QuoteError(f"Jupiter swap build failed ({status}): {data.get('error', data)}")

        transaction = data.get("swapTransaction")
        if not transaction:
            raise QuoteError("Invalid swap transaction response from Jupiter")

        block_height = data.get("lastValidBlockHeight")
        return SwapPayload(
            transaction=transaction,
            last_valid_block_height=int(block_height) if block_height is not None else None,
        )
