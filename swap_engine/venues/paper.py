"""Paper trading venue.

Simulates quoting, submission and balances without touching a chain.
Useful for testing and development.
"""

import asyncio
import base64
import json
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from swap_engine.venues.base import (
    BalanceProvider,
    ExecutionError,
    FailureReason,
    Quote,
    QuoteClient,
    SwapPayload,
    TransactionExecutor,
)


class PaperVenue(QuoteClient, TransactionExecutor, BalanceProvider):
    """Paper venue - simulates a DEX aggregator and a ledger.

    Rates are expressed in output base units per input base unit. A pair
    with no configured rate (in either direction) has no route.
    """

    def __init__(
        self,
        rates: Optional[dict[tuple[str, str], float]] = None,
        price_impact_pct: float = 0.1,
        balances: Optional[dict[str, float]] = None,
        latency_seconds: float = 0.0,
    ):
        """Initialize paper venue.

        Args:
            rates: Exchange rates keyed by (input_asset, output_asset)
            price_impact_pct: Simulated price impact applied to every quote
            balances: Starting wallet balances keyed by asset
            latency_seconds: Simulated network delay per call
        """
        self.rates = dict(rates or {})
        self.price_impact_pct = price_impact_pct
        self.balances = dict(balances or {})
        self.latency_seconds = latency_seconds
        self.submissions: list[dict] = []
        self._pending_failures: list[ExecutionError] = []

    @property
    def venue_name(self) -> str:
        return "PAPER"

    def set_rate(self, input_asset: str, output_asset: str, rate: float):
        self.rates[(input_asset, output_asset)] = rate

    def set_balance(self, asset: str, amount: float):
        self.balances[asset] = amount

    def fail_next_submission(
        self, message: str = "Simulated rejection", reason: FailureReason = FailureReason.REJECTED
    ):
        """Queue a failure for the next submit() call."""
        self._pending_failures.append(ExecutionError(message, reason))

    def _rate(self, input_asset: str, output_asset: str) -> Optional[float]:
        if (input_asset, output_asset) in self.rates:
            return self.rates[(input_asset, output_asset)]
        inverse = self.rates.get((output_asset, input_asset))
        if inverse:
            return 1.0 / inverse
        return None

    async def get_quote(
        self,
        input_asset: str,
        output_asset: str,
        amount: int,
        slippage_bps: int,
    ) -> Optional[Quote]:
        await asyncio.sleep(self.latency_seconds)

        rate = self._rate(input_asset, output_asset)
        if rate is None or amount <= 0:
            return None

        out_amount = int(amount * rate * (1 - self.price_impact_pct / 100))
        return Quote(
            input_asset=input_asset,
            output_asset=output_asset,
            in_amount=amount,
            out_amount=out_amount,
            price_impact_pct=self.price_impact_pct,
            slippage_bps=slippage_bps,
            route={"quote_id": f"paper_{uuid4().hex[:8]}", "rate": rate},
        )

    async def build_swap(self, quote: Quote) -> SwapPayload:
        await asyncio.sleep(self.latency_seconds)
        body = json.dumps(quote.model_dump()).encode()
        return SwapPayload(transaction=base64.b64encode(body).decode())

    async def submit(self, payload: SwapPayload) -> str:
        await asyncio.sleep(self.latency_seconds)

        if self._pending_failures:
            raise self._pending_failures.pop(0)

        quote = Quote.model_validate_json(base64.b64decode(payload.transaction))
        signature = f"PAPER_{uuid4().hex}"

        # Balances are static; paper fills are only recorded
        self.submissions.append(
            {
                "signature": signature,
                "input_asset": quote.input_asset,
                "output_asset": quote.output_asset,
                "in_amount": quote.in_amount,
                "out_amount": quote.out_amount,
                "submitted_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        return signature

    async def get_balance(self, asset: str) -> float:
        return self.balances.get(asset, 0.0)
