"""Profitability ranking of trading pairs.

Orders pairs for cascades and periodically re-scores them from live quotes.
"""

from typing import Iterable

from swap_engine.portfolio.registry import TradingPair, TradingPairRegistry
from swap_engine.venues.base import QuoteClient, VenueError

SAMPLE_AMOUNT = 1.0  # Whole input units quoted when scoring a pair
IMPACT_PENALTY = 10.0  # Score points lost per 1% of price impact


class ProfitabilityRanker:
    """Ranks pairs by configured rank, then by last-known score.

    Ordering is deterministic: ascending rank, descending score, then
    ascending identifier.
    """

    def __init__(self, quote_client: QuoteClient):
        self.quote_client = quote_client

    def rank(self, pairs: Iterable[TradingPair]) -> list[str]:
        ordered = sorted(pairs, key=lambda p: (p.rank, -p.profitability_score, p.id))
        return [pair.id for pair in ordered]

    async def calculate_score(self, pair: TradingPair) -> float:
        """Score a pair from the price impact of a sample quote.

        Score starts at 100 and loses 10 points per 1% of price impact,
        clamped to [0, 100]. A pair with no route, or whose quote fails,
        scores 0.
        """
        amount = int(SAMPLE_AMOUNT * 10**pair.input_decimals)
        try:
            quote = await self.quote_client.get_quote(
                pair.input_asset,
                pair.output_asset,
                amount,
                pair.limits.max_slippage_bps,
            )
        except VenueError:
            return 0.0

        if quote is None:
            return 0.0

        score = 100.0 - quote.price_impact_pct * IMPACT_PENALTY
        return max(0.0, min(100.0, score))

    async def refresh_scores(self, registry: TradingPairRegistry) -> dict[str, float]:
        """Recompute and store scores for all enabled pairs.

        Returns:
            Mapping of pair id to new score
        """
        scores = {}
        for pair in registry.all_enabled():
            score = await self.calculate_score(pair)
            await registry.set_score(pair.id, score)
            scores[pair.id] = score
        return scores
