"""Pre-trade risk checks.

This module gates every trade against its pair's risk limits.
All rules are evaluated and all violations are collected, so a rejection
always carries the complete diagnostic.
"""

import math
from typing import Optional

from swap_engine.config.settings import SOL_MINT
from swap_engine.execution.trade_state import RiskCheckResult
from swap_engine.portfolio.registry import TradingPair
from swap_engine.venues.base import BalanceProvider, Quote, VenueError


class RiskManager:
    """Validates proposed trades against per-pair limits.

    The rule evaluation (``assess``) is a pure function of the pair state,
    the proposed notional and the reserve balance. Only ``evaluate`` reads
    the balance from the outside world. Nothing here records volume.
    """

    def __init__(self, balance_provider: BalanceProvider, reserve_asset: str = SOL_MINT):
        """Initialize with the balance source for the reserve check.

        Args:
            balance_provider: Wallet balance reader
            reserve_asset: Asset whose balance must stay above the reserve (fee asset)
        """
        self.balance_provider = balance_provider
        self.reserve_asset = reserve_asset

    def check_positive_amount(self, amount: float) -> tuple[bool, Optional[str]]:
        if not math.isfinite(amount):
            return False, f"non-finite amount: {amount}"
        if amount <= 0:
            return False, f"non-positive amount: {amount}"
        return True, None

    def check_minimum_size(self, pair: TradingPair, amount: float) -> tuple[bool, Optional[str]]:
        if 0 < amount < pair.limits.min_trade_notional:
            return (
                False,
                f"below minimum trade size: {amount:.4f} < {pair.limits.min_trade_notional:.4f}",
            )
        return True, None

    def check_trade_cap(self, pair: TradingPair, amount: float) -> tuple[bool, Optional[str]]:
        if amount > pair.limits.max_trade_notional:
            return (
                False,
                f"exceeds per-trade cap: {amount:.4f} > {pair.limits.max_trade_notional:.4f}",
            )
        return True, None

    def check_daily_cap(self, pair: TradingPair, amount: float) -> tuple[bool, Optional[str]]:
        consumed = pair.consumed_volume
        if consumed + amount > pair.limits.max_daily_notional:
            return (
                False,
                f"exceeds daily cap: {consumed:.4f} + {amount:.4f} > {pair.limits.max_daily_notional:.4f}",
            )
        return True, None

    def check_reserve(
        self, pair: TradingPair, reserve_balance: Optional[float]
    ) -> tuple[bool, Optional[str]]:
        if reserve_balance is None:
            return False, "reserve balance unavailable"
        if reserve_balance < pair.limits.min_balance_reserve:
            return (
                False,
                f"reserve below minimum: {reserve_balance:.4f} < {pair.limits.min_balance_reserve:.4f}",
            )
        return True, None

    def check_quote(self, pair: TradingPair, quote: Quote) -> tuple[bool, Optional[str]]:
        """Reject quotes whose price impact exceeds the pair limit."""
        if quote.price_impact_pct > pair.limits.max_price_impact_pct:
            return (
                False,
                f"price impact too high: {quote.price_impact_pct:.4f}% > {pair.limits.max_price_impact_pct:.4f}%",
            )
        return True, None

    def assess(
        self, pair: TradingPair, amount: float, reserve_balance: Optional[float]
    ) -> RiskCheckResult:
        """Evaluate all rules in fixed order.

        Args:
            pair: Pair state at evaluation time
            amount: Proposed notional in the pair's base unit
            reserve_balance: Current reserve balance, None if it could not be read

        Returns:
            RiskCheckResult with every violation found
        """
        checks = (
            self.check_positive_amount(amount),
            self.check_minimum_size(pair, amount),
            self.check_trade_cap(pair, amount),
            self.check_daily_cap(pair, amount),
            self.check_reserve(pair, reserve_balance),
        )
        violations = [error for valid, error in checks if not valid]

        consumed = pair.consumed_volume
        return RiskCheckResult(
            passed=not violations,
            violations=violations,
            current_daily_volume=consumed,
            remaining_daily_capacity=max(0.0, pair.limits.max_daily_notional - consumed),
        )

    async def read_reserve_balance(self) -> Optional[float]:
        """Read the reserve balance; None when the provider fails."""
        try:
            return await self.balance_provider.get_balance(self.reserve_asset)
        except VenueError:
            return None

    async def evaluate(self, pair: TradingPair, amount: float) -> RiskCheckResult:
        """Read the reserve balance and assess the trade."""
        reserve_balance = await self.read_reserve_balance()
        return self.assess(pair, amount, reserve_balance)
