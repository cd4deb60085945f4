"""Single trade execution.

Runs one directional swap end to end: risk check, quote, submission and
recording. Every failure is returned as a typed TradeOutcome so callers
(including cascades) can always continue deterministically.
"""

import asyncio
import math
from typing import Any, Awaitable, Optional

from swap_engine.audit.decision_log import DecisionLogger
from swap_engine.audit.trade_log import TradeLogger
from swap_engine.execution.errors import ErrorKind, NotFoundError
from swap_engine.execution.trade_state import IntentDirection, TradeIntent, TradeOutcome
from swap_engine.portfolio.registry import TradingPair, TradingPairRegistry
from swap_engine.risk.pre_trade import RiskManager
from swap_engine.venues.base import ExecutionError, QuoteClient, TransactionExecutor


class StepFailure(Exception):
    """Internal signal carrying the outcome of a failed collaborator call."""

    def __init__(self, kind: ErrorKind, message: str, violations: Optional[list[str]] = None):
        super().__init__(message)
        self.kind = kind
        self.violations = violations or []


class SingleTradeExecutor:
    """Executes single swaps against one pair.

    Volume accounting is exactly-once per call: capacity is reserved when the
    risk check passes and committed only after the ledger confirms. Each call
    submits at most one transaction and never retries.
    """

    def __init__(
        self,
        registry: TradingPairRegistry,
        risk_manager: RiskManager,
        quote_client: QuoteClient,
        executor: TransactionExecutor,
        decision_logger: DecisionLogger,
        trade_logger: TradeLogger,
        default_timeout: Optional[float] = None,
    ):
        """Initialize trade executor.

        Args:
            registry: Pair registry holding the daily counters
            risk_manager: Pre-trade risk gate
            quote_client: Aggregator used for pricing and swap building
            executor: Ledger used for submission and confirmation
            decision_logger: Risk decision audit log
            trade_logger: Trade audit log
            default_timeout: Per-call timeout in seconds when the caller gives none
        """
        self.registry = registry
        self.risk_manager = risk_manager
        self.quote_client = quote_client
        self.executor = executor
        self.decision_logger = decision_logger
        self.trade_logger = trade_logger
        self.default_timeout = default_timeout

    @staticmethod
    def resolve_assets(pair: TradingPair, direction: IntentDirection) -> tuple[str, str, int, int]:
        """Return (input_asset, output_asset, input_decimals, output_decimals)."""
        if direction == IntentDirection.FORWARD:
            return pair.input_asset, pair.output_asset, pair.input_decimals, pair.output_decimals
        return pair.output_asset, pair.input_asset, pair.output_decimals, pair.input_decimals

    async def _bounded(self, call: Awaitable[Any], timeout: Optional[float], what: str) -> Any:
        """Await a collaborator call, converting timeouts and errors to StepFailure."""
        try:
            if timeout is None:
                return await call
            return await asyncio.wait_for(call, timeout)
        except asyncio.TimeoutError:
            raise StepFailure(ErrorKind.EXECUTION_FAILED, f"{what} timed out after {timeout}s")
        except ExecutionError as e:
            raise StepFailure(ErrorKind.EXECUTION_FAILED, f"{what} failed ({e.reason.value}): {e}")
        except Exception as e:
            raise StepFailure(ErrorKind.EXECUTION_FAILED, f"{what} failed: {e}")

    async def execute(self, intent: TradeIntent, timeout: Optional[float] = None) -> TradeOutcome:
        """Execute a trade intent.

        The intent amount is a notional in the pair's base unit (its input
        asset) for both directions. A reverse trade sells the quantity of the
        output asset currently worth that notional.

        Args:
            intent: Pair, direction and notional
            timeout: Per-call timeout for every outbound call

        Returns:
            TradeOutcome, successful or carrying an ErrorKind
        """
        timeout = timeout if timeout is not None else self.default_timeout

        try:
            pair = self.registry.get(intent.pair_id)
        except NotFoundError as e:
            return TradeOutcome.failed(intent.pair_id, ErrorKind.NOT_FOUND, str(e))

        input_asset, output_asset, _, _ = self.resolve_assets(pair, intent.direction)
        details = {"input_asset": input_asset, "output_asset": output_asset}

        if not math.isfinite(intent.amount) or intent.amount <= 0:
            outcome = TradeOutcome.failed(
                pair.id,
                ErrorKind.INVALID_INPUT,
                f"Amount must be a positive number, got {intent.amount}",
                **details,
            )
            return await self._finish_unreserved(outcome)

        notional = intent.amount
        details["notional"] = notional

        if not pair.enabled:
            outcome = TradeOutcome.failed(
                pair.id, ErrorKind.INVALID_INPUT, f"Trading pair {pair.id} is disabled", **details
            )
            return await self._finish_unreserved(outcome)

        # 1. Risk gate; capacity is reserved inside the pair's critical section
        try:
            reserve_balance = await self._bounded(
                self.risk_manager.read_reserve_balance(), timeout, "Reserve balance read"
            )
        except StepFailure as failure:
            outcome = TradeOutcome.failed(pair.id, failure.kind, str(failure), **details)
            return await self._finish_unreserved(outcome)

        result = await self.registry.reserve(
            pair.id,
            notional,
            lambda current: self.risk_manager.assess(current, notional, reserve_balance),
        )
        self.decision_logger.log_risk_decision(
            pair.id, notional, result, metadata={"direction": intent.direction.value}
        )

        if not result.passed:
            outcome = TradeOutcome.failed(
                pair.id,
                ErrorKind.RISK_REJECTED,
                f"Risk check failed: {', '.join(result.violations)}",
                violations=result.violations,
                **details,
            )
            return await self._finish_unreserved(outcome)

        # 2-4. Quote, submit, record. A reservation that is not committed is
        # always released, including on cancellation; a broadcast transaction
        # is never rolled back and the ledger remains the source of truth.
        outcome = None
        committed = False
        try:
            outcome = await self._quote_and_submit(pair, intent, notional, timeout)
            if outcome.success:
                await self.registry.commit(pair.id, notional, outcome)
                committed = True
        finally:
            if not committed:
                await self.registry.release(pair.id, notional, outcome)

        self.trade_logger.log_trade_outcome(outcome)
        return outcome

    async def _finish_unreserved(self, outcome: TradeOutcome) -> TradeOutcome:
        await self.registry.record(outcome.pair_id, outcome)
        self.trade_logger.log_trade_outcome(outcome)
        return outcome

    async def _size_input(
        self, pair: TradingPair, intent: TradeIntent, notional: float, timeout: Optional[float]
    ) -> int:
        """Input amount in base units of the asset being sold."""
        base_units = int(round(notional * 10**pair.input_decimals))
        if intent.direction == IntentDirection.FORWARD:
            return base_units

        # Reverse: sell as much of the output asset as the notional buys
        sizing = await self._bounded(
            self.quote_client.get_quote(
                pair.input_asset, pair.output_asset, base_units, pair.limits.max_slippage_bps
            ),
            timeout,
            "Sizing quote request",
        )
        if sizing is None or sizing.out_amount <= 0:
            raise StepFailure(
                ErrorKind.NO_ROUTE_AVAILABLE,
                f"No route available to size {pair.output_asset} -> {pair.input_asset}",
            )
        return sizing.out_amount

    async def _quote_and_submit(
        self,
        pair: TradingPair,
        intent: TradeIntent,
        notional: float,
        timeout: Optional[float],
    ) -> TradeOutcome:
        input_asset, output_asset, input_decimals, output_decimals = self.resolve_assets(
            pair, intent.direction
        )
        details = {"input_asset": input_asset, "output_asset": output_asset, "notional": notional}

        try:
            amount_units = await self._size_input(pair, intent, notional, timeout)

            # 2. Quote
            quote = await self._bounded(
                self.quote_client.get_quote(
                    input_asset, output_asset, amount_units, pair.limits.max_slippage_bps
                ),
                timeout,
                "Quote request",
            )
            if quote is None:
                raise StepFailure(
                    ErrorKind.NO_ROUTE_AVAILABLE,
                    f"No route available for {input_asset} -> {output_asset}",
                )

            valid, error = self.risk_manager.check_quote(pair, quote)
            if not valid:
                raise StepFailure(ErrorKind.RISK_REJECTED, f"Trade rejected: {error}", [error])

            # 3. Submit
            payload = await self._bounded(
                self.quote_client.build_swap(quote), timeout, "Swap transaction request"
            )
            self.trade_logger.log_trade_submitted(
                intent,
                notional,
                {
                    "in_amount": quote.in_amount,
                    "out_amount": quote.out_amount,
                    "price_impact_pct": quote.price_impact_pct,
                },
            )
            signature = await self._bounded(
                self.executor.submit(payload), timeout, "Transaction submission"
            )
        except StepFailure as failure:
            return TradeOutcome.failed(
                pair.id, failure.kind, str(failure), violations=failure.violations, **details
            )

        # 4. Confirmed
        return TradeOutcome(
            success=True,
            pair_id=pair.id,
            signature=signature,
            input_asset=input_asset,
            output_asset=output_asset,
            input_amount=quote.in_amount / 10**input_decimals,
            output_amount=quote.out_amount / 10**output_decimals,
            notional=notional,
            price_impact_pct=quote.price_impact_pct,
        )
