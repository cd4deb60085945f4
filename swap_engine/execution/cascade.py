"""Cascade execution across ranked pairs.

A cascade chains single trades: the realized output of one step becomes the
input notional of the next. Lifecycle: PLANNING -> RUNNING -> COMPLETED or
ABORTED.
"""

import math
from typing import Optional

from swap_engine.audit.trade_log import TradeLogger
from swap_engine.execution.errors import InvalidInputError, InvalidPlanError
from swap_engine.execution.single_trade import SingleTradeExecutor
from swap_engine.execution.trade_state import (
    CascadeOutcome,
    CascadePlan,
    CascadeState,
    CascadeStepResult,
    IntentDirection,
    TradeIntent,
)
from swap_engine.portfolio.registry import TradingPairRegistry
from swap_engine.risk.ranking import ProfitabilityRanker


class CascadeOrchestrator:
    """Drives a sequence of single trades over a resolved pair set.

    Holds no lock across the sequence; each step only takes its own pair's
    critical section through the SingleTradeExecutor.
    """

    def __init__(
        self,
        registry: TradingPairRegistry,
        ranker: ProfitabilityRanker,
        trade_executor: SingleTradeExecutor,
        trade_logger: TradeLogger,
    ):
        self.registry = registry
        self.ranker = ranker
        self.trade_executor = trade_executor
        self.trade_logger = trade_logger

    def resolve_pairs(self, plan: CascadePlan) -> list[str]:
        """Resolve and truncate the working pair set.

        An explicit subset keeps the caller's order; otherwise all enabled
        pairs are used in ranker order.

        Raises:
            InvalidInputError: If the amount or depth is not positive
            InvalidPlanError: If the plan resolves to no usable pairs
        """
        if not math.isfinite(plan.initial_amount) or plan.initial_amount <= 0:
            raise InvalidInputError(f"Initial amount must be positive, got {plan.initial_amount}")
        if plan.max_depth <= 0:
            raise InvalidInputError(f"Cascade depth must be positive, got {plan.max_depth}")

        if plan.pair_ids is not None:
            if not plan.pair_ids:
                raise InvalidPlanError("Explicit pair list is empty")
            if len(set(plan.pair_ids)) != len(plan.pair_ids):
                raise InvalidPlanError("Explicit pair list contains duplicates")

            unknown = [pair_id for pair_id in plan.pair_ids if pair_id not in self.registry]
            if unknown:
                raise InvalidPlanError(f"Unknown trading pairs: {', '.join(unknown)}")

            disabled = [pair_id for pair_id in plan.pair_ids if not self.registry.get(pair_id).enabled]
            if disabled:
                raise InvalidPlanError(f"Disabled trading pairs: {', '.join(disabled)}")

            pair_ids = list(plan.pair_ids)
        else:
            pair_ids = self.ranker.rank(self.registry.all_enabled())
            if not pair_ids:
                raise InvalidPlanError("No enabled trading pairs available for cascade")

        return pair_ids[: plan.max_depth]

    async def execute(self, plan: CascadePlan, timeout: Optional[float] = None) -> CascadeOutcome:
        """Run a cascade.

        Args:
            plan: Cascade parameters
            timeout: Per-call timeout forwarded to every step

        Returns:
            CascadeOutcome with one step result per attempted step

        Raises:
            InvalidInputError, InvalidPlanError: Before any step runs
        """
        pair_ids = self.resolve_pairs(plan)
        self.trade_logger.log_cascade_started(plan, pair_ids)

        state = CascadeState.RUNNING
        carry_amount = plan.initial_amount
        steps: list[CascadeStepResult] = []

        for step_number, pair_id in enumerate(pair_ids, start=1):
            intent = TradeIntent(
                pair_id=pair_id, direction=IntentDirection.FORWARD, amount=carry_amount
            )
            outcome = await self.trade_executor.execute(intent, timeout=timeout)
            steps.append(
                CascadeStepResult(
                    step_number=step_number,
                    pair_id=pair_id,
                    input_amount=carry_amount,
                    outcome=outcome,
                )
            )

            if outcome.success:
                carry_amount = outcome.output_amount
            elif plan.stop_on_failure:
                state = CascadeState.ABORTED
                break
            # A failed step consumed nothing: the next step reuses carry_amount

        if state == CascadeState.RUNNING:
            state = CascadeState.COMPLETED

        any_success = any(step.success for step in steps)
        any_failure = any(not step.success for step in steps)
        success = (
            state == CascadeState.COMPLETED
            and any_success
            and not (plan.stop_on_failure and any_failure)
        )

        error_message = None
        if state == CascadeState.ABORTED:
            failed = steps[-1]
            error_message = f"Cascade stopped at step {failed.step_number}: {failed.outcome.error_message}"
        elif not any_success:
            error_message = "No cascade step succeeded"

        outcome = CascadeOutcome(
            success=success,
            state=state,
            steps=steps,
            initial_amount=plan.initial_amount,
            final_amount=carry_amount,
            total_profit=carry_amount - plan.initial_amount,
            error_kind=steps[-1].outcome.error_kind if state == CascadeState.ABORTED else None,
            error_message=error_message,
        )
        self.trade_logger.log_cascade_finished(outcome)
        return outcome
