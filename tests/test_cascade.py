"""Tests for cascade execution."""

import pytest

from swap_engine.audit.decision_log import DecisionLogger
from swap_engine.audit.trade_log import TradeLogger
from swap_engine.execution.cascade import CascadeOrchestrator
from swap_engine.execution.errors import ErrorKind, InvalidInputError, InvalidPlanError
from swap_engine.execution.single_trade import SingleTradeExecutor
from swap_engine.execution.trade_state import CascadePlan, CascadeState
from swap_engine.portfolio.registry import TradingPair, TradingPairRegistry
from swap_engine.risk.pre_trade import RiskManager
from swap_engine.risk.ranking import ProfitabilityRanker
from swap_engine.venues.paper import PaperVenue

SOL = "So11111111111111111111111111111111111111112"


@pytest.fixture
def venue():
    # p2 has no route and always fails with NO_ROUTE_AVAILABLE
    return PaperVenue(
        rates={(SOL, "AAA"): 2.0, (SOL, "CCC"): 3.0},
        price_impact_pct=0.0,
        balances={SOL: 10.0},
    )


@pytest.fixture
def registry():
    return TradingPairRegistry()


@pytest.fixture
def trade_logger():
    return TradeLogger(echo=False)


@pytest.fixture
def orchestrator(venue, registry, trade_logger):
    executor = SingleTradeExecutor(
        registry=registry,
        risk_manager=RiskManager(venue),
        quote_client=venue,
        executor=venue,
        decision_logger=DecisionLogger(echo=False),
        trade_logger=trade_logger,
    )
    return CascadeOrchestrator(registry, ProfitabilityRanker(venue), executor, trade_logger)


async def add_pairs(registry):
    await registry.add(TradingPair(id="p1", input_asset=SOL, output_asset="AAA", rank=1))
    await registry.add(TradingPair(id="p2", input_asset=SOL, output_asset="BBB", rank=2))
    await registry.add(TradingPair(id="p3", input_asset=SOL, output_asset="CCC", rank=3))


@pytest.mark.asyncio
async def test_cascade_carries_output_forward(orchestrator, registry, venue):
    await add_pairs(registry)

    outcome = await orchestrator.execute(CascadePlan(initial_amount=1.0, pair_ids=["p1", "p3"]))

    assert outcome.success is True
    assert outcome.state == CascadeState.COMPLETED
    assert [s.pair_id for s in outcome.steps] == ["p1", "p3"]
    assert [s.input_amount for s in outcome.steps] == [1.0, 2.0]
    assert outcome.final_amount == pytest.approx(6.0)
    assert outcome.total_profit == pytest.approx(5.0)
    assert len(venue.submissions) == 2


@pytest.mark.asyncio
async def test_stop_on_failure_halts_after_failed_step(orchestrator, registry, venue):
    await add_pairs(registry)

    outcome = await orchestrator.execute(CascadePlan(initial_amount=1.0, stop_on_failure=True))

    assert outcome.success is False
    assert outcome.state == CascadeState.ABORTED
    assert len(outcome.steps) == 2
    assert outcome.steps[1].outcome.error_kind == ErrorKind.NO_ROUTE_AVAILABLE
    assert outcome.error_kind == ErrorKind.NO_ROUTE_AVAILABLE
    assert "step 2" in outcome.error_message
    assert len(venue.submissions) == 1


@pytest.mark.asyncio
async def test_continue_on_failure_reuses_carry(orchestrator, registry):
    await add_pairs(registry)

    outcome = await orchestrator.execute(CascadePlan(initial_amount=1.0, stop_on_failure=False))

    assert outcome.state == CascadeState.COMPLETED
    assert outcome.success is True
    assert len(outcome.steps) == 3
    assert [s.success for s in outcome.steps] == [True, False, True]
    # The failed step consumed nothing
    assert outcome.steps[2].input_amount == outcome.steps[1].input_amount == 2.0
    assert outcome.final_amount == pytest.approx(6.0)


@pytest.mark.asyncio
async def test_all_steps_failing(orchestrator, registry):
    await registry.add(TradingPair(id="dead", input_asset=SOL, output_asset="BBB"))

    outcome = await orchestrator.execute(CascadePlan(initial_amount=1.0, stop_on_failure=False))

    assert outcome.success is False
    assert outcome.state == CascadeState.COMPLETED
    assert outcome.final_amount == 1.0
    assert outcome.error_message == "No cascade step succeeded"


@pytest.mark.asyncio
async def test_depth_truncates_pair_set(orchestrator, registry):
    await add_pairs(registry)

    outcome = await orchestrator.execute(CascadePlan(initial_amount=1.0, max_depth=1))

    assert [s.pair_id for s in outcome.steps] == ["p1"]
    assert outcome.success is True


@pytest.mark.asyncio
async def test_unknown_pair_is_invalid_plan(orchestrator, registry, venue, trade_logger):
    await add_pairs(registry)

    with pytest.raises(InvalidPlanError):
        await orchestrator.execute(CascadePlan(initial_amount=1.0, pair_ids=["p1", "nope"]))

    assert venue.submissions == []
    assert registry.history("p1") == []
    assert trade_logger.get_recent_trades() == []


@pytest.mark.asyncio
async def test_invalid_plans(orchestrator, registry):
    with pytest.raises(InvalidPlanError):
        await orchestrator.execute(CascadePlan(initial_amount=1.0))

    await add_pairs(registry)
    await registry.set_enabled("p2", False)

    with pytest.raises(InvalidPlanError):
        await orchestrator.execute(CascadePlan(initial_amount=1.0, pair_ids=[]))
    with pytest.raises(InvalidPlanError):
        await orchestrator.execute(CascadePlan(initial_amount=1.0, pair_ids=["p1", "p1"]))
    with pytest.raises(InvalidPlanError):
        await orchestrator.execute(CascadePlan(initial_amount=1.0, pair_ids=["p2"]))
    with pytest.raises(InvalidInputError):
        await orchestrator.execute(CascadePlan(initial_amount=0.0))
    with pytest.raises(InvalidInputError):
        await orchestrator.execute(CascadePlan(initial_amount=float("nan")))
    with pytest.raises(InvalidInputError):
        await orchestrator.execute(CascadePlan(initial_amount=1.0, max_depth=0))


@pytest.mark.asyncio
async def test_disabled_pairs_skipped_by_default(orchestrator, registry):
    await add_pairs(registry)
    await registry.set_enabled("p2", False)

    assert orchestrator.resolve_pairs(CascadePlan(initial_amount=1.0)) == ["p1", "p3"]


@pytest.mark.asyncio
async def test_cascade_is_logged(orchestrator, registry, trade_logger):
    await add_pairs(registry)

    await orchestrator.execute(CascadePlan(initial_amount=1.0, pair_ids=["p1"]))

    events = [e["event"] for e in trade_logger.get_recent_trades()]
    assert events[0] == "CASCADE_STARTED"
    assert events[-1] == "CASCADE_FINISHED"
