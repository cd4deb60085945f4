"""Example usage of the Swap Engine.

This script demonstrates a single swap and a cascade against the paper venue.
"""

import asyncio

from swap_engine.config.limits import RiskLimits
from swap_engine.config.settings import SOL_MINT, BotSettings
from swap_engine.config.trade_contract import AddTradingPairRequest, RiskLimitsConfig, TradeDirection
from swap_engine.execution.trade_state import CascadePlan
from swap_engine.main import build_service
from swap_engine.venues.paper import PaperVenue

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


async def main():
    """Example: Trade on the primary pair, then cascade across ranked pairs."""
    print("=== Swap Engine Example ===\n")

    # Paper venue: 150 USDC and 2.5M BONK per SOL
    venue = PaperVenue(
        rates={(SOL_MINT, USDC_MINT): 0.15, (SOL_MINT, BONK_MINT): 2_500_000 * 10**-4},
        price_impact_pct=0.2,
        balances={SOL_MINT: 25.0},
    )

    settings = BotSettings(
        enabled=True,
        token_mint=USDC_MINT,
        token_decimals=6,
        default_limits=RiskLimits(max_trade_notional=5.0, max_daily_notional=20.0),
    )
    service = build_service(settings, venue, venue, venue)

    # Register pairs
    await service.add_trading_pair(
        AddTradingPairRequest(
            id=settings.primary_pair_id,
            input_asset=SOL_MINT,
            output_asset=USDC_MINT,
            output_decimals=6,
            rank=1,
        )
    )
    await service.add_trading_pair(
        AddTradingPairRequest(
            id="sol-bonk",
            input_asset=SOL_MINT,
            output_asset=BONK_MINT,
            output_decimals=5,
            rank=2,
            risk_limits=RiskLimitsConfig(
                max_trade_notional=1.0, max_daily_notional=3.0, max_slippage_bps=100
            ),
        )
    )

    # Single trade on the primary pair
    response = await service.execute_trade(TradeDirection.SOL_TO_TOKEN, 1.5)
    print(f"Trade success: {response.success}")
    if response.details:
        print(f"Received: {response.details.output_amount:,.2f} USDC")
    if response.error_message:
        print(f"Error: {response.error_message}")

    # Oversized trade is rejected by the risk gate
    response = await service.execute_trade(TradeDirection.SOL_TO_TOKEN, 8.0)
    print(f"\nOversized trade: {response.error_kind.value} {response.violations}")

    # Cascade across both pairs in rank order
    scores = await service.refresh_scores()
    print(f"\nScores: {scores}")

    outcome = await service.execute_cascade(
        CascadePlan(initial_amount=0.5, max_depth=2, stop_on_failure=False)
    )
    print(f"Cascade state: {outcome.state.value}, success: {outcome.success}")
    for step in outcome.steps:
        result = "ok" if step.success else step.outcome.error_kind.value
        print(f"  step {step.step_number} {step.pair_id}: {step.input_amount:.4f} -> {result}")

    status = await service.get_status()
    print(f"\nTrades today: {status.trades_executed_today}, volume: {status.daily_volume_sol:.4f} SOL")

    print("\n=== Example Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
