"""Main entry point for the Swap Engine.

Initializes all components and starts the FastAPI server.
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from swap_engine.api.health import router as health_router
from swap_engine.api.trading_bot import TradingBotService, router as tradebot_router
from swap_engine.api.trading_switch import TradingSwitch
from swap_engine.audit.decision_log import DecisionLogger
from swap_engine.audit.trade_log import TradeLogger
from swap_engine.config.settings import BotSettings
from swap_engine.config.trade_contract import AddTradingPairRequest
from swap_engine.execution.cascade import CascadeOrchestrator
from swap_engine.execution.single_trade import SingleTradeExecutor
from swap_engine.portfolio.registry import TradingPair, TradingPairRegistry
from swap_engine.risk.pre_trade import RiskManager
from swap_engine.risk.ranking import ProfitabilityRanker
from swap_engine.venues.base import BalanceProvider, QuoteClient, TransactionExecutor
from swap_engine.venues.jupiter import JupiterQuoteClient
from swap_engine.venues.paper import PaperVenue
from swap_engine.venues.solana_rpc import SolanaLedger, keypair_signer, parse_keypair


def build_service(
    settings: BotSettings,
    quote_client: QuoteClient,
    executor: TransactionExecutor,
    balance_provider: BalanceProvider,
    registry: Optional[TradingPairRegistry] = None,
) -> TradingBotService:
    """Wire the engine components around the given venue adapters."""
    if registry is None:
        registry = TradingPairRegistry()

    decision_logger = DecisionLogger(log_file=settings.audit_log_file)
    trade_logger = TradeLogger(log_file=settings.audit_log_file)

    risk_manager = RiskManager(balance_provider, reserve_asset=settings.sol_mint)
    ranker = ProfitabilityRanker(quote_client)

    trade_executor = SingleTradeExecutor(
        registry=registry,
        risk_manager=risk_manager,
        quote_client=quote_client,
        executor=executor,
        decision_logger=decision_logger,
        trade_logger=trade_logger,
        default_timeout=settings.timeout_seconds,
    )
    cascade = CascadeOrchestrator(registry, ranker, trade_executor, trade_logger)

    return TradingBotService(
        settings=settings,
        registry=registry,
        ranker=ranker,
        trade_executor=trade_executor,
        cascade_orchestrator=cascade,
        balance_provider=balance_provider,
        trading_switch=TradingSwitch(enabled=settings.enabled),
        trade_logger=trade_logger,
    )


async def register_configured_pairs(service: TradingBotService, settings: BotSettings):
    """Register the pairs from the pairs file, then the primary pair.

    Raises:
        ValueError: If a configured pair is invalid or duplicated
    """
    for raw in settings.pairs:
        request = AddTradingPairRequest.model_validate(raw)
        result = await service.add_trading_pair(request)
        if not result.success:
            raise ValueError(f"Invalid pair {request.id!r} in pairs file: {result.error_message}")

    if settings.token_mint and settings.primary_pair_id not in service.registry:
        await service.registry.add(
            TradingPair(
                id=settings.primary_pair_id,
                input_asset=settings.sol_mint,
                output_asset=settings.token_mint,
                limits=settings.default_limits,
                input_decimals=9,
                output_decimals=settings.token_decimals,
            )
        )


def seed_paper_venue(venue: PaperVenue, registry: TradingPairRegistry, settings: BotSettings):
    """Give every registered pair a route and a funded balance on the paper venue."""
    for pair in registry.all():
        scale = 10 ** (pair.output_decimals - pair.input_decimals)
        venue.set_rate(pair.input_asset, pair.output_asset, settings.paper_rate * scale)
        venue.set_balance(pair.input_asset, settings.paper_balance)
        venue.set_balance(pair.output_asset, settings.paper_balance)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - initializes and cleans up resources."""
    settings = BotSettings.from_env()

    paper_venue = None
    http_adapters = []
    if settings.mode == "live":
        quote_client = JupiterQuoteClient(
            user_public_key=settings.wallet_public_key,
            base_url=settings.jupiter_url,
            timeout_seconds=settings.timeout_seconds,
        )
        ledger = SolanaLedger(
            rpc_url=settings.rpc_url,
            wallet_public_key=settings.wallet_public_key,
            signer=keypair_signer(parse_keypair(settings.wallet_private_key)),
            timeout_seconds=settings.timeout_seconds,
        )
        service = build_service(settings, quote_client, ledger, ledger)
        http_adapters = [quote_client, ledger]
    else:
        paper_venue = PaperVenue()
        service = build_service(settings, paper_venue, paper_venue, paper_venue)

    await register_configured_pairs(service, settings)
    if paper_venue is not None:
        seed_paper_venue(paper_venue, service.registry, settings)

    # Store the service in app state for API endpoints
    app.state.bot_service = service

    yield  # Application runs here

    for adapter in http_adapters:
        await adapter.close()


# Create FastAPI app
app = FastAPI(
    title="Swap Engine",
    description="Risk-gated swap execution and cascades over ranked trading pairs",
    version="1.0.0",
    lifespan=lifespan,
)

# Register routers
app.include_router(health_router, tags=["health"])
app.include_router(
    tradebot_router,
    prefix="/api/v1/tradebot",
    tags=["tradebot"],
)


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
