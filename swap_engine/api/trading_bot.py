"""Trading bot service and endpoints.

Exposes status, single trades, pair management and cascades. Every operation
returns a structured result with a success flag and, on failure, a
machine-readable error kind.
"""

import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from swap_engine.api.trading_switch import TradingSwitch
from swap_engine.audit.trade_log import TradeLogger
from swap_engine.config.settings import BotSettings
from swap_engine.config.trade_contract import (
    AddTradingPairRequest,
    CascadeExecutionRequest,
    SetEnabledRequest,
    SwapAmountRequest,
    TradeDirection,
    TradeExecutionRequest,
    UpdateRankRequest,
)
from swap_engine.execution.cascade import CascadeOrchestrator
from swap_engine.execution.errors import ErrorKind, NotFoundError, SwapEngineError
from swap_engine.execution.single_trade import SingleTradeExecutor
from swap_engine.execution.trade_state import (
    CascadeOutcome,
    CascadePlan,
    CascadeState,
    IntentDirection,
    TradeIntent,
    TradeOutcome,
)
from swap_engine.portfolio.registry import TradingPair, TradingPairRegistry
from swap_engine.risk.ranking import ProfitabilityRanker
from swap_engine.venues.base import BalanceProvider, VenueError

router = APIRouter()


class TradeDetails(BaseModel):
    input_asset: str
    output_asset: str
    input_amount: float
    output_amount: float
    notional: float
    price_impact_pct: float
    executed_at: datetime


class TradeExecutionResponse(BaseModel):
    """Response model for single trades."""

    success: bool
    transaction_signature: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    violations: list[str] = []
    details: Optional[TradeDetails] = None

    @classmethod
    def from_outcome(cls, outcome: TradeOutcome) -> "TradeExecutionResponse":
        details = None
        if outcome.success:
            details = TradeDetails(
                input_asset=outcome.input_asset or "",
                output_asset=outcome.output_asset or "",
                input_amount=outcome.input_amount,
                output_amount=outcome.output_amount,
                notional=outcome.notional,
                price_impact_pct=outcome.price_impact_pct,
                executed_at=outcome.executed_at,
            )
        return cls(
            success=outcome.success,
            transaction_signature=outcome.signature,
            error_kind=outcome.error_kind,
            error_message=outcome.error_message,
            violations=list(outcome.violations),
            details=details,
        )

    @classmethod
    def rejected(cls, kind: ErrorKind, message: str) -> "TradeExecutionResponse":
        return cls(success=False, error_kind=kind, error_message=message)


class BotStatusResponse(BaseModel):
    is_running: bool
    is_enabled: bool
    sol_balance: Optional[float] = None
    token_balance: Optional[float] = None
    daily_volume_sol: float = 0.0
    trades_executed_today: int = 0
    last_trade_at: Optional[datetime] = None


class TradingPairStatusResponse(BaseModel):
    id: str
    enabled: bool
    rank: int
    profitability_score: float
    input_asset: str
    output_asset: str
    input_balance: Optional[float] = None
    output_balance: Optional[float] = None
    daily_volume_sol: float
    trades_executed_today: int
    last_trade_at: Optional[datetime] = None
    limits: dict


class OperationResponse(BaseModel):
    """Response model for pair management operations."""

    success: bool
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None


class TradingBotService:
    """Facade over the orchestration engine.

    This is the single entry point used by the HTTP layer.
    """

    def __init__(
        self,
        settings: BotSettings,
        registry: TradingPairRegistry,
        ranker: ProfitabilityRanker,
        trade_executor: SingleTradeExecutor,
        cascade_orchestrator: CascadeOrchestrator,
        balance_provider: BalanceProvider,
        trading_switch: TradingSwitch,
        trade_logger: TradeLogger,
    ):
        self.settings = settings
        self.registry = registry
        self.ranker = ranker
        self.trade_executor = trade_executor
        self.cascade_orchestrator = cascade_orchestrator
        self.balance_provider = balance_provider
        self.trading_switch = trading_switch
        self.trade_logger = trade_logger

    async def _balance(self, asset: str) -> Optional[float]:
        if not asset:
            return None
        try:
            return await self.balance_provider.get_balance(asset)
        except VenueError:
            return None

    async def get_status(self) -> BotStatusResponse:
        pairs = self.registry.all()
        trade_times = [p.last_trade_at for p in pairs if p.last_trade_at is not None]
        return BotStatusResponse(
            is_running=True,
            is_enabled=await self.trading_switch.is_enabled(),
            sol_balance=await self._balance(self.settings.sol_mint),
            token_balance=await self._balance(self.settings.token_mint),
            # Only SOL-denominated pairs share a unit with this total
            daily_volume_sol=sum(
                p.daily_volume for p in pairs if p.input_asset == self.settings.sol_mint
            ),
            trades_executed_today=sum(p.trades_today for p in pairs),
            last_trade_at=max(trade_times) if trade_times else None,
        )

    async def execute_trade(self, direction: TradeDirection, amount_sol: float) -> TradeExecutionResponse:
        """Execute a trade on the primary pair."""
        if not await self.trading_switch.is_enabled():
            return TradeExecutionResponse.rejected(ErrorKind.TRADING_DISABLED, "Trading bot is disabled")

        if not math.isfinite(amount_sol) or amount_sol <= 0:
            return TradeExecutionResponse.rejected(
                ErrorKind.INVALID_INPUT, "Amount must be a finite number greater than 0"
            )

        pair_id = self.settings.primary_pair_id
        if pair_id not in self.registry:
            return TradeExecutionResponse.rejected(
                ErrorKind.NOT_FOUND, f"Primary trading pair not configured: {pair_id}"
            )

        intent = TradeIntent(
            pair_id=pair_id,
            direction=(
                IntentDirection.FORWARD
                if direction == TradeDirection.SOL_TO_TOKEN
                else IntentDirection.REVERSE
            ),
            amount=amount_sol,
        )
        outcome = await self.trade_executor.execute(intent, timeout=self.settings.timeout_seconds)
        return TradeExecutionResponse.from_outcome(outcome)

    async def _pair_status(self, pair: TradingPair) -> TradingPairStatusResponse:
        return TradingPairStatusResponse(
            id=pair.id,
            enabled=pair.enabled,
            rank=pair.rank,
            profitability_score=pair.profitability_score,
            input_asset=pair.input_asset,
            output_asset=pair.output_asset,
            input_balance=await self._balance(pair.input_asset),
            output_balance=await self._balance(pair.output_asset),
            daily_volume_sol=pair.daily_volume,
            trades_executed_today=pair.trades_today,
            last_trade_at=pair.last_trade_at,
            limits=pair.limits.to_dict(),
        )

    async def get_all_pair_statuses(self) -> list[TradingPairStatusResponse]:
        return [await self._pair_status(pair) for pair in self.registry.all()]

    async def get_pair_status(self, pair_id: str) -> TradingPairStatusResponse:
        """Raises NotFoundError for unknown pairs."""
        return await self._pair_status(self.registry.get(pair_id))

    async def add_trading_pair(self, request: AddTradingPairRequest) -> OperationResponse:
        errors = request.validation_errors()
        if errors:
            return OperationResponse(
                success=False, error_kind=ErrorKind.INVALID_INPUT, error_message="; ".join(errors)
            )
        try:
            pair = await self.registry.add(request.to_pair(self.settings.default_limits))
        except SwapEngineError as e:
            return OperationResponse(success=False, error_kind=e.kind, error_message=str(e))

        self.trade_logger.log_pair_event("PAIR_ADDED", pair.id, {"rank": pair.rank})
        return OperationResponse(success=True)

    async def update_rank(self, pair_id: str, new_rank: int) -> OperationResponse:
        try:
            await self.registry.set_rank(pair_id, new_rank)
        except SwapEngineError as e:
            return OperationResponse(success=False, error_kind=e.kind, error_message=str(e))

        self.trade_logger.log_pair_event("PAIR_RANK_UPDATED", pair_id, {"rank": new_rank})
        return OperationResponse(success=True)

    async def set_enabled(self, pair_id: str, enabled: bool) -> OperationResponse:
        try:
            await self.registry.set_enabled(pair_id, enabled)
        except SwapEngineError as e:
            return OperationResponse(success=False, error_kind=e.kind, error_message=str(e))

        self.trade_logger.log_pair_event(
            "PAIR_ENABLED" if enabled else "PAIR_DISABLED", pair_id
        )
        return OperationResponse(success=True)

    async def get_trade_history(self, pair_id: str, limit: int = 50) -> list[TradeOutcome]:
        """Raises NotFoundError for unknown pairs."""
        return self.registry.history(pair_id, limit=limit)

    async def reset_daily_counters(self, pair_id: Optional[str] = None) -> OperationResponse:
        """Manually zero daily volume and trade counts ahead of the UTC rollover."""
        try:
            pairs = await self.registry.reset_daily(pair_id)
        except SwapEngineError as e:
            return OperationResponse(success=False, error_kind=e.kind, error_message=str(e))

        for pair in pairs:
            self.trade_logger.log_pair_event("DAILY_COUNTERS_RESET", pair.id)
        return OperationResponse(success=True)

    async def refresh_scores(self) -> dict[str, float]:
        return await self.ranker.refresh_scores(self.registry)

    async def execute_cascade(self, plan: CascadePlan) -> CascadeOutcome:
        if not await self.trading_switch.is_enabled():
            return self._cascade_rejected(plan, ErrorKind.TRADING_DISABLED, "Trading bot is disabled")

        try:
            return await self.cascade_orchestrator.execute(plan, timeout=self.settings.timeout_seconds)
        except SwapEngineError as e:
            return self._cascade_rejected(plan, e.kind, str(e))

    @staticmethod
    def _cascade_rejected(plan: CascadePlan, kind: ErrorKind, message: str) -> CascadeOutcome:
        amount = plan.initial_amount if math.isfinite(plan.initial_amount) else 0.0
        return CascadeOutcome(
            success=False,
            state=CascadeState.PLANNING,
            initial_amount=amount,
            final_amount=amount,
            error_kind=kind,
            error_message=message,
        )


STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_KEY: 409,
    ErrorKind.TRADING_DISABLED: 403,
}


def _status_for(kind: Optional[ErrorKind]) -> int:
    if kind is None:
        return 200
    return STATUS_CODES.get(kind, 400)


def get_service(request: Request) -> TradingBotService:
    service = getattr(request.app.state, "bot_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Trading bot service not initialized")
    return service


@router.get("/status", response_model=BotStatusResponse)
async def get_status(service: TradingBotService = Depends(get_service)):
    """Get the current status of the trading bot."""
    return await service.get_status()


@router.post("/trade", response_model=TradeExecutionResponse)
async def execute_trade(
    request: TradeExecutionRequest,
    response: Response,
    service: TradingBotService = Depends(get_service),
):
    """Execute a trade on the primary pair (SOL to token or token to SOL)."""
    result = await service.execute_trade(request.direction, request.amount_sol)
    response.status_code = _status_for(result.error_kind)
    return result


@router.post("/swap/sol-to-token", response_model=TradeExecutionResponse)
async def swap_sol_to_token(
    request: SwapAmountRequest,
    response: Response,
    service: TradingBotService = Depends(get_service),
):
    result = await service.execute_trade(TradeDirection.SOL_TO_TOKEN, request.amount_sol)
    response.status_code = _status_for(result.error_kind)
    return result


@router.post("/swap/token-to-sol", response_model=TradeExecutionResponse)
async def swap_token_to_sol(
    request: SwapAmountRequest,
    response: Response,
    service: TradingBotService = Depends(get_service),
):
    result = await service.execute_trade(TradeDirection.TOKEN_TO_SOL, request.amount_sol)
    response.status_code = _status_for(result.error_kind)
    return result


@router.get("/pairs", response_model=list[TradingPairStatusResponse])
async def get_all_pair_statuses(service: TradingBotService = Depends(get_service)):
    return await service.get_all_pair_statuses()


@router.post("/pairs", response_model=OperationResponse)
async def add_trading_pair(
    request: AddTradingPairRequest,
    response: Response,
    service: TradingBotService = Depends(get_service),
):
    result = await service.add_trading_pair(request)
    response.status_code = 201 if result.success else _status_for(result.error_kind)
    return result


@router.post("/pairs/scores/refresh")
async def refresh_scores(service: TradingBotService = Depends(get_service)) -> dict[str, float]:
    """Recompute profitability scores for all enabled pairs."""
    return await service.refresh_scores()


@router.get("/pairs/{pair_id}", response_model=TradingPairStatusResponse)
async def get_pair_status(pair_id: str, service: TradingBotService = Depends(get_service)):
    try:
        return await service.get_pair_status(pair_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=404,
            detail={"success": False, "error_kind": ErrorKind.NOT_FOUND.value, "error_message": str(e)},
        )


@router.get("/pairs/{pair_id}/trades", response_model=list[TradeOutcome])
async def get_trade_history(
    pair_id: str, limit: int = 50, service: TradingBotService = Depends(get_service)
):
    try:
        return await service.get_trade_history(pair_id, limit=limit)
    except NotFoundError as e:
        raise HTTPException(
            status_code=404,
            detail={"success": False, "error_kind": ErrorKind.NOT_FOUND.value, "error_message": str(e)},
        )


@router.put("/pairs/{pair_id}/rank", response_model=OperationResponse)
async def update_rank(
    pair_id: str,
    request: UpdateRankRequest,
    response: Response,
    service: TradingBotService = Depends(get_service),
):
    result = await service.update_rank(pair_id, request.new_rank)
    response.status_code = _status_for(result.error_kind)
    return result


@router.put("/pairs/{pair_id}/enabled", response_model=OperationResponse)
async def set_enabled(
    pair_id: str,
    request: SetEnabledRequest,
    response: Response,
    service: TradingBotService = Depends(get_service),
):
    result = await service.set_enabled(pair_id, request.enabled)
    response.status_code = _status_for(result.error_kind)
    return result


@router.post("/risk/reset-daily", response_model=OperationResponse)
async def reset_daily_counters(
    response: Response,
    pair_id: Optional[str] = None,
    service: TradingBotService = Depends(get_service),
):
    """Reset daily counters for one pair, or all pairs when pair_id is omitted."""
    result = await service.reset_daily_counters(pair_id)
    response.status_code = _status_for(result.error_kind)
    return result


@router.post("/cascade", response_model=CascadeOutcome)
async def execute_cascade(
    request: CascadeExecutionRequest,
    response: Response,
    service: TradingBotService = Depends(get_service),
):
    """Execute a cascade across ranked pairs.

    A cascade that ran (even with failed steps) returns 200; only requests
    refused before any step executes return an error status.
    """
    result = await service.execute_cascade(request.to_plan())
    if result.state == CascadeState.PLANNING:
        response.status_code = _status_for(result.error_kind)
    return result


@router.post("/trading/enable")
async def enable_trading(
    reason: str = "Manual activation", service: TradingBotService = Depends(get_service)
):
    await service.trading_switch.enable(reason)
    return await service.trading_switch.get_status()


@router.post("/trading/disable")
async def disable_trading(
    reason: str = "Manual deactivation", service: TradingBotService = Depends(get_service)
):
    await service.trading_switch.disable(reason)
    return await service.trading_switch.get_status()


@router.get("/trading/status")
async def get_trading_status(service: TradingBotService = Depends(get_service)):
    return await service.trading_switch.get_status()
