"""Trade and cascade state models.

Defines the intents the engine executes and the immutable outcomes it
produces. Outcomes are appended to history and never mutated.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from swap_engine.execution.errors import ErrorKind


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IntentDirection(str, Enum):
    """Direction of a swap relative to the pair's configured asset ordering."""

    FORWARD = "FORWARD"  # input_asset -> output_asset
    REVERSE = "REVERSE"  # output_asset -> input_asset


class TradeIntent(BaseModel):
    """A requested swap on one pair. Built per request, never stored."""

    model_config = ConfigDict(frozen=True)

    pair_id: str
    direction: IntentDirection = IntentDirection.FORWARD
    amount: float


class RiskCheckResult(BaseModel):
    """Result of a risk evaluation, computed fresh on every check."""

    model_config = ConfigDict(frozen=True)

    passed: bool
    violations: list[str] = Field(default_factory=list)
    current_daily_volume: float = 0.0
    remaining_daily_capacity: float = 0.0


class TradeOutcome(BaseModel):
    """Terminal result of a single trade."""

    model_config = ConfigDict(frozen=True)

    success: bool
    pair_id: str
    signature: Optional[str] = None
    input_asset: Optional[str] = None
    output_asset: Optional[str] = None
    input_amount: float = 0.0
    notional: float = 0.0  # Volume counted against the pair limits, in the pair base unit
    output_amount: float = 0.0
    price_impact_pct: float = 0.0
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    violations: list[str] = Field(default_factory=list)
    executed_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def failed(
        cls,
        pair_id: str,
        kind: ErrorKind,
        message: str,
        violations: Optional[list[str]] = None,
        **details,
    ) -> "TradeOutcome":
        return cls(
            success=False,
            pair_id=pair_id,
            error_kind=kind,
            error_message=message,
            violations=violations or [],
            **details,
        )


class CascadeState(str, Enum):
    """Cascade lifecycle."""

    PLANNING = "PLANNING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"


class CascadePlan(BaseModel):
    """Parameters of a cascade run."""

    model_config = ConfigDict(frozen=True)

    initial_amount: float
    pair_ids: Optional[list[str]] = None
    max_depth: int = 3
    stop_on_failure: bool = True


class CascadeStepResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_number: int
    pair_id: str
    input_amount: float
    outcome: TradeOutcome

    @property
    def success(self) -> bool:
        return self.outcome.success


class CascadeOutcome(BaseModel):
    """Aggregated result of a cascade run."""

    success: bool
    state: CascadeState
    steps: list[CascadeStepResult] = Field(default_factory=list)
    initial_amount: float = 0.0
    final_amount: float = 0.0
    total_profit: float = 0.0
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    executed_at: datetime = Field(default_factory=utc_now)
