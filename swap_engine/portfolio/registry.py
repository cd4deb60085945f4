"""Trading pair registry.

Owns the configured trading pairs and their running daily counters. Each pair
lives in its own cell guarded by its own lock, so trades on different pairs
never contend and a cascade only ever holds one pair's lock at a time.
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict

from swap_engine.config.limits import DEFAULT_LIMITS, RiskLimits
from swap_engine.execution.errors import DuplicateKeyError, NotFoundError
from swap_engine.execution.trade_state import RiskCheckResult, TradeOutcome, utc_now


class TradingPair(BaseModel):
    """Point-in-time view of a trading pair."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    input_asset: str
    output_asset: str
    rank: int = 0
    enabled: bool = True
    limits: RiskLimits = DEFAULT_LIMITS
    input_decimals: int = 9
    output_decimals: int = 9
    profitability_score: float = 0.0
    score_updated_at: Optional[datetime] = None
    daily_volume: float = 0.0
    pending_volume: float = 0.0
    trades_today: int = 0
    last_trade_at: Optional[datetime] = None

    @property
    def consumed_volume(self) -> float:
        """Volume counted against the daily cap, including trades in flight."""
        return self.daily_volume + self.pending_volume


@dataclass
class _PairCell:
    pair: TradingPair
    day: date
    history: deque
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class TradingPairRegistry:
    """In-memory registry of trading pairs.

    Daily counters reset lazily at the UTC day boundary: the first access to a
    pair after midnight zeroes its committed volume and trade count.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        history_size: int = 100,
    ):
        """Initialize registry.

        Args:
            clock: Source of the current UTC time
            history_size: Number of outcomes retained per pair
        """
        self.clock = clock
        self.history_size = history_size
        self._cells: dict[str, _PairCell] = {}
        self._structure_lock = asyncio.Lock()

    def _cell(self, pair_id: str) -> _PairCell:
        cell = self._cells.get(pair_id)
        if cell is None:
            raise NotFoundError(f"Trading pair not found: {pair_id}")
        self._roll_day(cell)
        return cell

    def _roll_day(self, cell: _PairCell):
        today = self.clock().date()
        if today > cell.day:
            cell.pair = cell.pair.model_copy(update={"daily_volume": 0.0, "trades_today": 0})
            cell.day = today

    def _update(self, cell: _PairCell, **changes) -> TradingPair:
        cell.pair = cell.pair.model_copy(update=changes)
        return cell.pair

    def __contains__(self, pair_id: str) -> bool:
        return pair_id in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    async def add(self, pair: TradingPair) -> TradingPair:
        """Register a new pair.

        Raises:
            DuplicateKeyError: If the identifier is already registered
        """
        async with self._structure_lock:
            if pair.id in self._cells:
                raise DuplicateKeyError(f"Trading pair already exists: {pair.id}")
            self._cells[pair.id] = _PairCell(
                pair=pair,
                day=self.clock().date(),
                history=deque(maxlen=self.history_size),
            )
            return pair

    async def set_enabled(self, pair_id: str, enabled: bool) -> TradingPair:
        cell = self._cell(pair_id)
        async with cell.lock:
            return self._update(cell, enabled=enabled)

    async def set_rank(self, pair_id: str, rank: int) -> TradingPair:
        cell = self._cell(pair_id)
        async with cell.lock:
            return self._update(cell, rank=rank)

    async def set_score(self, pair_id: str, score: float) -> TradingPair:
        cell = self._cell(pair_id)
        async with cell.lock:
            return self._update(cell, profitability_score=score, score_updated_at=self.clock())

    def get(self, pair_id: str) -> TradingPair:
        """Return the current view of a pair.

        Raises:
            NotFoundError: If the identifier is not registered
        """
        return self._cell(pair_id).pair

    def all(self) -> list[TradingPair]:
        return [self._cell(pair_id).pair for pair_id in list(self._cells)]

    def all_enabled(self) -> list[TradingPair]:
        return [pair for pair in self.all() if pair.enabled]

    def history(self, pair_id: str, limit: Optional[int] = None) -> list[TradeOutcome]:
        """Most recent outcomes for a pair, oldest first."""
        outcomes = list(self._cell(pair_id).history)
        if limit is not None:
            outcomes = outcomes[-limit:] if limit > 0 else []
        return outcomes

    async def reserve(
        self,
        pair_id: str,
        amount: float,
        check: Callable[[TradingPair], RiskCheckResult],
    ) -> RiskCheckResult:
        """Run a risk check and reserve capacity if it passes.

        The check sees committed plus in-flight volume and runs inside the
        pair's critical section, so two concurrent trades cannot both pass
        on the same remaining capacity.
        """
        cell = self._cell(pair_id)
        async with cell.lock:
            self._roll_day(cell)
            result = check(cell.pair)
            if result.passed:
                self._update(cell, pending_volume=cell.pair.pending_volume + amount)
            return result

    async def commit(self, pair_id: str, amount: float, outcome: TradeOutcome) -> TradingPair:
        """Turn a reservation into consumed volume after a confirmed trade."""
        cell = self._cell(pair_id)
        async with cell.lock:
            self._roll_day(cell)
            cell.history.append(outcome)
            return self._update(
                cell,
                pending_volume=max(0.0, cell.pair.pending_volume - amount),
                daily_volume=cell.pair.daily_volume + amount,
                trades_today=cell.pair.trades_today + 1,
                last_trade_at=outcome.executed_at,
            )

    async def release(
        self, pair_id: str, amount: float, outcome: Optional[TradeOutcome] = None
    ) -> TradingPair:
        """Drop a reservation for a trade that did not complete."""
        cell = self._cell(pair_id)
        async with cell.lock:
            if outcome is not None:
                cell.history.append(outcome)
            return self._update(cell, pending_volume=max(0.0, cell.pair.pending_volume - amount))

    async def record(self, pair_id: str, outcome: TradeOutcome):
        """Append an outcome that never held a reservation (e.g. risk rejection)."""
        cell = self._cell(pair_id)
        async with cell.lock:
            cell.history.append(outcome)

    async def reset_daily(self, pair_id: Optional[str] = None) -> list[TradingPair]:
        """Zero the daily counters of one pair, or of every pair when no id is given.

        In-flight reservations are kept; they still settle through commit or release.

        Raises:
            NotFoundError: If the identifier is not registered
        """
        pair_ids = [pair_id] if pair_id is not None else list(self._cells)
        cells = [self._cell(pid) for pid in pair_ids]

        reset = []
        for cell in cells:
            async with cell.lock:
                cell.day = self.clock().date()
                reset.append(self._update(cell, daily_volume=0.0, trades_today=0))
        return reset
