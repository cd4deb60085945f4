"""Trade execution audit logging.

Logs trade, cascade and pair configuration events for full auditability.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from swap_engine.execution.trade_state import (
    CascadeOutcome,
    CascadePlan,
    TradeIntent,
    TradeOutcome,
)


class TradeLogger:
    """Logs trade executions for audit trail.

    All entries are immutable and logged with full context.
    """

    def __init__(self, log_file: Optional[str] = None, echo: bool = True):
        """Initialize trade logger.

        Args:
            log_file: Optional file path for logging (default: stdout)
            echo: Print entries to stdout when no log file is set
        """
        self.log_file = log_file
        self.echo = echo
        self._log_buffer: list[dict] = []

    def log_trade_submitted(self, intent: TradeIntent, notional: float, quote: Dict[str, Any]):
        """Log a swap handed to the ledger.

        Args:
            intent: Trade intent
            notional: Reserved notional
            quote: Quote summary (amounts, price impact)
        """
        self._write_log(
            {
                "event": "TRADE_SUBMITTED",
                "pair_id": intent.pair_id,
                "direction": intent.direction.value,
                "notional": notional,
                "quote": quote,
            }
        )

    def log_trade_outcome(self, outcome: TradeOutcome, metadata: Optional[Dict[str, Any]] = None):
        """Log a terminal trade outcome (confirmed or failed)."""
        self._write_log(
            {
                "event": "TRADE_CONFIRMED" if outcome.success else "TRADE_FAILED",
                "pair_id": outcome.pair_id,
                "outcome": outcome.model_dump(mode="json"),
                "metadata": metadata or {},
            }
        )

    def log_cascade_started(self, plan: CascadePlan, pair_ids: list[str]):
        self._write_log(
            {
                "event": "CASCADE_STARTED",
                "initial_amount": plan.initial_amount,
                "stop_on_failure": plan.stop_on_failure,
                "pair_ids": pair_ids,
            }
        )

    def log_cascade_finished(self, outcome: CascadeOutcome):
        self._write_log(
            {
                "event": "CASCADE_FINISHED",
                "success": outcome.success,
                "state": outcome.state.value,
                "steps": len(outcome.steps),
                "initial_amount": outcome.initial_amount,
                "final_amount": outcome.final_amount,
                "total_profit": outcome.total_profit,
                "error_message": outcome.error_message,
            }
        )

    def log_pair_event(self, event: str, pair_id: str, details: Optional[Dict[str, Any]] = None):
        """Log a pair configuration change (added, rank, enabled)."""
        self._write_log({"event": event, "pair_id": pair_id, "details": details or {}})

    def _write_log(self, log_entry: dict):
        """Write log entry to storage.

        Args:
            log_entry: Log entry dictionary
        """
        log_entry = {"timestamp": datetime.now(timezone.utc).isoformat(), **log_entry}
        self._log_buffer.append(log_entry)

        log_line = json.dumps(log_entry)
        if self.log_file:
            with open(self.log_file, "a") as f:
                f.write(log_line + "\n")
        elif self.echo:
            print(f"[TRADE] {log_line}")

    def get_recent_trades(
        self, pair_id: Optional[str] = None, limit: int = 100
    ) -> list[dict]:
        """Get recent entries (for testing/debugging).

        Args:
            pair_id: Optional pair filter
            limit: Maximum number of entries to return

        Returns:
            List of trade log entries
        """
        entries = self._log_buffer
        if pair_id:
            entries = [e for e in entries if e.get("pair_id") == pair_id]

        return entries[-limit:]
