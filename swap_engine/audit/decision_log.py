"""Risk decision audit logging.

Logs all risk check decisions for full auditability.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from swap_engine.execution.trade_state import RiskCheckResult


class DecisionLogger:
    """Logs risk decisions for audit trail.

    All decisions are immutable and logged with full context.
    """

    def __init__(self, log_file: Optional[str] = None, echo: bool = True):
        """Initialize decision logger.

        Args:
            log_file: Optional file path for logging (default: stdout)
            echo: Print entries to stdout when no log file is set
        """
        self.log_file = log_file
        self.echo = echo
        self._log_buffer: list[dict] = []

    def log_risk_decision(
        self,
        pair_id: str,
        notional: float,
        result: RiskCheckResult,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """Log a risk decision.

        Args:
            pair_id: Trading pair identifier
            notional: Proposed notional
            result: Outcome of the risk evaluation
            metadata: Additional metadata (direction, cascade step, ...)
        """
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "pair_id": pair_id,
            "notional": notional,
            "decision": "APPROVED" if result.passed else "REJECTED",
            "violations": list(result.violations),
            "current_daily_volume": result.current_daily_volume,
            "remaining_daily_capacity": result.remaining_daily_capacity,
            "metadata": metadata or {},
        }

        # Buffered in memory for inspection and written out as JSON
        self._log_buffer.append(log_entry)

        log_line = json.dumps(log_entry)
        if self.log_file:
            with open(self.log_file, "a") as f:
                f.write(log_line + "\n")
        elif self.echo:
            print(f"[DECISION] {log_line}")

    def get_recent_decisions(
        self, pair_id: Optional[str] = None, limit: int = 100
    ) -> list[dict]:
        """Get recent decisions (for testing/debugging).

        Args:
            pair_id: Optional pair filter
            limit: Maximum number of decisions to return

        Returns:
            List of decision log entries
        """
        decisions = self._log_buffer
        if pair_id:
            decisions = [d for d in decisions if d.get("pair_id") == pair_id]

        return decisions[-limit:]
