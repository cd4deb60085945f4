"""Trading switch - global enable flag.

When the switch is off, trade and cascade requests are refused before any
step executes. Status and pair management stay available.
"""

from datetime import datetime, timezone
from typing import Optional


class TradingSwitch:
    """Global on/off switch for trading.

    State is in-memory and starts from configuration; it does not survive a
    restart.
    """

    def __init__(self, enabled: bool = False):
        """Initialize trading switch.

        Args:
            enabled: Initial state (from settings)
        """
        self._enabled = enabled
        self._reason: str = "Initial configuration"
        self._changed_at: Optional[str] = None

    async def is_enabled(self) -> bool:
        """Check if trading is enabled."""
        return self._enabled

    async def enable(self, reason: str = "Manual activation"):
        """Enable trading.

        Args:
            reason: Reason for the change
        """
        self._set(True, reason)

    async def disable(self, reason: str = "Manual deactivation"):
        """Disable trading (halts new trades and cascades).

        Args:
            reason: Reason for the change
        """
        self._set(False, reason)

    def _set(self, enabled: bool, reason: str):
        self._enabled = enabled
        self._reason = reason
        self._changed_at = datetime.now(timezone.utc).isoformat()

    async def get_status(self) -> dict:
        """Get switch status.

        Returns:
            Status dictionary with enabled state and metadata
        """
        return {
            "enabled": self._enabled,
            "reason": self._reason,
            "changed_at": self._changed_at or "N/A",
        }
