"""Service settings.

Settings are read from environment variables at startup. Trading pairs can be
supplied as a JSON file; the primary pair used by single trades is derived from
the SOL and token mints.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Optional

from swap_engine.config.limits import RiskLimits

SOL_MINT = "So11111111111111111111111111111111111111112"
DEFAULT_JUPITER_URL = "https://quote-api.jup.ag/v6"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


@dataclass
class BotSettings:
    """Centralized service configuration."""

    # Trading
    enabled: bool = False  # Global trading switch at startup
    mode: str = "paper"  # "paper" or "live"
    timeout_seconds: float = 30.0  # Per-step timeout for quote and submission

    # Chain
    rpc_url: str = ""
    jupiter_url: str = DEFAULT_JUPITER_URL
    wallet_public_key: str = ""
    wallet_private_key: str = field(default="", repr=False)
    sol_mint: str = SOL_MINT
    token_mint: str = ""
    token_decimals: int = 9

    # Pairs
    primary_pair_id: str = "primary"
    default_limits: RiskLimits = field(default_factory=RiskLimits)
    pairs: list[dict] = field(default_factory=list)

    # Paper mode
    paper_rate: float = 1.0  # Output units per input unit on every paper pair
    paper_balance: float = 10.0  # Simulated balance of every asset

    # Audit
    audit_log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "BotSettings":
        """Load settings from TRADEBOT_* environment variables."""
        defaults = RiskLimits()
        default_limits = RiskLimits(
            max_trade_notional=_env_float("TRADEBOT_MAX_TRADE_NOTIONAL", defaults.max_trade_notional),
            max_daily_notional=_env_float("TRADEBOT_MAX_DAILY_NOTIONAL", defaults.max_daily_notional),
            max_slippage_bps=int(_env_float("TRADEBOT_SLIPPAGE_BPS", defaults.max_slippage_bps)),
            min_balance_reserve=_env_float("TRADEBOT_MIN_BALANCE", defaults.min_balance_reserve),
        )

        pairs: list[dict] = []
        pairs_file = os.getenv("TRADEBOT_PAIRS_FILE")
        if pairs_file:
            pairs = load_pairs_file(pairs_file)

        return cls(
            enabled=_env_bool("TRADEBOT_ENABLED", False),
            mode=os.getenv("TRADEBOT_MODE", "paper").lower(),
            timeout_seconds=_env_float("TRADEBOT_TIMEOUT_SECONDS", 30.0),
            rpc_url=os.getenv("TRADEBOT_RPC_URL", ""),
            jupiter_url=os.getenv("TRADEBOT_JUPITER_URL", DEFAULT_JUPITER_URL),
            wallet_public_key=os.getenv("TRADEBOT_WALLET_PUBLIC_KEY", ""),
            wallet_private_key=os.getenv("TRADEBOT_WALLET_PRIVATE_KEY", ""),
            sol_mint=os.getenv("TRADEBOT_SOL_MINT", SOL_MINT),
            token_mint=os.getenv("TRADEBOT_TOKEN_MINT", ""),
            token_decimals=int(_env_float("TRADEBOT_TOKEN_DECIMALS", 9)),
            primary_pair_id=os.getenv("TRADEBOT_PRIMARY_PAIR_ID", "primary"),
            default_limits=default_limits,
            pairs=pairs,
            paper_rate=_env_float("TRADEBOT_PAPER_RATE", 1.0),
            paper_balance=_env_float("TRADEBOT_PAPER_BALANCE", 10.0),
            audit_log_file=os.getenv("TRADEBOT_AUDIT_LOG_FILE") or None,
        )


def load_pairs_file(path: str) -> list[dict]:
    """Load pair definitions from a JSON file holding a list of objects."""
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Pairs file must contain a JSON list: {path}")
    return data
