"""Error taxonomy for the Swap Engine.

Engine operations report failures as an ErrorKind on a structured result.
The exceptions below are raised only by the registry and the cascade planner
and are converted into results by the service layer.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable failure classification."""

    INVALID_INPUT = "INVALID_INPUT"  # Non-positive amount, malformed request
    RISK_REJECTED = "RISK_REJECTED"  # One or more risk violations
    NO_ROUTE_AVAILABLE = "NO_ROUTE_AVAILABLE"  # Aggregator found no route
    EXECUTION_FAILED = "EXECUTION_FAILED"  # Submission/confirmation failure or timeout
    NOT_FOUND = "NOT_FOUND"  # Unknown pair id
    DUPLICATE_KEY = "DUPLICATE_KEY"  # Pair already registered
    INVALID_PLAN = "INVALID_PLAN"  # Empty or unknown pair set in a cascade
    TRADING_DISABLED = "TRADING_DISABLED"  # Global trading switch is off


class SwapEngineError(Exception):
    """Base exception for engine errors."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT


class NotFoundError(SwapEngineError):
    """Raised when a pair identifier is not registered."""

    kind = ErrorKind.NOT_FOUND


class DuplicateKeyError(SwapEngineError):
    """Raised when registering a pair identifier that already exists."""

    kind = ErrorKind.DUPLICATE_KEY


class InvalidPlanError(SwapEngineError):
    """Raised when a cascade plan cannot be resolved to a usable pair set."""

    kind = ErrorKind.INVALID_PLAN


class InvalidInputError(SwapEngineError):
    """Raised when a request is malformed (non-positive amount, bad depth)."""

    kind = ErrorKind.INVALID_INPUT
