"""Exception types for the pool math and the pool engine.

Validation never raises; it returns ``ValidationResult`` values (see
``validation.py``). These exceptions signal caller bugs (math) or rejected
mutations (engine).
"""

from __future__ import annotations

from typing import Sequence


class AmmMathError(ValueError):
    """Raised when an AMM formula receives a non-finite or non-positive input it requires to be positive."""


class AmmDomainError(AmmMathError):
    """Raised when a formula is undefined for its input (spot price with a zero input reserve)."""


class PoolEngineError(Exception):
    """Base class for rejected pool mutations. The published pool state is left unchanged."""


class PoolBrokenError(PoolEngineError):
    """Raised when a swap would leave a reserve non-positive."""


class InvariantViolationError(PoolEngineError):
    """Raised when a candidate state violates one or more pool invariants."""

    def __init__(self, violations: Sequence[str], detail: str = "") -> None:
        self.violations = list(violations)
        msg = f"invariant violations: {', '.join(self.violations)}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class PoolDepletedError(PoolEngineError):
    """Raised when a withdrawal would drain a reserve or burn more shares than exist."""
