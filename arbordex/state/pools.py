"""
Pool state for the single ETH/USDC constant-product pool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Dict


TOKEN_A = "ETH"
TOKEN_B = "USDC"

SEED_RESERVE_A = 1_000_000.0
SEED_RESERVE_B = 1_000_000.0
# sqrt(SEED_RESERVE_A * SEED_RESERVE_B)
SEED_TOTAL_SHARES = 1_000_000.0


@unique
class Side(Enum):
    """Pool side. A holds ETH, B holds USDC."""
    A = "A"
    B = "B"

    @property
    def other(self) -> "Side":
        return Side.B if self is Side.A else Side.A


_TOKEN_BY_SIDE = {Side.A: TOKEN_A, Side.B: TOKEN_B}
_SIDE_BY_TOKEN = {TOKEN_A: Side.A, TOKEN_B: Side.B}


def side_for_token(token: object) -> Side:
    """Map an asset symbol to its pool side. Raises ValueError on unknown tokens."""
    if not isinstance(token, str) or token not in _SIDE_BY_TOKEN:
        raise ValueError(f"Unknown token: {token!r}. Must be {TOKEN_A} or {TOKEN_B}.")
    return _SIDE_BY_TOKEN[token]


def token_for_side(side: Side) -> str:
    return _TOKEN_BY_SIDE[side]


@dataclass(frozen=True)
class FeeTotals:
    """Fees collected per asset. Informational; the fees stay inside the reserves."""

    a: float = 0.0
    b: float = 0.0

    def add(self, side: Side, amount: float) -> "FeeTotals":
        if side is Side.A:
            return FeeTotals(a=self.a + amount, b=self.b)
        return FeeTotals(a=self.a, b=self.b + amount)

    def to_dict(self) -> Dict[str, float]:
        return {"eth": self.a, "usdc": self.b}


@dataclass(frozen=True)
class PoolState:
    """
    Immutable snapshot of the pool.

    Attributes:
        reserve_a: ETH balance held by the pool
        reserve_b: USDC balance held by the pool
        total_shares: Outstanding liquidity shares (issued minus burned)
        fees: Accumulated swap fees per asset
        k: Constant-product floor; raised after swaps, reset after liquidity events
    """
    reserve_a: float
    reserve_b: float
    total_shares: float
    fees: FeeTotals = field(default_factory=FeeTotals)
    k: float = 0.0

    def reserve(self, side: Side) -> float:
        return self.reserve_a if side is Side.A else self.reserve_b

    def constant_product(self) -> float:
        """Current reserve_a * reserve_b (may differ from the stored floor `k`)."""
        return self.reserve_a * self.reserve_b

    def with_reserves(self, reserve_a: float, reserve_b: float) -> "PoolState":
        return PoolState(
            reserve_a=reserve_a,
            reserve_b=reserve_b,
            total_shares=self.total_shares,
            fees=self.fees,
            k=self.k,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ethReserve": self.reserve_a,
            "usdcReserve": self.reserve_b,
            "totalShares": self.total_shares,
            "k": self.k,
            "accumulatedFees": self.fees.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"PoolState(reserves=({self.reserve_a}, {self.reserve_b}), "
            f"total_shares={self.total_shares}, k={self.k}, "
            f"fees=({self.fees.a}, {self.fees.b}))"
        )


def seed_state(
    reserve_a: float = SEED_RESERVE_A,
    reserve_b: float = SEED_RESERVE_B,
    total_shares: float = SEED_TOTAL_SHARES,
) -> PoolState:
    """Return the process-start pool: fixed reserves, zero fees, k = reserve_a * reserve_b."""
    if reserve_a <= 0 or reserve_b <= 0:
        raise ValueError(f"Seed reserves must be positive: ({reserve_a}, {reserve_b})")
    if total_shares <= 0:
        raise ValueError(f"Seed shares must be positive: {total_shares}")
    reserve_a = float(reserve_a)
    reserve_b = float(reserve_b)
    return PoolState(
        reserve_a=reserve_a,
        reserve_b=reserve_b,
        total_shares=float(total_shares),
        fees=FeeTotals(),
        k=reserve_a * reserve_b,
    )
