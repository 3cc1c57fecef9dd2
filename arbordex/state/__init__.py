"""
State records for the Arbordex pool
"""

from .pools import (
    TOKEN_A,
    TOKEN_B,
    FeeTotals,
    PoolState,
    Side,
    seed_state,
    side_for_token,
    token_for_side,
)

__all__ = [
    "TOKEN_A",
    "TOKEN_B",
    "FeeTotals",
    "PoolState",
    "Side",
    "seed_state",
    "side_for_token",
    "token_for_side",
]
