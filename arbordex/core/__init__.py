"""
Core pool algorithms: AMM math, validation, quotes and the pool engine
"""

from .cpmm import (
    DEFAULT_SLIPPAGE_TOLERANCE,
    FEE_RATE,
    MAX_ALLOWED_SLIPPAGE,
    MIN_GENESIS_SHARES,
    compute_fee,
    compute_liquidity_shares,
    compute_minimum_output,
    compute_output_amount,
    compute_price_impact,
    compute_spot_price,
    compute_withdrawal_amounts,
    is_slippage_acceptable,
)
from .errors import (
    AmmDomainError,
    AmmMathError,
    InvariantViolationError,
    PoolBrokenError,
    PoolDepletedError,
    PoolEngineError,
)
from .numbers import is_finite_number, is_number
from .pool_engine import PoolEngine
from .quote import Quote, quote_swap
from .validation import ValidationLimits, ValidationResult

__all__ = [
    "DEFAULT_SLIPPAGE_TOLERANCE",
    "FEE_RATE",
    "MAX_ALLOWED_SLIPPAGE",
    "MIN_GENESIS_SHARES",
    "compute_fee",
    "compute_liquidity_shares",
    "compute_minimum_output",
    "compute_output_amount",
    "compute_price_impact",
    "compute_spot_price",
    "compute_withdrawal_amounts",
    "is_slippage_acceptable",
    "is_finite_number",
    "is_number",
    "AmmDomainError",
    "AmmMathError",
    "InvariantViolationError",
    "PoolBrokenError",
    "PoolDepletedError",
    "PoolEngineError",
    "PoolEngine",
    "Quote",
    "quote_swap",
    "ValidationLimits",
    "ValidationResult",
]
