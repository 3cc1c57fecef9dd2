"""Numeric input predicates shared by the math, validation and service layers."""

from __future__ import annotations

import math


def is_number(value: object) -> bool:
    """True for int/float values; bool is rejected even though it subclasses int."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_finite_number(value: object) -> bool:
    """
    True for a number that converts to a finite float.

    JSON integers are unbounded, and an int beyond float range makes
    `math.isfinite` raise OverflowError; such values count as not finite.
    """
    if not is_number(value):
        return False
    try:
        return math.isfinite(value)  # type: ignore[arg-type]
    except OverflowError:
        return False
