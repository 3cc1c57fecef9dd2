"""
Arbordex: a single-pool constant-product AMM simulator
"""

__version__ = "1.0.0"
