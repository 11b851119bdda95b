"""Computation module for the Rebate Engine.

This module handles:
- The rebate price formula (4-decimal rounding)
- Three-tier pharmacy adjustment
- Lowest-price resolution across pharmacies
"""

from rebate_engine.compute.adjustment import (
    apply_adjustment,
    apply_general_rebates,
    lookup_rules,
)
from rebate_engine.compute.formula import (
    PRICE_QUANTUM,
    apply_rebate,
    calculate_adjusted_price,
)
from rebate_engine.compute.lowest import resolve_lowest, select_best_rule

__all__ = [
    # Formula
    "calculate_adjusted_price",
    "apply_rebate",
    "PRICE_QUANTUM",
    # Adjustment
    "apply_adjustment",
    "apply_general_rebates",
    "lookup_rules",
    # Lowest price
    "resolve_lowest",
    "select_best_rule",
]
