"""Rebate Engine.

Computes rebate-adjusted drug prices for a purchasing pharmacy and finds
the lowest achievable price across every pharmacy's rebates.
"""

from rebate_engine.config import Settings
from rebate_engine.exceptions import RebateEngineError, RuleLookupError
from rebate_engine.models import PriceQuote, RebateRule

__version__ = "0.1.0"
__all__ = [
    "Settings",
    "PriceQuote",
    "RebateRule",
    "RebateEngineError",
    "RuleLookupError",
]
