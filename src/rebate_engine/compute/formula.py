"""Rebate price formula.

Formula:
    Effective Rebate % = Rule Rebate % + Already Applied Rebate %
    Discount = Effective Rebate % / 100 × Unit_Price
    Package Price = (Unit_Price - Discount) × Package_Size

Package prices are rounded to 4 decimal places, half away from zero
(ROUND_HALF_UP), e.g. 0.99985 -> 0.9999 and 26.29650 -> 26.2965.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from rebate_engine.config import PRICE_DECIMAL_PLACES
from rebate_engine.models import PriceQuote, RebateRule

logger = logging.getLogger(__name__)

PRICE_QUANTUM = Decimal(1).scaleb(-PRICE_DECIMAL_PLACES)  # 0.0001
HUNDRED = Decimal("100")


def calculate_adjusted_price(quote: PriceQuote, rule: RebateRule) -> Decimal:
    """Calculate the rebate-adjusted package price for a quote.

    The rule's percentage is added to whatever the quote already carries,
    so a second rule prices the quote at the combined discount.

    Args:
        quote: Quote with unit price, package size and prior rebate.
        rule: Rule whose percentage is being applied.

    Returns:
        Package price rounded to 4 decimal places.

    Raises:
        ValueError: If an input is NaN or the package size is negative.
    """
    if quote.unit_price.is_nan() or quote.package_size.is_nan():
        raise ValueError(f"Quote for {quote.ndc11} has a NaN price input")
    if rule.rebate_percent.is_nan():
        raise ValueError(f"Rebate for {rule.drug_id} has a NaN percentage")
    if quote.package_size < 0:
        raise ValueError(
            f"Quote for {quote.ndc11} has negative package size {quote.package_size}"
        )

    effective_percent = rule.rebate_percent + (quote.rebate_percent or Decimal("0"))
    discount = effective_percent / HUNDRED * quote.unit_price
    package_price = (quote.unit_price - discount) * quote.package_size

    return package_price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def apply_rebate(quote: PriceQuote, rule: RebateRule) -> PriceQuote:
    """Price a quote with a rule and stack the rule's percentage onto it.

    Args:
        quote: Quote to update in place.
        rule: Matching rebate rule.

    Returns:
        The same quote, for chaining.
    """
    quote.price = calculate_adjusted_price(quote, rule)
    quote.rebate_percent = (quote.rebate_percent or Decimal("0")) + rule.rebate_percent

    logger.debug(
        f"Rebate for {quote.ndc11} (price type {quote.price_type_id}): "
        f"+{rule.rebate_percent}% from pharmacy {rule.pharmacy_id} -> "
        f"{quote.rebate_percent}% total, price=${quote.price}"
    )

    return quote
