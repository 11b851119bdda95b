"""Pharmacy-specific rebate adjustment (checkout path).

Rules are applied in three tiers, each stacking onto the previous one:

1. General: pharmacy "any", drug "any".
2. Pharmacy-wide: the purchasing pharmacy, drug "any". Used only when the
   pharmacy has exactly one such rule; tier 3 is then skipped.
3. Pharmacy-drug: the purchasing pharmacy and the quote's own drug.

Percentages add up; a quote priced by tiers 1 and 2 carries the sum.
"""

import asyncio
import logging
from dataclasses import replace

from rebate_engine.compute.formula import apply_rebate
from rebate_engine.config import Settings
from rebate_engine.models import PriceQuote, RebateRule
from rebate_engine.repository.base import RuleQuery, RuleRepository

logger = logging.getLogger(__name__)


async def lookup_rules(
    repository: RuleRepository,
    query: RuleQuery,
    settings: Settings,
) -> list[RebateRule]:
    """Run one repository lookup bounded by the configured timeout.

    Errors propagate unchanged; ``TimeoutError`` is raised on timeout.
    """
    return await asyncio.wait_for(
        repository.find_rules(query),
        timeout=settings.lookup_timeout_seconds,
    )


async def apply_general_rebates(
    quotes: list[PriceQuote],
    repository: RuleRepository,
    settings: Settings,
) -> None:
    """Apply the pharmacy "any" / drug "any" rules to matching price types.

    Args:
        quotes: Quotes to update in place.
        repository: Rule source.
        settings: Wildcard and scheme configuration.
    """
    rules = await lookup_rules(
        repository,
        RuleQuery(
            drug_id_scheme=settings.drug_id_scheme,
            pharmacy_ids=(settings.wildcard,),
            drug_ids=(settings.wildcard,),
        ),
        settings,
    )
    if not rules:
        return

    for quote in quotes:
        rule = next((r for r in rules if r.price_type_id == quote.price_type_id), None)
        if rule is not None:
            apply_rebate(quote, rule)


async def _apply_pharmacy_drug_rebates(
    pharmacy_id: str,
    quotes: list[PriceQuote],
    repository: RuleRepository,
    settings: Settings,
) -> None:
    """Apply at most one pharmacy-drug rule per quote, in one batched lookup."""
    drug_ids = tuple(
        dict.fromkeys(
            drug_id
            for drug_id in (q.drug_id(settings.drug_id_scheme) for q in quotes)
            if drug_id is not None
        )
    )
    rules = await lookup_rules(
        repository,
        RuleQuery(
            drug_id_scheme=settings.drug_id_scheme,
            pharmacy_ids=(pharmacy_id,),
            drug_ids=drug_ids,
        ),
        settings,
    )

    for quote in quotes:
        rule = next((r for r in rules if r.matches(quote)), None)
        if rule is not None:
            apply_rebate(quote, rule)


async def apply_adjustment(
    pharmacy_id: str | None,
    quotes: list[PriceQuote],
    repository: RuleRepository,
    settings: Settings | None = None,
) -> list[PriceQuote]:
    """Adjust quotes with the rebates available to one pharmacy.

    Works on copies: the input quotes are never mutated, so a failed lookup
    leaves the caller with nothing partially adjusted.

    Args:
        pharmacy_id: Purchasing pharmacy, or None for no adjustment.
        quotes: Unadjusted quotes from the price source.
        repository: Rule source.
        settings: Wildcard, scheme and timeout configuration.

    Returns:
        The input list itself when empty or without a pharmacy, otherwise
        adjusted copies in the same order.

    Raises:
        RuleLookupError: If any rule lookup fails.
        TimeoutError: If a rule lookup exceeds the configured timeout.
    """
    if not quotes:
        return quotes

    if pharmacy_id is None:
        logger.debug("No pharmacy context, returning quotes unadjusted")
        return quotes

    settings = settings or Settings()
    pharmacy_id = str(pharmacy_id)
    adjusted = [replace(q) for q in quotes]

    await apply_general_rebates(adjusted, repository, settings)

    pharmacy_rules = await lookup_rules(
        repository,
        RuleQuery(
            drug_id_scheme=settings.drug_id_scheme,
            pharmacy_ids=(pharmacy_id,),
            drug_ids=(settings.wildcard,),
        ),
        settings,
    )

    if len(pharmacy_rules) == 1:
        rule = pharmacy_rules[0]
        for quote in adjusted:
            if quote.price_type_id == rule.price_type_id:
                apply_rebate(quote, rule)
    else:
        if len(pharmacy_rules) > 1:
            logger.warning(
                f"Pharmacy {pharmacy_id} has {len(pharmacy_rules)} pharmacy-wide "
                f"rebates, falling back to drug-specific rebates"
            )
        await _apply_pharmacy_drug_rebates(pharmacy_id, adjusted, repository, settings)

    priced = sum(1 for q in adjusted if q.price is not None)
    logger.info(
        f"Adjusted {priced}/{len(adjusted)} quotes for pharmacy {pharmacy_id}"
    )

    return adjusted
