"""Lowest achievable price across every pharmacy's rebates.

After the general tier, each quote is matched against all pharmacy-scoped
rules for its drug (or that pharmacy's "any" drug rule) and price type.
The highest percentage wins and its pharmacy is recorded on the quote.
Quotes are resolved concurrently; each one only touches its own record.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import replace

from rebate_engine.compute.adjustment import apply_general_rebates, lookup_rules
from rebate_engine.compute.formula import apply_rebate
from rebate_engine.config import Settings
from rebate_engine.models import PriceQuote, RebateRule
from rebate_engine.repository.base import RuleQuery, RuleRepository

logger = logging.getLogger(__name__)


def select_best_rule(rules: Iterable[RebateRule]) -> RebateRule | None:
    """Pick the rule with the highest rebate percentage.

    Ties go to the rule that came first.

    Args:
        rules: Candidate rules in repository order.

    Returns:
        Winning rule, or None if there are no candidates.
    """
    best: RebateRule | None = None
    for rule in rules:
        if best is None or rule.rebate_percent > best.rebate_percent:
            best = rule
    return best


async def _apply_best_rebate(
    quote: PriceQuote,
    repository: RuleRepository,
    settings: Settings,
) -> None:
    drug_id = quote.drug_id(settings.drug_id_scheme)
    if drug_id is None:
        return

    rules = await lookup_rules(
        repository,
        RuleQuery(
            drug_id_scheme=settings.drug_id_scheme,
            drug_ids=(drug_id, settings.wildcard),
            price_type_id=quote.price_type_id,
            exclude_pharmacy_id=settings.wildcard,
        ),
        settings,
    )

    best = select_best_rule(rules)
    if best is None:
        return

    apply_rebate(quote, best)
    quote.lowest_pharmacy_id = best.pharmacy_id


async def resolve_lowest(
    quotes: list[PriceQuote],
    repository: RuleRepository,
    settings: Settings | None = None,
) -> list[PriceQuote]:
    """Find the lowest rebated price for each quote and who offers it.

    Args:
        quotes: Unadjusted quotes from the price source.
        repository: Rule source.
        settings: Wildcard, scheme and timeout configuration.

    Returns:
        The input list when empty, otherwise resolved copies in input order.

    Raises:
        RuleLookupError: If any rule lookup fails.
        TimeoutError: If a rule lookup exceeds the configured timeout.
    """
    if not quotes:
        return quotes

    settings = settings or Settings()
    resolved = [replace(q) for q in quotes]

    await apply_general_rebates(resolved, repository, settings)
    await asyncio.gather(
        *(_apply_best_rebate(quote, repository, settings) for quote in resolved)
    )

    found = sum(1 for q in resolved if q.lowest_pharmacy_id is not None)
    logger.info(f"Resolved lowest pharmacy for {found}/{len(resolved)} quotes")

    return resolved
