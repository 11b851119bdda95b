"""Price lookup service wiring a price source to the rebate engines.

The service fetches current quotes for a drug and hands them to either the
pharmacy checkout path or the lowest-price comparison path. Serializing the
result belongs to the caller.
"""

import logging
from typing import Protocol

from rebate_engine.compute.adjustment import apply_adjustment
from rebate_engine.compute.lowest import resolve_lowest
from rebate_engine.config import Settings
from rebate_engine.models import PriceQuote
from rebate_engine.repository.base import RuleRepository

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    """Supplier of unadjusted quotes for a drug."""

    async def current_prices(self, drug_id: str) -> list[PriceQuote]:
        """Return current quotes, or an empty list for an unknown drug."""
        ...


class PricingService:
    """Computes rebate-adjusted prices for one drug at a time."""

    def __init__(
        self,
        price_source: PriceSource,
        repository: RuleRepository,
        settings: Settings | None = None,
    ) -> None:
        self.price_source = price_source
        self.repository = repository
        self.settings = settings or Settings()

    async def get_prices(
        self,
        drug_id: str,
        pharmacy_id: str | None = None,
    ) -> list[PriceQuote]:
        """Get quotes for a drug adjusted for the purchasing pharmacy.

        Args:
            drug_id: Drug to price.
            pharmacy_id: Purchasing pharmacy, or None for raw prices.

        Returns:
            Adjusted quotes; empty if the price source knows no prices.
        """
        quotes = await self.price_source.current_prices(drug_id)
        if not quotes:
            logger.info(f"No prices found for drug {drug_id}")
            return quotes

        return await apply_adjustment(
            pharmacy_id, quotes, self.repository, self.settings
        )

    async def get_lowest_prices(self, drug_id: str) -> list[PriceQuote]:
        """Get quotes for a drug at the best rebate any pharmacy offers.

        Args:
            drug_id: Drug to price.

        Returns:
            Quotes annotated with lowest price and pharmacy.
        """
        quotes = await self.price_source.current_prices(drug_id)
        if not quotes:
            logger.info(f"No prices found for drug {drug_id}")
            return quotes

        return await resolve_lowest(quotes, self.repository, self.settings)
