"""Builders and fake repositories shared by the test modules."""

from decimal import Decimal

from rebate_engine.exceptions import RuleLookupError
from rebate_engine.models import PriceQuote, RebateRule
from rebate_engine.repository.base import RuleQuery
from rebate_engine.repository.polars_repository import PolarsRuleRepository

PHARMACY_A = "1000001"
PHARMACY_B = "2000002"
NDC_HUMIRA = "00074433902"
NDC_LIPITOR = "00071015523"


def rule(
    pharmacy_id: str,
    drug_id: str,
    price_type_id: int,
    rebate_percent: str,
    drug_id_name: str = "ndc11",
) -> RebateRule:
    """Shorthand for building a rebate rule."""
    return RebateRule(
        pharmacy_id=pharmacy_id,
        drug_id_name=drug_id_name,
        drug_id=drug_id,
        price_type_id=price_type_id,
        rebate_percent=Decimal(rebate_percent),
    )


def quote(
    ndc11: str = NDC_HUMIRA,
    price_type_id: int = 1,
    unit_price: str = "10.00",
    package_size: str = "3",
) -> PriceQuote:
    """Shorthand for building an unadjusted quote."""
    return PriceQuote(
        ndc11=ndc11,
        price_type_id=price_type_id,
        unit_price=Decimal(unit_price),
        package_size=Decimal(package_size),
    )


class RecordingRuleRepository:
    """Rule repository that records every query it answers."""

    def __init__(self, rules: list[RebateRule]) -> None:
        self._inner = PolarsRuleRepository.from_rules(rules)
        self.queries: list[RuleQuery] = []

    async def find_rules(self, query: RuleQuery) -> list[RebateRule]:
        self.queries.append(query)
        return await self._inner.find_rules(query)


class FailingRuleRepository(RecordingRuleRepository):
    """Rule repository whose Nth lookup raises RuleLookupError."""

    def __init__(self, rules: list[RebateRule], fail_on_call: int = 1) -> None:
        super().__init__(rules)
        self.fail_on_call = fail_on_call

    async def find_rules(self, query: RuleQuery) -> list[RebateRule]:
        self.queries.append(query)
        if len(self.queries) == self.fail_on_call:
            raise RuleLookupError("connection to rebate store lost")
        return await self._inner.find_rules(query)
