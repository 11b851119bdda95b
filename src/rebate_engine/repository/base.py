"""Rule repository contract consumed by the pricing engines."""

from dataclasses import dataclass
from typing import Protocol

from rebate_engine.models import RebateRule


@dataclass(frozen=True)
class RuleQuery:
    """Filter describing which rebate rules a lookup should return.

    A field set to None is not filtered on. Wildcard scopes are matched
    literally, so ``pharmacy_ids=("any",)`` selects general rules only.

    Attributes:
        drug_id_scheme: Identifier scheme the rules must be expressed in.
        pharmacy_ids: Pharmacy scopes to accept.
        drug_ids: Drug scopes to accept (batch "in-set" filter).
        price_type_id: Price type to accept.
        exclude_pharmacy_id: Pharmacy scope to drop, typically the wildcard.
    """

    drug_id_scheme: str
    pharmacy_ids: tuple[str, ...] | None = None
    drug_ids: tuple[str, ...] | None = None
    price_type_id: int | None = None
    exclude_pharmacy_id: str | None = None


class RuleRepository(Protocol):
    """Read-only source of rebate rules.

    Implementations return matching rules in a stable order and raise
    ``RuleLookupError`` instead of returning an empty list on failure.
    """

    async def find_rules(self, query: RuleQuery) -> list[RebateRule]:
        """Return every rule matching the query."""
        ...
