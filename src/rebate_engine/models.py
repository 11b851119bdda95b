"""Data models for the Rebate Engine."""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from rebate_engine.config import WILDCARD
from rebate_engine.ingest.normalizers import normalize_ndc


def _to_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a raw number into Decimal via its string form.

    Raises:
        ValueError: If the value is missing or not numeric.
    """
    if value is None:
        raise ValueError(f"Missing value for '{field_name}'")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Invalid number for '{field_name}': {value!r}") from e


@dataclass
class PriceQuote:
    """One candidate price for a drug at a price-type tier.

    Attributes:
        ndc11: 11-digit National Drug Code the quote is for.
        price_type_id: Kind of price (cash, insurance tier, ...).
        unit_price: Price per unit before any rebate.
        package_size: Units per package.
        rebate_percent: Sum of every rebate percentage applied so far.
        price: Rebate-adjusted package price, set once a rule applies.
        lowest_pharmacy_id: Pharmacy whose rule gives the lowest price.
    """

    ndc11: str
    price_type_id: int
    unit_price: Decimal
    package_size: Decimal
    rebate_percent: Decimal | None = None
    price: Decimal | None = None
    lowest_pharmacy_id: str | None = None

    def drug_id(self, scheme: str) -> str | None:
        """Return the identifier this quote carries for a scheme.

        Rebate rows name the quote field they match in ``drug_id_name``.

        Args:
            scheme: Identifier scheme name, e.g. "ndc11".

        Returns:
            Identifier value, or None if the quote has no such field.
        """
        value = getattr(self, scheme, None)
        return value if isinstance(value, str) else None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PriceQuote":
        """Build a quote from a raw price source record.

        Args:
            record: Mapping with ndc11, price_type_id, unit_price, package_size.

        Returns:
            Unadjusted PriceQuote.

        Raises:
            ValueError: If a required field is missing or malformed.
        """
        if not record.get("ndc11"):
            raise ValueError("Price record is missing 'ndc11'")
        try:
            price_type_id = int(record["price_type_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(
                f"Invalid price_type_id: {record.get('price_type_id')!r}"
            ) from e

        return cls(
            ndc11=normalize_ndc(record["ndc11"]),
            price_type_id=price_type_id,
            unit_price=_to_decimal(record.get("unit_price"), "unit_price"),
            package_size=_to_decimal(record.get("package_size"), "package_size"),
        )

    def to_display_dict(self) -> dict[str, object]:
        """Convert to the record shape returned to API callers.

        Returns:
            Dictionary with numbers as floats and unset fields as None.
        """
        return {
            "ndc11": self.ndc11,
            "price_type_id": self.price_type_id,
            "unit_price": float(self.unit_price),
            "package_size": float(self.package_size),
            "rebate_percent": (
                float(self.rebate_percent)
                if self.rebate_percent is not None
                else None
            ),
            "price": float(self.price) if self.price is not None else None,
            "lowest_pharmacy_id": self.lowest_pharmacy_id,
        }


@dataclass(frozen=True)
class RebateRule:
    """A percentage discount scoped by pharmacy, drug and price type.

    Attributes:
        pharmacy_id: Pharmacy the rule belongs to, or the wildcard.
        drug_id_name: Identifier scheme ``drug_id`` is expressed in.
        drug_id: Drug the rule covers, or the wildcard.
        price_type_id: Price type a quote must have for the rule to apply.
        rebate_percent: Discount percentage (e.g. 12.5 for 12.5%).
    """

    pharmacy_id: str
    drug_id_name: str
    drug_id: str
    price_type_id: int
    rebate_percent: Decimal

    def is_general(self, wildcard: str = WILDCARD) -> bool:
        """Check if the rule applies to every pharmacy and every drug."""
        return self.pharmacy_id == wildcard and self.drug_id == wildcard

    def is_pharmacy_wide(self, wildcard: str = WILDCARD) -> bool:
        """Check if the rule covers every drug of one specific pharmacy."""
        return self.pharmacy_id != wildcard and self.drug_id == wildcard

    def matches(self, quote: PriceQuote) -> bool:
        """Check if the rule targets this quote's drug and price type."""
        return (
            quote.price_type_id == self.price_type_id
            and quote.drug_id(self.drug_id_name) == self.drug_id
        )
