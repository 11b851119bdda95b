"""Rebate rule snapshot backed by a Polars DataFrame."""

import logging
from collections.abc import Iterable
from decimal import Decimal
from pathlib import Path
from typing import BinaryIO

import polars as pl

from rebate_engine.config import WILDCARD, Settings
from rebate_engine.exceptions import RuleLookupError
from rebate_engine.ingest.loaders import load_file_auto
from rebate_engine.ingest.normalizers import REBATE_SCHEMA, normalize_rebate_table
from rebate_engine.ingest.validators import (
    validate_rebate_schema,
    validate_rebate_values,
)
from rebate_engine.models import RebateRule
from rebate_engine.repository.base import RuleQuery

logger = logging.getLogger(__name__)


class PolarsRuleRepository:
    """Read-only rule repository over an in-memory rebate table.

    Lookups preserve the table's row order, so "first returned" tie-breaks
    follow the order rules were loaded in.
    """

    def __init__(self, rules: pl.DataFrame) -> None:
        result = validate_rebate_schema(rules)
        if not result.is_valid:
            raise ValueError(result.message)
        self._rules = rules
        logger.info(f"Rule repository holds {rules.height} rebate rules")

    @classmethod
    def from_rules(
        cls,
        rules: Iterable[RebateRule],
    ) -> "PolarsRuleRepository":
        """Build a repository from rule objects.

        Args:
            rules: Rebate rules, in lookup order.

        Returns:
            Repository holding the given rules.
        """
        rows = [
            {
                "pharmacy_id": rule.pharmacy_id,
                "drug_id_name": rule.drug_id_name,
                "drug_id": rule.drug_id,
                "price_type_id": rule.price_type_id,
                "rebate_percent": str(rule.rebate_percent),
            }
            for rule in rules
        ]
        return cls(pl.DataFrame(rows, schema=REBATE_SCHEMA))

    @classmethod
    def from_file(
        cls,
        file: BinaryIO | Path | str,
        filename: str | None = None,
        wildcard: str = WILDCARD,
    ) -> "PolarsRuleRepository":
        """Load a rebate table from CSV or Excel.

        Args:
            file: File path, path string, or file-like object.
            filename: Filename for type detection (required for file objects).
            wildcard: Scope value meaning "any".

        Returns:
            Repository holding the normalized rules.

        Raises:
            ValueError: If the file cannot be loaded or lacks required columns.
        """
        raw = load_file_auto(file, filename=filename)
        rules = normalize_rebate_table(raw, wildcard=wildcard)

        quality = validate_rebate_values(rules)
        logger.info(f"Loaded rebate table: {quality.message}")

        return cls(rules)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PolarsRuleRepository":
        """Load the rebate table named by ``RULES_FILE``.

        Raises:
            ValueError: If no rules file is configured or it cannot be loaded.
        """
        if settings.rules_file is None:
            raise ValueError("RULES_FILE is not configured")
        return cls.from_file(settings.rules_file, wildcard=settings.wildcard)

    async def find_rules(self, query: RuleQuery) -> list[RebateRule]:
        """Return rules matching the query in table order.

        Raises:
            RuleLookupError: If the query is malformed or filtering fails.
        """
        if not query.drug_id_scheme:
            raise RuleLookupError("Rule lookup requires a drug id scheme")

        try:
            condition = pl.col("drug_id_name") == query.drug_id_scheme
            if query.pharmacy_ids is not None:
                condition &= pl.col("pharmacy_id").is_in(list(query.pharmacy_ids))
            if query.drug_ids is not None:
                condition &= pl.col("drug_id").is_in(list(query.drug_ids))
            if query.price_type_id is not None:
                condition &= pl.col("price_type_id") == query.price_type_id
            if query.exclude_pharmacy_id is not None:
                condition &= pl.col("pharmacy_id") != query.exclude_pharmacy_id

            matched = self._rules.filter(condition)
        except pl.exceptions.PolarsError as e:
            logger.error(f"Rule lookup failed for {query}: {e}")
            raise RuleLookupError(f"Rule lookup failed: {e}") from e

        logger.debug(f"Rule lookup {query} matched {matched.height} rules")

        return [
            RebateRule(
                pharmacy_id=row["pharmacy_id"],
                drug_id_name=row["drug_id_name"],
                drug_id=row["drug_id"],
                price_type_id=int(row["price_type_id"]),
                rebate_percent=Decimal(row["rebate_percent"]),
            )
            for row in matched.iter_rows(named=True)
        ]
