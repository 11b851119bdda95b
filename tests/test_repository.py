"""Tests for the Polars-backed rule repository."""

from decimal import Decimal
from io import BytesIO
from pathlib import Path

import polars as pl
import pytest

from rebate_engine.config import Settings
from rebate_engine.exceptions import RuleLookupError
from rebate_engine.repository.base import RuleQuery
from rebate_engine.repository.polars_repository import PolarsRuleRepository
from tests.helpers import (
    NDC_HUMIRA,
    NDC_LIPITOR,
    PHARMACY_A,
    PHARMACY_B,
    rule,
)

RULES = [
    rule("any", "any", 1, "2"),
    rule(PHARMACY_A, "any", 1, "5"),
    rule(PHARMACY_A, NDC_HUMIRA, 2, "20"),
    rule(PHARMACY_B, NDC_HUMIRA, 1, "15.5"),
    rule(PHARMACY_B, NDC_LIPITOR, 1, "3"),
    rule(PHARMACY_B, "12345", 1, "9", drug_id_name="rxcui"),
]


@pytest.fixture
def repository() -> PolarsRuleRepository:
    """Repository over the module's rule set."""
    return PolarsRuleRepository.from_rules(RULES)


class TestFindRules:
    """Tests for find_rules filtering."""

    @pytest.mark.asyncio
    async def test_scheme_only(self, repository: PolarsRuleRepository) -> None:
        """Only rules in the requested scheme come back, in table order."""
        result = await repository.find_rules(RuleQuery(drug_id_scheme="ndc11"))
        assert result == RULES[:5]

    @pytest.mark.asyncio
    async def test_wildcards_match_literally(
        self, repository: PolarsRuleRepository
    ) -> None:
        """pharmacy any + drug any selects general rules only."""
        result = await repository.find_rules(
            RuleQuery(drug_id_scheme="ndc11", pharmacy_ids=("any",), drug_ids=("any",))
        )
        assert result == [RULES[0]]

    @pytest.mark.asyncio
    async def test_in_set_drug_filter(self, repository: PolarsRuleRepository) -> None:
        """drug_ids acts as an in-set filter."""
        result = await repository.find_rules(
            RuleQuery(
                drug_id_scheme="ndc11",
                pharmacy_ids=(PHARMACY_B,),
                drug_ids=(NDC_HUMIRA, NDC_LIPITOR),
            )
        )
        assert result == [RULES[3], RULES[4]]

    @pytest.mark.asyncio
    async def test_price_type_filter(self, repository: PolarsRuleRepository) -> None:
        """price_type_id narrows the result."""
        result = await repository.find_rules(
            RuleQuery(drug_id_scheme="ndc11", drug_ids=(NDC_HUMIRA,), price_type_id=2)
        )
        assert result == [RULES[2]]

    @pytest.mark.asyncio
    async def test_exclude_pharmacy(self, repository: PolarsRuleRepository) -> None:
        """Rules for the excluded pharmacy scope are dropped."""
        result = await repository.find_rules(
            RuleQuery(
                drug_id_scheme="ndc11",
                drug_ids=(NDC_HUMIRA, "any"),
                price_type_id=1,
                exclude_pharmacy_id="any",
            )
        )
        assert result == [RULES[1], RULES[3]]

    @pytest.mark.asyncio
    async def test_empty_in_set(self, repository: PolarsRuleRepository) -> None:
        """An empty drug set matches nothing."""
        result = await repository.find_rules(
            RuleQuery(drug_id_scheme="ndc11", drug_ids=())
        )
        assert result == []

    @pytest.mark.asyncio
    async def test_decimal_percent_round_trip(
        self, repository: PolarsRuleRepository
    ) -> None:
        """Percentages come back as exact Decimals."""
        result = await repository.find_rules(
            RuleQuery(drug_id_scheme="ndc11", pharmacy_ids=(PHARMACY_B,))
        )
        assert result[0].rebate_percent == Decimal("15.5")

    @pytest.mark.asyncio
    async def test_percent_precision_preserved(self) -> None:
        """Percentages keep every digit of the Decimal they were built from."""
        precise = Decimal("12.34567890123456789")
        repository = PolarsRuleRepository.from_rules(
            [rule(PHARMACY_A, NDC_HUMIRA, 1, str(precise))]
        )

        (result,) = await repository.find_rules(RuleQuery(drug_id_scheme="ndc11"))

        assert result.rebate_percent == precise

    @pytest.mark.asyncio
    async def test_missing_scheme_raises(
        self, repository: PolarsRuleRepository
    ) -> None:
        """A query without a scheme is malformed."""
        with pytest.raises(RuleLookupError, match="scheme"):
            await repository.find_rules(RuleQuery(drug_id_scheme=""))

    @pytest.mark.asyncio
    async def test_filter_failure_raises_lookup_error(self) -> None:
        """Polars errors surface as RuleLookupError, never as no rules."""
        broken = pl.DataFrame(
            {
                "pharmacy_id": ["any"],
                "drug_id_name": ["ndc11"],
                "drug_id": ["any"],
                "price_type_id": ["not-a-number"],
                "rebate_percent": [2.0],
            }
        )
        repository = PolarsRuleRepository(broken)

        with pytest.raises(RuleLookupError):
            await repository.find_rules(
                RuleQuery(drug_id_scheme="ndc11", price_type_id=1)
            )


class TestConstruction:
    """Tests for building repositories."""

    def test_missing_columns_rejected(self) -> None:
        """A table without rule columns cannot back a repository."""
        with pytest.raises(ValueError, match="missing required columns"):
            PolarsRuleRepository(pl.DataFrame({"pharmacy_id": ["any"]}))

    @pytest.mark.asyncio
    async def test_empty_rules(self) -> None:
        """An empty rule set is valid and matches nothing."""
        repository = PolarsRuleRepository.from_rules([])
        assert await repository.find_rules(RuleQuery(drug_id_scheme="ndc11")) == []

    @pytest.mark.asyncio
    async def test_from_csv_path(self, tmp_path: Path) -> None:
        """CSV rebate tables are normalized on load."""
        csv_path = tmp_path / "rebates.csv"
        csv_path.write_text(
            "pharmacy_id,drug_id,price_type_id,rebate_percent\n"
            "any,any,1,2\n"
            "0100001,0074-4339-02,1,12.5\n"
        )

        repository = PolarsRuleRepository.from_file(csv_path)
        result = await repository.find_rules(
            RuleQuery(drug_id_scheme="ndc11", pharmacy_ids=("0100001",))
        )

        assert len(result) == 1
        assert result[0].drug_id == NDC_HUMIRA
        assert result[0].rebate_percent == Decimal("12.5")

    @pytest.mark.asyncio
    async def test_from_csv_keeps_percent_digits(self, tmp_path: Path) -> None:
        """CSV percentages are parsed as text, not floats."""
        csv_path = tmp_path / "rebates.csv"
        csv_path.write_text(
            "pharmacy_id,drug_id,price_type_id,rebate_percent\n"
            "0100001,any,1,12.34567890123456789\n"
        )

        repository = PolarsRuleRepository.from_file(csv_path)
        (result,) = await repository.find_rules(RuleQuery(drug_id_scheme="ndc11"))

        assert result.rebate_percent == Decimal("12.34567890123456789")

    def test_from_file_object_requires_filename(self) -> None:
        """File-like objects need a filename for type detection."""
        with pytest.raises(ValueError, match="filename must be provided"):
            PolarsRuleRepository.from_file(BytesIO(b"pharmacy_id\n"))

    @pytest.mark.asyncio
    async def test_from_settings(self, tmp_path: Path) -> None:
        """RULES_FILE and the configured wildcard are honored."""
        csv_path = tmp_path / "rebates.csv"
        csv_path.write_text(
            "pharmacy_id,drug_id,price_type_id,rebate_percent\n"
            "*,*,1,2\n"
            "*,00074433902,1,4\n"
        )

        repository = PolarsRuleRepository.from_settings(
            Settings(wildcard="*", rules_file=csv_path)
        )
        result = await repository.find_rules(
            RuleQuery(drug_id_scheme="ndc11", drug_ids=("*",))
        )

        assert [r.rebate_percent for r in result] == [Decimal("2")]

    def test_from_settings_without_file(self) -> None:
        """No RULES_FILE configured is an error."""
        with pytest.raises(ValueError, match="RULES_FILE"):
            PolarsRuleRepository.from_settings(Settings())
