"""Rebate rule repositories."""

from rebate_engine.repository.base import RuleQuery, RuleRepository
from rebate_engine.repository.polars_repository import PolarsRuleRepository

__all__ = ["RuleQuery", "RuleRepository", "PolarsRuleRepository"]
