"""Shared pytest fixtures for Rebate Engine tests."""

import os
from collections.abc import Callable, Generator
from unittest.mock import patch

import polars as pl
import pytest

from rebate_engine.config import Settings
from rebate_engine.models import PriceQuote, RebateRule
from tests.helpers import (
    NDC_HUMIRA,
    NDC_LIPITOR,
    RecordingRuleRepository,
    quote,
)


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Set up mock environment variables for testing.

    Yields:
        Dictionary of mock environment variables.
    """
    env_vars = {
        "LOG_LEVEL": "DEBUG",
        "REBATE_WILDCARD": "*",
        "DRUG_ID_SCHEME": "ndc11",
        "RULES_FILE": "/tmp/test_data/rebates.csv",
        "LOOKUP_TIMEOUT_SECONDS": "2.5",
    }
    with patch.dict(os.environ, env_vars, clear=False):
        yield env_vars


@pytest.fixture
def test_settings() -> Settings:
    """Default settings with a short lookup timeout."""
    return Settings(lookup_timeout_seconds=1.0)


@pytest.fixture
def make_repository() -> Callable[[list[RebateRule]], RecordingRuleRepository]:
    """Factory for recording repositories over a list of rules."""
    return RecordingRuleRepository


@pytest.fixture
def sample_quotes() -> list[PriceQuote]:
    """Two drugs, two price types for the first one.

    Returns:
        Unadjusted quotes as a price source would return them.
    """
    return [
        quote(NDC_HUMIRA, price_type_id=1, unit_price="10.00", package_size="3"),
        quote(NDC_HUMIRA, price_type_id=2, unit_price="12.00", package_size="3"),
        quote(NDC_LIPITOR, price_type_id=1, unit_price="2.50", package_size="30"),
    ]


@pytest.fixture
def sample_rebate_df() -> pl.DataFrame:
    """Raw rebate export with human-readable headers.

    Returns:
        Polars DataFrame as read from a rebate spreadsheet.
    """
    return pl.DataFrame(
        {
            "Pharmacy ID": ["any", "1000001", "1000001", "2000002"],
            "Drug ID": ["any", "any", "0074-4339-02", "74433902"],
            "Price Type ID": [1, 1, 2, 1],
            "Rebate %": [2.0, 5.0, 20.0, 15.5],
        }
    )
