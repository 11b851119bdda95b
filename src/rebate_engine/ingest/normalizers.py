"""Normalization of raw rebate tables into the rule schema.

This module handles:
- NDC normalization to 11-digit format (preserving leading zeros)
- Column mapping/renaming for different rebate exports
- Type coercion into the schema the rule repository filters on
"""

import logging
import re

import polars as pl

from rebate_engine.config import DEFAULT_DRUG_ID_SCHEME, WILDCARD

logger = logging.getLogger(__name__)

# Column order and dtypes of a normalized rebate table.
# Percentages stay as decimal text so they convert to Decimal exactly
REBATE_SCHEMA: dict[str, type[pl.DataType]] = {
    "pharmacy_id": pl.String,
    "drug_id_name": pl.String,
    "drug_id": pl.String,
    "price_type_id": pl.Int64,
    "rebate_percent": pl.String,
}

# Maps column names seen in rebate exports to standardized names
REBATE_COLUMN_MAP = {
    "Pharmacy ID": "pharmacy_id",
    "NCPDP ID": "pharmacy_id",
    "ncpdpid": "pharmacy_id",
    "Drug ID Name": "drug_id_name",
    "Drug ID Scheme": "drug_id_name",
    "Drug ID": "drug_id",
    "NDC": "drug_id",
    "Price Type ID": "price_type_id",
    "Price Type": "price_type_id",
    "Rebate %": "rebate_percent",
    "Rebate Percent": "rebate_percent",
}


def normalize_ndc(ndc: str) -> str:
    """Normalize NDC to 11-digit format, preserving leading zeros.

    Handles various NDC formats:
    - 11-digit with dashes: 12345-6789-01 -> 12345678901
    - 10-digit: 1234567890 -> 01234567890 (padded)

    Args:
        ndc: Raw NDC string.

    Returns:
        11-digit normalized NDC string with leading zeros preserved.
    """
    if ndc is None:
        return ""

    cleaned = re.sub(r"[^0-9]", "", str(ndc))
    return cleaned.zfill(11)[-11:]


def apply_column_mapping(
    df: pl.DataFrame,
    column_map: dict[str, str],
) -> pl.DataFrame:
    """Rename columns according to a mapping.

    Only renames columns that exist in the DataFrame and whose target
    name is not already taken.

    Args:
        df: DataFrame to rename columns in.
        column_map: Mapping of old names to new names.

    Returns:
        DataFrame with renamed columns.
    """
    renames: dict[str, str] = {}
    for old_name, new_name in column_map.items():
        if old_name not in df.columns:
            continue
        if new_name in df.columns or new_name in renames.values():
            logger.debug(f"Skipping '{old_name}': '{new_name}' already present")
            continue
        renames[old_name] = new_name
        logger.debug(f"Mapping column: '{old_name}' -> '{new_name}'")

    if renames:
        df = df.rename(renames)
        logger.info(f"Renamed {len(renames)} columns")

    return df


def normalize_rebate_table(
    df: pl.DataFrame,
    wildcard: str = WILDCARD,
    default_scheme: str = DEFAULT_DRUG_ID_SCHEME,
) -> pl.DataFrame:
    """Normalize a raw rebate table to the rule schema.

    Rows without a scheme column are assumed to use ``default_scheme``.
    NDC drug ids are padded to 11 digits; wildcard ids are left alone.

    Args:
        df: Raw rebate DataFrame.
        wildcard: Scope value meaning "any".
        default_scheme: Scheme to assume when the table has none.

    Returns:
        DataFrame with exactly the REBATE_SCHEMA columns.

    Raises:
        ValueError: If required columns are missing or values cannot be cast.
    """
    logger.info(f"Normalizing rebate table with {df.height} rows")

    df = apply_column_mapping(df, REBATE_COLUMN_MAP)

    if "drug_id_name" not in df.columns:
        logger.info(f"No scheme column, assuming '{default_scheme}'")
        df = df.with_columns(pl.lit(default_scheme).alias("drug_id_name"))

    missing = [col for col in REBATE_SCHEMA if col not in df.columns]
    if missing:
        raise ValueError(f"Rebate table missing required columns: {missing}")

    try:
        df = df.with_columns(
            pl.col("pharmacy_id").cast(pl.String).str.strip_chars(),
            pl.col("drug_id_name")
            .cast(pl.String)
            .str.strip_chars()
            .str.to_lowercase(),
            pl.col("drug_id").cast(pl.String).str.strip_chars(),
            pl.col("price_type_id").cast(pl.Int64),
            pl.col("rebate_percent").cast(pl.String).str.strip_chars(),
        )
    except pl.exceptions.PolarsError as e:
        logger.error(f"Failed to cast rebate table: {e}")
        raise ValueError(f"Cannot normalize rebate table: {e}") from e

    non_numeric = df.filter(
        pl.col("rebate_percent").is_not_null()
        & pl.col("rebate_percent").cast(pl.Float64, strict=False).is_null()
    )
    if non_numeric.height > 0:
        bad = non_numeric["rebate_percent"].head(5).to_list()
        logger.error(f"Non-numeric rebate percentages: {bad}")
        raise ValueError(
            f"Cannot normalize rebate table: non-numeric rebate_percent {bad}"
        )

    is_ndc = (pl.col("drug_id_name") == DEFAULT_DRUG_ID_SCHEME) & (
        pl.col("drug_id") != wildcard
    )
    df = df.with_columns(
        pl.when(is_ndc)
        .then(pl.col("drug_id").map_elements(normalize_ndc, return_dtype=pl.String))
        .otherwise(pl.col("drug_id"))
        .alias("drug_id")
    )

    return df.select(list(REBATE_SCHEMA))
