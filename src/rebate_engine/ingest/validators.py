"""Schema and data-quality validation for rebate tables."""

import logging
from dataclasses import dataclass, field

import polars as pl

logger = logging.getLogger(__name__)

REBATE_REQUIRED_COLUMNS = {
    "pharmacy_id",
    "drug_id_name",
    "drug_id",
    "price_type_id",
    "rebate_percent",
}
REBATE_KEY_COLUMNS = ["pharmacy_id", "drug_id_name", "drug_id", "price_type_id"]


@dataclass
class ValidationResult:
    """Result of a schema validation check.

    Attributes:
        is_valid: Whether the validation passed.
        message: Human-readable description of the result.
        missing_columns: List of required columns that are missing.
        row_count: Number of rows in the validated DataFrame.
        warnings: List of non-fatal issues detected.
    """

    is_valid: bool
    message: str
    missing_columns: list[str] = field(default_factory=list)
    row_count: int = 0
    warnings: list[str] = field(default_factory=list)


def validate_rebate_schema(df: pl.DataFrame) -> ValidationResult:
    """Validate that a rebate table carries every rule column.

    Args:
        df: Normalized rebate DataFrame.

    Returns:
        ValidationResult with status and details.
    """
    missing = REBATE_REQUIRED_COLUMNS - set(df.columns)

    if missing:
        return ValidationResult(
            is_valid=False,
            message=f"Rebate table missing required columns: {sorted(missing)}",
            missing_columns=sorted(missing),
            row_count=df.height,
        )

    return ValidationResult(
        is_valid=True,
        message=f"Rebate table schema valid with {df.height} rows",
        row_count=df.height,
    )


def validate_rebate_values(df: pl.DataFrame) -> ValidationResult:
    """Check rebate rows for values that would produce nonsense prices.

    Flags null keys, percentages outside 0-100 and rows sharing a scope.
    None of these block loading.

    Args:
        df: Normalized rebate DataFrame.

    Returns:
        ValidationResult, invalid only if the schema itself is incomplete.
    """
    schema_result = validate_rebate_schema(df)
    if not schema_result.is_valid:
        return schema_result

    warnings: list[str] = []

    null_keys = df.filter(pl.any_horizontal(pl.col(REBATE_KEY_COLUMNS).is_null()))
    if null_keys.height > 0:
        warnings.append(f"{null_keys.height} rows have empty scope columns")

    percent = pl.col("rebate_percent").cast(pl.Float64, strict=False)
    out_of_range = df.filter((percent < 0) | (percent > 100))
    if out_of_range.height > 0:
        warnings.append(
            f"{out_of_range.height} rows have rebate_percent outside 0-100"
        )

    duplicated = df.filter(pl.struct(REBATE_KEY_COLUMNS).is_duplicated())
    if duplicated.height > 0:
        warnings.append(f"{duplicated.height} rows share a scope with another row")

    for warning in warnings:
        logger.warning(warning)

    return ValidationResult(
        is_valid=True,
        message=(
            "Rebate values valid"
            if not warnings
            else f"Rebate values loaded with {len(warnings)} warnings"
        ),
        row_count=df.height,
        warnings=warnings,
    )
