"""Rebate table ingestion.

This module handles:
- Loading raw rebate files (CSV, Excel)
- Normalizing columns and NDCs
- Validating schema and data quality
"""

from rebate_engine.ingest.loaders import (
    detect_file_type,
    load_csv_to_polars,
    load_excel_to_polars,
    load_file_auto,
)
from rebate_engine.ingest.normalizers import (
    REBATE_SCHEMA,
    apply_column_mapping,
    normalize_ndc,
    normalize_rebate_table,
)
from rebate_engine.ingest.validators import (
    ValidationResult,
    validate_rebate_schema,
    validate_rebate_values,
)

__all__ = [
    # Loaders
    "load_excel_to_polars",
    "load_csv_to_polars",
    "load_file_auto",
    "detect_file_type",
    # Normalizers
    "REBATE_SCHEMA",
    "apply_column_mapping",
    "normalize_ndc",
    "normalize_rebate_table",
    # Validators
    "ValidationResult",
    "validate_rebate_schema",
    "validate_rebate_values",
]
