"""File loading utilities for rebate tables."""

import logging
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

import pandas as pd
import polars as pl

logger = logging.getLogger(__name__)

# Identifier columns are always read as strings to preserve leading zeros
ID_COLUMN_NAMES = {
    "pharmacy_id",
    "drug_id",
    "ndc11",
    "NDC",
    "ndc",
    "NCPDP ID",
    "ncpdpid",
    "Pharmacy ID",
    "Drug ID",
}

# Percentages are read as text so no float rounding happens before Decimal
PERCENT_COLUMN_NAMES = {
    "rebate_percent",
    "Rebate %",
    "Rebate Percent",
}

TEXT_COLUMN_NAMES = ID_COLUMN_NAMES | PERCENT_COLUMN_NAMES


def load_excel_to_polars(
    file: BinaryIO | Path | str,
    sheet_name: str | int = 0,
) -> pl.DataFrame:
    """Load Excel file into Polars DataFrame.

    Uses pandas as intermediate step for Excel parsing (openpyxl backend),
    then converts to Polars for filtering.

    Args:
        file: File path, path string, or file-like object.
        sheet_name: Sheet name or index to load. Defaults to first sheet.

    Returns:
        Polars DataFrame with loaded data.

    Raises:
        ValueError: If file cannot be parsed as Excel.
    """
    logger.info(f"Loading Excel file, sheet: {sheet_name}")

    try:
        if isinstance(file, str):
            file = Path(file)

        # First pass: read headers to detect identifier and percent columns
        headers = pd.read_excel(file, sheet_name=sheet_name, engine="openpyxl", nrows=0)
        dtype_overrides: dict[str, type] = {
            col: str for col in headers.columns if col in TEXT_COLUMN_NAMES
        }

        if hasattr(file, "seek"):
            file.seek(0)

        pdf = pd.read_excel(
            file,
            sheet_name=sheet_name,
            engine="openpyxl",
            dtype=dtype_overrides if dtype_overrides else None,
        )
        df = pl.from_pandas(pdf)

        logger.info(f"Loaded {df.height} rows, {df.width} columns")
        return df

    except Exception as e:
        logger.error(f"Failed to load Excel file: {e}")
        raise ValueError(f"Cannot parse Excel file: {e}") from e


def load_csv_to_polars(
    file: BinaryIO | Path | str,
    infer_schema_length: int = 10000,
) -> pl.DataFrame:
    """Load CSV file into Polars DataFrame.

    Args:
        file: File path, path string, or file-like object.
        infer_schema_length: Number of rows to scan for schema inference.

    Returns:
        Polars DataFrame with loaded data.

    Raises:
        ValueError: If file cannot be parsed as CSV.
    """
    logger.info("Loading CSV file")

    try:
        if isinstance(file, (str, Path)):
            content = Path(file).read_bytes()
        else:
            content = file.read()
            if isinstance(content, str):
                content = content.encode("utf-8")

        headers = pl.read_csv(BytesIO(content), n_rows=0)
        schema_overrides = {
            col: pl.String for col in headers.columns if col in TEXT_COLUMN_NAMES
        }

        df = pl.read_csv(
            BytesIO(content),
            infer_schema_length=infer_schema_length,
            schema_overrides=schema_overrides if schema_overrides else None,
        )

        logger.info(f"Loaded {df.height} rows, {df.width} columns")
        return df

    except Exception as e:
        logger.error(f"Failed to load CSV file: {e}")
        raise ValueError(f"Cannot parse CSV file: {e}") from e


def detect_file_type(filename: str) -> str:
    """Detect file type from filename extension.

    Args:
        filename: Name of the file (with extension).

    Returns:
        File type string: "excel" or "csv".

    Raises:
        ValueError: If file type is not supported.
    """
    lower_name = filename.lower()

    if lower_name.endswith((".xlsx", ".xls")):
        return "excel"
    elif lower_name.endswith(".csv"):
        return "csv"
    else:
        raise ValueError(
            f"Unsupported file type: {filename}. Supported types: .xlsx, .xls, .csv"
        )


def load_file_auto(
    file: BinaryIO | Path | str,
    filename: str | None = None,
    sheet_name: str | int = 0,
) -> pl.DataFrame:
    """Auto-detect file type and load appropriately.

    Args:
        file: File path, path string, or file-like object.
        filename: Filename for type detection (required if file is BinaryIO).
        sheet_name: Sheet name for Excel files.

    Returns:
        Polars DataFrame with loaded data.

    Raises:
        ValueError: If file type cannot be determined or file cannot be loaded.
    """
    if filename is None:
        if isinstance(file, Path):
            filename = file.name
        elif isinstance(file, str):
            filename = Path(file).name
        else:
            raise ValueError("filename must be provided for file-like objects")

    if detect_file_type(filename) == "excel":
        return load_excel_to_polars(file, sheet_name=sheet_name)
    return load_csv_to_polars(file)
