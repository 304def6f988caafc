"""
Provider input loading for NPI Match.

Reads the provider spreadsheet into a DataFrame and converts its rows
into immutable input records for the matcher.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List
import pandas as pd

from ..models import InputRecord

logger = logging.getLogger(__name__)


def load_input(input_path: str) -> pd.DataFrame:
    """
    Load provider records from a delimited text file.

    Every column is read as text with no NA conversion, so zip codes keep
    their leading zeros and blank cells stay blank.

    Args:
        input_path: Path to a .csv or .tsv file

    Returns:
        DataFrame with one row per provider
    """
    suffix = Path(input_path).suffix.lower()

    if suffix == ".csv":
        sep = ","
    elif suffix == ".tsv":
        sep = "\t"
    else:
        raise ValueError(f"Unsupported file format: {input_path}")

    try:
        df = pd.read_csv(input_path, sep=sep, dtype=str, keep_default_na=False,
                         skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        logger.warning(f"No data found in {input_path}")
        return pd.DataFrame()

    logger.info(f"Loaded {len(df)} provider records from {input_path}")
    return df


def clean_cell(value: Any) -> str:
    """Convert a spreadsheet cell to a stripped string; blanks become ''."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def to_input_records(df: pd.DataFrame, config: Dict[str, Any]) -> List[InputRecord]:
    """
    Convert DataFrame rows to input records.

    Args:
        df: Validated provider DataFrame
        config: Input configuration section

    Returns:
        List of input records, in row order
    """
    first_name_column = config.get("first_name_column", "First Name")
    last_name_column = config.get("last_name_column", "Last Name")
    zip_column = config.get("zip_column", "Zip")
    core_columns = {first_name_column, last_name_column, zip_column}

    records = []
    for position, row in enumerate(df.to_dict(orient="records")):
        records.append(InputRecord(
            index=position,
            first_name=clean_cell(row.get(first_name_column)),
            last_name=clean_cell(row.get(last_name_column)),
            zip_code=clean_cell(row.get(zip_column)),
            extra={k: v for k, v in row.items() if k not in core_columns}
        ))

    return records
