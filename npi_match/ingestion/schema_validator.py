"""
Input schema validation for NPI Match.

Checks that a provider spreadsheet has rows and carries the name and zip
columns the matcher needs. Fails fast, before any registry call is made.
"""

import logging
from typing import Any, Dict, List
import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["First Name", "Last Name", "Zip"]


class InputValidationError(ValueError):
    """Raised when provider input cannot be processed at all."""

    def __init__(self, message: str, missing_columns: List[str] = None):
        super().__init__(message)
        self.missing_columns = missing_columns or []


class InputSchemaValidator:
    """
    Validates provider input against the required column contract.

    Security note: log column names and counts only, never row values.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize validator with configuration.

        Args:
            config: Input configuration section
        """
        self.config = config
        self.required_columns = config.get("required_columns", REQUIRED_COLUMNS)

    def find_missing_columns(self, df: pd.DataFrame) -> List[str]:
        """Return required columns absent from the DataFrame, in config order."""
        return [column for column in self.required_columns if column not in df.columns]

    def get_validation_summary(self, df: pd.DataFrame) -> Dict[str, Any]:
        """
        Summarize how the DataFrame measures up to the schema.

        Args:
            df: Provider DataFrame

        Returns:
            Dictionary with validation summary
        """
        missing_columns = self.find_missing_columns(df)
        present = [column for column in self.required_columns if column in df.columns]

        # Rows with no usable name at all still get processed, but are worth flagging
        blank_names = 0
        if not missing_columns and len(df) > 0:
            first = df[self.config.get("first_name_column", "First Name")].fillna("").astype(str).str.strip()
            last = df[self.config.get("last_name_column", "Last Name")].fillna("").astype(str).str.strip()
            blank_names = int(((first == "") & (last == "")).sum())

        return {
            "success": len(df) > 0 and not missing_columns,
            "total_rows": len(df),
            "required_columns": list(self.required_columns),
            "present_columns": present,
            "missing_columns": missing_columns,
            "rows_with_blank_names": blank_names
        }

    def validate(self, df: pd.DataFrame) -> Dict[str, Any]:
        """
        Validate DataFrame, raising on failure.

        Args:
            df: Provider DataFrame

        Returns:
            Validation summary

        Raises:
            InputValidationError: If the input is empty or lacks required columns
        """
        summary = self.get_validation_summary(df)

        if summary["total_rows"] == 0:
            logger.error("Input file is empty")
            raise InputValidationError("Input file is empty")

        if summary["missing_columns"]:
            missing = ", ".join(summary["missing_columns"])
            logger.error(f"Missing required columns: {missing}")
            raise InputValidationError(
                f"Missing required columns: {missing}. "
                f"Input must contain columns: {', '.join(self.required_columns)}",
                missing_columns=summary["missing_columns"]
            )

        if summary["rows_with_blank_names"]:
            logger.warning(f"{summary['rows_with_blank_names']} rows have neither first nor last name")

        logger.info(f"Input contains all required columns: {', '.join(self.required_columns)}")
        return summary


def validate_input_data(df: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convenience function to validate provider input.

    Args:
        df: Provider DataFrame to validate
        config: Input configuration

    Returns:
        Validation summary
    """
    validator = InputSchemaValidator(config)
    return validator.validate(df)
