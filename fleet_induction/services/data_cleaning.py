# fleet_induction/services/data_cleaning.py
import pandas as pd
import numpy as np
from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ("mileage_total", "since_A", "since_B", "p_fail", "pos", "days_since_clean", "branding_hours")


class DataCleaningService:
    """Train row cleaning using Pandas + NumPy"""

    def __init__(self):
        self.cleaning_rules = {
            "remove_duplicates": True,
            "validate_data_types": True,
            "clip_probabilities": True,
        }

    def clean_train_rows(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Deduplicate canonical train rows and coerce numeric columns.

        Values that cannot be coerced become None so that field defaults apply
        downstream.
        """
        if not rows:
            return rows

        df = pd.DataFrame(rows)

        if self.cleaning_rules["remove_duplicates"] and "id" in df.columns:
            before = len(df)
            df = df.drop_duplicates(subset=["id"], keep="first")
            if before != len(df):
                logger.info(f"Removed {before - len(df)} duplicate train rows")

        if self.cleaning_rules["validate_data_types"]:
            df = self._validate_data_types(df)

        if self.cleaning_rules["clip_probabilities"] and "p_fail" in df.columns:
            df["p_fail"] = np.where(df["p_fail"] > 1.0, df["p_fail"] / 100.0, df["p_fail"])

        # NaN -> None for downstream defaults
        df = df.astype(object).where(pd.notna(df), None)
        cleaned = df.to_dict("records")
        logger.info(f"Data cleaning completed: {len(cleaned)} train rows")
        return cleaned

    def _validate_data_types(self, df: pd.DataFrame) -> pd.DataFrame:
        for column in NUMERIC_FIELDS:
            if column in df.columns:
                df[column] = pd.to_numeric(df[column], errors="coerce")
        return df
