"""
Reads catalog ids for ingestion from a CSV export.

The file must have an `appid` column (header matched case-insensitively);
blank or non-numeric rows are skipped. Only a missing column fails the
whole import.
"""

import logging
from typing import List

import pandas as pd

from app.core.exceptions import ValidationError
from app.utils.app_ids import parse_app_id, unique_app_ids

logger = logging.getLogger(__name__)


def read_app_ids_from_csv(path) -> List[int]:
    logger.info("[CSV] Reading app ids from %s", path)
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError as e:
        raise ValidationError(f"CSV file {path} is empty") from e
    except pd.errors.ParserError as e:
        raise ValidationError(f"Failed to parse CSV {path}: {e}") from e

    columns = {str(col).strip().lower(): col for col in df.columns}
    if "appid" not in columns:
        raise ValidationError("CSV must contain an 'appid' column.")

    raw = df[columns["appid"]].tolist()
    app_ids = unique_app_ids(raw)
    skipped = sum(1 for value in raw if parse_app_id(value) is None)
    if skipped:
        logger.warning("[CSV] Skipped %d blank or invalid rows", skipped)
    logger.info("[CSV] Read %d app ids", len(app_ids))
    return app_ids
