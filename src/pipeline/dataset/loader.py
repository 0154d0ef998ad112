"""Spreadsheet loader for the council area profiles dataset.

Reads every sheet of the profiles workbook into a pandas DataFrame and
arranges them into the dataset mapping consumed by the validator and the
merger. Sheets whose name starts with ``UPDATES_SHEET_PREFIX`` are not
top-level entries; they are gathered under the reserved ``updates`` key
with the prefix removed, so ``updates_Population`` patches ``Population``.

This module only performs ingestion. Shape checks are the validator's
job and happen on the mapping returned here.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from src.config import UPDATES_KEY, UPDATES_SHEET_PREFIX
from src.exceptions import DataValidationError

logger = logging.getLogger(__name__)


def read_workbook(xlsx_path: Path) -> dict[str, pd.DataFrame]:
    """Read all sheets of an Excel workbook.

    Column headers are stripped of surrounding whitespace; the cell values
    are left untouched.

    Parameters
    ----------
    xlsx_path : Path
        Path to the ``.xlsx`` workbook.

    Returns
    -------
    dict[str, pd.DataFrame]
        Sheet name to DataFrame, in workbook order.

    Raises
    ------
    DataValidationError
        If the file is missing or pandas cannot parse it.
    """
    if not xlsx_path.exists():
        raise DataValidationError(
            f"Dataset file not found: {xlsx_path}", context={"path": str(xlsx_path)}
        )
    try:
        sheets = pd.read_excel(xlsx_path, sheet_name=None)
    except Exception as exc:
        raise DataValidationError(
            f"Could not read dataset workbook {xlsx_path}: {exc}",
            context={"path": str(xlsx_path)},
        ) from exc
    for frame in sheets.values():
        frame.columns = [str(column).strip() for column in frame.columns]
    return dict(sheets)


def split_updates(sheets: dict[str, Any]) -> dict[str, Any]:
    """Arrange sheets into a dataset with the reserved ``updates`` sublist.

    Parameters
    ----------
    sheets : dict[str, Any]
        Sheet name to table mapping as produced by :func:`read_workbook`.

    Returns
    -------
    dict[str, Any]
        Dataset mapping. ``updates`` is always present, possibly empty.

    Examples
    --------
    >>> ds = split_updates({"Health": 1, "updates_Health": 2})
    >>> ds["Health"], ds["updates"]
    (1, {'Health': 2})
    """
    dataset: dict[str, Any] = {}
    updates: dict[str, Any] = {}
    for name, table in sheets.items():
        if name.startswith(UPDATES_SHEET_PREFIX):
            updates[name[len(UPDATES_SHEET_PREFIX) :]] = table
        else:
            dataset[name] = table
    dataset[UPDATES_KEY] = updates
    return dataset


def load_council_area_data(xlsx_path: Path) -> dict[str, Any]:
    """Load the council area profiles workbook into a dataset mapping."""
    dataset = split_updates(read_workbook(Path(xlsx_path)))
    logger.info(
        "Loaded %d sheets (%d update sheets) from %s",
        len(dataset) - 1,
        len(dataset[UPDATES_KEY]),
        xlsx_path,
    )
    return dataset
