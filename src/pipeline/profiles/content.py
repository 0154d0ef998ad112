"""Default per-area content builder.

Turns the merged dataset into the content mapping for one council area:
one field per sheet column holding the area's value, and one comparison
table per sheet setting the area next to the national figures. Field
names are ``<sheet>__<column>`` slugs so the renderer can group them by
sheet. The ``area`` field always names the council area.

The builder runs inside worker contexts and only reads the dataset it is
given.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from src.config import AREA_COLUMN, EXPECTED_SHEETS, MISSING_VALUE_TEXT, NATIONAL_AREA_NAME

FIELD_SEPARATOR = "__"
TABLE_FIELD = "table"


def slugify(text: str) -> str:
    """Lower-case ``text`` and collapse non-alphanumeric runs to ``_``.

    Examples
    --------
    >>> slugify("Median Age (years)")
    'median_age_years'
    """
    return re.sub(r"[^0-9a-z]+", "_", str(text).lower()).strip("_")


def field_name(sheet: str, column: str) -> str:
    """Content field name for ``column`` of ``sheet``.

    Examples
    --------
    >>> field_name("Population", "Total Population")
    'population__total_population'
    """
    return f"{slugify(sheet)}{FIELD_SEPARATOR}{slugify(column)}"


def area_rows(table: pd.DataFrame, area: str, area_column: str = AREA_COLUMN) -> pd.DataFrame:
    """Rows of ``table`` belonging to ``area``."""
    return table.loc[table[area_column].astype(str).str.strip() == area]


def first_value(rows: pd.DataFrame, column: str) -> Any:
    """First non-null value of ``column`` in ``rows``, or the missing text.

    Integral floats are returned as ``int`` so ``12.0`` renders as ``12``.
    """
    if column not in rows.columns:
        return MISSING_VALUE_TEXT
    values = rows[column].dropna()
    if values.empty:
        return MISSING_VALUE_TEXT
    value = values.iloc[0]
    if isinstance(value, str):
        return value.strip() or MISSING_VALUE_TEXT
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def comparison_table(
    table: pd.DataFrame, area: str, area_column: str = AREA_COLUMN
) -> pd.DataFrame:
    """Side-by-side values for ``area`` and the national row of one sheet."""
    columns = [c for c in table.columns if c != area_column]
    local = area_rows(table, area, area_column)
    national = area_rows(table, NATIONAL_AREA_NAME, area_column)
    return pd.DataFrame(
        {
            "Measure": columns,
            area: [first_value(local, c) for c in columns],
            NATIONAL_AREA_NAME: [first_value(national, c) for c in columns],
        }
    )


def profile_sheets(
    dataset: Mapping[str, Any], sheets: Sequence[str] = EXPECTED_SHEETS
) -> list[tuple[str, pd.DataFrame]]:
    """Sheets of ``dataset`` that feed a profile, in ``sheets`` order.

    Only tables carrying the area column are used; an absent sheet is
    skipped here and reported by the schema check instead.
    """
    found = []
    for sheet in sheets:
        table = dataset.get(sheet)
        if isinstance(table, pd.DataFrame) and AREA_COLUMN in table.columns:
            found.append((sheet, table))
    return found


def expected_content_fields(
    dataset: Mapping[str, Any], sheets: Sequence[str] = EXPECTED_SHEETS
) -> frozenset[str]:
    """Field names every area's content must hold for this dataset.

    Examples
    --------
    >>> ds = {"Health": pd.DataFrame({"Council Area": ["Fife"], "Beds": [3]})}
    >>> sorted(expected_content_fields(ds))
    ['area', 'health__beds', 'health__table']
    """
    fields = {"area"}
    for sheet, table in profile_sheets(dataset, sheets):
        fields.update(field_name(sheet, c) for c in table.columns if c != AREA_COLUMN)
        fields.add(field_name(sheet, TABLE_FIELD))
    return frozenset(fields)


def produce_area_content(area: str, dataset: Mapping[str, Any]) -> dict[str, Any]:
    """Build the content mapping for one council area.

    Parameters
    ----------
    area : str
        Council area name.
    dataset : Mapping[str, Any]
        Merged dataset; only the expected sheets that carry the area
        column are used.

    Returns
    -------
    dict[str, Any]
        ``area`` plus one value per sheet column and one comparison table
        per sheet.
    """
    content: dict[str, Any] = {"area": area}
    for sheet, table in profile_sheets(dataset):
        rows = area_rows(table, area)
        for column in table.columns:
            if column == AREA_COLUMN:
                continue
            content[field_name(sheet, column)] = first_value(rows, column)
        content[field_name(sheet, TABLE_FIELD)] = comparison_table(table, area)
    return content
