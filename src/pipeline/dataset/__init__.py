"""Dataset ingestion and patching for the council area profile pipeline.

Exposes the spreadsheet loader and the ``updates`` merge used before the
dataset is broadcast to the worker pool.
"""

from .loader import load_council_area_data, read_workbook
from .merger import merge, merge_updates

__all__ = ["load_council_area_data", "merge", "merge_updates", "read_workbook"]
