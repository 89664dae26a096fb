"""
File parsers module.
"""

from parsers.csv_parser import (
    parse_csv_text,
    parse_csv_upload,
    is_csv_filename,
    TabularDocument,
    CSVRow,
)

__all__ = [
    "parse_csv_text",
    "parse_csv_upload",
    "is_csv_filename",
    "TabularDocument",
    "CSVRow",
]
