"""
CSV parser for user import uploads.

Turns raw delimited text into a header list and header-keyed rows.

Known limitation: fields are split on every comma. Quoted fields that
contain the delimiter are not supported; only one layer of wrapping
double quotes is removed from each field.
"""

from dataclasses import dataclass, field
import re
from typing import Optional, Union
import structlog

from exceptions import CSVParseError, EmptyDocumentError, UnsupportedFileTypeError
from utils.text_utils import strip_wrapping_quotes

logger = structlog.get_logger(__name__)

DELIMITER = ","
CSV_EXTENSION = ".csv"
# Only LF and CRLF end a record; other Unicode line breaks stay in the field
LINE_BREAK = re.compile(r"\r?\n")

# Row keyed by the original header text, before any mapping is applied
CSVRow = dict[str, str]


@dataclass
class TabularDocument:
    """Parsed CSV file: headers in file order plus one dict per data line."""
    headers: list[str] = field(default_factory=list)
    rows: list[CSVRow] = field(default_factory=list)
    filename: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "filename": self.filename,
            "headers": list(self.headers),
            "row_count": self.row_count,
        }


def parse_csv_text(text: str, filename: Optional[str] = None) -> TabularDocument:
    """
    Parse CSV text.

    Lines end at LF or CRLF. Blank lines are discarded. The first
    remaining line is the header.
    A short line yields "" for trailing headers; extra fields on a long
    line are dropped.

    Args:
        text: Raw file content
        filename: Original file name, kept for reporting

    Returns:
        TabularDocument

    Raises:
        EmptyDocumentError: If no non-blank line remains
    """
    lines = [line for line in LINE_BREAK.split(text) if line.strip()]
    if not lines:
        logger.warning("csv_empty", filename=filename)
        raise EmptyDocumentError(filename)

    headers = _split_line(lines[0])
    rows = [_zip_row(headers, _split_line(line)) for line in lines[1:]]

    logger.info(
        "csv_parsed",
        filename=filename,
        header_count=len(headers),
        row_count=len(rows)
    )

    return TabularDocument(headers=headers, rows=rows, filename=filename)


def parse_csv_upload(filename: Optional[str], content: Union[bytes, str]) -> TabularDocument:
    """
    Parse an uploaded CSV file.

    Only the file name is checked, not the content.

    Args:
        filename: Upload file name (must end in .csv)
        content: File bytes (UTF-8, optional BOM) or already-decoded text

    Returns:
        TabularDocument

    Raises:
        UnsupportedFileTypeError: If the name does not end in .csv
        CSVParseError: If the bytes are not valid UTF-8
        EmptyDocumentError: If the file has no non-blank line
    """
    if not is_csv_filename(filename):
        logger.warning("csv_rejected_extension", filename=filename)
        raise UnsupportedFileTypeError(filename)

    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            logger.error("csv_decode_failed", filename=filename, error=str(e))
            raise CSVParseError(
                message="Error processing the CSV file: file is not valid UTF-8 text",
                details={"filename": filename, "original_error": str(e)}
            )
    else:
        text = content

    return parse_csv_text(text, filename=filename)


def is_csv_filename(filename: Optional[str]) -> bool:
    """True if the file name ends in .csv (case-insensitive)."""
    return bool(filename) and filename.lower().endswith(CSV_EXTENSION)


# ===================
# HELPER FUNCTIONS
# ===================

def _split_line(line: str) -> list[str]:
    """Split on the delimiter, trimming and unquoting each field."""
    return [strip_wrapping_quotes(value) for value in line.split(DELIMITER)]


def _zip_row(headers: list[str], values: list[str]) -> CSVRow:
    """Pair values with headers by position."""
    row: CSVRow = {}
    for index, header in enumerate(headers):
        row[header] = values[index] if index < len(values) else ""
    return row
