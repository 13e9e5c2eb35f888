"""Spreadsheet to JSON row conversion."""

import base64
import binascii
import io
import json
import logging
import posixpath
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence

from openpyxl import load_workbook

from repodrop.core.exceptions import ConversionEmptyWorkbook, ConversionInvalidFormat

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_BASE = "converted_data"
ZIP_MAGIC = b"PK\x03\x04"


class ConversionResult(NamedTuple):
    """Rows of the first worksheet plus where they should be written."""
    rows: List[Dict[str, Any]]
    output_name: str
    source_sheet_name: str

    def to_json_bytes(self) -> bytes:
        return json.dumps(self.rows, indent=2, ensure_ascii=False, default=str).encode("utf-8")


def output_name_for(file_name: Optional[str]) -> str:
    """Strip the last extension from ``file_name`` and append ``.json``."""
    if not file_name:
        return f"{DEFAULT_OUTPUT_BASE}.json"
    directory, name = posixpath.split(file_name)
    stem, _ = posixpath.splitext(name)
    return posixpath.join(directory, f"{stem or name}.json")


def decode_payload(body: bytes) -> bytes:
    """Accept raw workbook bytes or their base64 encoding."""
    if body.startswith(ZIP_MAGIC):
        return body
    try:
        return base64.b64decode(body.strip(), validate=True)
    except (binascii.Error, ValueError):
        return body


def _cell_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _header_keys(header_row: Sequence[Any]) -> List[str]:
    keys: List[str] = []
    seen: Dict[str, int] = {}
    for cell in header_row:
        base = "__EMPTY" if cell is None or str(cell).strip() == "" else str(cell)
        count = seen.get(base, 0)
        seen[base] = count + 1
        keys.append(base if count == 0 else f"{base}_{count}")
    return keys


def _is_blank(row: Sequence[Any]) -> bool:
    return all(cell is None or (isinstance(cell, str) and cell == "") for cell in row)


def rows_to_records(rows: Iterable[Sequence[Any]]) -> List[Dict[str, Any]]:
    """Build row objects keyed by the first non-blank row.

    Empty cells are left out of each object and blank rows are skipped.
    """
    records: List[Dict[str, Any]] = []
    header: Optional[List[Any]] = None
    keys: List[str] = []

    for row in rows:
        if _is_blank(row):
            continue
        if header is None:
            header = list(row)
            keys = _header_keys(header)
            continue

        if len(row) > len(header):
            header.extend([None] * (len(row) - len(header)))
            keys = _header_keys(header)

        record: Dict[str, Any] = {}
        for index, cell in enumerate(row):
            if cell is None or cell == "":
                continue
            record[keys[index]] = _cell_value(cell)
        records.append(record)

    return records


def convert_spreadsheet(content: bytes, file_name: Optional[str] = None) -> ConversionResult:
    """Convert the first worksheet of an XLSX workbook into JSON row objects.

    Only the first worksheet is read; any further sheets are ignored.

    Args:
        content: Raw workbook bytes
        file_name: Requested output name; its extension is replaced by ``.json``

    Returns:
        ConversionResult with rows, output name and the sheet that was read

    Raises:
        ConversionInvalidFormat: If the content is not a readable workbook
        ConversionEmptyWorkbook: If the workbook has no worksheets
    """
    if not content:
        raise ConversionInvalidFormat("No file data provided.")

    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        logger.warning(
            "Failed to open workbook",
            extra={"file_name": file_name, "size_bytes": len(content), "error": str(e)},
        )
        raise ConversionInvalidFormat(f"Invalid or corrupted XLSX file data: {e}") from e

    try:
        if not workbook.sheetnames:
            raise ConversionEmptyWorkbook("XLSX file contains no sheets.")

        sheet_count = len(workbook.sheetnames)
        sheet_name = workbook.sheetnames[0]
        try:
            records = rows_to_records(workbook[sheet_name].iter_rows(values_only=True))
        except Exception as e:
            raise ConversionInvalidFormat(f"Failed to read worksheet {sheet_name}: {e}") from e
    finally:
        workbook.close()

    result = ConversionResult(
        rows=records,
        output_name=output_name_for(file_name),
        source_sheet_name=sheet_name,
    )
    logger.info(
        "Spreadsheet converted",
        extra={
            "file_name": file_name,
            "output_name": result.output_name,
            "sheet_name": sheet_name,
            "sheet_count": sheet_count,
            "row_count": len(records),
        },
    )
    return result
