"""
CSV import/export for assets.

Import maps a header row onto asset fields (case-insensitive, camelCase or
snake_case) and hands each data row on as a dict for schema validation.
Export writes one row per asset in a fixed column order.
"""

import csv
import io
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List

from pydantic import ValidationError as PydanticValidationError

from ..schemas.asset import ImportRowError
from ..utils.errors import ValidationError
from .status_calculator import effective_status

HEADER_ALIASES = {
    "serialnumber": "serial_number",
    "serial_number": "serial_number",
    "assetclass": "asset_class",
    "asset_class": "asset_class",
    "assigneduserid": "assigned_user_id",
    "assigned_user_id": "assigned_user_id",
    "issuedate": "issue_date",
    "issue_date": "issue_date",
    "lastcertificationdate": "last_certification_date",
    "last_certification_date": "last_certification_date",
    "glovesize": "glove_size",
    "glove_size": "glove_size",
    "glovecolor": "glove_color",
    "glove_color": "glove_color",
}

REQUIRED_COLUMNS = {
    "serial_number": "serialNumber",
    "asset_class": "assetClass",
    "last_certification_date": "lastCertificationDate",
}

EXPORT_COLUMNS = [
    "id",
    "serialNumber",
    "assetClass",
    "gloveSize",
    "gloveColor",
    "issueDate",
    "lastCertificationDate",
    "nextCertificationDate",
    "status",
    "assignedUserId",
]


@dataclass
class CsvRow:
    number: int
    values: Dict[str, str]


@dataclass
class ParsedImport:
    rows: List[CsvRow] = field(default_factory=list)
    errors: List[ImportRowError] = field(default_factory=list)


def _read_rows(reader):
    try:
        yield from reader
    except csv.Error as e:
        raise ValidationError(f"Malformed CSV at line {reader.line_num}: {e}")


def parse_asset_csv(text: str) -> ParsedImport:
    """
    Split CSV text into asset field dicts.

    Raises ValidationError listing every missing required column before any
    row is looked at, and for text the csv module cannot tokenize (such as an
    oversized field). Rows whose column count differs from the header are
    reported, not silently dropped.
    """
    text = text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text))

    header = None
    for cells in _read_rows(reader):
        if any(cell.strip() for cell in cells):
            header = [cell.strip().lower() for cell in cells]
            break
    if header is None:
        raise ValidationError("CSV file must contain a header row and at least one data row")

    columns = [HEADER_ALIASES.get(name) for name in header]
    missing = [label for name, label in REQUIRED_COLUMNS.items() if name not in columns]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")

    parsed = ParsedImport()
    for cells in _read_rows(reader):
        if not any(cell.strip() for cell in cells):
            continue
        if len(cells) != len(header):
            parsed.errors.append(ImportRowError(
                row=reader.line_num,
                message=f"Expected {len(header)} columns, found {len(cells)}"
            ))
            continue
        values = {
            column: cell.strip()
            for column, cell in zip(columns, cells)
            if column is not None
        }
        parsed.rows.append(CsvRow(number=reader.line_num, values=values))

    if not parsed.rows and not parsed.errors:
        raise ValidationError("CSV file must contain a header row and at least one data row")
    return parsed


def describe_validation_error(error: PydanticValidationError) -> str:
    """One-line summary of a schema validation failure"""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def export_assets_csv(assets: Iterable, today: date) -> str:
    """Serialize assets with proper quoting; status is evaluated as of ``today``"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for asset in assets:
        writer.writerow([
            str(asset.id),
            asset.serial_number,
            asset.asset_class,
            asset.glove_size or "",
            asset.glove_color or "",
            asset.issue_date.isoformat(),
            asset.last_certification_date.isoformat(),
            asset.next_certification_date.isoformat(),
            effective_status(asset.status, asset.next_certification_date, today).value,
            asset.assigned_user_id or "",
        ])
    return buffer.getvalue()
