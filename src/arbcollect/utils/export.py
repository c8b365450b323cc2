"""
Order book CSV export helpers.

Validation of the `from`/`to` query window and CSV rendering of stored
order book rows.
"""

import re
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, Final

import orjson

from arbcollect.config.constants import CSV_HEADERS, MAX_EXPORT_RANGE_MS


ISO_DATE_RE: Final = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{3})?(Z|[+-]\d{2}:\d{2})?$"
)


def _parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def is_valid_iso_date(value: str | None) -> bool:
    """
    Check for an ISO 8601 date-time with optional milliseconds and offset.

    Example:
        >>> is_valid_iso_date("2024-02-29T10:30:00Z")
        True
        >>> is_valid_iso_date("2024-01-15")
        False
    """
    if not value or not ISO_DATE_RE.match(value):
        return False

    try:
        _parse_iso(value)
    except ValueError:
        return False
    return True


def validate_query_params(from_: str | None, to: str | None) -> dict[str, str]:
    """
    Validate an export window.

    Args:
        from_: Window start, ISO 8601.
        to: Window end, ISO 8601.

    Returns:
        {"from": ..., "to": ...} when valid, otherwise {"error": message}.
    """
    if not from_:
        return {"error": "Missing required parameter: from"}
    if not to:
        return {"error": "Missing required parameter: to"}

    if not is_valid_iso_date(from_):
        return {"error": 'Invalid date format for parameter "from". Expected ISO 8601 format.'}
    if not is_valid_iso_date(to):
        return {"error": 'Invalid date format for parameter "to". Expected ISO 8601 format.'}

    start = _parse_iso(from_)
    end = _parse_iso(to)

    if start > end:
        return {"error": 'Parameter "from" cannot be later than "to"'}

    if (end - start).total_seconds() * 1000 > MAX_EXPORT_RANGE_MS:
        return {"error": "Date range cannot exceed 3 months"}

    return {"from": from_, "to": to}


def generate_csv_filename(from_: str, to: str) -> str:
    """
    Export file name built from the date part of each bound.

    The offset is ignored, so the date is the one written in the input.
    """
    return f"orderbooks_export_{from_.split('T')[0]}_to_{to.split('T')[0]}.csv"


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def convert_to_csv(orderbooks: Sequence[Mapping[str, Any]]) -> str:
    """
    Render order book rows as CSV.

    The `snapshot` column holds the JSON-encoded snapshot as a quoted
    field with embedded quotes doubled; missing values render empty.

    Args:
        orderbooks: Rows keyed by the CSV header names.

    Returns:
        CSV text; a header line only when there are no rows.
    """
    header = ",".join(CSV_HEADERS)
    if not orderbooks:
        return header + "\n"

    lines = [header]
    for row in orderbooks:
        snapshot = orjson.dumps(row.get("snapshot")).decode().replace('"', '""')
        lines.append(
            ",".join(
                [
                    _cell(row.get("id")),
                    _cell(row.get("exchange_id")),
                    _cell(row.get("asset_id")),
                    f'"{snapshot}"',
                    _cell(row.get("spread")),
                    _cell(row.get("timestamp")),
                    _cell(row.get("volume")),
                    _cell(row.get("created_at")),
                ]
            )
        )

    return "\n".join(lines)
