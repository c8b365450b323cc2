"""
Unit tests for order book CSV export helpers.
"""

import pytest

from arbcollect.utils.export import (
    convert_to_csv,
    generate_csv_filename,
    is_valid_iso_date,
    validate_query_params,
)


HEADER = "id,exchange_id,asset_id,snapshot,spread,timestamp,volume,created_at"


class TestIsValidIsoDate:
    """Tests for is_valid_iso_date."""

    @pytest.mark.parametrize(
        "value",
        [
            "2024-01-15T10:30:00Z",
            "2024-01-15T10:30:00.123Z",
            "2024-01-15T10:30:00+02:00",
            "2024-01-15T10:30:00.123+02:00",
            "2024-02-29T10:30:00Z",
        ],
    )
    def test_valid(self, value: str) -> None:
        """Test accepted date-times, including a leap day."""
        assert is_valid_iso_date(value)

    @pytest.mark.parametrize(
        "value",
        [
            "",
            None,
            "2024-01-15",
            "2024-01-15 10:30:00",
            "invalid-date",
            "2024-13-01T10:30:00Z",
            "2023-02-29T10:30:00Z",
        ],
    )
    def test_invalid(self, value: str | None) -> None:
        """Test rejected values, including impossible calendar dates."""
        assert not is_valid_iso_date(value)


class TestConvertToCsv:
    """Tests for convert_to_csv."""

    def test_empty(self) -> None:
        """Test no rows gives the header line only."""
        assert convert_to_csv([]) == HEADER + "\n"

    def test_single_row(self) -> None:
        """Test one row with a JSON snapshot column."""
        row = {
            "id": "1",
            "exchange_id": "binance",
            "asset_id": "BTC",
            "snapshot": {"bids": [[50000, 1]], "asks": [[50100, 1]]},
            "spread": 100,
            "timestamp": "2024-01-15T10:30:00Z",
            "volume": 1000,
            "created_at": "2024-01-15T10:30:00Z",
        }

        lines = convert_to_csv([row]).split("\n")

        assert lines[0] == HEADER
        assert lines[1].startswith("1,binance,BTC,")
        assert '"{""bids"":[[50000,1]],""asks"":[[50100,1]]}"' in lines[1]
        assert lines[1].endswith("100,2024-01-15T10:30:00Z,1000,2024-01-15T10:30:00Z")

    def test_multiple_rows_with_nulls(self) -> None:
        """Test missing values render as empty cells."""
        rows = [
            {
                "id": "1",
                "exchange_id": "binance",
                "asset_id": "BTC",
                "snapshot": {},
                "spread": 100,
                "timestamp": "2024-01-15T10:30:00Z",
                "volume": 1000,
                "created_at": "2024-01-15T10:30:00Z",
            },
            {
                "id": "2",
                "exchange_id": "kraken",
                "asset_id": "ETH",
                "snapshot": {},
                "spread": 50,
                "timestamp": "2024-01-15T10:31:00Z",
                "volume": None,
                "created_at": None,
            },
        ]

        lines = convert_to_csv(rows).split("\n")

        assert len(lines) == 3
        assert lines[2] == '2,kraken,ETH,"{}",50,2024-01-15T10:31:00Z,,'

    def test_quotes_inside_snapshot(self) -> None:
        """Test embedded quotes are doubled."""
        row = {
            "id": "1",
            "exchange_id": "test",
            "asset_id": "TEST",
            "snapshot": {"message": 'Contains "quotes" inside'},
            "spread": 0,
            "timestamp": "2024-01-15T10:30:00Z",
        }

        result = convert_to_csv([row])

        assert '""message"":""Contains \\""quotes\\"" inside""' in result


class TestValidateQueryParams:
    """Tests for validate_query_params."""

    def test_missing(self) -> None:
        """Test missing bounds are named."""
        assert validate_query_params(None, "2024-01-15T10:30:00Z") == {
            "error": "Missing required parameter: from"
        }
        assert validate_query_params("2024-01-15T10:30:00Z", None) == {
            "error": "Missing required parameter: to"
        }

    def test_invalid_format(self) -> None:
        """Test malformed bounds are named."""
        assert validate_query_params("invalid-date", "2024-01-15T10:30:00Z") == {
            "error": 'Invalid date format for parameter "from". Expected ISO 8601 format.'
        }
        assert validate_query_params("2024-01-15T10:30:00Z", "invalid-date") == {
            "error": 'Invalid date format for parameter "to". Expected ISO 8601 format.'
        }

    def test_inverted(self) -> None:
        """Test from after to is rejected."""
        assert validate_query_params("2024-01-15T10:30:00Z", "2024-01-14T10:30:00Z") == {
            "error": 'Parameter "from" cannot be later than "to"'
        }

    def test_range_too_long(self) -> None:
        """Test four months exceeds the limit."""
        assert validate_query_params("2024-01-01T10:30:00Z", "2024-05-01T10:30:00Z") == {
            "error": "Date range cannot exceed 3 months"
        }

    @pytest.mark.parametrize(
        ("from_", "to"),
        [
            ("2024-01-15T10:30:00Z", "2024-02-15T10:30:00Z"),
            ("2024-01-01T00:00:00Z", "2024-03-30T00:00:00Z"),
            ("2024-01-15T10:30:00+02:00", "2024-01-15T10:30:00Z"),
        ],
    )
    def test_valid(self, from_: str, to: str) -> None:
        """Test accepted windows echo their bounds."""
        assert validate_query_params(from_, to) == {"from": from_, "to": to}


class TestGenerateCsvFilename:
    """Tests for generate_csv_filename."""

    @pytest.mark.parametrize(
        ("from_", "to", "expected"),
        [
            ("2024-01-15T10:30:00Z", "2024-02-15T15:45:30Z", "orderbooks_export_2024-01-15_to_2024-02-15.csv"),
            (
                "2024-01-15T10:30:00+02:00",
                "2024-02-15T15:45:30-05:00",
                "orderbooks_export_2024-01-15_to_2024-02-15.csv",
            ),
            (
                "2024-12-01T23:59:59.999Z",
                "2024-12-31T00:00:00.000Z",
                "orderbooks_export_2024-12-01_to_2024-12-31.csv",
            ),
        ],
    )
    def test_date_parts(self, from_: str, to: str, expected: str) -> None:
        """Test the date written in each bound is used as is."""
        assert generate_csv_filename(from_, to) == expected
