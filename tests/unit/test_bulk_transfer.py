"""
Unit tests for CSV parsing and export.
"""

import csv
import io
import uuid
from datetime import date
from types import SimpleNamespace

import pytest

from src.safeguard.services.bulk_transfer import EXPORT_COLUMNS, export_assets_csv, parse_asset_csv
from src.safeguard.utils.errors import ValidationError


class TestParseAssetCsv:

    def test_camel_case_header(self):
        parsed = parse_asset_csv("serialNumber,assetClass,lastCertificationDate\nG-100,Class 1,2023-01-01\n")

        assert parsed.errors == []
        assert len(parsed.rows) == 1
        assert parsed.rows[0].number == 2
        assert parsed.rows[0].values == {
            "serial_number": "G-100",
            "asset_class": "Class 1",
            "last_certification_date": "2023-01-01",
        }

    def test_snake_case_header_with_bom_and_extra_columns(self):
        text = "\ufeffSerial_Number,asset_class,last_certification_date,notes,glove_size\nG-1,Class 0,2024-01-01,spare,9\n"
        parsed = parse_asset_csv(text)

        values = parsed.rows[0].values
        assert values["serial_number"] == "G-1"
        assert values["glove_size"] == "9"
        assert "notes" not in values

    def test_missing_required_columns_rejects_file(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_asset_csv("serialNumber,gloveSize\nG-1,9\n")
        assert exc_info.value.message == "Missing required columns: assetClass, lastCertificationDate"

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError):
            parse_asset_csv("")
        with pytest.raises(ValidationError):
            parse_asset_csv("serialNumber,assetClass,lastCertificationDate\n")

    def test_quoted_values_keep_commas(self):
        text = 'serialNumber,assetClass,lastCertificationDate,assignedUserId\n"G-1, left",Class 2,2024-02-02,u1\n'
        parsed = parse_asset_csv(text)
        assert parsed.rows[0].values["serial_number"] == "G-1, left"

    def test_wrong_column_count_reported_with_row_number(self):
        text = (
            "serialNumber,assetClass,lastCertificationDate\n"
            "G-1,Class 1,2024-01-01\n"
            "G-2,Class 1\n"
            "\n"
            "G-3,Class 1,2024-01-01\n"
        )
        parsed = parse_asset_csv(text)

        assert [row.number for row in parsed.rows] == [2, 5]
        assert len(parsed.errors) == 1
        assert parsed.errors[0].row == 3
        assert "Expected 3 columns, found 2" in parsed.errors[0].message

    def test_oversized_field_rejected_as_validation_error(self):
        text = "serialNumber,assetClass,lastCertificationDate\n" + "G" * 200_000 + ",Class 1,2024-01-01\n"

        with pytest.raises(ValidationError) as exc_info:
            parse_asset_csv(text)
        assert exc_info.value.message.startswith("Malformed CSV at line")

    def test_oversized_header_rejected_as_validation_error(self):
        with pytest.raises(ValidationError):
            parse_asset_csv("x" * 200_000 + "\n")


class TestExportAssetsCsv:

    def make_asset(self, **overrides):
        fields = dict(
            id=uuid.uuid4(),
            serial_number="G-1",
            asset_class="Class 1",
            glove_size="9",
            glove_color="red",
            issue_date=date(2023, 1, 1),
            last_certification_date=date(2024, 1, 15),
            next_certification_date=date(2024, 7, 15),
            status="active",
            assigned_user_id="u1",
        )
        fields.update(overrides)
        return SimpleNamespace(**fields)

    def test_header_and_row_order(self):
        asset = self.make_asset()
        rows = list(csv.reader(io.StringIO(export_assets_csv([asset], date(2024, 6, 1)))))

        assert rows[0] == EXPORT_COLUMNS
        assert rows[1] == [
            str(asset.id), "G-1", "Class 1", "9", "red", "2023-01-01",
            "2024-01-15", "2024-07-15", "active", "u1",
        ]

    def test_status_is_evaluated_as_of_today(self):
        asset = self.make_asset(status="active", next_certification_date=date(2024, 6, 20))
        rows = list(csv.reader(io.StringIO(export_assets_csv([asset], date(2024, 6, 1)))))
        assert rows[1][8] == "near-due"

    def test_values_with_delimiters_are_quoted(self):
        asset = self.make_asset(serial_number='G-1, "left"', glove_size=None, assigned_user_id=None)
        text = export_assets_csv([asset], date(2024, 6, 1))

        assert '"G-1, ""left"""' in text
        row = list(csv.reader(io.StringIO(text)))[1]
        assert row[1] == 'G-1, "left"'
        assert row[3] == ""
        assert row[9] == ""
