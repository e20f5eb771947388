"""Tests for row validation and auto-fix."""

from datetime import date

import pytest

from pharmadesk.migration.models import MigrationType
from pharmadesk.migration.validation import (
    auto_fix,
    has_too_many_invalid,
    parse_date,
    validate_inventory_item,
    validate_patient,
    validate_prescription,
)

TODAY = date(2024, 6, 1)


def _item(**overrides):
    item = {"name": "Dolo 650", "expiry_date": "2025-01-31", "selling_price": "30", "quantity": "10"}
    item.update(overrides)
    return item


class TestParseDate:
    """Test cases for parse_date."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2025-01-31", date(2025, 1, 31)),
            ("2025-01-31T10:30:00Z", date(2025, 1, 31)),
            ("2025/01/31", date(2025, 1, 31)),
            ("31/01/2025", date(2025, 1, 31)),
            ("5-3-2026", date(2026, 3, 5)),
            (date(2025, 1, 31), date(2025, 1, 31)),
        ],
    )
    def test_accepted_formats(self, value, expected):
        """Test the supported date formats."""
        assert parse_date(value) == expected

    @pytest.mark.parametrize("value", ["next year", "31/13/2025", "2025-02-30", ""])
    def test_unparseable(self, value):
        """Test that invalid dates give None."""
        assert parse_date(value) is None


class TestValidateInventoryItem:
    """Test cases for validate_inventory_item."""

    def test_valid_item(self):
        """Test a complete item."""
        result = validate_inventory_item(_item(), today=TODAY)

        assert result.valid
        assert result.warnings == []

    def test_expires_today_is_valid(self):
        """Test that stock expiring today is still accepted."""
        assert validate_inventory_item(_item(expiry_date="2024-06-01"), today=TODAY).valid

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"name": "  "}, "Medicine name is required"),
            ({"expiry_date": None}, "Expiry date is required"),
            ({"expiry_date": "soon"}, "Invalid expiry date format"),
            ({"expiry_date": "2024-05-31"}, "Medicine is expired"),
            ({"selling_price": ""}, "Selling price is required"),
            ({"selling_price": "thirty"}, "Invalid selling price"),
            ({"selling_price": -1}, "Invalid selling price"),
            ({"selling_price": "nan"}, "Invalid selling price"),
            ({"selling_price": float("inf")}, "Invalid selling price"),
            ({"quantity": None}, "Quantity is required"),
            ({"quantity": "-5"}, "Invalid quantity"),
            ({"quantity": "Infinity"}, "Invalid quantity"),
        ],
    )
    def test_invalid_items(self, overrides, message):
        """Test each rejection reason."""
        result = validate_inventory_item(_item(**overrides), today=TODAY)

        assert not result.valid
        assert result.first_message() == message

    def test_collects_every_problem(self):
        """Test that all problems are reported, first one first."""
        result = validate_inventory_item({}, today=TODAY)

        assert [w.message for w in result.warnings] == [
            "Medicine name is required",
            "Expiry date is required",
            "Selling price is required",
            "Quantity is required",
        ]


class TestValidatePatient:
    """Test cases for validate_patient."""

    @pytest.mark.parametrize("phone", ["9876543210", "98765-43210", "98765 43210", 9876543210])
    def test_ten_digit_phone_numbers(self, phone):
        """Test accepted phone numbers."""
        assert validate_patient({"name": "Asha", "phone_number": phone}).valid

    @pytest.mark.parametrize(
        "patient,message",
        [
            ({"name": "", "phone_number": "9876543210"}, "Patient name is required"),
            ({"name": "Asha"}, "Phone number is required"),
            ({"name": "Asha", "phone_number": "12345"}, "Invalid phone number format"),
            ({"name": "Asha", "phone_number": "919876543210"}, "Invalid phone number format"),
        ],
    )
    def test_invalid_patients(self, patient, message):
        """Test each rejection reason."""
        assert validate_patient(patient).first_message() == message


class TestValidatePrescription:
    """Test cases for validate_prescription."""

    def test_valid_prescription(self):
        """Test a complete prescription."""
        prescription = {"prescription_number": "RX-1", "doctor_name": "Dr. Rao", "date": "01/06/2024"}

        assert validate_prescription(prescription).valid

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"prescription_number": ""}, "Prescription number is required"),
            ({"doctor_name": None}, "Doctor name is required"),
            ({"date": ""}, "Prescription date is required"),
            ({"date": "yesterday"}, "Invalid prescription date format"),
        ],
    )
    def test_invalid_prescriptions(self, overrides, message):
        """Test each rejection reason."""
        prescription = {"prescription_number": "RX-1", "doctor_name": "Dr. Rao", "date": "2024-06-01"}
        prescription.update(overrides)

        assert validate_prescription(prescription).first_message() == message


class TestHasTooManyInvalid:
    """Test cases for has_too_many_invalid."""

    def test_empty_rows(self):
        """Test that no rows is never too many invalid."""
        assert has_too_many_invalid(MigrationType.PATIENTS, []) is False

    def test_threshold_is_exclusive(self):
        """Test that exactly the threshold share is allowed."""
        rows = [{"name": "Asha", "phone_number": "9876543210"}] * 9 + [{"name": "Ravi"}]

        assert has_too_many_invalid(MigrationType.PATIENTS, rows) is False
        assert has_too_many_invalid(MigrationType.PATIENTS, rows, threshold=0.05) is True

    def test_above_threshold(self):
        """Test a mostly invalid batch."""
        rows = [{"name": "Asha"}, {"name": "Ravi"}, {"name": "Meena", "phone_number": "9876543210"}]

        assert has_too_many_invalid(MigrationType.PATIENTS, rows) is True


class TestAutoFix:
    """Test cases for auto_fix."""

    def test_cleans_prices_and_quantities(self):
        """Test currency and unit clean-up."""
        fixed = auto_fix([{"selling_price": "₹1,200.50", "unit_cost": "Rs 900", "quantity": "10 strips"}])

        assert fixed == [{"selling_price": 1200.5, "unit_cost": 900.0, "quantity": 10}]

    def test_day_first_expiry_becomes_iso(self):
        """Test expiry date normalisation."""
        fixed = auto_fix([{"expiry_date": "5/3/2026"}, {"expiry_date": "2026-03-05"}])

        assert fixed == [{"expiry_date": "2026-03-05"}, {"expiry_date": "2026-03-05"}]

    def test_leaves_unparseable_values(self):
        """Test that values that cannot be fixed are kept."""
        fixed = auto_fix([{"selling_price": "free", "quantity": "none"}])

        assert fixed == [{"selling_price": "free", "quantity": 0}]

    def test_does_not_modify_input(self):
        """Test that the source rows are left alone."""
        rows = [{"quantity": "10 strips"}]

        auto_fix(rows)

        assert rows == [{"quantity": "10 strips"}]
