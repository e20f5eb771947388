"""Row validation and clean-up for imported pharmacy data."""

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .models import MigrationType

ISO_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y/%m/%d")
DAY_FIRST_DATE = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})")


@dataclass
class ValidationWarning:
    """Represents a single problem with a source row."""

    type: str
    message: str


@dataclass
class RowValidation:
    """Validation outcome for one source row."""

    warnings: List[ValidationWarning] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.warnings

    def first_message(self) -> str:
        return self.warnings[0].message if self.warnings else "Validation failed"

    def add(self, type: str, message: str) -> None:
        self.warnings.append(ValidationWarning(type, message))


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO or day-first date, returning None when it cannot be parsed."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in ISO_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    match = DAY_FIRST_DATE.fullmatch(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_inventory_item(item: Dict[str, Any], today: Optional[date] = None) -> RowValidation:
    """Validate an inventory row.

    Name, expiry date, selling price and quantity are required. Expired stock
    and negative numbers are rejected.
    """
    today = today or date.today()
    result = RowValidation()

    if _is_blank(item.get("name")):
        result.add("missing", "Medicine name is required")

    expiry = item.get("expiry_date")
    if _is_blank(expiry):
        result.add("missing", "Expiry date is required")
    else:
        expiry_date = parse_date(expiry)
        if expiry_date is None:
            result.add("invalid", "Invalid expiry date format")
        elif expiry_date < today:
            result.add("expired", "Medicine is expired")

    price = item.get("selling_price")
    if _is_blank(price):
        result.add("missing", "Selling price is required")
    else:
        number = _as_number(price)
        if number is None or number < 0:
            result.add("price", "Invalid selling price")

    quantity = item.get("quantity")
    if _is_blank(quantity):
        result.add("missing", "Quantity is required")
    else:
        number = _as_number(quantity)
        if number is None or number < 0:
            result.add("invalid", "Invalid quantity")

    return result


def validate_patient(patient: Dict[str, Any]) -> RowValidation:
    """Validate a patient row. Phone numbers must have exactly 10 digits."""
    result = RowValidation()

    if _is_blank(patient.get("name")):
        result.add("missing", "Patient name is required")

    phone = patient.get("phone_number")
    if _is_blank(phone):
        result.add("missing", "Phone number is required")
    elif not re.fullmatch(r"\d{10}", re.sub(r"\D", "", str(phone))):
        result.add("invalid", "Invalid phone number format")

    return result


def validate_prescription(prescription: Dict[str, Any]) -> RowValidation:
    """Validate a prescription row."""
    result = RowValidation()

    if _is_blank(prescription.get("prescription_number")):
        result.add("missing", "Prescription number is required")

    if _is_blank(prescription.get("doctor_name")):
        result.add("missing", "Doctor name is required")

    prescribed = prescription.get("date")
    if _is_blank(prescribed):
        result.add("missing", "Prescription date is required")
    elif parse_date(prescribed) is None:
        result.add("invalid", "Invalid prescription date format")

    return result


def validate_row(migration_type: MigrationType, row: Dict[str, Any]) -> RowValidation:
    """Validate a row with the rules for its category."""
    if migration_type == MigrationType.INVENTORY:
        return validate_inventory_item(row)
    if migration_type == MigrationType.PATIENTS:
        return validate_patient(row)
    return validate_prescription(row)


def has_too_many_invalid(
    migration_type: MigrationType, rows: List[Dict[str, Any]], threshold: float = 0.1
) -> bool:
    """Return True if the share of invalid rows is above the threshold."""
    if not rows:
        return False
    invalid = sum(1 for row in rows if not validate_row(migration_type, row).valid)
    return invalid / len(rows) > threshold


def auto_fix(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Fix common formatting problems in source rows.

    Currency symbols and separators are stripped from prices, quantities are
    reduced to their digits, and DD/MM/YYYY expiry dates become ISO dates.
    The input rows are not modified.
    """
    fixed_rows = []
    for row in rows:
        fixed = dict(row)

        for key in ("selling_price", "unit_cost"):
            if isinstance(fixed.get(key), str):
                cleaned = re.sub(r"[^\d.\-]", "", fixed[key])
                try:
                    fixed[key] = float(cleaned)
                except ValueError:
                    pass

        if isinstance(fixed.get("quantity"), str):
            digits = re.sub(r"[^\d]", "", fixed["quantity"])
            fixed["quantity"] = int(digits or "0")

        expiry = fixed.get("expiry_date")
        if isinstance(expiry, str):
            match = DAY_FIRST_DATE.search(expiry)
            if match:
                day, month, year = match.groups()
                fixed["expiry_date"] = f"{year}-{month.zfill(2)}-{day.zfill(2)}"

        fixed_rows.append(fixed)
    return fixed_rows
