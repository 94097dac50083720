# utils/row_sanitizer.py
import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

from utils.field_normalizer import pick_field
from utils.row_types import BuyerRecord, RowResult

MAX_TEXT_LENGTH = 1000
REQUIRED_FIELDS = ("name", "email", "mobile")

_ANGLE_RE = re.compile(r"[<>]")
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_NUMBER_PREFIX_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")

ZERO = Decimal("0")
CENTS = Decimal("0.01")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def sanitize_string(value: Any) -> str:
    if _is_blank(value):
        return ""
    return _ANGLE_RE.sub("", str(value)).strip()[:MAX_TEXT_LENGTH].rstrip()


def parse_number(value: Any) -> Decimal:
    """Lenient money parser: '$1,200.50' -> 1200.50, 'abc' -> 0, '-42' -> 0."""
    if _is_blank(value) or value == "":
        return ZERO
    cleaned = _NON_NUMERIC_RE.sub("", str(value))
    match = _NUMBER_PREFIX_RE.match(cleaned)
    if not match:
        return ZERO
    try:
        number = Decimal(match.group(0)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO
    if not number.is_finite() or number <= 0:
        return ZERO
    return number


def sanitize_row(normalized: Mapping[str, Any]) -> RowResult:
    """Turn one normalized row into a BuyerRecord, or a skip when a required field is empty."""
    name = sanitize_string(pick_field(normalized, "name"))
    email = sanitize_string(pick_field(normalized, "email"))
    mobile = sanitize_string(pick_field(normalized, "mobile"))

    missing = [f for f, v in zip(REQUIRED_FIELDS, (name, email, mobile)) if not v]
    if missing:
        return RowResult.skip(f"missing {', '.join(missing)}")

    return RowResult.ok(
        BuyerRecord(
            name=name,
            email=email,
            mobile=mobile,
            address=sanitize_string(pick_field(normalized, "address")),
            total_invoice=parse_number(pick_field(normalized, "total_invoice", 0)),
            amount_paid=parse_number(pick_field(normalized, "amount_paid", 0)),
            amount_due=parse_number(pick_field(normalized, "amount_due", 0)),
        )
    )
