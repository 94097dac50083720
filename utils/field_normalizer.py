# utils/field_normalizer.py
import re
from typing import Any, Dict, Mapping

_KEY_STRIP_RE = re.compile(r"[\s_]+")

# canonical field -> normalized header aliases, first match wins
FIELD_ALIASES = {
    "name": ("name",),
    "email": ("email",),
    "mobile": ("mobile",),
    "address": ("address",),
    "total_invoice": ("totalinvoice", "invoice"),
    "amount_paid": ("amountpaid", "paid"),
    "amount_due": ("amountdue", "due"),
}

# Excel sheets are read by position, not by header
EXCEL_COLUMNS = (
    "name",
    "email",
    "mobile",
    "address",
    "total_invoice",
    "amount_paid",
    "amount_due",
)


def normalize_key(header: Any) -> str:
    """'Total Invoice', 'total_invoice' and ' TotalInvoice ' all become 'totalinvoice'."""
    return _KEY_STRIP_RE.sub("", str(header if header is not None else "").lower().strip())


def normalize_row(raw_row: Mapping[Any, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for header, value in raw_row.items():
        normalized[normalize_key(header)] = value
    return normalized


def pick_field(normalized: Mapping[str, Any], field: str, default: Any = None) -> Any:
    for alias in FIELD_ALIASES[field]:
        value = normalized.get(alias)
        if value is not None:
            return value
    return default
