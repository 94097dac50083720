from typing import Optional

from fastapi import HTTPException


def optional_int(raw: Optional[str]) -> Optional[int]:
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def optional_float(raw: Optional[str]) -> Optional[float]:
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def page_params(page: Optional[str], limit: Optional[str]) -> tuple[int, int]:
    """Unparsable or zero values fall back to page 1 and 10 per page."""
    return optional_int(page) or 1, optional_int(limit) or 10


def parse_upload_id(raw: str) -> int:
    upload_id = optional_int(raw)
    if upload_id is None:
        raise HTTPException(status_code=400, detail="Invalid upload ID")
    return upload_id
