# utils/row_types.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class BuyerRecord(BaseModel):
    """One validated spreadsheet row, ready to be tied to an upload and owner."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    mobile: str
    address: str = ""
    total_invoice: Decimal = Field(default=Decimal("0"), ge=0)
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)
    amount_due: Decimal = Field(default=Decimal("0"), ge=0)


@dataclass(frozen=True)
class RowResult:
    """Per-row outcome: either an accepted record or a skip with a reason."""

    record: Optional[BuyerRecord] = None
    skip_reason: Optional[str] = None

    @classmethod
    def ok(cls, record: BuyerRecord) -> "RowResult":
        return cls(record=record)

    @classmethod
    def skip(cls, reason: str) -> "RowResult":
        return cls(skip_reason=reason)

    @property
    def accepted(self) -> bool:
        return self.record is not None


@dataclass
class IngestionSummary:
    inserted_count: int
    upload_id: int
    file_name: str
    decoded_count: int = 0
    skipped_count: int = 0

    def to_response(self) -> Dict[str, Any]:
        return {
            "message": f"Successfully imported {self.inserted_count} buyers",
            "count": self.inserted_count,
            "uploadId": self.upload_id,
            "fileName": self.file_name,
        }
