# database/buyer_crud.py
import math
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Buyer
from utils.row_sanitizer import sanitize_string
from utils.row_types import BuyerRecord

DUE_STATUSES = ("all", "no_due", "has_due")
MAX_SEARCH_LENGTH = 100
MAX_PAGE_SIZE = 100


def clamp_page(page: Optional[int], limit: Optional[int], max_limit: int) -> tuple[int, int]:
    page = max(1, page or 1)
    limit = min(max_limit, max(1, limit or 10))
    return page, limit


def pagination(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit) if total else 0,
    }


def _money(value: Optional[Decimal]) -> float:
    return float(value or 0)


def buyer_to_dict(b: Buyer) -> Dict[str, Any]:
    return {
        "id": b.id,
        "upload_id": b.upload_id,
        "name": b.name,
        "email": b.email,
        "mobile": b.mobile,
        "address": b.address or "",
        "total_invoice": _money(b.total_invoice),
        "amount_paid": _money(b.amount_paid),
        "amount_due": _money(b.amount_due),
        "created_at": b.created_at.isoformat() if b.created_at else None,
    }


class BuyerCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    # --------- writes (caller owns the transaction) ----------
    async def insert_buyers(self, user_id: int, upload_id: int, records: Sequence[BuyerRecord]) -> int:
        if not records:
            return 0
        payload = [
            {"user_id": user_id, "upload_id": upload_id, **record.model_dump()}
            for record in records
        ]
        await self.session.execute(insert(Buyer), payload)
        return len(payload)

    # --------- reads (return dicts) ----------
    async def list_buyers(
        self,
        user_id: int,
        *,
        upload_id: Optional[int] = None,
        search: Optional[str] = None,
        due_status: Optional[str] = "all",
        min_invoice: Optional[float] = None,
        max_invoice: Optional[float] = None,
        page: Optional[int] = 1,
        limit: Optional[int] = 10,
    ) -> Dict[str, Any]:
        page, limit = clamp_page(page, limit, MAX_PAGE_SIZE)
        search = sanitize_string(search)[:MAX_SEARCH_LENGTH]
        due_status = due_status or "all"

        conditions: List[Any] = [Buyer.user_id == user_id]
        if upload_id:
            conditions.append(Buyer.upload_id == upload_id)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    Buyer.name.ilike(pattern),
                    Buyer.email.ilike(pattern),
                    Buyer.mobile.ilike(pattern),
                )
            )
        if due_status == "no_due":
            conditions.append(Buyer.amount_due == 0)
        elif due_status == "has_due":
            conditions.append(Buyer.amount_due > 0)
        if min_invoice is not None and not math.isnan(min_invoice):
            conditions.append(Buyer.total_invoice >= min_invoice)
        if max_invoice is not None and not math.isnan(max_invoice):
            conditions.append(Buyer.total_invoice <= max_invoice)

        stmt = (
            select(Buyer)
            .where(*conditions)
            .order_by(Buyer.created_at.desc(), Buyer.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        rows = (await self.session.execute(stmt)).scalars().all()

        total = await self.session.scalar(
            select(func.count()).select_from(Buyer).where(*conditions)
        )

        return {
            "data": [buyer_to_dict(b) for b in rows],
            "pagination": pagination(int(total or 0), page, limit),
            "filters": {
                "dueStatus": due_status,
                "minInvoice": min_invoice,
                "maxInvoice": max_invoice,
                "uploadId": upload_id,
            },
        }
