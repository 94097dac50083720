# database/upload_crud.py
from typing import Any, Dict, Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.logging_config import logger
from database.buyer_crud import clamp_page, pagination
from database.models import Buyer, FileKind, Upload

MAX_PAGE_SIZE = 50


def upload_to_dict(u: Upload) -> Dict[str, Any]:
    return {
        "id": u.id,
        "filename": u.filename,
        "original_name": u.original_name,
        "file_type": u.file_type,
        "row_count": u.row_count,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


class UploadCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    # --------- writes used inside the ingestion transaction ----------
    async def create_upload(
        self,
        user_id: int,
        filename: str,
        original_name: str,
        file_kind: FileKind,
        row_count: int,
    ) -> Upload:
        upload = Upload(
            user_id=user_id,
            filename=filename,
            original_name=original_name,
            file_type=file_kind.value,
            row_count=row_count,
        )
        self.session.add(upload)
        await self.session.flush()  # assigns upload.id
        return upload

    async def set_row_count(self, upload_id: int, row_count: int) -> None:
        await self.session.execute(
            update(Upload).where(Upload.id == upload_id).values(row_count=row_count)
        )

    # --------- reads (return dicts) ----------
    async def _get_owned(self, user_id: int, upload_id: int) -> Optional[Upload]:
        res = await self.session.execute(
            select(Upload).where(Upload.id == upload_id, Upload.user_id == user_id)
        )
        return res.scalar_one_or_none()

    async def list_uploads(self, user_id: int, page: Optional[int] = 1, limit: Optional[int] = 10) -> Dict[str, Any]:
        page, limit = clamp_page(page, limit, MAX_PAGE_SIZE)
        stmt = (
            select(Upload)
            .where(Upload.user_id == user_id)
            .order_by(Upload.created_at.desc(), Upload.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        rows = (await self.session.execute(stmt)).scalars().all()
        total = await self.session.scalar(
            select(func.count()).select_from(Upload).where(Upload.user_id == user_id)
        )
        return {
            "data": [upload_to_dict(u) for u in rows],
            "pagination": pagination(int(total or 0), page, limit),
        }

    async def get_upload(self, user_id: int, upload_id: int) -> Optional[Dict[str, Any]]:
        """
        Upload row plus per-upload totals; None when missing or owned by someone else.
        """
        upload = await self._get_owned(user_id, upload_id)
        if not upload:
            return None

        stmt = select(
            func.count(Buyer.id),
            func.coalesce(func.sum(Buyer.amount_due), 0),
            func.coalesce(func.sum(Buyer.amount_paid), 0),
            func.coalesce(func.sum(Buyer.total_invoice), 0),
            func.coalesce(func.sum(case((Buyer.amount_due == 0, 1), else_=0)), 0),
            func.coalesce(func.sum(case((Buyer.amount_due > 0, 1), else_=0)), 0),
        ).where(Buyer.upload_id == upload_id)
        total, due, paid, invoice, no_due, has_due = (await self.session.execute(stmt)).one()

        return {
            "upload": upload_to_dict(upload),
            "summary": {
                "total_buyers": int(total or 0),
                "total_due": float(due or 0),
                "total_paid": float(paid or 0),
                "total_invoice": float(invoice or 0),
                "no_due_count": int(no_due or 0),
                "has_due_count": int(has_due or 0),
            },
        }

    async def delete_upload(self, user_id: int, upload_id: int) -> bool:
        """
        Remove an upload and its buyers in one transaction, buyers first.
        """
        if not await self._get_owned(user_id, upload_id):
            return False
        try:
            await self.session.execute(delete(Buyer).where(Buyer.upload_id == upload_id))
            await self.session.execute(delete(Upload).where(Upload.id == upload_id))
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error deleting upload {upload_id}: {e}")
            raise
        return True
