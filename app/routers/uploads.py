from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.db import get_db
from app.logging_config import logger
from app.routers.params import page_params, parse_upload_id
from app.security import get_owner_id
from database.upload_crud import UploadCRUD

router = APIRouter(prefix="/api/v1/buyers/uploads", tags=["uploads"])


def _failure(settings: Settings, production_msg: str, dev_msg: str) -> HTTPException:
    return HTTPException(status_code=500, detail=production_msg if settings.is_production else dev_msg)


@router.get("")
async def list_uploads(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    owner_id: int = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    page_no, page_size = page_params(page, limit)
    try:
        return await UploadCRUD(db).list_uploads(owner_id, page=page_no, limit=page_size)
    except Exception:
        logger.exception("uploads ::::: list_uploads failed")
        raise _failure(settings, "Failed to fetch uploads", "An error occurred while fetching uploads")


@router.get("/{upload_id}")
async def get_upload(
    upload_id: str,
    owner_id: int = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    upload_id = parse_upload_id(upload_id)
    try:
        found = await UploadCRUD(db).get_upload(owner_id, upload_id)
    except Exception:
        logger.exception(f"uploads ::::: get_upload {upload_id} failed")
        raise _failure(settings, "Failed to fetch upload", "An error occurred while fetching upload")
    if not found:
        raise HTTPException(status_code=404, detail="Upload not found")
    return found


@router.delete("/{upload_id}")
async def delete_upload(
    upload_id: str,
    owner_id: int = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    upload_id = parse_upload_id(upload_id)
    try:
        deleted = await UploadCRUD(db).delete_upload(owner_id, upload_id)
    except Exception:
        logger.exception(f"uploads ::::: delete_upload {upload_id} failed")
        raise _failure(settings, "Failed to delete upload", "An error occurred while deleting upload")
    if not deleted:
        raise HTTPException(status_code=404, detail="Upload not found")
    logger.info(f"uploads ::::: owner {owner_id} deleted upload {upload_id}")
    return {"message": "Upload deleted successfully"}
