import os
import re
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.db import get_db
from app.logging_config import logger
from app.routers.params import optional_float, optional_int, page_params
from app.security import get_owner_id
from database.buyer_crud import BuyerCRUD
from managers.ingestion_manager import IngestionManager, discard_temp_file
from utils.file_decoder import CSV_EXTENSIONS, CSV_MIMETYPES, EXCEL_EXTENSIONS, EXCEL_MIMETYPES

router = APIRouter(prefix="/api/v1/buyers", tags=["buyers"])

ALLOWED_EXTENSIONS = CSV_EXTENSIONS + EXCEL_EXTENSIONS
ALLOWED_MIMETYPES = CSV_MIMETYPES + EXCEL_MIMETYPES + ("application/octet-stream",)
UPLOAD_CHUNK_BYTES = 64 * 1024

_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_filename(filename: str) -> str:
    """'Q3 report (final).xlsx' -> '<epoch-ms>-Q3_report__final_.xlsx'."""
    base, ext = os.path.splitext(os.path.basename(filename or ""))
    safe_base = _UNSAFE_NAME_RE.sub("_", base)[:100]
    return f"{int(time.time() * 1000)}-{safe_base}{ext.lower()}"


def _base_mimetype(content_type: Optional[str]) -> str:
    # "text/csv; charset=utf-8" -> "text/csv"
    return (content_type or "").split(";", 1)[0].strip().lower()


def _check_upload(file: UploadFile) -> None:
    ext = os.path.splitext(file.filename or "")[1].lower()
    mimetype = _base_mimetype(file.content_type)
    if ext not in ALLOWED_EXTENSIONS or mimetype not in ALLOWED_MIMETYPES:
        raise HTTPException(
            status_code=400,
            detail="Only CSV and Excel files (.csv, .xls, .xlsx) are allowed",
        )


async def _save_upload(file: UploadFile, settings: Settings) -> str:
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    dest = os.path.join(settings.UPLOAD_DIR, sanitize_filename(file.filename))
    written = 0
    try:
        with open(dest, "wb") as f:
            while chunk := await file.read(UPLOAD_CHUNK_BYTES):
                written += len(chunk)
                if written > settings.MAX_UPLOAD_BYTES:
                    raise HTTPException(status_code=413, detail="File too large")
                f.write(chunk)
    except BaseException:
        discard_temp_file(dest)
        raise
    return dest


@router.post("/upload")
async def upload_buyers(
    file: Optional[UploadFile] = File(None),
    owner_id: int = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    _check_upload(file)

    path = await _save_upload(file, settings)
    manager = IngestionManager(db, settings)
    summary = await manager.ingest(
        file_path=path,
        owner_id=owner_id,
        original_filename=file.filename,
        mimetype=_base_mimetype(file.content_type),
        stored_filename=os.path.basename(path),
    )
    return summary.to_response()


@router.get("")
async def list_buyers(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    due_status: str = Query("all", alias="dueStatus"),
    min_invoice: Optional[str] = Query(None, alias="minInvoice"),
    max_invoice: Optional[str] = Query(None, alias="maxInvoice"),
    upload_id: Optional[str] = Query(None, alias="uploadId"),
    owner_id: int = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    page_no, page_size = page_params(page, limit)
    try:
        return await BuyerCRUD(db).list_buyers(
            owner_id,
            upload_id=optional_int(upload_id),
            search=search,
            due_status=due_status,
            min_invoice=optional_float(min_invoice),
            max_invoice=optional_float(max_invoice),
            page=page_no,
            limit=page_size,
        )
    except Exception:
        logger.exception("buyers ::::: list_buyers failed")
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch buyers" if settings.is_production
            else "An error occurred while fetching buyers",
        )
