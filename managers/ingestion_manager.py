from __future__ import annotations

import asyncio
import os
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.logging_config import logger
from database.buyer_crud import BuyerCRUD
from database.models import FileKind
from database.upload_crud import UploadCRUD
from utils.errors import EmptyResultError, PersistenceError
from utils.field_normalizer import normalize_row
from utils.file_decoder import decode_rows, detect_file_kind
from utils.row_sanitizer import sanitize_row
from utils.row_types import BuyerRecord, IngestionSummary


def discard_temp_file(path: str) -> None:
    if not path or not os.path.exists(path):
        return
    try:
        os.remove(path)
    except OSError as e:
        logger.error(f"ingestion ::::: failed to delete temp file {path}: {e}")


class IngestionManager:
    """
    Drives one uploaded file through decode -> normalize -> validate -> persist.

    The upload row and every buyer row are written inside a single transaction
    on the given session, so a failure leaves nothing behind. The temp file is
    removed however the call ends.
    """

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()
        self.uploads = UploadCRUD(session)
        self.buyers = BuyerCRUD(session)

    async def ingest(
        self,
        file_path: str,
        owner_id: int,
        original_filename: str,
        mimetype: Optional[str] = None,
        stored_filename: Optional[str] = None,
    ) -> IngestionSummary:
        try:
            kind = detect_file_kind(original_filename, mimetype)
            logger.info(f"ingestion ::::: owner={owner_id} file={original_filename!r} kind={kind.value}")

            raw_rows = await asyncio.to_thread(self._decode, file_path, kind)
            if not raw_rows:
                raise EmptyResultError("decoder produced zero rows")
            logger.info(f"ingestion ::::: decoded {len(raw_rows)} rows from {original_filename!r}")

            try:
                return await asyncio.wait_for(
                    self._persist(
                        raw_rows,
                        owner_id=owner_id,
                        kind=kind,
                        original_filename=original_filename,
                        stored_filename=stored_filename or os.path.basename(file_path),
                    ),
                    timeout=self.settings.INGEST_TIMEOUT_SECONDS,
                )
            except asyncio.TimeoutError as e:
                raise PersistenceError(
                    f"import did not finish within {self.settings.INGEST_TIMEOUT_SECONDS}s"
                ) from e
        finally:
            discard_temp_file(file_path)

    def _decode(self, file_path: str, kind: FileKind) -> List[Dict[str, Any]]:
        return list(decode_rows(file_path, kind, max_rows=self.settings.MAX_ROWS))

    async def _persist(
        self,
        raw_rows: List[Dict[str, Any]],
        *,
        owner_id: int,
        kind: FileKind,
        original_filename: str,
        stored_filename: str,
    ) -> IngestionSummary:
        batch_size = max(1, self.settings.INSERT_BATCH_SIZE)
        try:
            async with self.session.begin():
                await self._apply_statement_timeout()

                upload = await self.uploads.create_upload(
                    user_id=owner_id,
                    filename=stored_filename,
                    original_name=original_filename,
                    file_kind=kind,
                    row_count=len(raw_rows),
                )

                inserted = 0
                skipped = 0
                batch: List[BuyerRecord] = []
                for raw in raw_rows:
                    result = sanitize_row(normalize_row(raw))
                    if not result.accepted:
                        skipped += 1
                        continue
                    batch.append(result.record)
                    if len(batch) >= batch_size:
                        inserted += await self.buyers.insert_buyers(owner_id, upload.id, batch)
                        batch = []
                if batch:
                    inserted += await self.buyers.insert_buyers(owner_id, upload.id, batch)

                await self.uploads.set_row_count(upload.id, inserted)
                upload_id = upload.id
        except asyncio.CancelledError:
            logger.error(f"ingestion ::::: cancelled, rolled back {original_filename!r}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"ingestion ::::: rolled back {original_filename!r}: {e!r}")
            raise PersistenceError(str(e)) from e

        logger.info(
            f"ingestion ::::: imported {inserted} buyers (skipped {skipped}) "
            f"into upload {upload_id} for owner {owner_id}"
        )
        return IngestionSummary(
            inserted_count=inserted,
            upload_id=upload_id,
            file_name=original_filename,
            decoded_count=len(raw_rows),
            skipped_count=skipped,
        )

    async def _apply_statement_timeout(self) -> None:
        if self.session.bind is None or self.session.bind.dialect.name != "postgresql":
            return
        ms = int(self.settings.DB_STATEMENT_TIMEOUT_MS)
        await self.session.execute(text(f"SET LOCAL statement_timeout = {ms}"))

