# utils/errors.py
from typing import Optional


class IngestionError(Exception):
    """Base for failures that abort a whole ingestion.

    ``public_message`` is what a production client sees; ``detail`` is only
    surfaced when the service runs in development.
    """

    status_code = 500
    public_message = "Failed to process file"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.public_message
        super().__init__(self.detail)


class UnsupportedFileKind(IngestionError):
    status_code = 400
    public_message = "Only CSV and Excel files (.csv, .xls, .xlsx) are allowed"


class DecodeError(IngestionError):
    status_code = 400
    public_message = "Failed to parse file"


class EmptyResultError(IngestionError):
    status_code = 400
    public_message = "No valid data found in file"


class PersistenceError(IngestionError):
    status_code = 500
    public_message = "Failed to process file"


def public_message(exc: IngestionError, production: bool) -> str:
    if production or exc.detail == exc.public_message:
        return exc.public_message
    return f"{exc.public_message}: {exc.detail}"
