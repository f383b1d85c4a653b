"""
core/upload.py

Validates uploaded spreadsheet files before parsing:
- Extension allow-list (.csv, .xlsx, .xls)
- Maximum size (MAX_UPLOAD_SIZE_MB) and empty-file rejection
- Content sniffing with `filetype` so a renamed binary is not accepted
"""

import logging

import filetype
from fastapi import UploadFile, status

from reportsonic.core.config import settings
from reportsonic.core.exceptions import APIError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS: set[str] = {".csv", ".xlsx", ".xls"}

# Spreadsheets are zip (xlsx) or OLE (xls) containers; CSV has no signature.
EXCEL_MIME_TYPES: set[str] = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "application/zip",
    "application/x-ole-storage",
}

CHUNK_SIZE = 8192
INVALID_TYPE_MESSAGE = "Invalid file type. Only Excel and CSV files are allowed."


def file_extension(filename: str) -> str:
    dot = filename.rfind(".")
    return filename[dot:].lower() if dot != -1 else ""


async def read_upload(file: UploadFile | None) -> tuple[str, bytes]:
    """
    Reads and validates an uploaded spreadsheet.

    Returns:
        tuple[str, bytes]: The client filename and the raw content.

    Raises:
        APIError: 400 missing/empty/invalid file, 413 too large, 415 content mismatch.
    """
    if file is None or not file.filename:
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="No file uploaded")

    filename = file.filename
    extension = file_extension(filename)
    if extension not in ALLOWED_EXTENSIONS:
        logger.warning(f"[UPLOAD] Rejected '{filename}': extension '{extension}' not allowed")
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message=INVALID_TYPE_MESSAGE)

    max_size = settings.max_upload_size_bytes
    buffer = bytearray()
    try:
        while chunk := await file.read(CHUNK_SIZE):
            buffer.extend(chunk)
            if len(buffer) > max_size:
                logger.warning(
                    f"[UPLOAD] Rejected '{filename}': exceeds limit ({max_size} bytes)."
                )
                raise APIError(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    message=f"File size exceeds the limit of {settings.MAX_UPLOAD_SIZE_MB} MB.",
                )
    finally:
        await file.close()

    if not buffer:
        logger.warning(f"[UPLOAD] Rejected '{filename}': empty file.")
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message="Received an empty file.")

    content = bytes(buffer)
    kind = filetype.guess(content)
    detected_mime = kind.mime if kind else None

    if extension == ".csv" and detected_mime is not None:
        logger.warning(f"[UPLOAD] Rejected '{filename}': CSV content sniffed as '{detected_mime}'")
        raise APIError(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, message=INVALID_TYPE_MESSAGE)
    if extension != ".csv" and detected_mime is not None and detected_mime not in EXCEL_MIME_TYPES:
        logger.warning(f"[UPLOAD] Rejected '{filename}': Excel content sniffed as '{detected_mime}'")
        raise APIError(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, message=INVALID_TYPE_MESSAGE)

    logger.info(f"[UPLOAD] Accepted '{filename}' ({len(content)} bytes, sniffed={detected_mime})")
    return filename, content
