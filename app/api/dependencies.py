"""
app/api/dependencies.py

Shared FastAPI dependencies: caller identity and CSV upload validation.
"""

from __future__ import annotations

import os

from fastapi import File, Header, UploadFile

from app.config import get_upload_settings
from app.errors import MalformedInputError, Unauthorized, UploadTooLarge

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


def get_owner_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    """
    Identity attached by the upstream gateway. Requests without it are
    rejected before any handler runs.
    """

    owner_id = (x_user_id or "").strip()
    if not owner_id:
        raise Unauthorized("Missing caller identity.")
    return owner_id


def _upload_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    stream = file.file
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


def get_csv_upload(csvfile: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type and
    within the configured size limit.
    """

    filename = (csvfile.filename or "").strip().lower()
    content_type = (csvfile.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise MalformedInputError("Only CSV files are allowed.", context={"filename": csvfile.filename})

    max_bytes = get_upload_settings().max_file_bytes
    size = _upload_size(csvfile)
    if size > max_bytes:
        raise UploadTooLarge(
            f"File exceeds the {max_bytes} byte upload limit.",
            context={"size": size, "limit": max_bytes},
        )

    csvfile.file.seek(0)
    return csvfile
