"""
API handlers: read request data (e.g. UploadFile), call services, map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Marshalling and exception-to-HTTP mapping.
Lives in the API layer so services stay free of FastAPI/HTTP types.
"""

from fastapi import HTTPException, UploadFile

from taskmarket.core.auth import AuthUser
from taskmarket.core.config import MAX_UPLOAD_BYTES
from taskmarket.schemas.upload import UploadResponse
from taskmarket.services.documents import FileTooLargeError, InvalidFileTypeError, save_attachment


async def handle_upload(file: UploadFile, user: AuthUser | None) -> UploadResponse:
    """
    Read the uploaded attachment, store it through the documents service,
    map bad type or oversize to HTTP 400 and write errors to 500.
    Anonymous uploads belong to "public".
    """
    filename = file.filename or ""
    # Never buffer more than one byte past the largest cap
    content = await file.read(max(MAX_UPLOAD_BYTES.values()) + 1)
    if not content:
        raise HTTPException(status_code=400, detail="Empty file.")
    try:
        saved = save_attachment(filename, content, user.id if user else None)
    except InvalidFileTypeError as e:
        raise HTTPException(
            status_code=400,
            detail=f"Only .txt, .md, .csv, .pdf are allowed. Rejected: {', '.join(e.invalid)}",
        ) from e
    except FileTooLargeError as e:
        raise HTTPException(
            status_code=400,
            detail=f"File too large: {e.filename} (max {e.limit // (1024 * 1024)}MB)",
        ) from e
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save file: {e!s}") from e
    return UploadResponse(uploaded=True, url=saved.path, document_id=saved.document_id)
