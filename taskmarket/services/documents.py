"""
Attachments and saved results: persist files, extract text, keep document rows.

Responsibility: validate and store uploaded attachments under data/uploads/,
record them in the documents table, and store final task output as a TEXT
document ("save to drive"). Called by the API and the task runner; no HTTP here.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from taskmarket.core.config import ALLOWED_EXTENSIONS, MAX_UPLOAD_BYTES, UPLOAD_DIR_NAME
from taskmarket.core.db import connect, new_id, now_iso, row_to_dict
from taskmarket.ingest.loader import bytes_to_text, document_type
from taskmarket.services.text_processing import clean_text

logger = logging.getLogger(__name__)

# Longest attachment excerpt handed to the agent prompt
ATTACHMENT_PROMPT_MAX = 4000


class InvalidFileTypeError(Exception):
    """Raised when an upload has a disallowed extension."""

    def __init__(self, invalid: list[str]) -> None:
        self.invalid = invalid
        super().__init__(f"Rejected: {', '.join(invalid)}")


class FileTooLargeError(Exception):
    """Raised when an upload exceeds the size cap for its extension."""

    def __init__(self, filename: str, limit: int) -> None:
        self.filename = filename
        self.limit = limit
        super().__init__(f"{filename} exceeds {limit} bytes")


@dataclass
class SavedAttachment:
    """Result of storing one uploaded attachment."""

    document_id: str
    path: str
    text_length: int


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent.parent


def _sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent path traversal (../). Returns safe basename."""
    if not filename or not filename.strip():
        return "unnamed"
    base = Path(filename).name
    safe = base.replace("..", "").replace("/", "").replace("\\", "")
    safe = re.sub(r"[^\w.\-]", "_", safe)
    return safe.strip() or "unnamed"


def _insert_document(fields: dict[str, Any]) -> dict[str, Any]:
    doc = {"id": new_id(), "drive_file_id": None, "url": None, "name": None, "extracted_text": None}
    doc.update(fields)
    doc["created_at"] = now_iso()
    columns = list(doc)
    with connect() as conn:
        conn.execute(
            f"INSERT INTO documents ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
            list(doc.values()),
        )
    return doc


def save_attachment(filename: str, content: bytes, user_id: str | None) -> SavedAttachment:
    """
    Validate, store and index one uploaded file.

    Raises:
        InvalidFileTypeError: extension not in ALLOWED_EXTENSIONS.
        FileTooLargeError: content larger than MAX_UPLOAD_BYTES for the extension.
        OSError: the upload dir or the file could not be written.
    """
    ext = Path(filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise InvalidFileTypeError([filename or "unnamed"])
    if len(content) > MAX_UPLOAD_BYTES[ext]:
        raise FileTooLargeError(filename, MAX_UPLOAD_BYTES[ext])

    root = _project_root() / UPLOAD_DIR_NAME
    root.mkdir(parents=True, exist_ok=True)
    safe_name = _sanitize_filename(filename)
    doc_id = new_id()
    stored_name = f"{doc_id[:12]}_{safe_name}"
    dest = root / stored_name
    if not str(dest.resolve()).startswith(str(root.resolve())):
        raise InvalidFileTypeError([filename])
    dest.write_bytes(content)
    rel_path = f"{UPLOAD_DIR_NAME}/{stored_name}"

    try:
        text = clean_text(bytes_to_text(content, safe_name))
    except Exception as e:
        logger.warning("[documents] text extraction failed for %s: %s", safe_name, e)
        text = ""

    _insert_document({
        "id": doc_id,
        "user_id": user_id or "public",
        "type": document_type(safe_name),
        "storage": "LOCAL",
        "name": safe_name,
        "url": rel_path,
        "extracted_text": text or None,
    })
    logger.info("[documents] saved attachment id=%s path=%s text_len=%d", doc_id, rel_path, len(text))
    return SavedAttachment(document_id=doc_id, path=rel_path, text_length=len(text))


def get_document(document_id: str) -> dict[str, Any] | None:
    with connect() as conn:
        row = conn.execute("SELECT * FROM documents WHERE id = ?", (document_id,)).fetchone()
    return row_to_dict(row)


def attachment_excerpt(document_id: str | None, max_chars: int = ATTACHMENT_PROMPT_MAX) -> str:
    """Extracted text of an attachment, truncated for prompts. Empty when unavailable."""
    if not document_id:
        return ""
    doc = get_document(document_id)
    if not doc:
        return ""
    return (doc.get("extracted_text") or "")[:max_chars]


def save_to_drive(user_id: str, name: str, content: str) -> str:
    """Store a final result as a TEXT document. Returns the document id."""
    doc = _insert_document({
        "user_id": user_id,
        "type": "TEXT",
        "storage": "WEB",
        "name": name,
        "extracted_text": content,
    })
    logger.info("[documents] saved result document id=%s user_id=%s len=%d", doc["id"], user_id, len(content))
    return doc["id"]
