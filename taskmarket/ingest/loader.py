# Minimal attachment loader: file bytes -> plain text.
# Supports .txt, .md, .csv, .pdf. Single place for "file/bytes → text".

import io
from pathlib import Path


def document_type(filename: str) -> str:
    """Document row type for a filename: PDF, CSV or TEXT."""
    ext = Path(filename).suffix.lower() if filename else ""
    if ext == ".pdf":
        return "PDF"
    if ext == ".csv":
        return "CSV"
    return "TEXT"


def bytes_to_text(raw: bytes, filename: str) -> str:
    """
    Convert raw file bytes to text by extension. PDFs go through pypdf;
    everything else is decoded as UTF-8 with replacement.
    """
    ext = Path(filename).suffix.lower() if filename else ""
    if ext == ".pdf":
        return _read_pdf(raw)
    return raw.decode("utf-8", errors="replace")


def _read_pdf(raw: bytes) -> str:
    from pypdf import PdfReader
    reader = PdfReader(io.BytesIO(raw))
    return "\n".join(page.extract_text() or "" for page in reader.pages)
