"""
Tests for attachment storage (service + POST /api/uploads) and saved results.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from taskmarket.core import config
from taskmarket.core.errors import PaymentError
from taskmarket.ingest.loader import bytes_to_text, document_type
from taskmarket.main import app
from taskmarket.services.documents import (
    FileTooLargeError,
    InvalidFileTypeError,
    attachment_excerpt,
    get_document,
    save_attachment,
    save_to_drive,
)


class TestSaveAttachment:
    def test_stores_file_and_text(self, tmp_path) -> None:
        saved = save_attachment("notes.md", b"# Title\n\nTitle\n\nBody  ", "u1")
        assert saved.path.startswith("data/uploads/")
        assert saved.path.endswith("_notes.md")
        assert (tmp_path / saved.path).read_bytes() == b"# Title\n\nTitle\n\nBody  "
        doc = get_document(saved.document_id)
        assert doc["user_id"] == "u1"
        assert doc["type"] == "TEXT"
        assert doc["storage"] == "LOCAL"
        assert doc["extracted_text"] == "# Title\n\nTitle\n\nBody"

    def test_rejects_extension(self) -> None:
        with pytest.raises(InvalidFileTypeError) as exc:
            save_attachment("sheet.xlsx", b"x", None)
        assert exc.value.invalid == ["sheet.xlsx"]

    def test_rejects_oversize_for_extension(self) -> None:
        with patch.dict(config.MAX_UPLOAD_BYTES, {".txt": 10}):
            with pytest.raises(FileTooLargeError) as exc:
                save_attachment("big.txt", b"x" * 11, None)
            assert save_attachment("big.csv", b"x" * 11, None).text_length == 11
        assert exc.value.limit == 10

    def test_sanitizes_path_traversal(self, tmp_path) -> None:
        saved = save_attachment("../../etc/data.csv", b"a,b\n1,2", None)
        assert "/" not in saved.path.removeprefix("data/uploads/")
        doc = get_document(saved.document_id)
        assert doc["user_id"] == "public"
        assert doc["type"] == "CSV"

    def test_extraction_failure_keeps_file(self) -> None:
        with patch("taskmarket.services.documents.bytes_to_text", side_effect=ValueError("bad pdf")):
            saved = save_attachment("broken.pdf", b"%PDF-garbage", "u1")
        assert saved.text_length == 0
        assert get_document(saved.document_id)["extracted_text"] is None


def test_attachment_excerpt_truncates() -> None:
    saved = save_attachment("long.txt", b"x" * 5000, "u1")
    assert len(attachment_excerpt(saved.document_id)) == 4000
    assert attachment_excerpt(saved.document_id, max_chars=10) == "x" * 10
    assert attachment_excerpt(None) == ""
    assert attachment_excerpt("missing") == ""


def test_save_to_drive() -> None:
    doc_id = save_to_drive("u1", "Result", "final text")
    doc = get_document(doc_id)
    assert doc["storage"] == "WEB"
    assert doc["extracted_text"] == "final text"


def test_loader_types() -> None:
    assert document_type("a.PDF") == "PDF"
    assert document_type("a.txt") == "TEXT"
    assert bytes_to_text(b"caf\xc3\xa9", "a.txt") == "café"


class TestUploadEndpoint:
    def test_upload_returns_document_id(self, client: TestClient, auth: dict) -> None:
        response = client.post(
            "/api/uploads",
            files={"file": ("brief.txt", b"Summarize Solana fees.", "text/plain")},
            headers=auth["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["uploaded"] is True
        assert get_document(data["documentId"])["user_id"] == auth["user"]["id"]

    def test_upload_bad_extension_is_400(self, client: TestClient) -> None:
        response = client.post("/api/uploads", files={"file": ("run.exe", b"MZ", "application/octet-stream")})
        assert response.status_code == 400
        assert "run.exe" in response.json()["detail"]

    def test_upload_oversize_is_400(self, client: TestClient) -> None:
        with patch.dict(config.MAX_UPLOAD_BYTES, {".pdf": 4}):
            response = client.post("/api/uploads", files={"file": ("big.pdf", b"%PDF-1.4", "application/pdf")})
        assert response.status_code == 400
        assert "big.pdf" in response.json()["detail"]

    def test_upload_empty_file_is_400(self, client: TestClient) -> None:
        response = client.post("/api/uploads", files={"file": ("empty.txt", b"", "text/plain")})
        assert response.status_code == 400

    def test_upload_write_error_is_500(self, client: TestClient) -> None:
        with patch("taskmarket.api.handlers.save_attachment", side_effect=OSError("disk full")):
            response = client.post("/api/uploads", files={"file": ("a.txt", b"x", "text/plain")})
        assert response.status_code == 500

    def test_quick_task_with_attachment(self, client: TestClient, auth: dict) -> None:
        upload = client.post("/api/uploads", files={"file": ("a.txt", b"table rows", "text/plain")}, headers=auth["headers"])
        doc_id = upload.json()["documentId"]
        response = client.post("/api/tasks/quick", json={"attachmentId": doc_id}, headers=auth["headers"])
        assert response.status_code == 200
        detail = client.get(f"/api/tasks/{response.json()['task']['id']}").json()["task"]
        assert detail["attachment"]["id"] == doc_id


def test_root_and_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/").status_code == 200


def test_service_unavailable_maps_to_503(client: TestClient) -> None:
    with patch("taskmarket.api.tasks.task_store.list_market", side_effect=PaymentError("RPC unreachable")):
        response = client.get("/api/market")
    assert response.status_code == 503
    assert response.json() == {"detail": "RPC unreachable"}


def test_lifespan_creates_schema(tmp_db) -> None:
    with TestClient(app):
        assert tmp_db.exists()
