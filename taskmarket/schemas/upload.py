"""Schemas for the attachment upload endpoint."""

from pydantic import Field

from taskmarket.schemas.common import ApiModel


class UploadResponse(ApiModel):
    """Response after storing an attachment under data/uploads/."""

    uploaded: bool = Field(..., description="True when the file was stored.")
    url: str = Field(..., description="Relative path of the stored file, e.g. data/uploads/ab12_notes.pdf")
    document_id: str = Field(..., description="Id to pass as attachmentId when creating a task.")

    model_config = {
        "json_schema_extra": {
            "examples": [{"uploaded": True, "url": "data/uploads/3f9c0a1b2c4d_notes.pdf", "documentId": "3f9c0a1b2c4d4e5f"}]
        }
    }
