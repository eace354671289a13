"""
API route aggregator: register endpoints; no logic, only delegate to handlers and routers.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from taskmarket.api import agent, auth, integrations, payments, settings, tasks
from taskmarket.api.deps import optional_user
from taskmarket.api.handlers import handle_upload
from taskmarket.core.auth import AuthUser
from taskmarket.schemas.upload import UploadResponse

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Task marketplace backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Attachments ---

@router.post(
    "/api/uploads",
    response_model=UploadResponse,
    tags=["attachments"],
    summary="Upload a task attachment",
    description="Accept one .txt, .md, .csv or .pdf file; store it in data/uploads/ and extract its text. Returns documentId for use as attachmentId.",
)
async def upload_attachment(
    file: UploadFile = File(..., description="One .txt, .md, .csv or .pdf file."),
    user: AuthUser | None = Depends(optional_user),
) -> UploadResponse:
    return await handle_upload(file, user)


router.include_router(auth.router)
router.include_router(tasks.router)
router.include_router(payments.router)
router.include_router(settings.router)
router.include_router(integrations.router)
router.include_router(agent.router)
