"""
Documents router - supporting documents and video testimony uploads and owner-only downloads
"""

import logging
from pathlib import Path
from typing import List
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from crud.will import WillRepository
from database import get_db
from database_models import WillDocument
from models.will import DocumentOut, WillOut
from routers.wills_router import get_owned_will, ensure_unlocked
from services.notification_service import NotificationService
from utils.file_storage import save_upload, delete_stored_file, resolve_stored_path
from utils.security_utils import validate_uploaded_file, VIDEO_MIME_TYPES
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

documents_router = APIRouter(prefix="/api", tags=["documents"])


@documents_router.get("/wills/{will_id}/documents", response_model=List[DocumentOut])
async def list_documents(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    will = await get_owned_will(will_id, current_user, db)
    return await WillRepository(db).list_documents(will.id, will.user_id)


@documents_router.post("/wills/{will_id}/documents", response_model=DocumentOut, status_code=201)
async def upload_document(
    will_id: int,
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Attach a supporting document to a will.

    Security validations:
    - Filename sanitization (prevents path traversal)
    - File extension whitelist
    - File size limit (20MB)
    - Content signature must match the extension
    """
    will = await get_owned_will(will_id, current_user, db)
    ensure_unlocked(will)

    sanitized_filename, content, mime_type = await validate_uploaded_file(file, kind="document")
    file_path = await save_upload(will.user_id, will.id, sanitized_filename, content)

    repo = WillRepository(db)
    document = await repo.create_document(will, {
        "file_name": sanitized_filename,
        "file_type": mime_type,
        "file_size": len(content),
        "file_path": file_path,
    })
    await repo.touch(will)
    await NotificationService(db).notify(will.user_id, "document_uploaded", document.id)
    log_endpoint_event(f"/api/wills/{will_id}/documents", will.user_id, details={"document_id": document.id})
    return document


async def _delete_document(document: WillDocument, current_user: dict, db: AsyncSession) -> dict:
    will = await get_owned_will(document.will_id, current_user, db)
    ensure_unlocked(will)

    repo = WillRepository(db)
    await repo.delete_document(document)
    await repo.touch(will)
    delete_stored_file(document.file_path)
    await NotificationService(db).notify(will.user_id, "document_deleted", document.id)
    return {"message": "Document deleted"}


def _stored_file_response(file_path: str, media_type: str, filename: str) -> FileResponse:
    path = resolve_stored_path(file_path)
    if path is None or not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path=str(path), media_type=media_type, filename=filename)


@documents_router.get("/documents/{document_id}/file")
async def download_document(document_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Stream a stored document back to its owner."""
    document = await WillRepository(db).get_document(document_id, current_user["user_id"])
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    return _stored_file_response(document.file_path, document.file_type, document.file_name)


@documents_router.delete("/documents/{document_id}")
async def delete_document(document_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    document = await WillRepository(db).get_document(document_id, current_user["user_id"])
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    return await _delete_document(document, current_user, db)


@documents_router.delete("/wills/{will_id}/documents/{document_id}")
async def delete_will_document(
    will_id: int,
    document_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    document = await WillRepository(db).get_document(document_id, current_user["user_id"])
    if not document or document.will_id != will_id:
        raise HTTPException(status_code=404, detail="Document not found")
    return await _delete_document(document, current_user, db)


@documents_router.post("/wills/{will_id}/video", response_model=WillOut)
async def upload_video(
    will_id: int,
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Store the video testimony and link it from the will. A new recording replaces the old one."""
    will = await get_owned_will(will_id, current_user, db)
    ensure_unlocked(will)

    sanitized_filename, content, _ = await validate_uploaded_file(file, kind="video")
    file_path = await save_upload(will.user_id, will.id, sanitized_filename, content, folder="video")

    previous = will.video_url
    will = await WillRepository(db).update_will(will, {"video_url": file_path})
    if previous:
        delete_stored_file(previous)
    await NotificationService(db).notify(will.user_id, "video_recorded", will.id)
    log_endpoint_event(f"/api/wills/{will_id}/video", will.user_id, details={"size": len(content)})
    return will


@documents_router.get("/wills/{will_id}/video")
async def download_video(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    will = await get_owned_will(will_id, current_user, db)
    if not will.video_url:
        raise HTTPException(status_code=404, detail="No video testimony recorded")
    name = Path(will.video_url).name
    media_type = VIDEO_MIME_TYPES.get(Path(name).suffix.lower(), "application/octet-stream")
    return _stored_file_response(will.video_url, media_type, name)
