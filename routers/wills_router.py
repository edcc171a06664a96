"""
Wills router - will CRUD, locking, wizard progress and package download
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from crud.will import WillRepository
from database import get_db
from database_models import Will
from models.will import (
    WillCreateRequest,
    WillUpdateRequest,
    WillOut,
    ProgressOut,
    ProgressUpdateRequest,
    TrustScoreOut,
)
from services import progress_tracker
from services.progress_tracker import (
    WillCreationStep,
    IncompleteWillError,
    WillLockedError,
)
from services.notification_service import NotificationService
from services.package_service import DocumentPackageAssembler, PackageDocument
from utils.file_storage import delete_stored_file
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

wills_router = APIRouter(prefix="/api/wills", tags=["wills"])


async def get_owned_will(will_id: int, current_user: dict, db: AsyncSession) -> Will:
    """Load a will owned by the current user; anything else is a 404."""
    will = await WillRepository(db).get_will(will_id, current_user["user_id"])
    if not will:
        raise HTTPException(status_code=404, detail="Will not found")
    return will


def ensure_unlocked(will: Will) -> None:
    """409 for any mutation of a locked will."""
    try:
        progress_tracker.ensure_unlocked(will)
    except WillLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))


def get_package_assembler() -> DocumentPackageAssembler:
    """FastAPI dependency."""
    return DocumentPackageAssembler()


# Static paths are declared before /{will_id}


@wills_router.get("/resume", response_model=ProgressOut)
async def resume_will(
    will_id: Optional[int] = Query(default=None, alias="willId"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Where to send a returning user. A missing, unknown or foreign will ID
    resolves to template selection rather than an error.
    """
    will = None
    if will_id is not None:
        will = await WillRepository(db).get_will(will_id, current_user["user_id"])
    return progress_tracker.resolve_resume(will)


@wills_router.get("", response_model=List[WillOut])
async def list_wills(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await WillRepository(db).list_wills(current_user["user_id"])


@wills_router.post("", response_model=WillOut, status_code=201)
async def create_will(
    request: WillCreateRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a draft will. Choosing a template moves the wizard straight to the chat step."""
    step = WillCreationStep.AI_CHAT if request.template_id else WillCreationStep.TEMPLATE_SELECTION
    will = await WillRepository(db).create_will(current_user["user_id"], {
        "title": request.title,
        "content": request.content,
        "template_id": request.template_id,
        "current_step": step.value,
    })
    await NotificationService(db).notify(will.user_id, "will_created", will.id)
    log_endpoint_event("/api/wills", will.user_id, details={"will_id": will.id, "template": request.template_id})
    return will


@wills_router.get("/{will_id}", response_model=WillOut)
async def get_will(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await get_owned_will(will_id, current_user, db)


@wills_router.put("/{will_id}", response_model=WillOut)
async def update_will(
    will_id: int,
    request: WillUpdateRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; last write wins."""
    will = await get_owned_will(will_id, current_user, db)
    ensure_unlocked(will)

    updates = request.model_dump(exclude_unset=True)
    if updates.get("status", will.status) == "completed":
        content = updates.get("content", will.content)
        if not (content or "").strip():
            raise HTTPException(status_code=400, detail="A will cannot be completed without content.")

    return await WillRepository(db).update_will(will, updates)


@wills_router.delete("/{will_id}")
async def delete_will(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Delete a will with its documents, contacts and stored files."""
    will = await get_owned_will(will_id, current_user, db)
    ensure_unlocked(will)

    documents = await WillRepository(db).delete_will(will)
    for document in documents:
        delete_stored_file(document.file_path)
    if will.video_url:
        delete_stored_file(will.video_url)

    log_endpoint_event(f"/api/wills/{will_id}", will.user_id, details={"deleted_documents": len(documents)})
    return {"message": "Will deleted"}


@wills_router.post("/{will_id}/lock", response_model=WillOut)
async def lock_will(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    will = await get_owned_will(will_id, current_user, db)
    if will.status == "locked":
        return will
    will = await WillRepository(db).update_will(will, {"status": "locked"})
    await NotificationService(db).notify(will.user_id, "will_locked", will.id)
    return will


@wills_router.post("/{will_id}/unlock", response_model=WillOut)
async def unlock_will(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Unlocking restores the status implied by the wizard step."""
    will = await get_owned_will(will_id, current_user, db)
    if will.status != "locked":
        return will
    restored = "completed" if will.current_step == WillCreationStep.COMPLETED.value else "draft"
    will = await WillRepository(db).update_will(will, {"status": restored})
    await NotificationService(db).notify(will.user_id, "will_unlocked", will.id)
    return will


# ----------------------------------------------------------------------
# Progress
# ----------------------------------------------------------------------


async def _move_to(will: Will, target: WillCreationStep, db: AsyncSession) -> dict:
    try:
        updates = progress_tracker.plan_transition(will, target)
    except WillLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IncompleteWillError as e:
        raise HTTPException(status_code=400, detail=str(e))

    was_completed = will.status == "completed"
    will = await WillRepository(db).update_will(will, updates)
    if target == WillCreationStep.COMPLETED and not was_completed:
        await NotificationService(db).notify(will.user_id, "will_completed", will.id)
    return progress_tracker.describe(target, will)


@wills_router.get("/{will_id}/progress", response_model=ProgressOut)
async def get_progress(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    will = await get_owned_will(will_id, current_user, db)
    return progress_tracker.describe(progress_tracker.parse_step(will.current_step), will)


@wills_router.post("/{will_id}/progress/advance", response_model=ProgressOut)
async def advance_progress(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    will = await get_owned_will(will_id, current_user, db)
    current = progress_tracker.parse_step(will.current_step)
    return await _move_to(will, progress_tracker.next_step(current), db)


@wills_router.post("/{will_id}/progress/back", response_model=ProgressOut)
async def back_progress(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    will = await get_owned_will(will_id, current_user, db)
    current = progress_tracker.parse_step(will.current_step)
    return await _move_to(will, progress_tracker.previous_step(current), db)


@wills_router.put("/{will_id}/progress", response_model=ProgressOut)
async def set_progress(
    will_id: int,
    request: ProgressUpdateRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        target = WillCreationStep(request.step)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown step '{request.step}'")
    will = await get_owned_will(will_id, current_user, db)
    return await _move_to(will, target, db)


@wills_router.get("/{will_id}/trust-score", response_model=TrustScoreOut)
async def get_trust_score(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    will = await get_owned_will(will_id, current_user, db)
    repo = WillRepository(db)
    contacts = await repo.list_contacts(will.id, will.user_id)
    documents = await repo.list_documents(will.id, will.user_id)
    return progress_tracker.trust_score(will, len(contacts), len(documents))


# ----------------------------------------------------------------------
# Package
# ----------------------------------------------------------------------


@wills_router.get("/{will_id}/package")
async def download_package(
    will_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    assembler: DocumentPackageAssembler = Depends(get_package_assembler),
):
    """ZIP of the will text, its attachments and a video note; plain text if the archive fails."""
    will = await get_owned_will(will_id, current_user, db)
    documents = await WillRepository(db).list_documents(will.id, will.user_id)

    result = await assembler.assemble(
        title=will.title,
        content=will.content,
        documents=[PackageDocument(d.file_name, d.file_path, d.file_type) for d in documents],
        has_video=bool(will.video_url),
        video_url=f"/api/wills/{will.id}/video" if will.video_url else None,
    )
    log_endpoint_event(
        f"/api/wills/{will_id}/package",
        will.user_id,
        "fallback" if result.is_fallback else "success",
        {"unavailable": result.unavailable},
    )
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{result.filename}"',
            "X-Download-Message": result.message,
        },
    )
