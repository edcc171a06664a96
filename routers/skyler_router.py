"""
Skyler router - chat with the will-creation assistant
"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from crud.will import WillRepository
from database import get_db
from models.skyler import (
    ChatRequest,
    ChatResponse,
    ExtractContactsRequest,
    DocumentSuggestionsRequest,
    DocumentSuggestionsResponse,
)
from models.will import ContactOut
from routers.wills_router import get_owned_will, ensure_unlocked
from services.notification_service import NotificationService
from services.skyler_service import (
    SkylerService,
    SkylerUnavailableError,
    SkylerRequestError,
    get_skyler_service,
    document_upload_prompt,
)
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

skyler_router = APIRouter(prefix="/api/skyler", tags=["skyler"])


def _require_available(skyler: SkylerService) -> None:
    try:
        skyler.client  # raises when no API key is configured
    except SkylerUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))


@skyler_router.post("/chat-stream")
async def chat_stream(
    request: ChatRequest,
    current_user: dict = Depends(get_current_user),
    skyler: SkylerService = Depends(get_skyler_service),
):
    """
    Stream Skyler's reply as server-sent events:
    `data: {"content": "..."}` per fragment, then `data: [DONE]`.
    """
    _require_available(skyler)
    messages = [m.model_dump() for m in request.messages]
    log_endpoint_event("/api/skyler/chat-stream", current_user["user_id"], details={"turns": len(messages)})
    return StreamingResponse(
        skyler.stream_events(messages, request.template_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@skyler_router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    current_user: dict = Depends(get_current_user),
    skyler: SkylerService = Depends(get_skyler_service),
):
    """Non-streaming fallback."""
    _require_available(skyler)
    try:
        message = await skyler.complete([m.model_dump() for m in request.messages], request.template_id)
    except SkylerRequestError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"message": message}


@skyler_router.post("/extract-contacts", response_model=List[ContactOut])
async def extract_contacts(
    request: ExtractContactsRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    skyler: SkylerService = Depends(get_skyler_service),
):
    """Save the beneficiaries, executors and witnesses mentioned in the conversation as will contacts."""
    will = await get_owned_will(request.will_id, current_user, db)
    ensure_unlocked(will)
    _require_available(skyler)

    extracted = await skyler.extract_contacts([m.model_dump() for m in request.messages])
    repo = WillRepository(db)
    existing = {c.name.strip().lower() for c in await repo.list_contacts(will.id, will.user_id)}

    saved = []
    for contact_data in extracted:
        key = contact_data["name"].strip().lower()
        if key in existing:
            continue
        existing.add(key)
        saved.append(await repo.create_contact(will, contact_data))

    if saved:
        await repo.touch(will)
        await NotificationService(db).notify(
            will.user_id, "contacts_extracted", will.id,
            message=f"Skyler added {len(saved)} contact(s) from your conversation.",
        )
    log_endpoint_event("/api/skyler/extract-contacts", will.user_id, details={"saved": len(saved)})
    return saved


@skyler_router.post("/document-suggestions", response_model=DocumentSuggestionsResponse)
async def document_suggestions(
    request: DocumentSuggestionsRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    skyler: SkylerService = Depends(get_skyler_service),
):
    """Suggest supporting documents based on the will content."""
    content = request.content
    if request.will_id is not None:
        will = await get_owned_will(request.will_id, current_user, db)
        content = will.content
    if content is None:
        raise HTTPException(status_code=400, detail="Provide willId or content")
    _require_available(skyler)

    suggestions = await skyler.suggest_documents(content)
    return {"suggestions": suggestions, "prompt": document_upload_prompt(suggestions)}
