"""
Contacts router - beneficiaries, executors and witnesses named in a will
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from crud.will import WillRepository
from database import get_db
from database_models import WillContact
from models.will import ContactRequest, ContactUpdateRequest, ContactOut, ContactListOut
from routers.wills_router import get_owned_will, ensure_unlocked
from services.notification_service import NotificationService

contacts_router = APIRouter(prefix="/api/wills/{will_id}/contacts", tags=["contacts"])


def summarize_contacts(contacts: List[WillContact]) -> dict:
    """
    Listing payload with the beneficiary share total.
    Shares are reported, never enforced: drafts may be unbalanced.
    """
    shares = [c.share_percentage for c in contacts if c.role == "beneficiary" and c.share_percentage is not None]
    total = round(sum(shares), 2)
    return {
        "contacts": contacts,
        "share_total": total,
        "shares_balanced": bool(shares) and abs(total - 100) < 0.01,
    }


@contacts_router.get("", response_model=ContactListOut)
async def list_contacts(will_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    will = await get_owned_will(will_id, current_user, db)
    contacts = await WillRepository(db).list_contacts(will.id, will.user_id)
    return summarize_contacts(contacts)


@contacts_router.post("", response_model=ContactOut, status_code=201)
async def create_contact(
    will_id: int,
    request: ContactRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    will = await get_owned_will(will_id, current_user, db)
    ensure_unlocked(will)
    repo = WillRepository(db)
    contact = await repo.create_contact(will, request.model_dump())
    await repo.touch(will)
    await NotificationService(db).notify(will.user_id, "contact_added", contact.id)
    return contact


async def _get_contact(will_id: int, contact_id: int, current_user: dict, db: AsyncSession):
    will = await get_owned_will(will_id, current_user, db)
    contact = await WillRepository(db).get_contact(contact_id, will.id, will.user_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return will, contact


@contacts_router.put("/{contact_id}", response_model=ContactOut)
async def update_contact(
    will_id: int,
    contact_id: int,
    request: ContactUpdateRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    will, contact = await _get_contact(will_id, contact_id, current_user, db)
    ensure_unlocked(will)
    repo = WillRepository(db)
    updates = {
        key: value for key, value in request.model_dump(exclude_unset=True).items()
        if value is not None or key not in ("name", "role")
    }
    contact = await repo.update_contact(contact, updates)
    await repo.touch(will)
    await NotificationService(db).notify(will.user_id, "contact_updated", contact.id)
    return contact


@contacts_router.delete("/{contact_id}")
async def delete_contact(
    will_id: int,
    contact_id: int,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    will, contact = await _get_contact(will_id, contact_id, current_user, db)
    ensure_unlocked(will)
    repo = WillRepository(db)
    await repo.delete_contact(contact)
    await repo.touch(will)
    return {"message": "Contact deleted"}
