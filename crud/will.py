"""
WillRepository for database operations on wills and their child collections.

Every query is scoped by user_id: a will owned by someone else is reported as
missing rather than forbidden.
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from database_models import Will, WillDocument, WillContact

WILL_FIELDS = ("title", "content", "status", "template_id", "current_step", "contact_info", "video_url")
CONTACT_FIELDS = ("name", "relationship", "role", "email", "phone", "address", "share_percentage", "notes")


class WillRepository:
    """
    Repository class for Will, WillDocument and WillContact operations.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    # ------------------------------------------------------------------
    # Wills
    # ------------------------------------------------------------------

    async def list_wills(self, user_id: int) -> List[Will]:
        """Return the user's wills, most recently updated first."""
        result = await self.db.execute(
            select(Will)
            .where(Will.user_id == user_id)
            .order_by(Will.updated_at.desc(), Will.id.desc())
        )
        return list(result.scalars().all())

    async def get_will(self, will_id: int, user_id: int) -> Optional[Will]:
        """
        Retrieve a will by ID, scoped to its owner.

        Args:
            will_id: Will ID
            user_id: ID of the requesting user

        Returns:
            Will object if found and owned by the user, None otherwise
        """
        result = await self.db.execute(
            select(Will).where(Will.id == will_id, Will.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_will(self, user_id: int, will_data: dict) -> Will:
        """
        Create a new draft will.

        Args:
            user_id: Owner ID
            will_data: Optional keys title, content, template_id, current_step

        Returns:
            Created Will object
        """
        now = datetime.utcnow()
        will = Will(
            user_id=user_id,
            title=will_data.get("title") or "My Will",
            content=will_data.get("content") or "",
            status="draft",
            template_id=will_data.get("template_id"),
            current_step=will_data.get("current_step", "template_selection"),
            created_at=now,
            updated_at=now,
        )
        self.db.add(will)
        await self.db.flush()
        await self.db.refresh(will)
        return will

    async def update_will(self, will: Will, updates: dict) -> Will:
        """
        Merge the given fields into the will and bump updated_at.
        Fields outside the known set are ignored; None values are skipped.
        """
        for key, value in updates.items():
            if key in WILL_FIELDS and value is not None:
                setattr(will, key, value)
        will.updated_at = datetime.utcnow()

        await self.db.flush()
        await self.db.refresh(will)
        return will

    async def delete_will(self, will: Will) -> List[WillDocument]:
        """
        Delete a will together with its documents and contacts.

        Returns:
            The deleted document rows so the caller can remove stored files
        """
        documents = await self.list_documents(will.id, will.user_id)
        await self.db.execute(delete(WillDocument).where(WillDocument.will_id == will.id))
        await self.db.execute(delete(WillContact).where(WillContact.will_id == will.id))
        await self.db.delete(will)
        await self.db.flush()
        return documents

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def list_documents(self, will_id: int, user_id: int) -> List[WillDocument]:
        result = await self.db.execute(
            select(WillDocument)
            .where(WillDocument.will_id == will_id, WillDocument.user_id == user_id)
            .order_by(WillDocument.uploaded_at, WillDocument.id)
        )
        return list(result.scalars().all())

    async def get_document(self, document_id: int, user_id: int) -> Optional[WillDocument]:
        result = await self.db.execute(
            select(WillDocument).where(WillDocument.id == document_id, WillDocument.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_document(self, will: Will, document_data: dict) -> WillDocument:
        """
        Record an uploaded document for a will.

        Args:
            will: Owning will
            document_data: file_name, file_type, file_size, file_path

        Returns:
            Created WillDocument object
        """
        document = WillDocument(
            will_id=will.id,
            user_id=will.user_id,
            file_name=document_data["file_name"],
            file_type=document_data["file_type"],
            file_size=document_data["file_size"],
            file_path=document_data["file_path"],
            uploaded_at=datetime.utcnow(),
        )
        self.db.add(document)
        await self.db.flush()
        await self.db.refresh(document)
        return document

    async def delete_document(self, document: WillDocument) -> None:
        await self.db.delete(document)
        await self.db.flush()

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    async def list_contacts(self, will_id: int, user_id: int) -> List[WillContact]:
        result = await self.db.execute(
            select(WillContact)
            .where(WillContact.will_id == will_id, WillContact.user_id == user_id)
            .order_by(WillContact.id)
        )
        return list(result.scalars().all())

    async def get_contact(self, contact_id: int, will_id: int, user_id: int) -> Optional[WillContact]:
        result = await self.db.execute(
            select(WillContact).where(
                WillContact.id == contact_id,
                WillContact.will_id == will_id,
                WillContact.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def create_contact(self, will: Will, contact_data: dict) -> WillContact:
        contact = WillContact(will_id=will.id, user_id=will.user_id)
        for key in CONTACT_FIELDS:
            if contact_data.get(key) is not None:
                setattr(contact, key, contact_data[key])
        self.db.add(contact)
        await self.db.flush()
        await self.db.refresh(contact)
        return contact

    async def update_contact(self, contact: WillContact, updates: dict) -> WillContact:
        for key, value in updates.items():
            if key in CONTACT_FIELDS:
                setattr(contact, key, value)
        await self.db.flush()
        await self.db.refresh(contact)
        return contact

    async def delete_contact(self, contact: WillContact) -> None:
        await self.db.delete(contact)
        await self.db.flush()

    async def touch(self, will: Will) -> None:
        """Bump updated_at after a child collection changed."""
        will.updated_at = datetime.utcnow()
        await self.db.flush()
