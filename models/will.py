"""
Will, document, contact and progress contracts
"""
from datetime import datetime
from typing import Optional, List, Literal
from pydantic import Field, computed_field, field_serializer

from models.common import CamelModel

ContactRole = Literal["beneficiary", "executor", "witness", "other"]


class WillCreateRequest(CamelModel):
    title: Optional[str] = None
    template_id: Optional[str] = None
    content: Optional[str] = None


class WillUpdateRequest(CamelModel):
    """Partial update. Omitted fields are left untouched. Locking has its own endpoints."""
    title: Optional[str] = None
    content: Optional[str] = None
    contact_info: Optional[dict] = None
    status: Optional[Literal["draft", "completed"]] = None
    template_id: Optional[str] = None


class WillOut(CamelModel):
    id: int
    user_id: int
    title: str
    content: str
    status: str
    template_id: Optional[str] = None
    current_step: str
    contact_info: Optional[dict] = None
    video_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("video_url")
    def serialize_video_url(self, value: Optional[str]) -> Optional[str]:
        # Stored as a path under the uploads root; clients fetch it through the owner-checked route
        return f"/api/wills/{self.id}/video" if value else None


class DocumentOut(CamelModel):
    id: int
    will_id: int
    file_name: str
    file_type: str
    file_size: int
    file_path: str
    uploaded_at: datetime

    @computed_field
    @property
    def file_url(self) -> str:
        return f"/api/documents/{self.id}/file"


class ContactRequest(CamelModel):
    name: str = Field(..., min_length=1)
    relationship: Optional[str] = None
    role: ContactRole = "beneficiary"
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    share_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class ContactUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    relationship: Optional[str] = None
    role: Optional[ContactRole] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    share_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class ContactOut(CamelModel):
    id: int
    will_id: int
    name: str
    relationship: Optional[str] = None
    role: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    share_percentage: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime


class ContactListOut(CamelModel):
    contacts: List[ContactOut]
    share_total: float
    shares_balanced: bool


class ProgressOut(CamelModel):
    will_id: Optional[int] = None
    step: str
    step_index: int
    description: str
    path: str
    next_step: Optional[str] = None
    previous_step: Optional[str] = None
    status: Optional[str] = None


class ProgressUpdateRequest(CamelModel):
    step: str


class TrustScoreOut(CamelModel):
    score: int
    checklist: dict
