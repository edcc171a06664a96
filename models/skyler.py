"""
Skyler chat models
"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field

from models.common import CamelModel


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(CamelModel):
    messages: List[ChatMessage] = Field(..., min_length=1)
    template_id: Optional[str] = None


class ChatResponse(BaseModel):
    message: str


class ExtractContactsRequest(CamelModel):
    will_id: int
    messages: List[ChatMessage] = Field(..., min_length=1)


class DocumentSuggestionsRequest(CamelModel):
    will_id: Optional[int] = None
    content: Optional[str] = None


class DocumentSuggestion(CamelModel):
    document_type: str
    description: str
    importance: Literal["high", "medium", "low"] = "medium"
    reason: str = ""


class DocumentSuggestionsResponse(CamelModel):
    suggestions: List[DocumentSuggestion]
    prompt: str
