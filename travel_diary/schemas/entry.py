"""Entry Pydantic schemas — submission payloads and API output."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from travel_diary.models.entry import EntryStatus


class EntryDraft(BaseModel):
    """Textual metadata of a new submission. Media travel separately."""
    title: str
    body: str
    video_url: Optional[str] = None


class EntryPatch(BaseModel):
    """Partial owner edit. ``None`` leaves a field untouched; an empty
    ``video_url`` clears the video."""
    title: Optional[str] = None
    body: Optional[str] = None
    video_url: Optional[str] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class EntryOut(BaseModel):
    """Entry representation returned by the API."""
    id: str
    title: str
    body: str
    images: List[str] = []
    video_path: Optional[str] = None
    video_url: Optional[str] = None
    owner_id: str
    author_name: str
    author_avatar: Optional[str] = None
    status: EntryStatus
    reject_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EntryPage(BaseModel):
    entries: List[EntryOut]
    page: int
    pages: int
    total: int
