"""Entry model — a user-submitted diary entry subject to moderation."""

import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from travel_diary.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntryStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Entry(Base):
    __tablename__ = "entries"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # ── Content ──
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    # Uploaded-and-relocated video (storage ref) or an external URL, never both.
    video_path: Mapped[Optional[str]] = mapped_column(String(500))
    video_url: Mapped[Optional[str]] = mapped_column(String(500))

    # ── Authorship (denormalized snapshot) ──
    owner_id: Mapped[str] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    author_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    author_avatar: Mapped[Optional[str]] = mapped_column(String(500))

    # ── Moderation ──
    status: Mapped[EntryStatus] = mapped_column(
        Enum(EntryStatus), default=EntryStatus.PENDING, nullable=False, index=True
    )
    reject_reason: Mapped[Optional[str]] = mapped_column(String(255))
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    # ── Timestamps ──
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def media_refs(self) -> List[str]:
        """Every storage artifact this row references."""
        refs = list(self.images or [])
        if self.video_path:
            refs.append(self.video_path)
        return refs
