"""Account model — the minimal slice of the external account store the pipeline reads."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column

from travel_diary.database import Base


class RoleEnum(str, enum.Enum):
    STANDARD = "standard"
    REVIEWER = "reviewer"
    ADMINISTRATOR = "administrator"


class Account(Base):
    __tablename__ = "accounts"

    # ── Identity ──
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    username: Mapped[str] = mapped_column(
        String(100), unique=True, index=True, nullable=False
    )
    display_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(
        String(500), default="/default-avatar.png"
    )
    role: Mapped[RoleEnum] = mapped_column(Enum(RoleEnum), default=RoleEnum.STANDARD)

    # ── Timestamps ──
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @property
    def is_moderator(self) -> bool:
        """Reviewers and administrators may see and decide on any entry."""
        return self.role in (RoleEnum.REVIEWER, RoleEnum.ADMINISTRATOR)

    @property
    def is_administrator(self) -> bool:
        return self.role == RoleEnum.ADMINISTRATOR
