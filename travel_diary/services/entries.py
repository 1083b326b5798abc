"""
Entry repository — the transactional persistence boundary for entries.

Every public coroutine runs in exactly one database transaction. Mutations
lock the target row (``SELECT ... FOR UPDATE``; on SQLite the engine opens
every transaction with ``BEGIN IMMEDIATE`` instead) for the whole
read-modify-write so two concurrent edits cannot clobber each other's state
transition; the loser waits and then sees a ``Conflict``.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Sequence, Set, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from travel_diary.config import Settings
from travel_diary.errors import NotFound, StorageError, ValidationError
from travel_diary.models.account import Account
from travel_diary.models.entry import Entry, EntryStatus
from travel_diary.services import moderation
from travel_diary.services.accounts import resolve_account
from travel_diary.services.moderation import Event
from travel_diary.services.storage import StorageReconciler
from travel_diary.services.visibility import can_view

logger = logging.getLogger(__name__)


@dataclass
class EntryChanges:
    """Resolved owner edit. ``None`` means unchanged; ``video_url=""`` clears the video."""
    title: Optional[str] = None
    body: Optional[str] = None
    images: Optional[List[str]] = None
    video_path: Optional[str] = None
    video_url: Optional[str] = None


def validate_title(settings: Settings, title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("title", "Title is required")
    if len(cleaned) > settings.TITLE_MAX_LENGTH:
        raise ValidationError(
            "title", f"Title must be at most {settings.TITLE_MAX_LENGTH} characters"
        )
    return cleaned


def validate_body(settings: Settings, body: Optional[str]) -> str:
    cleaned = (body or "").strip()
    if not cleaned:
        raise ValidationError("body", "Body is required")
    if len(cleaned) < settings.BODY_MIN_LENGTH:
        raise ValidationError(
            "body", f"Body must be at least {settings.BODY_MIN_LENGTH} characters"
        )
    return cleaned


def validate_image_count(settings: Settings, count: int) -> None:
    if count > settings.MAX_IMAGES_PER_ENTRY:
        raise ValidationError(
            "images", f"Only {settings.MAX_IMAGES_PER_ENTRY} images are allowed"
        )


def validate_video(settings: Settings, has_upload: bool, video_url: Optional[str]) -> None:
    """An uploaded video and an external URL are mutually exclusive."""
    if has_upload and video_url:
        raise ValidationError(
            "video", "Provide either a video upload or a video URL, not both"
        )
    if video_url and len(video_url) > settings.VIDEO_URL_MAX_LENGTH:
        raise ValidationError("video_url", "Video URL is too long")


def page_count(total: int, page_size: int) -> int:
    return -(-total // page_size)


class EntryRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], settings: Settings):
        self._sessions = session_factory
        self.settings = settings

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessions() as session, session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.exception("Entry transaction failed")
            raise StorageError(str(e)) from e

    # ── Writes ──

    async def create_entry(
        self,
        owner_id: str,
        title: str,
        body: str,
        images: Sequence[str] = (),
        video_path: Optional[str] = None,
        video_url: Optional[str] = None,
    ) -> Entry:
        """Persist a new entry in state ``pending``, whatever the caller asked for."""
        title = validate_title(self.settings, title)
        body = validate_body(self.settings, body)
        validate_image_count(self.settings, len(images))
        validate_video(self.settings, bool(video_path), video_url)

        async with self._transaction() as session:
            # The author snapshot is read in the same transaction as the write.
            author = await resolve_account(session, owner_id)
            entry = Entry(
                title=title,
                body=body,
                images=list(images),
                video_path=video_path or None,
                video_url=video_url or None,
            )
            self._assign_author(entry, author)
            moderation.apply(
                entry, Event.SUBMIT, author,
                reason_max_length=self.settings.REJECT_REASON_MAX_LENGTH,
            )
            session.add(entry)
            await session.flush()
        logger.info(f"Entry {entry.id} submitted by {owner_id}")
        return entry

    async def update_entry(
        self,
        entry_id: str,
        changes: EntryChanges,
        requester: Optional[Account],
        reconciler: Optional[StorageReconciler] = None,
    ) -> Entry:
        """Apply an owner edit and send the entry back to ``pending``.

        Artifacts dropped from the entry are handed to ``reconciler`` as
        superseded; they are deleted only once the caller commits it.
        """
        title = validate_title(self.settings, changes.title) if changes.title is not None else None
        body = validate_body(self.settings, changes.body) if changes.body is not None else None
        if changes.images is not None:
            validate_image_count(self.settings, len(changes.images))
        validate_video(self.settings, bool(changes.video_path), changes.video_url)

        async with self._transaction() as session:
            entry = await self._get_visible_for_update(session, entry_id, requester)
            moderation.apply(
                entry, Event.OWNER_EDIT, requester,
                reason_max_length=self.settings.REJECT_REASON_MAX_LENGTH,
            )

            dropped: List[str] = []
            if title is not None:
                entry.title = title
            if body is not None:
                entry.body = body
            if changes.images:
                dropped.extend(ref for ref in entry.images if ref not in changes.images)
                entry.images = list(changes.images)
            if changes.video_path:
                if entry.video_path and entry.video_path != changes.video_path:
                    dropped.append(entry.video_path)
                entry.video_path = changes.video_path
                entry.video_url = None
            elif changes.video_url is not None:
                if entry.video_path:
                    dropped.append(entry.video_path)
                entry.video_path = None
                entry.video_url = changes.video_url or None
            await session.flush()

        if reconciler is not None:
            for ref in dropped:
                reconciler.supersede(ref)
        return entry

    async def approve(self, entry_id: str, requester: Optional[Account]) -> Entry:
        return await self._transition(entry_id, Event.APPROVE, requester)

    async def reject(self, entry_id: str, reason: Optional[str], requester: Optional[Account]) -> Entry:
        return await self._transition(entry_id, Event.REJECT, requester, reason)

    async def soft_delete(self, entry_id: str, requester: Optional[Account]) -> None:
        await self._transition(entry_id, Event.DELETE, requester)
        logger.info(f"Entry {entry_id} deleted by {requester.id}")

    async def _transition(
        self,
        entry_id: str,
        event: Event,
        requester: Optional[Account],
        reason: Optional[str] = None,
    ) -> Entry:
        async with self._transaction() as session:
            entry = await self._get_visible_for_update(session, entry_id, requester)
            moderation.apply(
                entry, event, requester, reason,
                reason_max_length=self.settings.REJECT_REASON_MAX_LENGTH,
            )
            await session.flush()
        return entry

    # ── Reads ──

    async def get_by_id(self, entry_id: str) -> Entry:
        """Return a non-deleted entry, ignoring visibility."""
        async with self._transaction() as session:
            entry = await session.get(Entry, entry_id)
        if entry is None or entry.is_deleted:
            raise NotFound()
        return entry

    async def get_visible(self, entry_id: str, requester: Optional[Account]) -> Entry:
        """Return an entry ``requester`` may read; hidden entries are ``NotFound``."""
        entry = await self.get_by_id(entry_id)
        if not can_view(entry, requester):
            raise NotFound()
        return entry

    async def list_approved(
        self,
        title: Optional[str] = None,
        author: Optional[str] = None,
        page: int = 1,
    ) -> Tuple[List[Entry], int]:
        """One page of public entries, newest first, and the total match count."""
        conditions = [Entry.status == EntryStatus.APPROVED, Entry.is_deleted.is_(False)]
        if title:
            conditions.append(Entry.title.icontains(title, autoescape=True))
        if author:
            conditions.append(Entry.author_name.icontains(author, autoescape=True))
        return await self._page(conditions, page)

    async def list_for_review(
        self, status: Optional[EntryStatus] = None, page: int = 1
    ) -> Tuple[List[Entry], int]:
        """Moderation queue: non-deleted entries in any (or the given) state."""
        conditions = [Entry.is_deleted.is_(False)]
        if status is not None:
            conditions.append(Entry.status == status)
        return await self._page(conditions, page)

    async def list_by_owner(self, owner_id: str) -> List[Entry]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Entry)
                .where(Entry.owner_id == owner_id, Entry.is_deleted.is_(False))
                .order_by(Entry.created_at.desc(), Entry.id.desc())
            )
            return list(result.scalars().all())

    async def referenced_media(self) -> Set[str]:
        """Every storage ref held by any row, logically deleted ones included."""
        refs: Set[str] = set()
        async with self._transaction() as session:
            result = await session.execute(select(Entry))
            for entry in result.scalars():
                refs.update(entry.media_refs())
        return refs

    # ── Helpers ──

    async def _page(self, conditions, page: int) -> Tuple[List[Entry], int]:
        if page < 1:
            raise ValidationError("page", "Page numbers start at 1")
        page_size = self.settings.PAGE_SIZE
        async with self._transaction() as session:
            total = (
                await session.execute(
                    select(func.count()).select_from(Entry).where(*conditions)
                )
            ).scalar_one()
            result = await session.execute(
                select(Entry)
                .where(*conditions)
                .order_by(Entry.created_at.desc(), Entry.id.desc())
                .limit(page_size)
                .offset((page - 1) * page_size)
            )
            return list(result.scalars().all()), total

    async def _get_visible_for_update(
        self, db: AsyncSession, entry_id: str, requester: Optional[Account]
    ) -> Entry:
        result = await db.execute(
            select(Entry).where(Entry.id == entry_id).with_for_update()
        )
        entry = result.scalar_one_or_none()
        if entry is None or not can_view(entry, requester):
            raise NotFound()
        return entry

    @staticmethod
    def _assign_author(entry: Entry, author: Account) -> None:
        """Refresh the denormalized author snapshot when ownership is set or changes."""
        if entry.owner_id == author.id:
            return
        entry.owner_id = author.id
        entry.author_name = author.display_name
        entry.author_avatar = author.avatar_url
