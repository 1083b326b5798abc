"""
Submission orchestrator — create/update of entries with their media.

Sequence per request:
    validate metadata and upload types (no file touched yet)
    -> write raw uploads, transform images, stage derivatives and videos
    -> one repository transaction
    -> reconciler.commit() on success, reconciler.abort() on any failure

Every failure after the first file is written goes through ``abort()`` before
it reaches the caller, cancellation included.
"""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Callable, List, Optional, Sequence

import anyio

from travel_diary.config import Settings
from travel_diary.errors import DiaryError, Forbidden, StorageError, ValidationError
from travel_diary.models.account import Account
from travel_diary.models.entry import Entry
from travel_diary.schemas.entry import EntryDraft, EntryPatch
from travel_diary.services.entries import (
    EntryChanges,
    EntryRepository,
    validate_body,
    validate_image_count,
    validate_title,
    validate_video,
)
from travel_diary.services.media import ImageTransformer
from travel_diary.services.storage import IMAGES, VIDEOS, MediaStore, StorageReconciler

logger = logging.getLogger(__name__)


@dataclass
class UploadedMedia:
    """A raw uploaded file as handed over by the HTTP layer."""
    filename: str
    content_type: str
    file: BinaryIO


class SubmissionOrchestrator:
    def __init__(
        self,
        settings: Settings,
        repository: EntryRepository,
        store: MediaStore,
        transformer: Optional[ImageTransformer] = None,
        reconciler_factory: Optional[Callable[[], StorageReconciler]] = None,
    ):
        self.settings = settings
        self.repository = repository
        self.store = store
        self.transformer = transformer or ImageTransformer(settings, store)
        self.reconciler_factory = reconciler_factory or (lambda: StorageReconciler(store))

    async def create(
        self,
        requester: Optional[Account],
        draft: EntryDraft,
        images: Sequence[UploadedMedia] = (),
        video: Optional[UploadedMedia] = None,
    ) -> Entry:
        if requester is None:
            raise Forbidden("Sign in to submit an entry")
        title = validate_title(self.settings, draft.title)
        body = validate_body(self.settings, draft.body)
        self._check_uploads(images, video, draft.video_url)

        async def persist(reconciler: StorageReconciler) -> Entry:
            image_refs = await self._ingest_images(images, reconciler)
            video_path = await self._ingest_video(video, reconciler)
            return await self.repository.create_entry(
                requester.id,
                title,
                body,
                images=image_refs,
                video_path=video_path,
                video_url=draft.video_url or None,
            )

        return await self._run(persist)

    async def update(
        self,
        entry_id: str,
        requester: Optional[Account],
        patch: EntryPatch,
        images: Sequence[UploadedMedia] = (),
        video: Optional[UploadedMedia] = None,
    ) -> Entry:
        if requester is None:
            raise Forbidden("Sign in to edit an entry")
        if patch.title is not None:
            validate_title(self.settings, patch.title)
        if patch.body is not None:
            validate_body(self.settings, patch.body)
        self._check_uploads(images, video, patch.video_url)

        async def persist(reconciler: StorageReconciler) -> Entry:
            image_refs = await self._ingest_images(images, reconciler)
            video_path = await self._ingest_video(video, reconciler)
            changes = EntryChanges(
                title=patch.title,
                body=patch.body,
                images=image_refs or None,
                video_path=video_path,
                video_url=patch.video_url,
            )
            return await self.repository.update_entry(entry_id, changes, requester, reconciler)

        return await self._run(persist)

    async def _run(self, persist) -> Entry:
        reconciler = self.reconciler_factory()
        try:
            entry = await persist(reconciler)
        except DiaryError:
            reconciler.abort()
            raise
        except Exception as e:
            reconciler.abort()
            logger.exception("Unexpected failure while saving entry media")
            raise StorageError(str(e)) from e
        except BaseException:
            # Cancelled mid-request (client went away): still leave no orphans.
            reconciler.abort()
            raise
        reconciler.commit()
        return entry

    def _check_uploads(
        self,
        images: Sequence[UploadedMedia],
        video: Optional[UploadedMedia],
        video_url: Optional[str],
    ) -> None:
        validate_image_count(self.settings, len(images))
        for upload in images:
            if not (upload.content_type or "").startswith("image/"):
                raise ValidationError(
                    "images", f"{upload.filename} is not an image. Please upload only images."
                )
        if video is not None and not (video.content_type or "").startswith("video/"):
            raise ValidationError(
                "video", f"{video.filename} is not a video. Please upload only videos."
            )
        validate_video(self.settings, video is not None, video_url)

    async def _ingest_images(
        self, images: Sequence[UploadedMedia], reconciler: StorageReconciler
    ) -> List[str]:
        derived: List[str] = []
        for upload in images:
            raw_ref = self.store.new_ref(IMAGES, "images", upload.filename)
            reconciler.track_upload(raw_ref)
            await anyio.to_thread.run_sync(
                self.store.write_stream,
                raw_ref,
                upload.file,
                self.settings.MAX_IMAGE_BYTES,
                "images",
            )
            derived_ref = await self.transformer.transform(raw_ref)
            reconciler.stage(derived_ref)
            derived.append(derived_ref)
        return derived

    async def _ingest_video(
        self, video: Optional[UploadedMedia], reconciler: StorageReconciler
    ) -> Optional[str]:
        if video is None:
            return None
        ref = self.store.new_ref(VIDEOS, "video", video.filename)
        reconciler.stage(ref)
        await anyio.to_thread.run_sync(
            self.store.write_stream,
            ref,
            video.file,
            self.settings.MAX_VIDEO_BYTES,
            "video",
        )
        return ref
