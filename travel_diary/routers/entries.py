"""
Entries router — public listing, detail, and owner submissions.

Endpoints:
    GET    /api/entries          → approved entries (title / author filters, paginated)
    GET    /api/entries/mine     → the caller's own entries
    GET    /api/entries/{id}     → entry detail (hidden entries answer 404)
    POST   /api/entries          → submit a new entry (multipart)
    PUT    /api/entries/{id}     → owner edit, re-queues for moderation (multipart)
    DELETE /api/entries/{id}     → owner soft delete
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from travel_diary.config import Settings
from travel_diary.models.account import Account
from travel_diary.routers.auth import get_current_account, require_account
from travel_diary.routers.deps import as_uploads, get_orchestrator, get_repository, get_settings
from travel_diary.schemas.entry import EntryDraft, EntryOut, EntryPage, EntryPatch
from travel_diary.services.entries import EntryRepository, page_count
from travel_diary.services.submissions import SubmissionOrchestrator

router = APIRouter(prefix="/api/entries", tags=["entries"])


# ═══════════════════════════════════════════════════════════════
#  Read path
# ═══════════════════════════════════════════════════════════════

@router.get("", response_model=EntryPage)
async def list_entries(
    title: Optional[str] = None,
    author: Optional[str] = None,
    page: int = Query(1, ge=1),
    repository: EntryRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    entries, total = await repository.list_approved(title=title, author=author, page=page)
    return EntryPage(
        entries=[EntryOut.model_validate(e) for e in entries],
        page=page,
        pages=page_count(total, settings.PAGE_SIZE),
        total=total,
    )


@router.get("/mine", response_model=List[EntryOut])
async def my_entries(
    current_account: Account = Depends(require_account),
    repository: EntryRepository = Depends(get_repository),
):
    return await repository.list_by_owner(current_account.id)


@router.get("/{entry_id}", response_model=EntryOut)
async def read_entry(
    entry_id: str,
    current_account: Optional[Account] = Depends(get_current_account),
    repository: EntryRepository = Depends(get_repository),
):
    return await repository.get_visible(entry_id, current_account)


# ═══════════════════════════════════════════════════════════════
#  Write path
# ═══════════════════════════════════════════════════════════════

@router.post("", response_model=EntryOut, status_code=status.HTTP_201_CREATED)
async def create_entry(
    title: str = Form(""),
    body: str = Form(""),
    video_url: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    video: Optional[UploadFile] = File(None),
    current_account: Account = Depends(require_account),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    videos = as_uploads([video] if video else None)
    return await orchestrator.create(
        current_account,
        EntryDraft(title=title, body=body, video_url=video_url),
        images=as_uploads(images),
        video=videos[0] if videos else None,
    )


@router.put("/{entry_id}", response_model=EntryOut)
async def update_entry(
    entry_id: str,
    title: Optional[str] = Form(None),
    body: Optional[str] = Form(None),
    video_url: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    video: Optional[UploadFile] = File(None),
    current_account: Account = Depends(require_account),
    orchestrator: SubmissionOrchestrator = Depends(get_orchestrator),
):
    videos = as_uploads([video] if video else None)
    return await orchestrator.update(
        entry_id,
        current_account,
        EntryPatch(title=title, body=body, video_url=video_url),
        images=as_uploads(images),
        video=videos[0] if videos else None,
    )


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: str,
    current_account: Account = Depends(require_account),
    repository: EntryRepository = Depends(get_repository),
):
    await repository.soft_delete(entry_id, current_account)
    return {"message": "Entry removed successfully"}
