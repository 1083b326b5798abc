"""
Moderation router — reviewer queue and decisions.

Endpoints:
    GET    /api/admin/entries               → non-deleted entries, optional ?status= filter
    POST   /api/admin/entries/{id}/approve  → approve a pending or rejected entry
    POST   /api/admin/entries/{id}/reject   → reject with a reason
    DELETE /api/admin/entries/{id}          → administrator soft delete
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from travel_diary.config import Settings
from travel_diary.errors import ValidationError
from travel_diary.models.account import Account
from travel_diary.models.entry import EntryStatus
from travel_diary.routers.auth import require_administrator, require_moderator
from travel_diary.routers.deps import get_repository, get_settings
from travel_diary.schemas.entry import EntryOut, EntryPage, RejectRequest
from travel_diary.services.entries import EntryRepository, page_count

router = APIRouter(prefix="/api/admin/entries", tags=["moderation"])


@router.get("", response_model=EntryPage)
async def review_queue(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    current_account: Account = Depends(require_moderator),
    repository: EntryRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    status_filter = None
    if status:
        try:
            status_filter = EntryStatus(status)
        except ValueError:
            raise ValidationError("status", "Invalid status filter value.")

    entries, total = await repository.list_for_review(status=status_filter, page=page)
    return EntryPage(
        entries=[EntryOut.model_validate(e) for e in entries],
        page=page,
        pages=page_count(total, settings.PAGE_SIZE),
        total=total,
    )


@router.post("/{entry_id}/approve", response_model=EntryOut)
async def approve_entry(
    entry_id: str,
    current_account: Account = Depends(require_moderator),
    repository: EntryRepository = Depends(get_repository),
):
    return await repository.approve(entry_id, current_account)


@router.post("/{entry_id}/reject", response_model=EntryOut)
async def reject_entry(
    entry_id: str,
    payload: Optional[RejectRequest] = None,
    current_account: Account = Depends(require_moderator),
    repository: EntryRepository = Depends(get_repository),
):
    reason = payload.reason if payload is not None else None
    return await repository.reject(entry_id, reason, current_account)


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: str,
    current_account: Account = Depends(require_administrator),
    repository: EntryRepository = Depends(get_repository),
):
    await repository.soft_delete(entry_id, current_account)
    return {"message": "Entry logically deleted by administrator"}
