"""
Moderation state machine — the only code that changes ``Entry.status``.

    (none)           --submit-->      pending
    pending/rejected --approve-->     approved
    pending/rejected --reject-->      rejected   (reason required)
    pending/rejected --owner-edit-->  pending
    any              --delete-->      same state, deleted flag set

Approving an approved entry, rejecting an approved entry and editing an
approved entry are conflicts. ``reject_reason`` is set only by ``reject``
and cleared by every other transition.
"""

import enum
import logging
from typing import Optional

from travel_diary.errors import Conflict, Forbidden, NotFound, ValidationError
from travel_diary.models.account import Account
from travel_diary.models.entry import Entry, EntryStatus

logger = logging.getLogger(__name__)


class Event(str, enum.Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    OWNER_EDIT = "owner-edit"
    DELETE = "delete"


def normalize_reason(reason: Optional[str], max_length: int) -> str:
    """Trim a rejection reason and check its length."""
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("reason", "Rejection reason is required")
    if len(cleaned) > max_length:
        raise ValidationError(
            "reason", f"Rejection reason must be at most {max_length} characters"
        )
    return cleaned


def _require_moderator(actor: Optional[Account]) -> Account:
    if actor is None or not actor.is_moderator:
        raise Forbidden("Only reviewers or administrators can moderate entries")
    return actor


def apply(
    entry: Entry,
    event: Event,
    actor: Optional[Account],
    reason: Optional[str] = None,
    *,
    reason_max_length: int,
) -> Entry:
    """Apply ``event`` to ``entry`` in place, or raise without touching it."""
    if event == Event.SUBMIT:
        entry.status = EntryStatus.PENDING
        entry.reject_reason = None
        entry.is_deleted = False
        return entry

    if entry.is_deleted:
        raise NotFound()

    if event == Event.APPROVE:
        _require_moderator(actor)
        if entry.status == EntryStatus.APPROVED:
            raise Conflict("Entry is already approved")
        entry.status = EntryStatus.APPROVED
        entry.reject_reason = None
        logger.info(f"Entry {entry.id} approved by {actor.id}")

    elif event == Event.REJECT:
        _require_moderator(actor)
        cleaned = normalize_reason(reason, reason_max_length)
        if entry.status == EntryStatus.APPROVED:
            raise Conflict("Cannot reject an approved entry")
        entry.status = EntryStatus.REJECTED
        entry.reject_reason = cleaned
        logger.info(f"Entry {entry.id} rejected by {actor.id}")

    elif event == Event.OWNER_EDIT:
        if actor is None or actor.id != entry.owner_id:
            raise Forbidden("Only the owner can edit this entry")
        if entry.status == EntryStatus.APPROVED:
            raise Conflict("Approved entries can no longer be edited")
        # Any content change invalidates a prior decision.
        entry.status = EntryStatus.PENDING
        entry.reject_reason = None

    elif event == Event.DELETE:
        if actor is None or not (actor.id == entry.owner_id or actor.is_administrator):
            raise Forbidden("Only the owner or an administrator can delete this entry")
        entry.is_deleted = True

    else:
        raise ValueError(f"Unknown moderation event: {event!r}")

    return entry
