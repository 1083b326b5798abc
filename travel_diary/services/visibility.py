"""Visibility gate for the read path."""

from typing import Optional

from travel_diary.models.account import Account
from travel_diary.models.entry import Entry, EntryStatus


def can_view(entry: Entry, requester: Optional[Account]) -> bool:
    """Whether ``requester`` (``None`` for anonymous) may read ``entry``.

    Callers must answer "not found" when this is false, whatever the reason,
    so hidden entries are indistinguishable from missing ones.
    """
    if entry.is_deleted:
        return False
    if entry.status == EntryStatus.APPROVED:
        return True
    if requester is None:
        return False
    return requester.id == entry.owner_id or requester.is_moderator
