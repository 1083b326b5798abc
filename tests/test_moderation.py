"""State machine transitions, applied to detached entries."""

import pytest

from travel_diary.errors import Conflict, Forbidden, NotFound, ValidationError
from travel_diary.models.account import Account, RoleEnum
from travel_diary.models.entry import Entry, EntryStatus
from travel_diary.services import moderation
from travel_diary.services.moderation import Event

OWNER = Account(id="u-owner", username="owner", display_name="Owner", role=RoleEnum.STANDARD)
STRANGER = Account(id="u-other", username="other", display_name="Other", role=RoleEnum.STANDARD)
REVIEWER = Account(id="u-rev", username="rev", display_name="Rev", role=RoleEnum.REVIEWER)
ADMIN = Account(id="u-adm", username="adm", display_name="Adm", role=RoleEnum.ADMINISTRATOR)

REASON_MAX_LENGTH = 255


def apply(entry, event, actor, reason=None):
    return moderation.apply(entry, event, actor, reason, reason_max_length=REASON_MAX_LENGTH)


def make_entry(status=EntryStatus.PENDING, reason=None, deleted=False) -> Entry:
    return Entry(
        id="e-1",
        title="Trip",
        body="Ten+ characters of text",
        images=[],
        owner_id=OWNER.id,
        author_name=OWNER.display_name,
        status=status,
        reject_reason=reason,
        is_deleted=deleted,
    )


def test_submit_forces_pending():
    entry = make_entry(status=EntryStatus.APPROVED, reason="stale")
    apply(entry, Event.SUBMIT, OWNER)
    assert entry.status == EntryStatus.PENDING
    assert entry.reject_reason is None


@pytest.mark.parametrize("actor", [REVIEWER, ADMIN])
def test_approve_pending(actor):
    entry = make_entry()
    apply(entry, Event.APPROVE, actor)
    assert entry.status == EntryStatus.APPROVED
    assert entry.reject_reason is None


def test_approve_rejected_clears_reason():
    entry = make_entry(EntryStatus.REJECTED, "blurry photos")
    apply(entry, Event.APPROVE, REVIEWER)
    assert entry.status == EntryStatus.APPROVED
    assert entry.reject_reason is None


def test_approve_twice_conflicts():
    entry = make_entry()
    apply(entry, Event.APPROVE, REVIEWER)
    with pytest.raises(Conflict):
        apply(entry, Event.APPROVE, REVIEWER)
    assert entry.status == EntryStatus.APPROVED


@pytest.mark.parametrize("event", [Event.APPROVE, Event.REJECT])
@pytest.mark.parametrize("actor", [None, OWNER, STRANGER])
def test_moderation_requires_reviewer_role(event, actor):
    entry = make_entry()
    with pytest.raises(Forbidden):
        apply(entry, event, actor, reason="nope")
    assert entry.status == EntryStatus.PENDING


def test_reject_pending_sets_trimmed_reason():
    entry = make_entry()
    apply(entry, Event.REJECT, REVIEWER, reason="  blurry photos ")
    assert entry.status == EntryStatus.REJECTED
    assert entry.reject_reason == "blurry photos"


def test_reject_rejected_replaces_reason():
    entry = make_entry(EntryStatus.REJECTED, "blurry photos")
    apply(entry, Event.REJECT, ADMIN, reason="still blurry")
    assert entry.reject_reason == "still blurry"


@pytest.mark.parametrize("reason", [None, "", "   ", "x" * 256])
def test_reject_needs_valid_reason(reason):
    entry = make_entry()
    with pytest.raises(ValidationError) as exc:
        apply(entry, Event.REJECT, REVIEWER, reason=reason)
    assert exc.value.field == "reason"
    assert entry.status == EntryStatus.PENDING
    assert entry.reject_reason is None


def test_reject_reason_at_limit_is_accepted():
    entry = make_entry()
    apply(entry, Event.REJECT, REVIEWER, reason="x" * REASON_MAX_LENGTH)
    assert len(entry.reject_reason) == REASON_MAX_LENGTH


def test_reject_reason_limit_comes_from_caller():
    entry = make_entry()
    with pytest.raises(ValidationError):
        moderation.apply(entry, Event.REJECT, REVIEWER, "too long", reason_max_length=5)
    assert entry.status == EntryStatus.PENDING

    with pytest.raises(TypeError):
        moderation.apply(entry, Event.REJECT, REVIEWER, "fine")


def test_cannot_reject_approved():
    entry = make_entry(EntryStatus.APPROVED)
    with pytest.raises(Conflict):
        apply(entry, Event.REJECT, REVIEWER, reason="changed my mind")
    assert entry.status == EntryStatus.APPROVED
    assert entry.reject_reason is None


@pytest.mark.parametrize("status,reason", [
    (EntryStatus.PENDING, None),
    (EntryStatus.REJECTED, "blurry photos"),
])
def test_owner_edit_requeues(status, reason):
    entry = make_entry(status, reason)
    apply(entry, Event.OWNER_EDIT, OWNER)
    assert entry.status == EntryStatus.PENDING
    assert entry.reject_reason is None


def test_owner_cannot_edit_approved():
    entry = make_entry(EntryStatus.APPROVED)
    with pytest.raises(Conflict):
        apply(entry, Event.OWNER_EDIT, OWNER)
    assert entry.status == EntryStatus.APPROVED


@pytest.mark.parametrize("actor", [None, STRANGER, REVIEWER, ADMIN])
def test_only_owner_edits(actor):
    with pytest.raises(Forbidden):
        apply(make_entry(), Event.OWNER_EDIT, actor)


@pytest.mark.parametrize("actor", [OWNER, ADMIN])
@pytest.mark.parametrize("status", list(EntryStatus))
def test_delete_from_any_state(actor, status):
    entry = make_entry(status)
    apply(entry, Event.DELETE, actor)
    assert entry.is_deleted is True
    assert entry.status == status


@pytest.mark.parametrize("actor", [None, STRANGER, REVIEWER])
def test_delete_requires_owner_or_admin(actor):
    entry = make_entry()
    with pytest.raises(Forbidden):
        apply(entry, Event.DELETE, actor)
    assert entry.is_deleted is False


@pytest.mark.parametrize("event", [Event.APPROVE, Event.REJECT, Event.OWNER_EDIT, Event.DELETE])
def test_deleted_entries_are_gone(event):
    entry = make_entry(deleted=True)
    with pytest.raises(NotFound):
        apply(entry, event, ADMIN if event != Event.OWNER_EDIT else OWNER, reason="r")
