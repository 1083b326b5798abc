import pytest

from travel_diary.models.account import Account, RoleEnum
from travel_diary.models.entry import Entry, EntryStatus
from travel_diary.services.visibility import can_view

OWNER = Account(id="u-owner", username="owner", display_name="Owner", role=RoleEnum.STANDARD)
STRANGER = Account(id="u-other", username="other", display_name="Other", role=RoleEnum.STANDARD)
REVIEWER = Account(id="u-rev", username="rev", display_name="Rev", role=RoleEnum.REVIEWER)
ADMIN = Account(id="u-adm", username="adm", display_name="Adm", role=RoleEnum.ADMINISTRATOR)


def entry(status, deleted=False):
    return Entry(id="e-1", owner_id=OWNER.id, status=status, is_deleted=deleted)


@pytest.mark.parametrize("requester", [None, OWNER, STRANGER, REVIEWER, ADMIN])
def test_approved_is_public(requester):
    assert can_view(entry(EntryStatus.APPROVED), requester)


@pytest.mark.parametrize("status", [EntryStatus.PENDING, EntryStatus.REJECTED])
@pytest.mark.parametrize("requester,expected", [
    (None, False),
    (STRANGER, False),
    (OWNER, True),
    (REVIEWER, True),
    (ADMIN, True),
])
def test_unapproved_is_restricted(status, requester, expected):
    assert can_view(entry(status), requester) is expected


@pytest.mark.parametrize("status", list(EntryStatus))
@pytest.mark.parametrize("requester", [None, OWNER, REVIEWER, ADMIN])
def test_deleted_is_never_visible(status, requester):
    assert can_view(entry(status, deleted=True), requester) is False
