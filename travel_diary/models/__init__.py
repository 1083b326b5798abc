"""
Travel Diary – SQLAlchemy ORM models package.

Imports all model classes so the app can discover them through a single
``import travel_diary.models``.
"""

from travel_diary.models.account import Account, RoleEnum   # noqa: F401
from travel_diary.models.entry import Entry, EntryStatus    # noqa: F401
