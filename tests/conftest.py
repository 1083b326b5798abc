from types import SimpleNamespace

import pytest

from travel_diary.config import Settings
from travel_diary.database import build_engine, build_session_factory, create_schema
from travel_diary.models.account import Account, RoleEnum
from travel_diary.services.entries import EntryRepository
from travel_diary.services.media import ImageTransformer
from travel_diary.services.storage import MediaStore
from travel_diary.services.submissions import SubmissionOrchestrator


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DEBUG=False,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'diary.db'}",
        MEDIA_ROOT=str(tmp_path / "media"),
        PAGE_SIZE=3,
    )


@pytest.fixture
async def session_factory(settings):
    engine = build_engine(settings)
    await create_schema(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
async def accounts(session_factory):
    people = SimpleNamespace(
        owner=Account(
            username="una",
            display_name="Una Owner",
            avatar_url="/avatars/una.png",
            role=RoleEnum.STANDARD,
        ),
        other=Account(username="otto", display_name="Otto Other", role=RoleEnum.STANDARD),
        reviewer=Account(username="rita", display_name="Rita Reviewer", role=RoleEnum.REVIEWER),
        admin=Account(username="root", display_name="Ada Admin", role=RoleEnum.ADMINISTRATOR),
    )
    async with session_factory() as session:
        session.add_all(vars(people).values())
        await session.commit()
    return people


@pytest.fixture
def store(settings):
    media = MediaStore(settings.MEDIA_ROOT)
    media.ensure_layout()
    return media


@pytest.fixture
def repository(session_factory, settings):
    return EntryRepository(session_factory, settings)


@pytest.fixture
def orchestrator(settings, repository, store):
    return SubmissionOrchestrator(settings, repository, store, ImageTransformer(settings, store))
