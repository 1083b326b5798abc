import asyncio

from travel_diary.config import settings
from travel_diary.database import build_engine, build_session_factory, create_schema
from travel_diary.models.account import Account, RoleEnum
from travel_diary.routers.auth import create_access_token


async def async_main():
    engine = build_engine(settings)
    await create_schema(engine)
    async_session = build_session_factory(engine)

    async with async_session() as session:
        # Create accounts, one per role
        accounts = [
            Account(username="alice", display_name="Alice Wanderer", role=RoleEnum.STANDARD),
            Account(username="ruth", display_name="Ruth Reviewer", role=RoleEnum.REVIEWER),
            Account(username="admin", display_name="Site Admin", role=RoleEnum.ADMINISTRATOR),
        ]
        session.add_all(accounts)
        await session.commit()

        for account in accounts:
            token = create_access_token(settings, account.id)
            print(f"{account.username:<8} {account.role.value:<14} {token}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(async_main())
