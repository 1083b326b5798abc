"""Account lookup — the pipeline's only window onto the account store."""

from sqlalchemy.ext.asyncio import AsyncSession

from travel_diary.errors import NotFound
from travel_diary.models.account import Account


async def resolve_account(db: AsyncSession, account_id: str) -> Account:
    """Load an account by id, raising ``NotFound`` when it does not exist."""
    account = await db.get(Account, account_id)
    if account is None:
        raise NotFound("Account not found")
    return account
