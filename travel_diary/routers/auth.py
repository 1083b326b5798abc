"""
Identity dependencies — decode the caller's JWT and load their account.

Tokens are issued elsewhere; ``create_access_token`` exists for tooling and
tests. The token may arrive in the ``access_token`` cookie or as a
``Bearer`` Authorization header.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt

from travel_diary.config import Settings
from travel_diary.models.account import Account

COOKIE_KEY = "access_token"


def create_access_token(settings: Settings, account_id: str) -> str:
    """Create a signed JWT with an expiry claim."""
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    return jwt.encode(
        {"sub": account_id, "exp": expire},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


def _extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(COOKIE_KEY)


async def get_current_account(request: Request) -> Optional[Account]:
    """
    Extract the JWT, decode it, and return the Account.
    Returns None when no valid token is present (allows public reads).

    The lookup session is closed before the handler runs so it holds no
    database lock while the request does its own transaction.
    """
    token = _extract_token(request)
    if not token:
        return None
    settings: Settings = request.app.state.settings
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None
    account_id = payload.get("sub")
    if not account_id:
        return None
    async with request.app.state.session_factory() as db:
        return await db.get(Account, account_id)


async def require_account(
    current_account: Optional[Account] = Depends(get_current_account),
) -> Account:
    if current_account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return current_account


async def require_moderator(current_account: Account = Depends(require_account)) -> Account:
    if not current_account.is_moderator:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Reviewer or administrator role required",
        )
    return current_account


async def require_administrator(current_account: Account = Depends(require_account)) -> Account:
    if not current_account.is_administrator:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required",
        )
    return current_account
