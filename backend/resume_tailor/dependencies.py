from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
import logging
from fastapi.security import OAuth2PasswordBearer
from typing import Optional

from resume_tailor import config
from resume_tailor.db import get_db
from resume_tailor.errors import Unauthenticated
from resume_tailor.models_db import User
from resume_tailor.auth_provider import verify_token, AuthUser

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)

# Session cookie names used by the hosted auth provider's browser SDK
SESSION_COOKIE_NAMES = [
    'sb-access-token',
    '__session',
]


def extract_token_from_request(request: Request, token_from_header: Optional[str] = None) -> Optional[str]:
    """
    Extract the access token from either the Authorization header or cookies.
    """
    if token_from_header:
        return token_from_header

    for cookie_name in SESSION_COOKIE_NAMES:
        token = request.cookies.get(cookie_name)
        if token:
            logger.info(f"Found token in cookie: {cookie_name}")
            return token

    logger.warning("No authentication token found in request")
    return None


async def get_current_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Verify the auth token and get the current user, creating the local user
    record on first login and filling in a missing email afterwards.
    """
    auth_token = extract_token_from_request(request, token)
    if not auth_token:
        raise Unauthenticated("Not authenticated")

    auth_user: AuthUser = await verify_token(auth_token)

    result = await db.execute(select(User).where(User.external_id == auth_user.sub))
    user = result.scalar_one_or_none()

    if user is None:
        logger.info(f"User with external_id {auth_user.sub} not found. Creating new user.")
        user = User(
            external_id=auth_user.sub,
            email=auth_user.email,
            active=True
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
    elif not user.email and auth_user.email:
        user.email = auth_user.email
        await db.commit()
        await db.refresh(user)
        logger.info(f"User profile for {user.external_id} enriched from token claims.")

    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Get the current active user.
    """
    if not current_user.active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def is_admin_user(user: User) -> bool:
    if user.is_admin:
        return True
    return bool(user.email) and user.email.lower() in config.ADMIN_EMAILS


async def get_admin_user(user: User = Depends(get_current_active_user)) -> User:
    if not is_admin_user(user):
        logger.warning(f"Non-admin user {user.id} attempted to access admin endpoint")
        raise HTTPException(status_code=403, detail="This page is restricted to administrators only.")
    return user
