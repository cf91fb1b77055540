# rentals/api/dependencies.py
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from rentals.core.config import Settings
from rentals.core.middleware import user_from_token
from rentals.db.models import User

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    """
    User from an ``Authorization: Bearer`` header, falling back to the session cookie.
    """
    settings: Settings = request.app.state.settings
    token = credentials.credentials if credentials else request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )

    user = await user_from_token(request, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    return user


def require_role(role: str):
    async def dep(user: User = Depends(get_current_user)) -> User:
        # allow role OR admin to pass
        if user.role != role and user.role != "admin":
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
            )
        return user

    return dep


require_admin = require_role("admin")
