# rentals/core/middleware.py
import logging
from typing import Optional

from fastapi import Request
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import RedirectResponse, Response

from rentals.core.config import Settings
from rentals.core.security import verify_access_token
from rentals.db import crud_users
from rentals.db.models import User

logger = logging.getLogger(__name__)


def resolve_locale(settings: Settings, value: Optional[str]) -> str:
    """Cookie value if it names a supported locale, otherwise the default (es)."""
    if value and value in settings.LOCALES:
        return value
    return settings.DEFAULT_LOCALE


def strip_locale(settings: Settings, path: str) -> str:
    """/es/auth/login -> /auth/login, /en -> /"""
    parts = path.split("/", 2)
    if len(parts) > 1 and parts[1] in settings.LOCALES:
        return "/" + (parts[2] if len(parts) > 2 else "")
    return path


def is_unguarded_path(settings: Settings, path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in settings.UNGUARDED_PATH_PREFIXES)


def is_public_path(settings: Settings, path: str) -> bool:
    path = strip_locale(settings, path)
    if path in settings.PUBLIC_PATHS:
        return True
    return any(path.startswith(prefix) for prefix in settings.PUBLIC_PATH_PREFIXES)


async def user_from_token(request: Request, token: Optional[str]) -> Optional[User]:
    if not token:
        return None

    settings: Settings = request.app.state.settings
    try:
        payload = verify_access_token(settings, token)
        user_id = int(payload["user_id"])
    except (JWTError, KeyError, TypeError, ValueError):
        logger.info("ignoring invalid session token")
        return None

    async with request.app.state.sessionmaker() as db:
        return await crud_users.get_user(db, user_id)


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Per request: resolve the locale from the NEXT_LOCALE cookie and the user from
    the session cookie. Anonymous visitors asking for a page outside the public
    allow-list are redirected to the login page. JSON API routes are left to
    their own dependencies.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        settings: Settings = request.app.state.settings
        path = request.url.path

        locale_cookie = request.cookies.get(settings.LOCALE_COOKIE_NAME)
        request.state.locale = resolve_locale(settings, locale_cookie)
        request.state.user = None

        if is_unguarded_path(settings, path):
            response = await call_next(request)
        else:
            request.state.user = await user_from_token(
                request, request.cookies.get(settings.SESSION_COOKIE_NAME)
            )
            if request.state.user is None and not is_public_path(settings, path):
                logger.info("anonymous request to %s redirected to login", path)
                response = RedirectResponse(settings.LOGIN_PATH, status_code=307)
            else:
                response = await call_next(request)

        if not locale_cookie:
            response.set_cookie(
                settings.LOCALE_COOKIE_NAME,
                settings.DEFAULT_LOCALE,
                path="/",
                max_age=settings.LOCALE_COOKIE_MAX_AGE,
            )
        return response
