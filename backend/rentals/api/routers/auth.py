# rentals/api/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.api.dependencies import get_app_settings, get_current_user
from rentals.core.config import Settings
from rentals.core.security import create_access_token
from rentals.db import crud_users
from rentals.db.session import get_db
from rentals.schemas.auth import Token
from rentals.schemas.user import UserLogin, UserOut

router = APIRouter()


def set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")


@router.post("/login", response_model=Token)
async def login(
    payload: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = await crud_users.authenticate(db, payload.email, payload.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token = create_access_token(settings, {"user_id": user.id, "role": user.role})
    set_session_cookie(response, settings, token)
    return Token(access_token=token, user=UserOut.model_validate(user))


@router.post("/logout")
async def logout(response: Response, settings: Settings = Depends(get_app_settings)):
    clear_session_cookie(response, settings)
    return {"ok": True}


@router.get("/me", response_model=UserOut)
async def me(current_user=Depends(get_current_user)):
    return UserOut.model_validate(current_user)
