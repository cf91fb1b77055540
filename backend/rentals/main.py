import logging
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from rentals.core.config import Settings, get_settings
from rentals.core.middleware import SessionMiddleware
from rentals.db.base import Base
from rentals.db.session import build_engine, build_sessionmaker
from rentals.api.routers import (
    admin as admin_router,
    apartments as apartments_router,
    auth as auth_router,
    bookings as bookings_router,
    pages as pages_router,
)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.PROJECT_NAME)

    # ---------------------------
    # State: settings + DB
    # ---------------------------
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.sessionmaker = build_sessionmaker(app.state.engine)

    # ---------------------------
    # Middleware
    # ---------------------------
    app.add_middleware(SessionMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------
    # Static files (uploaded images)
    # ---------------------------
    upload_dir = Path(settings.STATIC_UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.STATIC_URL_PREFIX, StaticFiles(directory=upload_dir), name="uploads")

    # ---------------------------
    # Startup / shutdown
    # ---------------------------
    @app.on_event("startup")
    async def on_startup():
        async with app.state.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.engine.dispose()

    # ---------------------------
    # Routers
    # ---------------------------
    app.include_router(auth_router.router, prefix="/api/auth", tags=["auth"])
    app.include_router(apartments_router.router, prefix="/api/apartments", tags=["apartments"])
    app.include_router(bookings_router.router, prefix="/api/bookings", tags=["bookings"])
    app.include_router(admin_router.router, prefix="/api/admin", tags=["admin"])

    # ---------------------------
    # Health check
    # ---------------------------
    @app.get("/ping")
    async def ping():
        return {"status": "ok"}

    # catch-all /{locale} routes go last
    app.include_router(pages_router.router, tags=["pages"])

    return app


# ---------------------------
# Run
# ---------------------------
if __name__ == "__main__":
    uvicorn.run("rentals.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
