from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import router as auth_router
from collection import router as collection_router
from core import config
from core.db import Database
from core.logging_config import setup_logging
from image import router as image_router
from item import router as item_router
from user import router as user_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One pool per process, handed to routes through `core.db.get_db`.
    db = Database.from_env()
    await db.connect()
    app.state.db = db
    try:
        yield
    finally:
        await db.close()
        app.state.db = None


def create_app() -> FastAPI:
    setup_logging(config.log_level())

    app = FastAPI(title="Stylebook API", version="0.1.0", lifespan=lifespan)

    # Allow local frontend dev server to call this API from the browser.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router.router, tags=["auth"])
    app.include_router(user_router.router, tags=["users"])
    app.include_router(image_router.router, tags=["images"])
    app.include_router(item_router.router, tags=["items"])
    app.include_router(collection_router.router, tags=["collections"])

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
