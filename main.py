"""
NextStay authentication service — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_exception_handlers, register_middleware
from auth.jwt import signing_secret
from auth.routes import router as auth_router
from config.settings import config
from database.session import init_models

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "aiosqlite", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="NextStay Auth API",
        version="1.0.0",
        description="Email/password and Google sign-in with JWT sessions.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(auth_router, prefix="/api/auth")

    @app.get("/")
    async def root() -> str:
        return "NextStay API Server is running!"

    @app.on_event("startup")
    async def on_startup():
        # Fails fast in production when JWT_SECRET is missing
        signing_secret()

        logger.info("Ensuring database tables…")
        await init_models()

        if not (config.google_client_id and config.google_client_secret):
            logger.warning("Google sign-in disabled — GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set")
        if not config.admin_email:
            logger.info("ADMIN_EMAIL not set — admin routes are closed")

        logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
