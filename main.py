"""
Auth Boilerplate API — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import register_error_handlers
from api.middleware import register_middleware
from api.routes import API_VERSION
from api.routes import router as api_router
from auth.routes import router as auth_router
from config.settings import config
from database.session import init_models

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "sqlalchemy.engine", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(*, init_db: bool = True) -> FastAPI:
    app = FastAPI(
        title="Auth Boilerplate API",
        version=API_VERSION,
        description="REST API with user registration, login and JWT authentication.",
        docs_url="/api-docs",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_middleware(app)
    register_error_handlers(app)

    # Routes
    app.include_router(api_router)
    app.include_router(auth_router, prefix="/api/auth")

    if init_db:

        @app.on_event("startup")
        async def on_startup():
            logger.info("Synchronizing database schema…")
            await init_models()
            logger.info("Auth endpoints: http://%s:%d/api/auth", config.host, config.port)
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
