"""
Oasis E-Learning API - Main Application
Registers routers, CORS, error handlers and database indexes
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from oasis import __version__
from oasis.auth.router import router as auth_router
from oasis.config import get_settings
from oasis.courses.router import router as course_router
from oasis.database import close_client, create_indexes, get_db_instance
from oasis.errors import register_exception_handlers
from oasis.progress.router import router as progress_router
from oasis.users.router import router as user_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def create_app() -> FastAPI:
    # Fails here, at process start, when JWT_SECRET_KEY is missing
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = FastAPI(title="Oasis E-Learning API", version=__version__)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # ==================== ROUTER REGISTRATION ====================
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(user_router, prefix=API_PREFIX)
    app.include_router(course_router, prefix=API_PREFIX)
    app.include_router(progress_router, prefix=API_PREFIX)

    @app.get(f"{API_PREFIX}/health", tags=["System"])
    async def health():
        return {"status": "OK", "version": __version__}

    @app.on_event("startup")
    async def startup_event():
        await create_indexes(get_db_instance())
        logger.info("Oasis API started")

    @app.on_event("shutdown")
    async def shutdown_event():
        close_client()

    return app


app = create_app()
