# streamsite/main.py
"""
uvicorn streamsite.main:app --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from streamsite import config
from streamsite.crud import DbStorage
from streamsite.logger import logger
from streamsite.routes import limiter, router
from streamsite.seed import seed_storage
from streamsite.storage import MemStorage, Storage, StorageError


async def build_storage() -> Storage:
    """
    Pick the backend once at startup.

    memory:   always MemStorage.
    database: DbStorage, or refuse to start.
    auto:     DbStorage if DATABASE_URL is set and reachable, else MemStorage.
    """
    backend = config.STORAGE_BACKEND
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemStorage()

    if not config.DATABASE_URL:
        if backend == "database":
            raise RuntimeError('You must set "DATABASE_URL" to use database storage.')
        logger.warning("DATABASE_URL is not set, using in-memory storage")
        return MemStorage()

    storage = None
    try:
        storage = DbStorage.from_url(config.DATABASE_URL, echo=config.SQL_ECHO)
        await storage.create_tables()
        await storage.get_setting("test")
        await seed_storage(storage)
    except StorageError:
        if storage is not None:
            await storage.close()
        if backend == "database":
            raise
        logger.exception("Failed to connect to database, using in-memory storage as fallback")
        return MemStorage()

    logger.info("Successfully connected to database, using DB storage")
    return storage


def create_app(storage: Optional[Storage] = None) -> FastAPI:
    if config.SENTRY_DSN:
        sentry_sdk.init(dsn=config.SENTRY_DSN)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.storage is None:
            app.state.storage = await build_storage()
        yield
        await app.state.storage.close()

    app = FastAPI(title="Rennsz Site", lifespan=lifespan)
    app.state.storage = storage
    app.state.limiter = limiter

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request data", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(status_code=429, content={"message": "Too many requests", "limit": exc.detail})

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    app.include_router(router)
    return app


app = create_app()
