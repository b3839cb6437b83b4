# Main application entry point
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError

from .api import auth_router, health_router, notes_router, search_router, sharing_router, users_router
from .config import get_settings
from .core.exceptions import NoteKeeperError, StorageFailureError
from .core.logging import LoggingMiddleware, get_logger, setup_logging
from .core.redis_client import get_redis_client
from .database import create_tables

settings = get_settings()
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    logger.info(
        "Starting NoteKeeper application",
        extra={"version": settings.app_version, "environment": settings.environment, "debug": settings.debug},
    )

    redis_client = get_redis_client()
    try:
        await redis_client.connect()
    except Exception as e:
        # cache misses everywhere until Redis comes back
        logger.warning(f"Redis connection failed: {e}. Continuing without Redis...")

    if settings.create_tables_on_startup:
        await create_tables()
        logger.info("Database tables created/verified")

    yield

    logger.info("Shutting down NoteKeeper application")
    await redis_client.disconnect()


app = FastAPI(
    title=settings.app_name,
    description="Multi-user notes with optimistic concurrency and version history",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NoteKeeperError)
async def notekeeper_error_handler(request: Request, exc: NoteKeeperError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "Request failed",
        extra={
            "path": request.url.path,
            "status_code": exc.status_code,
            "error_code": exc.code,
            "error_message": exc.message,
        },
    )
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(DBAPIError)
async def storage_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    # driver errors that escaped a service, e.g. on a read path
    return await notekeeper_error_handler(request, StorageFailureError(cause=exc))


app.include_router(auth_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(notes_router, prefix="/api")
app.include_router(search_router, prefix="/api")
app.include_router(sharing_router, prefix="/api")
app.include_router(health_router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "NoteKeeper API"}


@app.get("/api/")
async def api_root():
    return {
        "message": "NoteKeeper API",
        "version": settings.app_version,
        "documentation": {"swagger_ui": "/docs", "redoc": "/redoc", "openapi_json": "/openapi.json"},
        "endpoints": {
            "authentication": "/api/auth/",
            "users": "/api/users/",
            "notes": "/api/notes/",
            "search": "/api/search/",
            "sharing": "/api/sharing/",
            "health": "/api/health/",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("notekeeper.main:app", host=settings.host, port=settings.port, reload=settings.reload)
