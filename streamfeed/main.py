import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from streamfeed.api.v1 import admin, catalog, contents, likes, progress
from streamfeed.core.config import settings
from streamfeed.core.database import SessionLocal
from streamfeed.core.errors import AppError
from streamfeed.core.logsetup import configure_logging
from streamfeed.models.tables import create_tables
from streamfeed.services.audit import write_log
from streamfeed.services.media import MediaChecker
from streamfeed.services.seed import SeedReconciler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    create_tables()

    reconciler = SeedReconciler.from_settings(settings)
    app.state.reconciler = reconciler
    app.state.media = MediaChecker(settings.MEDIA_ROOT, seed_cache=reconciler.cache)

    db = SessionLocal()
    try:
        await run_in_threadpool(reconciler.seed_content_if_needed, db)
    finally:
        db.close()
    yield


app = FastAPI(title="streamfeed", lifespan=lifespan)

app.include_router(catalog.router)
app.include_router(contents.router)
app.include_router(likes.router)
app.include_router(progress.router)
app.include_router(admin.router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())[1:])
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"detail": "; ".join(messages) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    await run_in_threadpool(
        write_log,
        "server_error",
        level="error",
        details={"path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(status_code=500, content={"detail": "Server error"})
