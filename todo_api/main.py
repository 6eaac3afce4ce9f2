import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from todo_api.config import settings
from todo_api.database import create_tables
from todo_api.logging_setup import setup_logging
from todo_api.routers.attachments import router as attachments_router
from todo_api.routers.auth import router as auth_router
from todo_api.routers.tasks import router as tasks_router
from todo_api.routers.users import router as users_router

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(level=settings.LOG_LEVEL, log_file=settings.LOG_FILE)

    if len(settings.SECRET_KEY) < MIN_SECRET_LENGTH:
        logger.warning(
            "SECRET_KEY is shorter than %d characters; set a stronger secret in production",
            MIN_SECRET_LENGTH,
        )

    if settings.AUTO_CREATE_TABLES:
        await create_tables()
        logger.info("Database tables ensured")

    Path(settings.STORAGE_DIR).mkdir(parents=True, exist_ok=True)
    logger.info("Blob storage at %s", Path(settings.STORAGE_DIR).resolve())

    yield

    logger.info("Shutting down")


app = FastAPI(
    lifespan=lifespan,
    title="Todo API",
    description="Task management with subtasks and file attachments",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info("%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(tasks_router)
app.include_router(attachments_router)

@app.get("/")
def root():
    return {"message": "Todo API running"}
