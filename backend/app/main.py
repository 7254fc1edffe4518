"""
FastAPI application entry point
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import api_router
from app.core.config import settings
from app.core.database import AsyncSessionLocal, Base, engine
from app.core.exceptions import AppError
from app.core.health import check_db, check_redis, check_storage
from app.core.logging import setup_logging
from app.services.category_service import CategoryService
from app.services.plan_service import PlanService
from app.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


async def seed_defaults() -> None:
    """Plans, categories and the settings row; each step is a no-op when data exists."""
    async with AsyncSessionLocal() as db:
        plans = await PlanService(db).seed_defaults()
        categories = await CategoryService(db).seed_defaults()
        await SettingsService(db).seed_defaults()
    if plans or categories:
        logger.info("Seeded %s plans and %s categories", plans, categories)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan"""
    setup_logging()
    settings.STORAGE_ROOT.mkdir(parents=True, exist_ok=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.SEED_ON_STARTUP:
        await seed_defaults()

    yield

    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Marketplace API: stores, products, subscriptions and promotions",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Generate or pass through X-Request-ID and expose it on request.state"""
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


def _error_response(message: str, request_id: str | None = None, **extra) -> dict:
    body = {"message": message, **extra}
    if request_id:
        body["request_id"] = request_id
    return body


def _field_errors(errors) -> Dict[str, List[str]]:
    """pydantic error list -> {field: [messages]}"""
    fields: Dict[str, List[str]] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form", "header")]
        field = ".".join(loc) or "request"
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        fields.setdefault(field, []).append(msg)
    return fields


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Domain errors: 400/403/404/422/429 with the error envelope"""
    rid = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_response(exc.message, rid, **exc.extra),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    rid = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_response(exc.detail if isinstance(exc.detail, str) else str(exc.detail), rid),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """422 with field-level messages"""
    rid = getattr(request.state, "request_id", None)
    fields = _field_errors(exc.errors())
    message = next(iter(fields.values()))[0] if fields else "The given data was invalid."
    return JSONResponse(status_code=422, content=_error_response(message, rid, errors=fields))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = getattr(request.state, "request_id", None)
    logger.exception("Unhandled error on %s %s (request_id=%s)", request.method, request.url.path, rid)
    return JSONResponse(status_code=500, content=_error_response("Server error", rid))


app.include_router(api_router, prefix=settings.API_V1_STR)

# uploaded files, referenced by relative path
app.mount(settings.STORAGE_URL_PREFIX, StaticFiles(directory=settings.STORAGE_ROOT, check_dir=False), name="storage")


@app.get("/")
async def root():
    return {
        "message": settings.PROJECT_NAME,
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Dependency connectivity: database, Redis, upload storage"""
    db_ok, db_msg = await check_db()
    redis_ok, redis_msg = check_redis()
    storage_ok, storage_msg = check_storage()
    all_ok = db_ok and redis_ok and storage_ok
    return JSONResponse(
        content={
            "status": "healthy" if all_ok else "degraded",
            "service": "marketplace-api",
            "dependencies": {
                "database": {"ok": db_ok, "message": db_msg},
                "redis": {"ok": redis_ok, "message": redis_msg},
                "storage": {"ok": storage_ok, "message": storage_msg},
            },
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_excludes=["**/__pycache__/**", "**/*.pyc"],
    )
