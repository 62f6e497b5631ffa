# app/main.py
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.email_client import EmailClient
from app.core.media import MediaStore
from app.core.supabase_client import supabase_admin
from app.database import create_db_and_tables
from app.services.notification_service import Notifier

# Import models so SQLModel metadata is populated before create_all()
from app.models import user as _user_models  # noqa: F401
from app.models import category as _category_models  # noqa: F401
from app.models import service as _service_models  # noqa: F401
from app.models import group as _group_models  # noqa: F401
from app.models import product as _product_models  # noqa: F401
from app.models import blog as _blog_models  # noqa: F401
from app.models import cart as _cart_models  # noqa: F401

# Routers
from app.routers.auth import router as auth_router
from app.routers.categories import router as categories_router
from app.routers.services import router as services_router
from app.routers.groups import router as groups_router
from app.routers.products import router as products_router
from app.routers.blogs import router as blogs_router
from app.routers.cart import router as cart_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")

SCALAR_TYPES = (str, int, float, bool, type(None))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Verify DB connectivity and create tables.
      - Build the media and notification delegates.

    Shutdown:
      - No special cleanup needed for sync engine.
    """
    logger.info("Startup: connecting to the database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise

    app.state.media_store = MediaStore(settings.STORAGE_BUCKET, supabase_admin)
    app.state.notifier = Notifier(EmailClient.from_settings(settings))
    app.state.started_at = time.monotonic()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error envelope ---


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        # Raised by the router itself: no route matched
        body = {"success": False, "message": "Route not found"}
    elif isinstance(exc.detail, dict):
        body = {"success": False, **exc.detail}
    else:
        body = {"success": False, "message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        value = err.get("input")
        errors.append(
            {
                "field": ".".join(loc),
                "message": err.get("msg"),
                "value": value if isinstance(value, SCALAR_TYPES) else None,
            }
        )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Something went wrong!",
            "error": str(exc) if settings.ENVIRONMENT == "development" else "Internal Server Error",
        },
    )


# API prefix, e.g. /api
app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(categories_router, prefix=settings.API_PREFIX)
app.include_router(services_router, prefix=settings.API_PREFIX)
app.include_router(groups_router, prefix=settings.API_PREFIX)
app.include_router(products_router, prefix=settings.API_PREFIX)
app.include_router(blogs_router, prefix=settings.API_PREFIX)
app.include_router(cart_router, prefix=settings.API_PREFIX)


@app.get("/")
def root():
    """Service banner."""
    return {"success": True, "message": f"{settings.PROJECT_NAME} is running"}


@app.get("/health")
def health(request: Request):
    """Health check endpoint."""
    started_at = getattr(request.app.state, "started_at", None)
    uptime = time.monotonic() - started_at if started_at is not None else 0.0
    return {
        "status": "OK",
        "uptime": round(uptime, 2),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
