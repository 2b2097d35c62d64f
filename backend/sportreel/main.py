import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sportreel.api.auth import router as auth_router
from sportreel.api.dashboard import router as dashboard_router
from sportreel.api.upload import router as upload_router
from sportreel.api.videos import router as videos_router
from sportreel.core.config import settings
from sportreel.core.database import get_engine
from sportreel.core.errors import SportReelError, ValidationError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(title="SportReel API", version="0.1.0")

cors_origins = ["http://localhost:3000"]
# Add production origins from settings if set
if settings.allowed_origins:
    cors_origins.extend([origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(upload_router)
app.include_router(videos_router)
app.include_router(dashboard_router)


@app.exception_handler(SportReelError)
async def sportreel_error_handler(request: Request, exc: SportReelError):
    """Every application error becomes a JSON notification; the server keeps serving."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    content = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    logger.info("Starting application startup sequence...")
    logger.info(f"DB_URL endpoint: {settings.db_url.split('@')[-1] if '@' in settings.db_url else 'Not set'}")
    logger.info(f"Media bucket: {settings.s3_bucket}")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set - thumbnail generation will be unavailable")

    try:
        get_engine()
        logger.info("✓ Database tables created/verified")
    except Exception as e:
        logger.error(f"✗ Database initialization failed: {e}", exc_info=True)
        logger.warning("Continuing despite database initialization failure...")

    logger.info("Application startup sequence completed - server ready to accept requests")


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/ready")
async def ready():
    return {"status": "ready"}
