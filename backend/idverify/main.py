"""
Identity Verification Backend — FastAPI Application Entry Point

Aggregates all routers, configures logging and middleware,
and initializes the database on startup.
"""
import logging
import os
import time
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from idverify.config import Settings, get_settings
from idverify.database import SessionLocal, init_db, dispose_db
from idverify.errors import ConfigurationError
from idverify.routes import verification_router, webhook_router, admin_router
from idverify.schemas.schemas import HealthResponse

settings = get_settings()
logger = logging.getLogger("idverify")


def configure_logging(settings: Settings) -> None:
    """Console + server.log handlers; DEBUG turns on verbose logging."""
    os.makedirs(settings.LOG_DIR, exist_ok=True)
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    file_handler = logging.FileHandler(os.path.join(settings.LOG_DIR, "server.log"))
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)

    app_logger = logging.getLogger("idverify")
    app_logger.setLevel(level)
    if not app_logger.handlers:
        app_logger.addHandler(stream_handler)
        app_logger.addHandler(file_handler)


# ─── Application Instance ───────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Brokers identity-verification sessions with Stripe Identity, stores only "
        "non-sensitive session metadata, and reconciles status from signed webhooks."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
)


# ─── Startup / Shutdown ──────────────────────────────────────────────
@app.on_event("startup")
def on_startup():
    """Validate configuration, initialize database tables and log boot info."""
    configure_logging(settings)
    settings.validate_required()
    init_db()

    boot_msg = (
        f"\n{'='*60}\n"
        f"  {settings.APP_NAME} v{settings.APP_VERSION}\n"
        f"  TIME: {datetime.now().isoformat()}\n"
        f"  STRIPE KEY: {'[OK] Loaded' if settings.STRIPE_SECRET_KEY else '[!] Missing'}\n"
        f"  WEBHOOK SECRET: {'[OK] Loaded' if settings.STRIPE_WEBHOOK_SECRET else '[!] Missing (signatures NOT verified)'}\n"
        f"  DATABASE: {settings.DATABASE_URL}\n"
        f"  DEBUG: {settings.DEBUG}\n"
        f"{'='*60}"
    )
    logger.info(boot_msg)
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning("Webhook signature verification is DISABLED; set STRIPE_WEBHOOK_SECRET")


@app.on_event("shutdown")
def on_shutdown():
    dispose_db()


# ─── Middleware ──────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with timing."""
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 1)

    logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration)
    return response


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Configuration error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ─── API Routers ─────────────────────────────────────────────────────
app.include_router(verification_router)
app.include_router(webhook_router)
app.include_router(admin_router)


@app.get("/health", tags=["Health"], response_model=HealthResponse)
def health():
    """Liveness check with database connectivity."""
    db_ok = False
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.exception("Health check database query failed")
    finally:
        db.close()

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        timestamp=datetime.utcnow(),
        database="connected" if db_ok else "disconnected",
    )
