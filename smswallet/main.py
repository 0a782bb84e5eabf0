"""
smswallet/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Builds the queue, challenge service, state machine and executor
  and keeps them on app.state
- Registers API routes (SMS webhook, gateway) and error handlers
- No business logic should be written here
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import time

from smswallet.core.config import settings, validate_settings
from smswallet.core.errors import add_exception_handlers
from smswallet.core.logging import setup_logging, get_logger
from smswallet.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from smswallet.db.indexes import create_indexes
from smswallet.flow.executor import CommandExecutor
from smswallet.flow.session_machine import SessionStateMachine
from smswallet.services.challenge_service import ChallengeService
from smswallet.services.sms_queue import OutboundMessageQueue
from smswallet.services.user_service import MongoUserStore, UserStore
from smswallet.services.wallet_backend import HttpWalletBackend, WalletBackend
from smswallet.api import gateway, sms

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


def init_services(
    app: FastAPI,
    store: UserStore,
    queue: Optional[OutboundMessageQueue] = None,
    challenge_service: Optional[ChallengeService] = None,
    backend: Optional[WalletBackend] = None,
) -> CommandExecutor:
    """
    Wires the SMS pipeline and stores its parts on app.state.

    Without an explicit backend, WALLET_BACKEND_URL selects the HTTP one;
    when neither is set, wallet commands reply that the service is
    unavailable.
    """
    queue = queue or OutboundMessageQueue(
        max_attempts=settings.QUEUE_MAX_ATTEMPTS,
        sent_retention_seconds=settings.QUEUE_SENT_RETENTION_SECONDS,
        failed_retention_seconds=settings.QUEUE_FAILED_RETENTION_SECONDS,
    )
    challenge_service = challenge_service or ChallengeService(
        otp_length=settings.OTP_LENGTH,
        otp_ttl_seconds=settings.OTP_EXPIRY_SECONDS,
        hash_time_cost=settings.PIN_HASH_TIME_COST,
        hash_memory_cost=settings.PIN_HASH_MEMORY_COST,
    )
    if backend is None and settings.WALLET_BACKEND_URL:
        backend = HttpWalletBackend(
            base_url=settings.WALLET_BACKEND_URL,
            api_key=settings.WALLET_BACKEND_API_KEY,
            timeout=settings.WALLET_BACKEND_TIMEOUT_SECONDS,
        )
    if backend is None:
        logger.warning("WALLET_BACKEND_URL is not set; wallet commands are disabled")

    machine = SessionStateMachine(challenge_service)
    executor = CommandExecutor(store=store, machine=machine, queue=queue, backend=backend)

    app.state.sms_queue = queue
    app.state.challenge_service = challenge_service
    app.state.session_machine = machine
    app.state.user_store = store
    app.state.wallet_backend = backend
    app.state.executor = executor
    return executor


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("Starting SMS Wallet application...")

    try:
        logger.info("Validating configuration...")
        validate_settings()

        logger.info("Connecting to MongoDB...")
        await connect_to_mongo()

        logger.info("Creating database indexes...")
        await create_indexes()

        init_services(app, MongoUserStore())

        logger.info("SMS Wallet application started")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Debug Mode: {settings.DEBUG}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    logger.info("Shutting down SMS Wallet application...")
    await close_mongo_connection()

    stats = app.state.sms_queue.get_stats()
    if stats.pending:
        logger.warning(f"{stats.pending} outbound messages were still pending at shutdown")
    logger.info("SMS Wallet application shut down")


# Create FastAPI app with lifespan
app = FastAPI(
    title="SMS Wallet",
    description="SMS command and authentication pipeline for a text-only wallet",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,  # Disable docs in production
    redoc_url="/redoc" if settings.is_development else None,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    if process_time > 5.0:
        logger.warning(f"Slow request detected: {request.method} {request.url.path}")

    return response


add_exception_handlers(app)

# Register API routes
app.include_router(sms.router, prefix=f"{settings.API_PREFIX}/sms", tags=["SMS"])
app.include_router(gateway.router, prefix=f"{settings.API_PREFIX}/gateway", tags=["Gateway"])


# Root endpoint
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "SMS Wallet API",
        "version": APP_VERSION,
        "description": "Wallet operations over plain SMS",
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check: database connectivity and outbound queue counts.
    """
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "checks": {}
    }

    db_healthy = await check_database_health()
    health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"
    if not db_healthy:
        health_status["status"] = "degraded"

    queue = getattr(request.app.state, "sms_queue", None)
    if queue is not None:
        health_status["checks"]["sms_queue"] = queue.get_stats().model_dump()
    else:
        health_status["checks"]["sms_queue"] = "not_initialized"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


# Readiness probe (for Kubernetes/orchestration)
@app.get("/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    if await check_database_health():
        return {"status": "ready"}
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "reason": "database_unavailable"}
    )


# Liveness probe (for Kubernetes/orchestration)
@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "smswallet.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
