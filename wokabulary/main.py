"""
FastAPI Application Entry Point

Wokabulary restaurant point of sale.
Supports both Mock services (development) and Real providers (production).

Endpoints:
    - /api/staff/login, /api/admin/staff: Staff login and administration
    - /api/admin/categories, /api/admin/portions, /api/admin/food-items: Menu
    - /api/admin/ingredients: Ingredients and stock movements
    - /api/waiter/*, /api/kitchen/*, /api/orders/*: Order lifecycle
    - /api/cashier/*, /api/bill/*: Counter sales and bills
    - /admin, /kitchen, /bill/{id}: Server-rendered pages
    - GET /health: System health check

Run with:
    uvicorn wokabulary.main:app --reload
"""

import asyncio
import sys
import logging
from datetime import datetime
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, literal
import redis

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from wokabulary.core.config import get_settings, setup_logging
from wokabulary.database import async_session_maker, get_db, init_db, engine
from wokabulary.routers import all_routers
from wokabulary.schemas import HealthResponse
from wokabulary.services.auth import get_auth_service
from wokabulary.services.billing import get_restaurant_settings
from wokabulary.services.notifications import get_notification_service

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    # Initialize database
    await init_db()
    async with async_session_maker() as session:
        restaurant = await get_restaurant_settings(session)
        logger.info(f"Service charge: {restaurant.service_charge_rate}%")

    # Log service configuration
    logger.info(f"Auth Service: {get_auth_service().provider_name}")
    logger.info(f"Notification Service: {get_notification_service().provider_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant point of sale: staff login, menu and stock management, "
        "order lifecycle from waiter to kitchen to bill."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in all_routers:
    app.include_router(router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "dashboard": "/admin",
        "kitchen": "/kitchen",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(literal(1)))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    # Check Redis
    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except redis.RedisError as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    auth_status = "healthy" if await get_auth_service().health_check() else "unhealthy"
    notification_status = "healthy" if await get_notification_service().health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, auth_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        auth_service=auth_status,
        notification_service=notification_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Render HTTP errors as {"success": false, "error": ...} plus any extra payload.

    Registered on the Starlette base class so router 404/405 responses match.
    """
    content = {"success": False}
    if isinstance(exc.detail, dict):
        content.update(exc.detail)
        content.setdefault("error", "Request failed")
    else:
        content["error"] = str(exc.detail)

    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first invalid field as a 400."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    error = f"{location}: {message}" if location else message

    return JSONResponse(
        status_code=400,
        content={"success": False, "error": error},
    )


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """A unique constraint lost a race with a concurrent request."""
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")

    return JSONResponse(
        status_code=409,
        content={
            "success": False,
            "error": "Conflicts with an existing record",
            "detail": str(exc.orig) if settings.debug else None,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "wokabulary.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
