import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from messenger.config import get_settings
from messenger.database import AsyncSessionLocal, atomic, close_db, get_db, init_db
from messenger.errors import register_exception_handlers
from messenger.logging import configure_logging, get_logger
from messenger.middleware import CorrelationIdMiddleware
from messenger.routers.auth import router as auth_router
from messenger.routers.calls import router as calls_router
from messenger.routers.chats import router as chats_router
from messenger.routers.messages import router as messages_router
from messenger.routers.profiles import router as profiles_router
from messenger.services.otp_service import OtpService

# Load environment variables
load_dotenv()

settings = get_settings()
settings.check_production()

logger = get_logger(__name__)


async def sweep_expired_otps(interval_seconds: int) -> None:
    """Periodically delete expired passcodes. Verification never relies on it."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            async with AsyncSessionLocal() as session:
                async with atomic(session):
                    await OtpService(
                        session, ttl_seconds=settings.otp_ttl_seconds
                    ).purge_expired()
        except SQLAlchemyError as e:
            logger.warning("otp_sweep_failed", error_type=type(e).__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown."""
    # Startup
    configure_logging(settings.log_level, json_output=not settings.is_dev)
    await init_db()

    sweeper: Optional[asyncio.Task[None]] = None
    if settings.otp_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(
            sweep_expired_otps(settings.otp_sweep_interval_seconds)
        )
    logger.info("application_started", env=settings.env, version=settings.commit_hash)

    yield

    # Shutdown
    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
    await close_db()


app = FastAPI(
    title="Messenger Service",
    description="Messaging backend with accounts, chats, messages and calls",
    version=settings.commit_hash or "dev",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(chats_router, prefix="/chats", tags=["chats"])
app.include_router(messages_router, prefix="/messages", tags=["messages"])
app.include_router(calls_router, prefix="/calls", tags=["calls"])
app.include_router(profiles_router, prefix="/profiles", tags=["profiles"])


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, Optional[str]]:
    """Health check endpoint with database connectivity."""
    try:
        # Test database connection
        result = await db.execute(text("SELECT 1"))
        db_status = "connected" if result.scalar() == 1 else "error"
    except SQLAlchemyError:
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "environment": settings.env,
        "version": settings.commit_hash,
    }


# If run directly, start the server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
