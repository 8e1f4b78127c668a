from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from app.core.config import settings
from app.api.api_v1.api import api_router
from app.core.database import AsyncSessionLocal, initialize_db, close_db_connection
from app.core.email import EmailNotifier
from app.core.exceptions import register_exception_handlers
from app.realtime.manager import ConnectionManager
from app.services.messaging import MessagingService
from app.services.notifications import NotificationScheduler
from app.utils.logging import setup_logging

# Configure logging
setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting application...")

    # Initialize database connection
    await initialize_db()
    logger.info("Database connection initialized")

    # Shared realtime and notification state lives for the whole process
    app.state.session_factory = AsyncSessionLocal
    app.state.connections = ConnectionManager()
    app.state.scheduler = NotificationScheduler(delay=settings.MESSAGE_NOTIFICATION_DELAY_SECONDS)
    app.state.notifier = EmailNotifier.from_settings(settings)
    app.state.messaging = MessagingService(
        session_factory=app.state.session_factory,
        scheduler=app.state.scheduler,
        connections=app.state.connections,
        notifier=app.state.notifier,
    )
    if not app.state.notifier.is_configured:
        logger.warning("SMTP_HOST is not set; e-mails will only be logged")

    yield

    # Shutdown
    logger.info("Shutting down application...")

    # Pending notifications do not survive a restart
    await app.state.scheduler.shutdown()

    # Close database connection
    await close_db_connection()
    logger.info("Database connection closed")

# Create FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

register_exception_handlers(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add compression middleware if enabled
if settings.ENABLE_RESPONSE_COMPRESSION:
    app.add_middleware(GZipMiddleware, minimum_size=1000)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
async def root():
    """
    Root endpoint that returns basic API information.
    """
    return {
        "message": "Welcome to Nexu Communication API",
        "version": settings.VERSION,
        "documentation": "/docs"
    }
