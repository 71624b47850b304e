# app/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.utils.email_service import EmailService
from app.utils.event_sink import EventSink
from app.utils.logger import setup_app_logging, get_logger
from app.utils.pdf_utils import PdfRenderer, SignatureStamper
from app.utils.s3_utils import ObjectStorage
# Local application imports - Routes
from app.esign.router import router as esign_routes
from app.landlords.router import router as landlord_routes
from app.leases.router import router as lease_routes
from app.leases.router import landlord_router as landlord_lease_routes
from app.notifications.router import router as notification_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build the external clients once and share them through app.state
    """
    storage = ObjectStorage()
    app.state.storage = storage
    app.state.email_service = EmailService()
    app.state.pdf_renderer = PdfRenderer(settings.wkhtmltopdf_path)
    app.state.stamper = SignatureStamper(storage)
    app.state.event_sink = EventSink(settings.trace_ingest_url, settings.trace_timeout_seconds)
    logger.info("Application clients initialized", environment=settings.environment)
    yield


# Create the FastAPI app
lease_app = FastAPI(
    title=f"Lease Signing Service - {settings.environment}",
    description="Lease electronic signature API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure logging
setup_app_logging(
    lease_app,
    log_level=settings.log_level,
    use_json=settings.log_json or settings.environment.lower() == "production",
    app_name="Lease Signing Service",
    environment=settings.environment,
)
logger = get_logger(__name__)

# Add CORS middleware
lease_app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_cors_urls.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
lease_app.include_router(esign_routes)
lease_app.include_router(lease_routes)
lease_app.include_router(landlord_routes)
lease_app.include_router(landlord_lease_routes)
lease_app.include_router(notification_routes)


# Root API to check if the server is up
@lease_app.get("/", tags=["Base"])
async def health_check():
    """
    Root API to check if the server is up
    """
    logger.info("Calling root API for testing")
    return {"status": "ok"}
