"""Course Portal API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map PortalError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and email client initialized on startup, closed on shutdown
    - Uploaded images served under /uploads from settings.upload_dir

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module wiring-only
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from courseportal.api.error_handlers import register_error_handlers
from courseportal.api.routes import (
    admin_affiliations, admin_categories, admin_contacts, admin_courses,
    admin_dashboard, admin_enrollments, admin_intakes, admin_payments,
    admin_users, health, me, public_catalog, public_contact,
)
from courseportal.config import get_settings
from courseportal.infrastructure import database
from courseportal.infrastructure import email_client as email_module
from courseportal.infrastructure.database import init_db
from courseportal.infrastructure.email_client import init_email_client
from courseportal.infrastructure.observability import setup_logging
from courseportal.infrastructure.storage import PUBLIC_PREFIX

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    os.makedirs(settings.upload_dir, exist_ok=True)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_email_client(
        settings.email_api_key,
        base_url=settings.email_base_url,
        max_retries=settings.email_max_retries,
        base_delay_ms=settings.email_base_delay_ms,
        max_delay_ms=settings.email_max_delay_ms,
        timeout_seconds=settings.email_timeout_seconds,
    )
    if not settings.email_api_key:
        logger.warning("EMAIL_API_KEY not set: outbound email disabled")
    logger.info("Course Portal API started")
    yield
    logger.info("Course Portal API shutting down")
    if email_module.email_client:
        await email_module.email_client.aclose()
    if database.db_manager:
        await database.db_manager.dispose()


app = FastAPI(
    title="Course Portal API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(public_catalog.router)
app.include_router(public_contact.router)
app.include_router(me.router)
app.include_router(admin_courses.router)
app.include_router(admin_categories.router)
app.include_router(admin_affiliations.router)
app.include_router(admin_intakes.router)
app.include_router(admin_enrollments.router)
app.include_router(admin_payments.router)
app.include_router(admin_contacts.router)
app.include_router(admin_users.router)
app.include_router(admin_dashboard.router)

# Directory is created at startup; importing the app touches no filesystem
app.mount(
    PUBLIC_PREFIX,
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name="uploads",
)

register_error_handlers(app)
