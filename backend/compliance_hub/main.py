"""FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .domain_errors import DomainError
from .problem_details import domain_error_handler
from .routers import audit, events, responsibility_matrix, suggestions, tasks

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create app
app = FastAPI(
    title="Compliance Hub",
    version="1.0.0",
    description="Backend API for ISO 9001 / ISO 27001 compliance management",
)

# Production safety checks (fail closed on insecure config).
if settings.ENV.lower() == "production" and settings.JWT_SECRET_KEY == "change-me":
    raise RuntimeError("JWT_SECRET_KEY must be set in production.")
if settings.ENV.lower() == "production" and not settings.cors_origins:
    raise RuntimeError("ALLOWED_ORIGINS must be set in production (explicit frontend origin required).")
if settings.ENV.lower() == "production" and any(origin.strip() == "*" for origin in settings.cors_origins):
    raise RuntimeError("ALLOWED_ORIGINS must be explicit in production (no wildcard).")

# CORS
cors_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
cors_headers = ["Authorization", "Content-Type"]
if settings.ENV.lower() != "production":
    cors_headers = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=cors_methods,
    allow_headers=cors_headers,
)

app.add_exception_handler(DomainError, domain_error_handler)

# Include routers
app.include_router(tasks.router, prefix="/api/v1")
app.include_router(events.router, prefix="/api/v1")
app.include_router(responsibility_matrix.router, prefix="/api/v1")
app.include_router(suggestions.router, prefix="/api/v1")
app.include_router(audit.router, prefix="/api/v1")


@app.get("/api/v1/system/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": "1.0.0"}
