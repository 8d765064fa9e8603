"""
FastAPI application entry point.

This is the main FastAPI application that wires the routes, the key store and
the error handlers. The encryption pipeline itself stays free of HTTP concerns.
"""

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from .routers import encrypt, health
from .models.common import APIError
from .settings import ServiceSettings, load_settings
from src.keystore.manager import KeyStoreManager
from src.pipeline.encryption.types import EncryptionError, ErrorKind

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Builds the key store once at startup and closes it at shutdown.
    """
    settings: ServiceSettings = app.state.settings
    logger.info(f"Starting {settings.name} {settings.version}")

    keystore_manager = KeyStoreManager(settings.keystore, base_dir=settings.config_dir)
    keystore_manager.store  # build now so bad store config fails at startup
    app.state.keystore_manager = keystore_manager
    logger.info(f"Key store configured: {keystore_manager.store_type}")

    yield  # Server runs here

    logger.info(f"Shutting down {settings.name}")
    await keystore_manager.cleanup()
    app.state.keystore_manager = None

def _error_response(status_code: int, message: str, error_code: str, details: Optional[dict] = None) -> JSONResponse:
    body = APIError(error=message, error_code=error_code, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))

def create_app(settings: Optional[ServiceSettings] = None) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    Tests pass their own settings; otherwise they are loaded from config.
    """
    settings = settings or load_settings()

    app = FastAPI(
        title=settings.name,
        description="Encrypts caller payloads under their stored RSA public key (RSA-OAEP, SHA-512)",
        version=settings.version,
        lifespan=lifespan
    )
    app.state.settings = settings

    @app.exception_handler(EncryptionError)
    async def encryption_error_handler(request: Request, exc: EncryptionError):
        status_code = exc.status_code
        if exc.kind is ErrorKind.KEY_NOT_FOUND:
            status_code = settings.encryption.key_not_found_status
        return _error_response(status_code, exc.message, exc.kind.value, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error_response(
            400,
            "Must provide valid plain text data to be encrypted",
            ErrorKind.INVALID_INPUT.value,
            {"errors": errors},
        )

    # Include API routers
    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(encrypt.router, prefix="/api/v1/crypto/public-encrypt", tags=["crypto"])

    @app.get("/")
    async def root():
        """Root endpoint with basic API information."""
        return {
            "name": settings.name,
            "version": settings.version,
            "status": "operational",
            "endpoints": {
                "health": "/health",
                "public_encrypt": "/api/v1/crypto/public-encrypt",
                "docs": "/docs",
                "redoc": "/redoc"
            }
        }

    return app

# Create the FastAPI app instance
app = create_app()
