"""
Main FastAPI application.

WHY: This is the entry point for the application. It configures logging,
middleware, routes and exception handlers.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from billing_bridge.api import billing
from billing_bridge.core.config import settings
from billing_bridge.core.exceptions import AppException
from billing_bridge.core.exception_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    generic_exception_handler,
)
from billing_bridge.core.logging_config import configure_logging
from billing_bridge.middleware import RequestContextMiddleware


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    WHY: Factory pattern allows easier testing with different configurations
    and makes it possible to create multiple app instances if needed.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Stripe checkout sessions and webhook reconciliation",
        version=settings.VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Every failure leaves as {"failure": "<reason>"}
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.add_middleware(RequestContextMiddleware)

    # WHY: The checkout frontend runs on a different origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """
        Health check endpoint.

        WHY: Allows load balancers and monitoring to verify service health
        without checking authentication or database connectivity.
        """
        return {
            "status": "healthy",
            "version": settings.VERSION,
        }

    @app.get("/goext/{name}", tags=["health"])
    async def hello(name: str) -> dict:
        """Greeting endpoint used to check that custom routes are mounted."""
        return {"message": f"Hello {name}"}

    # Paths are mounted at the root; Stripe and the frontend call them as is
    app.include_router(billing.router)

    return app


# Create app instance
# WHY: Creating the app instance here allows it to be imported by uvicorn
# and other modules that need access to the FastAPI app.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    # WHY: `python -m billing_bridge.main` for development.
    # In production, use `uvicorn billing_bridge.main:app` directly.
    uvicorn.run(
        "billing_bridge.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
