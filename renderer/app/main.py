import sys
import logging
import httpx

from contextlib import asynccontextmanager
from importlib.metadata import version, PackageNotFoundError
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from renderer.app.api.documents import router as documents_router
from renderer.app.api.errors import (
    DocumentRequestError,
    document_request_error_handler,
)
from renderer.app.api.routes import (
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    router as render_router,
)
from renderer.app.core.config import Settings, get_settings
from renderer.app.core.logging_config import configure_logging
from renderer.app.services.browser import PdfRenderer

logger = logging.getLogger("renderer.main")


def get_app_version() -> str:
    """
    Resolve the installed distribution version.

    Falls back to the source version when running from a checkout.
    """
    try:
        return version("borrower-doc-renderer")
    except PackageNotFoundError:
        return "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Guarantees:
    - One shared HTTP client for remote image fetches
    - The Playwright driver is stopped on shutdown
    """
    settings: Settings = app.state.settings

    configure_logging(settings.log_level)

    logger.info(
        "renderer_startup_begin",
        extra={
            "service": "renderer",
            "version": get_app_version(),
            "environment": settings.environment,
        },
    )

    # ------------------------------------------------------------------
    # Persistent HTTP client for remote image fetches
    #
    # Per-request timeouts are applied by the asset helpers.
    # ------------------------------------------------------------------
    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(
            timeout=settings.image_fetch_timeout_seconds,
            connect=5.0,
        ),
        limits=httpx.Limits(
            max_keepalive_connections=10,
            max_connections=20,
        ),
        headers={
            "User-Agent": f"borrower-doc-renderer/{get_app_version()}",
        },
    )

    app.state.renderer = PdfRenderer(settings)

    try:
        yield
    finally:
        logger.info("renderer_shutdown_begin")

        # Idempotent shutdown
        try:
            await app.state.http_client.aclose()
        except Exception:
            logger.warning("http_client_shutdown_failed", exc_info=True)

        try:
            await app.state.renderer.aclose()
        except Exception:
            logger.warning("playwright_shutdown_failed", exc_info=True)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory for the borrower document renderer.

    ``settings`` may be injected (tests); otherwise they are read from the
    environment.
    """
    # ------------------------------------------------------------------
    # Load and validate configuration (FAIL FAST)
    # ------------------------------------------------------------------
    if settings is None:
        try:
            settings = get_settings()
        except Exception:
            logger.exception("invalid_renderer_configuration")
            raise

    app = FastAPI(
        title="Borrower Document Renderer",
        description=(
            "Renders borrower KYC summaries and direct debit mandates "
            "to PDF with headless Chromium."
        ),
        version=get_app_version(),
        docs_url="/docs",
        redoc_url=None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.state.settings = settings

    # Called from other front-ends. Preflights are answered here; plain
    # OPTIONS requests fall through to the router.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=False,
        allow_methods=list(CORS_ALLOW_METHODS),
        allow_headers=list(CORS_ALLOW_HEADERS),
        expose_headers=["Content-Disposition", "X-Correlation-ID"],
    )

    app.add_exception_handler(
        DocumentRequestError,
        document_request_error_handler,
    )

    app.include_router(render_router)
    app.include_router(documents_router)

    @app.get(
        "/healthz",
        tags=["Monitoring"],
        summary="Liveness and readiness probe",
    )
    async def health_check():
        """
        Verifies that the runtime is alive.

        NOTE:
        - Does NOT launch a browser
        - Does NOT fetch remote assets
        """
        return ORJSONResponse(
            content={
                "status": "ok",
                "service": "renderer",
                "version": app.version,
                "runtime": f"python {sys.version.split()[0]}",
            }
        )

    return app


app = create_app()
