"""
Document rendering endpoints.

Clients post flat JSON records; the service renders them into HTML,
drives headless Chromium to print the HTML as PDF, and returns the PDF.

    POST /api/generate-borrower-info-pdf
        Borrower KYC summary. Photos are fetched (Google Drive links are
        resolved first) and inlined before rendering. Returned inline.

    POST /api/generate-seeds-direct-debit-mandate-pdf
        Direct debit mandate. Header, footer and logo images are inlined.
        Returned as an attachment named after the borrower.

    GET  /api/generate-seeds-direct-debit-mandate-pdf
        HTML preview of the mandate built from query parameters over an
        example record.

    POST|GET /api/seeds-direct-debit-mandate
        Earlier mandate route, kept for existing callers. Identical
        output except that images are referenced by their remote URLs.
"""

import logging
import time
import uuid
from datetime import date
from typing import Annotated, Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel, ValidationError

from renderer.app.api.errors import DocumentRequestError
from renderer.app.core.config import Settings
from renderer.app.registry.registry import DOCUMENT_REGISTRY, DocumentEntry
from renderer.app.schemas.borrower_info import BorrowerInfoPayload
from renderer.app.schemas.direct_debit_mandate import DirectDebitMandatePayload
from renderer.app.services.assets import inline_images, to_direct_download_url
from renderer.app.services.browser import PdfRenderer
from renderer.app.services.templating import render_document_html

logger = logging.getLogger("renderer.api")

router = APIRouter(prefix="/api", tags=["Documents"])

CORS_ALLOW_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
CORS_ALLOW_HEADERS = ("Content-Type", "Authorization")

# =============================================================================
# Dependency providers
# =============================================================================

def get_correlation_id(
    x_correlation_id: Annotated[
        Optional[str],
        Header(description="Audit trace ID"),
    ] = None,
) -> str:
    """Extract or generate a correlation ID for end-to-end traceability."""
    if x_correlation_id and len(x_correlation_id) > 128:
        return str(uuid.uuid4())
    return x_correlation_id or str(uuid.uuid4())


def get_app_settings(request: Request) -> Settings:
    settings: Optional[Settings] = getattr(request.app.state, "settings", None)
    if settings is None:
        raise RuntimeError("settings not initialized")
    return settings


def get_renderer(request: Request) -> PdfRenderer:
    return request.app.state.renderer


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


CorrelationId = Annotated[str, Depends(get_correlation_id)]


async def read_json_object(
    request: Request,
    correlation_id: CorrelationId,
) -> Dict[str, Any]:
    try:
        data = await request.json()
    except ValueError as exc:
        raise DocumentRequestError(
            status.HTTP_400_BAD_REQUEST,
            "Invalid JSON payload",
            details=str(exc),
            headers={"X-Correlation-ID": correlation_id},
        ) from exc

    if not isinstance(data, dict):
        raise DocumentRequestError(
            status.HTTP_400_BAD_REQUEST,
            "Invalid JSON payload",
            details="Expected a JSON object.",
            headers={"X-Correlation-ID": correlation_id},
        )
    return data


AppSettings = Annotated[Settings, Depends(get_app_settings)]
Renderer = Annotated[PdfRenderer, Depends(get_renderer)]
HttpClient = Annotated[httpx.AsyncClient, Depends(get_http_client)]
JsonObject = Annotated[Dict[str, Any], Depends(read_json_object)]


# =============================================================================
# Pipeline helpers
# =============================================================================

def format_long_date(day: date) -> str:
    """en-US long date, e.g. 'January 5, 2026'."""
    return f"{day:%B} {day.day}, {day.year}"


def validate_payload(
    entry: DocumentEntry,
    data: Dict[str, Any],
    correlation_id: str,
) -> BaseModel:
    try:
        return entry.payload_schema.model_validate(data)
    except ValidationError as exc:
        logger.warning(
            "invalid_payload",
            extra={
                "trace_id": correlation_id,
                "document": entry.slug,
                "error_count": exc.error_count(),
            },
        )
        raise DocumentRequestError(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Invalid payload",
            details=str(exc),
            headers={"X-Correlation-ID": correlation_id},
        ) from exc


async def borrower_info_bindings(
    payload: BorrowerInfoPayload,
    settings: Settings,
    client: httpx.AsyncClient,
) -> Dict[str, Any]:
    images = await inline_images(
        client,
        {
            "borrower_image_src": to_direct_download_url(
                payload.borrower_image_url
            ),
            "guarantor_image_src": to_direct_download_url(
                payload.guarantor_image_url
            ),
        },
        timeout=settings.image_fetch_timeout_seconds,
        max_bytes=settings.max_image_bytes,
    )
    return images


async def mandate_bindings(
    settings: Settings,
    client: httpx.AsyncClient,
    *,
    inline_assets: bool,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    remote = {
        "header_image_src": str(settings.mandate_header_image_url),
        "footer_image_src": str(settings.mandate_footer_image_url),
        "logo_src": str(settings.mandate_logo_url),
    }

    if inline_assets:
        inlined = await inline_images(
            client,
            remote,
            timeout=settings.image_fetch_timeout_seconds,
            max_bytes=settings.max_image_bytes,
        )
        bindings: Dict[str, Any] = {
            "header_image_src": inlined["header_image_src"],
            "footer_image_src": inlined["footer_image_src"],
            "logo_src": inlined["logo_src"] or remote["logo_src"],
        }
    else:
        bindings = dict(remote)

    bindings["signed_on"] = format_long_date(today or date.today())
    return bindings


async def render_pdf_response(
    *,
    entry: DocumentEntry,
    payload: BaseModel,
    bindings: Dict[str, Any],
    settings: Settings,
    renderer: PdfRenderer,
    correlation_id: str,
    error_message: str,
) -> Response:
    """
    Render ``payload`` through the entry's template and browser profile.

    Any failure is logged and answered with a 500 carrying
    ``error_message`` and the underlying exception text.
    """
    started = time.perf_counter()
    logger.info(
        "document_render_begin",
        extra={"trace_id": correlation_id, "document": entry.slug},
    )

    try:
        html = render_document_html(
            template_path=entry.template_path,
            document_content=payload.model_dump(),
            bindings=bindings,
        )
        pdf_bytes = await renderer.render(
            html,
            entry.render_profile(settings),
            trace_id=correlation_id,
        )
    except Exception as exc:
        logger.exception(
            "document_render_failed",
            extra={
                "trace_id": correlation_id,
                "document": entry.slug,
                "error_type": type(exc).__name__,
            },
        )
        raise DocumentRequestError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_message,
            details=str(exc),
            headers={"X-Correlation-ID": correlation_id},
        ) from exc

    download_name = entry.filename(payload)
    logger.info(
        "document_render_complete",
        extra={
            "trace_id": correlation_id,
            "document": entry.slug,
            "download_name": download_name,
            "bytes": len(pdf_bytes),
            "elapsed_ms": round((time.perf_counter() - started) * 1000),
        },
    )

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": (
                f"{entry.disposition}; filename={download_name}"
            ),
            "X-Correlation-ID": correlation_id,
        },
    )


def require_mandate_fields(
    payload: DirectDebitMandatePayload, correlation_id: str
) -> None:
    missing = payload.missing_required()
    if missing:
        logger.warning(
            "mandate_missing_required_fields",
            extra={"trace_id": correlation_id, "missing": list(missing)},
        )
        raise DocumentRequestError(
            status.HTTP_400_BAD_REQUEST,
            "Missing required fields: borrower_name and business_name",
            headers={"X-Correlation-ID": correlation_id},
        )


async def generate_mandate(
    *,
    data: Dict[str, Any],
    settings: Settings,
    client: httpx.AsyncClient,
    renderer: PdfRenderer,
    correlation_id: str,
    inline_assets: bool,
) -> Response:
    entry = DOCUMENT_REGISTRY["direct-debit-mandate"]
    payload = validate_payload(entry, data, correlation_id)
    require_mandate_fields(payload, correlation_id)

    try:
        bindings = await mandate_bindings(
            settings, client, inline_assets=inline_assets
        )
    except Exception as exc:
        logger.exception(
            "mandate_bindings_failed",
            extra={"trace_id": correlation_id},
        )
        raise DocumentRequestError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Mandate generation failed",
            details=str(exc),
            headers={"X-Correlation-ID": correlation_id},
        ) from exc

    return await render_pdf_response(
        entry=entry,
        payload=payload,
        bindings=bindings,
        settings=settings,
        renderer=renderer,
        correlation_id=correlation_id,
        error_message="Mandate generation failed",
    )


async def preview_mandate(
    *,
    request: Request,
    settings: Settings,
    client: httpx.AsyncClient,
    correlation_id: str,
    inline_assets: bool,
) -> HTMLResponse:
    entry = DOCUMENT_REGISTRY["direct-debit-mandate"]

    try:
        payload = DirectDebitMandatePayload.preview(
            dict(request.query_params)
        )
        bindings = await mandate_bindings(
            settings, client, inline_assets=inline_assets
        )
        html = render_document_html(
            template_path=entry.template_path,
            document_content=payload.model_dump(),
            bindings=bindings,
        )
    except Exception as exc:
        logger.exception(
            "mandate_preview_failed",
            extra={"trace_id": correlation_id},
        )
        raise DocumentRequestError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Preview generation failed",
            details=str(exc),
            headers={"X-Correlation-ID": correlation_id},
        ) from exc

    return HTMLResponse(
        content=html,
        headers={"X-Correlation-ID": correlation_id},
    )


# =============================================================================
# Borrower info
# =============================================================================

@router.post(
    "/generate-borrower-info-pdf",
    summary="Render a borrower KYC summary as PDF",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}},
        400: {"description": "Invalid JSON payload"},
        500: {"description": "Rendering failure"},
    },
)
async def generate_borrower_info_pdf(
    data: JsonObject,
    settings: AppSettings,
    client: HttpClient,
    renderer: Renderer,
    correlation_id: CorrelationId,
) -> Response:
    entry = DOCUMENT_REGISTRY["borrower-info"]
    payload = validate_payload(entry, data, correlation_id)

    try:
        bindings = await borrower_info_bindings(payload, settings, client)
    except Exception as exc:
        logger.exception(
            "borrower_info_bindings_failed",
            extra={"trace_id": correlation_id},
        )
        raise DocumentRequestError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to generate PDF",
            details=str(exc),
            headers={"X-Correlation-ID": correlation_id},
        ) from exc

    return await render_pdf_response(
        entry=entry,
        payload=payload,
        bindings=bindings,
        settings=settings,
        renderer=renderer,
        correlation_id=correlation_id,
        error_message="Failed to generate PDF",
    )


# =============================================================================
# Direct debit mandate
# =============================================================================

_PDF_RESPONSES: Dict[int, Dict[str, Any]] = {
    200: {"content": {"application/pdf": {}}},
    400: {"description": "Invalid JSON or missing required fields"},
    500: {"description": "Rendering failure"},
}


@router.post(
    "/generate-seeds-direct-debit-mandate-pdf",
    summary="Render a direct debit mandate as PDF",
    response_class=Response,
    responses=_PDF_RESPONSES,
)
async def generate_direct_debit_mandate_pdf(
    data: JsonObject,
    settings: AppSettings,
    client: HttpClient,
    renderer: Renderer,
    correlation_id: CorrelationId,
) -> Response:
    return await generate_mandate(
        data=data,
        settings=settings,
        client=client,
        renderer=renderer,
        correlation_id=correlation_id,
        inline_assets=True,
    )


@router.get(
    "/generate-seeds-direct-debit-mandate-pdf",
    summary="Preview a direct debit mandate as HTML",
    response_class=HTMLResponse,
)
async def preview_direct_debit_mandate(
    request: Request,
    settings: AppSettings,
    client: HttpClient,
    correlation_id: CorrelationId,
) -> HTMLResponse:
    return await preview_mandate(
        request=request,
        settings=settings,
        client=client,
        correlation_id=correlation_id,
        inline_assets=True,
    )


@router.post(
    "/seeds-direct-debit-mandate",
    summary="Render a direct debit mandate as PDF (remote images)",
    response_class=Response,
    responses=_PDF_RESPONSES,
)
async def generate_direct_debit_mandate_pdf_remote_assets(
    data: JsonObject,
    settings: AppSettings,
    client: HttpClient,
    renderer: Renderer,
    correlation_id: CorrelationId,
) -> Response:
    return await generate_mandate(
        data=data,
        settings=settings,
        client=client,
        renderer=renderer,
        correlation_id=correlation_id,
        inline_assets=False,
    )


@router.get(
    "/seeds-direct-debit-mandate",
    summary="Preview a direct debit mandate as HTML (remote images)",
    response_class=HTMLResponse,
)
async def preview_direct_debit_mandate_remote_assets(
    request: Request,
    settings: AppSettings,
    client: HttpClient,
    correlation_id: CorrelationId,
) -> HTMLResponse:
    return await preview_mandate(
        request=request,
        settings=settings,
        client=client,
        correlation_id=correlation_id,
        inline_assets=False,
    )


# =============================================================================
# CORS
# =============================================================================

@router.options(
    "/{path:path}",
    summary="Answer CORS checks for any API path",
    include_in_schema=False,
)
async def cors_options(
    request: Request,
    settings: AppSettings,
    correlation_id: CorrelationId,
) -> Response:
    """
    Answer OPTIONS with 200 and the CORS headers.

    Browser preflights (``Origin`` plus ``Access-Control-Request-Method``)
    are answered by CORSMiddleware before reaching this route; plain
    OPTIONS requests land here.
    """
    headers = {
        "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
        "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
        "X-Correlation-ID": correlation_id,
    }

    allowed = settings.cors_allow_origins
    origin = request.headers.get("origin")
    if "*" in allowed:
        headers["Access-Control-Allow-Origin"] = "*"
    elif origin in allowed:
        headers["Access-Control-Allow-Origin"] = origin

    return Response(status_code=status.HTTP_200_OK, headers=headers)
