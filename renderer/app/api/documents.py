"""
Document discovery and schema introspection endpoints.

These endpoints expose the renderer's registered document catalogue and
the Pydantic-derived JSON schemas used for payload validation. Both routes
are read-only and operate entirely from the in-process registry.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, status
from pydantic import BaseModel

from renderer.app.api.errors import DocumentRequestError
from renderer.app.api.routes import CorrelationId
from renderer.app.registry.registry import DOCUMENT_REGISTRY

router = APIRouter(prefix="/api/documents", tags=["Catalogue"])


class DocumentListItem(BaseModel):
    slug: str
    description: str
    disposition: str


# ---------------------------------------------------------------------------
# GET /api/documents
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=List[DocumentListItem],
    summary="List renderable documents",
)
def list_documents() -> List[DocumentListItem]:
    return [
        DocumentListItem(
            slug=entry.slug,
            description=entry.description,
            disposition=entry.disposition,
        )
        for entry in DOCUMENT_REGISTRY.values()
    ]


# ---------------------------------------------------------------------------
# GET /api/documents/{slug}/schema
# ---------------------------------------------------------------------------


@router.get(
    "/{slug}/schema",
    summary="Return the JSON schema for a document payload",
)
def get_document_schema(
    slug: str,
    correlation_id: CorrelationId,
) -> Dict[str, Any]:
    """
    Return the JSON schema derived from the Pydantic model used to
    validate payloads for the given document.

    Property names are the JSON keys clients send (camelCase for
    borrower info).
    """
    entry = DOCUMENT_REGISTRY.get(slug)
    if entry is None:
        raise DocumentRequestError(
            status.HTTP_404_NOT_FOUND,
            f"Document '{slug}' not found.",
            headers={"X-Correlation-ID": correlation_id},
        )

    return entry.payload_schema.model_json_schema(by_alias=True)
